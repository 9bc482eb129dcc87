"""
Frame tree traversal.

Frames are enumerated through Playwright's frame API, which also reaches
cross-origin iframes that in-page scripts cannot enter through
``contentDocument``. A same-origin-only walk over ``contentDocument`` is not
used: it would silently miss cross-origin content.

Offsets of cross-origin branches are best effort. When the hosting iframe
element of a link cannot be inspected, that link counts as zero and the
frame is reported with an ``offset_unknown`` warning; its element bounds are
then approximate.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from playwright.async_api import Frame, Page

from pagedistill.environment.data_models import DistillationWarning, FrameNode, WarningKind
from pagedistill.environment.geometry import CoordinateTransformer
from pagedistill.utils import log_context

logger = logging.getLogger(__name__)

DEFAULT_MAX_FRAME_DEPTH = 10


@dataclass
class TraversalResult:
    frames: List[FrameNode] = field(default_factory=list)
    warnings: List[DistillationWarning] = field(default_factory=list)
    skipped: int = 0


class FrameTraverser:
    """
    Enumerates the frames of a page for one distillation pass.

    Usage:
        traverser = FrameTraverser(max_depth=10)
        traversal = await traverser.traverse(page)
        for node in traversal.frames:
            ...
    """

    def __init__(
        self,
        max_depth: int = DEFAULT_MAX_FRAME_DEPTH,
        transformer: Optional[CoordinateTransformer] = None,
    ):
        self.max_depth = max_depth
        self.transformer = transformer or CoordinateTransformer()

    def ancestor_chain(self, frame: Frame, main_frame: Frame) -> Optional[List[Frame]]:
        """
        Frames from ``frame`` up to, but excluding, the main frame.

        Returns None when the chain is longer than ``max_depth`` or loops
        back onto itself.
        """
        chain: List[Frame] = []
        seen = set()
        current = frame
        while current != main_frame:
            parent = current.parent_frame
            if parent is None:
                # Orphaned frame, treated as its own root
                break
            if id(current) in seen:
                return None
            seen.add(id(current))
            chain.append(current)
            if len(chain) > self.max_depth:
                return None
            current = parent
        return chain

    async def traverse(self, page: Page) -> TraversalResult:
        """
        Ordered frames to process, main frame first.

        Detached frames and frames beyond the depth bound are skipped and
        reported on the result; they never abort the traversal.
        """
        result = TraversalResult()
        main_frame = page.main_frame
        node_index_by_frame: Dict[int, int] = {}

        for index, frame in enumerate(page.frames):
            try:
                detached = frame.is_detached()
            except Exception as e:
                logger.warning(f"Could not query frame state for frame {index}: {e}")
                detached = True

            if detached:
                logger.debug(f"Skipping detached frame {index}: {frame.url}", extra=log_context(frame_index=index))
                result.skipped += 1
                result.warnings.append(
                    DistillationWarning(
                        kind=WarningKind.FRAME_UNAVAILABLE,
                        message="Frame detached before it could be processed",
                        frame_index=index,
                        frame_url=frame.url,
                    )
                )
                continue

            chain = self.ancestor_chain(frame, main_frame)
            if chain is None:
                logger.warning(
                    f"Frame {index} nests deeper than {self.max_depth} levels, not descending: {frame.url}",
                    extra=log_context(frame_index=index),
                )
                result.skipped += 1
                result.warnings.append(
                    DistillationWarning(
                        kind=WarningKind.DEPTH_EXCEEDED,
                        message=f"Frame nesting exceeds the maximum depth of {self.max_depth}",
                        frame_index=index,
                        frame_url=frame.url,
                    )
                )
                continue

            offset = await self.transformer.offset_for(chain)
            if not offset.exact:
                logger.info(
                    f"Frame {index} offset is approximate ({offset.unresolved_links} boundary element(s) "
                    f"not inspectable): {frame.url}",
                    extra=log_context(frame_index=index),
                )
                result.warnings.append(
                    DistillationWarning(
                        kind=WarningKind.OFFSET_UNKNOWN,
                        message=(
                            f"{offset.unresolved_links} ancestor frame boundary element(s) could not be "
                            f"inspected; bounds in this frame are approximate"
                        ),
                        frame_index=index,
                        frame_url=frame.url,
                    )
                )

            parent_index = None
            if chain:
                parent = frame.parent_frame
                parent_index = node_index_by_frame.get(id(parent)) if parent is not None else None

            node = FrameNode(
                index=index,
                frame=frame,
                depth=len(chain),
                parent_index=parent_index,
                offset=offset,
            )
            node_index_by_frame[id(frame)] = index
            result.frames.append(node)

        return result
