"""
Page Distiller

Reduces a live, possibly multi-frame page to a compact, addressable summary
for an automated client, and tags every summarized element in the page so a
later action can find it again.

Features:
- Cross-origin iframe traversal (via Playwright frame API)
- Coordinate transformation for nested iframes
- Viewport-aware visibility filtering with a configurable buffer
- One identifier sequence across all frames, in frame enumeration order
- Per-frame isolation: a frame that fails or times out is skipped with a warning

A pass runs in three phases. Collection evaluates a read-only script in every
frame (bounded concurrency, per-frame timeout). Selection filters the
candidates and allocates identifiers sequentially in frame order. Marking
writes the identifier and the pass token onto the retained elements.
"""

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from playwright.async_api import Frame, Page

from pagedistill.environment.config import DistillConfig
from pagedistill.environment.data_models import (
    DistillationResult,
    DistillationWarning,
    ElementDescriptor,
    FrameNode,
    WarningKind,
)
from pagedistill.environment.frames import FrameTraverser
from pagedistill.environment.geometry import BoundingBox, CoordinateTransformer
from pagedistill.environment.id_allocator import IdAllocator
from pagedistill.environment.visibility import ComputedStyle, VisibilityFilter, Viewport
from pagedistill.exceptions import FrameUnavailableError, NoFramesProcessedError
from pagedistill.utils import log_context

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Interactive or structurally informative elements
CANDIDATE_SELECTORS = [
    # Links and buttons
    'a[href]',
    'button',
    # Form controls
    'input',
    'textarea',
    'select',
    # ARIA roles
    '[role="button"]',
    '[role="link"]',
    '[role="tab"]',
    '[role="menuitem"]',
    '[role="option"]',
    # Event handlers
    '[onclick]',
    # Headings for structure
    'h1', 'h2', 'h3', 'h4', 'h5', 'h6',
    # Form labels
    'label',
    # Accessible names and tooltips
    '[aria-label]',
    '[title]',
]

# Label sources, highest priority first
LABEL_SOURCES = ["innerText", "ariaLabel", "placeholder", "title", "alt", "value"]

_WHITESPACE_RE = re.compile(r"\s+")


# =============================================================================
# JavaScript Code for In-Page Execution
# =============================================================================

# Read-only: reports every candidate of this frame in document order
COLLECT_CANDIDATES_JS = """
(options) => {
    const elements = document.querySelectorAll(options.selectors.join(','));
    const candidates = [];

    elements.forEach((el) => {
        const rect = el.getBoundingClientRect();
        const computed = window.getComputedStyle(el);
        const value = el.value;

        candidates.push({
            tagName: el.tagName.toLowerCase(),
            rect: { x: rect.x, y: rect.y, width: rect.width, height: rect.height },
            style: {
                display: computed.display,
                visibility: computed.visibility,
                opacity: computed.opacity
            },
            role: el.getAttribute('role'),
            type: el.getAttribute('type'),
            name: el.getAttribute('name'),
            labels: {
                innerText: el.innerText || '',
                ariaLabel: el.getAttribute('aria-label') || '',
                placeholder: el.getAttribute('placeholder') || '',
                title: el.getAttribute('title') || '',
                alt: el.getAttribute('alt') || '',
                value: (value === undefined || value === null) ? '' : String(value)
            }
        });
    });

    return {
        candidates: candidates,
        viewport: { scrollY: window.scrollY, innerHeight: window.innerHeight }
    };
}
"""

# Clears markers of earlier passes in this frame, then tags the retained
# candidates. Refuses to tag anything if the candidate list changed since
# collection.
MARK_ELEMENTS_JS = """
(args) => {
    const markerAttr = args.markerAttribute;
    const passAttr = args.passAttribute;

    document.querySelectorAll(`[${markerAttr}], [${passAttr}]`).forEach((el) => {
        el.removeAttribute(markerAttr);
        el.removeAttribute(passAttr);
    });

    const elements = document.querySelectorAll(args.selectors.join(','));
    if (elements.length !== args.expectedCount) {
        return { ok: false, found: elements.length, marked: 0 };
    }

    for (const [index, , tagName] of args.assignments) {
        const el = elements[index];
        if (!el || el.tagName.toLowerCase() !== tagName) {
            return { ok: false, found: elements.length, marked: 0 };
        }
    }

    let marked = 0;
    for (const [index, id] of args.assignments) {
        const el = elements[index];
        el.setAttribute(markerAttr, String(id));
        el.setAttribute(passAttr, args.passId);
        marked++;
    }
    return { ok: true, found: elements.length, marked: marked };
}
"""

VIEWPORT_JS = "() => ({ scrollY: window.scrollY, innerHeight: window.innerHeight })"


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class Candidate:
    """Raw candidate data returned by the collection script."""

    index: int
    tag_name: str
    rect: BoundingBox
    style: ComputedStyle
    role: Optional[str] = None
    input_type: Optional[str] = None
    name: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, index: int, data: Dict[str, Any]) -> "Candidate":
        return cls(
            index=index,
            tag_name=data.get("tagName", ""),
            rect=BoundingBox.from_rect(data.get("rect") or {}),
            style=ComputedStyle.from_dict(data.get("style") or {}),
            role=data.get("role") or None,
            input_type=data.get("type") or None,
            name=data.get("name") or None,
            labels=data.get("labels") or {},
        )


@dataclass
class FrameCandidates:
    node: FrameNode
    candidates: List[Candidate]
    viewport: Viewport


@dataclass
class FrameSelection:
    """Retained elements of one frame, before markers are written."""

    node: FrameNode
    discovered: int
    descriptors: List[ElementDescriptor]
    assignments: List[Tuple[int, int, str]]


# =============================================================================
# Pure helpers
# =============================================================================

def extract_label(labels: Dict[str, str], max_length: int) -> str:
    """
    First non-blank label source, whitespace collapsed and truncated.

    Sources in priority order: rendered inner text, aria-label, placeholder,
    title, alt, form value.
    """
    for key in LABEL_SOURCES:
        value = labels.get(key) or ""
        if value.strip():
            return _WHITESPACE_RE.sub(" ", value).strip()[:max_length]
    return ""


def select_frame_elements(
    frame_candidates: FrameCandidates,
    viewport: Viewport,
    visibility: VisibilityFilter,
    allocator: IdAllocator,
    max_text_length: int,
) -> Tuple[FrameSelection, IdAllocator]:
    """
    Filter one frame's candidates and allocate identifiers for the survivors.

    The allocator is passed in and returned updated; nothing else is shared
    between frames.
    """
    node = frame_candidates.node
    offset = node.offset

    retained: List[Candidate] = []
    for candidate in frame_candidates.candidates:
        decision = visibility(candidate.rect, candidate.style, viewport, offset.y)
        if decision.retained:
            retained.append(candidate)
        else:
            logger.debug(
                f"Frame {node.index}: dropping <{candidate.tag_name}> #{candidate.index} ({decision.reason})",
                extra=log_context(frame_index=node.index),
            )

    ids, allocator = allocator.allocate_many(len(retained))

    descriptors: List[ElementDescriptor] = []
    assignments: List[Tuple[int, int, str]] = []
    for distill_id, candidate in zip(ids, retained):
        descriptors.append(
            ElementDescriptor(
                distill_id=distill_id,
                tag_name=candidate.tag_name,
                text=extract_label(candidate.labels, max_text_length),
                bounds=candidate.rect.translate(offset.x, offset.y),
                frame_index=node.index,
                frame_url=node.url,
                role=candidate.role,
                input_type=candidate.input_type,
                name=candidate.name,
                offset_exact=offset.exact,
            )
        )
        assignments.append((candidate.index, distill_id, candidate.tag_name))

    selection = FrameSelection(
        node=node,
        discovered=len(frame_candidates.candidates),
        descriptors=descriptors,
        assignments=assignments,
    )
    return selection, allocator


# =============================================================================
# Distiller
# =============================================================================

class Distiller:
    """
    Produces a DistillationResult for a page.

    Usage:
        distiller = Distiller(DistillConfig(viewport_buffer=500))
        result = await distiller.distill(page)
        print(result.distilled_html)
    """

    def __init__(self, config: Optional[DistillConfig] = None):
        self.config = config or DistillConfig()
        self.visibility = VisibilityFilter(self.config)

    async def distill(self, page: Page) -> DistillationResult:
        """
        Run one distillation pass.

        Args:
            page: Playwright Page object

        Returns:
            DistillationResult with the rendering, descriptors, counts and warnings

        Raises:
            NoFramesProcessedError: If no frame of the page could be processed
        """
        config = self.config
        pass_id = uuid.uuid4().hex[:12]
        log_extra = log_context(pass_id)
        page_url = page.url

        traverser = FrameTraverser(max_depth=config.max_frame_depth, transformer=CoordinateTransformer())
        traversal = await traverser.traverse(page)
        warnings: List[DistillationWarning] = list(traversal.warnings)
        skipped = traversal.skipped

        if not traversal.frames:
            raise NoFramesProcessedError(page_url=page_url, failures=[str(w) for w in warnings])

        semaphore = asyncio.Semaphore(config.max_concurrent_frames)
        top_viewport = await self._read_top_viewport(page, traversal.frames)

        # Phase 1: collect (concurrent, read-only)
        outcomes = await asyncio.gather(
            *(self._bounded(semaphore, self._collect_frame(node)) for node in traversal.frames)
        )

        # Phase 2: select and allocate (sequential, frame enumeration order)
        allocator = IdAllocator()
        selections: List[FrameSelection] = []
        for node, outcome in zip(traversal.frames, outcomes):
            if isinstance(outcome, FrameUnavailableError):
                warnings.append(self._frame_warning(node, outcome, pass_id))
                skipped += 1
                continue
            viewport = top_viewport or outcome.viewport
            selection, allocator = select_frame_elements(
                outcome, viewport, self.visibility, allocator, config.max_text_length
            )
            selections.append(selection)
        logger.debug(f"Allocated {allocator.issued} id(s) across {len(selections)} frame(s)", extra=log_extra)

        # Phase 3: write markers (concurrent, one write per frame)
        mark_outcomes = await asyncio.gather(
            *(self._bounded(semaphore, self._mark_frame(selection, pass_id)) for selection in selections)
        )

        elements: List[ElementDescriptor] = []
        frame_handles: Dict[int, Frame] = {}
        total = 0
        processed = 0
        for selection, error in zip(selections, mark_outcomes):
            if error is not None:
                warnings.append(self._frame_warning(selection.node, error, pass_id))
                skipped += 1
                continue
            processed += 1
            total += selection.discovered
            elements.extend(selection.descriptors)
            frame_handles[selection.node.index] = selection.node.frame

        if processed == 0:
            logger.error(f"Distillation of {page_url} failed: no frame could be processed", extra=log_extra)
            raise NoFramesProcessedError(page_url=page_url, failures=[str(w) for w in warnings])

        result = DistillationResult(
            elements=elements,
            distilled_html="\n".join(element.to_fragment() for element in elements),
            total_elements=total,
            pass_id=pass_id,
            warnings=warnings,
            frames_processed=processed,
            frames_skipped=skipped,
            page_url=page_url,
            frame_handles=frame_handles,
        )
        logger.info(
            f"Distilled {page_url}: {result.visible_elements}/{total} elements kept "
            f"from {processed} frame(s), {skipped} skipped",
            extra=log_extra,
        )
        return result

    @staticmethod
    async def _bounded(semaphore: asyncio.Semaphore, coro):
        async with semaphore:
            return await coro

    async def _evaluate(self, node: FrameNode, script: str, arg: Any = None) -> Any:
        """Evaluate in one frame, mapping every failure to FrameUnavailableError."""
        if node.is_detached():
            raise FrameUnavailableError("Frame detached", frame_url=node.url, frame_index=node.index)
        try:
            return await asyncio.wait_for(node.frame.evaluate(script, arg), self.config.frame_timeout_seconds)
        except asyncio.TimeoutError:
            raise FrameUnavailableError(
                f"Frame evaluation exceeded {self.config.frame_timeout_ms} ms",
                frame_url=node.url,
                frame_index=node.index,
                timed_out=True,
            )
        except Exception as e:
            raise FrameUnavailableError(
                f"Frame evaluation failed: {e}", frame_url=node.url, frame_index=node.index
            ) from e

    async def _read_top_viewport(self, page: Page, frames: List[FrameNode]) -> Optional[Viewport]:
        """Viewport of the main frame, or None so each frame falls back to its own."""
        main = next((node for node in frames if node.is_main), None)
        if main is None:
            return None
        try:
            data = await self._evaluate(main, VIEWPORT_JS)
        except FrameUnavailableError as e:
            logger.warning(f"Could not read top-level viewport, using per-frame viewports: {e}")
            return None
        return Viewport.from_dict(data or {})

    async def _collect_frame(self, node: FrameNode) -> Union[FrameCandidates, FrameUnavailableError]:
        try:
            payload = await self._evaluate(node, COLLECT_CANDIDATES_JS, {"selectors": CANDIDATE_SELECTORS})
        except FrameUnavailableError as e:
            return e
        payload = payload or {}
        candidates = [
            Candidate.from_dict(index, data) for index, data in enumerate(payload.get("candidates") or [])
        ]
        return FrameCandidates(
            node=node,
            candidates=candidates,
            viewport=Viewport.from_dict(payload.get("viewport") or {}),
        )

    async def _mark_frame(self, selection: FrameSelection, pass_id: str) -> Optional[FrameUnavailableError]:
        node = selection.node
        args = {
            "selectors": CANDIDATE_SELECTORS,
            "passId": pass_id,
            "expectedCount": selection.discovered,
            "assignments": [list(a) for a in selection.assignments],
            **self.config.to_js_options(),
        }
        try:
            outcome = await self._evaluate(node, MARK_ELEMENTS_JS, args)
        except FrameUnavailableError as e:
            return e
        if not outcome or not outcome.get("ok"):
            found = (outcome or {}).get("found")
            return FrameUnavailableError(
                f"Frame content changed during the pass ({selection.discovered} candidates collected, "
                f"{found} found when marking)",
                frame_url=node.url,
                frame_index=node.index,
            )
        return None

    @staticmethod
    def _frame_warning(node: FrameNode, error: FrameUnavailableError, pass_id: str) -> DistillationWarning:
        logger.warning(
            f"Skipping frame {node.index} ({node.url}): {error.developer_message}",
            extra=log_context(pass_id, node.index),
        )
        return DistillationWarning(
            kind=WarningKind.FRAME_UNAVAILABLE,
            message=error.developer_message,
            frame_index=node.index,
            frame_url=node.url,
        )


async def distill(page: Page, config: Optional[DistillConfig] = None) -> DistillationResult:
    """Distill ``page`` with ``config`` (defaults when None)."""
    return await Distiller(config).distill(page)
