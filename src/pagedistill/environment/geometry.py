"""
Geometry helpers and the frame coordinate transformer.

Element rectangles are measured inside their own frame. To report them in
top-level viewport coordinates, every ancestor frame boundary (the iframe
element hosting a frame) adds its own position within its parent. When a
boundary cannot be inspected, typically a cross-origin embed, that link
contributes zero and the resulting offset is flagged as inexact.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from playwright.async_api import Frame

logger = logging.getLogger(__name__)

# Position of the iframe's content box origin inside its parent's viewport.
# clientLeft/clientTop add the border so the offset lands on the content origin.
FRAME_ELEMENT_POSITION_JS = """
(el) => {
    const rect = el.getBoundingClientRect();
    return {
        x: rect.left + (el.clientLeft || 0),
        y: rect.top + (el.clientTop || 0)
    };
}
"""


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box as (x, y, width, height)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def translate(self, dx: float, dy: float) -> "BoundingBox":
        return BoundingBox(self.x + dx, self.y + dy, self.width, self.height)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_rect(cls, rect: Dict[str, Any]) -> "BoundingBox":
        return cls(
            x=float(rect.get("x", 0)),
            y=float(rect.get("y", 0)),
            width=float(rect.get("width", 0)),
            height=float(rect.get("height", 0)),
        )


@dataclass(frozen=True)
class FrameOffset:
    """
    Cumulative offset of a frame origin relative to the top-level viewport.

    ``exact`` is False when at least one ancestor link could not be measured
    and was counted as zero; bounds derived from it are approximate.
    """

    x: float = 0.0
    y: float = 0.0
    exact: bool = True
    unresolved_links: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "exact": self.exact, "unresolved_links": self.unresolved_links}


class CoordinateTransformer:
    """
    Computes cumulative frame offsets for one distillation pass.

    Link positions are cached per frame for the lifetime of the instance, so
    sibling frames do not re-measure shared ancestors. Create a new
    transformer for every pass.
    """

    def __init__(self):
        self._link_cache: Dict[int, Optional[Tuple[float, float]]] = {}

    @staticmethod
    def combine(links: Iterable[Optional[Tuple[float, float]]]) -> FrameOffset:
        """
        Sum ancestor link positions; ``None`` marks a link that could not be measured.

        Args:
            links: Position of each boundary element within its parent, innermost first

        Returns:
            FrameOffset with the summed position
        """
        x = 0.0
        y = 0.0
        unresolved = 0
        for link in links:
            if link is None:
                unresolved += 1
                continue
            x += link[0]
            y += link[1]
        return FrameOffset(x=x, y=y, exact=unresolved == 0, unresolved_links=unresolved)

    async def link_offset(self, frame: Frame) -> Optional[Tuple[float, float]]:
        """
        Position of ``frame``'s hosting element inside its parent frame.

        Returns None when the hosting element is not reachable (main frame,
        detached frame, or a boundary the host refuses to inspect).
        """
        key = id(frame)
        if key in self._link_cache:
            return self._link_cache[key]

        position: Optional[Tuple[float, float]] = None
        handle = None
        try:
            handle = await frame.frame_element()
            result = await handle.evaluate(FRAME_ELEMENT_POSITION_JS)
            if result is not None:
                position = (float(result["x"]), float(result["y"]))
        except Exception as e:
            logger.debug(f"Could not inspect frame element for {frame.url}: {e}")
        finally:
            if handle is not None:
                try:
                    await handle.dispose()
                except Exception as e:
                    logger.debug(f"Could not dispose frame element handle: {e}")

        self._link_cache[key] = position
        return position

    async def offset_for(self, chain: List[Frame]) -> FrameOffset:
        """
        Cumulative offset for the innermost frame of ``chain``.

        Args:
            chain: Frames from the target frame up to, but excluding, the main frame

        Returns:
            FrameOffset relative to the top-level viewport
        """
        links = [await self.link_offset(frame) for frame in chain]
        return self.combine(links)
