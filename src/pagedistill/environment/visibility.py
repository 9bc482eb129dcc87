"""
Visibility and relevance filter for distillation candidates.

The filter is a pure function of an element's geometry, its computed style,
the viewport and the pass options. It never touches the page.
"""

from dataclasses import dataclass
from typing import Any, Dict

from pagedistill.environment.config import DistillConfig
from pagedistill.environment.geometry import BoundingBox

# Reject reasons
TOO_SMALL = "too_small"
DISPLAY_NONE = "display_none"
VISIBILITY_HIDDEN = "visibility_hidden"
TRANSPARENT = "transparent"
OUTSIDE_VIEWPORT = "outside_viewport"


@dataclass(frozen=True)
class ComputedStyle:
    """The subset of computed CSS the filter looks at."""

    display: str = ""
    visibility: str = ""
    opacity: str = "1"

    @property
    def is_transparent(self) -> bool:
        try:
            return float(self.opacity) == 0
        except (TypeError, ValueError):
            return False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ComputedStyle":
        return cls(
            display=str(data.get("display") or ""),
            visibility=str(data.get("visibility") or ""),
            opacity=str(data.get("opacity") if data.get("opacity") is not None else "1"),
        )


@dataclass(frozen=True)
class Viewport:
    """Vertical scroll position and height of the reference viewport."""

    scroll_top: float = 0.0
    height: float = 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Viewport":
        return cls(scroll_top=float(data.get("scrollY", 0) or 0), height=float(data.get("innerHeight", 0) or 0))


@dataclass(frozen=True)
class FilterDecision:
    retained: bool
    reason: str = ""


RETAINED = FilterDecision(retained=True)


def evaluate_visibility(
    rect: BoundingBox,
    style: ComputedStyle,
    viewport: Viewport,
    frame_offset_y: float,
    config: DistillConfig,
) -> FilterDecision:
    """
    Decide whether an element is kept.

    Rules, applied in order:
    1. Smaller than the minimum size: rejected, regardless of include_hidden.
    2. Unless include_hidden: display none, visibility hidden or zero opacity.
    3. Unless include_hidden: the absolute vertical range must intersect
       ``[scroll_top - buffer, scroll_top + height + buffer]``, boundaries inclusive.

    Args:
        rect: Element rectangle in its own frame's viewport
        style: Computed style of the element
        viewport: Reference viewport
        frame_offset_y: Cumulative vertical offset of the element's frame
        config: Pass options

    Returns:
        FilterDecision with the reject reason when not retained
    """
    if rect.width < config.min_element_width or rect.height < config.min_element_height:
        return FilterDecision(retained=False, reason=TOO_SMALL)

    if config.include_hidden:
        return RETAINED

    if style.display == "none":
        return FilterDecision(retained=False, reason=DISPLAY_NONE)
    if style.visibility == "hidden":
        return FilterDecision(retained=False, reason=VISIBILITY_HIDDEN)
    if style.is_transparent:
        return FilterDecision(retained=False, reason=TRANSPARENT)

    absolute_top = rect.top + viewport.scroll_top + frame_offset_y
    absolute_bottom = rect.bottom + viewport.scroll_top + frame_offset_y
    window_top = viewport.scroll_top - config.viewport_buffer
    window_bottom = viewport.scroll_top + viewport.height + config.viewport_buffer

    if absolute_bottom < window_top or absolute_top > window_bottom:
        return FilterDecision(retained=False, reason=OUTSIDE_VIEWPORT)

    return RETAINED


class VisibilityFilter:
    """Binds the pass options to :func:`evaluate_visibility`."""

    def __init__(self, config: DistillConfig):
        self.config = config

    def __call__(
        self,
        rect: BoundingBox,
        style: ComputedStyle,
        viewport: Viewport,
        frame_offset_y: float = 0.0,
    ) -> FilterDecision:
        return evaluate_visibility(rect, style, viewport, frame_offset_y, self.config)
