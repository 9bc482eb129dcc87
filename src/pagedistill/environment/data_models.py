"""
Data models produced by a distillation pass.

These are plain dataclasses; ``to_dict`` gives the JSON-friendly shape that
is handed to the calling client.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from playwright.async_api import Frame

from pagedistill.environment.geometry import BoundingBox, FrameOffset


class WarningKind(str, Enum):
    """Non-fatal conditions recorded on a distillation result."""

    FRAME_UNAVAILABLE = "frame_unavailable"
    OFFSET_UNKNOWN = "offset_unknown"
    DEPTH_EXCEEDED = "depth_exceeded"


@dataclass(frozen=True)
class DistillationWarning:
    kind: WarningKind
    message: str
    frame_index: Optional[int] = None
    frame_url: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "frame_index": self.frame_index,
            "frame_url": self.frame_url,
        }

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


@dataclass
class FrameNode:
    """
    One frame of the page as seen by a single distillation pass.

    The handle is only meaningful while the frame stays attached.
    """

    index: int
    frame: Frame
    depth: int
    parent_index: Optional[int] = None
    offset: FrameOffset = field(default_factory=FrameOffset)

    @property
    def url(self) -> str:
        return self.frame.url

    @property
    def name(self) -> str:
        return self.frame.name

    @property
    def is_main(self) -> bool:
        return self.depth == 0

    def is_detached(self) -> bool:
        return self.frame.is_detached()


def _attr(value: str) -> str:
    return value.replace('"', "&quot;")


@dataclass
class ElementDescriptor:
    """One retained element of a distillation pass."""

    distill_id: int
    tag_name: str
    text: str
    bounds: BoundingBox
    frame_index: int
    frame_url: str = ""
    role: Optional[str] = None
    input_type: Optional[str] = None
    name: Optional[str] = None
    offset_exact: bool = True

    def to_fragment(self) -> str:
        """
        Compact tag-like line shown to the client.

        ``<button id="3" type="submit">Sign in</button>``, or self-closing
        when the element has no label.
        """
        parts = [f'<{self.tag_name} id="{self.distill_id}"']
        if self.role:
            parts.append(f' role="{_attr(self.role)}"')
        if self.input_type:
            parts.append(f' type="{_attr(self.input_type)}"')
        if self.name:
            parts.append(f' name="{_attr(self.name)}"')
        head = "".join(parts)
        if self.text:
            return f"{head}>{self.text}</{self.tag_name}>"
        return f"{head} />"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "mcp_id": self.distill_id,
            "tag_name": self.tag_name,
            "text": self.text,
            "bounds": self.bounds.to_dict(),
            "frame_index": self.frame_index,
            "frame_url": self.frame_url,
        }
        if self.role:
            data["role"] = self.role
        if self.input_type:
            data["type"] = self.input_type
        if self.name:
            data["name"] = self.name
        if not self.offset_exact:
            data["approximate_bounds"] = True
        return data


@dataclass
class DistillationResult:
    """
    Consolidated output of one pass.

    ``elements`` follow frame enumeration order, then document order.
    ``total_elements`` counts candidates discovered in processed frames;
    ``visible_elements`` counts the ones retained.
    """

    elements: List[ElementDescriptor]
    distilled_html: str
    total_elements: int
    pass_id: str
    warnings: List[DistillationWarning] = field(default_factory=list)
    frames_processed: int = 0
    frames_skipped: int = 0
    page_url: str = ""
    frame_handles: Dict[int, Frame] = field(default_factory=dict, repr=False, compare=False)

    @property
    def visible_elements(self) -> int:
        return len(self.elements)

    def get(self, distill_id: int) -> Optional[ElementDescriptor]:
        for element in self.elements:
            if element.distill_id == distill_id:
                return element
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pass_id": self.pass_id,
            "page_url": self.page_url,
            "distilled_html": self.distilled_html,
            "element_map": [element.to_dict() for element in self.elements],
            "total_elements": self.total_elements,
            "visible_elements": self.visible_elements,
            "frames_processed": self.frames_processed,
            "frames_skipped": self.frames_skipped,
            "warnings": [warning.to_dict() for warning in self.warnings],
        }
