"""Structured response handed to the calling client for snapshots and actions."""

import json
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, model_validator


class ToolResponseContent(BaseModel):
    """
    A single text block of a tool response.

    Examples:
        ToolResponseContent(text="<button id=\"1\">Sign in</button>")
        ToolResponseContent(text={"visible_elements": 12})
    """
    text: Union[str, Dict]
    title: Optional[str] = None  # Optional heading rendered above the block

    @model_validator(mode='after')
    def validate_title(self):
        if self.title is not None and not self.title.strip():
            raise ValueError("'title' must not be blank when provided.")
        return self

    @property
    def type(self) -> str:
        return "text"

    def render(self) -> str:
        body = json.dumps(self.text, separators=(',', ':')) if isinstance(self.text, dict) else self.text
        if self.title:
            return f"### {self.title}\n{body}"
        return body

    def to_dict(self) -> Dict[str, Any]:
        """Convert to LLM message content format: {"type": "text", "text": "..."}."""
        return {"type": "text", "text": self.render()}


class ToolResponse(BaseModel):
    """
    Response from a snapshot or action with ordered content blocks.

    Attributes:
        content: Plain string or list of content blocks
        metadata: Execution metadata (counts, warnings, fallback flags)

    Examples:
        ToolResponse(content="Clicked element 3")

        ToolResponse(
            content=[
                ToolResponseContent(title="Page", text="- URL: https://example.org"),
                ToolResponseContent(title="Elements", text="<a id=\"1\">More</a>"),
            ],
            metadata={"visible_elements": 1, "total_elements": 4}
        )
    """
    content: Union[str, List[ToolResponseContent]]
    metadata: Optional[Dict[str, Any]] = None

    def to_content_array(self) -> Union[str, List[Dict]]:
        """
        Convert content to LLM message format.

        Raises:
            TypeError: If list content doesn't contain ToolResponseContent objects
        """
        if isinstance(self.content, str):
            return self.content

        for i, item in enumerate(self.content):
            if not isinstance(item, ToolResponseContent):
                raise TypeError(
                    f"When using list as content, all items must be ToolResponseContent objects. "
                    f"Item at index {i} is of type: {type(item).__name__}."
                )
        return [block.to_dict() for block in self.content]

    def to_text(self) -> str:
        """All blocks joined into one text body."""
        if isinstance(self.content, str):
            return self.content
        return "\n\n".join(block.render() for block in self.content)

    def get_metadata_str(self) -> str:
        """Metadata as compressed JSON, or a short summary when none was provided."""
        if self.metadata is not None:
            return json.dumps(self.metadata, separators=(',', ':'), default=str)
        if isinstance(self.content, str):
            return f"Text response ({len(self.content)} characters)"
        return f"Response with {len(self.content)} text block(s)"
