"""
Configuration for page distillation.

This module defines the options that control which elements a distillation
pass keeps, how long a frame may take, and which attributes carry the
identifiers written into the page.
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from pagedistill.exceptions import InvalidConfigError

ENV_PREFIX = "PAGEDISTILL_"

DEFAULT_MARKER_ATTRIBUTE = "data-distill-id"
DEFAULT_PASS_ATTRIBUTE = "data-distill-pass"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


class SnapshotMode(str, Enum):
    """Which capture path the snapshot orchestrator uses."""

    ARIA = "aria"
    OPTIMIZED = "optimized"

    @classmethod
    def from_env(cls, default: Optional["SnapshotMode"] = None) -> "SnapshotMode":
        """Read ``PAGEDISTILL_SNAPSHOT_MODE``; unknown values raise InvalidConfigError."""
        raw = os.environ.get(f"{ENV_PREFIX}SNAPSHOT_MODE")
        if raw is None or not raw.strip():
            return default or cls.ARIA
        try:
            return cls(raw.strip().lower())
        except ValueError:
            raise InvalidConfigError(
                f"Unknown snapshot mode '{raw}'. Expected one of: {', '.join(m.value for m in cls)}",
                field_name="snapshot_mode",
                value=raw,
            )


@dataclass
class DistillConfig:
    """
    Options for a distillation pass.

    The first five fields are the client-facing snapshot options; the rest
    tune traversal and the in-page marker.
    """

    viewport_buffer: int = 1000
    """Pixels above and below the viewport within which elements are still kept."""

    max_text_length: int = 100
    """Maximum characters of label text per element."""

    include_hidden: bool = False
    """Keep elements hidden by CSS or outside the buffered viewport (debugging aid)."""

    min_element_width: float = 1.0
    """Elements narrower than this are never kept, even with include_hidden."""

    min_element_height: float = 1.0
    """Elements shorter than this are never kept, even with include_hidden."""

    frame_timeout_ms: int = 5000
    """Upper bound for one frame's in-page evaluation; exceeding it skips the frame."""

    max_frame_depth: int = 10
    """Deepest frame nesting level processed; deeper frames are reported and skipped."""

    max_concurrent_frames: int = 4
    """How many frames are evaluated at the same time."""

    marker_attribute: str = DEFAULT_MARKER_ATTRIBUTE
    """Attribute that carries the element identifier in the page."""

    pass_attribute: str = DEFAULT_PASS_ATTRIBUTE
    """Attribute that carries the pass token next to the identifier."""

    def __post_init__(self):
        self._check_types()
        if self.viewport_buffer < 0:
            raise InvalidConfigError(
                "viewport_buffer must be >= 0", field_name="viewport_buffer", value=self.viewport_buffer
            )
        if self.max_text_length < 0:
            raise InvalidConfigError(
                "max_text_length must be >= 0", field_name="max_text_length", value=self.max_text_length
            )
        if self.min_element_width < 0 or self.min_element_height < 0:
            raise InvalidConfigError(
                "minimum element size must be >= 0",
                field_name="min_element_size",
                value=(self.min_element_width, self.min_element_height),
            )
        if self.frame_timeout_ms <= 0:
            raise InvalidConfigError(
                "frame_timeout_ms must be > 0", field_name="frame_timeout_ms", value=self.frame_timeout_ms
            )
        if self.max_frame_depth < 0:
            raise InvalidConfigError(
                "max_frame_depth must be >= 0", field_name="max_frame_depth", value=self.max_frame_depth
            )
        if self.max_concurrent_frames < 1:
            raise InvalidConfigError(
                "max_concurrent_frames must be >= 1",
                field_name="max_concurrent_frames",
                value=self.max_concurrent_frames,
            )
        for name in ("marker_attribute", "pass_attribute"):
            value = getattr(self, name)
            if not value.startswith("data-") or any(c in value for c in ' "\'=[]'):
                raise InvalidConfigError(
                    f"{name} must be a plain data-* attribute name", field_name=name, value=value
                )
        if self.marker_attribute == self.pass_attribute:
            raise InvalidConfigError(
                "marker_attribute and pass_attribute must differ",
                field_name="pass_attribute",
                value=self.pass_attribute,
            )

    def _check_types(self) -> None:
        """Field types follow the defaults; whole-number floats are accepted for int fields."""
        for f in fields(self):
            value = getattr(self, f.name)
            default = f.default
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    raise InvalidConfigError(
                        f"{f.name} must be a boolean, got {type(value).__name__}", field_name=f.name, value=value
                    )
            elif isinstance(default, (int, float)):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    raise InvalidConfigError(
                        f"{f.name} must be a number, got {type(value).__name__}", field_name=f.name, value=value
                    )
                if isinstance(default, int):
                    if isinstance(value, float) and not value.is_integer():
                        raise InvalidConfigError(
                            f"{f.name} must be a whole number", field_name=f.name, value=value
                        )
                    setattr(self, f.name, int(value))
            elif isinstance(default, str) and not isinstance(value, str):
                raise InvalidConfigError(
                    f"{f.name} must be a string, got {type(value).__name__}", field_name=f.name, value=value
                )

    @property
    def frame_timeout_seconds(self) -> float:
        return self.frame_timeout_ms / 1000.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DistillConfig":
        """
        Build a config from a plain mapping.

        Keys may be snake_case field names or their camelCase spelling
        (``viewportBuffer``), and the minimum size may be given in the nested
        ``min_element_size: {width, height}`` form. String values are converted
        the same way environment variables are. Unknown keys are rejected.
        """
        data = {_snake_case(key): value for key, value in (data or {}).items()}

        size = data.pop("min_element_size", None)
        if size is not None:
            if not isinstance(size, dict):
                raise InvalidConfigError(
                    "min_element_size must be a mapping with width/height",
                    field_name="min_element_size",
                    value=size,
                )
            if "width" in size:
                data["min_element_width"] = size["width"]
            if "height" in size:
                data["min_element_height"] = size["height"]

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidConfigError(
                f"Unknown snapshot option(s): {', '.join(unknown)}",
                field_name=unknown[0],
                value=data[unknown[0]],
            )

        defaults = {f.name: f.default for f in fields(cls)}
        for name, value in data.items():
            if isinstance(value, str) and not isinstance(defaults[name], str):
                data[name] = _coerce(name, value, defaults[name])
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "DistillConfig":
        """
        Load options from a YAML file.

        The options may sit at the top level or under a ``snapshot_options``
        (or ``snapshotOptions``) key, so a larger server config file can be
        passed directly.
        """
        with open(path, "r", encoding="utf-8") as fh:
            loaded = yaml.safe_load(fh) or {}
        if not isinstance(loaded, dict):
            raise InvalidConfigError(f"Config file {path} must contain a mapping", field_name="file", value=str(path))
        for section in ("snapshot_options", "snapshotOptions"):
            if section in loaded:
                loaded = loaded[section] or {}
                break
        if not isinstance(loaded, dict):
            raise InvalidConfigError(
                f"Snapshot options in {path} must be a mapping", field_name="snapshot_options", value=loaded
            )
        return cls.from_dict(loaded)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "DistillConfig":
        """Build a config from ``PAGEDISTILL_*`` environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        data: Dict[str, Any] = {}
        for f in fields(cls):
            raw = env.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            data[f.name] = _coerce(f.name, raw, f.default)
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_js_options(self) -> Dict[str, Any]:
        """Options passed into the in-page collection and marking scripts."""
        return {
            "markerAttribute": self.marker_attribute,
            "passAttribute": self.pass_attribute,
        }

    def __repr__(self) -> str:
        return (
            f"DistillConfig(buffer={self.viewport_buffer}, max_text={self.max_text_length}, "
            f"include_hidden={self.include_hidden}, "
            f"min_size={self.min_element_width}x{self.min_element_height})"
        )


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY_RE.sub("_", key).lower()


def _coerce(name: str, raw: str, default: Any) -> Any:
    """Convert a string option (environment or YAML) to the type of the field default."""
    value = raw.strip()
    if isinstance(default, bool):
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise InvalidConfigError(f"{name} expects a boolean, got '{raw}'", field_name=name, value=raw)
    if isinstance(default, (int, float)):
        try:
            number = float(value)
        except ValueError:
            raise InvalidConfigError(f"{name} expects a number, got '{raw}'", field_name=name, value=raw)
        if isinstance(default, int) and number.is_integer():
            return int(number)
        return number
    return value
