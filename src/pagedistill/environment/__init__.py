"""Page distillation, element resolution and snapshot packaging."""

from .actions import ElementActions
from .config import DistillConfig, SnapshotMode
from .data_models import (
    DistillationResult,
    DistillationWarning,
    ElementDescriptor,
    FrameNode,
    WarningKind,
)
from .distiller import Distiller, distill
from .frames import FrameTraverser
from .geometry import BoundingBox, CoordinateTransformer, FrameOffset
from .id_allocator import IdAllocator
from .resolver import ElementResolver
from .snapshot import AriaSnapshotProvider, SnapshotOrchestrator
from .tool_response import ToolResponse, ToolResponseContent
from .visibility import VisibilityFilter, evaluate_visibility

__all__ = [
    "AriaSnapshotProvider",
    "BoundingBox",
    "CoordinateTransformer",
    "DistillConfig",
    "DistillationResult",
    "DistillationWarning",
    "Distiller",
    "ElementActions",
    "ElementDescriptor",
    "ElementResolver",
    "FrameNode",
    "FrameOffset",
    "FrameTraverser",
    "IdAllocator",
    "SnapshotMode",
    "SnapshotOrchestrator",
    "ToolResponse",
    "ToolResponseContent",
    "VisibilityFilter",
    "WarningKind",
    "distill",
    "evaluate_visibility",
]
