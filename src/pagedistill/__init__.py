"""
pagedistill - Page Distillation for Browser Agents

Turns a live, multi-frame page into a compact, addressable list of
interactive elements and maps the identifiers back to live elements for
follow-up actions.

License: Apache-2.0
"""

__version__ = "0.1.0"

from .environment import (
    DistillConfig,
    DistillationResult,
    Distiller,
    ElementActions,
    ElementResolver,
    SnapshotMode,
    SnapshotOrchestrator,
    distill,
)
from .exceptions import (
    AmbiguousAddressingError,
    DistillerError,
    ElementNotFoundError,
    FrameUnavailableError,
    InvalidConfigError,
    NoFramesProcessedError,
)
from .utils import init_logging

__all__ = [
    # Version
    "__version__",
    # Distillation
    "DistillConfig",
    "DistillationResult",
    "Distiller",
    "distill",
    # Resolution and actions
    "ElementResolver",
    "ElementActions",
    "SnapshotMode",
    "SnapshotOrchestrator",
    # Errors
    "DistillerError",
    "InvalidConfigError",
    "FrameUnavailableError",
    "NoFramesProcessedError",
    "ElementNotFoundError",
    "AmbiguousAddressingError",
    # Logging
    "init_logging",
]
