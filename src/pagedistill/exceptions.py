"""
Page Distillation Exception Hierarchy

This module defines the exception hierarchy for page distillation and
element resolution. Every error carries a stable error code, a context
dictionary and a user-facing message so that the calling layer can branch
on the kind of failure instead of parsing messages.

The hierarchy separates:
1. Per-frame failures that a distillation pass recovers from locally
2. Fatal pass failures that require a fallback capture mode
3. Resolution failures that require a fresh distillation
4. Usage errors raised before any page interaction
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorAction(Enum):
    """What action can be taken for this error."""

    # Caller can fix the request and retry
    USER_FIXABLE = "user_fixable"

    # Cannot be fixed on-the-fly, must terminate
    TERMINAL = "terminal"

    # Caller should retry automatically (e.g. after a fresh distillation)
    AUTO_RETRY = "auto_retry"


class DistillerError(Exception):
    """
    Base exception class for all page distillation errors.

    Attributes:
        error_code: Unique error code for programmatic handling
        timestamp: When the error occurred
        context: Additional context information
        user_message: User-friendly error message
        developer_message: Detailed technical error message
        suggestion: Suggested fix or next steps (if applicable)
    """

    def __init__(
        self,
        message: str,
        error_code: str = "DISTILLER_ERROR",
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        suggestion: Optional[str] = None,
    ):
        super().__init__(message)
        self.error_code = error_code
        self.timestamp = time.time()
        self.context = context or {}
        self.user_message = user_message or message
        self.developer_message = message
        self.suggestion = suggestion

    def get_error_action(self) -> ErrorAction:
        """Default: errors terminate the current operation."""
        return ErrorAction.TERMINAL

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.developer_message,
            "user_message": self.user_message,
            "timestamp": self.timestamp,
            "context": self.context,
            "suggestion": self.suggestion,
            "error_action": self.get_error_action().value,
        }

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.developer_message}"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class InvalidConfigError(DistillerError):
    """Raised when a distillation option is out of range or malformed."""

    def __init__(self, message: str, field_name: Optional[str] = None, value: Any = None, **kwargs):
        self.field_name = field_name
        self.value = value

        context = kwargs.pop("context", {})
        if field_name:
            context["field"] = field_name
            context["value"] = repr(value)

        super().__init__(
            message,
            error_code="INVALID_CONFIG_ERROR",
            context=context,
            user_message="Distillation options are invalid.",
            suggestion="Check the snapshot options against their documented ranges.",
            **kwargs
        )

    def get_error_action(self) -> ErrorAction:
        return ErrorAction.USER_FIXABLE


# =============================================================================
# DISTILLATION ERRORS
# =============================================================================

class FrameUnavailableError(DistillerError):
    """
    Raised when a single frame cannot be evaluated.

    Examples:
    - Frame detached during the pass (navigation, removal)
    - In-page script threw
    - Per-frame timeout elapsed

    The distiller catches this error and records a warning; it never
    escapes a distillation call on its own.
    """

    def __init__(
        self,
        message: str,
        frame_url: Optional[str] = None,
        frame_index: Optional[int] = None,
        timed_out: bool = False,
        **kwargs
    ):
        self.frame_url = frame_url
        self.frame_index = frame_index
        self.timed_out = timed_out

        context = kwargs.pop("context", {})
        if frame_url is not None:
            context["frame_url"] = frame_url
        if frame_index is not None:
            context["frame_index"] = frame_index
        context["timed_out"] = timed_out

        super().__init__(
            message,
            error_code="FRAME_UNAVAILABLE_ERROR",
            context=context,
            user_message="A frame could not be processed and was skipped.",
            **kwargs
        )

    def get_error_action(self) -> ErrorAction:
        return ErrorAction.AUTO_RETRY


class NoFramesProcessedError(DistillerError):
    """
    Raised when every frame of the page failed during a distillation pass.

    The caller should fall back to the full-structure capture mode.
    """

    def __init__(self, page_url: Optional[str] = None, failures: Optional[List[str]] = None, **kwargs):
        self.page_url = page_url
        self.failures = failures or []

        context = kwargs.pop("context", {})
        if page_url is not None:
            context["page_url"] = page_url
        context["failures"] = self.failures

        message = f"No frame could be processed for page {page_url}" if page_url else "No frame could be processed"

        super().__init__(
            message,
            error_code="NO_FRAMES_PROCESSED_ERROR",
            context=context,
            user_message="The page could not be distilled.",
            suggestion="Fall back to the full-structure snapshot or reload the page.",
            **kwargs
        )


# =============================================================================
# RESOLUTION & ACTION ERRORS
# =============================================================================

class ElementNotFoundError(DistillerError):
    """
    Raised when an identifier from a distillation pass no longer resolves.

    Examples:
    - The page navigated away
    - The element was removed from the DOM
    - A newer pass superseded the identifier
    - The identifier was never issued
    """

    def __init__(self, distill_id: int, reason: str = "", pass_id: Optional[str] = None, **kwargs):
        self.distill_id = distill_id
        self.reason = reason
        self.pass_id = pass_id

        context = kwargs.pop("context", {})
        context["distill_id"] = distill_id
        if pass_id:
            context["pass_id"] = pass_id
        if reason:
            context["reason"] = reason

        message = f"Element with id {distill_id} not found"
        if reason:
            message += f": {reason}"

        super().__init__(
            message,
            error_code="ELEMENT_NOT_FOUND_ERROR",
            context=context,
            user_message=f"Element {distill_id} is no longer on the page.",
            suggestion="Take a fresh snapshot and use the identifiers it returns.",
            **kwargs
        )

    def get_error_action(self) -> ErrorAction:
        """The caller should re-distill rather than retry the same id."""
        return ErrorAction.AUTO_RETRY


class AmbiguousAddressingError(DistillerError):
    """
    Raised when an action receives both or neither addressing scheme.

    Exactly one of the distillation identifier (``mcp_id``) or the fallback
    reference (``ref``) must be supplied per target.
    """

    def __init__(self, action: str, mcp_id: Optional[int] = None, ref: Optional[str] = None, **kwargs):
        self.action = action
        self.mcp_id = mcp_id
        self.ref = ref

        context = kwargs.pop("context", {})
        context["action"] = action
        context["mcp_id"] = mcp_id
        context["ref"] = ref

        if mcp_id is not None and ref is not None:
            message = f"Action '{action}' received both mcp_id and ref; provide only one."
        else:
            message = f"Action '{action}' requires either mcp_id or ref."

        super().__init__(
            message,
            error_code="AMBIGUOUS_ADDRESSING_ERROR",
            context=context,
            user_message=message,
            suggestion="Pass mcp_id from an optimized snapshot or ref from a full-structure snapshot.",
            **kwargs
        )

    def get_error_action(self) -> ErrorAction:
        return ErrorAction.USER_FIXABLE
