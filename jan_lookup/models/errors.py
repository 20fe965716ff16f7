"""Failure taxonomy for the lookup harness."""

from enum import Enum
from typing import Any, Optional


class FailureReason(str, Enum):
    INPUT_NOT_FOUND = "input_not_found"
    # Never raised: a missing submit button degrades to a synthetic Enter keypress.
    SUBMIT_NOT_FOUND = "submit_not_found"
    MONITOR_TIMEOUT = "monitor_timeout"
    MARKER_NOT_FOUND = "marker_not_found"
    PAYLOAD_EMPTY = "payload_empty"
    PARSE_ERROR = "parse_error"
    PAGE_LOAD_TIMEOUT = "page_load_timeout"
    MISSING_FROM_RESPONSE = "missing_from_response"
    SCRIPT_ERROR = "script_error"
    CANCELLED = "cancelled"


class HarnessError(Exception):
    """Base exception for the harness. Every instance carries a FailureReason."""

    reason: FailureReason = FailureReason.SCRIPT_ERROR

    def __init__(
        self,
        message: str,
        reason: Optional[FailureReason] = None,
        context: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason
        self.context = context or {}

    @property
    def retryable(self) -> bool:
        return self.reason is not FailureReason.CANCELLED


class InputNotFoundError(HarnessError):
    """The input widget could not be found within the attempt bound."""

    reason = FailureReason.INPUT_NOT_FOUND


class PageLoadTimeoutError(HarnessError):
    reason = FailureReason.PAGE_LOAD_TIMEOUT


class PageScriptError(HarnessError):
    """A script run inside the page threw, or the page went away underneath it."""

    reason = FailureReason.SCRIPT_ERROR


class MonitorTimeoutError(HarnessError):
    """
    No completion signal fired before the monitor timeout.

    The page may still hold a usable answer; a manual extraction remains possible.
    """

    reason = FailureReason.MONITOR_TIMEOUT


class ExtractionError(HarnessError):
    """Marker, empty-payload and JSON errors found while reading the page text."""

    def __init__(
        self,
        reason: FailureReason,
        detail: str = "",
        excerpt: str = "",
    ):
        message = reason.value if not detail else f"{reason.value}: {detail}"
        super().__init__(message, reason, {"excerpt": excerpt})
        self.detail = detail
        self.excerpt = excerpt


class SessionCancelled(HarnessError):
    """The session was torn down; nothing it produced may be delivered."""

    reason = FailureReason.CANCELLED
