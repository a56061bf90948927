"""Translate internal failures into user-facing error envelopes.

``translate`` never raises. Tagged errors whose kind already determines the
outcome (validation, configuration, not found, exhausted providers) are
mapped directly; every other error is classified by keyword groups checked
in a fixed order, so a message matching several groups lands in the
earliest one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .exceptions import MeetingInsightsError


class ErrorCode(str, Enum):
    """Stable error codes exposed to API clients."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    NETWORK_ERROR = "NETWORK_ERROR"
    SERVICE_BUSY = "SERVICE_BUSY"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    DATABASE_ERROR = "DATABASE_ERROR"
    ANALYSIS_ERROR = "ANALYSIS_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(slots=True, frozen=True)
class ErrorEnvelope:
    """User-facing error triple plus technical details for server logs.

    Attributes:
        user_message: Safe to show to end users.
        error_code: Stable code from ErrorCode.
        can_retry: True if retrying the same request may succeed.
        technical_details: Raw error text; logged, never sent to clients.
    """

    user_message: str
    error_code: ErrorCode
    can_retry: bool
    technical_details: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the public error body."""
        return {
            "error": self.user_message,
            "errorCode": self.error_code.value,
            "canRetry": self.can_retry,
        }


CONFIGURATION_MESSAGE = (
    "There's an issue with the analysis service configuration. Please contact support."
)

SERVICE_UNAVAILABLE_MESSAGE = "The analysis service is currently unavailable. Please try again later."


@dataclass(slots=True, frozen=True)
class _KeywordRule:
    code: ErrorCode
    can_retry: bool
    user_message: str | None  # None: pass the original message through
    keywords: tuple[str, ...] = ()
    # All of these must also be present (used by the validation group)
    requires: tuple[str, ...] = ()

    def matches(self, text: str) -> bool:
        if self.requires and not all(word in text for word in self.requires):
            return False
        return any(word in text for word in self.keywords)


# Order matters: first matching rule wins
KEYWORD_RULES: tuple[_KeywordRule, ...] = (
    _KeywordRule(
        ErrorCode.NETWORK_ERROR,
        True,
        "Unable to connect to the server. Please check your internet connection and try again.",
        ("fetch", "econnrefused", "network", "connection"),
    ),
    _KeywordRule(
        ErrorCode.SERVICE_BUSY,
        True,
        "The analysis service is temporarily busy. Please try again in a moment.",
        ("rate limit", "too many requests", "429"),
    ),
    _KeywordRule(
        ErrorCode.CONFIGURATION_ERROR,
        False,
        CONFIGURATION_MESSAGE,
        ("api key", "unauthorized", "401", "authentication", "invalid key"),
    ),
    _KeywordRule(
        ErrorCode.TIMEOUT_ERROR,
        True,
        "The analysis took too long to complete. "
        "Please try with a shorter transcript or try again later.",
        ("timeout", "timed out", "504"),
    ),
    _KeywordRule(
        ErrorCode.SERVICE_UNAVAILABLE,
        True,
        SERVICE_UNAVAILABLE_MESSAGE,
        (
            "service unavailable",
            "503",
            "both primary and fallback",
            "both adapters failed",
            "no llm api key",
        ),
    ),
    _KeywordRule(
        ErrorCode.CONFIGURATION_ERROR,
        False,
        CONFIGURATION_MESSAGE,
        ("model", "404", "not found"),
    ),
    _KeywordRule(
        ErrorCode.DATABASE_ERROR,
        True,
        "Unable to save the analysis. Please try again.",
        ("database", "sqlite", "storage", "connection pool"),
    ),
    _KeywordRule(
        ErrorCode.VALIDATION_ERROR,
        False,
        None,
        ("too long", "empty", "invalid"),
        requires=("transcript",),
    ),
    _KeywordRule(
        ErrorCode.ANALYSIS_ERROR,
        True,
        "The analysis service encountered an error. Please try again.",
        ("llm", "openai", "anthropic", "analysis failed"),
    ),
)

UNKNOWN_ERROR_MESSAGE = (
    "An unexpected error occurred. Please try again. If the problem persists, contact support."
)


def _error_text(error: BaseException | str) -> str:
    if isinstance(error, BaseException):
        return str(error) or type(error).__name__
    return str(error)


def translate(error: BaseException | str) -> ErrorEnvelope:
    """
    Translate an error into a user-facing envelope.

    Args:
        error: An exception (tagged or not) or a raw error message.

    Returns:
        ErrorEnvelope with a stable code and retry hint.
    """
    message = _error_text(error)

    if isinstance(error, MeetingInsightsError):
        if error.kind == "validation":
            return ErrorEnvelope(message, ErrorCode.VALIDATION_ERROR, False, message)
        if error.kind == "not_found":
            return ErrorEnvelope(message, ErrorCode.NOT_FOUND, False, message)
        if error.kind == "configuration":
            return ErrorEnvelope(CONFIGURATION_MESSAGE, ErrorCode.CONFIGURATION_ERROR, False, message)
        if error.kind == "service_unavailable":
            return ErrorEnvelope(
                SERVICE_UNAVAILABLE_MESSAGE, ErrorCode.SERVICE_UNAVAILABLE, True, message
            )

    lowered = message.lower()
    for rule in KEYWORD_RULES:
        if rule.matches(lowered):
            user_message = rule.user_message if rule.user_message is not None else message
            return ErrorEnvelope(user_message, rule.code, rule.can_retry, message)

    return ErrorEnvelope(UNKNOWN_ERROR_MESSAGE, ErrorCode.UNKNOWN_ERROR, True, message)


# HTTP status per error kind; untagged errors are 500
_STATUS_BY_KIND: dict[str, int] = {
    "validation": 400,
    "not_found": 404,
}


def status_for(error: BaseException) -> int:
    """Return the HTTP status code for an error."""
    if isinstance(error, MeetingInsightsError):
        return _STATUS_BY_KIND.get(error.kind, 500)
    return 500
