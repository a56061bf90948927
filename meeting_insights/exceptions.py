"""Custom exception classes for meeting-insights.

Every error raised across a component boundary carries a ``kind`` tag so that
callers (the orchestrator, the error translator, the HTTP layer) can dispatch
on it without inspecting vendor or driver exception types.
"""

from __future__ import annotations

from typing import Literal

ErrorKind = Literal[
    "internal",
    "validation",
    "configuration",
    "adapter",
    "service_unavailable",
    "storage",
    "not_found",
]


class MeetingInsightsError(Exception):
    """Base error for this library."""

    kind: ErrorKind = "internal"


class ValidationError(MeetingInsightsError):
    """Raised when user input is malformed. The message is safe to show to users."""

    kind: ErrorKind = "validation"


class ConfigurationError(MeetingInsightsError):
    """Raised when configuration is missing or invalid (e.g. no API key)."""

    kind: ErrorKind = "configuration"


class AdapterError(MeetingInsightsError):
    """Raised when an LLM provider call or its response fails.

    The original exception is chained as ``__cause__`` and also kept on
    ``cause`` for logging.
    """

    kind: ErrorKind = "adapter"

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.cause = cause


class ProvidersExhaustedError(AdapterError):
    """Raised when both the primary and the fallback adapter failed."""

    kind: ErrorKind = "service_unavailable"

    def __init__(self, primary_error: AdapterError, fallback_error: BaseException) -> None:
        super().__init__(
            f"Both adapters failed. Primary: {primary_error}. Fallback: {fallback_error}",
            provider=None,
            cause=fallback_error,
        )
        self.primary_error = primary_error
        self.fallback_error = fallback_error


class StorageError(MeetingInsightsError):
    """Raised when the analysis store cannot read or write."""

    kind: ErrorKind = "storage"


class NotFoundError(MeetingInsightsError):
    """Raised when a requested analysis does not exist."""

    kind: ErrorKind = "not_found"

    def __init__(self, message: str = "Analysis not found", resource_id: str | None = None):
        super().__init__(message)
        self.resource_id = resource_id
