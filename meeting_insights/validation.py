"""Input validation for transcripts and list requests.

``validate_transcript`` is a cheap heuristic that catches obvious
non-transcripts (URLs, JSON snippets, near-empty text). Whether the text is
really a meeting is left to the LLM prompt, which is told to return empty
results for unrelated content.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from .exceptions import ValidationError

logger = logging.getLogger(__name__)

MIN_TRANSCRIPT_CHARS = 10
MAX_TRANSCRIPT_CHARS = 50_000
# Structured-looking input shorter than this is rejected as JSON/code
JSON_LIKE_MAX_CHARS = 200

DEFAULT_LIST_LIMIT = 10
MAX_LIST_LIMIT = 100

_URL_PREFIX_RE = re.compile(r"^https?://", re.IGNORECASE)
_WEB_ADDRESS_RE = re.compile(r"^(www\.|http|https|localhost|\.com|\.org)", re.IGNORECASE)


@dataclass(slots=True, frozen=True)
class ValidationResult:
    """Outcome of a transcript check. ``reason`` is set when ``valid`` is False."""

    valid: bool
    reason: str | None = None


def validate_transcript(text: str) -> ValidationResult:
    """
    Check that text plausibly is a meeting transcript.

    Args:
        text: Raw transcript text as submitted.

    Returns:
        ValidationResult; invalid results carry a user-facing reason.
    """
    trimmed = text.strip()

    if len(trimmed) < MIN_TRANSCRIPT_CHARS:
        return ValidationResult(False, "Transcript is too short to analyze")

    if _URL_PREFIX_RE.match(trimmed):
        return ValidationResult(
            False, "The input appears to be a URL, not a meeting transcript"
        )

    if len(trimmed.split("\n")) == 1 and _WEB_ADDRESS_RE.match(trimmed):
        return ValidationResult(
            False,
            "The input appears to be a URL or web address, not a meeting transcript",
        )

    if trimmed.startswith(("{", "[")) and len(trimmed) < JSON_LIKE_MAX_CHARS:
        return ValidationResult(
            False, "The input appears to be JSON or code, not a meeting transcript"
        )

    return ValidationResult(True)


def check_request_text(text: str) -> None:
    """
    Enforce the size limits of an analyze request.

    Raises:
        ValidationError: If text is empty or longer than MAX_TRANSCRIPT_CHARS.
    """
    if not text:
        raise ValidationError("Transcript cannot be empty")
    if len(text) > MAX_TRANSCRIPT_CHARS:
        logger.warning("Rejected transcript of %d chars (max %d)", len(text), MAX_TRANSCRIPT_CHARS)
        raise ValidationError("Transcript is too long")


def ensure_valid_transcript(text: str) -> None:
    """
    Run request limits and the transcript heuristic, raising on failure.

    Raises:
        ValidationError: With the user-facing reason.
    """
    check_request_text(text)
    result = validate_transcript(text)
    if not result.valid:
        raise ValidationError(
            result.reason
            or "The input does not appear to be a valid meeting transcript. "
            "Please provide a meeting transcript with dialogue or discussion content."
        )


def check_pagination(limit: int, offset: int) -> None:
    """
    Validate list pagination parameters before any storage call.

    Raises:
        ValidationError: If limit is outside [1, MAX_LIST_LIMIT] or offset < 0.
    """
    if limit < 1 or limit > MAX_LIST_LIMIT:
        raise ValidationError(f"Limit must be between 1 and {MAX_LIST_LIMIT}")
    if offset < 0:
        raise ValidationError("Offset must be non-negative")
