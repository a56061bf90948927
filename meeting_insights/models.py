"""Data models for meeting analyses.

The JSON form produced by ``to_dict()`` is the wire format of the REST API
and the CLI (camelCase keys, ISO 8601 timestamps). ``from_dict()`` accepts
that form as well as snake_case keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Sentiment = Literal["positive", "neutral", "negative", "mixed"]
SENTIMENTS: tuple[str, ...] = ("positive", "neutral", "negative", "mixed")

DEFAULT_TITLE = "Meeting Analysis"


def _pick(d: dict[str, Any], *keys: str) -> Any:
    """Return the first present key's value (camelCase or snake_case)."""
    for key in keys:
        if key in d:
            return d[key]
    return None


def optional_text(value: Any) -> str | None:
    """Strip a value to text, mapping None and blank strings to None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(slots=True)
class ActionItem:
    """A task extracted from a meeting.

    Attributes:
        description: What needs to be done.
        owner: Person responsible, if stated.
        deadline: Free-text due date, if stated (e.g. "Friday", "2024-07-01").
        id: Store identifier; None until persisted.
        created_at: ISO timestamp; None until persisted.
    """

    description: str
    owner: str | None = None
    deadline: str | None = None
    id: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: dict[str, Any] = {
            "id": self.id,
            "description": self.description,
            "owner": self.owner,
            "deadline": self.deadline,
        }
        if self.created_at is not None:
            result["createdAt"] = self.created_at
        return result

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ActionItem:
        """Deserialize from dict."""
        return cls(
            description=optional_text(d.get("description")) or "",
            owner=optional_text(d.get("owner")),
            deadline=optional_text(d.get("deadline")),
            id=optional_text(d.get("id")),
            created_at=_pick(d, "createdAt", "created_at"),
        )


@dataclass(slots=True)
class KeyDecision:
    """A decision recorded in a meeting."""

    decision: str
    context: str | None = None
    id: str | None = None
    created_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: dict[str, Any] = {
            "id": self.id,
            "decision": self.decision,
            "context": self.context,
        }
        if self.created_at is not None:
            result["createdAt"] = self.created_at
        return result

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> KeyDecision:
        """Deserialize from dict."""
        return cls(
            decision=optional_text(d.get("decision")) or "",
            context=optional_text(d.get("context")),
            id=optional_text(d.get("id")),
            created_at=_pick(d, "createdAt", "created_at"),
        )


@dataclass(slots=True)
class MeetingAnalysis:
    """Structured analysis returned by an LLM adapter (not yet persisted).

    Attributes:
        sentiment: One of SENTIMENTS.
        title: Short meeting title; adapters default it to DEFAULT_TITLE.
        action_items: Extracted action items, in the order the model listed them.
        key_decisions: Extracted decisions, in order.
        summary: Optional brief summary.
        provider: Provider that produced the analysis ("openai", "anthropic", ...).
        model: Model identifier used.
    """

    sentiment: Sentiment
    title: str = DEFAULT_TITLE
    action_items: list[ActionItem] = field(default_factory=list)
    key_decisions: list[KeyDecision] = field(default_factory=list)
    summary: str | None = None
    provider: str | None = None
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "title": self.title,
            "actionItems": [item.to_dict() for item in self.action_items],
            "keyDecisions": [decision.to_dict() for decision in self.key_decisions],
            "sentiment": self.sentiment,
            "summary": self.summary,
        }


@dataclass(slots=True)
class AnalysisRecord:
    """A persisted analysis together with its children.

    ``transcript_text`` is only populated on single-record reads.
    """

    id: str
    transcript_id: str
    sentiment: Sentiment
    created_at: str
    title: str | None = None
    summary: str | None = None
    action_items: list[ActionItem] = field(default_factory=list)
    key_decisions: list[KeyDecision] = field(default_factory=list)
    transcript_text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: dict[str, Any] = {
            "id": self.id,
            "transcriptId": self.transcript_id,
        }
        if self.transcript_text is not None:
            result["transcriptText"] = self.transcript_text
        result.update(
            {
                "title": self.title,
                "sentiment": self.sentiment,
                "summary": self.summary,
                "actionItems": [item.to_dict() for item in self.action_items],
                "keyDecisions": [decision.to_dict() for decision in self.key_decisions],
                "createdAt": self.created_at,
            }
        )
        return result


@dataclass(slots=True)
class AnalysisSummary:
    """One row of the analysis history list."""

    id: str
    transcript_id: str
    sentiment: Sentiment
    created_at: str
    title: str | None = None
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "id": self.id,
            "transcriptId": self.transcript_id,
            "title": self.title,
            "sentiment": self.sentiment,
            "summary": self.summary,
            "createdAt": self.created_at,
        }


@dataclass(slots=True)
class AnalysisPage:
    """A page of analysis summaries plus the total number of analyses."""

    analyses: list[AnalysisSummary]
    total: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "analyses": [summary.to_dict() for summary in self.analyses],
            "total": self.total,
        }


__all__ = [
    "SENTIMENTS",
    "DEFAULT_TITLE",
    "Sentiment",
    "ActionItem",
    "KeyDecision",
    "MeetingAnalysis",
    "AnalysisRecord",
    "AnalysisSummary",
    "AnalysisPage",
]
