"""
Meeting transcript analysis package.

Public API:
    - AnalysisOrchestrator: validate, analyze (primary + fallback provider) and store
    - validate_transcript: heuristic "is this a meeting transcript" check
    - translate: map any error to a user-facing ErrorEnvelope

Adapters:
    - create_adapter: build an OpenAI, Anthropic or mock analysis adapter

Storage:
    - SQLiteAnalysisStore: synchronous SQLite store
    - AnalysisRepository: async gateway used by the service and the CLI

Configuration:
    - Settings: runtime settings loaded from the environment

Models:
    - MeetingAnalysis, AnalysisRecord, AnalysisSummary, AnalysisPage
    - ActionItem, KeyDecision

Exceptions:
    - MeetingInsightsError: Base exception for this library
    - ValidationError, ConfigurationError, AdapterError,
      ProvidersExhaustedError, StorageError, NotFoundError
"""

from __future__ import annotations

__version__ = "0.1.0"

from .analysis_adapter import create_adapter
from .config import Settings
from .error_translator import ErrorCode, ErrorEnvelope, translate
from .exceptions import (
    AdapterError,
    ConfigurationError,
    MeetingInsightsError,
    NotFoundError,
    ProvidersExhaustedError,
    StorageError,
    ValidationError,
)
from .models import (
    ActionItem,
    AnalysisPage,
    AnalysisRecord,
    AnalysisSummary,
    KeyDecision,
    MeetingAnalysis,
)
from .orchestrator import AnalysisOrchestrator
from .store import AnalysisRepository, SQLiteAnalysisStore
from .validation import ValidationResult, validate_transcript

__all__ = [
    "__version__",
    "AnalysisOrchestrator",
    "create_adapter",
    "Settings",
    "ErrorCode",
    "ErrorEnvelope",
    "translate",
    "validate_transcript",
    "ValidationResult",
    "SQLiteAnalysisStore",
    "AnalysisRepository",
    "MeetingAnalysis",
    "AnalysisRecord",
    "AnalysisSummary",
    "AnalysisPage",
    "ActionItem",
    "KeyDecision",
    "MeetingInsightsError",
    "ValidationError",
    "ConfigurationError",
    "AdapterError",
    "ProvidersExhaustedError",
    "StorageError",
    "NotFoundError",
]
