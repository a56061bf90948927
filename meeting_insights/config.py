"""Configuration for the meeting-insights service.

Settings are built once at startup (``Settings.from_env``) and passed
explicitly to the orchestrator and the store; nothing else reads provider
credentials from the process environment.

Environment variables:
    OPENAI_API_KEY, ANTHROPIC_API_KEY      provider credentials
    MEETING_INSIGHTS_OPENAI_MODEL          OpenAI model (default: gpt-3.5-turbo)
    MEETING_INSIGHTS_ANTHROPIC_MODEL       Anthropic model (default: claude-sonnet-4-20250514)
    MEETING_INSIGHTS_DB_PATH               SQLite database file
    MEETING_INSIGHTS_ENABLE_FALLBACK       true/false (default: true)
    MEETING_INSIGHTS_LOG_LEVEL             DEBUG, INFO, WARNING, ... (default: INFO)
    MEETING_INSIGHTS_CORS_ORIGINS          comma-separated origins
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Literal

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ProviderName = Literal["openai", "anthropic"]

# Primary adapter is the first provider in this order that has a credential
PROVIDER_PRIORITY: tuple[ProviderName, ...] = ("openai", "anthropic")

DEFAULT_OPENAI_MODEL = "gpt-3.5-turbo"
DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"
DEFAULT_CORS_ORIGINS: tuple[str, ...] = ("http://localhost:3000",)
ALLOWED_LOG_LEVELS: set[str] = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def get_default_db_path() -> Path:
    """Return ~/.meeting-insights/analyses.db (the directory is created on open)."""
    return Path.home() / ".meeting-insights" / "analyses.db"


def _mask(secret: str | None) -> str:
    if not secret:
        return "None"
    if len(secret) > 6:
        return f"'{secret[:3]}...'"
    return "'***'"


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"Invalid {name}: {raw}. Must be true/false, 1/0, yes/no, or on/off"
    )


@dataclass
class Settings:
    """Runtime settings for the analysis pipeline and the HTTP service."""

    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    anthropic_model: str = DEFAULT_ANTHROPIC_MODEL
    db_path: Path = field(default_factory=get_default_db_path)
    enable_fallback: bool = True
    log_level: str = "INFO"
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        level = self.log_level.upper()
        if level not in ALLOWED_LOG_LEVELS:
            allowed = ", ".join(sorted(ALLOWED_LOG_LEVELS))
            raise ConfigurationError(f"Invalid log level '{self.log_level}'. Must be one of: {allowed}")
        self.log_level = level

    def __repr__(self) -> str:
        """Repr that masks API keys."""
        return (
            f"Settings(openai_api_key={_mask(self.openai_api_key)}, "
            f"anthropic_api_key={_mask(self.anthropic_api_key)}, "
            f"openai_model={self.openai_model!r}, anthropic_model={self.anthropic_model!r}, "
            f"db_path={str(self.db_path)!r}, enable_fallback={self.enable_fallback!r}, "
            f"log_level={self.log_level!r}, cors_origins={self.cors_origins!r})"
        )

    def api_key_for(self, provider: str) -> str | None:
        """Return the credential configured for a provider, or None."""
        if provider == "openai":
            return self.openai_api_key
        if provider == "anthropic":
            return self.anthropic_api_key
        return None

    def model_for(self, provider: str) -> str | None:
        """Return the model configured for a provider, or None."""
        if provider == "openai":
            return self.openai_model
        if provider == "anthropic":
            return self.anthropic_model
        return None

    def configured_providers(self) -> list[ProviderName]:
        """Return providers that have credentials, in priority order."""
        return [p for p in PROVIDER_PRIORITY if self.api_key_for(p)]

    def with_overrides(self, **changes: object) -> Settings:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)  # type: ignore[arg-type]

    @classmethod
    def from_env(
        cls,
        prefix: str = "MEETING_INSIGHTS_",
        load_env_file: bool = True,
    ) -> Settings:
        """
        Load settings from environment variables.

        Args:
            prefix: Prefix for non-credential variables.
            load_env_file: If True, read a ``.env`` file first (existing
                environment variables win).

        Returns:
            Settings populated from the environment.

        Raises:
            ConfigurationError: If a variable holds an invalid value.
        """
        if load_env_file:
            load_dotenv(find_dotenv(usecwd=True), override=False)

        kwargs: dict[str, object] = {
            "openai_api_key": os.getenv("OPENAI_API_KEY") or None,
            "anthropic_api_key": os.getenv("ANTHROPIC_API_KEY") or None,
        }

        if openai_model := os.getenv(f"{prefix}OPENAI_MODEL"):
            kwargs["openai_model"] = openai_model
        if anthropic_model := os.getenv(f"{prefix}ANTHROPIC_MODEL"):
            kwargs["anthropic_model"] = anthropic_model
        if db_path := os.getenv(f"{prefix}DB_PATH"):
            kwargs["db_path"] = Path(db_path).expanduser()
        if enable_fallback := os.getenv(f"{prefix}ENABLE_FALLBACK"):
            kwargs["enable_fallback"] = _parse_bool(f"{prefix}ENABLE_FALLBACK", enable_fallback)
        if log_level := os.getenv(f"{prefix}LOG_LEVEL"):
            kwargs["log_level"] = log_level
        if cors_origins := os.getenv(f"{prefix}CORS_ORIGINS"):
            kwargs["cors_origins"] = tuple(
                origin.strip() for origin in cors_origins.split(",") if origin.strip()
            )

        settings = cls(**kwargs)  # type: ignore[arg-type]
        logger.debug("Loaded settings: %r", settings)
        return settings


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the CLI and the development server.

    Args:
        level: Logging level name.
    """
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    # basicConfig is a no-op on repeated calls; set the level directly
    logging.getLogger().setLevel(level.upper())
