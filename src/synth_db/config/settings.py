"""Central configuration for synth-db."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from synth_db.errors import ConfigurationError

PROVIDERS = ("ollama", "openai", "databricks")

DEFAULT_URLS = {
    "ollama": "http://localhost:11434/api/chat",
    "openai": "https://api.openai.com/v1",
}

DEFAULT_MODELS = {
    "ollama": "llama3.1",
    "openai": "gpt-4o-mini",
    "databricks": "databricks-meta-llama-3-1-70b-instruct",
}


@dataclass
class FillerConfig:
    """Configuration for a fill run.

    Reads from environment variables with SYNTH_DB_ prefix (plus the usual
    OPENAI_API_KEY and DATABRICKS_* variables), or accepts explicit values.
    Empty ``url`` / ``model`` mean the provider default.
    """

    # Oracle backend
    provider: str = "ollama"
    url: str = ""
    model: str = ""
    openai_api_key: str = ""
    request_timeout: float = 60.0

    # Databricks connection
    databricks_host: str = ""
    databricks_token: str = ""

    # Relational engine
    database_url: str = "sqlite://"
    dialect: str = "mysql"

    # Generation
    examples_per_table: int = 2
    target_row_number: int = 5
    max_consecutive_failures: Optional[int] = None

    @property
    def resolved_url(self) -> str:
        return self.url or DEFAULT_URLS.get(self.provider, "")

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS.get(self.provider, "")

    @classmethod
    def from_env(cls) -> FillerConfig:
        """Load configuration from environment variables."""
        max_failures = os.getenv("SYNTH_DB_MAX_FAILURES", "")
        return cls(
            provider=os.getenv("SYNTH_DB_PROVIDER", "ollama").lower(),
            url=os.getenv("SYNTH_DB_URL", ""),
            model=os.getenv("SYNTH_DB_MODEL", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            request_timeout=_number("SYNTH_DB_REQUEST_TIMEOUT", "60.0", float),
            databricks_host=os.getenv("DATABRICKS_HOST", ""),
            databricks_token=os.getenv("DATABRICKS_TOKEN", ""),
            database_url=os.getenv("SYNTH_DB_DATABASE_URL", "sqlite://"),
            dialect=os.getenv("SYNTH_DB_DIALECT", "mysql"),
            examples_per_table=_number("SYNTH_DB_EXAMPLES_PER_TABLE", "2", int),
            target_row_number=_number("SYNTH_DB_TARGET_ROWS", "5", int),
            max_consecutive_failures=(
                _number("SYNTH_DB_MAX_FAILURES", max_failures, int) if max_failures else None
            ),
        )


def _number(name: str, default: str, kind):
    raw = os.getenv(name, default)
    try:
        return kind(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e


_config: Optional[FillerConfig] = None


def get_config() -> FillerConfig:
    """Get or create the singleton configuration."""
    global _config
    if _config is None:
        _config = FillerConfig.from_env()
    return _config


def set_config(config: Optional[FillerConfig]) -> None:
    """Override the global configuration (None resets it to the environment)."""
    global _config
    _config = config
