"""Factory function for creating row generators."""

from __future__ import annotations

import logging
from typing import Optional

from synth_db.config.settings import PROVIDERS, FillerConfig, get_config
from synth_db.errors import ConfigurationError
from synth_db.oracle.base import RowGenerator

logger = logging.getLogger(__name__)


def create_generator(config: Optional[FillerConfig] = None) -> RowGenerator:
    """Create the row generator for the configured provider.

    Raises:
        ConfigurationError: unknown provider, or missing credentials for it.
    """
    config = config or get_config()
    provider = (config.provider or "").lower()

    if provider == "ollama":
        from synth_db.oracle.ollama import OllamaGenerator

        return OllamaGenerator(
            url=config.resolved_url,
            model=config.resolved_model,
            timeout=config.request_timeout,
        )
    elif provider == "openai":
        if not config.openai_api_key:
            raise ConfigurationError("OpenAI API key required (set OPENAI_API_KEY)")
        from synth_db.oracle.openai import OpenAIGenerator

        return OpenAIGenerator(
            api_key=config.openai_api_key,
            url=config.resolved_url,
            model=config.resolved_model,
            timeout=config.request_timeout,
        )
    elif provider == "databricks":
        from databricks.sdk import WorkspaceClient

        from synth_db.oracle.databricks import DatabricksGenerator

        client = None
        if config.databricks_host:
            client = WorkspaceClient(
                host=config.databricks_host,
                token=config.databricks_token or None,
            )
        return DatabricksGenerator(endpoint=config.resolved_model, client=client)
    else:
        raise ConfigurationError(
            f"Unknown provider: {config.provider} (expected one of {', '.join(PROVIDERS)})"
        )
