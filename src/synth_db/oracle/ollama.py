"""Ollama LLM backend (local, self-hosted)."""

from __future__ import annotations

import json
import logging
from typing import Mapping, Optional

import httpx
from pydantic import ValidationError

from synth_db.model.table import Table
from synth_db.oracle.base import (
    SYSTEM_PROMPT,
    ExampleRows,
    GeneratedInsert,
    RowGenerator,
    build_prompt,
    extract_statement,
)

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_URL = "http://localhost:11434/api/chat"
DEFAULT_OLLAMA_MODEL = "llama3.1"


class OllamaGenerator(RowGenerator):
    """Asks Ollama's ``/api/chat`` endpoint for a ``GeneratedInsert`` JSON object.

    The response schema is passed as ``format`` so the model answers with
    ``{"query": "INSERT ..."}`` in ``message.content``.
    """

    def __init__(
        self,
        url: str = DEFAULT_OLLAMA_URL,
        model: str = DEFAULT_OLLAMA_MODEL,
        timeout: float = 60.0,
        client: Optional[httpx.Client] = None,
    ):
        self.url = url
        self.model = model
        self.timeout = timeout
        self.client = client or httpx.Client(timeout=timeout)
        logger.info(f"Initialized OllamaGenerator: model={model}, url={url}")

    def generate(
        self,
        table: Table,
        row_count: int,
        example_rows: ExampleRows,
        dependency_rows: Mapping[Table, ExampleRows],
    ) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(table, row_count, example_rows, dependency_rows)},
            ],
            "format": GeneratedInsert.model_json_schema(),
            "stream": False,
        }

        try:
            response = self.client.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            content = response.json().get("message", {}).get("content", "")
            return extract_statement(GeneratedInsert.model_validate_json(content).query)
        except httpx.TimeoutException:
            logger.debug(f"Insert generation for {table.name} timed out")
            return ""
        except (httpx.HTTPError, json.JSONDecodeError, ValidationError, AttributeError) as e:
            logger.warning(f"Insert generation for {table.name} failed: {e}")
            return ""

    def close(self) -> None:
        self.client.close()
