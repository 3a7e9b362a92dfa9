"""Databricks backend — Foundation Model serving endpoint via the Databricks SDK."""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from databricks.sdk import WorkspaceClient
from databricks.sdk.errors import DatabricksError
from databricks.sdk.service.serving import ChatMessage, ChatMessageRole
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

DEFAULT_DATABRICKS_ENDPOINT = "databricks-meta-llama-3-1-70b-instruct"

JSON_INSTRUCTION = 'Respond with JSON only, in the form {"query": "<the INSERT statement>"}.'


class DatabricksGenerator(RowGenerator):
    """Queries a chat model serving endpoint.

    The endpoint is asked for a ``GeneratedInsert`` JSON object; a plain INSERT
    answer (optionally fenced) is accepted too.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_DATABRICKS_ENDPOINT,
        client: Optional[WorkspaceClient] = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ):
        self.endpoint = endpoint
        self.client = client or WorkspaceClient()
        self.max_tokens = max_tokens
        self.temperature = temperature
        logger.info(f"Initialized DatabricksGenerator: endpoint={endpoint}")

    def generate(
        self,
        table: Table,
        row_count: int,
        example_rows: ExampleRows,
        dependency_rows: Mapping[Table, ExampleRows],
    ) -> str:
        try:
            response = self.client.serving_endpoints.query(
                name=self.endpoint,
                messages=[
                    ChatMessage(role=ChatMessageRole.SYSTEM, content=f"{SYSTEM_PROMPT}\n{JSON_INSTRUCTION}"),
                    ChatMessage(
                        role=ChatMessageRole.USER,
                        content=build_prompt(table, row_count, example_rows, dependency_rows),
                    ),
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
            content = response.choices[0].message.content
        except (DatabricksError, IndexError, AttributeError) as e:
            logger.warning(f"Insert generation for {table.name} failed: {e}")
            return ""

        return parse_content(content)


def parse_content(content: Optional[str]) -> str:
    """Read the statement from a JSON answer, falling back to raw text."""
    text = extract_statement(content)
    if not text:
        return ""
    try:
        return extract_statement(GeneratedInsert.model_validate_json(text).query)
    except ValidationError:
        # JSON without a usable query field is unusable; anything else is raw SQL
        return "" if text.startswith("{") else text
