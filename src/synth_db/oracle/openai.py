"""OpenAI chat completion backend using a required ``GeneratedInsert`` tool call.

Works with any OpenAI-compatible API through ``url`` (the client base URL).
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from openai import APITimeoutError, OpenAI, OpenAIError
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

DEFAULT_OPENAI_URL = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"

TOOL_NAME = GeneratedInsert.__name__
INSERT_TOOL = {
    "type": "function",
    "function": {
        "name": TOOL_NAME,
        "description": "Store the generated INSERT statement",
        "parameters": GeneratedInsert.model_json_schema(),
    },
}


class OpenAIGenerator(RowGenerator):
    """Generates rows through the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str,
        url: str = DEFAULT_OPENAI_URL,
        model: str = DEFAULT_OPENAI_MODEL,
        timeout: float = 60.0,
        client: Optional[OpenAI] = None,
    ):
        self.model = model
        self.client = client or OpenAI(api_key=api_key, base_url=url, timeout=timeout)
        logger.info(f"Initialized OpenAIGenerator: model={model}, url={url}")

    def generate(
        self,
        table: Table,
        row_count: int,
        example_rows: ExampleRows,
        dependency_rows: Mapping[Table, ExampleRows],
    ) -> str:
        try:
            completion = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": SYSTEM_PROMPT + "\nReturn the INSERT inside the `query` field only.",
                    },
                    {"role": "user", "content": build_prompt(table, row_count, example_rows, dependency_rows)},
                ],
                tools=[INSERT_TOOL],
                tool_choice="required",
            )
        except APITimeoutError:
            logger.debug(f"Insert generation for {table.name} timed out")
            return ""
        except OpenAIError as e:
            logger.warning(f"Insert generation for {table.name} failed: {e}")
            return ""

        for choice in completion.choices:
            for tool_call in choice.message.tool_calls or []:
                if tool_call.function.name != TOOL_NAME:
                    continue
                try:
                    parsed = GeneratedInsert.model_validate_json(tool_call.function.arguments)
                except ValidationError as e:
                    logger.warning(f"Unusable tool arguments for {table.name}: {e}")
                    return ""
                return extract_statement(parsed.query)

        logger.debug(f"No {TOOL_NAME} tool call in response for {table.name}")
        return ""
