"""Row-generation oracle interface and the prompt shared by every backend.

An oracle proposes one INSERT statement for a table, given the table DDL,
the current row count, a few example rows of the table and example rows of
each table it references. Backends never raise for ordinary failures: network
errors, timeouts and unusable responses all come back as an empty string,
which the TableFiller treats as a soft failure.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from synth_db.model.column import Column
from synth_db.model.table import Table
from synth_db.model.values import NULL, ScalarValue

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an assistant to generate realistic row of data for the given table "
    "in form of a single SQL INSERT statement including the generated single row of data.\n"
    "Please try to generate fitting original data not too simple placeholder."
)

USER_MESSAGE_TEMPLATE = """This is the table to generate data for:
```
{definition}
```
There are already {row_count} rows in the table.
Here are some example values already in the table:
{values}

{other_values}"""

ExampleRows = Sequence[Mapping[Column, ScalarValue]]

_CODE_FENCE = re.compile(r"```(?:[\w+-]*\n)?\s*(.*?)```", re.DOTALL)


class GeneratedInsert(BaseModel):
    """Structured response requested from the model."""

    query: str = Field(description="A single SQL INSERT statement with one generated row")


class RowGenerator(ABC):
    """Proposes INSERT statements for a table."""

    @abstractmethod
    def generate(
        self,
        table: Table,
        row_count: int,
        example_rows: ExampleRows,
        dependency_rows: Mapping[Table, ExampleRows],
    ) -> str:
        """Return INSERT text for one new row, or "" when generation failed."""


def render_table_values(rows: Optional[ExampleRows]) -> str:
    """Render rows as a markdown table; the header comes from the first row."""
    if not rows:
        return ""

    columns = list(rows[0].keys())
    lines = [
        "|" + "".join(f" {c.name} |" for c in columns),
        "|" + " --- |" * len(columns),
    ]
    for row in rows:
        lines.append("|" + "".join(f" {_cell(row.get(c))} |" for c in columns))
    return "\n".join(lines) + "\n"


def render_dependency_values(dependency_rows: Optional[Mapping[Table, ExampleRows]]) -> str:
    """Render example rows of referenced tables, one titled table each."""
    if not dependency_rows:
        return ""

    parts = []
    for table, rows in dependency_rows.items():
        if not rows:
            continue
        parts.append(f"Table: {table.name}\n{render_table_values(rows)}\n")
    return "".join(parts)


def build_user_message(table: Table, row_count: int, values: str, other_values: str) -> str:
    return USER_MESSAGE_TEMPLATE.format(
        definition=table.definition,
        row_count=row_count,
        values=values,
        other_values=other_values,
    ).strip()


def build_prompt(
    table: Table,
    row_count: int,
    example_rows: ExampleRows,
    dependency_rows: Mapping[Table, ExampleRows],
) -> str:
    """User message for one generation call."""
    return build_user_message(
        table,
        row_count,
        render_table_values(example_rows),
        render_dependency_values(dependency_rows),
    )


def extract_statement(text: Optional[str]) -> str:
    """Strip markdown code fences and surrounding whitespace from model output."""
    if not text:
        return ""
    fenced = _CODE_FENCE.search(text)
    if fenced:
        return fenced.group(1).strip()
    return text.strip()


def _cell(value: object) -> str:
    if value is None or value is NULL:
        return ""
    return str(value)
