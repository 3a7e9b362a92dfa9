"""Render generated statements as a SQL script, one banner-headed block per table."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping, Sequence, Union

from synth_db.errors import ColumnMismatchError, TableMismatchError
from synth_db.model.insert_statement import InsertStatement
from synth_db.model.table import Table

logger = logging.getLogger(__name__)

BANNER_RULE = "-- =========================="


def render_statements(statements_by_table: Mapping[Table, Sequence[InsertStatement]]) -> str:
    """One merged INSERT per table, or one per statement when rows do not line up."""
    blocks = []
    for table, statements in statements_by_table.items():
        if not statements:
            continue

        lines = [BANNER_RULE, f"-- Table data: {table.name}", BANNER_RULE]
        try:
            merged = InsertStatement.merge_statements(statements)
        except (TableMismatchError, ColumnMismatchError) as e:
            logger.info(f"Cannot merge statements for {table.name}, writing them one by one: {e}")
            lines.extend(s.generate_insert_statement() for s in statements if s.rows)
        else:
            if not merged.rows:
                continue
            lines.append(merged.generate_insert_statement())
        blocks.append("\n".join(lines) + "\n\n")
    return "".join(blocks)


def write_statements(
    statements_by_table: Mapping[Table, Sequence[InsertStatement]], path: Union[str, Path]
) -> Path:
    path = Path(path)
    path.write_text(render_statements(statements_by_table), encoding="utf-8")
    logger.info(f"Wrote generated data to {path}")
    return path
