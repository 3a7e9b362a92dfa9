"""Progress reporting for a schema fill.

The reporter is a small state object owned by the caller and handed to the
TableFiller. Every mutation is followed by exactly one synchronous call to the
``on_progress`` callback with a frozen snapshot of the new state.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Callable, Optional, TextIO

from synth_db.model.table import Table


@dataclass(frozen=True)
class ProgressSnapshot:
    """Point-in-time view of a fill run."""

    table: Optional[Table]
    rows_generated: int
    rows_target: int
    tables_completed: int
    tables_total: int

    @property
    def table_name(self) -> str:
        return self.table.name if self.table is not None else ""


ProgressCallback = Callable[[ProgressSnapshot], None]


class ProgressReporter:
    """Tracks rows and tables completed during a fill."""

    def __init__(self, on_progress: Optional[ProgressCallback] = None):
        self.on_progress = on_progress
        self.current_table: Optional[Table] = None
        self.rows_target = 0
        self.rows_generated = 0
        self.tables_completed = 0
        self.tables_total = 0

    def set_total_tables(self, total: int) -> None:
        self.tables_total = total

    def advance_table(self, table: Table, rows_to_generate: int) -> None:
        """Switch to ``table`` and reset the per-table row counters."""
        self.current_table = table
        self.rows_target = max(rows_to_generate, 0)
        self.rows_generated = 0
        self.tables_completed += 1
        self._notify()

    def row_generated(self) -> None:
        self.rows_generated += 1
        self._notify()

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(
            table=self.current_table,
            rows_generated=self.rows_generated,
            rows_target=self.rows_target,
            tables_completed=self.tables_completed,
            tables_total=self.tables_total,
        )

    def _notify(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.snapshot())


class ConsoleProgress:
    """Progress callback that keeps rewriting a single terminal line."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stderr

    def __call__(self, snapshot: ProgressSnapshot) -> None:
        self.stream.write(
            f"\r{snapshot.rows_generated}/{snapshot.rows_target} rows generated"
            f" | Table progress: {snapshot.tables_completed}/{snapshot.tables_total}"
            f" | Current table {snapshot.table_name}"
        )
        self.stream.flush()

    def finish(self) -> None:
        self.stream.write("\n")
        self.stream.flush()
