"""Table filler — drives the generate, parse and insert loop table by table.

For each table, in foreign-key order:
1. Count existing rows and report the rows still to generate.
2. Until the target is reached: sample example rows of the table and of the
   tables it references, ask the oracle for an INSERT, parse it, execute it
   and recount.

Oracle, parse and engine errors inside the loop are soft failures: they are
logged and the loop tries again. Schema creation and example-data insertion
run outside the loop and let engine errors propagate.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Iterable, Optional, Union

from synth_db.engine.sql_engine import Engine
from synth_db.errors import EngineError, IllegalStateError, StatementError
from synth_db.generator.dependency_resolver import compute_dependencies, compute_insertion_order
from synth_db.generator.progress import ProgressReporter
from synth_db.model.column import Column
from synth_db.model.insert_statement import InsertStatement
from synth_db.model.schema import Schema
from synth_db.model.table import Table
from synth_db.model.values import NULL, ScalarValue
from synth_db.oracle.base import RowGenerator

logger = logging.getLogger(__name__)

Targets = Union[int, Mapping[str, int]]


class TableFiller:
    """Seeds a schema with oracle-generated rows.

    ``dialect`` is the SQL dialect the oracle writes in; it defaults to each
    table's source dialect. ``max_consecutive_failures`` abandons a table after
    that many soft failures in a row; None retries without limit.
    """

    def __init__(
        self,
        engine: Engine,
        generator: RowGenerator,
        example_limit: int = 2,
        reporter: Optional[ProgressReporter] = None,
        max_consecutive_failures: Optional[int] = None,
        dialect: Optional[str] = None,
    ):
        self.engine = engine
        self.generator = generator
        self.example_limit = example_limit
        self.reporter = reporter or ProgressReporter()
        self.max_consecutive_failures = max_consecutive_failures
        self.dialect = dialect

    # ------------------------------------------------------------------ #
    #  Schema and seed data
    # ------------------------------------------------------------------ #

    def create_schema(self, schema: Schema) -> None:
        """Create every table in insertion order."""
        for table in compute_insertion_order(compute_dependencies(schema)):
            logger.info(f"Creating table {table.name}")
            self.engine.execute(table.create_statement(self.engine.dialect))

    def insert_data(self, schema: Schema, statements: Optional[Iterable[InsertStatement]]) -> None:
        """Execute pre-built statements grouped by table in insertion order.

        Raises:
            IllegalStateError: a statement targets a table outside the schema.
        """
        if statements is None:
            return

        grouped: dict[Table, list[InsertStatement]] = {
            table: [] for table in compute_insertion_order(compute_dependencies(schema))
        }
        for statement in statements:
            if statement.table not in grouped:
                raise IllegalStateError(
                    f"Table not in insertion order: {statement.table.name}"
                )
            grouped[statement.table].append(statement)

        for table, table_statements in grouped.items():
            for statement in table_statements:
                self._execute(statement)
            if table_statements:
                logger.info(f"Inserted {len(table_statements)} example statements into {table.name}")

    # ------------------------------------------------------------------ #
    #  Generation
    # ------------------------------------------------------------------ #

    def fill_schema(self, schema: Schema, targets: Targets) -> dict[Table, list[InsertStatement]]:
        """Fill tables in insertion order up to their target row counts.

        ``targets`` is one row count for every table, or a table-name mapping;
        tables missing from the mapping are skipped and get no entry.
        """
        dependencies = compute_dependencies(schema)
        order = compute_insertion_order(dependencies)

        planned = []
        for table in order:
            target = self._target_for(table, targets)
            if target is None:
                logger.debug(f"No target row number for {table.name}, skipping")
                continue
            planned.append((table, target))

        self.reporter.set_total_tables(len(planned))

        generated: dict[Table, list[InsertStatement]] = {}
        for table, target in planned:
            generated[table] = self.fill_table(table, dependencies, target)
        return generated

    def fill_table(
        self,
        table: Table,
        dependencies: Optional[Mapping[Table, set[Table]]],
        target: int,
    ) -> list[InsertStatement]:
        """Generate rows for one table until it holds ``target`` rows."""
        parents = sorted(
            (dependencies or {}).get(table, set()) - {table}, key=lambda t: t.name
        )
        statements: list[InsertStatement] = []

        count = self.engine.count_rows(table)
        if self.reporter.tables_total <= 0:
            self.reporter.set_total_tables(1)
        self.reporter.advance_table(table, target - count)
        logger.info(f"Filling {table.name}: {count} rows present, target {target}")

        failures = 0
        while count < target:
            statement = self._attempt(table, parents, count)
            if statement is None:
                failures += 1
                if self.max_consecutive_failures is not None and failures >= self.max_consecutive_failures:
                    logger.warning(
                        f"Giving up on {table.name} after {failures} consecutive failures "
                        f"({count}/{target} rows)"
                    )
                    break
                continue

            failures = 0
            statements.append(statement)
            for _ in statement.rows:
                self.reporter.row_generated()
            count = self.engine.count_rows(table)

        logger.info(f"Finished {table.name}: {count} rows, {len(statements)} statements generated")
        return statements

    def _attempt(self, table: Table, parents: list[Table], count: int) -> Optional[InsertStatement]:
        """One generate, parse and insert round. Returns None on a soft failure."""
        try:
            examples = self._sample(table)
            dependency_examples = {parent: self._sample(parent) for parent in parents}
            text = self.generator.generate(table, count, examples, dependency_examples)
            logger.debug(f"Insert statement generated: {text!r}")
            if not text or not text.strip():
                logger.debug(f"Empty oracle response for {table.name}")
                return None

            statement = InsertStatement.parse(table, text, dialect=self.dialect or table.dialect)
            if statement is None:
                logger.debug(f"Oracle response for {table.name} holds no insertable rows")
                return None

            self._execute(statement)
        except (StatementError, EngineError) as e:
            logger.debug(f"Error processing SQL for {table.name}: {e}")
            return None

        logger.debug(f"Insert statement stored: {statement.generate_insert_statement()!r}")
        return statement

    def _execute(self, statement: InsertStatement) -> None:
        result = self.engine.execute(statement.generate_insert_statement())
        auto_increment = _auto_increment_column(statement.table)
        if auto_increment is not None and result.first_generated_key is not None:
            statement.set_auto_increment_values_incrementing(auto_increment, result.first_generated_key)

    def _sample(self, table: Table) -> list[dict[Column, ScalarValue]]:
        rows = self.engine.query(table.select_random_sql(self.example_limit, self.engine.dialect))
        return [{column: row.get(column.name, NULL) for column in table.columns} for row in rows]

    @staticmethod
    def _target_for(table: Table, targets: Targets) -> Optional[int]:
        if isinstance(targets, Mapping):
            if table.name in targets:
                return targets[table.name]
            return targets.get(table.qualified_name)
        return targets


def _auto_increment_column(table: Table) -> Optional[Column]:
    columns = table.auto_increment_columns
    return columns[0] if len(columns) == 1 else None
