"""Tables parsed from CREATE TABLE statements."""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from sqlglot import exp

from synth_db.model.column import Column

logger = logging.getLogger(__name__)

AUTO_INCREMENT_CONSTRAINTS = (
    exp.AutoIncrementColumnConstraint,
    exp.GeneratedAsIdentityColumnConstraint,
)

# ORDER BY function that shuffles rows, per engine dialect
RANDOM_FUNCTIONS = {
    "mysql": "RAND()",
    "mariadb": "RAND()",
    "tsql": "NEWID()",
}


class Table:
    """A table owning its columns in declaration order.

    ``definition`` keeps the CREATE TABLE text (as rendered by the parser in
    the source dialect) for re-emission and as context for the oracle.
    Tables compare by identity: two tables with the same name from different
    schemas are different tables.
    """

    def __init__(
        self,
        name: str,
        schema_name: Optional[str] = None,
        definition: str = "",
        dialect: str = "mysql",
        create: Optional[exp.Create] = None,
    ):
        self.name = name
        self.schema_name = schema_name or None
        self.definition = definition
        self.dialect = dialect
        self.expression = create
        self._columns: dict[str, Column] = {}

    def __repr__(self) -> str:
        return f"Table({self.qualified_name!r}, columns={list(self._columns)})"

    def __iter__(self) -> Iterator[Column]:
        return iter(self._columns.values())

    @property
    def qualified_name(self) -> str:
        if self.schema_name:
            return f"{self.schema_name}.{self.name}"
        return self.name

    @property
    def columns(self) -> list[Column]:
        return list(self._columns.values())

    @property
    def auto_increment_columns(self) -> list[Column]:
        return [c for c in self._columns.values() if c.auto_increment]

    @property
    def primary_key_columns(self) -> list[Column]:
        return [c for c in self._columns.values() if c.primary_key]

    def add_column(self, column: Column) -> Column:
        if column.name in self._columns:
            raise ValueError(f"Duplicate column {column.name} in table {self.name}")
        column.table = self
        self._columns[column.name] = column
        return column

    def column(self, name: str) -> Optional[Column]:
        """Look up a column by name, falling back to a case-insensitive match."""
        found = self._columns.get(name)
        if found is not None:
            return found
        lowered = name.lower()
        for column in self._columns.values():
            if column.name.lower() == lowered:
                return column
        return None

    # ------------------------------------------------------------------ #
    #  SQL text for the engine
    # ------------------------------------------------------------------ #

    def create_statement(self, dialect: Optional[str] = None) -> str:
        """Return the CREATE TABLE text for the given engine dialect."""
        if not dialect or dialect == self.dialect or self.expression is None:
            return self.definition

        create = self.expression.copy()
        if dialect == "sqlite":
            self._rewrite_auto_increment_for_sqlite(create)
        return create.sql(dialect=dialect)

    def select_all_sql(self) -> str:
        return f"SELECT {self._column_list()} FROM {self.name}"

    def select_random_sql(self, limit: int, dialect: Optional[str] = None) -> str:
        order = RANDOM_FUNCTIONS.get(dialect or "", "RANDOM()")
        return f"SELECT {self._column_list()} FROM {self.name} ORDER BY {order} LIMIT {int(limit)}"

    def count_sql(self) -> str:
        return f"SELECT COUNT(*) FROM {self.name}"

    def _column_list(self) -> str:
        return ", ".join(self._columns)

    def _rewrite_auto_increment_for_sqlite(self, create: exp.Create) -> None:
        """SQLite has no AUTO_INCREMENT: an INTEGER PRIMARY KEY is the rowid alias."""
        schema = create.this
        has_table_primary_key = schema.find(exp.PrimaryKey) is not None

        for column_def in schema.expressions:
            if not isinstance(column_def, exp.ColumnDef):
                continue
            column = self.column(column_def.name)
            if column is None or not column.auto_increment:
                continue

            constraints = [
                c for c in column_def.args.get("constraints") or []
                if not isinstance(c.args.get("kind"), AUTO_INCREMENT_CONSTRAINTS)
            ]
            inline_primary_key = any(
                isinstance(c.args.get("kind"), exp.PrimaryKeyColumnConstraint)
                for c in constraints
            )
            other_primary_key = has_table_primary_key or any(
                c is not column for c in self.primary_key_columns
            )
            if not inline_primary_key and not other_primary_key:
                constraints.insert(
                    0, exp.ColumnConstraint(kind=exp.PrimaryKeyColumnConstraint())
                )
            column_def.set("constraints", constraints)
            column_def.set("kind", exp.DataType.build("INT"))
            logger.debug(f"Rewrote {column.qualified_name} as SQLite rowid alias")
