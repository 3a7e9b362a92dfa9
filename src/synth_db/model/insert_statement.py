"""InsertStatement — typed rows for one table, parsed from or rendered to INSERT text.

Rows are ``dict[Column, value]``. Parsed statements come from either form:
- column-list form: ``INSERT INTO t (a, b) VALUES (1, 'x'), (2, 'y')``
- assignment form:  ``INSERT INTO t SET a = 1, b = 'x'``

Literal values are coerced to the numeric kind of their target column, so
``'42'`` for an INT column is stored as ``42``.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional, Union

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError
from sqlglot.tokens import TokenType

from synth_db.errors import (
    ColumnMismatchError,
    ConfigurationError,
    StatementError,
    StatementParseError,
    StatementShapeError,
    TableMismatchError,
    ValueCoercionError,
)
from synth_db.model.column import Column
from synth_db.model.table import Table
from synth_db.model.values import NULL, ScalarValue, coerce_value, render_value

if TYPE_CHECKING:
    from synth_db.model.schema import Schema

logger = logging.getLogger(__name__)

Row = dict[Column, ScalarValue]

# INSERT [IGNORE] [INTO] <table> SET <assignments>
_ASSIGNMENT_FORM = re.compile(
    r"^\s*INSERT\s+(?:IGNORE\s+)?(?:INTO\s+)?(?P<table>[^\s(]+)\s+SET\s+(?P<assignments>.+?)\s*;?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_INTEGER_LITERAL = re.compile(r"^\d+$")


class InsertStatement:
    """An INSERT of one or more rows into a single table."""

    def __init__(self, table: Table, rows: Optional[list[Row]] = None):
        self.table = table
        self.rows: list[Row] = rows if rows is not None else []

    def __repr__(self) -> str:
        return f"InsertStatement(table={self.table.name!r}, rows={len(self.rows)})"

    # ------------------------------------------------------------------ #
    #  Parsing
    # ------------------------------------------------------------------ #

    @classmethod
    def parse(cls, table: Table, sql: str, dialect: str = "mysql") -> Optional[InsertStatement]:
        """Parse INSERT text into rows of ``table``.

        Only the first INSERT in ``sql`` is used; the table name written in the
        statement is not checked against ``table``.

        Returns:
            The statement, or None when the text holds no INSERT ... VALUES
            (or SET) producing at least one row.

        Raises:
            StatementParseError: the SQL parser rejects the text.
            StatementShapeError: unknown columns or tuple/column count mismatch.
            ValueCoercionError: a value is not a scalar literal of its column type.
        """
        if not sql or not sql.strip():
            return None

        assignment = _ASSIGNMENT_FORM.match(_first_statement(sql, dialect))
        if assignment:
            rows = _rows_from_assignments(table, assignment.group("assignments"), dialect)
            return cls(table, rows) if rows else None

        try:
            statements = sqlglot.parse(sql, read=dialect)
        except SqlglotError as e:
            raise StatementParseError(f"Cannot parse insert statement: {e}") from e

        for statement in statements:
            if isinstance(statement, exp.Insert):
                rows = _rows_from_insert(table, statement)
                return cls(table, rows) if rows else None
        return None

    @classmethod
    def parse_many(cls, schema: Schema, sql: str, dialect: Optional[str] = None) -> list[InsertStatement]:
        """Parse every INSERT in ``sql``, matching each to its schema table by name.

        Statements for unknown tables, or whose values do not fit their table,
        are skipped with a logged notice.
        """
        dialect = dialect or schema.dialect
        try:
            statements = sqlglot.parse(sql, read=dialect)
        except SqlglotError as e:
            raise StatementParseError(f"Cannot parse insert statements: {e}") from e

        inserts = []
        for statement in statements:
            if not isinstance(statement, exp.Insert):
                continue
            target = statement.this.this if isinstance(statement.this, exp.Schema) else statement.this
            table = schema.get_table(target.name)
            if table is None:
                logger.info(f"Skipping insert for unknown table {target.name}")
                continue
            try:
                rows = _rows_from_insert(table, statement)
            except StatementError as e:
                logger.info(f"Skipping insert for {table.name}: {e}")
                continue
            if rows:
                inserts.append(cls(table, rows))
        return inserts

    @classmethod
    def from_file(
        cls, schema: Schema, path: Union[str, Path], dialect: Optional[str] = None
    ) -> list[InsertStatement]:
        """Read INSERT statements from a file, see ``parse_many``."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read example data file {path}: {e}") from e
        return cls.parse_many(schema, text, dialect=dialect)

    # ------------------------------------------------------------------ #
    #  Rendering
    # ------------------------------------------------------------------ #

    def generate_insert_statement(self) -> str:
        """Render one INSERT with a column list and one value tuple per row.

        Auto-increment columns are left out; the engine assigns them. Columns
        absent from a row render as NULL.

        Raises:
            StatementShapeError: the statement has no rows.
        """
        if not self.rows:
            raise StatementShapeError(f"Cannot render an insert into {self.table.name} without rows")

        columns = [
            c for c in self.table.columns
            if not c.auto_increment and any(c in row for row in self.rows)
        ]
        column_names = ", ".join(c.name for c in columns)

        value_rows = []
        for row in self.rows:
            values = [render_value(row.get(c, NULL)) for c in columns]
            value_rows.append("(" + ", ".join(values) + ")")

        sql = f"INSERT INTO {self.table.name} ({column_names}) VALUES "
        if len(value_rows) > 1:
            sql += "\n\t"
        return sql + ",\n\t".join(value_rows) + ";"

    # ------------------------------------------------------------------ #
    #  Merging and key backfill
    # ------------------------------------------------------------------ #

    @staticmethod
    def merge_statements(statements: Optional[Iterable[InsertStatement]]) -> Optional[InsertStatement]:
        """Concatenate the rows of statements for the same table into one statement.

        Auto-increment columns are ignored when comparing column sets.

        Raises:
            TableMismatchError: the statements target different tables.
            ColumnMismatchError: a row covers a different set of columns than
                the first row of the first statement that has rows.
        """
        statements = list(statements or [])
        if not statements:
            return None

        first = statements[0]
        table = first.table
        columns: Optional[set[Column]] = None

        rows: list[Row] = []
        for statement in statements:
            if statement.table is not table:
                raise TableMismatchError(
                    f"Cannot merge insert statements for different tables: "
                    f"{table.name} and {statement.table.name}"
                )
            for row in statement.rows:
                if columns is None:
                    columns = _non_auto_increment_keys(row)
                elif _non_auto_increment_keys(row) != columns:
                    raise ColumnMismatchError(
                        f"Cannot merge insert statements with different columns for {table.name}"
                    )
            rows.extend(statement.rows)

        return InsertStatement(table, rows)

    def set_auto_increment_values_incrementing(self, column: Optional[Column], first_value: int) -> None:
        """Assign ``first_value``, ``first_value + 1``, ... to ``column`` in row order.

        Used once the engine reports the key generated for the first row.
        """
        if column is None or not self.rows:
            return
        for offset, row in enumerate(self.rows):
            row[column] = first_value + offset


def _non_auto_increment_keys(row: Row) -> set[Column]:
    return {c for c in row if not c.auto_increment}


def _first_statement(sql: str, dialect: str) -> str:
    """Text up to the first top-level semicolon."""
    try:
        tokens = sqlglot.tokenize(sql, read=dialect)
    except SqlglotError as e:
        raise StatementParseError(f"Cannot tokenize insert statement: {e}") from e
    for token in tokens:
        if token.token_type == TokenType.SEMICOLON:
            return sql[: token.start]
    return sql


def _rows_from_insert(table: Table, insert: exp.Insert) -> list[Row]:
    values = insert.expression
    if not isinstance(values, exp.Values):
        # INSERT ... SELECT and friends carry no literal rows
        return []

    if isinstance(insert.this, exp.Schema):
        columns = [_lookup_column(table, _name_of(e)) for e in insert.this.expressions]
    else:
        columns = table.columns

    rows = []
    for value_tuple in values.expressions:
        items = value_tuple.expressions if isinstance(value_tuple, exp.Tuple) else [value_tuple]
        if len(items) != len(columns):
            raise StatementShapeError(
                f"Insert into {table.name} has {len(columns)} columns but a tuple of {len(items)} values"
            )
        rows.append({
            column: coerce_value(column.data_type, _literal_value(item))
            for column, item in zip(columns, items)
        })
    return rows


def _rows_from_assignments(table: Table, assignments: str, dialect: str) -> list[Row]:
    # The assignment list of INSERT ... SET has UPDATE ... SET grammar
    try:
        update = sqlglot.parse_one(f"UPDATE {table.name} SET {assignments}", read=dialect)
    except SqlglotError as e:
        raise StatementParseError(f"Cannot parse insert assignments: {e}") from e

    row: Row = {}
    for assignment in update.expressions:
        if not isinstance(assignment, exp.EQ):
            raise StatementShapeError(f"Unsupported assignment in insert: {assignment.sql()}")
        column = _lookup_column(table, _name_of(assignment.this))
        row[column] = coerce_value(column.data_type, _literal_value(assignment.expression))
    return [row] if row else []


def _lookup_column(table: Table, name: str) -> Column:
    column = table.column(name)
    if column is None:
        raise StatementShapeError(f"Table {table.name} has no column {name}")
    return column


def _name_of(expression: exp.Expression) -> str:
    if isinstance(expression, exp.Identifier):
        return expression.name
    identifier = expression.find(exp.Identifier)
    return identifier.name if identifier is not None else expression.name


def _literal_value(expression: exp.Expression) -> ScalarValue:
    """Turn a literal expression into its scalar, typed by lexical form."""
    if isinstance(expression, exp.Null):
        return NULL
    if isinstance(expression, exp.Boolean):
        return bool(expression.this)
    if isinstance(expression, exp.Literal):
        if expression.is_string:
            return expression.this
        return _number(expression.this)
    if isinstance(expression, exp.Neg):
        value = _literal_value(expression.this)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return -value
    if isinstance(expression, (exp.Paren, exp.Cast, exp.TryCast)):
        # (42), DATE '2020-01-01', CAST('x' AS CHAR)
        return _literal_value(expression.this)
    raise ValueCoercionError(f"Unsupported value expression: {expression.sql()}")


def _number(text: str) -> Union[int, float]:
    if _INTEGER_LITERAL.match(text):
        return int(text)
    try:
        return float(text)
    except ValueError as e:
        raise ValueCoercionError(f"Unsupported numeric literal: {text}") from e


# Module-level alias, mirroring the statement-level operation
merge_statements = InsertStatement.merge_statements
