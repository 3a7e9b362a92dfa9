"""Schema model — parses CREATE TABLE statements into tables with resolved foreign keys.

Parsing runs in two phases:
1. Register every table (columns in declaration order, constraint flags).
2. Resolve foreign keys against the complete table set, so a table may
   reference another one declared further down the file.

The SQL grammar itself is sqlglot's; this module only walks the resulting
expressions.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Optional, Union

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from synth_db.errors import ConfigurationError, SchemaParseError
from synth_db.model.column import Column
from synth_db.model.table import AUTO_INCREMENT_CONSTRAINTS, Table

logger = logging.getLogger(__name__)

SERIAL_TYPES = {
    exp.DataType.Type.SERIAL,
    exp.DataType.Type.SMALLSERIAL,
    exp.DataType.Type.BIGSERIAL,
}


class Schema:
    """Tables of one schema, keyed by name in declaration order."""

    def __init__(self, dialect: str = "mysql"):
        self.dialect = dialect
        self._tables: dict[str, Table] = {}

    def __len__(self) -> int:
        return len(self._tables)

    def __iter__(self) -> Iterator[Table]:
        return iter(self._tables.values())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get_table(name) is not None

    def __repr__(self) -> str:
        return f"Schema(dialect={self.dialect!r}, tables={list(self._tables)})"

    @property
    def tables(self) -> list[Table]:
        """Tables in declaration order (not dependency order)."""
        return list(self._tables.values())

    def get_table(self, name: str) -> Optional[Table]:
        found = self._tables.get(name)
        if found is not None:
            return found
        lowered = name.lower()
        for table in self._tables.values():
            if table.name.lower() == lowered:
                return table
        return None

    @classmethod
    def from_file(cls, path: Union[str, Path], dialect: str = "mysql") -> Schema:
        """Read DDL from a file and parse it."""
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read schema file {path}: {e}") from e
        return parse_schema(text, dialect=dialect)

    def _register(self, table: Table) -> None:
        if table.name in self._tables:
            raise SchemaParseError(f"Table {table.name} is defined more than once")
        self._tables[table.name] = table

    # ------------------------------------------------------------------ #
    #  Phase 2: foreign keys
    # ------------------------------------------------------------------ #

    def _resolve_references(self, table: Table) -> None:
        """Link each referencing column of ``table`` to its target column."""
        definitions = table.expression.this.expressions

        # Table-level FOREIGN KEY (a, b) REFERENCES t (x, y), possibly inside CONSTRAINT
        for definition in definitions:
            if isinstance(definition, exp.ColumnDef):
                continue
            for foreign_key in definition.find_all(exp.ForeignKey):
                names = [_identifier_name(e) for e in foreign_key.expressions]
                self._link(table, names, foreign_key.args.get("reference"))

        # Inline column REFERENCES t (x)
        for definition in definitions:
            if not isinstance(definition, exp.ColumnDef):
                continue
            for constraint in definition.args.get("constraints") or []:
                reference = constraint.args.get("kind")
                if isinstance(reference, exp.Reference):
                    self._link(table, [definition.name], reference)

    def _link(self, table: Table, names: list[str], reference: Optional[exp.Reference]) -> None:
        if reference is None:
            return
        target_name, target_columns = _reference_target(reference)
        target_table = self.get_table(target_name)
        if target_table is None:
            raise SchemaParseError(
                f"Table {table.name} references unknown table {target_name}"
            )

        if not target_columns:
            primary_keys = target_table.primary_key_columns
            if len(primary_keys) != len(names):
                raise SchemaParseError(
                    f"Cannot infer referenced columns of {target_name} for {table.name}({', '.join(names)})"
                )
            target_columns = [c.name for c in primary_keys]

        if len(target_columns) != len(names):
            raise SchemaParseError(
                f"Foreign key {table.name}({', '.join(names)}) does not match "
                f"{target_name}({', '.join(target_columns)})"
            )

        for name, target_column_name in zip(names, target_columns):
            column = table.column(name)
            target = target_table.column(target_column_name)
            if column is None or target is None:
                raise SchemaParseError(
                    f"Foreign key {table.name}.{name} -> {target_name}.{target_column_name} "
                    f"names an unknown column"
                )
            column.reference = target
            logger.debug(f"Resolved {column.qualified_name} -> {target.qualified_name}")


def parse_schema(text: str, dialect: str = "mysql") -> Schema:
    """Parse CREATE TABLE statements into a Schema with resolved references.

    Statements other than CREATE TABLE are skipped.

    Raises:
        SchemaParseError: the text is not valid SQL, holds no CREATE TABLE
            statement, or a foreign key names an unknown table or column.
    """
    try:
        statements = sqlglot.parse(text, read=dialect)
    except SqlglotError as e:
        raise SchemaParseError(f"Invalid schema DDL: {e}") from e

    schema = Schema(dialect=dialect)
    for statement in statements:
        if statement is None:
            continue
        if not _is_create_table(statement):
            logger.debug(f"Skipping statement that is not CREATE TABLE: {statement.sql()[:80]}")
            continue
        schema._register(_table_from_create(statement, dialect))

    if not schema and text.strip():
        raise SchemaParseError("No CREATE TABLE statements found in schema DDL")

    for table in schema:
        schema._resolve_references(table)

    logger.info(f"Parsed schema with {len(schema)} tables: {[t.name for t in schema]}")
    return schema


def _is_create_table(statement: exp.Expression) -> bool:
    return (
        isinstance(statement, exp.Create)
        and str(statement.args.get("kind") or "").upper() == "TABLE"
        and isinstance(statement.this, exp.Schema)
    )


def _table_from_create(create: exp.Create, dialect: str) -> Table:
    table_expr = create.this.this
    table = Table(
        name=table_expr.name,
        schema_name=table_expr.db or None,
        definition=create.sql(dialect=dialect, pretty=True),
        dialect=dialect,
        create=create,
    )

    for definition in create.this.expressions:
        if isinstance(definition, exp.ColumnDef):
            try:
                table.add_column(_column_from_definition(definition, dialect))
            except ValueError as e:
                raise SchemaParseError(str(e)) from e

    # Table-level PRIMARY KEY (a, b)
    for primary_key in create.this.find_all(exp.PrimaryKey):
        for expression in primary_key.expressions:
            column = table.column(_identifier_name(expression))
            if column is not None:
                column.primary_key = True

    return table


def _column_from_definition(definition: exp.ColumnDef, dialect: str) -> Column:
    kind = definition.args.get("kind")
    column = Column(
        name=definition.name,
        data_type=kind.sql(dialect=dialect) if kind is not None else "",
    )
    if kind is not None and kind.this in SERIAL_TYPES:
        column.auto_increment = True

    for constraint in definition.args.get("constraints") or []:
        constraint_kind = constraint.args.get("kind")
        if isinstance(constraint_kind, AUTO_INCREMENT_CONSTRAINTS):
            column.auto_increment = True
        elif isinstance(constraint_kind, exp.PrimaryKeyColumnConstraint):
            column.primary_key = True
        elif isinstance(constraint_kind, exp.UniqueColumnConstraint):
            column.unique = True
        elif isinstance(constraint_kind, exp.NotNullColumnConstraint):
            column.nullable = bool(constraint_kind.args.get("allow_null"))
    return column


def _reference_target(reference: exp.Reference) -> tuple[str, list[str]]:
    """Return (table name, column names) of a REFERENCES clause."""
    target = reference.this
    if isinstance(target, exp.Schema):
        return target.this.name, [_identifier_name(e) for e in target.expressions]
    return target.name, []


def _identifier_name(expression: exp.Expression) -> str:
    if isinstance(expression, exp.Identifier):
        return expression.name
    identifier = expression.find(exp.Identifier)
    return identifier.name if identifier is not None else expression.name
