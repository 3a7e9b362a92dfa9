"""Relational engine binding over SQLAlchemy Core.

The filler needs only three primitives: execute a DDL/DML statement, run a
query, and read a scalar count. ``SqlEngine`` provides them over a single
connection to any SQLAlchemy URL. Every statement is committed on success and
rolled back on failure, so a failed generated insert never poisons the next one.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from synth_db.errors import EngineError
from synth_db.model.table import Table
from synth_db.model.values import from_engine

logger = logging.getLogger(__name__)

# SQLAlchemy dialect name -> sqlglot dialect name
DIALECT_NAMES = {
    "postgresql": "postgres",
    "mssql": "tsql",
    "mariadb": "mysql",
}

_NO_PARAMETERS = {"no_parameters": True}


@dataclass
class ExecutionResult:
    """Outcome of one executed statement.

    ``first_generated_key`` is the auto-increment value assigned to the first
    inserted row, when the driver reports it.
    """

    rowcount: int = 0
    first_generated_key: Optional[int] = None


class Engine(ABC):
    """Minimal relational engine interface consumed by the TableFiller."""

    dialect: str = "sqlite"

    @abstractmethod
    def execute(self, sql: str) -> ExecutionResult:
        """Run a DDL or DML statement. Raises EngineError on failure."""

    @abstractmethod
    def query(self, sql: str) -> list[dict[str, Any]]:
        """Run a query and return rows keyed by column name. Raises EngineError."""

    def scalar(self, sql: str) -> Any:
        rows = self.query(sql)
        if not rows:
            return None
        return next(iter(rows[0].values()), None)

    def count_rows(self, table: Table) -> int:
        value = self.scalar(table.count_sql())
        return int(value) if isinstance(value, (int, float)) else 0


class SqlEngine(Engine):
    """Engine backed by one SQLAlchemy connection.

    Usage:
        with SqlEngine("sqlite://") as engine:
            engine.execute("CREATE TABLE t (id INTEGER PRIMARY KEY)")
            engine.count_rows(table)
    """

    def __init__(self, url: str = "sqlite://", echo: bool = False):
        self.url = url
        try:
            self._engine = create_engine(url, echo=echo)
        except (SQLAlchemyError, ImportError, ValueError) as e:
            raise EngineError(f"Cannot create database engine for {url}: {e}") from e

        self.dialect = DIALECT_NAMES.get(self._engine.dialect.name, self._engine.dialect.name)
        if self._engine.dialect.name == "sqlite":
            event.listen(self._engine, "connect", _enable_sqlite_foreign_keys)

        self._connection: Optional[Connection] = None
        logger.info(f"Database engine ready: {self._engine.url!r} (dialect={self.dialect})")

    def __enter__(self) -> SqlEngine:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def connection(self) -> Connection:
        if self._connection is None:
            try:
                self._connection = self._engine.connect()
            except SQLAlchemyError as e:
                raise EngineError(f"Cannot connect to {self._engine.url!r}: {e}") from e
        return self._connection

    def execute(self, sql: str) -> ExecutionResult:
        connection = self.connection
        try:
            result = connection.exec_driver_sql(sql, execution_options=_NO_PARAMETERS)
            rowcount = result.rowcount if result.rowcount is not None else 0
            first_key = self._first_generated_key(result, rowcount)
            connection.commit()
        except SQLAlchemyError as e:
            self._rollback()
            raise EngineError(f"Statement failed: {e.__class__.__name__}: {e}") from e
        return ExecutionResult(rowcount=max(rowcount, 0), first_generated_key=first_key)

    def query(self, sql: str) -> list[dict[str, Any]]:
        connection = self.connection
        try:
            result = connection.exec_driver_sql(sql, execution_options=_NO_PARAMETERS)
            rows = [
                {key: from_engine(value) for key, value in mapping.items()}
                for mapping in result.mappings()
            ]
            connection.commit()
        except SQLAlchemyError as e:
            self._rollback()
            raise EngineError(f"Query failed: {e.__class__.__name__}: {e}") from e
        return rows

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None
        self._engine.dispose()

    def _rollback(self) -> None:
        try:
            self.connection.rollback()
        except SQLAlchemyError as e:
            logger.debug(f"Rollback failed: {e}")

    def _first_generated_key(self, result, rowcount: int) -> Optional[int]:
        try:
            last = result.lastrowid
        except (AttributeError, SQLAlchemyError):
            return None
        if not last or rowcount <= 0:
            return None
        name = self._engine.dialect.name
        if name in ("mysql", "mariadb"):
            # MySQL reports the key of the first row of a multi-row insert
            return int(last)
        if name == "sqlite":
            # SQLite reports the rowid of the last inserted row
            return int(last) - rowcount + 1
        return None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
