"""Scalar values stored in rows, with coercion and SQL literal rendering.

A row value is one of a closed set of kinds:
- int, float, bool, str
- datetime.date / datetime.time / datetime.datetime (read back from an engine)
- NULL, the SQL null sentinel

NULL is distinct from an absent key: a row without a column simply does not
mention it, while ``row[column] is NULL`` means an explicit SQL NULL.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from typing import Any, Union

from synth_db.errors import ValueCoercionError

INTEGER_TYPES = {
    "TINYINT", "SMALLINT", "MEDIUMINT", "INT", "INTEGER", "BIGINT",
    "SERIAL", "SMALLSERIAL", "BIGSERIAL",
}
FLOAT_TYPES = {"FLOAT", "DOUBLE", "REAL"}


class _Null:
    """Singleton marker for an explicit SQL NULL."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NULL"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_Null, ())


NULL = _Null()

ScalarValue = Union[int, float, bool, str, datetime.date, datetime.time, _Null]


def base_type(data_type: str) -> str:
    """Return the leading type keyword: ``VARCHAR(50)`` -> ``VARCHAR``."""
    if not data_type:
        return ""
    head = data_type.split("(", 1)[0].strip()
    return head.split()[0].upper() if head else ""


def coerce_value(data_type: str, value: ScalarValue) -> ScalarValue:
    """Coerce a textual literal into the numeric kind its column declares.

    Parsers type literals by lexical form, so ``'42'`` arrives as a string even
    for an INT column. Only strings are converted; everything else passes
    through unchanged.
    """
    if not isinstance(value, str):
        return value

    family = base_type(data_type)
    try:
        if family in INTEGER_TYPES:
            return int(value.strip())
        if family in FLOAT_TYPES:
            return float(value.strip())
    except ValueError as e:
        raise ValueCoercionError(
            f"Cannot coerce {value!r} to column type {data_type}"
        ) from e
    return value


def from_engine(value: Any) -> ScalarValue:
    """Normalize a value read back from a database driver."""
    if value is None:
        return NULL
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return value


def render_value(value: Any) -> str:
    """Render a value as a SQL literal."""
    if value is None or value is NULL:
        return "NULL"
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, (str, datetime.date, datetime.time)):
        return "'" + str(value).replace("'", "''") + "'"
    return str(value)
