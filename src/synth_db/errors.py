"""Exception hierarchy for synth-db.

Configuration and structural errors are fatal. Statement and engine errors
raised inside the fill loop are soft failures: the filler logs them and asks
the oracle again.
"""


class SynthDBError(Exception):
    """Base exception for all synth-db errors."""


class ConfigurationError(SynthDBError):
    """Raised when input files, targets or backend settings are unusable."""


class SchemaParseError(ConfigurationError):
    """Raised when schema DDL cannot be parsed or its references resolved."""


class StructuralError(SynthDBError):
    """Raised when callers combine statements or tables inconsistently."""


class TableMismatchError(StructuralError):
    """Raised when merging insert statements that target different tables."""


class ColumnMismatchError(StructuralError):
    """Raised when merging insert statements whose rows cover different columns."""


class IllegalStateError(StructuralError):
    """Raised when an insert statement targets a table outside the insertion order."""


class CyclicDependencyError(StructuralError):
    """Raised when the foreign-key graph has no valid insertion order."""


class StatementError(SynthDBError):
    """Raised when insert text cannot be turned into rows."""


class StatementParseError(StatementError):
    """Raised when the SQL parser rejects the insert text."""


class StatementShapeError(StatementError):
    """Raised when columns and values of an insert do not line up."""


class ValueCoercionError(StatementError):
    """Raised when a literal cannot be converted to its column's type."""


class EngineError(SynthDBError):
    """Raised when the relational engine fails to execute a statement."""
