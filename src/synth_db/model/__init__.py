"""Schema and statement model: tables, columns, typed rows and INSERT statements."""

from synth_db.model.column import Column
from synth_db.model.insert_statement import InsertStatement, merge_statements
from synth_db.model.schema import Schema, parse_schema
from synth_db.model.table import Table
from synth_db.model.values import NULL, coerce_value, render_value
