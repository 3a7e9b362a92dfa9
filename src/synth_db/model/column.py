"""One column of a table, with its constraint flags and foreign key."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from synth_db.model.table import Table


@dataclass(eq=False)
class Column:
    """A column owned by exactly one Table.

    ``reference`` is a borrowed link to the column this one points at through
    a foreign key, possibly in another table. It is set while the schema
    resolves references and never owns the target.

    Columns compare and hash by identity so they can key row dicts.
    """

    name: str
    data_type: str
    table: Optional[Table] = field(default=None, repr=False)
    auto_increment: bool = False
    primary_key: bool = False
    unique: bool = False
    nullable: bool = True
    reference: Optional[Column] = field(default=None, repr=False)

    @property
    def qualified_name(self) -> str:
        if self.table is None:
            return self.name
        return f"{self.table.name}.{self.name}"
