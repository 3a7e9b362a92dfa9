"""Dependency resolver — fill and drop order from foreign-key links.

A table depends on every other table one of its columns references. Tables
are filled parents first so that generated foreign-key values always have a
parent row to point at.
"""

from __future__ import annotations

import logging

from synth_db.errors import CyclicDependencyError
from synth_db.model.schema import Schema
from synth_db.model.table import Table

logger = logging.getLogger(__name__)


def compute_dependencies(schema: Schema) -> dict[Table, set[Table]]:
    """Map each table to the distinct other tables its columns reference.

    Self-references are left out: a table never has to be filled before itself.
    """
    dependencies: dict[Table, set[Table]] = {}
    for table in schema:
        parents = set()
        for column in table.columns:
            if column.reference is None or column.reference.table is None:
                continue
            if column.reference.table is not table:
                parents.add(column.reference.table)
        dependencies[table] = parents
    return dependencies


def compute_insertion_order(dependencies: dict[Table, set[Table]]) -> list[Table]:
    """Order tables so each one comes after every table it depends on.

    Repeated passes over the unplaced tables in map order; ties keep map order,
    so the same input always yields the same order.

    Raises:
        CyclicDependencyError: a pass placed no table while some remain, as
            happens for mutually referencing tables.
    """
    order: list[Table] = []
    placed: set[Table] = set()
    remaining = list(dependencies)

    while remaining:
        still_remaining = []
        for table in remaining:
            parents = dependencies[table] - {table}
            if parents <= placed:
                order.append(table)
                placed.add(table)
            else:
                still_remaining.append(table)

        if len(still_remaining) == len(remaining):
            names = ", ".join(t.name for t in still_remaining)
            raise CyclicDependencyError(
                f"Cannot order tables with cyclic or missing dependencies: {names}"
            )
        remaining = still_remaining

    logger.info(f"Insertion order: {[t.name for t in order]}")
    return order


def compute_drop_order(dependencies: dict[Table, set[Table]]) -> list[Table]:
    """Children first: the exact reverse of the insertion order."""
    return list(reversed(compute_insertion_order(dependencies)))
