"""Fill order, progress reporting and the per-table generation loop."""

from synth_db.generator.dependency_resolver import (
    compute_dependencies,
    compute_drop_order,
    compute_insertion_order,
)
from synth_db.generator.progress import ConsoleProgress, ProgressReporter, ProgressSnapshot
from synth_db.generator.table_filler import TableFiller
