"""Row-generation oracles. Backends are imported lazily by ``create_generator``."""

from synth_db.oracle.base import GeneratedInsert, RowGenerator
from synth_db.oracle.factory import create_generator
