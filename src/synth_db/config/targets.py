"""Per-table target row counts loaded from a file.

Accepted formats:
- YAML or JSON mapping: ``{employee: 10, department: 5}``
- properties: one ``table=count`` per line, ``#`` and ``!`` start comments
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

import yaml

from synth_db.errors import ConfigurationError

logger = logging.getLogger(__name__)

_PROPERTIES_SUFFIXES = {".properties", ".txt", ".ini"}


def load_target_rows(path: Union[str, Path]) -> dict[str, int]:
    """Read a table-name to row-count mapping."""
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read target row numbers file {path}: {e}") from e

    if path.suffix.lower() in _PROPERTIES_SUFFIXES:
        raw = _parse_properties(text)
    else:
        try:
            raw = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid target row numbers file {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Target row numbers file {path} must hold a mapping")

    targets = {str(name): _count(name, value) for name, value in raw.items()}
    logger.info(f"Loaded target row numbers for {len(targets)} tables from {path}")
    return targets


def _parse_properties(text: str) -> dict[str, str]:
    values = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line[0] in "#!":
            continue
        for separator in ("=", ":"):
            if separator in line:
                key, value = line.split(separator, 1)
                values[key.strip()] = value.strip()
                break
        else:
            raise ConfigurationError(f"Invalid target row numbers line: {line!r}")
    return values


def _count(name: object, value: object) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"Target row number for {name} must be an integer, got {value!r}")
    try:
        count = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Target row number for {name} must be an integer, got {value!r}"
        ) from e
    if isinstance(value, float) and value != count:
        raise ConfigurationError(f"Target row number for {name} must be an integer, got {value!r}")
    if count < 0:
        raise ConfigurationError(f"Target row number for {name} must not be negative")
    return count
