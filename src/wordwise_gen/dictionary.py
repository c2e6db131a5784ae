from __future__ import annotations

import csv
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping

from .models import DictionaryEntry

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("word", "short_def", "hint_level")
MIN_HINT_LEVEL = 1
MAX_HINT_LEVEL = 5

Dictionary = Mapping[str, DictionaryEntry]


class DictionaryError(RuntimeError):
    """Raised when the wordwise dictionary cannot be loaded."""


def load_dictionary(path: str | Path) -> Dictionary:
    """
    Load a wordwise CSV into a read-only ``word -> DictionaryEntry`` mapping.

    Parameters
    ----------
    path:
        CSV file with at least the ``word``, ``short_def`` and ``hint_level``
        header columns. Other columns are ignored.
    """
    path = Path(path)
    if not path.is_file():
        raise DictionaryError(f"Dictionary file not found: {path}")

    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        missing = [name for name in REQUIRED_COLUMNS if name not in (reader.fieldnames or [])]
        if missing:
            raise DictionaryError(
                f"Dictionary {path} is missing column(s) {', '.join(missing)}; "
                f"found {reader.fieldnames}"
            )
        entries: Dict[str, DictionaryEntry] = {}
        # Row 1 is the header.
        for row_number, row in enumerate(reader, start=2):
            key, entry = _parse_row(row, row_number, path)
            if key in entries:
                logger.debug("Duplicate headword %r on row %d overrides earlier entry.", key, row_number)
            entries[key] = entry

    logger.info("Loaded %d wordwise entries from %s", len(entries), path)
    return MappingProxyType(entries)


def dictionary_from_rows(rows: Mapping[str, tuple[str, int]]) -> Dictionary:
    """Build a dictionary from ``word -> (gloss, hint_level)`` pairs."""
    entries: Dict[str, DictionaryEntry] = {}
    for word, (gloss, hint_level) in rows.items():
        _check_hint_level(hint_level, f"entry {word!r}")
        entries[word.strip().lower()] = DictionaryEntry(gloss=gloss, hint_level=hint_level)
    return MappingProxyType(entries)


def _parse_row(row: Mapping[str, str | None], row_number: int, path: Path) -> tuple[str, DictionaryEntry]:
    location = f"{path} row {row_number}"
    word = (row.get("word") or "").strip()
    if not word:
        raise DictionaryError(f"{location}: empty word")
    raw_level = (row.get("hint_level") or "").strip()
    try:
        hint_level = int(raw_level)
    except ValueError as exc:
        raise DictionaryError(f"{location}: hint_level {raw_level!r} is not an integer") from exc
    _check_hint_level(hint_level, location)
    gloss = (row.get("short_def") or "").strip()
    return word.lower(), DictionaryEntry(gloss=gloss, hint_level=hint_level)


def _check_hint_level(hint_level: int, location: str) -> None:
    if not MIN_HINT_LEVEL <= hint_level <= MAX_HINT_LEVEL:
        raise DictionaryError(
            f"{location}: hint_level {hint_level} outside {MIN_HINT_LEVEL}-{MAX_HINT_LEVEL}"
        )
