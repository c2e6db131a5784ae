from __future__ import annotations

import threading
from typing import Dict


class DistanceMediator:
    """
    Remember where each word was last annotated so nearby repeats are skipped.

    In "Jack is an amateur. An amateur is ..." only the first "amateur" is
    annotated when both occurrences fall within ``max_distance``. Positions
    are whatever unit the caller scans in; the annotation engine uses
    character offsets.
    """

    def __init__(self, max_distance: int) -> None:
        if max_distance < 0:
            raise ValueError("max_distance must not be negative.")
        self._max_distance = max_distance
        self._last_positions: Dict[str, int] = {}
        self._lock = threading.Lock()

    @property
    def max_distance(self) -> int:
        return self._max_distance

    def has_recent_annotation(self, word: str, position: int) -> bool:
        """Return True when ``word`` was annotated less than max_distance before."""
        with self._lock:
            last = self._last_positions.get(word)
        return last is not None and last + self._max_distance > position

    def record_annotation(self, word: str, position: int) -> None:
        with self._lock:
            self._last_positions[word] = position

    def last_position(self, word: str) -> int | None:
        with self._lock:
            return self._last_positions.get(word)

    def clear(self) -> None:
        with self._lock:
            self._last_positions.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_positions)
