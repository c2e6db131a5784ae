from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class DictionaryEntry:
    """A short gloss and the hint level (1-5) at which it is shown."""

    gloss: str
    hint_level: int


@dataclass(slots=True)
class AnnotationResult:
    """Annotated text plus counters collected during the scan."""

    text: str
    tokens_scanned: int
    annotations: int


@dataclass(slots=True)
class FileResult:
    """Outcome of running the pipeline for one input file."""

    source: Path
    status: str = "pending"
    outputs: list[Path] = field(default_factory=list)
    annotations: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass(slots=True)
class BatchResult:
    """Aggregated per-file outcomes of a batch run."""

    output_dir: Path
    files: list[FileResult] = field(default_factory=list)

    @property
    def succeeded(self) -> list[FileResult]:
        return [result for result in self.files if result.status == "ok"]

    @property
    def failed(self) -> list[FileResult]:
        return [result for result in self.files if result.status == "failed"]

    @property
    def cancelled(self) -> list[FileResult]:
        return [result for result in self.files if result.status == "cancelled"]

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.files)
