from __future__ import annotations

import csv
import shutil
import threading
import zipfile
from pathlib import Path
from typing import Sequence

from wordwise_gen.converters import ConversionResult, Converter


def write_dictionary(path: Path, rows: list[tuple[str, str, int]]) -> Path:
    """Write a wordwise CSV with the standard header plus an ignored column."""
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(["id", "word", "full_def", "short_def", "hint_level"])
        for idx, (word, short_def, level) in enumerate(rows, start=1):
            writer.writerow([idx, word, f"{short_def} (full)", short_def, level])
    return path


class FakeConverter(Converter):
    """
    Stand-in for ebook-convert.

    ``*.htmlz`` targets become an archive holding the source text as
    ``index.html``; any other target is a copy of the input.
    """

    def __init__(self, fail_on: Sequence[str] = (), missing_markup: Sequence[str] = ()) -> None:
        self.fail_on = set(fail_on)
        self.missing_markup = set(missing_markup)
        self.calls: list[tuple[Path, Path]] = []
        self._lock = threading.Lock()

    def convert(
        self,
        input_path: Path,
        output_path: Path,
        options: Sequence[str] = (),
        cancel_event: threading.Event | None = None,
    ) -> ConversionResult:
        with self._lock:
            self.calls.append((input_path, output_path))
        if input_path.name in self.fail_on:
            return ConversionResult(ok=False, diagnostics=f"cannot read {input_path.name}", returncode=1)
        if output_path.suffix == ".htmlz":
            with zipfile.ZipFile(output_path, "w") as zf:
                if input_path.name in self.missing_markup:
                    zf.writestr("style.css", "body {}")
                else:
                    zf.writestr("index.html", input_path.read_bytes())
            return ConversionResult(ok=True, returncode=0)
        shutil.copyfile(input_path, output_path)
        return ConversionResult(ok=True, returncode=0)
