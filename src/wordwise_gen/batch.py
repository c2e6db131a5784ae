from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
import zipfile
from collections import Counter
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, List, Mapping

from .annotation import annotate_document
from .config import WordwiseConfig
from .converters import ConversionError, Converter
from .mediator import DistanceMediator
from .models import BatchResult, DictionaryEntry, FileResult
from .textutils import sanitize_name

logger = logging.getLogger(__name__)

INTERMEDIATE_FORMAT = "htmlz"
MARKUP_FILENAME = "index.html"
MARKUP_SUFFIXES = (".html", ".xhtml", ".htm")


class PipelineError(RuntimeError):
    """Raised when one file's pipeline cannot complete."""


class MissingIntermediateError(PipelineError):
    """Raised when the converter did not produce the expected markup."""


def resolve_output_dir(input_root: Path, config: WordwiseConfig) -> Path:
    """Return (and create) the directory generated books are written to."""
    if config.output_dir:
        output_dir = Path(config.output_dir)
    elif input_root.is_dir():
        output_dir = input_root / config.generated_folder_name
    else:
        output_dir = input_root.parent / config.generated_folder_name
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


def enumerate_inputs(
    input_root: Path, excluded_folder: str, output_dir: Path | None = None
) -> List[Path]:
    """
    List the files to process.

    Anything under ``excluded_folder``, under ``output_dir`` or inside a
    hidden file or directory is skipped so generated books are never fed
    back into the pipeline.
    """
    if not input_root.exists():
        raise FileNotFoundError(f"Input path not found: {input_root}")
    if input_root.is_file():
        return [input_root]

    resolved_output = output_dir.resolve() if output_dir is not None else None
    files: List[Path] = []
    for path in sorted(input_root.rglob("*")):
        relative = path.relative_to(input_root)
        if excluded_folder in relative.parts:
            continue
        if any(part.startswith(".") for part in relative.parts):
            continue
        if not path.is_file():
            continue
        if resolved_output is not None and path.resolve().is_relative_to(resolved_output):
            continue
        files.append(path)
    return files


def plan_output_names(inputs: List[Path], input_root: Path) -> Dict[Path, str]:
    """Map each input to a unique base name for its outputs."""
    stem_counts = Counter(path.stem for path in inputs)
    base = input_root if input_root.is_dir() else input_root.parent
    names: Dict[Path, str] = {}
    taken: set[str] = set()
    for path in inputs:
        if stem_counts[path.stem] == 1:
            name = path.stem
        else:
            relative = path.relative_to(base)
            # Keep the suffix too so "book.epub" and "book.mobi" stay distinct.
            name = sanitize_name("-".join(relative.parts))
        names[path] = _unique_name(name, taken)
    return names


def _unique_name(name: str, taken: set[str]) -> str:
    # Compare case-insensitively; several filesystems fold case.
    candidate = name
    counter = 2
    while candidate.casefold() in taken:
        candidate = f"{name}-{counter}"
        counter += 1
    taken.add(candidate.casefold())
    return candidate


class BatchDriver:
    """Run convert -> annotate -> convert for every input with a thread pool."""

    def __init__(
        self,
        config: WordwiseConfig,
        dictionary: Mapping[str, DictionaryEntry],
        converter: Converter,
    ) -> None:
        self._config = config
        self._dictionary = dictionary
        self._converter = converter

    @property
    def parallel(self) -> int:
        return self._config.parallel or os.cpu_count() or 1

    def run(
        self, input_root: Path, cancel_event: threading.Event | None = None
    ) -> BatchResult:
        """Process every input under ``input_root`` and collect per-file results."""
        output_dir = resolve_output_dir(input_root, self._config)
        inputs = enumerate_inputs(
            input_root, self._config.generated_folder_name, output_dir
        )
        names = plan_output_names(inputs, input_root)
        cancel_event = cancel_event or threading.Event()
        batch = BatchResult(output_dir=output_dir)
        logger.info(
            "Generating wordwise for %d file(s) from %s into %s (parallel=%d, formats=%s)",
            len(inputs),
            input_root,
            output_dir,
            self.parallel,
            ",".join(self._config.output_formats),
        )

        results: Dict[Path, FileResult] = {path: FileResult(source=path) for path in inputs}
        with ThreadPoolExecutor(
            max_workers=self.parallel, thread_name_prefix="wordwise"
        ) as executor:
            futures: Dict[Future[FileResult], Path] = {
                executor.submit(
                    self.process_file, path, names[path], output_dir, cancel_event
                ): path
                for path in inputs
            }
            try:
                for future in as_completed(futures):
                    path = futures[future]
                    if future.cancelled():
                        continue
                    try:
                        results[path] = future.result()
                    except Exception as exc:  # noqa: BLE001
                        logger.exception("Unexpected failure while processing %s", path)
                        results[path] = FileResult(
                            source=path, status="failed", error=str(exc)
                        )
                    if results[path].status == "failed" and self._config.fail_fast:
                        cancel_event.set()
                    if cancel_event.is_set():
                        _cancel_pending(futures)
            except KeyboardInterrupt:
                # Running converters poll the event and kill their subprocess.
                cancel_event.set()
                _cancel_pending(futures)
                raise

        for path in inputs:
            result = results[path]
            if result.status == "pending":
                result.status = "cancelled"
                result.error = "cancelled before start"
            batch.files.append(result)

        logger.info(
            "Finished: %d succeeded, %d failed, %d cancelled",
            len(batch.succeeded),
            len(batch.failed),
            len(batch.cancelled),
        )
        return batch

    def process_file(
        self,
        source: Path,
        output_name: str,
        output_dir: Path,
        cancel_event: threading.Event | None = None,
    ) -> FileResult:
        """Run the full pipeline for one file, never raising pipeline errors."""
        result = FileResult(source=source)
        if cancel_event is not None and cancel_event.is_set():
            result.status = "cancelled"
            result.error = "cancelled before start"
            return result

        logger.info("[+] Processing %s", source)
        try:
            with tempfile.TemporaryDirectory(prefix=f"{sanitize_name(source.stem)}-") as tmp:
                workdir = Path(tmp)
                markup_path = self._convert_to_markup(source, workdir, cancel_event)
                result.annotations = self._annotate_markup(markup_path)
                staged = self._convert_outputs(markup_path, workdir, output_name, cancel_event)
                result.outputs = _publish(staged, output_dir)
        except (ConversionError, PipelineError, OSError) as exc:
            if cancel_event is not None and cancel_event.is_set():
                result.status = "cancelled"
            else:
                result.status = "failed"
                logger.error("[-] %s failed: %s", source, exc)
            result.error = str(exc)
            return result

        result.status = "ok"
        logger.info(
            "[+] %s done with %d annotation(s): %s",
            source,
            result.annotations,
            ", ".join(str(path) for path in result.outputs),
        )
        return result

    def _convert_to_markup(
        self, source: Path, workdir: Path, cancel_event: threading.Event | None
    ) -> Path:
        archive = workdir / f"{sanitize_name(source.stem)}.{INTERMEDIATE_FORMAT}"
        self._run_converter(source, archive, cancel_event)
        if not archive.is_file():
            raise MissingIntermediateError(f"Converter produced no {archive.name} for {source}")
        markup_dir = workdir / "markup"
        try:
            with zipfile.ZipFile(archive, "r") as zf:
                zf.extractall(markup_dir)
        except zipfile.BadZipFile as exc:
            raise MissingIntermediateError(f"Invalid {INTERMEDIATE_FORMAT} archive for {source}") from exc
        return _locate_markup(markup_dir, source)

    def _annotate_markup(self, markup_path: Path) -> int:
        text = markup_path.read_bytes().decode("utf-8", errors="surrogateescape")
        mediator = DistanceMediator(self._config.max_distance)
        annotated = annotate_document(
            text, self._dictionary, mediator, self._config.max_hint_level
        )
        markup_path.write_bytes(annotated.text.encode("utf-8", errors="surrogateescape"))
        return annotated.annotations

    def _convert_outputs(
        self,
        markup_path: Path,
        workdir: Path,
        output_name: str,
        cancel_event: threading.Event | None,
    ) -> List[Path]:
        staging = workdir / "out"
        staging.mkdir()
        staged: List[Path] = []
        for fmt in self._config.output_formats:
            target = staging / f"{output_name}.{fmt}"
            self._run_converter(markup_path, target, cancel_event)
            if not target.exists():
                raise MissingIntermediateError(f"Converter produced no {target.name}")
            staged.append(target)
        return staged

    def _run_converter(
        self, input_path: Path, output_path: Path, cancel_event: threading.Event | None
    ) -> None:
        outcome = self._converter.convert(input_path, output_path, cancel_event=cancel_event)
        if not outcome.ok:
            raise ConversionError(
                f"converting {input_path.name} to {output_path.name}: {outcome.diagnostics}"
            )


def run_batch(
    input_root: Path,
    config: WordwiseConfig,
    dictionary: Mapping[str, DictionaryEntry],
    converter: Converter,
    cancel_event: threading.Event | None = None,
) -> BatchResult:
    """Convenience wrapper around :class:`BatchDriver`."""
    return BatchDriver(config, dictionary, converter).run(input_root, cancel_event)


def _cancel_pending(futures: Mapping[Future[FileResult], Path]) -> None:
    for future in futures:
        future.cancel()


def _locate_markup(markup_dir: Path, source: Path) -> Path:
    preferred = markup_dir / MARKUP_FILENAME
    if preferred.is_file():
        return preferred
    candidates = sorted(
        path
        for path in markup_dir.rglob("*")
        if path.is_file() and path.suffix.lower() in MARKUP_SUFFIXES
    )
    if not candidates:
        raise MissingIntermediateError(f"No HTML markup found after converting {source}")
    return candidates[0]


def _publish(staged: List[Path], output_dir: Path) -> List[Path]:
    """
    Move finished outputs into place; partial files never carry the final name.

    Either every format is published or, when a move fails, the ones already
    in place are removed again before the error propagates.
    """
    published: List[Path] = []
    for path in staged:
        final = output_dir / path.name
        partial = final.with_name(final.name + ".partial")
        try:
            shutil.move(str(path), partial)
            os.replace(partial, final)
        except OSError:
            partial.unlink(missing_ok=True)
            for done in published:
                done.unlink(missing_ok=True)
            raise
        published.append(final)
    return published
