from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import List, TypedDict

import typer
import yaml

from .batch import BatchDriver
from .config import WordwiseConfig, load_config
from .converters import ConverterNotFoundError, create_converter
from .dictionary import DictionaryError, load_dictionary
from .models import BatchResult, FileResult
from .textutils import split_formats

app = typer.Typer(help="Wordwise hint generator for ebooks.", no_args_is_help=True)

SUMMARY_FILENAME = "summary.json"


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s",
    )


@app.command()
def generate(
    input_path: Path = typer.Option(
        ...,
        "--in",
        "-i",
        exists=True,
        readable=True,
        dir_okay=True,
        file_okay=True,
        help="Input book, or a directory whose books are all processed.",
    ),
    config: Path | None = typer.Option(None, "--config", "-c"),
    hint: int | None = typer.Option(
        None,
        "--hint",
        min=1,
        max=5,
        help="Hint level ceiling: 1 shows fewer hints, 5 shows all (default 5).",
    ),
    parallel: int | None = typer.Option(
        None,
        "--parallel",
        min=1,
        help="Files processed concurrently (default: number of CPUs).",
    ),
    max_distance: int | None = typer.Option(
        None,
        "--max-distance",
        min=0,
        help="Characters before a word may be annotated again (default 1000).",
    ),
    output_formats: str | None = typer.Option(
        None, "--of", help="Comma-separated output formats, e.g. 'epub,azw3'."
    ),
    output_dir: Path | None = typer.Option(
        None,
        "--od",
        file_okay=False,
        help="Output directory (default: 'wordwise_generated' next to the input).",
    ),
    dictionary_path: Path | None = typer.Option(
        None, "--dictionary", "-d", help="Wordwise CSV dictionary."
    ),
    fail_fast: bool | None = typer.Option(
        None,
        "--fail-fast/--keep-going",
        help="Cancel remaining files after the first failure.",
    ),
    timeout: float | None = typer.Option(
        None, "--timeout", help="Seconds allowed for each converter call."
    ),
) -> None:
    """Inject wordwise hints into a book or a directory of books."""
    cfg = load_config(config)
    _apply_overrides(
        cfg,
        hint,
        parallel,
        max_distance,
        output_formats,
        output_dir,
        dictionary_path,
        fail_fast,
        timeout,
    )
    try:
        cfg.validate()
        converter = create_converter(cfg)
        converter.ensure_available()
        dictionary = load_dictionary(cfg.dictionary_path)
    except (ValueError, ConverterNotFoundError, DictionaryError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    driver = BatchDriver(cfg, dictionary, converter)
    cancel_event = threading.Event()
    try:
        result = driver.run(input_path, cancel_event)
    except KeyboardInterrupt:
        typer.echo("Interrupted; cancelled remaining conversions.", err=True)
        raise typer.Exit(code=130)
    except OSError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    summary = json.dumps(_build_summary(result), indent=2)
    summary_path = result.output_dir / SUMMARY_FILENAME
    typer.echo(summary)
    try:
        # Write the summary next to the books so it survives the terminal session.
        summary_path.write_text(summary, encoding="utf-8")
    except OSError as exc:
        typer.echo(f"Error: could not write {summary_path}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    if not result.ok:
        raise typer.Exit(code=1)


@app.command("print-config")
def print_config() -> None:
    """Print the default configuration as YAML."""
    cfg = WordwiseConfig()
    typer.echo(yaml.safe_dump(cfg.to_dict(), sort_keys=False))


def main() -> None:
    app()


def _apply_overrides(
    config: WordwiseConfig,
    hint: int | None,
    parallel: int | None,
    max_distance: int | None,
    output_formats: str | None,
    output_dir: Path | None,
    dictionary_path: Path | None,
    fail_fast: bool | None,
    timeout: float | None,
) -> None:
    """Apply CLI overrides on top of the loaded config when provided."""
    if hint is not None:
        config.max_hint_level = hint
    if parallel is not None:
        config.parallel = parallel
    if max_distance is not None:
        config.max_distance = max_distance
    if output_formats:
        config.output_formats = split_formats(output_formats)
    if output_dir:
        # Config stores string paths so cast Path objects accordingly.
        config.output_dir = str(output_dir)
    if dictionary_path:
        config.dictionary_path = str(dictionary_path)
    if fail_fast is not None:
        config.fail_fast = fail_fast
    if timeout is not None:
        config.converter.timeout = timeout


class FileSummary(TypedDict):
    source: str
    status: str
    outputs: List[str]
    annotations: int
    error: str | None


class BatchSummary(TypedDict):
    output_dir: str
    succeeded: int
    failed: int
    cancelled: int
    files: List[FileSummary]


def _build_summary(result: BatchResult) -> BatchSummary:
    """Create a JSON-serializable summary of the batch run."""
    return {
        "output_dir": str(result.output_dir),
        "succeeded": len(result.succeeded),
        "failed": len(result.failed),
        "cancelled": len(result.cancelled),
        "files": [_file_dict(item) for item in result.files],
    }


def _file_dict(item: FileResult) -> FileSummary:
    return {
        "source": os.fspath(item.source),
        "status": item.status,
        "outputs": [os.fspath(path) for path in item.outputs],
        "annotations": item.annotations,
        "error": item.error,
    }


if __name__ == "__main__":
    main()
