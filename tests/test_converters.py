from __future__ import annotations

import sys
import threading
from pathlib import Path

import pytest

from wordwise_gen.config import ConverterSettings, WordwiseConfig
from wordwise_gen.converters import (
    CalibreConverter,
    CallableConverter,
    ConversionResult,
    ConverterNotFoundError,
    create_converter,
)


def _python_converter(**overrides) -> CalibreConverter:
    """Use the interpreter as the 'converter': argv is [script, output]."""
    settings = ConverterSettings(command=sys.executable, poll_interval=0.05, **overrides)
    return CalibreConverter(settings)


def _script(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "script.py"
    path.write_text(body, encoding="utf-8")
    return path


def test_convert_runs_command_and_reports_success(tmp_path: Path):
    script = _script(
        tmp_path, "import pathlib, sys\npathlib.Path(sys.argv[1]).write_text('done')\n"
    )
    output = tmp_path / "book.epub"
    result = _python_converter().convert(script, output)

    assert result.ok
    assert result.returncode == 0
    assert output.read_text() == "done"


def test_convert_reports_exit_code_and_stderr(tmp_path: Path):
    script = _script(tmp_path, "import sys\nsys.stderr.write('bad input')\nsys.exit(3)\n")
    result = _python_converter().convert(script, tmp_path / "book.epub")

    assert not result.ok
    assert result.returncode == 3
    assert "bad input" in result.diagnostics


def test_convert_kills_process_after_timeout(tmp_path: Path):
    script = _script(tmp_path, "import time\ntime.sleep(30)\n")
    result = _python_converter(timeout=0.5).convert(script, tmp_path / "book.epub")

    assert not result.ok
    assert "timed out" in result.diagnostics


def test_convert_stops_when_cancelled(tmp_path: Path):
    script = _script(tmp_path, "import time\ntime.sleep(30)\n")
    cancel_event = threading.Event()
    cancel_event.set()
    result = _python_converter().convert(script, tmp_path / "book.epub", cancel_event=cancel_event)

    assert result.cancelled
    assert not result.ok


def test_missing_binary_is_a_failed_conversion(tmp_path: Path):
    converter = CalibreConverter(ConverterSettings(command=str(tmp_path / "no-such-tool")))
    result = converter.convert(tmp_path / "in.epub", tmp_path / "out.epub")
    assert not result.ok


def test_ensure_available_checks_path():
    CalibreConverter(ConverterSettings(command=sys.executable)).ensure_available()
    with pytest.raises(ConverterNotFoundError):
        CalibreConverter(
            ConverterSettings(command="definitely-not-ebook-convert-xyz")
        ).ensure_available()


def test_build_command_appends_extra_options():
    converter = CalibreConverter(ConverterSettings(extra_options=["--pretty-print"]))
    cmd = converter.build_command(Path("in.htmlz"), Path("out.azw3"), ["--verbose"])
    assert cmd == ["ebook-convert", "in.htmlz", "out.azw3", "--pretty-print", "--verbose"]


def test_callable_converter_and_factory():
    seen: list[tuple[Path, Path]] = []

    def func(src: Path, dst: Path, options) -> ConversionResult:
        seen.append((src, dst))
        return ConversionResult(ok=True)

    converter = CallableConverter(func)
    assert converter.convert(Path("a"), Path("b")).ok
    assert seen == [(Path("a"), Path("b"))]

    cancelled = threading.Event()
    cancelled.set()
    assert converter.convert(Path("a"), Path("b"), cancel_event=cancelled).cancelled
    assert isinstance(create_converter(WordwiseConfig()), CalibreConverter)
