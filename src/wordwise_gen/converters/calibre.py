from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
import threading
import time
from pathlib import Path
from typing import List, Sequence

from ..config import ConverterSettings
from .base import ConversionResult, Converter, ConverterNotFoundError

logger = logging.getLogger(__name__)


class CalibreConverter(Converter):
    """Run Calibre's ``ebook-convert`` (or a compatible command) as a subprocess."""

    def __init__(self, settings: ConverterSettings | None = None) -> None:
        self._settings = settings or ConverterSettings()

    @property
    def settings(self) -> ConverterSettings:
        return self._settings

    def ensure_available(self) -> None:
        if shutil.which(self._settings.command) is None:
            raise ConverterNotFoundError(
                f"Could not find '{self._settings.command}'. Install Calibre and make "
                "sure the 'ebook-convert' command is on PATH."
            )

    def build_command(self, input_path: Path, output_path: Path, options: Sequence[str] = ()) -> List[str]:
        return [
            self._settings.command,
            str(input_path),
            str(output_path),
            *self._settings.extra_options,
            *options,
        ]

    def convert(
        self,
        input_path: Path,
        output_path: Path,
        options: Sequence[str] = (),
        cancel_event: threading.Event | None = None,
    ) -> ConversionResult:
        cmd = self.build_command(input_path, output_path, options)
        logger.debug("Running %s", shlex.join(cmd))
        timeout = self._settings.timeout
        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                errors="replace",
            )
        except OSError as exc:
            return ConversionResult(ok=False, diagnostics=f"{shlex.join(cmd)}: {exc}")

        with proc:
            while True:
                try:
                    _, stderr = proc.communicate(timeout=self._settings.poll_interval)
                    break
                except subprocess.TimeoutExpired:
                    if cancel_event is not None and cancel_event.is_set():
                        _kill(proc)
                        return ConversionResult(
                            ok=False, diagnostics="cancelled", cancelled=True
                        )
                    if deadline is not None and time.monotonic() >= deadline:
                        _kill(proc)
                        return ConversionResult(
                            ok=False,
                            diagnostics=f"{shlex.join(cmd)} timed out after {timeout}s",
                        )

        if proc.returncode != 0:
            return ConversionResult(
                ok=False,
                diagnostics=(
                    f"{shlex.join(cmd)} exited with {proc.returncode}: "
                    f"{(stderr or '').strip()}"
                ),
                returncode=proc.returncode,
            )
        return ConversionResult(ok=True, returncode=proc.returncode)


def _kill(proc: subprocess.Popen[str]) -> None:
    proc.kill()
    proc.communicate()
