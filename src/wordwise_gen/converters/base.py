from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Sequence


class ConversionError(RuntimeError):
    """Raised when the external converter fails for one file."""


class ConverterNotFoundError(RuntimeError):
    """Raised when the converter executable is not installed."""


@dataclass(slots=True)
class ConversionResult:
    """Outcome of one converter invocation."""

    ok: bool
    diagnostics: str = ""
    returncode: int | None = None
    cancelled: bool = False


class Converter(ABC):
    """Abstract ebook converter: ``input_path`` -> ``output_path`` by extension."""

    def ensure_available(self) -> None:
        """Raise ConverterNotFoundError when the converter cannot run."""

    @abstractmethod
    def convert(
        self,
        input_path: Path,
        output_path: Path,
        options: Sequence[str] = (),
        cancel_event: threading.Event | None = None,
    ) -> ConversionResult:
        """Convert ``input_path`` into ``output_path``."""
        raise NotImplementedError


ConvertFunc = Callable[[Path, Path, Sequence[str]], ConversionResult]


class CallableConverter(Converter):
    """Adapt an arbitrary callable into the Converter interface."""

    def __init__(self, func: ConvertFunc) -> None:
        self._func = func

    def convert(
        self,
        input_path: Path,
        output_path: Path,
        options: Sequence[str] = (),
        cancel_event: threading.Event | None = None,
    ) -> ConversionResult:
        if cancel_event is not None and cancel_event.is_set():
            return ConversionResult(ok=False, diagnostics="cancelled", cancelled=True)
        return self._func(input_path, output_path, options)
