from __future__ import annotations

from typing import TYPE_CHECKING

from .base import (
    CallableConverter,
    ConversionError,
    ConversionResult,
    Converter,
    ConverterNotFoundError,
)
from .calibre import CalibreConverter

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from ..config import WordwiseConfig

__all__ = [
    "Converter",
    "CallableConverter",
    "CalibreConverter",
    "ConversionError",
    "ConversionResult",
    "ConverterNotFoundError",
    "create_converter",
]


def create_converter(config: "WordwiseConfig") -> Converter:
    """Build the converter described by the configuration."""
    return CalibreConverter(config.converter)
