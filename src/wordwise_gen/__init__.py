"""
wordwise_gen package exports convenience helpers for library consumers.
"""

from __future__ import annotations

from .annotation import annotate, annotate_document, annotate_text, clean_word
from .batch import BatchDriver, run_batch
from .config import WordwiseConfig, config_from_dict, config_from_yaml, load_config
from .converters import create_converter
from .dictionary import load_dictionary
from .mediator import DistanceMediator

__all__ = [
    "WordwiseConfig",
    "config_from_dict",
    "config_from_yaml",
    "load_config",
    "annotate",
    "annotate_document",
    "annotate_text",
    "clean_word",
    "DistanceMediator",
    "load_dictionary",
    "create_converter",
    "BatchDriver",
    "run_batch",
]

__version__ = "0.1.0"
