from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, List, Mapping, MutableMapping

import yaml

from .textutils import split_formats


@dataclass(slots=True)
class ConverterSettings:
    """Configuration block for the external ebook converter."""

    command: str = "ebook-convert"
    timeout: float | None = 600.0
    poll_interval: float = 0.2
    extra_options: List[str] = field(default_factory=list)


@dataclass(slots=True)
class WordwiseConfig:
    """Options shared by every file of a wordwise generation run."""

    max_hint_level: int = 5
    max_distance: int = 1000
    output_formats: List[str] = field(default_factory=lambda: ["epub"])
    output_dir: str | None = None
    parallel: int = 0
    generated_folder_name: str = "wordwise_generated"
    dictionary_path: str = "wordwise-dict.csv"
    fail_fast: bool = False
    converter: ConverterSettings = field(default_factory=ConverterSettings)

    def to_dict(self) -> dict[str, Any]:
        """Return a mutable dictionary representation of the configuration."""
        return dict(asdict(self))

    def validate(self) -> None:
        """Raise ValueError when a value is outside its accepted range."""
        if not 1 <= self.max_hint_level <= 5:
            raise ValueError(
                f"max_hint_level must be between 1 and 5, got {self.max_hint_level}."
            )
        if self.max_distance < 0:
            raise ValueError("max_distance must not be negative.")
        if self.parallel < 0:
            raise ValueError("parallel must not be negative.")
        if not self.output_formats:
            raise ValueError("At least one output format is required.")
        if not self.generated_folder_name:
            raise ValueError("generated_folder_name must not be empty.")
        if self.converter.timeout is not None and self.converter.timeout <= 0:
            raise ValueError("converter.timeout must be positive when set.")


def _build_kwargs(data: Mapping[str, Any]) -> dict[str, Any]:
    allowed = {field.name for field in fields(WordwiseConfig)}
    kwargs = {key: data[key] for key in data if key in allowed}
    if "output_formats" in kwargs:
        kwargs["output_formats"] = _coerce_formats(kwargs["output_formats"])
    if "converter" in data:
        converter_value = data["converter"]
        if isinstance(converter_value, ConverterSettings):
            kwargs["converter"] = converter_value
        elif isinstance(converter_value, Mapping):
            kwargs["converter"] = _build_converter_settings(converter_value)
        else:
            kwargs.pop("converter", None)
    return kwargs


def _build_converter_settings(data: Mapping[str, Any]) -> ConverterSettings:
    converter_allowed = {field.name for field in fields(ConverterSettings)}
    filtered = {key: data[key] for key in data if key in converter_allowed}
    if "extra_options" in filtered:
        filtered["extra_options"] = [str(opt) for opt in filtered["extra_options"] or []]
    return ConverterSettings(**filtered)


def _coerce_formats(value: Any) -> List[str]:
    if isinstance(value, str):
        return split_formats(value)
    return split_formats(",".join(str(item) for item in value or []))


def config_from_dict(data: Mapping[str, Any] | None) -> WordwiseConfig:
    """Build a WordwiseConfig from a dictionary-like input."""
    if data is None:
        return WordwiseConfig()
    return WordwiseConfig(**_build_kwargs(data))


def config_from_yaml(path: str | Path) -> WordwiseConfig:
    """Load configuration from a YAML file."""
    contents = Path(path).read_text(encoding="utf-8")
    parsed = yaml.safe_load(contents) or {}
    if not isinstance(parsed, MutableMapping):
        raise ValueError("Configuration YAML must define a mapping.")
    return config_from_dict(parsed)


def load_config(path: str | Path | None = None) -> WordwiseConfig:
    """Load configuration from YAML when provided, otherwise return defaults."""
    if path is None:
        return WordwiseConfig()
    return config_from_yaml(path)
