"""Build, write and export configuration.

All configuration objects are plain dataclasses with defaults matching a
typical baseline export. ``ExportConfig.from_dict`` and ``load_config``
accept the snake_case JSON layout used by the ``--config`` CLI flag::

    {
      "design_name": "Board",
      "compress": false,
      "build": {"use_simplified": true, "unit": "mm"},
      "write": {"pretty_print": true, "decimal_places": 4}
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

from .errors import ConfigurationError


class GlobalUnit(Enum):
    MM = "UNIT_MM"
    INCH = "UNIT_INCH"
    MIL = "UNIT_MIL"
    CM = "UNIT_CM"


_UNIT_ALIASES: dict[str, GlobalUnit] = {
    "mm": GlobalUnit.MM,
    "inch": GlobalUnit.INCH,
    "in": GlobalUnit.INCH,
    "mil": GlobalUnit.MIL,
    "cm": GlobalUnit.CM,
}


def parse_unit(value: str | GlobalUnit) -> GlobalUnit:
    """Accept "mm"/"inch"/"mil"/"cm", the UNIT_* names, or a GlobalUnit."""
    if isinstance(value, GlobalUnit):
        return value
    alias = _UNIT_ALIASES.get(value.lower())
    if alias is not None:
        return alias
    for unit in GlobalUnit:
        if unit.value == value.upper():
            return unit
    msg = f"Unknown length unit: {value!r}"
    raise ConfigurationError(msg, field="unit")


@dataclass
class BuildConfig:
    use_simplified: bool = True
    unit: GlobalUnit = GlobalUnit.MM
    precision: int = 3  # decimals used to deduplicate points
    include_non_collaborative: bool = False
    include_history: bool = False
    system_scope: str = ""

    def __post_init__(self) -> None:
        self.unit = parse_unit(self.unit)
        _check_decimals(self.precision, "precision")


@dataclass
class NumberFormatting:
    decimal_places: int = 3
    remove_trailing_zeros: bool = True

    def __post_init__(self) -> None:
        _check_decimals(self.decimal_places, "decimal_places")


@dataclass
class WriteConfig:
    enable_comments: bool = True
    pretty_print: bool = True
    number_formatting: NumberFormatting = field(default_factory=NumberFormatting)
    extra_namespaces: dict[str, str] = field(default_factory=dict)


@dataclass
class ExportConfig:
    design_name: str = ""
    directory: str = "."
    compress: bool = False
    naming_pattern: str = "{design_name}_{type}_{sequence:03d}"
    sequence: int = 1
    creator_system: str = "ECAD"
    creator_company: str = "Company Name"
    build: BuildConfig = field(default_factory=BuildConfig)
    write: WriteConfig = field(default_factory=WriteConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExportConfig:
        """Create a config from a nested dict, rejecting unknown keys."""
        data = dict(data)
        build = BuildConfig(**_known(BuildConfig, data.pop("build", {}), "build"))

        write_data = dict(data.pop("write", {}))
        numbers = {
            key: write_data.pop(key)
            for key in ("decimal_places", "remove_trailing_zeros")
            if key in write_data
        }
        write = WriteConfig(
            number_formatting=NumberFormatting(**numbers),
            **_known(WriteConfig, write_data, "write"),
        )
        return cls(build=build, write=write, **_known(cls, data, "export"))


def load_config(path: str | Path) -> ExportConfig:
    """Load an ExportConfig from a JSON file."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in config file {path}: {exc}"
        raise ConfigurationError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Config file {path} must contain a JSON object"
        raise ConfigurationError(msg)
    return ExportConfig.from_dict(data)


def _known(cls: type, data: dict[str, Any], section: str) -> dict[str, Any]:
    allowed = {f.name for f in fields(cls)} - {"build", "write", "number_formatting"}
    unknown = sorted(set(data) - allowed)
    if unknown:
        msg = f"Unknown {section} config key(s): {', '.join(unknown)}"
        raise ConfigurationError(msg, reference=section)
    return data


def _check_decimals(value: int, name: str) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 12:
        msg = f"{name} must be an integer between 0 and 12, got {value!r}"
        raise ConfigurationError(msg, field=name)
