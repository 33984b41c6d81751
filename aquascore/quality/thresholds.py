"""Regulatory limit tables used to normalise sample measurements."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

import yaml

from aquascore.core.config import ConfigManager, ConfigValidationError


class ThresholdConfigError(ConfigValidationError):
    """Raised when a threshold table is missing or holds invalid limits."""


def _limit(name: str, value: Any) -> float:
    try:
        limit = float(value)
    except (TypeError, ValueError) as exc:
        raise ThresholdConfigError(f"Threshold '{name}' is not numeric: {value!r}") from exc
    if math.isnan(limit) or math.isinf(limit) or limit <= 0:
        raise ThresholdConfigError(f"Threshold '{name}' must be positive, got {value!r}")
    return limit


@dataclass(frozen=True)
class ThresholdTable:
    """Per-parameter limits: metals in mg/L plus pH bounds, fluoride, nitrate and TDS."""

    metals: Mapping[str, float] = field(default_factory=dict)
    ph_min: float = 6.5
    ph_max: float = 8.5
    fluoride: float = 1.0
    nitrate: float = 45.0
    tds: float = 500.0

    def __post_init__(self) -> None:
        metals = {str(k).lower(): _limit(str(k), v) for k, v in dict(self.metals).items()}
        object.__setattr__(self, "metals", MappingProxyType(metals))
        for name in ("ph_min", "ph_max", "fluoride", "nitrate", "tds"):
            object.__setattr__(self, name, _limit(name, getattr(self, name)))
        if self.ph_min >= self.ph_max:
            raise ThresholdConfigError(
                f"ph_min ({self.ph_min}) must be lower than ph_max ({self.ph_max})"
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ThresholdTable":
        """Build a table from a parsed mapping.

        ``pH_min``/``pH_max`` are accepted as spellings of ``ph_min``/``ph_max``.
        """
        if not isinstance(data, Mapping):
            raise ThresholdConfigError("Threshold table must be a mapping")
        metals = data.get("metals") or {}
        if not isinstance(metals, Mapping):
            raise ThresholdConfigError("'metals' must map metal names to limits")
        defaults = cls.__dataclass_fields__
        kwargs: dict[str, Any] = {"metals": metals}
        for name in ("ph_min", "ph_max", "fluoride", "nitrate", "tds"):
            alias = name.replace("ph_", "pH_")
            if name in data:
                kwargs[name] = data[name]
            elif alias in data:
                kwargs[name] = data[alias]
            else:
                kwargs[name] = defaults[name].default
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ThresholdTable":
        """Load a table from a YAML file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ThresholdConfigError(f"Failed to load thresholds from {path}: {exc}") from exc
        return cls.from_mapping(data)

    def limit(self, metal: str) -> float | None:
        return self.metals.get(metal.lower())

    def as_dict(self) -> dict[str, Any]:
        return {
            "metals": dict(self.metals),
            "ph_min": self.ph_min,
            "ph_max": self.ph_max,
            "fluoride": self.fluoride,
            "nitrate": self.nitrate,
            "tds": self.tds,
        }


@lru_cache(maxsize=None)
def load_thresholds(path: str = ConfigManager.DEFAULT_THRESHOLDS_PATH) -> ThresholdTable:
    """Return the table stored at *path*, parsed once per process."""
    return ThresholdTable.from_yaml(path)


def default_thresholds() -> ThresholdTable:
    """Bundled extended table (seven metals)."""
    return load_thresholds(ConfigManager.DEFAULT_THRESHOLDS_PATH)


def minimal_thresholds() -> ThresholdTable:
    """Bundled four-metal table."""
    return load_thresholds(ConfigManager.MINIMAL_THRESHOLDS_PATH)
