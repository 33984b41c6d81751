"""
Module `quality.indices` turns raw per-sample measurements into the heavy-metal
pollution index (HPI), metal index (MI), contamination degree (CD) and a safety
category.

Two formulas are provided:

* :func:`compute_indices` normalises every metal known to the threshold table
  against its limit and is the production path.
* :func:`compute_legacy_indices` reproduces the fixed four-metal formula that
  older stored records were scored with.

Both are pure functions. Unless ``strict=True`` is passed, malformed or missing
numbers are coerced (0, or 7 for pH) and the functions never raise.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Context, Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Mapping

from aquascore.quality.thresholds import ThresholdTable, default_thresholds, load_thresholds

NEUTRAL_PH = 7.0
LEGACY_METALS = ("lead", "cadmium", "arsenic", "chromium")
WATER_QUALITY_KEYS = ("pH", "tds", "hardness", "fluoride", "nitrate")

_MILLI = Decimal("0.001")
# wide enough to quantize any finite float
_ROUNDING = Context(prec=400, rounding=ROUND_HALF_UP)


class Category(str, Enum):
    """Coarse safety label for a sample."""

    SAFE = "safe"
    MODERATE = "moderate"
    UNSAFE = "unsafe"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class IndexResult:
    """Indices for one sample, each rounded to three decimals."""

    hpi: float
    mi: float
    cd: float
    category: Category

    def indices(self) -> dict[str, float]:
        return {"hpi": self.hpi, "mi": self.mi, "cd": self.cd}

    def as_dict(self) -> dict[str, Any]:
        return {**self.indices(), "category": self.category.value}

    def formatted(self) -> dict[str, str]:
        """Return the numeric fields as strings with exactly three decimals."""
        return {k: f"{v:.3f}" for k, v in self.indices().items()}


class MeasurementValidationError(ValueError):
    """Raised in strict mode when a measurement would otherwise be coerced."""

    def __init__(self, issues: list[str]) -> None:
        self.issues = list(issues)
        super().__init__("Invalid measurements: " + "; ".join(self.issues))


def round3(value: float) -> float:
    """Round half away from zero to three decimals.

    Rounding works on the shortest decimal representation of *value*, so
    ``round3(0.0005) == 0.001`` although the binary double is slightly smaller.
    """
    if not math.isfinite(value):
        return value
    rounded = Decimal(repr(value)).quantize(_MILLI, context=_ROUNDING)
    return float(rounded) + 0.0


def coerce_number(value: Any, default: float = 0.0) -> float:
    """Parse *value* as a float, falling back to *default*.

    ``None``, unparsable values, NaN and infinities all yield *default*.
    Negative numbers pass through unchanged.
    """
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(number):
        return default
    return number


def _is_valid_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return False
    return math.isfinite(number) and number >= 0


def _section(sample: Any, *keys: str) -> tuple[Mapping[str, Any], bool]:
    """Return the first mapping stored under *keys* and whether the value was usable."""
    if not isinstance(sample, Mapping):
        return {}, sample is None
    for key in keys:
        if key in sample:
            value = sample[key]
            if value is None:
                return {}, True
            if isinstance(value, Mapping):
                return value, True
            return {}, False
    return {}, True


def _metals(sample: Any) -> tuple[dict[str, Any], Mapping[str, Any], bool]:
    raw, ok = _section(sample, "metals")
    return {str(k).lower(): v for k, v in raw.items()}, raw, ok


def _water_quality(sample: Any) -> tuple[dict[str, Any], bool]:
    raw, ok = _section(sample, "waterQuality", "water_quality")
    normalised: dict[str, Any] = {}
    for key, value in raw.items():
        name = str(key)
        normalised["pH" if name.lower() == "ph" else name.lower()] = value
    return normalised, ok


def _validate(sample: Any) -> None:
    """Collect every field strict mode rejects and raise once."""
    issues: list[str] = []
    if sample is not None and not isinstance(sample, Mapping):
        raise MeasurementValidationError([f"sample must be a mapping, got {type(sample).__name__}"])
    _, raw_metals, ok = _metals(sample)
    if not ok:
        issues.append("metals: expected a mapping")
    for key, value in raw_metals.items():
        if value is not None and not _is_valid_number(value):
            issues.append(f"metals.{key}: {value!r} is not a non-negative number")
    water, ok = _water_quality(sample)
    if not ok:
        issues.append("waterQuality: expected a mapping")
    for key in WATER_QUALITY_KEYS:
        value = water.get(key)
        if value is None:
            continue
        if not _is_valid_number(value):
            issues.append(f"waterQuality.{key}: {value!r} is not a non-negative number")
        elif key == "pH" and float(value) > 14:
            issues.append(f"waterQuality.pH: {value!r} is outside 0-14")
    if issues:
        raise MeasurementValidationError(issues)


def _read_ph(water: Mapping[str, Any]) -> float:
    ph = coerce_number(water.get("pH"), NEUTRAL_PH)
    # stored records use 0 for "not measured"
    return NEUTRAL_PH if ph == 0 else ph


def classify(
    hpi: float,
    mi: float,
    cd: float,
    *,
    exceeds_metal: bool = False,
    exceeds_other: bool = False,
) -> Category:
    """Category for threshold-normalised indices; the first matching rule wins."""
    if hpi > 100 or mi > 1 or cd > 3 or exceeds_metal or exceeds_other:
        return Category.UNSAFE
    if hpi > 50 or mi > 0.5 or cd > 1.5:
        return Category.MODERATE
    return Category.SAFE


def exceeds_water_quality(water: Mapping[str, Any], thresholds: ThresholdTable) -> bool:
    """True when fluoride, nitrate, TDS or pH breach their limits."""
    ph = _read_ph(water)
    fluoride = coerce_number(water.get("fluoride"))
    nitrate = coerce_number(water.get("nitrate"))
    tds = coerce_number(water.get("tds"))
    return (
        fluoride > thresholds.fluoride * 1.5
        or nitrate > thresholds.nitrate
        or tds > thresholds.tds * 2
        or ph < thresholds.ph_min
        or ph > thresholds.ph_max
    )


def compute_indices(
    sample: Mapping[str, Any] | None,
    thresholds: ThresholdTable | None = None,
    *,
    strict: bool = False,
) -> IndexResult:
    """
    Compute HPI, MI, CD and the category for one sample.

    Only metals present in both ``sample["metals"]`` and *thresholds* take
    part; others are ignored. With no participating metal all three indices
    are 0.

    Args:
        sample: mapping with ``metals`` and optionally ``waterQuality``
            (``water_quality`` is accepted too).
        thresholds: limit table; the bundled extended table when omitted.
        strict: raise :class:`MeasurementValidationError` instead of
            coercing invalid values.

    Returns:
        IndexResult with three-decimal indices.
    """
    if strict:
        _validate(sample)
    table = thresholds if thresholds is not None else default_thresholds()
    metals, _, _ = _metals(sample)
    water, _ = _water_quality(sample)

    ratio_sum = 0.0
    conc_sum = 0.0
    active = 0
    exceeds_metal = False
    for name, raw in metals.items():
        limit = table.limit(name)
        if limit is None:
            continue
        conc = coerce_number(raw)
        ratio_sum += conc / limit
        conc_sum += conc
        active += 1
        if conc > limit:
            exceeds_metal = True

    if active:
        hpi = round3(ratio_sum * 100)
        # averages raw mg/L across metals; kept as-is for stored-record parity
        mi = round3(conc_sum / active * 10)
        cd = round3(ratio_sum)
    else:
        hpi = mi = cd = 0.0

    category = classify(
        hpi,
        mi,
        cd,
        exceeds_metal=exceeds_metal,
        exceeds_other=exceeds_water_quality(water, table),
    )
    return IndexResult(hpi=hpi, mi=mi, cd=cd, category=category)


def classify_legacy(hpi: float, mi: float, cd: float) -> Category:
    if hpi > 100 or mi > 20 or cd > 10:
        return Category.UNSAFE
    if hpi > 50 or mi > 10 or cd > 5:
        return Category.MODERATE
    return Category.SAFE


def compute_legacy_indices(
    sample: Mapping[str, Any] | None, *, strict: bool = False
) -> IndexResult:
    """Fixed four-metal formula; no threshold table involved."""
    if strict:
        _validate(sample)
    metals, _, _ = _metals(sample)
    lead, cadmium, arsenic, chromium = (coerce_number(metals.get(m)) for m in LEGACY_METALS)
    hpi = round3((lead + cadmium + arsenic + chromium) * 100)
    mi = round3((lead + cadmium) * 10)
    cd = round3(arsenic * 50)
    return IndexResult(hpi=hpi, mi=mi, cd=cd, category=classify_legacy(hpi, mi, cd))


class IndexEngine:
    """Binds a threshold table and scoring options to :func:`compute_indices`."""

    FORMULAS = ("threshold", "legacy")

    def __init__(
        self,
        thresholds: ThresholdTable | None = None,
        *,
        strict: bool = False,
        formula: str = "threshold",
    ) -> None:
        if formula not in self.FORMULAS:
            raise ValueError(
                f"Formula '{formula}' not supported. Choose from: {list(self.FORMULAS)}"
            )
        self.thresholds = thresholds if thresholds is not None else default_thresholds()
        self.strict = strict
        self.formula = formula

    @classmethod
    def from_config(cls, config) -> "IndexEngine":
        """Build an engine from a :class:`~aquascore.core.config.ConfigManager`."""
        return cls(
            load_thresholds(config.get_thresholds_path()),
            strict=bool(config.get("strict", False)),
            formula=config.get("formula", "threshold"),
        )

    def compute(self, sample: Mapping[str, Any] | None) -> IndexResult:
        if self.formula == "legacy":
            return compute_legacy_indices(sample, strict=self.strict)
        return compute_indices(sample, self.thresholds, strict=self.strict)

    __call__ = compute
