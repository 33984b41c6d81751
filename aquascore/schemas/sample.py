from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Mapping

from aquascore.quality.indices import IndexResult, coerce_number

# Persisted sample documents. Field names are snake_case; ``ALIASES`` lists
# the camelCase spellings accepted from JSON payloads and older exports.


class SampleValidationError(ValueError):
    """Raised when a sample lacks an identifier or valid coordinates."""


ALIASES: Dict[str, str] = {
    "_id": "id",
    "sampleId": "sample_id",
    "waterQuality": "water_quality",
    "samplingDate": "sampling_date",
    "wellType": "well_type",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def _coordinate(name: str, value: Any, bound: float) -> float:
    if value is None or value == "":
        raise SampleValidationError(f"'{name}' is required")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise SampleValidationError(f"'{name}' must be numeric, got {value!r}") from exc
    if not -bound <= number <= bound:
        raise SampleValidationError(f"'{name}' {number} is outside ±{bound:g}")
    return number


def numeric_map(
    values: Mapping[str, Any] | None, *, lower: bool = False
) -> Dict[str, float]:
    """Coerce every value of *values* to float (0 when unusable).

    With *lower* the keys are lowercased, matching how the engine looks up
    metal names.
    """
    if not isinstance(values, Mapping):
        return {}
    return {(str(k).lower() if lower else str(k)): coerce_number(v) for k, v in values.items()}


def canonical_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Return *data* with camelCase aliases renamed to record field names."""
    return {ALIASES.get(k, k): v for k, v in data.items()}


@dataclass
class GeoPoint:
    """GeoJSON point; coordinates are stored longitude first."""

    longitude: float
    latitude: float

    def to_geojson(self) -> Dict[str, Any]:
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}


@dataclass
class SampleRecord:
    """One groundwater sample with its measurements and computed indices."""

    sample_id: str
    latitude: float
    longitude: float
    # Location details
    state: str | None = None
    district: str | None = None
    block: str | None = None
    village: str | None = None
    # Measurements (mg/L except pH)
    water_quality: Dict[str, float] = field(default_factory=dict)
    metals: Dict[str, float] = field(default_factory=dict)
    # Computed
    indices: Dict[str, float] = field(
        default_factory=lambda: {"hpi": 0.0, "mi": 0.0, "cd": 0.0}
    )
    category: str = "safe"
    sampling_date: str | None = None
    well_type: str | None = None
    # Store bookkeeping
    id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(longitude=self.longitude, latitude=self.latitude)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SampleRecord":
        """Build a record from a payload, validating identifier and coordinates.

        Unknown keys (including a stored ``location``) are ignored; the
        location is always derived from ``latitude``/``longitude``.
        """
        values = canonical_keys(data)
        sample_id = values.get("sample_id")
        if sample_id is None or str(sample_id).strip() == "":
            raise SampleValidationError("'sample_id' is required")
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known}
        kwargs["sample_id"] = str(sample_id).strip()
        kwargs["latitude"] = _coordinate("latitude", values.get("latitude"), 90)
        kwargs["longitude"] = _coordinate("longitude", values.get("longitude"), 180)
        kwargs["metals"] = numeric_map(values.get("metals"), lower=True)
        kwargs["water_quality"] = numeric_map(values.get("water_quality"))
        if isinstance(values.get("indices"), Mapping):
            kwargs["indices"] = numeric_map(values["indices"])
        return cls(**kwargs)

    def measurements(self) -> Dict[str, Any]:
        """Engine input for this record."""
        return {"metals": dict(self.metals), "waterQuality": dict(self.water_quality)}

    def apply(self, result: IndexResult) -> None:
        self.indices = result.indices()
        self.category = result.category.value

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["location"] = self.location.to_geojson()
        return data


__all__ = [
    "ALIASES",
    "GeoPoint",
    "SampleRecord",
    "SampleValidationError",
    "canonical_keys",
    "numeric_map",
]
