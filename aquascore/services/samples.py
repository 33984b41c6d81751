"""Service functions that score samples and keep the store in sync."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from aquascore.core.logger import Logger, sample_logger
from aquascore.ingestion.csv_loader import load_sample_rows
from aquascore.quality.indices import IndexEngine, MeasurementValidationError
from aquascore.schemas.sample import SampleRecord, SampleValidationError, canonical_keys
from aquascore.services.store import SampleStore

# Fields a caller may change directly; indices and category are always derived.
UPDATABLE_FIELDS = (
    "sample_id",
    "latitude",
    "longitude",
    "state",
    "district",
    "block",
    "village",
    "sampling_date",
    "well_type",
)


@dataclass
class ImportReport:
    """Outcome of a bulk import."""

    parsed: int
    inserted: List[SampleRecord] = field(default_factory=list)
    errors: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.inserted)


def _changed_section(values: Mapping[str, Any], key: str, label: str) -> Mapping[str, Any]:
    section = values.get(key)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise SampleValidationError(f"'{label}' must be a mapping, got {type(section).__name__}")
    return section


def _measurements(data: Mapping[str, Any]) -> Dict[str, Any]:
    values = canonical_keys(data)
    return {
        "metals": values.get("metals") or {},
        "waterQuality": values.get("water_quality") or {},
    }


def create_sample(
    data: Mapping[str, Any],
    *,
    store: SampleStore,
    engine: IndexEngine | None = None,
    logger: logging.Logger | None = None,
) -> SampleRecord:
    """Validate *data*, compute its indices and persist it.

    Raises:
        SampleValidationError: missing ``sample_id`` or bad coordinates.
        MeasurementValidationError: invalid measurements with a strict engine.
        DuplicateSampleError: ``sample_id`` already stored.
    """
    log = logger or Logger.get_logger(__name__)
    engine = engine or IndexEngine()
    record = SampleRecord.from_dict(data)
    result = engine.compute(_measurements(data))
    record.apply(result)
    sample_logger(log, record.sample_id).debug("Scored %s", result.as_dict())
    return store.insert(record)


def import_samples(
    path: str,
    *,
    store: SampleStore,
    engine: IndexEngine | None = None,
    column_map: Mapping[str, Sequence[str]] | None = None,
    ppb_divisor: float = 1000.0,
    logger: logging.Logger | None = None,
) -> ImportReport:
    """
    Load a CSV/Parquet table, score every row and insert the valid ones.

    Rows that fail validation (no coordinates, duplicate id, invalid
    measurements under a strict engine) are reported, not fatal.
    """
    log = logger or Logger.get_logger(__name__)
    engine = engine or IndexEngine()
    rows = load_sample_rows(path, column_map=column_map, ppb_divisor=ppb_divisor, logger=log)

    report = ImportReport(parsed=len(rows))
    scored: List[Dict[str, Any]] = []
    for row in rows:
        try:
            result = engine.compute(row)
        except MeasurementValidationError as exc:
            report.errors.append((row["sample_id"], str(exc)))
            continue
        scored.append({**row, "indices": result.indices(), "category": result.category.value})

    inserted, errors = store.insert_many(scored)
    report.inserted = inserted
    report.errors.extend((scored[pos]["sample_id"], msg) for pos, msg in errors)
    for sample_id, msg in report.errors:
        sample_logger(log, sample_id).warning("Not imported: %s", msg)
    log.info("Imported %d of %d samples from %s", report.count, report.parsed, path)
    return report


def update_sample(
    record_id: str,
    changes: Mapping[str, Any],
    *,
    store: SampleStore,
    engine: IndexEngine | None = None,
    logger: logging.Logger | None = None,
) -> SampleRecord:
    """
    Apply *changes* to a stored sample.

    ``metals`` / ``waterQuality`` entries are merged over the stored values
    and trigger a recomputation of the indices; other measurement-free edits
    keep the stored indices.
    """
    log = logger or Logger.get_logger(__name__)
    engine = engine or IndexEngine()
    current = store.get(record_id)
    values = canonical_keys(changes)

    data = current.to_dict()
    for name in UPDATABLE_FIELDS:
        if name in values:
            data[name] = values[name]

    remeasured = "metals" in values or "water_quality" in values
    if remeasured:
        changed_metals = _changed_section(values, "metals", "metals")
        changed_water = _changed_section(values, "water_quality", "waterQuality")
        metals = {**current.metals, **{str(k).lower(): v for k, v in changed_metals.items()}}
        water = {**current.water_quality, **changed_water}
        result = engine.compute({"metals": metals, "waterQuality": water})
        data["metals"] = metals
        data["water_quality"] = water
        data["indices"] = result.indices()
        data["category"] = result.category.value

    record = SampleRecord.from_dict(data)
    updated = store.replace(record)
    if remeasured:
        sample_logger(log, updated.sample_id).info("Recomputed indices: %s", updated.indices)
    return updated


def delete_sample(
    record_id: str,
    *,
    store: SampleStore,
    logger: logging.Logger | None = None,
) -> SampleRecord:
    log = logger or Logger.get_logger(__name__)
    record = store.delete(record_id)
    log.debug("Removed %s", record.sample_id)
    return record
