"""
Module `ingestion.csv_loader` turns laboratory spreadsheets into sample
payloads ready for the index engine.

Column names vary between labs, so every canonical field is resolved through
an ordered list of candidate headers (case-insensitive). Metal columns whose
header carries a ppb / µg/L suffix are converted to mg/L. Negative or
non-numeric metal readings are clamped to 0 before the engine sees them.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence

import pandas as pd

from aquascore.core.config import ConfigManager
from aquascore.core.logger import Logger

METAL_CANDIDATES: Dict[str, List[str]] = {
    "lead": ["lead", "pb"],
    "cadmium": ["cadmium", "cd_metal", "cd (metal)"],
    "arsenic": ["arsenic", "as"],
    "chromium": ["chromium", "cr"],
    "uranium": ["uranium", "uranimun", "u"],
    "iron": ["iron", "fe"],
    "mercury": ["mercury", "hg"],
}

WATER_QUALITY_CANDIDATES: Dict[str, List[str]] = {
    "pH": ["ph", "p_h"],
    "tds": ["tds", "total_dissolved_solids"],
    "hardness": ["hardness", "total_hardness", "th"],
    "fluoride": ["fluoride", "f"],
    "nitrate": ["nitrate", "no3"],
}

FIELD_CANDIDATES: Dict[str, List[str]] = {
    "sample_id": ["sampleid", "sample_id", "sample id", "id", "well_id"],
    "latitude": ["latitude", "lat", "y"],
    "longitude": ["longitude", "lon", "lng", "long", "x"],
    "state": ["state"],
    "district": ["district"],
    "block": ["block"],
    "village": ["village", "site"],
    "sampling_date": ["samplingdate", "sampling_date", "date"],
    "well_type": ["welltype", "well_type"],
}

MG_L_SUFFIXES = ("", "_mg_l", "_mgl", " (mg/l)", "_mg/l")
PPB_SUFFIXES = ("_ppb", " (ppb)", "_ug_l", "_µg_l", " (ug/l)", " (µg/l)")
PPB_UNITS = ("ppb", "ug/l", "µg/l", "ug_l", "µg_l")


def read_table(
    path: str | Path, formats: Sequence[str] = ConfigManager.SUPPORTED_TABLE_FORMATS
) -> pd.DataFrame:
    """Return a DataFrame loaded from CSV or Parquet at *path*.

    CSV cells are kept as text so ids like ``007`` survive; *formats* lists
    the accepted suffixes.
    """
    suffix = Path(path).suffix.lower()
    if suffix not in formats:
        raise ValueError(f"Unsupported table format: {suffix or path}")
    if suffix == ".parquet":
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _lower_map(cols) -> dict[str, str]:
    return {str(c).strip().lower(): str(c) for c in cols}


def _find_col(cols_lower: Mapping[str, str], candidates: Sequence[str]) -> str | None:
    for cand in candidates:
        key = str(cand).strip().lower()
        if key in cols_lower:
            return cols_lower[key]
    return None


def _unit_divisor(header: str, ppb_divisor: float) -> float:
    lowered = header.lower()
    return ppb_divisor if any(unit in lowered for unit in PPB_UNITS) else 1.0


def _find_measure_col(
    cols_lower: Mapping[str, str], candidates: Sequence[str], ppb_divisor: float
) -> tuple[str, float] | None:
    """Return ``(column, divisor)`` for the first header matching a candidate.

    The divisor follows the unit named in the matched header, so a mapped
    header such as ``Pb (ppb)`` is converted even without a suffix.
    """
    for cand in candidates:
        for suffix in MG_L_SUFFIXES + PPB_SUFFIXES:
            col = cols_lower.get(f"{cand}{suffix}".lower())
            if col is not None:
                return col, _unit_divisor(col, ppb_divisor)
    return None


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _parse_float(value: Any) -> float | None:
    if _blank(value):
        return None
    try:
        number = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _text(value: Any) -> str | None:
    return None if _blank(value) else str(value).strip()


def _merge_candidates(
    base: Mapping[str, List[str]], extra: Mapping[str, Sequence[str]] | None
) -> Dict[str, List[str]]:
    merged = {k: list(v) for k, v in base.items()}
    for key, names in (extra or {}).items():
        if key in merged:
            merged[key] = list(names) + merged[key]
    return merged


def rows_from_frame(
    df: pd.DataFrame,
    *,
    column_map: Mapping[str, Sequence[str]] | None = None,
    ppb_divisor: float = 1000.0,
    logger: logging.Logger | None = None,
) -> List[Dict[str, Any]]:
    """
    Convert *df* into sample payloads.

    Args:
        df: raw table, one sample per row.
        column_map: extra header candidates per canonical field, tried before
            the built-in ones (e.g. ``{"lead": ["Pb_total"]}``).
        ppb_divisor: divisor applied to ppb / µg/L metal columns.
        logger: optional logger for clamping and skipped-row warnings.

    Returns:
        List of dicts with ``sample_id``, coordinates, location fields,
        ``metals`` and ``waterQuality``.
    """
    log = logger or Logger.get_logger(__name__)
    cols_lower = _lower_map(df.columns)

    fields = {
        name: _find_col(cols_lower, cands)
        for name, cands in _merge_candidates(FIELD_CANDIDATES, column_map).items()
    }
    metal_cols = {}
    for metal, cands in _merge_candidates(METAL_CANDIDATES, column_map).items():
        found = _find_measure_col(cols_lower, cands, ppb_divisor)
        if found is not None:
            metal_cols[metal] = found
    wq_cols = {
        name: _find_col(cols_lower, cands)
        for name, cands in _merge_candidates(WATER_QUALITY_CANDIDATES, column_map).items()
    }
    wq_cols = {k: v for k, v in wq_cols.items() if v is not None}

    if not metal_cols:
        log.warning("No metal columns recognised in columns %s", list(df.columns))

    rows: List[Dict[str, Any]] = []
    for pos, record in enumerate(df.to_dict(orient="records"), start=1):
        sample_id = _text(record.get(fields["sample_id"])) if fields["sample_id"] else None
        if sample_id is None:
            log.warning("Row %d skipped: no sample id", pos)
            continue

        metals: Dict[str, float] = {}
        for metal, (col, divisor) in metal_cols.items():
            raw = record.get(col)
            value = _parse_float(raw)
            if value is None:
                if not _blank(raw):
                    log.warning("Row %d (%s): %s=%r is not numeric, using 0", pos, sample_id, metal, raw)
                value = 0.0
            elif value < 0:
                log.warning("Row %d (%s): negative %s=%s clamped to 0", pos, sample_id, metal, value)
                value = 0.0
            metals[metal] = value / divisor

        water: Dict[str, float] = {}
        for name, col in wq_cols.items():
            value = _parse_float(record.get(col))
            if value is not None:
                water[name] = value

        row: Dict[str, Any] = {
            "sample_id": sample_id,
            "latitude": _parse_float(record.get(fields["latitude"])) if fields["latitude"] else None,
            "longitude": _parse_float(record.get(fields["longitude"])) if fields["longitude"] else None,
            "metals": metals,
            "waterQuality": water,
        }
        for name in ("state", "district", "block", "village", "sampling_date", "well_type"):
            col = fields[name]
            if col:
                text = _text(record.get(col))
                if text is not None:
                    row[name] = text
        rows.append(row)

    log.info("Parsed %d of %d rows", len(rows), len(df))
    return rows


def load_sample_rows(
    path: str | Path,
    *,
    column_map: Mapping[str, Sequence[str]] | None = None,
    ppb_divisor: float = 1000.0,
    logger: logging.Logger | None = None,
) -> List[Dict[str, Any]]:
    """Read *path* (CSV or Parquet) and return sample payloads."""
    log = logger or Logger.get_logger(__name__)
    log.info("Loading samples from %s", path)
    return rows_from_frame(
        read_table(path), column_map=column_map, ppb_divisor=ppb_divisor, logger=log
    )
