"""CSV export of stored samples."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from aquascore.core.logger import Logger
from aquascore.services.store import SampleStore

LEADING_COLUMNS = [
    "sample_id",
    "state",
    "district",
    "block",
    "village",
    "latitude",
    "longitude",
    "hpi",
    "mi",
    "cd",
    "category",
    "sampling_date",
    "well_type",
    "created_at",
]


def samples_frame(store: SampleStore, *, category: str | None = None) -> pd.DataFrame:
    """Return stored samples in export column order with indices as 3-decimal text."""
    df = store.to_frame()
    if df.empty:
        return pd.DataFrame(columns=LEADING_COLUMNS)
    if category is not None:
        df = df[df["category"] == category].copy()
    for col in ("hpi", "mi", "cd"):
        df[col] = df[col].map(lambda v: f"{float(v):.3f}")
    measured = sorted(c for c in df.columns if c.startswith(("metal_", "wq_")))
    return df[LEADING_COLUMNS + measured].reset_index(drop=True)


def export_samples_csv(
    store: SampleStore,
    output: str | Path,
    *,
    category: str | None = None,
    logger: logging.Logger | None = None,
) -> str:
    """Write stored samples to *output* as CSV and return the path."""
    log = logger or Logger.get_logger(__name__)
    df = samples_frame(store, category=category)
    Path(output).parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output, index=False)
    log.info("Wrote %d samples to %s", len(df), output)
    return str(output)
