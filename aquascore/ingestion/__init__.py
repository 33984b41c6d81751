"""Tabular sample ingestion."""

from .csv_loader import (
    METAL_CANDIDATES,
    WATER_QUALITY_CANDIDATES,
    load_sample_rows,
    read_table,
    rows_from_frame,
)

__all__ = [
    "METAL_CANDIDATES",
    "WATER_QUALITY_CANDIDATES",
    "load_sample_rows",
    "read_table",
    "rows_from_frame",
]
