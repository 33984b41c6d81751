"""Read-side aggregate queries over the sample store."""

from __future__ import annotations

from typing import Any, Dict, List, Sequence

import pandas as pd

from aquascore.quality.indices import Category, round3
from aquascore.services.store import SampleStore

INDEX_COLUMNS = ("hpi", "mi", "cd")
DEFAULT_METALS = ("lead", "cadmium", "arsenic", "chromium")


def _mean(series: pd.Series) -> float | None:
    series = pd.to_numeric(series, errors="coerce").dropna()
    if series.empty:
        return None
    return round3(float(series.mean()))


def summarize(store: SampleStore) -> Dict[str, Any]:
    """
    Return the sample count, per-category counts and average indices.

    Returns:
        ``{"total_samples": int, "categories": [{"category", "count"}],
        "averages": {"avg_hpi", "avg_mi", "avg_cd"}}``; ``averages`` is empty
        when the store holds no samples.
    """
    df = store.to_frame()
    if df.empty:
        return {"total_samples": 0, "categories": [], "averages": {}}
    counts = df["category"].value_counts()
    order = [c.value for c in Category] + sorted(set(counts.index) - {c.value for c in Category})
    categories = [
        {"category": name, "count": int(counts[name])} for name in order if name in counts
    ]
    averages = {f"avg_{col}": _mean(df[col]) for col in INDEX_COLUMNS}
    return {"total_samples": int(len(df)), "categories": categories, "averages": averages}


def index_trend(store: SampleStore) -> List[Dict[str, Any]]:
    """Average indices per creation day (``YYYY-MM-DD``), oldest first."""
    df = store.to_frame()
    if df.empty:
        return []
    df["day"] = pd.to_datetime(df["created_at"], utc=True, format="ISO8601").dt.strftime("%Y-%m-%d")
    grouped = df.groupby("day", sort=True)[list(INDEX_COLUMNS)].mean()
    return [
        {
            "date": day,
            "avg_hpi": round3(float(row["hpi"])),
            "avg_mi": round3(float(row["mi"])),
            "avg_cd": round3(float(row["cd"])),
        }
        for day, row in grouped.iterrows()
    ]


def contamination_distribution(
    store: SampleStore, metals: Sequence[str] | None = None
) -> Dict[str, float | None]:
    """Average concentration per metal (mg/L); ``None`` where never measured."""
    df = store.to_frame()
    names = list(metals) if metals else list(DEFAULT_METALS)
    out: Dict[str, float | None] = {}
    for metal in names:
        col = f"metal_{metal}"
        out[metal] = _mean(df[col]) if col in df.columns else None
    return out


def map_points(store: SampleStore, *, category: str | None = None) -> List[Dict[str, Any]]:
    """Lightweight marker list for map views."""
    return [
        {
            "id": r.id,
            "sample_id": r.sample_id,
            "lat": r.latitude,
            "lng": r.longitude,
            "category": r.category,
            "hpi": r.indices.get("hpi", 0.0),
        }
        for r in store.find(category=category)
    ]
