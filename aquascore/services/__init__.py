"""Lightweight service-layer helpers used by the CLI and tests."""

from importlib import import_module

__all__ = [
    "SampleStore",
    "create_sample",
    "import_samples",
    "update_sample",
    "delete_sample",
    "summarize",
    "index_trend",
    "contamination_distribution",
    "map_points",
    "export_samples_csv",
]

_LOCATIONS = {
    "SampleStore": ".store",
    "create_sample": ".samples",
    "import_samples": ".samples",
    "update_sample": ".samples",
    "delete_sample": ".samples",
    "summarize": ".aggregates",
    "index_trend": ".aggregates",
    "contamination_distribution": ".aggregates",
    "map_points": ".aggregates",
    "export_samples_csv": ".exports",
}


def __getattr__(name):
    if name in _LOCATIONS:
        return getattr(import_module(_LOCATIONS[name], __name__), name)
    raise AttributeError(name)
