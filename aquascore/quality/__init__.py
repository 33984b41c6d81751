from .indices import (
    Category,
    IndexEngine,
    IndexResult,
    MeasurementValidationError,
    coerce_number,
    compute_indices,
    compute_legacy_indices,
    round3,
)
from .thresholds import (
    ThresholdConfigError,
    ThresholdTable,
    default_thresholds,
    load_thresholds,
    minimal_thresholds,
)

__all__ = [
    "Category",
    "IndexEngine",
    "IndexResult",
    "MeasurementValidationError",
    "coerce_number",
    "compute_indices",
    "compute_legacy_indices",
    "round3",
    "ThresholdConfigError",
    "ThresholdTable",
    "default_thresholds",
    "load_thresholds",
    "minimal_thresholds",
]
