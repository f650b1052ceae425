from .aggregate import AggregationConfig, aggregate_probabilities, is_inconsistent
from .verdict import VerdictConfig, decide

__all__ = [
    "AggregationConfig",
    "aggregate_probabilities",
    "is_inconsistent",
    "VerdictConfig",
    "decide",
]
