"""
Selection Module
================

Frame ranking and per-window selection.

Components:
    - SimilarityMetric: Protocol for scoring frames within a window
    - NoopMetric: Keeps the first frame of every window
    - MeanSquaredErrorMetric: Keeps the most representative frame
    - WindowSelector: Windowing state machine emitting one Selection
      per window
"""

from smoothlapse.selection.metrics import (
    SimilarityMetric,
    NoopMetric,
    MeanSquaredErrorMetric,
    get_metric,
)
from smoothlapse.selection.selector import (
    SelectorState,
    WindowSelector,
    iter_windows,
)


__all__ = [
    "SimilarityMetric",
    "NoopMetric",
    "MeanSquaredErrorMetric",
    "get_metric",
    "SelectorState",
    "WindowSelector",
    "iter_windows",
]
