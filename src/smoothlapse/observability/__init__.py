"""
Observability Module
====================

Progress reporting for SmoothLapse runs.

DESIGN RULES:
    - Does NOT import selection logic
    - Does NOT influence which frames are selected
"""

from smoothlapse.observability.progress import (
    ProgressReporter,
    ProgressSnapshot,
)


__all__ = [
    "ProgressReporter",
    "ProgressSnapshot",
]
