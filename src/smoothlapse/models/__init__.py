"""
Data Models
===========

Typed models for the SmoothLapse pipeline.

Models:
    - Strategy: Enum of selectable similarity metrics (noop, mse)
    - Selection: Chosen frame of one window
    - VideoInfo: Stream properties reported by the decoder
"""

from smoothlapse.models.strategy import Strategy
from smoothlapse.models.selection import Selection, VideoInfo

__all__ = [
    "Strategy",
    "Selection",
    "VideoInfo",
]
