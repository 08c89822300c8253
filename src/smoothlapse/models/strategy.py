"""
Strategies
==========

Named similarity metrics that can be selected for a run.
"""

from enum import Enum


class Strategy(str, Enum):
    """
    Frame selection strategies.

    Attributes:
        NOOP: Always keep the first frame of each window
        MSE: Keep the frame with the lowest mean squared error against
            the rest of its window
    """

    NOOP = "noop"
    MSE = "mse"
