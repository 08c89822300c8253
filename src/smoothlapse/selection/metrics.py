"""
Similarity Metrics
==================

Scores used to rank the frames of one window.

Lower scores are better for every metric. Scores are only ever compared
within a single window.

Metrics:
    - NoopMetric: Constant score; with the earliest-index tie-break the
      first frame of each window wins
    - MeanSquaredErrorMetric: Mean squared error against the leave-one-out
      mean of the window

MSE Reference:
    For a window of n frames with per-sample sum T, the reference for
    frame i is the mean of the other n-1 frames, (T - x_i) / (n - 1).
    The difference to that reference simplifies to

        x_i - (T - x_i) / (n - 1) = (n * x_i - T) / (n - 1)

    so the score is

        mse_i = sum((n * x_i - T)^2) / (samples * (n - 1)^2)

    n * x_i - T is computed in int64, which is exact for uint8 samples.
    Squares are summed in int64 one row at a time and the row sums are
    added as Python ints, so the total stays exact for any realistic
    frame width.

    With n = 2 both frames are the same distance from each other and
    always tie, so a two-frame window keeps its first frame as noop does.
"""

import logging
from typing import List, Protocol, Sequence, Union

import numpy as np

from smoothlapse.errors import FormatMismatch, InvalidConfiguration
from smoothlapse.models.strategy import Strategy
from smoothlapse.stream.frame import Frame


logger = logging.getLogger(__name__)


class SimilarityMetric(Protocol):
    """
    Protocol for similarity metrics.

    score_window must return the same values as calling score for each
    frame of the window, in window order.
    """

    name: str

    def score(self, candidate: Frame, window: Sequence[Frame]) -> float:
        """
        Score one candidate against the window it belongs to.

        Args:
            candidate: Frame being ranked (must be in window)
            window: All frames of the window, in sequence order

        Returns:
            Finite score, lower is better
        """
        ...

    def score_window(self, window: Sequence[Frame]) -> List[float]:
        """Score every frame of a window in one pass."""
        ...


def _check_window(window: Sequence[Frame]) -> None:
    """Raise FormatMismatch if frames in the window differ in shape."""
    first = window[0]
    for frame in window[1:]:
        first.ensure_compatible(frame)


def _position(candidate: Frame, window: Sequence[Frame]) -> int:
    for position, frame in enumerate(window):
        if frame is candidate:
            return position
    raise ValueError(f"Frame {candidate.index} is not part of the window")


def _sum_of_squares(values: np.ndarray) -> int:
    """Exact sum of squares; only a single row's sum has to fit in int64."""
    rows = values.reshape(values.shape[0], -1)
    row_sums = np.einsum("ij,ij->i", rows, rows)
    return sum(row_sums.tolist())


class NoopMetric:
    """
    Metric that performs no comparison.

    Every frame scores 0.0 and pixel buffers are never read, so the
    selector's tie-break keeps the first frame of each window.
    """

    name = Strategy.NOOP.value

    def score(self, candidate: Frame, window: Sequence[Frame]) -> float:
        _position(candidate, window)
        return 0.0

    def score_window(self, window: Sequence[Frame]) -> List[float]:
        return [0.0] * len(window)


class MeanSquaredErrorMetric:
    """
    Mean squared error against the rest of the window.

    Rewards the frame that is most representative of its window: the one
    least divergent from the average of its neighbours. Multi-channel
    formats are averaged over every channel sample, so the score is
    independent of resolution and channel count.
    """

    name = Strategy.MSE.value

    def score(self, candidate: Frame, window: Sequence[Frame]) -> float:
        position = _position(candidate, window)
        return self.score_window(window)[position]

    def score_window(self, window: Sequence[Frame]) -> List[float]:
        """
        Score all frames of a window.

        Cost is O(len(window) * samples): one pass to accumulate the window
        sum and one pass per frame for its error.

        Raises:
            FormatMismatch: If the frames differ in shape or format
        """
        count = len(window)
        if count == 0:
            return []
        _check_window(window)
        if count == 1:
            return [0.0]

        total = np.zeros(window[0].pixels.shape, dtype=np.int64)
        for frame in window:
            total += frame.pixels

        denominator = float(window[0].sample_count) * float((count - 1) ** 2)
        scores = []
        for frame in window:
            diff = frame.pixels.astype(np.int64)
            diff *= count
            diff -= total
            scores.append(_sum_of_squares(diff) / denominator)
        return scores


def get_metric(strategy: Union[Strategy, str]) -> SimilarityMetric:
    """
    Build the metric for a strategy.

    Args:
        strategy: Strategy enum member or its value ("noop", "mse")

    Raises:
        InvalidConfiguration: If the strategy is unknown
    """
    try:
        strategy = Strategy(strategy)
    except ValueError as e:
        choices = ", ".join(s.value for s in Strategy)
        raise InvalidConfiguration(
            f"Unknown strategy {strategy!r} (expected one of: {choices})"
        ) from e

    if strategy is Strategy.NOOP:
        return NoopMetric()
    return MeanSquaredErrorMetric()
