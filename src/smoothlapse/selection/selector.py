"""
Window Selector
===============

Partitions the frame stream into fixed-size windows and picks one frame
per window.

State Machine:
    FILLING  -> accumulating frames, 0 <= len(window) < window_size
    SCORING  -> window full (or stream ended), every frame is scored
    EMITTED  -> one Selection produced; the next push starts FILLING again

Rules:
    - Windows are non-overlapping and contiguous in arrival order
    - Exactly one Selection per non-empty window, in window order
    - Ties go to the lowest sequence index
    - Every frame must match the run's first frame in width, height and
      pixel format; a mismatch raises FormatMismatch and ends the run
    - Only the current window is held in memory
"""

import logging
from enum import Enum
from typing import Iterable, Iterator, List, Optional

from smoothlapse.errors import FormatMismatch, InvalidConfiguration
from smoothlapse.models.selection import Selection
from smoothlapse.selection.metrics import SimilarityMetric
from smoothlapse.stream.frame import Frame


logger = logging.getLogger(__name__)


class SelectorState(str, Enum):
    """Selector lifecycle states."""

    FILLING = "FILLING"
    SCORING = "SCORING"
    EMITTED = "EMITTED"


def iter_windows(frames: Iterable[Frame], size: int) -> Iterator[List[Frame]]:
    """
    Group frames into consecutive windows of `size`.

    The final window is shorter when the frame count is not a multiple
    of size. No empty window is ever yielded.
    """
    if size <= 0:
        raise InvalidConfiguration(f"window size must be positive, got {size}")
    window: List[Frame] = []
    for frame in frames:
        window.append(frame)
        if len(window) == size:
            yield window
            window = []
    if window:
        yield window


class WindowSelector:
    """
    Stateful selector over a frame stream.

    Attributes:
        window_size: Frames per window
        metric: Similarity metric used for ranking
        state: Current SelectorState
        windows_emitted: Selections produced so far
        frames_seen: Frames pushed so far

    Example:
        selector = WindowSelector(window_size=25, metric=MeanSquaredErrorMetric())

        for selection in selector.select(decoder.frames()):
            encoder.write(selection.frame)
    """

    def __init__(self, window_size: int, metric: SimilarityMetric) -> None:
        """
        Initialize window selector.

        Args:
            window_size: Frames per window, must be positive
            metric: Metric used to rank frames within a window

        Raises:
            InvalidConfiguration: If window_size <= 0
        """
        if window_size <= 0:
            raise InvalidConfiguration(f"window size must be positive, got {window_size}")

        self.window_size = window_size
        self.metric = metric

        self._window: List[Frame] = []
        self._reference: Optional[Frame] = None
        self._last_index: Optional[int] = None
        self._state = SelectorState.FILLING
        self.windows_emitted = 0
        self.frames_seen = 0

        logger.info(
            f"WindowSelector initialized: window_size={window_size}, "
            f"metric={getattr(metric, 'name', type(metric).__name__)}"
        )

    @property
    def state(self) -> SelectorState:
        return self._state

    @property
    def pending(self) -> int:
        """Frames waiting in the current window."""
        return len(self._window)

    def push(self, frame: Frame) -> Optional[Selection]:
        """
        Add a frame to the current window.

        Args:
            frame: Next frame in arrival order

        Returns:
            The window's Selection when this frame completes it, else None

        Raises:
            FormatMismatch: If the frame's shape differs from the run's
        """
        self._state = SelectorState.FILLING
        self._check_frame(frame)
        self._window.append(frame)
        self.frames_seen += 1

        if len(self._window) < self.window_size:
            return None
        return self._resolve()

    def finish(self) -> Optional[Selection]:
        """
        Resolve the trailing partial window at end-of-stream.

        Returns:
            Selection for the partial window, or None if it is empty
        """
        if not self._window:
            return None
        return self._resolve()

    def select(self, frames: Iterable[Frame]) -> Iterator[Selection]:
        """
        Yield one Selection per window of the stream, in order.

        Consumes frames lazily and never looks past the current window.
        """
        for frame in frames:
            selection = self.push(frame)
            if selection is not None:
                yield selection
        selection = self.finish()
        if selection is not None:
            yield selection

    def _check_frame(self, frame: Frame) -> None:
        if self._reference is None:
            self._reference = frame
        elif frame.shape_key != self._reference.shape_key:
            raise FormatMismatch(
                f"Frame is {frame.width}x{frame.height} {frame.pixel_format.value}, "
                f"run started with {self._reference.width}x{self._reference.height} "
                f"{self._reference.pixel_format.value}",
                window_index=self.windows_emitted,
                frame_index=frame.index,
            )

        if self._last_index is not None and frame.index != self._last_index + 1:
            logger.debug(f"Sequence gap: frame {self._last_index} -> {frame.index}")
        self._last_index = frame.index

    def _resolve(self) -> Selection:
        self._state = SelectorState.SCORING
        window = self._window
        self._window = []

        try:
            scores = self.metric.score_window(window)
        except FormatMismatch as e:
            if e.window_index is None:
                e.window_index = self.windows_emitted
            raise

        best = 0
        for position in range(1, len(window)):
            if (scores[position], window[position].index) < (scores[best], window[best].index):
                best = position

        selection = Selection(
            window_index=self.windows_emitted,
            frame=window[best],
            score=scores[best],
            window_start=window[0].index,
            window_length=len(window),
        )
        logger.debug(f"Window frames {window[0].index}..{window[-1].index}: {selection.to_dict()}")

        self.windows_emitted += 1
        self._state = SelectorState.EMITTED
        return selection
