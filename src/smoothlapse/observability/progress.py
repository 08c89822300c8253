"""
Progress Reporting
==================

Run progress for operators.

Progress is for observability ONLY. It never influences which frame a
window selects.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from smoothlapse.models.selection import Selection


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    """
    Point-in-time run progress.

    Attributes:
        windows_emitted: Selections written so far
        frames_consumed: Input frames covered by those windows
        total_frames: Frames reported by the source (0 if unknown)
        elapsed_seconds: Wall time since the reporter was created
        windows_per_second: Average throughput
    """

    windows_emitted: int
    frames_consumed: int
    total_frames: int
    elapsed_seconds: float
    windows_per_second: float

    @property
    def percent(self) -> Optional[float]:
        """Completion percentage, or None when the total is unknown."""
        if self.total_frames <= 0:
            return None
        return min(100.0, 100.0 * self.frames_consumed / self.total_frames)

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "windows_emitted": self.windows_emitted,
            "frames_consumed": self.frames_consumed,
            "total_frames": self.total_frames,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "windows_per_second": round(self.windows_per_second, 3),
            "percent": None if self.percent is None else round(self.percent, 1),
        }


class ProgressReporter:
    """
    Tracks emitted windows and logs progress every N windows.

    Example:
        reporter = ProgressReporter(total_frames=info.total_frames, every_n_windows=50)
        for selection in selector.select(frames):
            encoder.write(selection.frame)
            reporter.record(selection)
    """

    def __init__(
        self,
        total_frames: int = 0,
        every_n_windows: int = 50,
    ) -> None:
        """
        Initialize progress reporter.

        Args:
            total_frames: Frames reported by the source, 0 if unknown
            every_n_windows: Log a progress line every N windows
        """
        if every_n_windows < 1:
            raise ValueError("every_n_windows must be >= 1")

        self.total_frames = max(0, total_frames)
        self.every_n_windows = every_n_windows

        self._start = time.monotonic()
        self._windows = 0
        self._frames = 0

    def record(self, selection: Selection) -> None:
        """Account for one emitted window."""
        self._windows += 1
        self._frames += selection.window_length

        if self._windows % self.every_n_windows == 0:
            snapshot = self.snapshot()
            if snapshot.percent is not None:
                logger.info(
                    f"Progress: {snapshot.windows_emitted} windows, "
                    f"{snapshot.frames_consumed}/{snapshot.total_frames} frames "
                    f"({snapshot.percent:.1f}%), "
                    f"{snapshot.windows_per_second:.1f} windows/s"
                )
            else:
                logger.info(
                    f"Progress: {snapshot.windows_emitted} windows, "
                    f"{snapshot.frames_consumed} frames, "
                    f"{snapshot.windows_per_second:.1f} windows/s"
                )

    def snapshot(self) -> ProgressSnapshot:
        elapsed = time.monotonic() - self._start
        rate = self._windows / elapsed if elapsed > 0 else 0.0
        return ProgressSnapshot(
            windows_emitted=self._windows,
            frames_consumed=self._frames,
            total_frames=self.total_frames,
            elapsed_seconds=elapsed,
            windows_per_second=rate,
        )
