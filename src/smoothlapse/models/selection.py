"""
Selection Models
================

Data models passed between the selector, the pipeline driver and the
encoder.
"""

from dataclasses import dataclass

from smoothlapse.stream.frame import Frame, PixelFormat


@dataclass(frozen=True, slots=True)
class Selection:
    """
    The winning frame of one window.

    Produced by WindowSelector, consumed by the encoder in window order.

    Attributes:
        window_index: Zero-based position of the window in the run
        frame: The chosen frame
        score: The frame's score under the active metric
        window_start: Sequence index of the window's first frame
        window_length: Number of frames the window held
    """

    window_index: int
    frame: Frame
    score: float
    window_start: int
    window_length: int

    @property
    def frame_index(self) -> int:
        """Sequence index of the chosen frame."""
        return self.frame.index

    def __repr__(self) -> str:
        return (
            f"Selection(window={self.window_index}, "
            f"frame={self.frame.index}, "
            f"score={self.score:.4f})"
        )

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "window_index": self.window_index,
            "frame_index": self.frame.index,
            "score": round(self.score, 6),
            "window_start": self.window_start,
            "window_length": self.window_length,
        }


@dataclass(frozen=True, slots=True)
class VideoInfo:
    """
    Stream properties reported by the decoder when it opens a source.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        fps: Source frame rate (0.0 when the container does not report it)
        total_frames: Frame count reported by the container (0 if unknown)
        pixel_format: Pixel format frames are decoded into
    """

    width: int
    height: int
    fps: float
    total_frames: int
    pixel_format: PixelFormat

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError("width and height must be positive")
        if self.total_frames < 0:
            raise ValueError("total_frames must be non-negative")
