"""
Test Configuration
==================

Pytest fixtures and in-memory collaborators for SmoothLapse tests.
"""

from typing import List, Optional

import cv2
import numpy as np
import pytest

from smoothlapse.config import Settings
from smoothlapse.models.selection import VideoInfo
from smoothlapse.stream.frame import Frame, PixelFormat


class FakeSource:
    """In-memory decoder collaborator."""

    def __init__(self, frames: List[Frame], fail_after: Optional[int] = None) -> None:
        self._frames = frames
        self._fail_after = fail_after
        self.opened = False
        self.closed = False
        first = frames[0] if frames else None
        self._info = VideoInfo(
            width=first.width if first else 4,
            height=first.height if first else 4,
            fps=1.0,
            total_frames=len(frames),
            pixel_format=first.pixel_format if first else PixelFormat.GRAY,
        )

    @property
    def info(self) -> VideoInfo:
        return self._info

    def frames(self):
        from smoothlapse.errors import DecodeFailure

        for position, frame in enumerate(self._frames):
            if self._fail_after is not None and position >= self._fail_after:
                raise DecodeFailure("corrupt packet", frame_index=position)
            yield frame

    def __enter__(self) -> "FakeSource":
        self.opened = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.closed = True


class FakeSink:
    """In-memory encoder collaborator recording written frames."""

    def __init__(self, fail_on_write: Optional[int] = None) -> None:
        self.written: List[Frame] = []
        self.close_count = 0
        self._fail_on_write = fail_on_write

    @property
    def indices(self) -> List[int]:
        return [frame.index for frame in self.written]

    def write(self, frame: Frame) -> None:
        from smoothlapse.errors import EncodeFailure

        if self._fail_on_write is not None and len(self.written) == self._fail_on_write:
            raise EncodeFailure("disk full", frame_index=frame.index)
        self.written.append(frame)

    def close(self) -> None:
        self.close_count += 1


def build_frame(
    index: int,
    value: int = 0,
    width: int = 4,
    height: int = 3,
    pixel_format: PixelFormat = PixelFormat.GRAY,
) -> Frame:
    """Uniform frame filled with value."""
    shape = (height, width) if pixel_format.channels == 1 else (height, width, 3)
    return Frame(
        index=index,
        pixels=np.full(shape, value, dtype=np.uint8),
        pixel_format=pixel_format,
    )


@pytest.fixture
def make_frame():
    """Factory for uniform test frames."""
    return build_frame


@pytest.fixture
def gray_frames():
    """Five 4x3 gray frames with values 0, 10, 20, 30, 40."""
    return [build_frame(i, value=10 * i) for i in range(5)]


@pytest.fixture
def sequential_settings():
    """Settings for single-threaded runs."""
    return Settings.model_validate({
        "selection": {"window_size": 2, "strategy": "noop"},
        "pipeline": {"concurrent": False, "queue_size": 2, "progress_every_windows": 1},
    })


@pytest.fixture
def fake_source():
    """Factory for FakeSource."""
    return FakeSource


@pytest.fixture
def fake_sink():
    """Factory for FakeSink."""
    return FakeSink


def write_sample_video(path, values, width: int = 32, height: int = 24, fps: float = 10.0) -> str:
    """Write uniform BGR frames to an MJPG .avi; skips the test if OpenCV cannot encode."""
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), fps, (width, height))
    if not writer.isOpened():
        writer.release()
        pytest.skip("OpenCV build cannot write MJPG video")
    for value in values:
        writer.write(np.full((height, width, 3), value, dtype=np.uint8))
    writer.release()
    return str(path)


@pytest.fixture
def sample_video(tmp_path):
    """Eight-frame 32x24 clip with slowly rising brightness."""
    return write_sample_video(tmp_path / "sample.avi", [20 * i for i in range(8)])
