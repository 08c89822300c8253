"""
Video Decoder
=============

Frame source backed by OpenCV's VideoCapture.

Design Rules:
    - Frames are produced lazily, in presentation order
    - Sequence indices are positions in the decoded stream; frames dropped
      by frame_skip leave gaps
    - Open failures raise SourceUnavailable, mid-stream failures raise
      DecodeFailure
"""

import logging
import os
from typing import Iterator, Optional, Protocol

import cv2

from smoothlapse.codec.conversion import to_pixel_format
from smoothlapse.errors import DecodeFailure, SourceUnavailable
from smoothlapse.models.selection import VideoInfo
from smoothlapse.stream.frame import Frame, PixelFormat


logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    """
    Protocol for decoder collaborators.

    Implementations are context managers; info is valid once entered.
    """

    @property
    def info(self) -> VideoInfo:
        ...

    def frames(self) -> Iterator[Frame]:
        """Yield decoded frames in presentation order."""
        ...

    def __enter__(self) -> "FrameSource":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...


class VideoDecoder:
    """
    OpenCV-backed frame source.

    Attributes:
        path: Source video path
        pixel_format: Format frames are converted into
        frame_skip: Frames dropped before every kept frame

    Example:
        with VideoDecoder("print.mp4", PixelFormat.GRAY) as decoder:
            print(decoder.info)
            for frame in decoder.frames():
                ...
    """

    def __init__(
        self,
        path: str,
        pixel_format: PixelFormat = PixelFormat.BGR24,
        frame_skip: int = 0,
    ) -> None:
        """
        Initialize decoder (does not open the source).

        Args:
            path: Path to the source video
            pixel_format: Pixel format for emitted frames
            frame_skip: Number of frames to drop before each kept frame
        """
        if frame_skip < 0:
            raise ValueError("frame_skip must be >= 0")

        self.path = str(path)
        self.pixel_format = PixelFormat(pixel_format)
        self.frame_skip = frame_skip

        self._capture: Optional[cv2.VideoCapture] = None
        self._info: Optional[VideoInfo] = None

    @property
    def info(self) -> VideoInfo:
        """Stream properties. Only available after open()."""
        if self._info is None:
            raise RuntimeError("VideoDecoder is not open")
        return self._info

    def open(self) -> "VideoDecoder":
        """
        Open the source and probe its properties.

        Raises:
            SourceUnavailable: If the file is missing or cannot be decoded
        """
        if not os.path.isfile(self.path):
            raise SourceUnavailable(f"Source not found: {self.path}")

        capture = cv2.VideoCapture(self.path)
        if not capture.isOpened():
            capture.release()
            raise SourceUnavailable(f"Could not open source: {self.path}")

        width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
        height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
        if width <= 0 or height <= 0:
            capture.release()
            raise SourceUnavailable(f"Source has no video stream: {self.path}")

        fps = capture.get(cv2.CAP_PROP_FPS)
        total_frames = int(capture.get(cv2.CAP_PROP_FRAME_COUNT))

        self._capture = capture
        self._info = VideoInfo(
            width=width,
            height=height,
            fps=float(fps) if fps and fps > 0 else 0.0,
            total_frames=max(0, total_frames),
            pixel_format=self.pixel_format,
        )
        logger.info(
            f"Opened {self.path}: {width}x{height} @ {self._info.fps:.2f}fps, "
            f"{self._info.total_frames} frames reported"
        )
        return self

    def frames(self) -> Iterator[Frame]:
        """
        Yield decoded frames until end-of-stream.

        Raises:
            DecodeFailure: If OpenCV fails mid-stream or returns a frame
                with unexpected dimensions
        """
        if self._capture is None:
            raise RuntimeError("VideoDecoder is not open")

        position = 0
        skip_count = self.frame_skip
        while True:
            try:
                ok, bgr = self._capture.read()
            except cv2.error as e:
                raise DecodeFailure(f"Decoder error: {e}", frame_index=position) from e
            if not ok:
                break

            if skip_count > 0:
                skip_count -= 1
                position += 1
                continue

            if bgr.shape[0] != self.info.height or bgr.shape[1] != self.info.width:
                raise DecodeFailure(
                    f"Decoded frame is {bgr.shape[1]}x{bgr.shape[0]}, "
                    f"stream declared {self.info.width}x{self.info.height}",
                    frame_index=position,
                )

            pixels = to_pixel_format(bgr, self.pixel_format, index=position)
            # Owned by this frame only, so Frame can keep it without a copy
            pixels.setflags(write=False)
            timestamp = position / self.info.fps if self.info.fps else 0.0
            yield Frame(
                index=position,
                pixels=pixels,
                pixel_format=self.pixel_format,
                timestamp=timestamp,
            )
            position += 1
            skip_count = self.frame_skip

        logger.debug(f"End of stream after {position} decoded frames")

    def close(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None

    def __enter__(self) -> "VideoDecoder":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
