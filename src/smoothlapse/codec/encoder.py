"""
Video Encoder
=============

Frame sink backed by OpenCV's VideoWriter.

Design Rules:
    - Frames are written in the order they are received
    - close() must run after the last frame to finalize the file; it is
      safe to call more than once
    - Open failures raise DestinationUnwritable, write failures raise
      EncodeFailure
"""

import logging
import os
from typing import Optional, Protocol

import cv2

from smoothlapse.codec.conversion import to_bgr
from smoothlapse.errors import DestinationUnwritable, EncodeFailure, FormatMismatch
from smoothlapse.models.selection import VideoInfo
from smoothlapse.stream.frame import Frame


logger = logging.getLogger(__name__)


class FrameSink(Protocol):
    """Protocol for encoder collaborators."""

    def write(self, frame: Frame) -> None:
        """Append one frame to the output."""
        ...

    def close(self) -> None:
        """Flush and finalize the output."""
        ...


class VideoEncoder:
    """
    OpenCV-backed frame sink.

    Attributes:
        path: Destination video path
        info: Properties of the frames that will be written
        fps: Output frame rate
        fourcc: Four-character codec code
        frames_written: Frames written so far
    """

    def __init__(
        self,
        path: str,
        info: VideoInfo,
        fps: float,
        fourcc: str = "mp4v",
    ) -> None:
        """
        Initialize encoder (does not create the file).

        Args:
            path: Destination path
            info: Stream properties from the decoder
            fps: Output frame rate, must be positive
            fourcc: Four-character codec code (e.g. "mp4v", "MJPG")
        """
        if fps <= 0:
            raise ValueError("fps must be positive")
        if len(fourcc) != 4:
            raise ValueError("fourcc must be exactly 4 characters")

        self.path = str(path)
        self.info = info
        self.fps = fps
        self.fourcc = fourcc
        self.frames_written = 0

        self._writer: Optional[cv2.VideoWriter] = None

    def open(self) -> "VideoEncoder":
        """
        Create the output file.

        Raises:
            DestinationUnwritable: If the directory is missing or OpenCV
                cannot create a writer for the path and codec
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        if not os.path.isdir(directory):
            raise DestinationUnwritable(f"Output directory does not exist: {directory}")

        writer = cv2.VideoWriter(
            self.path,
            cv2.VideoWriter_fourcc(*self.fourcc),
            self.fps,
            (self.info.width, self.info.height),
        )
        if not writer.isOpened():
            writer.release()
            raise DestinationUnwritable(
                f"Could not open {self.path} for writing with codec {self.fourcc}"
            )

        self._writer = writer
        logger.info(
            f"Writing {self.path}: {self.info.width}x{self.info.height} "
            f"@ {self.fps:.2f}fps, codec={self.fourcc}"
        )
        return self

    def write(self, frame: Frame) -> None:
        """
        Encode one frame.

        Raises:
            FormatMismatch: If the frame size differs from the declared size
            EncodeFailure: If the writer is closed or OpenCV fails
        """
        if self._writer is None:
            raise EncodeFailure("VideoEncoder is not open", frame_index=frame.index)

        if frame.width != self.info.width or frame.height != self.info.height:
            raise FormatMismatch(
                f"Frame is {frame.width}x{frame.height}, "
                f"output is {self.info.width}x{self.info.height}",
                frame_index=frame.index,
            )

        bgr = to_bgr(frame)
        try:
            self._writer.write(bgr)
        except cv2.error as e:
            raise EncodeFailure(f"Encoder error: {e}", frame_index=frame.index) from e
        self.frames_written += 1

    def close(self) -> None:
        if self._writer is None:
            return
        self._writer.release()
        self._writer = None
        logger.info(f"Closed {self.path} after {self.frames_written} frames")

    def __enter__(self) -> "VideoEncoder":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
