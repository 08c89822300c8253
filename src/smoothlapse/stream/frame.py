"""
Frame Data Model
=================

Internal frame representation for the selection pipeline.

This module defines the typed Frame class that is passed between the
decoder, the window selector and the encoder.

Design Rules:
    - This is the ONLY frame format passed between pipeline stages
    - Pixel data is read-only once the frame is constructed
    - All frames of a run share one shape_key (width, height, format)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

import numpy as np

from smoothlapse.errors import FormatMismatch


class PixelFormat(str, Enum):
    """
    Packed 8-bit pixel layouts understood by the engine.

    Attributes:
        GRAY: Single luma channel, array shape (H, W)
        BGR24: OpenCV native order, array shape (H, W, 3)
        RGB24: Red/green/blue order, array shape (H, W, 3)
    """

    GRAY = "gray"
    BGR24 = "bgr24"
    RGB24 = "rgb24"

    @property
    def channels(self) -> int:
        """Number of samples per pixel."""
        return 1 if self is PixelFormat.GRAY else 3


def _exclusively_held(pixels: np.ndarray) -> bool:
    """True if nobody else can write to this buffer."""
    if pixels.flags.writeable:
        return False
    if pixels.flags.owndata:
        return True
    # np.frombuffer over immutable bytes
    return isinstance(pixels.base, bytes) or (
        isinstance(pixels.base, np.ndarray) and _exclusively_held(pixels.base)
    )


@dataclass(frozen=True, slots=True)
class Frame:
    """
    One decoded raster frame.

    Frames are immutable: the pixel array is flagged non-writeable when
    the frame is built, so metrics can share it without copying.

    Attributes:
        index: Position of the frame in the decoded stream
        pixels: uint8 array, (H, W) for gray or (H, W, 3) for color
        pixel_format: Layout of the samples in pixels
        timestamp: Presentation time in seconds (informational)
    """

    index: int
    pixels: np.ndarray
    pixel_format: PixelFormat
    timestamp: float = 0.0

    def __post_init__(self) -> None:
        """Validate layout and freeze the pixel buffer."""
        pixel_format = PixelFormat(self.pixel_format)
        pixels = np.ascontiguousarray(self.pixels)

        if pixels.dtype != np.uint8:
            raise FormatMismatch(
                f"Frame pixels must be uint8, got {pixels.dtype}",
                frame_index=self.index,
            )
        expected_ndim = 2 if pixel_format.channels == 1 else 3
        if pixels.ndim != expected_ndim or (
            expected_ndim == 3 and pixels.shape[2] != pixel_format.channels
        ):
            raise FormatMismatch(
                f"Pixel array shape {pixels.shape} does not match "
                f"format {pixel_format.value}",
                frame_index=self.index,
            )
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise FormatMismatch("Frame has no pixels", frame_index=self.index)

        if pixels is self.pixels and not _exclusively_held(pixels):
            pixels = pixels.copy()
        pixels.setflags(write=False)

        object.__setattr__(self, "pixels", pixels)
        object.__setattr__(self, "pixel_format", pixel_format)

    @classmethod
    def from_bytes(
        cls,
        index: int,
        data: bytes,
        width: int,
        height: int,
        pixel_format: Union[PixelFormat, str],
        timestamp: float = 0.0,
    ) -> "Frame":
        """
        Build a frame from a packed, row-major sample buffer.

        Args:
            index: Sequence index of the frame
            data: Raw samples, height * width * channels bytes
            width: Declared width in pixels
            height: Declared height in pixels
            pixel_format: Declared pixel format

        Raises:
            FormatMismatch: If len(data) disagrees with the declaration
        """
        pixel_format = PixelFormat(pixel_format)
        expected = width * height * pixel_format.channels
        if width <= 0 or height <= 0 or len(data) != expected:
            raise FormatMismatch(
                f"Expected {expected} bytes for {width}x{height} "
                f"{pixel_format.value}, got {len(data)}",
                frame_index=index,
            )
        pixels = np.frombuffer(data, dtype=np.uint8)
        if pixel_format.channels == 1:
            pixels = pixels.reshape(height, width)
        else:
            pixels = pixels.reshape(height, width, pixel_format.channels)
        return cls(index=index, pixels=pixels, pixel_format=pixel_format, timestamp=timestamp)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def channels(self) -> int:
        return self.pixel_format.channels

    @property
    def sample_count(self) -> int:
        """Total number of samples (pixels x channels)."""
        return int(self.pixels.size)

    @property
    def shape_key(self) -> Tuple[int, int, PixelFormat]:
        """(width, height, pixel_format), identical for every frame of a run."""
        return (self.width, self.height, self.pixel_format)

    def pixel(self, x: int, y: int) -> Union[int, Tuple[int, ...]]:
        """
        Read the pixel at column x, row y.

        Returns:
            int for gray frames, a tuple of channel samples otherwise
        """
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Pixel ({x}, {y}) outside {self.width}x{self.height} frame")
        value = self.pixels[y, x]
        if self.channels == 1:
            return int(value)
        return tuple(int(v) for v in value)

    def sample(self, offset: int) -> int:
        """Read one sample by its row-major offset into the buffer."""
        if not 0 <= offset < self.sample_count:
            raise IndexError(f"Sample offset {offset} outside buffer of {self.sample_count}")
        return int(self.pixels.reshape(-1)[offset])

    def ensure_compatible(self, other: "Frame") -> None:
        """
        Check that another frame can be compared with this one.

        Raises:
            FormatMismatch: If width, height or pixel format differ
        """
        if self.shape_key != other.shape_key:
            raise FormatMismatch(
                f"Frame {other.index} is {other.width}x{other.height} "
                f"{other.pixel_format.value}, expected {self.width}x{self.height} "
                f"{self.pixel_format.value}",
                frame_index=other.index,
            )

    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixel buffer."""
        return (
            f"Frame(index={self.index}, "
            f"size={self.width}x{self.height}, "
            f"format={self.pixel_format.value})"
        )
