"""
Frame Tests
===========

Construction, read-only access and compatibility checks for Frame.
"""

import numpy as np
import pytest

from smoothlapse.errors import FormatMismatch
from smoothlapse.stream.frame import Frame, PixelFormat


class TestFrameConstruction:
    """Tests for building frames."""

    def test_gray_dimensions(self, make_frame):
        """Width, height and channels come from the array shape."""
        frame = make_frame(0, width=6, height=2)
        assert frame.width == 6
        assert frame.height == 2
        assert frame.channels == 1
        assert frame.sample_count == 12

    def test_color_dimensions(self, make_frame):
        """Color frames have three channels."""
        frame = make_frame(0, pixel_format=PixelFormat.BGR24)
        assert frame.channels == 3
        assert frame.sample_count == 4 * 3 * 3

    def test_format_accepts_string(self):
        """pixel_format may be given as its value."""
        frame = Frame(index=0, pixels=np.zeros((2, 2), dtype=np.uint8), pixel_format="gray")
        assert frame.pixel_format is PixelFormat.GRAY

    def test_wrong_dtype_rejected(self):
        """Only uint8 samples are accepted."""
        with pytest.raises(FormatMismatch):
            Frame(index=0, pixels=np.zeros((2, 2), dtype=np.float32), pixel_format=PixelFormat.GRAY)

    def test_shape_must_match_format(self):
        """A 2D array is not a valid color frame."""
        with pytest.raises(FormatMismatch):
            Frame(index=0, pixels=np.zeros((2, 2), dtype=np.uint8), pixel_format=PixelFormat.RGB24)

    def test_from_bytes(self):
        """Raw row-major bytes become a frame."""
        frame = Frame.from_bytes(7, bytes(range(6)), width=3, height=2, pixel_format="gray")
        assert frame.index == 7
        assert frame.pixel(2, 1) == 5

    def test_from_bytes_length_mismatch(self):
        """Declared dimensions must match the buffer length."""
        with pytest.raises(FormatMismatch):
            Frame.from_bytes(0, bytes(5), width=3, height=2, pixel_format="gray")


class TestFrameAccess:
    """Tests for read-only pixel access."""

    def test_pixel_by_coordinates(self):
        """pixel(x, y) reads column x of row y."""
        pixels = np.arange(12, dtype=np.uint8).reshape(3, 4)
        frame = Frame(index=0, pixels=pixels, pixel_format=PixelFormat.GRAY)
        assert frame.pixel(1, 2) == 9

    def test_color_pixel_is_tuple(self):
        """Color pixels return one value per channel."""
        pixels = np.zeros((1, 1, 3), dtype=np.uint8)
        pixels[0, 0] = (1, 2, 3)
        frame = Frame(index=0, pixels=pixels, pixel_format=PixelFormat.BGR24)
        assert frame.pixel(0, 0) == (1, 2, 3)

    def test_sample_by_offset(self):
        """sample(offset) indexes the flattened buffer."""
        pixels = np.arange(12, dtype=np.uint8).reshape(2, 2, 3)
        frame = Frame(index=0, pixels=pixels, pixel_format=PixelFormat.RGB24)
        assert frame.sample(7) == 7

    def test_out_of_range(self, make_frame):
        """Reads outside the frame raise IndexError."""
        frame = make_frame(0)
        with pytest.raises(IndexError):
            frame.pixel(4, 0)
        with pytest.raises(IndexError):
            frame.sample(frame.sample_count)

    def test_pixels_are_read_only(self, make_frame):
        """The pixel buffer cannot be written."""
        frame = make_frame(0)
        with pytest.raises(ValueError):
            frame.pixels[0, 0] = 1

    def test_caller_array_not_frozen(self):
        """Building a frame does not lock the caller's array."""
        pixels = np.zeros((2, 2), dtype=np.uint8)
        frame = Frame(index=0, pixels=pixels, pixel_format=PixelFormat.GRAY)
        pixels[0, 0] = 255
        assert frame.pixel(0, 0) == 0

    def test_read_only_view_of_caller_array(self):
        """A read-only view does not let the caller change the frame."""
        base = np.zeros((2, 2), dtype=np.uint8)
        view = base.view()
        view.setflags(write=False)
        frame = Frame(index=0, pixels=view, pixel_format=PixelFormat.GRAY)
        base[0, 0] = 255
        assert frame.pixel(0, 0) == 0

    def test_owned_read_only_array_kept(self):
        """An owned read-only array is used without copying."""
        pixels = np.zeros((2, 2), dtype=np.uint8)
        pixels.setflags(write=False)
        frame = Frame(index=0, pixels=pixels, pixel_format=PixelFormat.GRAY)
        assert frame.pixels is pixels


class TestFrameCompatibility:
    """Tests for shape checks between frames."""

    def test_same_shape_is_compatible(self, make_frame):
        """Frames with equal shape_key pass."""
        make_frame(0).ensure_compatible(make_frame(1, value=200))

    def test_different_size(self, make_frame):
        """Different dimensions raise FormatMismatch."""
        with pytest.raises(FormatMismatch) as excinfo:
            make_frame(0).ensure_compatible(make_frame(1, width=5))
        assert excinfo.value.frame_index == 1

    def test_different_format(self, make_frame):
        """Different pixel formats raise FormatMismatch."""
        with pytest.raises(FormatMismatch):
            make_frame(0).ensure_compatible(make_frame(1, pixel_format=PixelFormat.BGR24))
