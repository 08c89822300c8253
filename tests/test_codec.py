"""
Codec Tests
===========

OpenCV-backed decoder and encoder against small MJPG clips written to
tmp_path.
"""

import cv2
import numpy as np
import pytest

from smoothlapse.codec.conversion import to_bgr, to_pixel_format
from smoothlapse.codec.decoder import VideoDecoder
from smoothlapse.codec.encoder import VideoEncoder
from smoothlapse.errors import (
    DecodeFailure,
    DestinationUnwritable,
    EncodeFailure,
    FormatMismatch,
    SourceUnavailable,
)
from smoothlapse.models.selection import VideoInfo
from smoothlapse.stream.frame import PixelFormat


def _info(width: int = 32, height: int = 24, pixel_format: PixelFormat = PixelFormat.BGR24) -> VideoInfo:
    return VideoInfo(width=width, height=height, fps=10.0, total_frames=0, pixel_format=pixel_format)


class TestConversion:
    """Tests for color conversion."""

    def test_to_gray(self):
        """BGR converts to a single-channel image."""
        bgr = np.full((4, 6, 3), 100, dtype=np.uint8)
        gray = to_pixel_format(bgr, PixelFormat.GRAY)
        assert gray.shape == (4, 6)
        assert int(gray[0, 0]) == 100

    def test_to_rgb_swaps_channels(self):
        """RGB output reverses the channel order."""
        bgr = np.zeros((2, 2, 3), dtype=np.uint8)
        bgr[..., 0] = 255
        rgb = to_pixel_format(bgr, PixelFormat.RGB24)
        assert rgb[0, 0].tolist() == [0, 0, 255]

    def test_rejects_bad_shape(self):
        """Non-BGR input is a decode failure."""
        with pytest.raises(DecodeFailure):
            to_pixel_format(np.zeros((4, 4), dtype=np.uint8), PixelFormat.GRAY, index=3)

    def test_rejects_bad_dtype(self):
        """Only 8-bit images are accepted."""
        with pytest.raises(DecodeFailure):
            to_pixel_format(np.zeros((4, 4, 3), dtype=np.float32), PixelFormat.BGR24)

    def test_to_bgr_from_gray(self, make_frame):
        """Gray frames expand back to three channels for the writer."""
        bgr = to_bgr(make_frame(0, value=7))
        assert bgr.shape == (3, 4, 3)
        assert bgr[0, 0].tolist() == [7, 7, 7]


class TestVideoDecoder:
    """Tests for the OpenCV frame source."""

    def test_reads_all_frames(self, sample_video):
        """Every frame is decoded with contiguous indices."""
        with VideoDecoder(sample_video) as decoder:
            assert decoder.info.width == 32
            assert decoder.info.height == 24
            frames = list(decoder.frames())
        assert [f.index for f in frames] == list(range(8))
        assert all(f.shape_key == (32, 24, PixelFormat.BGR24) for f in frames)
        assert not frames[0].pixels.flags.writeable

    def test_gray_output(self, sample_video):
        """Frames are converted to the requested pixel format."""
        with VideoDecoder(sample_video, pixel_format=PixelFormat.GRAY) as decoder:
            frame = next(decoder.frames())
        assert frame.pixel_format is PixelFormat.GRAY
        assert frame.shape_key == (32, 24, PixelFormat.GRAY)

    def test_frame_skip_leaves_gaps(self, sample_video):
        """Skipping starts before the first frame; dropped frames leave index gaps."""
        with VideoDecoder(sample_video, frame_skip=2) as decoder:
            indices = [f.index for f in decoder.frames()]
        assert indices == [2, 5]

    def test_missing_source(self, tmp_path):
        """A missing file is SourceUnavailable."""
        with pytest.raises(SourceUnavailable):
            VideoDecoder(str(tmp_path / "missing.avi")).open()

    def test_not_a_video(self, tmp_path):
        """Garbage bytes cannot be opened."""
        path = tmp_path / "garbage.avi"
        path.write_bytes(b"not a video at all")
        with pytest.raises(SourceUnavailable):
            VideoDecoder(str(path)).open()

    def test_negative_frame_skip(self, sample_video):
        """frame_skip must not be negative."""
        with pytest.raises(ValueError):
            VideoDecoder(sample_video, frame_skip=-1)

    def test_info_requires_open(self, sample_video):
        """info is unavailable before open()."""
        with pytest.raises(RuntimeError):
            VideoDecoder(sample_video).info


class TestVideoEncoder:
    """Tests for the OpenCV frame sink."""

    def test_write_and_read_back(self, tmp_path, make_frame):
        """Written frames can be decoded again."""
        path = tmp_path / "out.avi"
        with VideoEncoder(str(path), _info(pixel_format=PixelFormat.GRAY), fps=10.0, fourcc="MJPG") as encoder:
            for i in range(3):
                encoder.write(make_frame(i, value=50 * i, width=32, height=24))
            assert encoder.frames_written == 3

        capture = cv2.VideoCapture(str(path))
        count = 0
        while capture.read()[0]:
            count += 1
        capture.release()
        assert count == 3

    def test_missing_directory(self, tmp_path):
        """A missing output directory is DestinationUnwritable."""
        encoder = VideoEncoder(str(tmp_path / "nope" / "out.avi"), _info(), fps=10.0, fourcc="MJPG")
        with pytest.raises(DestinationUnwritable):
            encoder.open()

    def test_size_mismatch(self, tmp_path, make_frame):
        """Frames must match the declared output size."""
        with VideoEncoder(str(tmp_path / "out.avi"), _info(), fps=10.0, fourcc="MJPG") as encoder:
            with pytest.raises(FormatMismatch):
                encoder.write(make_frame(0, width=8, height=8))

    def test_write_after_close(self, tmp_path, make_frame):
        """Writing to a closed encoder fails."""
        encoder = VideoEncoder(str(tmp_path / "out.avi"), _info(), fps=10.0, fourcc="MJPG").open()
        encoder.close()
        encoder.close()
        with pytest.raises(EncodeFailure):
            encoder.write(make_frame(0, width=32, height=24))

    @pytest.mark.parametrize("fps,fourcc", [(0.0, "MJPG"), (10.0, "MJPEG")])
    def test_invalid_parameters(self, tmp_path, fps, fourcc):
        """fps must be positive and fourcc exactly four characters."""
        with pytest.raises(ValueError):
            VideoEncoder(str(tmp_path / "out.avi"), _info(), fps=fps, fourcc=fourcc)
