"""
Pixel Conversion
================

Color-space conversion between OpenCV's native BGR and the pixel format
a run is configured to select on.

Design Rules:
    - This is the ONLY place in the codebase that converts color
    - Validates shape and dtype
    - Fails fast on malformed arrays
"""

import logging

import cv2
import numpy as np

from smoothlapse.errors import DecodeFailure, EncodeFailure
from smoothlapse.stream.frame import Frame, PixelFormat


logger = logging.getLogger(__name__)


def to_pixel_format(bgr: np.ndarray, pixel_format: PixelFormat, index: int = -1) -> np.ndarray:
    """
    Convert a decoded BGR image into the run's pixel format.

    Args:
        bgr: Image as returned by cv2.VideoCapture.read, (H, W, 3) uint8
        pixel_format: Target layout
        index: Sequence index, used in error messages

    Returns:
        Array laid out as pixel_format expects

    Raises:
        DecodeFailure: If the decoded image is not 8-bit BGR
    """
    if bgr is None:
        raise DecodeFailure("Decoder returned an empty image", frame_index=index)

    if bgr.ndim != 3 or bgr.shape[2] != 3:
        raise DecodeFailure(f"Invalid image shape: {bgr.shape}", frame_index=index)

    if bgr.dtype != np.uint8:
        raise DecodeFailure(f"Invalid dtype: {bgr.dtype}", frame_index=index)

    try:
        if pixel_format is PixelFormat.GRAY:
            return cv2.cvtColor(bgr, cv2.COLOR_BGR2GRAY)
        if pixel_format is PixelFormat.RGB24:
            return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        return bgr
    except cv2.error as e:
        raise DecodeFailure(f"Color conversion failed: {e}", frame_index=index) from e


def to_bgr(frame: Frame) -> np.ndarray:
    """
    Convert a frame back to BGR for cv2.VideoWriter.

    Raises:
        EncodeFailure: If OpenCV rejects the conversion
    """
    try:
        if frame.pixel_format is PixelFormat.GRAY:
            return cv2.cvtColor(frame.pixels, cv2.COLOR_GRAY2BGR)
        if frame.pixel_format is PixelFormat.RGB24:
            return cv2.cvtColor(frame.pixels, cv2.COLOR_RGB2BGR)
        return frame.pixels
    except cv2.error as e:
        raise EncodeFailure(f"Color conversion failed: {e}", frame_index=frame.index) from e
