"""
Codec Module
============

Decoder and encoder collaborators around OpenCV.

Components:
    - FrameSource / VideoDecoder: Lazy, ordered frames from a video file
    - FrameSink / VideoEncoder: Ordered frames into a video file
    - to_pixel_format / to_bgr: Color conversion at the codec boundary
"""

from smoothlapse.codec.conversion import to_bgr, to_pixel_format
from smoothlapse.codec.decoder import FrameSource, VideoDecoder
from smoothlapse.codec.encoder import FrameSink, VideoEncoder


__all__ = [
    "FrameSource",
    "VideoDecoder",
    "FrameSink",
    "VideoEncoder",
    "to_pixel_format",
    "to_bgr",
]
