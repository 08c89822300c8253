"""
Stream Module
=============

Frame representation and inter-stage buffering.

This module provides the in-memory layer of the pipeline:
    - Frame: Immutable decoded raster frame
    - PixelFormat: Supported 8-bit pixel layouts
    - FrameChannel: Bounded blocking channel between stages (never drops)

Example:
    from smoothlapse.stream import Frame, FrameChannel, PixelFormat

    channel = FrameChannel(maxsize=64)
    channel.put(Frame(index=0, pixels=array, pixel_format=PixelFormat.GRAY))
    channel.close()

    for frame in channel:
        process(frame)
"""

from smoothlapse.stream.frame import Frame, PixelFormat
from smoothlapse.stream.buffer import ChannelClosed, FrameChannel


__all__ = [
    "Frame",
    "PixelFormat",
    "FrameChannel",
    "ChannelClosed",
]
