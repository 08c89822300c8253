"""
Errors
======

Run-fatal error kinds for SmoothLapse.

Every error raised by the engine derives from SmoothLapseError. None of
them are retried or skipped: a run either completes or aborts with one of
these, carrying the window and frame index where they are known.

Kinds:
    - InvalidConfiguration: bad parameters, raised before decoding starts
    - SourceUnavailable: the decoder could not open the source
    - DestinationUnwritable: the encoder could not open the destination
    - FormatMismatch: frame shape or pixel format inconsistency
    - DecodeFailure: decoder error mid-stream
    - EncodeFailure: encoder error mid-stream
"""

from typing import Optional


class SmoothLapseError(Exception):
    """Base class for all run-fatal SmoothLapse errors."""

    def __init__(
        self,
        message: str,
        window_index: Optional[int] = None,
        frame_index: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.window_index = window_index
        self.frame_index = frame_index

    def __str__(self) -> str:
        context = []
        if self.window_index is not None:
            context.append(f"window={self.window_index}")
        if self.frame_index is not None:
            context.append(f"frame={self.frame_index}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class InvalidConfiguration(SmoothLapseError):
    """Raised when run parameters are invalid."""
    pass


class SourceUnavailable(SmoothLapseError):
    """Raised when the source video cannot be opened."""
    pass


class DestinationUnwritable(SmoothLapseError):
    """Raised when the output video cannot be created."""
    pass


class FormatMismatch(SmoothLapseError):
    """Raised when frames differ in width, height or pixel format."""
    pass


class DecodeFailure(SmoothLapseError):
    """Raised when decoding fails after the source was opened."""
    pass


class EncodeFailure(SmoothLapseError):
    """Raised when writing an encoded frame fails."""
    pass
