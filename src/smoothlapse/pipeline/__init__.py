"""
Pipeline Module
===============

Run orchestration: decoder -> WindowSelector -> encoder.
"""

from smoothlapse.pipeline.driver import (
    PipelineDriver,
    PipelineResult,
    open_video_sink,
    open_video_source,
    run_timelapse,
)


__all__ = [
    "PipelineDriver",
    "PipelineResult",
    "open_video_sink",
    "open_video_source",
    "run_timelapse",
]
