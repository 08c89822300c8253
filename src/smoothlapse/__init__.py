"""
SmoothLapse
===========

Smooth timelapse generation by per-window frame selection.

A long capture (for example one frame per second of a 3D print) is split
into fixed-size windows. Each window is scored by a similarity metric and
only its most representative frame is kept, which removes the jitter a
fixed one-frame-per-window sampling picks up from head motion, vibration
or lighting flicker.

Components:
    - stream: Frame model and bounded inter-stage channels
    - selection: Similarity metrics and the window selector
    - codec: OpenCV decoder and encoder collaborators
    - pipeline: Run driver (sequential or staged)
    - observability: Progress reporting

Example:
    from smoothlapse.config import load_config
    from smoothlapse.pipeline import PipelineDriver

    settings = load_config(overrides={"selection": {"window_size": 30, "strategy": "mse"}})
    result = PipelineDriver(settings).run("print.mp4", "print_lapse.mp4")
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
