"""
SmoothLapse Command Line
========================

Entry point for the `smoothlapse` console script.

Usage:
    smoothlapse -i print.mp4 -o print_lapse.mp4 --window 30 --strategy mse --fps 30
    smoothlapse -i print.mp4 -o print_lapse.mp4 -c smoothlapse.yaml --sequential

Exit Codes:
    0   - Run completed
    1   - Run failed (source, destination, decode, encode or format error)
    2   - Invalid configuration, nothing was decoded
    130 - Cancelled by SIGINT/SIGTERM; output holds the windows written so far
"""

import argparse
import logging
import os
import signal
import sys
import threading
from typing import List, Optional

from smoothlapse.config import Settings, load_config, setup_logging
from smoothlapse.errors import InvalidConfiguration, SmoothLapseError
from smoothlapse.pipeline import PipelineDriver


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_INVALID = 2
EXIT_CANCELLED = 130


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed CLI args.
    """
    parser = argparse.ArgumentParser(
        description="Build a smooth timelapse by keeping the best frame of every window"
    )
    parser.add_argument(
        "-i", "--input", dest="source", required=True,
        help="Input video path",
    )
    parser.add_argument(
        "-o", "--output", dest="destination", required=True,
        help="Output video path",
    )
    parser.add_argument(
        "-w", "--window", dest="window_size", type=int, default=None,
        help="Input frames per output frame (default: 25)",
    )
    parser.add_argument(
        "-s", "--strategy", dest="strategy", default=None,
        help="Frame selection strategy: noop or mse (default: mse)",
    )
    parser.add_argument(
        "--fps", dest="fps", type=float, default=None,
        help="Output frame rate (default: 30)",
    )
    parser.add_argument(
        "-c", "--config", dest="config_file", default=None,
        help="YAML config file",
    )
    parser.add_argument(
        "--frame-skip", dest="frame_skip", type=int, default=None,
        help="Drop N frames before every kept frame",
    )
    parser.add_argument(
        "--pixel-format", dest="pixel_format", default=None,
        help="Comparison pixel format: gray, bgr24 or rgb24",
    )
    parser.add_argument(
        "--fourcc", dest="fourcc", default=None,
        help="Output codec FourCC (default: mp4v)",
    )
    parser.add_argument(
        "--queue-size", dest="queue_size", type=int, default=None,
        help="Capacity of each inter-stage queue",
    )
    parser.add_argument(
        "--sequential", dest="concurrent", action="store_false", default=None,
        help="Decode, select and encode on a single thread",
    )
    parser.add_argument(
        "--log-level", dest="log_level", default=None,
        help="DEBUG, INFO, WARNING or ERROR",
    )
    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> dict:
    """Map parsed CLI options onto the nested config layout."""
    return {
        "selection": {
            "window_size": args.window_size,
            "strategy": args.strategy,
            "frame_skip": args.frame_skip,
        },
        "decoder": {"pixel_format": args.pixel_format},
        "encoder": {"fps": args.fps, "fourcc": args.fourcc},
        "pipeline": {"concurrent": args.concurrent, "queue_size": args.queue_size},
        "logging": {"level": args.log_level},
    }


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        settings = load_config(args.config_file, overrides=build_overrides(args))
    except InvalidConfiguration as e:
        setup_logging(Settings())
        logger.error(f"{e}")
        return EXIT_INVALID

    setup_logging(settings)

    if not os.path.isfile(args.source):
        logger.error(f"Input file not found: {args.source}")
        return EXIT_INVALID

    cancel_event = threading.Event()

    def _handle_signal(signum, frame):
        """Stop after the current window."""
        logger.warning(f"Received signal {signum}, stopping after the current window")
        cancel_event.set()

    previous_int = signal.signal(signal.SIGINT, _handle_signal)
    previous_term = signal.signal(signal.SIGTERM, _handle_signal)

    try:
        driver = PipelineDriver(settings)
        result = driver.run(args.source, args.destination, cancel_event=cancel_event)
    except InvalidConfiguration as e:
        logger.error(f"{e}")
        return EXIT_INVALID
    except SmoothLapseError as e:
        logger.error(f"Run failed: {type(e).__name__}: {e}")
        return EXIT_FAILED
    finally:
        signal.signal(signal.SIGINT, previous_int)
        signal.signal(signal.SIGTERM, previous_term)

    if result.cancelled:
        return EXIT_CANCELLED

    logger.info(f"Wrote {result.windows_emitted} frames to {args.destination}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
