"""
Pipeline Driver
===============

Wires decoder -> WindowSelector -> encoder for one run.

Modes:
    - Sequential: one thread decodes, selects and encodes inline
    - Staged: a decoder thread and an encoder thread are connected to the
      selecting thread by bounded FrameChannels

Both modes emit the same selections in the same order. A full encoder
channel stalls scoring; frames are never dropped.

Error Policy:
    Every error is run-fatal. Worker errors are re-raised in the calling
    thread with their original type. The encoder is closed on every exit
    path, so whatever prefix was written is flushed.

Cancellation:
    cancel_event is checked between windows. A cancelled run stops
    decoding, closes the encoder and returns with cancelled=True.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Tuple, Union

from pydantic import ValidationError

from smoothlapse.codec.decoder import FrameSource, VideoDecoder
from smoothlapse.codec.encoder import FrameSink, VideoEncoder
from smoothlapse.config import Settings
from smoothlapse.errors import InvalidConfiguration
from smoothlapse.models.selection import Selection, VideoInfo
from smoothlapse.models.strategy import Strategy
from smoothlapse.observability.progress import ProgressReporter
from smoothlapse.selection.metrics import get_metric
from smoothlapse.selection.selector import WindowSelector
from smoothlapse.stream.buffer import ChannelClosed, FrameChannel
from smoothlapse.stream.frame import Frame


logger = logging.getLogger(__name__)


SourceFactory = Callable[[str, Settings], FrameSource]
SinkFactory = Callable[[str, VideoInfo, Settings], FrameSink]


def open_video_source(path: str, settings: Settings) -> FrameSource:
    """Default source factory: an OpenCV decoder (opened on enter)."""
    return VideoDecoder(
        path,
        pixel_format=settings.decoder.pixel_format,
        frame_skip=settings.selection.frame_skip,
    )


def open_video_sink(path: str, info: VideoInfo, settings: Settings) -> FrameSink:
    """Default sink factory: an opened OpenCV encoder."""
    return VideoEncoder(
        path,
        info=info,
        fps=settings.encoder.fps,
        fourcc=settings.encoder.fourcc,
    ).open()


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """
    Outcome of a run.

    Attributes:
        windows_emitted: Selections written to the encoder
        frames_decoded: Frames received from the decoder
        cancelled: True if the run stopped early on request
        elapsed_seconds: Wall time of the run
        selected_indices: Sequence index of each written frame, in order
    """

    windows_emitted: int
    frames_decoded: int
    cancelled: bool
    elapsed_seconds: float
    selected_indices: Tuple[int, ...]

    def to_dict(self) -> dict:
        """Export as dictionary for logging/serialization."""
        return {
            "windows_emitted": self.windows_emitted,
            "frames_decoded": self.frames_decoded,
            "cancelled": self.cancelled,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


@dataclass
class _RunState:
    """Mutable per-run counters."""

    frames_decoded: int = 0
    cancelled: bool = False
    selected: List[int] = field(default_factory=list)


class PipelineDriver:
    """
    Runs the decode -> select -> encode flow.

    Attributes:
        settings: Immutable run configuration

    Example:
        driver = PipelineDriver(load_config())
        result = driver.run("print.mp4", "print_lapse.mp4")
        print(f"{result.windows_emitted} frames written")
    """

    def __init__(
        self,
        settings: Settings,
        source_factory: SourceFactory = open_video_source,
        sink_factory: SinkFactory = open_video_sink,
    ) -> None:
        """
        Initialize pipeline driver.

        Args:
            settings: Run configuration
            source_factory: Builds the decoder collaborator for a path
            sink_factory: Builds and opens the encoder collaborator

        Raises:
            InvalidConfiguration: If window size or strategy is invalid
        """
        if settings.selection.window_size <= 0:
            raise InvalidConfiguration(
                f"window size must be positive, got {settings.selection.window_size}"
            )
        # Fail on an unknown strategy before any decoding begins
        get_metric(settings.selection.strategy)

        self.settings = settings
        self._source_factory = source_factory
        self._sink_factory = sink_factory

        logger.info(
            f"PipelineDriver initialized: window={settings.selection.window_size}, "
            f"strategy={Strategy(settings.selection.strategy).value}, "
            f"fps={settings.encoder.fps}, "
            f"mode={'staged' if settings.pipeline.concurrent else 'sequential'}"
        )

    def run(
        self,
        source: str,
        destination: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> PipelineResult:
        """
        Produce a timelapse of source at destination.

        Args:
            source: Input video path
            destination: Output video path
            cancel_event: Set from another thread to stop between windows

        Returns:
            PipelineResult describing what was written

        Raises:
            SmoothLapseError: Any run-fatal error (see smoothlapse.errors)
        """
        start = time.monotonic()
        cancel_event = cancel_event or threading.Event()
        state = _RunState()
        selector = WindowSelector(
            self.settings.selection.window_size,
            get_metric(self.settings.selection.strategy),
        )

        with self._source_factory(source, self.settings) as decoder:
            info = decoder.info
            reporter = ProgressReporter(
                total_frames=info.total_frames // (self.settings.selection.frame_skip + 1),
                every_n_windows=self.settings.pipeline.progress_every_windows,
            )
            sink = self._sink_factory(destination, info, self.settings)
            try:
                if self.settings.pipeline.concurrent:
                    self._run_staged(decoder, selector, sink, reporter, state, cancel_event)
                else:
                    self._run_sequential(decoder, selector, sink, reporter, state, cancel_event)
            finally:
                sink.close()

        result = PipelineResult(
            windows_emitted=len(state.selected),
            frames_decoded=state.frames_decoded,
            cancelled=state.cancelled,
            elapsed_seconds=time.monotonic() - start,
            selected_indices=tuple(state.selected),
        )
        logger.debug(f"Run summary: {result.to_dict()}")
        if result.cancelled:
            logger.warning(
                f"Run cancelled after {result.windows_emitted} windows "
                f"({result.frames_decoded} frames decoded)"
            )
        else:
            logger.info(
                f"Run complete: {result.windows_emitted} windows from "
                f"{result.frames_decoded} frames in {result.elapsed_seconds:.2f}s"
            )
        return result

    # -------------------------------------------------------------------------
    # Sequential mode
    # -------------------------------------------------------------------------

    def _run_sequential(
        self,
        decoder: FrameSource,
        selector: WindowSelector,
        sink: FrameSink,
        reporter: ProgressReporter,
        state: _RunState,
        cancel_event: threading.Event,
    ) -> None:
        if cancel_event.is_set():
            state.cancelled = True
            return

        for selection in selector.select(_counted(decoder.frames(), state)):
            _emit(sink, selection, reporter, state)
            if cancel_event.is_set():
                state.cancelled = True
                break

    # -------------------------------------------------------------------------
    # Staged mode
    # -------------------------------------------------------------------------

    def _run_staged(
        self,
        decoder: FrameSource,
        selector: WindowSelector,
        sink: FrameSink,
        reporter: ProgressReporter,
        state: _RunState,
        cancel_event: threading.Event,
    ) -> None:
        queue_size = self.settings.pipeline.queue_size
        decoded: FrameChannel[Frame] = FrameChannel(maxsize=queue_size, name="decode-channel")
        selected: FrameChannel[Selection] = FrameChannel(maxsize=queue_size, name="encode-channel")
        decode_errors: List[BaseException] = []
        encode_errors: List[BaseException] = []

        decode_thread = threading.Thread(
            target=_decode_worker,
            args=(decoder.frames(), decoded, decode_errors),
            name="smoothlapse-decoder",
            daemon=True,
        )
        encode_thread = threading.Thread(
            target=_encode_worker,
            args=(sink, selected, reporter, state, encode_errors),
            name="smoothlapse-encoder",
            daemon=True,
        )
        decode_thread.start()
        encode_thread.start()

        try:
            if cancel_event.is_set():
                state.cancelled = True
            else:
                frames = _counted(_receive(decoded, decode_errors), state)
                for selection in selector.select(frames):
                    selected.put(selection)
                    if cancel_event.is_set():
                        state.cancelled = True
                        break
        except ChannelClosed:
            # Encoder aborted the channel; its error is raised below
            pass
        finally:
            decoded.abort()
            selected.close()
            decode_thread.join()
            encode_thread.join()

        if encode_errors:
            raise encode_errors[0]

        logger.debug(
            f"Channels drained: decode={decoded.metrics()}, encode={selected.metrics()}"
        )


def _counted(frames: Iterable[Frame], state: _RunState) -> Iterator[Frame]:
    for frame in frames:
        state.frames_decoded += 1
        yield frame


def _receive(channel: FrameChannel, errors: List[BaseException]) -> Iterator[Frame]:
    """Yield frames from the decode channel, then raise any decoder error."""
    yield from channel
    if errors:
        raise errors[0]


def _emit(
    sink: FrameSink,
    selection: Selection,
    reporter: ProgressReporter,
    state: _RunState,
) -> None:
    sink.write(selection.frame)
    state.selected.append(selection.frame_index)
    reporter.record(selection)


def _decode_worker(
    frames: Iterator[Frame],
    channel: FrameChannel,
    errors: List[BaseException],
) -> None:
    try:
        for frame in frames:
            channel.put(frame)
    except ChannelClosed:
        logger.debug("Decode channel closed by consumer, stopping decoder")
    except Exception as e:
        errors.append(e)
    finally:
        channel.close()


def _encode_worker(
    sink: FrameSink,
    channel: FrameChannel,
    reporter: ProgressReporter,
    state: _RunState,
    errors: List[BaseException],
) -> None:
    try:
        for selection in channel:
            _emit(sink, selection, reporter, state)
    except Exception as e:
        errors.append(e)
        channel.abort()


def run_timelapse(
    source: str,
    destination: str,
    window_size: int,
    strategy: Union[Strategy, str],
    fps: float,
    settings: Optional[Settings] = None,
    cancel_event: Optional[threading.Event] = None,
) -> PipelineResult:
    """
    Run the pipeline with explicit window size, strategy and frame rate.

    Remaining options come from settings (defaults if None).

    Raises:
        InvalidConfiguration: If window_size <= 0, fps <= 0 or the
            strategy is unknown
    """
    data = (settings or Settings()).model_dump()
    data["selection"]["window_size"] = window_size
    data["selection"]["strategy"] = strategy
    data["encoder"]["fps"] = fps
    try:
        run_settings = Settings.model_validate(data)
    except ValidationError as e:
        raise InvalidConfiguration(f"Invalid run parameters: {e}") from e

    return PipelineDriver(run_settings).run(source, destination, cancel_event=cancel_event)
