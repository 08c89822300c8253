"""
SmoothLapse Configuration
=========================

This module handles configuration loading for timelapse runs.

Configuration Sources (in order of precedence):
    1. Explicit overrides (command-line options)
    2. Environment variables
    3. YAML config file
    4. Default values (lowest priority)

Environment Variable Mapping:
    SMOOTHLAPSE_WINDOW        -> selection.window_size
    SMOOTHLAPSE_STRATEGY      -> selection.strategy
    SMOOTHLAPSE_FRAME_SKIP    -> selection.frame_skip
    SMOOTHLAPSE_PIXEL_FORMAT  -> decoder.pixel_format
    SMOOTHLAPSE_FPS           -> encoder.fps
    SMOOTHLAPSE_QUEUE_SIZE    -> pipeline.queue_size
    SMOOTHLAPSE_LOG_LEVEL     -> logging.level

Settings are immutable and passed explicitly to the pipeline; there is
no module-level settings instance.

Example:
    from smoothlapse.config import load_config

    settings = load_config("smoothlapse.yaml", overrides={"selection": {"window_size": 30}})
    print(settings.selection.strategy)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from smoothlapse.errors import InvalidConfiguration
from smoothlapse.models.strategy import Strategy
from smoothlapse.stream.frame import PixelFormat


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class SelectionConfig(BaseModel):
    """Windowing and metric configuration."""

    model_config = ConfigDict(frozen=True)

    window_size: int = Field(
        default=25,
        gt=0,
        description="Input frames per window; one frame is kept per window",
    )
    strategy: Strategy = Field(
        default=Strategy.MSE,
        description="Similarity metric: 'noop' or 'mse'",
    )
    frame_skip: int = Field(
        default=0,
        ge=0,
        description="Frames dropped before every kept frame, before windowing",
    )


class DecoderConfig(BaseModel):
    """Decoder configuration."""

    model_config = ConfigDict(frozen=True)

    pixel_format: PixelFormat = Field(
        default=PixelFormat.BGR24,
        description="Pixel format frames are compared in: gray, bgr24 or rgb24",
    )


class EncoderConfig(BaseModel):
    """Encoder configuration."""

    model_config = ConfigDict(frozen=True)

    fps: float = Field(default=30.0, gt=0, description="Output frame rate")
    fourcc: str = Field(default="mp4v", description="Four-character codec code")

    @field_validator("fourcc")
    @classmethod
    def _check_fourcc(cls, value: str) -> str:
        if len(value) != 4:
            raise ValueError("fourcc must be exactly 4 characters")
        return value


class PipelineConfig(BaseModel):
    """Stage and buffering configuration."""

    model_config = ConfigDict(frozen=True)

    concurrent: bool = Field(
        default=True,
        description="Run decoder and encoder in their own threads",
    )
    queue_size: int = Field(
        default=64,
        ge=1,
        description="Capacity of each inter-stage channel",
    )
    progress_every_windows: int = Field(
        default=50,
        ge=1,
        description="Log a progress line every N windows",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for SmoothLapse.

    One immutable instance describes a whole run. Build it with
    load_config() or construct it directly in tests.
    """

    model_config = ConfigDict(frozen=True)

    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    decoder: DecoderConfig = Field(default_factory=DecoderConfig)
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[dict] = None,
) -> Settings:
    """
    Load configuration from YAML file, environment and explicit overrides.

    Args:
        config_path: Path to a YAML file. If None, searches the working
            directory for smoothlapse.yaml, smoothlapse.yml, config.yaml.
        overrides: Nested dict applied last (e.g. parsed CLI options)

    Returns:
        Settings: Validated configuration

    Raises:
        InvalidConfiguration: If the file is missing or unreadable, or a
            value fails validation
    """
    if config_path is None:
        for path in (Path("smoothlapse.yaml"), Path("smoothlapse.yml"), Path("config.yaml")):
            if path.exists():
                config_path = str(path)
                break
    elif not Path(config_path).exists():
        raise InvalidConfiguration(f"Config file not found: {config_path}")

    config_data: dict = {}
    if config_path:
        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise InvalidConfiguration(f"Invalid YAML in {config_path}: {e}") from e
        except OSError as e:
            raise InvalidConfiguration(f"Cannot read config file {config_path}: {e}") from e
        if not isinstance(config_data, dict):
            raise InvalidConfiguration(f"Config file {config_path} must contain a mapping")
        _check_sections(config_data, config_path)
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)
    if overrides:
        _merge(config_data, overrides)

    try:
        return Settings.model_validate(config_data)
    except ValidationError as e:
        raise InvalidConfiguration(f"Invalid configuration: {e}") from e


def _check_sections(config_data: dict, config_path: str) -> None:
    """Require every top-level section to be a mapping; empty sections become {}."""
    for key, value in config_data.items():
        if value is None:
            config_data[key] = {}
        elif not isinstance(value, dict):
            raise InvalidConfiguration(
                f"Section {key!r} in {config_path} must be a mapping, got {type(value).__name__}"
            )


def _merge(target: dict, source: dict) -> None:
    """Recursively merge source into target, skipping None values."""
    for key, value in source.items():
        if value is None:
            continue
        if isinstance(value, dict):
            _merge(target.setdefault(key, {}), value)
        else:
            target[key] = value


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Selection settings
    if env_window := os.environ.get("SMOOTHLAPSE_WINDOW"):
        config_data.setdefault("selection", {})["window_size"] = env_window
    if env_strategy := os.environ.get("SMOOTHLAPSE_STRATEGY"):
        config_data.setdefault("selection", {})["strategy"] = env_strategy
    if env_skip := os.environ.get("SMOOTHLAPSE_FRAME_SKIP"):
        config_data.setdefault("selection", {})["frame_skip"] = env_skip

    # Codec settings
    if env_format := os.environ.get("SMOOTHLAPSE_PIXEL_FORMAT"):
        config_data.setdefault("decoder", {})["pixel_format"] = env_format
    if env_fps := os.environ.get("SMOOTHLAPSE_FPS"):
        config_data.setdefault("encoder", {})["fps"] = env_fps

    # Pipeline settings
    if env_queue := os.environ.get("SMOOTHLAPSE_QUEUE_SIZE"):
        config_data.setdefault("pipeline", {})["queue_size"] = env_queue

    # Logging settings
    if env_log := os.environ.get("SMOOTHLAPSE_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
