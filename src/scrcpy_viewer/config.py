"""
scrcpy-viewer Configuration
===========================

This module handles configuration loading for the stream viewer.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    SCRCPY_STREAM_URL       -> stream.url
    SCRCPY_RECONNECT_DELAY  -> stream.reconnect_delay_seconds
    SCRCPY_DECODER_BACKEND  -> decoder.backend
    SCRCPY_RECORD_PATH      -> decoder.record_path
    SCRCPY_VIEWER_PORT      -> server.port
    SCRCPY_LOG_LEVEL        -> logging.level
    PORT                    -> server.port

Example:
    from scrcpy_viewer.config import settings

    print(settings.stream.url)
    print(settings.stream.reconnect_delay_seconds)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Application identification configuration."""

    name: str = Field(default="scrcpy-viewer", description="Application name")
    version: str = Field(default="v0.1.0", description="Application version")


class StreamConfig(BaseModel):
    """Video stream connection configuration."""

    url: str = Field(
        default="ws://localhost:8000/api/video/stream",
        description="WebSocket URL of the video stream endpoint",
    )
    reconnect_delay_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Fixed delay between a close and the next connection attempt",
    )
    ping_interval: Optional[float] = Field(
        default=20.0,
        description="Keepalive ping interval in seconds (None disables)",
    )
    ping_timeout: Optional[float] = Field(
        default=10.0,
        description="Keepalive pong timeout in seconds",
    )
    close_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Close handshake timeout in seconds",
    )
    open_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Opening handshake timeout in seconds",
    )
    max_message_bytes: Optional[int] = Field(
        default=None,
        ge=1,
        description="Max inbound message size (None = unlimited)",
    )


class DecoderConfig(BaseModel):
    """Decoder sink configuration."""

    backend: str = Field(
        default="pyav",
        description="Decoder backend: 'pyav' or 'file'",
    )
    codec: str = Field(default="h264", description="Elementary stream codec")
    pixel_format: str = Field(
        default="bgr24",
        description="Pixel format of decoded frames",
    )
    record_path: str = Field(
        default="./recordings/stream.h264",
        description="Output path for the 'file' backend",
    )
    debug: bool = Field(default=False, description="Verbose decoder logging")


class ServerConfig(BaseModel):
    """Status service configuration."""

    host: str = Field(default="127.0.0.1", description="Bind host")
    port: int = Field(default=8001, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for scrcpy-viewer.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    decoder: DecoderConfig = Field(default_factory=DecoderConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Stream settings
    if env_url := os.environ.get("SCRCPY_STREAM_URL"):
        config_data.setdefault("stream", {})["url"] = env_url
    if env_delay := os.environ.get("SCRCPY_RECONNECT_DELAY"):
        config_data.setdefault("stream", {})["reconnect_delay_seconds"] = float(env_delay)

    # Decoder settings
    if env_backend := os.environ.get("SCRCPY_DECODER_BACKEND"):
        config_data.setdefault("decoder", {})["backend"] = env_backend
    if env_record := os.environ.get("SCRCPY_RECORD_PATH"):
        config_data.setdefault("decoder", {})["record_path"] = env_record

    # Server settings
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("SCRCPY_VIEWER_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("SCRCPY_LOG_LEVEL"):
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


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
