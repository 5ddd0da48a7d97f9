"""Server configuration via environment variables."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, field_validator

VALID_RESOLUTIONS = ("720p", "1080p")
VALID_ASPECT_RATIOS = ("16:9", "9:16")


def _resolve_tracing_enabled(flag_value: str, tracking_uri: str) -> bool:
    """Derive tracing_enabled from env vars.

    - ``GEMINI_TRACING_ENABLED=false`` → always disabled (explicit opt-out).
    - Otherwise enabled when ``MLFLOW_TRACKING_URI`` is non-empty.
    """
    if flag_value.strip().lower() == "false":
        return False
    return bool(tracking_uri)


class ServerConfig(BaseModel):
    """Runtime configuration resolved from environment.

    Durations are seconds. ``poll_max_wait_seconds`` bounds a single phase
    and ``run_max_seconds`` bounds a whole run; 0 disables either bound.
    """

    gemini_api_key: str = Field(default="")
    video_model: str = Field(default="veo-3.1-fast-generate-preview")
    extension_model: str = Field(default="veo-3.1-generate-preview")
    default_resolution: str = Field(default="720p")
    default_aspect_ratio: str = Field(default="16:9")
    base_clip_seconds: int = Field(default=5)
    extension_seconds: int = Field(default=7)
    retry_max_retries: int = Field(default=3)
    retry_initial_delay: float = Field(default=2.0)
    poll_interval_seconds: float = Field(default=10.0)
    poll_max_wait_seconds: float = Field(default=900.0)
    run_max_seconds: float = Field(default=0.0)
    max_videos_per_call: int = Field(default=10)
    tracing_enabled: bool = Field(default=False)
    mlflow_tracking_uri: str = Field(default="")
    mlflow_experiment_name: str = Field(default="storyboard-video-mcp")

    @field_validator("default_resolution")
    @classmethod
    def validate_resolution(cls, value: str) -> str:
        v = value.strip().lower()
        if v not in VALID_RESOLUTIONS:
            raise ValueError(f"Invalid resolution '{value}'. Allowed: {', '.join(VALID_RESOLUTIONS)}")
        return v

    @field_validator("default_aspect_ratio")
    @classmethod
    def validate_aspect_ratio(cls, value: str) -> str:
        v = value.strip()
        if v not in VALID_ASPECT_RATIOS:
            raise ValueError(f"Invalid aspect ratio '{value}'. Allowed: {', '.join(VALID_ASPECT_RATIOS)}")
        return v

    @field_validator("base_clip_seconds", "extension_seconds", "max_videos_per_call")
    @classmethod
    def validate_positive_ints(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Configuration values must be >= 1")
        return value

    @field_validator("retry_max_retries")
    @classmethod
    def validate_retry_max_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("retry_max_retries must be >= 0")
        return value

    @field_validator("retry_initial_delay", "poll_interval_seconds")
    @classmethod
    def validate_delays(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Delay values must be > 0")
        return value

    @field_validator("poll_max_wait_seconds", "run_max_seconds")
    @classmethod
    def validate_bounds(cls, value: float) -> float:
        if value < 0:
            raise ValueError("Wait bounds must be >= 0 (0 disables the bound)")
        return value

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Build config from environment variables."""
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            video_model=os.getenv("VEO_MODEL", "veo-3.1-fast-generate-preview"),
            extension_model=os.getenv("VEO_EXTENSION_MODEL", "veo-3.1-generate-preview"),
            default_resolution=os.getenv("VEO_RESOLUTION", "720p"),
            default_aspect_ratio=os.getenv("VEO_ASPECT_RATIO", "16:9"),
            base_clip_seconds=int(os.getenv("VEO_BASE_SECONDS", "5")),
            extension_seconds=int(os.getenv("VEO_EXTENSION_SECONDS", "7")),
            retry_max_retries=int(os.getenv("VEO_RETRY_MAX_RETRIES", "3")),
            retry_initial_delay=float(os.getenv("VEO_RETRY_INITIAL_DELAY", "2.0")),
            poll_interval_seconds=float(os.getenv("VEO_POLL_INTERVAL", "10.0")),
            poll_max_wait_seconds=float(os.getenv("VEO_POLL_MAX_WAIT", "900")),
            run_max_seconds=float(os.getenv("VEO_RUN_MAX_SECONDS", "0")),
            max_videos_per_call=int(os.getenv("STORYBOARD_MAX_VIDEOS", "10")),
            tracing_enabled=_resolve_tracing_enabled(
                os.getenv("GEMINI_TRACING_ENABLED", ""),
                os.getenv("MLFLOW_TRACKING_URI", ""),
            ),
            mlflow_tracking_uri=os.getenv("MLFLOW_TRACKING_URI", ""),
            mlflow_experiment_name=os.getenv("MLFLOW_EXPERIMENT_NAME", "storyboard-video-mcp"),
        )


# Singleton — initialised once on first access.
_config: ServerConfig | None = None


def get_config() -> ServerConfig:
    """Return the global config singleton, creating it on first access.

    Loads ``~/.config/storyboard-video-mcp/.env`` before reading env vars.
    Process environment always takes precedence over the config file.
    """
    global _config
    if _config is None:
        import logging

        from .dotenv import load_dotenv

        injected = load_dotenv()
        if injected:
            logger = logging.getLogger(__name__)
            logger.info(
                "Loaded %d var(s) from config: %s",
                len(injected),
                ", ".join(injected.keys()),
            )
        _config = ServerConfig.from_env()
    return _config


def update_config(**overrides: object) -> ServerConfig:
    """Patch the live config."""
    global _config
    cfg = get_config()
    data = cfg.model_dump()
    data.update({k: v for k, v in overrides.items() if v is not None})
    _config = ServerConfig(**data)
    return _config
