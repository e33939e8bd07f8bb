"""Configuration containers for the continuous video pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import ClassVar, List

DEFAULT_HOSTING_ORDER = ["provider", "freeimage", "imgbb"]


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class PipelineConfig:
    """Static configuration applied to every pipeline run."""

    env_prefix: ClassVar[str] = "CVGEN_"

    runs_dir: str | None = "runs"
    enable_mock_generation: bool = True
    default_style: str = "cinematic"
    default_mode: str = "premium"
    default_segment_duration: int = 9
    max_duration_sec: int = 60
    run_timeout_sec: float | None = None
    image_poll_interval: float = 3.0
    image_max_attempts: int = 30
    video_poll_interval: float = 5.0
    video_max_attempts: int = 60
    video_timeout_retries: int = 1
    http_timeout: int = 60
    aspect_ratio: str = "16:9"
    resolution: str = "720p"
    hosting_order: List[str] = field(default_factory=lambda: list(DEFAULT_HOSTING_ORDER))
    vision_provider: str = "gemini"
    end_frame_provider: str = "openai"
    luma_api_key: str | None = None
    luma_api_url: str | None = None
    luma_image_model: str = "photon-1"
    luma_video_model: str = "ray-2"
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.0-flash"
    openai_api_key: str | None = None
    openai_api_url: str | None = None
    openai_vision_model: str = "gpt-4o"
    openai_image_model: str = "gpt-image-1"
    freeimage_api_key: str | None = None
    imgbb_api_key: str | None = None

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """Create a config object populated from environment variables."""
        prefix = cls.env_prefix
        hosting = os.getenv(f"{prefix}HOSTING_ORDER")
        run_timeout = os.getenv(f"{prefix}RUN_TIMEOUT_SEC")
        return cls(
            runs_dir=os.getenv(f"{prefix}RUNS_DIR", "runs") or None,
            enable_mock_generation=_env_bool(f"{prefix}ENABLE_MOCKS", "true"),
            default_style=os.getenv(f"{prefix}STYLE", "cinematic"),
            default_mode=os.getenv(f"{prefix}MODE", "premium"),
            default_segment_duration=int(os.getenv(f"{prefix}SEGMENT_DURATION", "9")),
            max_duration_sec=int(os.getenv(f"{prefix}MAX_DURATION_SEC", "60")),
            run_timeout_sec=float(run_timeout) if run_timeout else None,
            image_poll_interval=float(os.getenv(f"{prefix}IMAGE_POLL_INTERVAL", "3")),
            image_max_attempts=int(os.getenv(f"{prefix}IMAGE_MAX_ATTEMPTS", "30")),
            video_poll_interval=float(os.getenv(f"{prefix}VIDEO_POLL_INTERVAL", "5")),
            video_max_attempts=int(os.getenv(f"{prefix}VIDEO_MAX_ATTEMPTS", "60")),
            video_timeout_retries=int(os.getenv(f"{prefix}VIDEO_TIMEOUT_RETRIES", "1")),
            hosting_order=(
                [item.strip() for item in hosting.split(",") if item.strip()]
                if hosting
                else list(DEFAULT_HOSTING_ORDER)
            ),
            vision_provider=os.getenv(f"{prefix}VISION_PROVIDER", "gemini"),
            end_frame_provider=os.getenv(f"{prefix}END_FRAME_PROVIDER", "openai"),
            luma_api_key=os.getenv("LUMA_API_KEY"),
            luma_api_url=os.getenv("LUMA_API_URL"),
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            openai_api_url=os.getenv("OPENAI_API_URL"),
            freeimage_api_key=os.getenv("FREEIMAGE_API_KEY"),
            imgbb_api_key=os.getenv("IMGBB_API_KEY"),
        )
