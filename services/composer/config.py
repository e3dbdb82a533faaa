from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


def _load_repo_env() -> None:
    """Load the nearest .env starting from this file upward."""
    current = Path(__file__).resolve()
    for candidate in [current.parent, *current.parents]:
        env_file = candidate / ".env"
        if env_file.exists():
            load_dotenv(env_file)
            return


_load_repo_env()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer") from exc


@dataclass(frozen=True)
class ComposerConfig:
    host: str
    port: int
    upload_root: Path
    output_root: Path
    max_upload_bytes: int
    max_upload_parts: int
    cleanup_max_age_hours: int
    cleanup_interval_seconds: int
    canvas_width: int
    canvas_height: int
    max_clip_seconds: int
    ffmpeg_path: str
    ffprobe_path: str
    max_concurrent_transcodes: int
    environment: str
    log_level: str
    output_url_prefix: str = "/outputs"

    @property
    def staging_root(self) -> Path:
        # Same filesystem as the sessions so commits are atomic renames.
        return self.upload_root / ".staging"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def load_config() -> ComposerConfig:
    return ComposerConfig(
        host=os.getenv("VERTICLIP_HOST", "0.0.0.0"),
        port=_env_int("VERTICLIP_PORT", 3001),
        upload_root=Path(os.getenv("VERTICLIP_UPLOAD_ROOT", "uploads")).resolve(),
        output_root=Path(os.getenv("VERTICLIP_OUTPUT_ROOT", "outputs")).resolve(),
        max_upload_bytes=_env_int("VERTICLIP_MAX_UPLOAD_BYTES", 100 * 1024 * 1024),
        max_upload_parts=_env_int("VERTICLIP_MAX_UPLOAD_PARTS", 4),
        cleanup_max_age_hours=_env_int("VERTICLIP_CLEANUP_MAX_AGE_HOURS", 24),
        cleanup_interval_seconds=_env_int("VERTICLIP_CLEANUP_INTERVAL_SECONDS", 3600),
        canvas_width=_env_int("VERTICLIP_CANVAS_WIDTH", 1080),
        canvas_height=_env_int("VERTICLIP_CANVAS_HEIGHT", 1920),
        max_clip_seconds=_env_int("VERTICLIP_MAX_CLIP_SECONDS", 60),
        ffmpeg_path=os.getenv("VERTICLIP_FFMPEG_PATH", "ffmpeg"),
        ffprobe_path=os.getenv("VERTICLIP_FFPROBE_PATH", "ffprobe"),
        max_concurrent_transcodes=_env_int("VERTICLIP_MAX_CONCURRENT_TRANSCODES", 0),
        environment=os.getenv("VERTICLIP_ENV", "development"),
        log_level=os.getenv("VERTICLIP_LOG_LEVEL", "INFO").upper(),
    )
