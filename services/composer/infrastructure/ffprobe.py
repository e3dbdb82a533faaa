from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Any, Mapping

from services.composer.application.interfaces import MediaProber
from services.composer.domain.assets import MediaMetadata
from services.composer.domain.errors import ProbeError

LOGGER = logging.getLogger(__name__)

DEFAULT_FPS = 30.0


def parse_frame_rate(raw: object) -> float:
    """Parse ffprobe's ``num/den`` rate, falling back to 30 fps."""
    if not isinstance(raw, str) or not raw:
        return DEFAULT_FPS
    num, _, den = raw.partition("/")
    try:
        numerator = float(num)
        denominator = float(den) if den else 1.0
    except ValueError:
        return DEFAULT_FPS
    if denominator == 0 or numerator <= 0:
        return DEFAULT_FPS
    return numerator / denominator


def _as_float(value: object, default: float = 0.0) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _as_int(value: object, default: int = 0) -> int:
    try:
        return int(float(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def parse_probe_payload(payload: Mapping[str, Any], source: str = "") -> MediaMetadata:
    streams = payload.get("streams") or []
    video_stream = next(
        (stream for stream in streams if stream.get("codec_type") == "video"), None
    )
    if video_stream is None:
        raise ProbeError(f"No video stream found in {source or 'input'}")
    has_audio = any(stream.get("codec_type") == "audio" for stream in streams)

    fmt = payload.get("format") or {}
    return MediaMetadata(
        duration=_as_float(fmt.get("duration")),
        width=_as_int(video_stream.get("width")),
        height=_as_int(video_stream.get("height")),
        fps=parse_frame_rate(video_stream.get("r_frame_rate")),
        bitrate=_as_int(fmt.get("bit_rate")),
        codec=video_stream.get("codec_name") or "unknown",
        has_audio=has_audio,
    )


class FFprobeMediaProber(MediaProber):
    def __init__(self, *, ffprobe_path: str = "ffprobe") -> None:
        self._ffprobe_path = ffprobe_path

    def probe(self, path: Path) -> MediaMetadata:
        cmd = [
            self._ffprobe_path,
            "-v",
            "error",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            Path(path).as_posix(),
        ]
        LOGGER.debug("ffprobe command: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True)
        except OSError as exc:
            raise ProbeError(f"Unable to run ffprobe: {exc}") from exc

        stderr = result.stderr.decode("utf-8", errors="ignore").strip()
        if result.returncode != 0:
            LOGGER.error("ffprobe failed for %s: %s", Path(path).name, stderr)
            raise ProbeError(
                f"ffprobe failed for {Path(path).name}", diagnostics=stderr
            )
        try:
            payload = json.loads(result.stdout.decode("utf-8", errors="ignore"))
        except json.JSONDecodeError as exc:
            raise ProbeError(
                f"ffprobe returned unreadable output for {Path(path).name}",
                diagnostics=stderr,
            ) from exc
        return parse_probe_payload(payload, source=Path(path).name)
