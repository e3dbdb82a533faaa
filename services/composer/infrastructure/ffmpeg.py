from __future__ import annotations

import logging
import os
import subprocess
import threading
import uuid
from pathlib import Path

from verticlip.compositor.plan import CompositionPlan

from services.composer.application.interfaces import PreviewDownscaler, Transcoder
from services.composer.config import ComposerConfig
from services.composer.domain.errors import CompositionError, ProcessingError

LOGGER = logging.getLogger(__name__)

DIAGNOSTICS_TAIL_CHARS = 4000
PREVIEW_HEIGHT = 320


def _stderr_tail(raw: bytes) -> str:
    text = raw.decode("utf-8", errors="ignore").strip()
    return text[-DIAGNOSTICS_TAIL_CHARS:]


def _partial_path(output: Path) -> Path:
    # Unique per run so concurrent renders of one session never share a file.
    token = uuid.uuid4().hex[:12]
    return output.with_name(f".{output.stem}.{token}.partial{output.suffix}")


class _FFmpegRunner:
    def __init__(self, *, ffmpeg_path: str, log_level: str) -> None:
        self._ffmpeg_path = ffmpeg_path
        self._log_level = log_level

    def run(self, arguments: list[str]) -> subprocess.CompletedProcess:
        cmd = [
            self._ffmpeg_path,
            "-y",
            "-hide_banner",
            "-loglevel",
            self._log_level,
            *arguments,
        ]
        LOGGER.debug("ffmpeg command: %s", " ".join(cmd))
        return subprocess.run(cmd, capture_output=True)


class FFmpegTranscoder(Transcoder):
    """Runs a composition plan as a single ffmpeg process.

    ffmpeg writes to a hidden sibling of the output; only a clean exit
    renames it into place, so a half-written file is never served.
    """

    def __init__(self, *, ffmpeg_path: str = "ffmpeg", log_level: str = "error") -> None:
        self._runner = _FFmpegRunner(ffmpeg_path=ffmpeg_path, log_level=log_level)

    def transcode(self, plan: CompositionPlan, output: Path) -> Path:
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        partial = _partial_path(output)

        LOGGER.info(
            "Starting composition of %s into %s (%s)",
            plan.video.name,
            output.name,
            plan.graph.render(),
        )
        try:
            result = self._runner.run(plan.ffmpeg_arguments(partial))
        except OSError as exc:
            partial.unlink(missing_ok=True)
            raise CompositionError(f"Unable to run ffmpeg: {exc}") from exc

        if result.returncode != 0:
            partial.unlink(missing_ok=True)
            diagnostics = _stderr_tail(result.stderr)
            LOGGER.error("ffmpeg composition failed for %s: %s", output.name, diagnostics)
            raise CompositionError(
                f"ffmpeg composition failed for {output.name}",
                diagnostics=diagnostics or "unknown error",
            )
        if not partial.exists():
            raise CompositionError(
                f"ffmpeg exited cleanly but produced no file for {output.name}"
            )

        os.replace(partial, output)
        LOGGER.info("Video composition completed: %s", output)
        return output


class BoundedTranscoder(Transcoder):
    """Caps the number of ffmpeg processes running at once."""

    def __init__(self, inner: Transcoder, *, max_concurrent: int) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._inner = inner
        self._slots = threading.BoundedSemaphore(max_concurrent)

    def transcode(self, plan: CompositionPlan, output: Path) -> Path:
        with self._slots:
            return self._inner.transcode(plan, output)


class FFmpegPreviewDownscaler(PreviewDownscaler):
    def __init__(
        self,
        *,
        ffmpeg_path: str = "ffmpeg",
        height: int = PREVIEW_HEIGHT,
        log_level: str = "error",
    ) -> None:
        self._runner = _FFmpegRunner(ffmpeg_path=ffmpeg_path, log_level=log_level)
        self._height = height

    def downscale(self, source: Path, output_dir: Path) -> Path:
        source = Path(source)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        destination = output_dir / f"downres-{source.stem}.mp4"
        partial = _partial_path(destination)

        arguments = [
            "-i",
            source.as_posix(),
            "-vf",
            f"scale=-2:{self._height}",
            "-c:v",
            "libx264",
            "-preset",
            "veryfast",
            "-crf",
            "23",
            "-movflags",
            "+faststart",
            partial.as_posix(),
        ]
        try:
            result = self._runner.run(arguments)
        except OSError as exc:
            raise ProcessingError(f"Unable to run ffmpeg: {exc}") from exc
        if result.returncode != 0:
            partial.unlink(missing_ok=True)
            diagnostics = _stderr_tail(result.stderr)
            raise ProcessingError(
                f"ffmpeg down-res failed for {source.name}",
                diagnostics=diagnostics or "unknown error",
            )
        os.replace(partial, destination)
        LOGGER.info("Down-res complete: %s", destination)
        return destination


def create_transcoder(config: ComposerConfig) -> Transcoder:
    transcoder: Transcoder = FFmpegTranscoder(ffmpeg_path=config.ffmpeg_path)
    if config.max_concurrent_transcodes > 0:
        transcoder = BoundedTranscoder(
            transcoder, max_concurrent=config.max_concurrent_transcodes
        )
    return transcoder


def create_preview_downscaler(config: ComposerConfig) -> PreviewDownscaler:
    return FFmpegPreviewDownscaler(ffmpeg_path=config.ffmpeg_path)
