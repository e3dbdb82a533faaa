from __future__ import annotations

import logging
import time
from pathlib import Path

from verticlip.compositor.graph import ClipWindow, OverlayLayer
from verticlip.compositor.layout import Canvas, LayoutError
from verticlip.compositor.plan import (
    CompositionPlan,
    PlannedOverlay,
    build_composition_plan,
)

from services.composer.application.dto import ComposeVideoCommand
from services.composer.application.interfaces import (
    MediaProber,
    OutputStore,
    SessionStore,
    Transcoder,
)
from services.composer.application.validation import (
    validate_clip_against_source,
    validate_clip_bounds,
)
from services.composer.domain.assets import AssetRole, MediaMetadata
from services.composer.domain.composition import (
    CompositionResult,
    CompositionRun,
    CompositionState,
)
from services.composer.domain.errors import (
    CompositionError,
    OverlayCountMismatch,
    SessionAssetMissing,
    SessionNotFound,
)

LOGGER = logging.getLogger(__name__)


class ComposeVideoUseCase:
    """Drive one compose request through validate, resolve, build, transcode.

    Only the duration probe may spawn a process before the TRANSCODING
    state. Any failure moves the run to FAILED and propagates.
    """

    def __init__(
        self,
        *,
        session_store: SessionStore,
        output_store: OutputStore,
        prober: MediaProber,
        transcoder: Transcoder,
        canvas: Canvas,
        max_clip_seconds: float,
    ) -> None:
        self._session_store = session_store
        self._output_store = output_store
        self._prober = prober
        self._transcoder = transcoder
        self._canvas = canvas
        self._max_clip_seconds = max_clip_seconds

    def execute(
        self, command: ComposeVideoCommand, run: CompositionRun | None = None
    ) -> CompositionResult:
        started = time.monotonic()
        run = run or CompositionRun(session_id=command.session_id)
        try:
            metadata = self._validate(command)
            run.advance(CompositionState.RESOLVING)
            background, video, overlays = self._resolve(command)
            run.advance(CompositionState.BUILDING)
            plan = self._build(command, metadata, background, video, overlays)
            run.advance(CompositionState.TRANSCODING)
            output = self._transcode(command.session_id, plan)
            file_size = output.stat().st_size
        except Exception:
            run.fail()
            raise

        run.advance(CompositionState.DONE)
        return CompositionResult(
            output_path=output,
            video_url=self._output_store.public_url(output),
            duration=command.clip.duration,
            file_size=file_size,
            processing_time_ms=int((time.monotonic() - started) * 1000),
        )

    def _validate(self, command: ComposeVideoCommand) -> MediaMetadata:
        session_id = command.session_id
        if not self._session_store.exists(session_id):
            raise SessionNotFound("Session folder not found. Please upload files first.")
        # More specs than stored overlays (at most two) fails on the first
        # missing index.
        stored = len(self._session_store.list_overlays(session_id))
        if len(command.overlays) > stored:
            raise OverlayCountMismatch(
                f"Overlay #{stored + 1} file not found in session "
                f"({stored} overlay(s) uploaded, {len(command.overlays)} requested)."
            )
        validate_clip_bounds(command.clip, max_seconds=self._max_clip_seconds)

        video_path = self._session_store.resolve_by_role(session_id, AssetRole.VIDEO)
        metadata = self._prober.probe(video_path)
        validate_clip_against_source(command.clip, source_duration=metadata.duration)
        return metadata

    def _resolve(
        self, command: ComposeVideoCommand
    ) -> tuple[Path, Path, list[Path]]:
        session_id = command.session_id
        video = self._session_store.resolve_by_role(session_id, AssetRole.VIDEO)
        background = self._session_store.resolve_by_role(
            session_id, AssetRole.BACKGROUND
        )
        overlays = []
        for index in range(len(command.overlays)):
            try:
                overlays.append(
                    self._session_store.resolve_by_role(
                        session_id, AssetRole.overlay(index)
                    )
                )
            except SessionAssetMissing as exc:
                raise SessionAssetMissing(
                    f"Overlay #{index + 1} file not found in session."
                ) from exc
        return background, video, overlays

    def _build(
        self,
        command: ComposeVideoCommand,
        metadata: MediaMetadata,
        background: Path,
        video: Path,
        overlays: list[Path],
    ) -> CompositionPlan:
        try:
            planned = [
                PlannedOverlay(
                    path=path,
                    layer=OverlayLayer(
                        x=spec.x,
                        y=spec.y,
                        width=spec.width,
                        height=spec.height,
                        opacity=spec.opacity,
                    ),
                )
                for path, spec in zip(overlays, command.overlays)
            ]
            plan = build_composition_plan(
                background=background,
                video=video,
                video_width=metadata.width,
                video_height=metadata.height,
                video_fps=metadata.fps,
                has_audio=metadata.has_audio,
                clip=ClipWindow(start=command.clip.start, end=command.clip.end),
                overlays=planned,
                canvas=self._canvas,
            )
        except LayoutError as exc:
            raise CompositionError(f"Cannot build composition: {exc}") from exc

        placement = plan.placement
        LOGGER.info(
            "Video placement for %s: %dx%d at (%d, %d)",
            command.session_id,
            placement.width,
            placement.height,
            placement.x,
            placement.y,
        )
        return plan

    def _transcode(self, session_id: str, plan: CompositionPlan) -> Path:
        output = self._output_store.output_path(session_id)
        produced = self._transcoder.transcode(plan, output)
        if not produced.exists() or produced.stat().st_size == 0:
            raise CompositionError(
                f"Transcoder reported success but {produced.name} is empty or missing"
            )
        return produced
