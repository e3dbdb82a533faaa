from __future__ import annotations

import logging

from services.composer.application.dto import UploadAssetsCommand
from services.composer.application.interfaces import (
    ImageInspector,
    MediaProber,
    PreviewDownscaler,
    SessionStore,
)
from services.composer.application.validation import (
    ensure_landscape_video,
    ensure_portrait_background,
    group_incoming_files,
)
from services.composer.domain.assets import Asset, AssetRole, UploadSession

LOGGER = logging.getLogger(__name__)


class UploadAssetsUseCase:
    """Validate one multipart submission and turn it into a session.

    Everything that can reject the request (formats, counts, orientation)
    runs against the staged files first. The session directory is only
    created once the whole submission is known to be acceptable.
    """

    def __init__(
        self,
        *,
        session_store: SessionStore,
        prober: MediaProber,
        image_inspector: ImageInspector,
        downscaler: PreviewDownscaler,
        max_parts: int,
    ) -> None:
        self._session_store = session_store
        self._prober = prober
        self._image_inspector = image_inspector
        self._downscaler = downscaler
        self._max_parts = max_parts

    def execute(self, command: UploadAssetsCommand) -> UploadSession:
        grouped = group_incoming_files(command.files, max_parts=self._max_parts)

        video_meta = self._prober.probe(grouped.video.path)
        ensure_landscape_video(video_meta)
        background_meta = self._image_inspector.inspect(grouped.background.path)
        ensure_portrait_background(background_meta)
        overlay_metas = [
            self._image_inspector.inspect(overlay.path) for overlay in grouped.overlays
        ]

        session_id = self._session_store.create_session()
        try:
            video = Asset(
                role=AssetRole.VIDEO,
                path=self._session_store.commit_asset(
                    session_id,
                    AssetRole.VIDEO,
                    grouped.video.path,
                    grouped.video.filename,
                ),
                original_filename=grouped.video.filename,
                content_type=grouped.video.content_type,
                metadata=video_meta,
            )
            background = Asset(
                role=AssetRole.BACKGROUND,
                path=self._session_store.commit_asset(
                    session_id,
                    AssetRole.BACKGROUND,
                    grouped.background.path,
                    grouped.background.filename,
                ),
                original_filename=grouped.background.filename,
                content_type=grouped.background.content_type,
                metadata=background_meta,
            )
            overlays = []
            for index, (incoming, metadata) in enumerate(
                zip(grouped.overlays, overlay_metas)
            ):
                role = AssetRole.overlay(index)
                overlays.append(
                    Asset(
                        role=role,
                        path=self._session_store.commit_asset(
                            session_id, role, incoming.path, incoming.filename
                        ),
                        original_filename=incoming.filename,
                        content_type=incoming.content_type,
                        metadata=metadata,
                    )
                )

            preview = self._downscaler.downscale(
                video.path, self._session_store.session_dir(session_id)
            )
        except Exception:
            LOGGER.error("Upload for session %s failed, discarding it", session_id)
            self._session_store.discard(session_id)
            raise

        LOGGER.info(
            "Session %s created with video %s and %d overlay(s)",
            session_id,
            video.path.name,
            len(overlays),
        )
        return UploadSession(
            session_id=session_id,
            directory=self._session_store.session_dir(session_id),
            video=video,
            background=background,
            overlays=overlays,
            preview_path=preview,
        )
