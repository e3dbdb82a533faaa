from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from verticlip.compositor.plan import CompositionPlan

    from services.composer.domain.assets import AssetRole, ImageMetadata, MediaMetadata


class IdProvider(Protocol):
    def generate(self) -> str: ...


class MediaProber(Protocol):
    def probe(self, path: Path) -> "MediaMetadata": ...


class ImageInspector(Protocol):
    def inspect(self, path: Path) -> "ImageMetadata": ...


class SessionStore(Protocol):
    def create_session(self) -> str: ...

    def exists(self, session_id: str) -> bool: ...

    def session_dir(self, session_id: str) -> Path: ...

    def commit_asset(
        self,
        session_id: str,
        role: "AssetRole",
        source: Path,
        original_filename: str,
    ) -> Path: ...

    def resolve_by_role(self, session_id: str, role: "AssetRole") -> Path: ...

    def list_overlays(self, session_id: str) -> list[Path]: ...

    def discard(self, session_id: str) -> None: ...


class OutputStore(Protocol):
    def output_path(self, session_id: str) -> Path: ...

    def public_url(self, path: Path) -> str: ...


class PreviewDownscaler(Protocol):
    def downscale(self, source: Path, output_dir: Path) -> Path: ...


class Transcoder(Protocol):
    def transcode(self, plan: "CompositionPlan", output: Path) -> Path:
        """Run ``plan`` and return ``output`` once it is completely written."""
        ...
