from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Union

from verticlip.media.formats import MediaKind

MAX_OVERLAYS = 2


class UploadField(str, Enum):
    """Multipart part names accepted by the upload endpoint."""

    VIDEO = "video"
    BACKGROUND = "background"
    OVERLAYS = "overlays"

    @property
    def media_kind(self) -> MediaKind:
        return MediaKind.VIDEO if self is UploadField.VIDEO else MediaKind.IMAGE


class AssetRole(str, Enum):
    """Filename prefix under which an asset is stored in its session."""

    VIDEO = "video"
    BACKGROUND = "bg"
    OVERLAY_1 = "overlay1"
    OVERLAY_2 = "overlay2"

    @classmethod
    def overlay(cls, index: int) -> "AssetRole":
        """Role for the zero-based overlay ``index``."""
        try:
            return cls(f"overlay{index + 1}")
        except ValueError as exc:
            raise ValueError(f"No overlay role for index {index}") from exc

    @property
    def prefix(self) -> str:
        return f"{self.value}-"


@dataclass(frozen=True)
class MediaMetadata:
    duration: float
    width: int
    height: int
    fps: float
    bitrate: int
    codec: str
    has_audio: bool = False

    @property
    def is_landscape(self) -> bool:
        return self.width > self.height


@dataclass(frozen=True)
class ImageMetadata:
    width: int
    height: int
    format: str
    size: int

    @property
    def is_portrait(self) -> bool:
        return self.height > self.width


@dataclass(frozen=True)
class IncomingFile:
    """An uploaded part staged on disk, not yet owned by any session."""

    field: str
    filename: str
    content_type: str
    path: Path
    size: int


@dataclass(frozen=True)
class Asset:
    role: AssetRole
    path: Path
    original_filename: str
    content_type: str
    metadata: Union[MediaMetadata, ImageMetadata]


@dataclass(frozen=True)
class UploadSession:
    session_id: str
    directory: Path
    video: Asset
    background: Asset
    overlays: list[Asset] = field(default_factory=list)
    preview_path: Path | None = None
