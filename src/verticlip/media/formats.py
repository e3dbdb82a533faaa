"""Accepted upload formats, keyed by asset kind."""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class MediaKind(str, Enum):
    VIDEO = "video"
    IMAGE = "image"


VIDEO_CONTENT_TYPES = frozenset(
    {
        "video/mp4",
        "video/quicktime",
        "video/x-msvideo",
        "video/webm",
        "video/x-ms-wmv",
        "video/3gpp",
    }
)
IMAGE_CONTENT_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/webp",
        "image/bmp",
        "image/tiff",
    }
)

VIDEO_EXTENSIONS = frozenset({".mp4", ".mov", ".avi", ".webm", ".wmv", ".3gp"})
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tiff"})

# Informational only: anything ffmpeg decodes is composable.
SUPPORTED_VIDEO_CODECS = frozenset({"h264", "hevc", "h265", "vp8", "vp9", "av1"})

_LABELS = {
    MediaKind.VIDEO: "MP4, MOV, AVI, WebM, WMV, 3GP",
    MediaKind.IMAGE: "JPEG, PNG, WebP, BMP, TIFF",
}


def content_types_for(kind: MediaKind) -> frozenset[str]:
    return VIDEO_CONTENT_TYPES if kind is MediaKind.VIDEO else IMAGE_CONTENT_TYPES


def extensions_for(kind: MediaKind) -> frozenset[str]:
    return VIDEO_EXTENSIONS if kind is MediaKind.VIDEO else IMAGE_EXTENSIONS


def describe_formats(kind: MediaKind) -> str:
    return _LABELS[kind]


def normalize_content_type(content_type: str | None) -> str:
    # Browsers may append parameters, e.g. "video/webm;codecs=vp9".
    return (content_type or "").split(";", 1)[0].strip().lower()


def file_extension(filename: str | None) -> str:
    return Path(filename or "").suffix.lower()


def is_supported_codec(codec: str | None) -> bool:
    return (codec or "").lower() in SUPPORTED_VIDEO_CODECS
