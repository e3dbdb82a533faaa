"""Upload and clip policy checks.

All of these run before anything is moved into a session directory or any
transcoder process is spawned.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from verticlip.media.formats import (
    content_types_for,
    describe_formats,
    extensions_for,
    file_extension,
    normalize_content_type,
)

from services.composer.domain.assets import (
    MAX_OVERLAYS,
    ImageMetadata,
    IncomingFile,
    MediaMetadata,
    UploadField,
)
from services.composer.domain.composition import ClipRange
from services.composer.domain.errors import (
    InvalidClipRange,
    InvalidFormat,
    MissingAsset,
    RejectOrientation,
    TooManyOverlays,
    TooManyParts,
    UnknownField,
)


@dataclass(frozen=True)
class GroupedUpload:
    video: IncomingFile
    background: IncomingFile
    overlays: list[IncomingFile]


def validate_incoming_file(file: IncomingFile) -> UploadField:
    try:
        upload_field = UploadField(file.field)
    except ValueError as exc:
        raise UnknownField(f"Unknown field: {file.field}") from exc

    kind = upload_field.media_kind
    content_type = normalize_content_type(file.content_type)
    if content_type not in content_types_for(kind):
        raise InvalidFormat(
            f"Invalid {kind.value} format: {file.content_type or 'unknown'}. "
            f"Supported formats: {describe_formats(kind)}"
        )

    extension = file_extension(file.filename)
    if extension not in extensions_for(kind):
        raise InvalidFormat(
            f"Invalid {kind.value} file extension: {extension or '(none)'}"
        )
    return upload_field


def group_incoming_files(
    files: Sequence[IncomingFile], *, max_parts: int
) -> GroupedUpload:
    videos: list[IncomingFile] = []
    backgrounds: list[IncomingFile] = []
    overlays: list[IncomingFile] = []
    buckets = {
        UploadField.VIDEO: videos,
        UploadField.BACKGROUND: backgrounds,
        UploadField.OVERLAYS: overlays,
    }
    for file in files:
        buckets[validate_incoming_file(file)].append(file)

    if not videos:
        raise MissingAsset("Video is required.")
    if len(videos) > 1:
        raise MissingAsset("Exactly one video is allowed.")
    if not backgrounds:
        raise MissingAsset("Background is required.")
    if len(backgrounds) > 1:
        raise MissingAsset("Exactly one background is allowed.")
    if len(overlays) > MAX_OVERLAYS:
        raise TooManyOverlays(f"Max {MAX_OVERLAYS} overlays allowed.")
    if len(files) > max_parts:
        raise TooManyParts(f"Too many files: at most {max_parts} parts are allowed.")

    return GroupedUpload(video=videos[0], background=backgrounds[0], overlays=overlays)


def ensure_landscape_video(metadata: MediaMetadata) -> None:
    if not metadata.is_landscape:
        raise RejectOrientation(
            "Video must be horizontal. "
            f"Current size {metadata.width}x{metadata.height}"
        )


def ensure_portrait_background(metadata: ImageMetadata) -> None:
    if not metadata.is_portrait:
        raise RejectOrientation(
            "Background must be vertical. "
            f"Current size {metadata.width}x{metadata.height}"
        )


def validate_clip_bounds(clip: ClipRange, *, max_seconds: float) -> None:
    """Checks that need no knowledge of the source video."""
    if clip.start < 0 or clip.end < 0:
        raise InvalidClipRange("Clip times must not be negative.")
    if clip.start >= clip.end:
        raise InvalidClipRange("Clip start time must be less than end time.")
    if clip.duration > max_seconds:
        raise InvalidClipRange(f"Maximum clip duration is {max_seconds:g} seconds.")


def validate_clip_against_source(clip: ClipRange, *, source_duration: float) -> None:
    if clip.end > source_duration:
        raise InvalidClipRange(
            f"Clip end time ({clip.end:g}s) exceeds video duration "
            f"({source_duration:.1f}s)."
        )
