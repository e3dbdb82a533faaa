from pathlib import Path

import pytest

from services.composer.application.validation import (
    ensure_landscape_video,
    ensure_portrait_background,
    group_incoming_files,
    validate_clip_against_source,
    validate_clip_bounds,
    validate_incoming_file,
)
from services.composer.domain.assets import (
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


def _file(field: str, filename: str, content_type: str) -> IncomingFile:
    return IncomingFile(
        field=field,
        filename=filename,
        content_type=content_type,
        path=Path("/staging") / filename,
        size=10,
    )


def _video(filename="clip.mp4", content_type="video/mp4"):
    return _file("video", filename, content_type)


def _background(filename="back.png", content_type="image/png"):
    return _file("background", filename, content_type)


def _overlay(filename="logo.png", content_type="image/png"):
    return _file("overlays", filename, content_type)


def test_accepts_known_fields():
    assert validate_incoming_file(_video()) is UploadField.VIDEO
    assert validate_incoming_file(_background()) is UploadField.BACKGROUND
    assert validate_incoming_file(_overlay("a.webp", "image/webp")) is UploadField.OVERLAYS


def test_accepts_content_type_with_parameters():
    file = _video("clip.webm", "video/webm; codecs=vp9")

    assert validate_incoming_file(file) is UploadField.VIDEO


def test_rejects_unknown_field():
    with pytest.raises(UnknownField) as excinfo:
        validate_incoming_file(_file("thumbnail", "a.png", "image/png"))

    assert "Unknown field: thumbnail" in excinfo.value.message


def test_rejects_image_in_video_field():
    with pytest.raises(InvalidFormat) as excinfo:
        validate_incoming_file(_video("clip.png", "image/png"))

    assert excinfo.value.message.startswith("Invalid video format")


def test_rejects_mismatched_extension():
    with pytest.raises(InvalidFormat) as excinfo:
        validate_incoming_file(_background("back.gif", "image/png"))

    assert ".gif" in excinfo.value.message


def test_groups_files_by_field():
    grouped = group_incoming_files(
        [_overlay("one.png"), _video(), _background(), _overlay("two.png")],
        max_parts=4,
    )

    assert grouped.video.filename == "clip.mp4"
    assert grouped.background.filename == "back.png"
    assert [overlay.filename for overlay in grouped.overlays] == ["one.png", "two.png"]


def test_missing_video_is_rejected():
    with pytest.raises(MissingAsset) as excinfo:
        group_incoming_files([_background()], max_parts=4)

    assert excinfo.value.message == "Video is required."


def test_missing_background_is_rejected():
    with pytest.raises(MissingAsset) as excinfo:
        group_incoming_files([_video()], max_parts=4)

    assert excinfo.value.message == "Background is required."


def test_three_overlays_are_rejected():
    files = [_video(), _background(), _overlay("a.png"), _overlay("b.png"), _overlay("c.png")]

    with pytest.raises(TooManyOverlays) as excinfo:
        group_incoming_files(files, max_parts=10)

    assert excinfo.value.message == "Max 2 overlays allowed."


def test_part_limit_is_enforced():
    with pytest.raises(TooManyParts):
        group_incoming_files([_video(), _background(), _overlay()], max_parts=2)


def test_orientation_checks():
    portrait_video = MediaMetadata(
        duration=10, width=1080, height=1920, fps=30, bitrate=0, codec="h264"
    )
    landscape_image = ImageMetadata(width=1920, height=1080, format="png", size=1)

    with pytest.raises(RejectOrientation) as video_error:
        ensure_landscape_video(portrait_video)
    with pytest.raises(RejectOrientation) as image_error:
        ensure_portrait_background(landscape_image)

    assert "Current size 1080x1920" in video_error.value.message
    assert "Background must be vertical" in image_error.value.message


def test_square_media_is_neither_landscape_nor_portrait():
    square_video = MediaMetadata(
        duration=10, width=720, height=720, fps=30, bitrate=0, codec="h264"
    )
    square_image = ImageMetadata(width=720, height=720, format="png", size=1)

    with pytest.raises(RejectOrientation):
        ensure_landscape_video(square_video)
    with pytest.raises(RejectOrientation):
        ensure_portrait_background(square_image)


@pytest.mark.parametrize(
    "start,end",
    [(-1, 5), (5, 5), (10, 5)],
)
def test_clip_bounds_reject_empty_or_negative_ranges(start, end):
    with pytest.raises(InvalidClipRange):
        validate_clip_bounds(ClipRange(start=start, end=end), max_seconds=60)


def test_clip_longer_than_limit_is_rejected():
    with pytest.raises(InvalidClipRange) as excinfo:
        validate_clip_bounds(ClipRange(start=0, end=61), max_seconds=60)

    assert excinfo.value.message == "Maximum clip duration is 60 seconds."


def test_clip_at_limit_is_accepted():
    validate_clip_bounds(ClipRange(start=5, end=65), max_seconds=60)


def test_clip_past_source_end_is_rejected():
    with pytest.raises(InvalidClipRange) as excinfo:
        validate_clip_against_source(ClipRange(start=0, end=12), source_duration=10.04)

    assert "exceeds video duration (10.0s)" in excinfo.value.message


def test_clip_ending_at_source_end_is_accepted():
    validate_clip_against_source(ClipRange(start=0, end=10), source_duration=10)
