from __future__ import annotations

from datetime import datetime, timezone
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from services.composer.domain.assets import (
    MAX_OVERLAYS,
    Asset,
    ImageMetadata,
    MediaMetadata,
    UploadSession,
)
from services.composer.domain.composition import (
    ClipRange,
    CompositionResult,
    OverlaySpec,
)

DataT = TypeVar("DataT")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool
    data: Optional[DataT] = None
    error: Optional[str] = None
    timestamp: str = Field(default_factory=utc_timestamp)


def error_payload(message: str, **extra: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "success": False,
        "error": message,
        "timestamp": utc_timestamp(),
    }
    payload.update(extra)
    return payload


class VideoMetadataPayload(BaseModel):
    duration: float
    width: int
    height: int
    fps: float
    bitrate: int
    codec: str
    hasAudio: bool
    supportedCodec: bool

    @classmethod
    def from_domain(
        cls, metadata: MediaMetadata, *, supported_codec: bool
    ) -> "VideoMetadataPayload":
        return cls(
            duration=metadata.duration,
            width=metadata.width,
            height=metadata.height,
            fps=metadata.fps,
            bitrate=metadata.bitrate,
            codec=metadata.codec,
            hasAudio=metadata.has_audio,
            supportedCodec=supported_codec,
        )


class ImageMetadataPayload(BaseModel):
    width: int
    height: int
    format: str
    size: int

    @classmethod
    def from_domain(cls, metadata: ImageMetadata) -> "ImageMetadataPayload":
        return cls(
            width=metadata.width,
            height=metadata.height,
            format=metadata.format,
            size=metadata.size,
        )


class UploadedVideo(BaseModel):
    path: str
    metadata: VideoMetadataPayload
    downresPath: Optional[str] = None


class UploadedImage(BaseModel):
    path: str
    metadata: ImageMetadataPayload


class UploadedOverlay(UploadedImage):
    index: int


class UploadData(BaseModel):
    sessionId: str
    video: UploadedVideo
    background: UploadedImage
    overlays: List[UploadedOverlay]

    @classmethod
    def from_domain(
        cls, session: UploadSession, *, supported_codec: bool
    ) -> "UploadData":
        return cls(
            sessionId=session.session_id,
            video=UploadedVideo(
                path=session.video.path.as_posix(),
                metadata=VideoMetadataPayload.from_domain(
                    session.video.metadata, supported_codec=supported_codec
                ),
                downresPath=session.preview_path.as_posix()
                if session.preview_path
                else None,
            ),
            background=_image(session.background),
            overlays=[
                UploadedOverlay(**_image(asset).model_dump(), index=index)
                for index, asset in enumerate(session.overlays)
            ],
        )


def _image(asset: Asset) -> UploadedImage:
    return UploadedImage(
        path=asset.path.as_posix(),
        metadata=ImageMetadataPayload.from_domain(asset.metadata),
    )


class ClipPayload(BaseModel):
    start: float = Field(ge=0)
    end: float = Field(ge=0)


class OverlayPayload(BaseModel):
    x: int = Field(ge=0)
    y: int = Field(ge=0)
    width: int = Field(ge=1)
    height: int = Field(ge=1)
    opacity: float = Field(default=100, ge=0, le=100)


class ComposeRequest(BaseModel):
    sessionid: str = Field(min_length=1)
    clip: ClipPayload
    overlays: List[OverlayPayload] = Field(default_factory=list, max_length=MAX_OVERLAYS)

    def clip_range(self) -> ClipRange:
        return ClipRange(start=self.clip.start, end=self.clip.end)

    def overlay_specs(self) -> list[OverlaySpec]:
        return [
            OverlaySpec(
                x=overlay.x,
                y=overlay.y,
                width=overlay.width,
                height=overlay.height,
                opacity=overlay.opacity,
            )
            for overlay in self.overlays
        ]


class ComposeData(BaseModel):
    videoUrl: str
    duration: float
    fileSize: int
    processingTime: int

    @classmethod
    def from_domain(cls, result: CompositionResult) -> "ComposeData":
        return cls(
            videoUrl=result.video_url,
            duration=result.duration,
            fileSize=result.file_size,
            processingTime=result.processing_time_ms,
        )


class HealthResponse(BaseModel):
    success: bool
    message: str
    timestamp: str
    version: str
