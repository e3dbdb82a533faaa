from __future__ import annotations

from fastapi import APIRouter, Request
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from verticlip.media.formats import is_supported_codec

from services.composer.api.schemas import (
    ApiResponse,
    ComposeData,
    ComposeRequest,
    HealthResponse,
    UploadData,
    utc_timestamp,
)
from services.composer.application.compose_video import ComposeVideoUseCase
from services.composer.application.dto import ComposeVideoCommand, UploadAssetsCommand
from services.composer.application.upload_assets import UploadAssetsUseCase
from services.composer.domain.assets import UploadSession
from services.composer.domain.errors import UploadTooLarge
from services.composer.infrastructure.staging import StagedPart, UploadStagingArea

API_VERSION = "1.0.0"


def _declared_length(request: Request) -> int | None:
    raw = request.headers.get("content-length")
    if raw is None or not raw.isdigit():
        return None
    return int(raw)


def create_router(
    upload_use_case: UploadAssetsUseCase,
    compose_use_case: ComposeVideoUseCase,
    staging_area: UploadStagingArea,
) -> APIRouter:
    router = APIRouter(prefix="/api")

    def _ingest(parts: list[StagedPart]) -> UploadSession:
        with staging_area.stage(parts) as files:
            return upload_use_case.execute(UploadAssetsCommand(files=files))

    @router.get("/health", response_model=HealthResponse, tags=["health"])
    async def health_endpoint():
        return HealthResponse(
            success=True,
            message="Backend is UP",
            timestamp=utc_timestamp(),
            version=API_VERSION,
        )

    @router.post(
        "/upload",
        response_model=ApiResponse[UploadData],
        response_model_exclude_none=True,
        tags=["uploads"],
    )
    async def upload_endpoint(request: Request):
        declared = _declared_length(request)
        if declared is not None and declared > staging_area.max_request_bytes:
            raise UploadTooLarge(
                f"Request body of {declared} bytes exceeds the "
                f"{staging_area.max_request_bytes} byte upload limit."
            )
        # Parts beyond the limit are refused while the body is parsed.
        form = await request.form(
            max_files=staging_area.max_parts, max_fields=staging_area.max_parts
        )
        try:
            parts = [
                StagedPart(
                    field=field,
                    filename=value.filename or "",
                    content_type=value.content_type or "",
                    stream=value.file,
                )
                for field, value in form.multi_items()
                if isinstance(value, UploadFile)
            ]
            session = await run_in_threadpool(_ingest, parts)
        finally:
            await form.close()

        data = UploadData.from_domain(
            session,
            supported_codec=is_supported_codec(session.video.metadata.codec),
        )
        return ApiResponse[UploadData](success=True, data=data)

    @router.post(
        "/compose",
        response_model=ApiResponse[ComposeData],
        response_model_exclude_none=True,
        tags=["compose"],
    )
    def compose_endpoint(payload: ComposeRequest):
        # Sync handler: FastAPI runs it in the threadpool while ffmpeg blocks.
        command = ComposeVideoCommand(
            session_id=payload.sessionid,
            clip=payload.clip_range(),
            overlays=payload.overlay_specs(),
        )
        result = compose_use_case.execute(command)
        return ApiResponse[ComposeData](
            success=True, data=ComposeData.from_domain(result)
        )

    return router
