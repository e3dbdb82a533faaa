from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import timedelta

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from verticlip.compositor.layout import Canvas

from services.composer.api.errors import register_exception_handlers
from services.composer.api.routes import create_router
from services.composer.application.compose_video import ComposeVideoUseCase
from services.composer.application.upload_assets import UploadAssetsUseCase
from services.composer.config import ComposerConfig, load_config
from services.composer.infrastructure.cleanup import CleanupScheduler
from services.composer.infrastructure.ffmpeg import (
    create_preview_downscaler,
    create_transcoder,
)
from services.composer.infrastructure.ffprobe import FFprobeMediaProber
from services.composer.infrastructure.images import PillowImageInspector
from services.composer.infrastructure.outputs import FilesystemOutputStore
from services.composer.infrastructure.sessions import FilesystemSessionStore
from services.composer.infrastructure.staging import UploadStagingArea

LOGGER = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def build_app(
    config: ComposerConfig | None = None,
    *,
    upload_use_case: UploadAssetsUseCase | None = None,
    compose_use_case: ComposeVideoUseCase | None = None,
) -> FastAPI:
    cfg = config or load_config()
    cfg.upload_root.mkdir(parents=True, exist_ok=True)
    cfg.output_root.mkdir(parents=True, exist_ok=True)

    session_store = FilesystemSessionStore(cfg.upload_root)
    output_store = FilesystemOutputStore(
        cfg.output_root, url_prefix=cfg.output_url_prefix
    )
    prober = FFprobeMediaProber(ffprobe_path=cfg.ffprobe_path)

    upload_use_case = upload_use_case or UploadAssetsUseCase(
        session_store=session_store,
        prober=prober,
        image_inspector=PillowImageInspector(),
        downscaler=create_preview_downscaler(cfg),
        max_parts=cfg.max_upload_parts,
    )
    compose_use_case = compose_use_case or ComposeVideoUseCase(
        session_store=session_store,
        output_store=output_store,
        prober=prober,
        transcoder=create_transcoder(cfg),
        canvas=Canvas(width=cfg.canvas_width, height=cfg.canvas_height),
        max_clip_seconds=cfg.max_clip_seconds,
    )
    staging_area = UploadStagingArea(
        cfg.staging_root,
        max_file_bytes=cfg.max_upload_bytes,
        max_parts=cfg.max_upload_parts,
    )
    cleanup = CleanupScheduler(
        [cfg.upload_root, cfg.output_root],
        max_age=timedelta(hours=cfg.cleanup_max_age_hours),
        interval_seconds=cfg.cleanup_interval_seconds,
    )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if cfg.cleanup_interval_seconds > 0:
            cleanup.start()
        LOGGER.info(
            "Video composer ready (uploads=%s, outputs=%s, env=%s)",
            cfg.upload_root,
            cfg.output_root,
            cfg.environment,
        )
        yield
        cleanup.stop()

    app = FastAPI(title="VertiClip", lifespan=lifespan)
    app.state.config = cfg
    app.state.cleanup = cleanup
    app.add_middleware(
        CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"]
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.monotonic()
        response = await call_next(request)
        LOGGER.info(
            "%s %s -> %d (%.0fms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.monotonic() - started) * 1000,
        )
        return response

    register_exception_handlers(app, expose_diagnostics=not cfg.is_production)
    app.include_router(create_router(upload_use_case, compose_use_case, staging_area))
    app.mount(
        cfg.output_url_prefix,
        StaticFiles(directory=cfg.output_root),
        name="outputs",
    )
    return app


def run() -> None:
    cfg = load_config()
    configure_logging(cfg.log_level)
    uvicorn.run(build_app(cfg), host=cfg.host, port=cfg.port)


if __name__ == "__main__":
    run()
