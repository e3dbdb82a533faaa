from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.composer.api.schemas import error_payload
from services.composer.domain.errors import ComposerError, ProcessingError

LOGGER = logging.getLogger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation error"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "invalid value")
    if location:
        return f"Validation error: {location}: {message}"
    return f"Validation error: {message}"


def register_exception_handlers(app: FastAPI, *, expose_diagnostics: bool) -> None:
    @app.exception_handler(ComposerError)
    async def composer_error_handler(request: Request, exc: ComposerError):
        message = exc.message
        if isinstance(exc, ProcessingError):
            LOGGER.error("%s %s failed: %s", request.method, request.url.path, message)
            if expose_diagnostics and exc.diagnostics:
                message = f"{message}: {exc.diagnostics}"
        return JSONResponse(status_code=exc.status_code, content=error_payload(message))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400, content=error_payload(_describe_validation_error(exc))
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content=error_payload("Endpoint not found", path=request.url.path),
            )
        return JSONResponse(
            status_code=exc.status_code, content=error_payload(str(exc.detail))
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        LOGGER.exception("Unhandled error on %s %s", request.method, request.url.path)
        message = "Internal server error" if not expose_diagnostics else str(exc)
        return JSONResponse(status_code=500, content=error_payload(message))
