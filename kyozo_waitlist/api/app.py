"""FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kyozo_waitlist import __version__
from kyozo_waitlist.api.cors import apply_cors
from kyozo_waitlist.api.routes import api_router
from kyozo_waitlist.config import Settings, get_settings
from kyozo_waitlist.errors import WaitlistError
from kyozo_waitlist.logging_setup import configure_logging
from kyozo_waitlist.runtime import WaitlistRuntime, build_runtime

logger = logging.getLogger(__name__)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 405:
        return JSONResponse({"error": "Method not allowed"}, status_code=405)
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        {"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
        status_code=400,
    )


async def handle_waitlist_error(request: Request, exc: WaitlistError) -> JSONResponse:
    logger.error("Unhandled waitlist error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse({"error": str(exc)}, status_code=500)


def create_app(settings: Optional[Settings] = None, runtime: Optional[WaitlistRuntime] = None) -> FastAPI:
    """Build the web app.

    Args:
        settings: Settings to build adapters from; environment by default
        runtime: Pre-built runtime (tests pass one wired to fakes)
    """
    configure_logging()
    settings = settings or get_settings()
    if runtime is None:
        runtime = build_runtime(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        if runtime.pipeline.pending_notifications:
            logger.info("Waiting for %d pending notification(s)", runtime.pipeline.pending_notifications)
            await runtime.pipeline.wait_for_notifications()

    app = FastAPI(title="Kyozo Waitlist", version=__version__, lifespan=lifespan)
    app.state.runtime = runtime
    apply_cors(app, origins=settings.cors_origins)

    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(WaitlistError, handle_waitlist_error)

    app.include_router(api_router)
    return app


__all__ = ["create_app"]
