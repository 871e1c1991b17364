"""FastAPI application factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.v1 import api_router
from core import AppError, settings
from db.session import async_engine

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    resolved = (level or settings.log_level).upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger().setLevel(resolved)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Unhandled application error",
            extra={"path": request.url.path, "kind": exc.kind},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "type_error": exc.kind},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Starting %s", settings.app_name, extra={"app_env": settings.app_env})
    yield
    await async_engine.dispose()


def create_app() -> FastAPI:
    configure_logging()
    application = FastAPI(title=settings.app_name, version="1.0.0", lifespan=lifespan)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Next-Offset"],
    )
    application.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    application.include_router(api_router, prefix="/api/v1")

    async def health() -> dict[str, str]:
        return {"status": "ok", "service": settings.app_name}

    application.add_api_route("/health", health, methods=["GET"], tags=["health"])
    application.add_api_route("/api/v1/health", health, methods=["GET"], tags=["health"])

    return application


__all__ = ["configure_logging", "create_app", "lifespan"]
