"""FastAPI application factory and global middleware registration."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import CORS_ALLOW_CREDENTIALS, CORS_ALLOW_ORIGINS
from .core.errors import ServiceError
from .dependencies import Services, build_services
from .routes import (
    auth_router,
    documents_router,
    files_router,
    interview_router,
    projects_router,
)

# Basic logging config (stdout) if not already configured by the host.
if not logging.getLogger().handlers:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

logger = logging.getLogger("sow.api")


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    When ``services`` is omitted the container is built from configuration at
    startup; tests pass their own container instead.
    """

    app = FastAPI(
        title="Scope of Work Interview API",
        version="0.1.0",
        description="Adaptive requirements interview and Scope of Work generation.",
    )
    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOW_ORIGINS,
        allow_credentials=CORS_ALLOW_CREDENTIALS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(projects_router)
    app.include_router(files_router)
    app.include_router(interview_router)
    app.include_router(documents_router)

    @app.on_event("startup")
    async def startup_event():
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
            logger.info("Service container initialised")

    @app.on_event("shutdown")
    async def shutdown_event():
        current = getattr(app.state, "services", None)
        if current is not None:
            current.shutdown()

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.middleware("http")
    async def error_logging_middleware(request: Request, call_next):
        try:
            response = await call_next(request)
            return response
        except Exception:
            logger.exception("Unhandled exception during request")
            raise

    @app.get("/health", tags=["system"])
    async def healthcheck() -> Dict[str, str]:
        """Simple healthcheck endpoint for orchestration probes."""

        return {"status": "ok"}

    return app


app = create_app()
