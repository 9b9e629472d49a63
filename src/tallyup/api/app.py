"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tallyup.api.errors import status_for
from tallyup.api.routes import health, merchants, pipelines, stages
from tallyup.core.config import AppSettings
from tallyup.core.exceptions import TallyUpError
from tallyup.core.logging_config import configure_logging
from tallyup.models.api import ErrorResponse
from tallyup.pipeline.services import Services, create_services


def create_app(services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    ``services`` overrides the backends built from ``AppSettings`` at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        settings = AppSettings()
        configure_logging(settings.log_level)
        app.state.settings = settings
        app.state.services = services or create_services(settings)
        yield

    app = FastAPI(
        title="TallyUp Report Scheduler",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(TallyUpError)
    async def tallyup_error_handler(request: Request, exc: TallyUpError) -> JSONResponse:
        payload = ErrorResponse.from_exception(exc)
        return JSONResponse(
            status_code=status_for(payload.error_type),
            content=payload.model_dump(mode="json", by_alias=True),
        )

    app.include_router(health.router)
    app.include_router(pipelines.router, prefix="/pipelines")
    app.include_router(merchants.router, prefix="/merchants")
    app.include_router(stages.router, prefix="/stages")
    return app
