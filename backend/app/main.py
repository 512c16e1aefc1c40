"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes import api_router
from app.config import AppSettings, get_settings
from app.core.errors import StorageConfigurationError
from app.core.logging import setup_logging
from app.core.telemetry import setup_telemetry
from app.db.init import init_database
from app.db.session import Database
from app.providers.llm import LLMClient
from app.schemas import HealthResponse
from app.services.storage import PUBLIC_PREFIX, ObjectStorage

logger = logging.getLogger(__name__)


def create_app(
    database: Database | None = None,
    settings: AppSettings | None = None,
    *,
    storage: ObjectStorage | None = None,
    llm: LLMClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    database_instance = database or Database(settings.database_url)
    storage_instance = storage or ObjectStorage.from_settings(settings)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        storage_instance.bucket_dir.mkdir(parents=True, exist_ok=True)
        await init_database(database_instance)
        logger.info("Service configuration: %s", settings.dict_for_logging())
        yield
        await database_instance.dispose()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=_lifespan)
    app.state.settings = settings
    app.state.database = database_instance
    app.state.storage = storage_instance
    app.state.llm = llm or LLMClient()

    setup_logging()
    setup_telemetry(app, settings, engine=database_instance.engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["traceparent", "tracestate", "x-request-id"],
    )

    @app.exception_handler(StorageConfigurationError)
    async def _storage_configuration_error(request: Request, exc: StorageConfigurationError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": str(exc), "remediation": exc.remediation})

    @app.exception_handler(SQLAlchemyError)
    async def _database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("Database error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Error de base de datos."})

    app.include_router(api_router)
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=storage_instance.root, check_dir=False), name="storage")

    @app.get("/health", response_model=HealthResponse, tags=["health"])
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", service="ibkr-hub", timestamp=datetime.now(timezone.utc))

    return app


app = create_app()
