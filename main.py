# main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError

from asset_ledger.routers import (
    asset_master_router,
    asset_record_router,
    lend_router,
    disposal_router,
)

from asset_ledger.core.config import Settings
from asset_ledger.core.db import Database
from asset_ledger.core.scheduler import build_scheduler
from asset_ledger.core.exceptions import AppException
from asset_ledger.core.logging import setup_logging
from asset_ledger.middleware.request_logging import request_logging_middleware
from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer
from asset_ledger.core.error_handlers import (
    app_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    integrity_error_handler,
    unhandled_exception_handler,
)

APP_NAME = "Asset Ledger API"

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------------------
# LIFESPAN
# ------------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    database: Database = app.state.database

    logger.info("Starting application (%s)", settings.app_env)

    # DB init ONLY in development
    if settings.is_development:
        await database.init_models()
        logger.info("Database models initialized (development)")
    else:
        logger.info("init_models() skipped outside development")

    scheduler = None
    if settings.enable_scheduler:
        scheduler = build_scheduler(database, settings)
        scheduler.start()
        logger.info("Scheduler started")
    else:
        logger.info("Scheduler disabled")

    yield

    logger.info("Shutting down application")
    if scheduler is not None and scheduler.running:
        scheduler.shutdown()
    await database.dispose()


# ------------------------------------------------------------------------------
# APP FACTORY
# ------------------------------------------------------------------------------
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the API; run with ``uvicorn main:create_app --factory``."""
    settings = settings or Settings.from_env()
    setup_logging(settings)

    app = FastAPI(
        title=APP_NAME,
        description="Asset registration, lending, returns and disposals",
        version=settings.app_version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = Database(settings)
    app.state.issuer = EntryIdIssuer()

    # --------------------------------------------------------------------------
    # EXCEPTION HANDLERS
    # --------------------------------------------------------------------------
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------------------
    # MIDDLEWARE
    # --------------------------------------------------------------------------
    app.middleware("http")(request_logging_middleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --------------------------------------------------------------------------
    # HEALTH CHECK
    # --------------------------------------------------------------------------
    @app.get("/", tags=["Health"])
    async def health_check():
        return {
            "status": "ok",
            "service": "asset-ledger-api",
            "environment": settings.app_env,
            "version": settings.app_version,
        }

    # --------------------------------------------------------------------------
    # ROUTERS
    # --------------------------------------------------------------------------
    app.include_router(asset_master_router)
    app.include_router(asset_record_router)
    app.include_router(lend_router)
    app.include_router(disposal_router)

    return app
