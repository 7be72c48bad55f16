# shop_service/main.py
"""
Shop Service - Main FastAPI Application
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from shop_service.common_logging import setup_logging
from shop_service.common_instrumentation import setup_tracing, instrument_sqlalchemy
from shop_service.api import routes
from shop_service.config import Settings, settings as default_settings
from shop_service.db.database import Database
from shop_service.exceptions import (
    ShopError,
    NotFoundError,
    PreconditionFailed,
    AuthenticationFailed,
    AuthorizationDenied,
)
from shop_service.models.schemas import HealthResponse
from shop_service.services.role_service import RoleService

logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# (status code, error kind) per exception family; first match wins
ERROR_STATUS = [
    (NotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (PreconditionFailed, status.HTTP_400_BAD_REQUEST, "precondition_failed"),
    (AuthenticationFailed, status.HTTP_401_UNAUTHORIZED, "unauthorized"),
    (AuthorizationDenied, status.HTTP_403_FORBIDDEN, "forbidden"),
]


def _prepare_database(database: Database, settings: Settings):
    """Create tables, seed the role catalogue and promote the bootstrap admin"""
    database.create_tables()

    db = database.session()
    try:
        RoleService.seed_default_roles(db)
        if settings.super_admin_email:
            RoleService.bootstrap_super_admin(db, settings.super_admin_email.lower())
    finally:
        db.close()


async def shop_error_handler(request: Request, exc: ShopError):
    for exc_type, status_code, kind in ERROR_STATUS:
        if isinstance(exc, exc_type):
            headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
            return JSONResponse(
                status_code=status_code,
                content={"error": kind, "detail": exc.message},
                headers=headers
            )

    # PersistenceError and anything unclassified; the cause stays in the logs
    logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "detail": exc.message}
    )


async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "detail": "Internal server error"}
    )


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """
    Build the application.

    ``database`` may be supplied by the caller (tests); otherwise one is
    created from ``settings.database_url`` at startup and disposed on
    shutdown.
    """
    settings = settings or default_settings

    setup_logging(
        service_name=settings.service_name,
        log_level=settings.log_level,
        log_format=settings.log_format
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events"""
        # Startup
        logger.info(f"Starting {settings.service_name}")
        logger.info(f"Environment: {settings.environment}")

        owns_database = app.state.database is None
        try:
            if owns_database:
                app.state.database = Database(settings.database_url, echo=settings.database_echo)
            _prepare_database(app.state.database, settings)
            logger.info("Database initialized successfully")

            if settings.otel_enabled:
                instrument_sqlalchemy(app.state.database.engine)
        except Exception as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

        logger.info(f"{settings.service_name} started successfully")

        yield

        # Shutdown
        logger.info(f"Shutting down {settings.service_name}")
        if tracer_provider is not None:
            tracer_provider.shutdown()
        if owns_database:
            app.state.database.dispose()

    app = FastAPI(
        title="Shop Service",
        description="Orders, inventory, catalog and role management for the shop",
        version=VERSION,
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None if settings.is_production else "/redoc",
        openapi_url=None if settings.is_production else "/openapi.json"
    )
    app.state.settings = settings
    app.state.database = database

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    tracer_provider = setup_tracing(settings, app)

    app.include_router(routes.router)
    app.add_exception_handler(ShopError, shop_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    @app.get("/health", response_model=HealthResponse)
    def health_check():
        """Health check endpoint (liveness probe)"""
        return HealthResponse(
            status="healthy",
            service=settings.service_name,
            version=VERSION,
            timestamp=datetime.now(timezone.utc)
        )

    @app.get("/ready")
    def readiness_check(request: Request):
        """Readiness check endpoint (readiness probe)"""
        try:
            request.app.state.database.ping()
            return {
                "status": "ready",
                "service": settings.service_name,
                "database": "connected",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
        except Exception as e:
            logger.error(f"Readiness check failed: {e}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "status": "not_ready",
                    "service": settings.service_name,
                    "database": "disconnected",
                    "error": str(e),
                    "timestamp": datetime.now(timezone.utc).isoformat()
                }
            )

    @app.get("/")
    def root():
        """Root endpoint"""
        return {
            "service": settings.service_name,
            "version": VERSION,
            "docs": "/docs",
            "health": "/health",
            "ready": "/ready"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "shop_service.main:app",
        host="0.0.0.0",
        port=default_settings.port,
        reload=default_settings.debug,
        log_level=default_settings.log_level.lower()
    )
