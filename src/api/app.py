"""FastAPI application entry point with global error handling."""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.deps import get_lead_store, get_property_store, require_admin
from api.routes import health, leads, properties, webhook
from core.config import get_settings
from core.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    LeadEngineError,
    LeadNotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    StorageError,
    ValidationError,
)
from core.logging_config import get_logger, setup_logging

LOGGER = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler.

    Sets up logging, initializes the data files and logs startup/shutdown.
    Startup continues when storage is not ready so health checks can report it.
    """
    settings = get_settings()
    setup_logging(level=settings.log_level, json_format=settings.log_format == "json")

    if not settings.dry_run:
        LOGGER.warning("!!! LIVE MODE !!! DRY_RUN=false - Real WhatsApp messages will be sent!")
    else:
        LOGGER.info("DRY_RUN mode enabled - No real WhatsApp messages will be sent")

    LOGGER.info(
        "API application starting",
        extra={"extra_data": {
            "environment": settings.environment,
            "dry_run": settings.dry_run,
            "enabled_services": settings.get_enabled_services(),
            "data_dir": str(settings.data_dir),
        }},
    )

    for store in (get_lead_store(), get_property_store()):
        try:
            await store.collection.read_all()
        except StorageError as e:
            LOGGER.error(f"Storage not ready - app will start anyway: {e}")

    yield
    LOGGER.info("API application shutting down")


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance with:
        - CORS middleware
        - Global exception handlers
        - Webhook, admin and health routes
    """
    settings = get_settings()
    application = FastAPI(
        title="WhatsApp Property Lead Engine",
        description="Conversational lead capture and CRM sync for a property inventory",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # -------------------------------------------------------------------------
    # CORS Middleware
    # -------------------------------------------------------------------------
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.environment != "production" else [],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -------------------------------------------------------------------------
    # Global Exception Handlers
    # -------------------------------------------------------------------------

    @application.exception_handler(ServiceUnavailableError)
    async def service_unavailable_handler(request: Request, exc: ServiceUnavailableError) -> JSONResponse:
        LOGGER.error(f"Service unavailable: {exc}", extra={"extra_data": {"path": request.url.path}})
        return _error_response(503, "service_unavailable", str(exc))

    @application.exception_handler(RateLimitError)
    async def rate_limit_handler(request: Request, exc: RateLimitError) -> JSONResponse:
        LOGGER.warning(f"Rate limit hit: {exc}", extra={"extra_data": {"path": request.url.path}})
        return _error_response(429, "rate_limit_exceeded", str(exc))

    @application.exception_handler(ExternalServiceError)
    async def external_service_handler(request: Request, exc: ExternalServiceError) -> JSONResponse:
        LOGGER.error(f"External service error: {exc}", extra={"extra_data": {"path": request.url.path}})
        return _error_response(502, "external_service_error", str(exc))

    @application.exception_handler(ConfigurationError)
    async def configuration_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
        LOGGER.error(f"Configuration error: {exc}")
        return _error_response(500, "configuration_error", "Service misconfiguration")

    @application.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        LOGGER.warning(f"Validation error: {exc}", extra={"extra_data": {"path": request.url.path}})
        return _error_response(400, "validation_error", str(exc))

    @application.exception_handler(LeadNotFoundError)
    async def not_found_handler(request: Request, exc: LeadNotFoundError) -> JSONResponse:
        return _error_response(404, "not_found", str(exc))

    @application.exception_handler(LeadEngineError)
    async def app_error_handler(request: Request, exc: LeadEngineError) -> JSONResponse:
        LOGGER.error(f"Application error: {exc}", exc_info=True)
        return _error_response(500, "application_error", str(exc))

    # -------------------------------------------------------------------------
    # Include Routers
    # -------------------------------------------------------------------------
    admin = [Depends(require_admin)]

    application.include_router(health.router, prefix="/health", tags=["Health"])
    application.include_router(webhook.router, prefix="/webhook", tags=["Webhook"])
    application.include_router(leads.router, prefix="/leads", tags=["Leads"], dependencies=admin)
    application.include_router(
        properties.router, prefix="/properties", tags=["Properties"], dependencies=admin
    )

    return application


# Create the application instance
app = create_app()
