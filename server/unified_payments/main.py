from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from unified_payments.api.errors import register_exception_handlers
from unified_payments.api.routes import health, payments, webhooks
from unified_payments.core.config import Settings, get_settings
from unified_payments.core.logging import configure_logging, get_logger
from unified_payments.integrations.payment_gateways import GatewayFactory
from unified_payments.middleware.security import (
    RateLimiter,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    settings: Settings = application.state.settings
    configuration = application.state.gateway_factory.validate_configuration()
    logger.info(
        "application.startup",
        environment=settings.environment,
        available_gateways=configuration["availableGateways"],
        warnings=configuration["warnings"],
    )
    yield
    logger.info("application.shutdown")


def create_application(
    settings: Optional[Settings] = None,
    gateway_factory: Optional[GatewayFactory] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    application = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    application.state.settings = settings
    application.state.gateway_factory = gateway_factory or GatewayFactory(settings)

    application.include_router(payments.router, prefix="/api")
    application.include_router(webhooks.router, prefix="/api")
    application.include_router(health.router, prefix="/api")

    # Added innermost first: rate limiting runs after logging and headers
    application.add_middleware(
        RateLimitMiddleware,
        limiter=RateLimiter(settings.rate_limit_requests, settings.rate_limit_window_seconds),
        payment_limiter=RateLimiter(
            settings.payment_rate_limit_requests,
            settings.payment_rate_limit_window_seconds,
        ),
    )
    application.add_middleware(RequestLoggingMiddleware)
    application.add_middleware(SecurityHeadersMiddleware)

    if settings.allowed_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin).rstrip("/") for origin in settings.allowed_origins],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    register_exception_handlers(application)

    @application.get("/api", tags=["meta"])
    async def api_index() -> dict:
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": "Single API for multiple payment gateways",
            "endpoints": {
                "payments": "/api/payments",
                "webhooks": "/api/webhooks",
                "health": "/api/health",
            },
            "supportedGateways": application.state.gateway_factory.get_available_gateways(),
            "documentation": "/docs",
        }

    return application


app = create_application()
