"""
Application entry point.

Creates the FastAPI application and wires together:
- Routers (one per bounded context)
- Error handlers (centralized domain-to-HTTP mapping)
- Security middleware (headers, rate limiting)
- Logging configuration
- The coaching workflow service (built once, on startup)

No business logic belongs here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded

from app.core.config import settings
from app.domain.coaching.errors import SimilarityStoreError
from app.interfaces.coaching.dependencies import (
    build_similarity_store,
    build_workflow_service,
)
from app.interfaces.coaching.router import router as coaching_router
from app.interfaces.health import router as health_router
from app.shared.errors.handlers import register_error_handlers
from app.shared.logging import configure_logging
from app.shared.security.headers import SecurityHeadersMiddleware
from app.shared.security.rate_limiting import limiter, rate_limit_exceeded_handler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: build the workflow service and prepare the store."""
    similarity_store = build_similarity_store(settings)
    app.state.workflow_service = build_workflow_service(settings, similarity_store)

    try:
        await similarity_store.ensure_collection()
    except SimilarityStoreError:
        logger.warning(
            "Similarity store could not be initialized. "
            "Workflow runs will fail at StoreTrades until it is reachable.",
            exc_info=True,
        )

    yield

    in_flight = app.state.workflow_service.in_flight
    if in_flight:
        logger.warning("Shutting down with %d workflow run(s) still pending", in_flight)

    await similarity_store.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Registers routers, error handlers, and security middleware.
    This is the composition root of the application.

    Returns:
        A fully configured FastAPI application instance.
    """
    configure_logging(level=settings.log_level)

    app = FastAPI(
        title=settings.project_name,
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # --- Rate Limiting ---
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # --- Security Middleware ---
    app.add_middleware(SecurityHeadersMiddleware)

    # --- Error Handlers ---
    register_error_handlers(app)

    # --- Routers ---
    app.include_router(health_router, prefix="/api/v1")
    app.include_router(coaching_router, prefix="/api/v1")

    return app


app = create_app()
