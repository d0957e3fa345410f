"""
Centralized error handlers for FastAPI.

Maps domain-specific errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.coaching.errors import (
    CoachingDomainError,
    GatewayError,
    WorkflowNotFoundError,
)

logger = logging.getLogger(__name__)

HTTP_404 = 404
HTTP_500 = 500
HTTP_502 = 502


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(WorkflowNotFoundError)
    async def handle_workflow_not_found(
        _request: Request, exc: WorkflowNotFoundError
    ) -> JSONResponse:
        """Handle unknown workflow ids."""
        logger.info("Workflow not found: %s", exc.workflow_id)
        return _error_response(
            HTTP_404, "Workflow not found", f"No workflow found with ID: {exc.workflow_id}"
        )

    @app.exception_handler(GatewayError)
    async def handle_gateway(_request: Request, exc: GatewayError) -> JSONResponse:
        """Handle failures of external collaborators."""
        logger.error("Gateway error: %s", exc.message)
        return _error_response(HTTP_502, "Upstream service unavailable")

    @app.exception_handler(CoachingDomainError)
    async def handle_coaching_domain(
        _request: Request, exc: CoachingDomainError
    ) -> JSONResponse:
        """Catch-all for unhandled coaching domain errors."""
        logger.error("Unhandled coaching domain error: %s", exc.message)
        return _error_response(HTTP_500, "Internal server error")

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
