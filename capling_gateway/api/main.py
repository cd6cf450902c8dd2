"""FastAPI application factory"""

import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from capling_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from capling_gateway.api.routes import insights, justification, transactions
from capling_gateway.api.routes.schemas import ErrorResponse
from capling_gateway.domain.exceptions import CaplingError
from capling_gateway.infrastructure.observability.logging import setup_logging
from capling_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def error_response(error: CaplingError) -> JSONResponse:
    """Failure envelope; server-side details are logged, never returned"""
    details = error.details if error.status_code < 500 else None
    body = ErrorResponse(error=error.message, code=error.code, details=details)
    return JSONResponse(status_code=error.status_code, content=body.model_dump(by_alias=True))


async def handle_capling_error(request: Request, exc: CaplingError) -> JSONResponse:
    if exc.status_code >= 500:
        logging.error(
            f"{exc.code}: {exc.message}",
            extra={"request_id": getattr(request.state, "request_id", "unknown"), "details": str(exc.details)},
        )
    return error_response(exc)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    """Anything not raised as a CaplingError, including dependency failures"""
    logging.error(
        f"Unhandled error: {exc}",
        extra={"request_id": getattr(request.state, "request_id", "unknown"), "error_type": type(exc).__name__},
    )
    return error_response(CaplingError("Internal server error"))


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0]["loc"][1:]) if errors else None
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=f"Invalid request: {errors[0]['msg']}" if errors else "Invalid request",
            code="VALIDATION_ERROR",
            details={"field": field} if field else None,
        ).model_dump(by_alias=True),
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Capling Gateway",
        description="Transaction classification and behavioral scoring service",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.add_exception_handler(CaplingError, handle_capling_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(transactions.router, tags=["transactions"])
    app.include_router(justification.router, tags=["justification"])
    app.include_router(insights.router, tags=["insights"])

    return app


app = create_app()
