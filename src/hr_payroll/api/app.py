"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hr_payroll.api.routes import health_router, payroll_router
from hr_payroll.calculators.rate_resolver import DuplicateEffectiveDateError
from hr_payroll.calculators.types import CalculationError
from hr_payroll.config import Settings, get_settings
from hr_payroll.database import Database
from hr_payroll.services.numbering_service import NumberingRuleNotFoundError
from hr_payroll.services.rule_service import (
    RuleAlreadyExistsError,
    RuleVersionLockedError,
    RuleVersionNotFoundError,
)
from hr_payroll.services.rule_store import RuleNotFoundError

logger = logging.getLogger(__name__)

# Most specific first; the first matching class decides the status code.
ERROR_STATUS: list[tuple[type[Exception], int]] = [
    (DuplicateEffectiveDateError, status.HTTP_409_CONFLICT),
    (CalculationError, 422),
    (RuleNotFoundError, status.HTTP_404_NOT_FOUND),
    (RuleVersionNotFoundError, status.HTTP_404_NOT_FOUND),
    (NumberingRuleNotFoundError, status.HTTP_404_NOT_FOUND),
    (RuleAlreadyExistsError, status.HTTP_409_CONFLICT),
    (RuleVersionLockedError, status.HTTP_409_CONFLICT),
]


def _error_response(exc: Exception) -> JSONResponse:
    status_code = next(code for cls, code in ERROR_STATUS if isinstance(exc, cls))
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": getattr(exc, "code", None)},
    )


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    database = database or Database.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        yield
        await database.dispose()

    app = FastAPI(
        title="HR Payroll API",
        description="Gross/net salary conversion with versioned NDFL rules",
        version=settings.engine_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    for error_class, _ in ERROR_STATUS:

        @app.exception_handler(error_class)
        async def domain_exception_handler(request: Request, exc: Exception) -> JSONResponse:
            """Map domain errors to JSON error responses."""
            return _error_response(exc)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(payroll_router, prefix="/api/v1")

    return app
