"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from finance_tracker.api.middleware import RequestIDMiddleware, MetricsMiddleware
from finance_tracker.api.v1 import accounts, auth, borrowings, dashboard, rates, transactions, transfers, work_shifts
from finance_tracker.domain.currency import RateTable
from finance_tracker.domain.exceptions import (
    AuthenticationError,
    BusinessRuleError,
    ConflictError,
    DomainException,
    NotFoundError,
    RatesAPIError,
    ValidationError,
)
from finance_tracker.infrastructure.observability.logging import setup_logging
from finance_tracker.infrastructure.observability.metrics import record_rejection
from finance_tracker.config import settings

setup_logging(settings.log_level)

# Most specific first; the first matching class decides the status
STATUS_BY_EXCEPTION = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (BusinessRuleError, 409),
    (ConflictError, 409),
    (AuthenticationError, 401),
    (RatesAPIError, 503),
)


def status_for(exc: DomainException) -> int:
    for exc_type, status in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return status
    return 400


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    """Turn a domain failure into a JSON error; the unit of work has already rolled back"""
    status = status_for(exc)
    request_id = getattr(request.state, "request_id", "unknown")

    if isinstance(exc, RatesAPIError):
        logging.error(f"Rates API error: {exc}", extra={"request_id": request_id})
    else:
        logging.warning(
            f"Request rejected: {exc}",
            extra={"request_id": request_id, "error": type(exc).__name__},
        )
    if isinstance(exc, (BusinessRuleError, ConflictError)):
        record_rejection(exc)

    return JSONResponse(status_code=status, content={"detail": str(exc), "error": type(exc).__name__})


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Finance Tracker API",
        description="Multi-currency personal finance ledger",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.rate_table = RateTable.default()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(DomainException, domain_exception_handler)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(auth.router, prefix="/v1", tags=["auth"])
    app.include_router(accounts.router, prefix="/v1", tags=["accounts"])
    app.include_router(transactions.router, prefix="/v1", tags=["transactions"])
    app.include_router(transfers.router, prefix="/v1", tags=["transfers"])
    app.include_router(borrowings.router, prefix="/v1", tags=["borrowings"])
    app.include_router(work_shifts.router, prefix="/v1", tags=["work-shifts"])
    app.include_router(dashboard.router, prefix="/v1", tags=["dashboard"])
    app.include_router(rates.router, prefix="/v1", tags=["rates"])

    return app


app = create_app()
