"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from billpay_engine.api.middleware import RequestIDMiddleware, MetricsMiddleware
from billpay_engine.api.v1 import accounts, entries, obligations, schedules
from billpay_engine.infrastructure.observability.logging import setup_logging
from billpay_engine.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Billpay Reconciliation Engine",
        description="Ledger-derived payment status, balances and billing-cycle sync",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(accounts.router, prefix="/v1", tags=["accounts"])
    app.include_router(obligations.router, prefix="/v1", tags=["obligations"])
    app.include_router(entries.router, prefix="/v1", tags=["ledger"])
    app.include_router(schedules.router, prefix="/v1", tags=["schedules"])

    return app


app = create_app()
