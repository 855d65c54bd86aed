"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from savings_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from savings_gateway.api.v1 import payments, pin, round_up
from savings_gateway.infrastructure.clients.verifier import VerifierClient
from savings_gateway.infrastructure.observability.logging import setup_logging
from savings_gateway.services.sessions import SessionRegistry
from savings_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Savings Gateway",
        description="PIN authorization and round-up savings for mobile payments",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # PIN sessions are in-memory and owned by this process
    app.state.sessions = SessionRegistry(VerifierClient())

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
    app.include_router(round_up.router, prefix="/v1", tags=["round-up"])
    app.include_router(pin.router, prefix="/v1", tags=["pin"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])

    return app


app = create_app()
