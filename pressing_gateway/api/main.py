"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from pressing_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from pressing_gateway.api.v1 import deposits, payments, pricing, receipts
from pressing_gateway.infrastructure.observability.logging import setup_logging
from pressing_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Pressing Gateway",
        description="Laundry deposit intake, settlement and receipt service",
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
    app.include_router(pricing.router, prefix="/v1", tags=["pricing"])
    app.include_router(deposits.router, prefix="/v1", tags=["deposits"])
    app.include_router(payments.router, prefix="/v1", tags=["payments"])
    app.include_router(receipts.router, prefix="/v1", tags=["receipts"])

    return app


app = create_app()
