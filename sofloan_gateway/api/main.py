"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from sofloan_gateway.api.middleware import MetricsMiddleware, RequestIDMiddleware
from sofloan_gateway.api.v1 import applications, ibv, loans
from sofloan_gateway.config import settings
from sofloan_gateway.infrastructure.observability.logging import setup_logging

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="SofLoan Gateway",
        description="Loan amortization and bank-verification analysis service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added runs first
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(loans.router, prefix="/v1", tags=["loans"])
    app.include_router(ibv.router, prefix="/v1", tags=["ibv"])
    app.include_router(applications.router, prefix="/v1", tags=["applications"])

    return app


app = create_app()
