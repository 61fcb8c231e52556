"""
bondchain - HTTP entry point

Read bond totals, inspect claim chains and claim winnings for a bonded
question-answering oracle.

Run:
    uvicorn bondchain.main:app
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from . import __version__
from .api import router
from .core import OracleService, create_service
from .observability import (
    RequestContextMiddleware,
    check_health,
    get_logger,
    get_metrics,
    setup_logging,
)

logger = get_logger(__name__)


def create_app(service: Optional[OracleService] = None) -> FastAPI:
    """
    Build the application.

    Args:
        service: Preconfigured service (tests pass one backed by an
                 InMemoryGateway). If None, built from the environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.service = service or create_service()
        logger.info(
            "Application startup complete",
            gateway=type(app.state.service.gateway).__name__,
        )
        yield
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="bondchain",
        description=(
            "Settlement accessor for a bonded oracle: bond totals per answer, "
            "claim-chain reconstruction and winnings claims."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(RequestContextMiddleware)
    app.include_router(router)

    @app.get("/health", tags=["System"])
    def health():
        health_status = check_health(gateway=app.state.service.gateway)
        return JSONResponse(
            status_code=200 if health_status.healthy else 503,
            content={
                "status": "healthy" if health_status.healthy else "unhealthy",
                "checks": health_status.checks,
                "duration_ms": health_status.duration_ms,
            },
        )

    @app.get("/metrics", tags=["System"])
    def metrics():
        return get_metrics().get_summary()

    return app


setup_logging()
app = create_app()
