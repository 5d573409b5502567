"""Time-off engine — FastAPI application factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from timeoff.admin.router import router as admin_router
from timeoff.balances.router import router as balances_router
from timeoff.common.exceptions import register_exception_handlers
from timeoff.common.rate_limit import limiter
from timeoff.config import settings
from timeoff.database import engine
from timeoff.leave.router import router as requests_router
from timeoff.overtime.router import router as overtime_router

logger = logging.getLogger("timeoff")


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info(
        "Starting time-off engine (environment=%s, balance schema=%s)",
        settings.ENVIRONMENT, settings.BALANCE_SCHEMA,
    )
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="Time Off Engine",
        description="Time-off and overtime balances, requests and approvals",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(requests_router, prefix="/api/v1/requests", tags=["requests"])
    app.include_router(balances_router, prefix="/api/v1/balances", tags=["balances"])
    app.include_router(overtime_router, prefix="/api/v1/overtime", tags=["overtime"])
    app.include_router(admin_router, prefix="/api/v1/admin", tags=["admin"])

    return app


app = create_app()
