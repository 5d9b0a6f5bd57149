"""FastAPI application for the R2 dashboard REST API"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import Services, build_services
from api.routers import accounts, auth, buckets, refresh
from config import ConfigManager
from core.errors import TotalFailure
from utils.logger import get_logger

API_VERSION = "1.0.0"

logger = get_logger("r2dash.api")


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Application factory

    Args:
        services: Pre-built services (tests); built from the on-disk
            configuration when omitted
    """
    if services is None:
        services = build_services(ConfigManager())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"R2 Dashboard API starting ({services.config_manager.environment})")
        yield
        logger.info("R2 Dashboard API shutting down")

    app = FastAPI(
        title="R2 Dashboard API",
        version=API_VERSION,
        description="Multi-account Cloudflare R2 storage monitoring",
        lifespan=lifespan,
    )
    app.state.services = services

    # CORS middleware for the browser UI
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Public routes
    app.include_router(auth.router, prefix="/api/v1/auth", tags=["Auth"])
    # Guarded by the shared cron secret (/refresh) or bearer token (/last-refresh)
    app.include_router(refresh.router, prefix="/api/v1", tags=["Refresh"])

    # Protected routes; each resolves the current user itself
    app.include_router(accounts.router, prefix="/api/v1", tags=["Accounts"])
    app.include_router(buckets.router, prefix="/api/v1", tags=["Buckets"])

    @app.exception_handler(TotalFailure)
    async def total_failure_handler(request: Request, exc: TotalFailure):
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": {"error": "Failed to fetch buckets", "warnings": exc.warnings}},
        )

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "version": API_VERSION,
            "environment": services.config_manager.environment,
            "tasks": services.task_manager.counts(),
        }

    return app
