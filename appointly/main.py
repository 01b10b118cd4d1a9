import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from appointly.api.v1.appointments import appointments_router
from appointly.api.v1.calendar import calendar_router
from appointly.api.v1.sellers import sellers_router
from appointly.api.v1.users import users_router
from appointly.core.config import settings
from appointly.db.session import init_db


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Handles startup and shutdown events. Currently initializes database
    tables on startup.
    """
    # Startup: create tables
    await init_db()
    logger.info("Database initialized")
    yield


def configure_logging() -> None:
    """Set the root log level and quiet the HTTP client libraries."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Sets up logging, CORS middleware, health checks, and routing for
    users, sellers, appointments and calendar endpoints.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    configure_logging()

    app = FastAPI(
        title="Appointly API",
        description="Buyer/seller appointment booking with Google Calendar integration",
        version="1.0.0",
        lifespan=lifespan
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(users_router, prefix="/api/v1/users", tags=["users"])
    app.include_router(sellers_router, prefix="/api/v1/sellers", tags=["sellers"])
    app.include_router(appointments_router, prefix="/api/v1/appointments", tags=["appointments"])
    app.include_router(calendar_router, prefix="/api/v1/calendar", tags=["calendar"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """
        Health check endpoint for load balancers and monitoring.

        Reports which integrations are configured without exposing values.

        Returns:
            dict: Health status response.
        """
        return {
            "status": "healthy",
            "environment": {
                "database_configured": bool(settings.database_url),
                "google_client_configured": bool(settings.google_client_id),
                "require_seller_calendar": settings.require_seller_calendar,
            },
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """
        Root endpoint providing basic API information.

        Returns:
            dict: Welcome message.
        """
        return {"message": "Appointly API"}

    return app


def run():
    """Console entry point: serve the app without auto-reload."""
    uvicorn.run(
        "appointly.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
    )
