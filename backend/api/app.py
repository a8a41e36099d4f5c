"""
FastAPI application factory.

Creates and configures the FastAPI application instance.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from shared.config import get_settings
from shared.exceptions import GarageError
from modules.auth.routes import router as session_router

from .dependencies import get_container
from .models.errors import ErrorResponse
from .routes import health


async def garage_error_handler(request: Request, exc: GarageError) -> JSONResponse:
    """Render domain errors that a route did not translate itself."""
    body = ErrorResponse.from_error(exc)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs startup and shutdown logic.
    """
    # Startup
    settings = get_settings()
    print(f"Starting {settings.app_name} on {settings.host}:{settings.port}")
    yield
    # Shutdown
    get_container().terminals.close_all()
    print(f"Shutting down {settings.app_name}")


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Staff authentication and terminal sessions for iGarage360",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    app.add_exception_handler(GarageError, garage_error_handler)

    # Register routes
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(session_router, prefix="/api/session", tags=["session"])

    return app


# Application instance for uvicorn
app = create_app()
