"""Saifauto Car Rental - FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.env_validation import validate_environment
from app.routers import (
    public_router,
    bookings_router,
    notifications_router,
    dashboard_router,
    confirmation_router,
)
from app.services.notifications import MissingConfigurationError

logger = logging.getLogger(__name__)

# Hard-fails (exit 1) if required configuration is missing
validate_environment()

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    yield
    # Shutdown
    from app.core.database import engine, public_engine

    await engine.dispose()
    if public_engine is not engine:
        await public_engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Car rental website backend: fleet listings, online booking with email and WhatsApp notifications, and the staff dashboard API.",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# In production, wildcard (*) is blocked by env_validation.py
allowed_origins = [origin.strip() for origin in settings.allowed_origins.split(",")]

print(f"🔒 CORS configured with origins: {allowed_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MissingConfigurationError)
async def missing_configuration_handler(request: Request, exc: MissingConfigurationError):
    logger.error(f"[CONFIG] {request.url.path}: {exc}")
    return JSONResponse({"error": str(exc)}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


app.include_router(public_router, prefix=settings.api_prefix)
app.include_router(bookings_router, prefix=settings.api_prefix)
app.include_router(notifications_router, prefix=settings.api_prefix)
app.include_router(dashboard_router, prefix=settings.api_prefix)  # Staff only
app.include_router(confirmation_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.app_name}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
    }
