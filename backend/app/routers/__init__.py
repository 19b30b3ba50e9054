"""API Routers for Saifauto."""

from app.routers.public import router as public_router
from app.routers.bookings import router as bookings_router
from app.routers.notifications import router as notifications_router
from app.routers.dashboard import router as dashboard_router
from app.routers.confirmation import router as confirmation_router

__all__ = [
    "public_router",
    "bookings_router",
    "notifications_router",
    "dashboard_router",
    "confirmation_router",
]
