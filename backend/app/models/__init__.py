"""SQLAlchemy models for the car rental service."""

from app.models.user import StaffUser
from app.models.car import Car
from app.models.client import Client
from app.models.booking import Booking

__all__ = [
    "StaffUser",
    "Car",
    "Client",
    "Booking",
]
