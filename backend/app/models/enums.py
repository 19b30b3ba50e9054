"""Enumeration types for the car rental domain model."""

from enum import Enum


class CarStatus(str, Enum):
    """Fleet status of a car. Staff may set any status at any time."""
    AVAILABLE = "Available"
    RENTED = "Rented"
    MAINTENANCE = "Maintenance"


class BookingStatus(str, Enum):
    """Status of a booking. Completion is a manual staff action."""
    CONFIRMED = "Confirmed"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class BookingSource(str, Enum):
    """Which entry point recorded the booking."""
    WEB = "web"          # Booking form / POST /api/bookings
    MESSAGE = "message"  # POST /api/sendBooking


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Persist enum values ("Confirmed") rather than member names ("CONFIRMED")."""
    return [member.value for member in enum_cls]
