"""Result objects returned by services instead of raising past the API layer."""

from dataclasses import dataclass
from typing import Any, Optional

from app.models.booking import Booking


@dataclass
class ActionResult:
    success: bool
    data: Any = None
    error: Optional[str] = None


@dataclass
class DeleteCarResult:
    """Outcome of deleting a car.

    image_deletion_error is a non-fatal warning: the car row is gone even
    when some of its stored images could not be removed.
    """

    success: bool
    error: Optional[str] = None
    image_deletion_error: Optional[str] = None


@dataclass
class BookingOutcome:
    success: bool
    booking: Optional[Booking] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None  # duplicate | unavailable | not_found | generic

    @property
    def booking_id(self) -> Optional[int]:
        return self.booking.id if self.booking is not None else None


@dataclass
class SendResult:
    """Outcome of one notification dispatch."""

    success: bool
    data: Any = None
    sid: Optional[str] = None
    error: Optional[str] = None
