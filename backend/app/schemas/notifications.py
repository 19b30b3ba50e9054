"""Schemas for the confirmation email and staff message endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from pydantic import EmailStr

from app.schemas.base import CamelSchema


class CarDetails(CamelSchema):
    make: str
    model: str
    year: Optional[Union[int, str]] = None
    license_plate: Optional[str] = None


class BookingDetails(CamelSchema):
    pickup_date: datetime
    return_date: datetime
    pickup_location: Optional[str] = None
    total_price: Optional[Decimal] = None


class CustomerDetails(CamelSchema):
    email: EmailStr
    phone: Optional[str] = None


class ConfirmationEmailRequest(CamelSchema):
    """Body of POST /api/send-confirmation-email."""

    customer_name: str
    car_details: CarDetails
    booking_details: BookingDetails
    customer_details: CustomerDetails


class StaffMessageRequest(CamelSchema):
    """Body of POST /api/sendBooking. Presence is checked by the endpoint."""

    name: Optional[str] = None
    phone: Optional[str] = None
    booking_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    service_type: Optional[str] = None

    def missing_fields(self) -> list[str]:
        return [
            field
            for field in ("name", "phone", "booking_date", "return_date", "service_type")
            if not getattr(self, field)
        ]

