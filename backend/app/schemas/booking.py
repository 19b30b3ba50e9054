"""Booking schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator, model_validator

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin, naive_utc
from app.models.enums import BookingSource, BookingStatus


class BookingCreate(BaseSchema):
    """Input of the single create-booking operation.

    Either first/last name or a single name may be given; the client record
    stores the reconciled name. A client is only upserted when an email is
    present, since email is the dedup key.
    """

    car_id: Optional[int] = None
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    name: Optional[str] = Field(None, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    start_date: datetime
    end_date: datetime
    pickup_location: Optional[str] = Field(None, max_length=255)
    dropoff_location: Optional[str] = Field(None, max_length=255)
    service_type: Optional[str] = Field(None, max_length=100)
    total_price: Optional[Decimal] = Field(None, ge=0)
    source: BookingSource = BookingSource.WEB

    @field_validator("start_date", "end_date")
    @classmethod
    def to_naive_utc(cls, value: datetime) -> datetime:
        return naive_utc(value)

    @model_validator(mode="after")
    def validate_dates(self):
        """End must be strictly after start."""
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class BookingApiRequest(BaseSchema):
    """Body of POST /api/bookings."""

    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field("", max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    pickup_location: Optional[str] = Field(None, max_length=255)
    dropoff_location: Optional[str] = Field(None, max_length=255)
    start_date: datetime
    end_date: datetime
    car_id: int

    @field_validator("start_date", "end_date")
    @classmethod
    def to_naive_utc(cls, value: datetime) -> datetime:
        return naive_utc(value)

    @model_validator(mode="after")
    def validate_dates(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class BookingStatusUpdate(BaseSchema):
    """Staff status change from the bookings list."""

    status: BookingStatus


class BookingCarSummary(BaseSchema):
    id: int
    make: str
    model: str
    license_plate: Optional[str] = None


class BookingClientSummary(BaseSchema):
    id: int
    name: str
    email: str


class BookingResponse(BaseSchema, IDMixin, TimestampMixin):
    """Booking response."""

    car_id: Optional[int] = None
    client_id: Optional[int] = None
    start_date: datetime
    end_date: datetime
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    status: BookingStatus
    total_price: Optional[Decimal] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    service_type: Optional[str] = None
    source: BookingSource
    car: Optional[BookingCarSummary] = None
    client: Optional[BookingClientSummary] = None


class CalendarEvent(BaseSchema):
    """Booking rendered as a calendar event."""

    id: int
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    status: BookingStatus


class DashboardStats(BaseSchema):
    """Overview cards of the dashboard home page."""

    total_revenue: Decimal
    active_bookings: int
    available_cars: int
    total_clients: int


class BookingFormRequest(BaseSchema):
    """Body of POST /api/cars/{car_id}/book (the public booking form)."""

    first_name: str = Field("", max_length=255)
    last_name: str = Field("", max_length=255)
    email: str = Field("", max_length=255)
    phone: str = Field("", max_length=50)
    pickup_location: str = Field("", max_length=255)
    dropoff_location: Optional[str] = Field(None, max_length=255)
    pickup_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    rules_confirmation: str = ""

    @field_validator("pickup_date", "return_date")
    @classmethod
    def to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return naive_utc(value)


class BookingFormResponse(BaseSchema):
    """Outcome of a successful booking form submission."""

    state: str
    booking_id: Optional[int] = None
    redirect_url: str
    notices: list[str] = Field(default_factory=list)
