"""
Saifauto - Booking submission workflow

State machine behind the public booking form:

    EDITING -> RULES_ACKNOWLEDGEMENT -> SUBMITTING -> SUCCEEDED | FAILED

Validation happens locally before any collaborator is touched. Once the
booking is stored, the confirmation email and the staff notice are sent in
that order; a failure of either never undoes the booking.
"""

import logging
import re
from dataclasses import dataclass, fields
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol

from pydantic import ValidationError

from app.models.car import Car
from app.models.client import canonical_name
from app.models.enums import BookingSource
from app.schemas.base import naive_utc
from app.schemas.booking import BookingCreate
from app.services.bookings import compute_total_price, rental_days
from app.services.confirmation import confirmation_url
from app.services.notifications import ConfirmationEmailSender, StaffMessenger
from app.services.results import BookingOutcome

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
EMAIL_FAILED_NOTICE = "Your booking is confirmed, but the confirmation email could not be sent."
DEFAULT_RULES_PHRASE = "I accept the rental rules"

REQUIRED_FIELDS = {
    "first_name": "First name",
    "last_name": "Last name",
    "email": "Email",
    "phone": "Phone",
    "pickup_location": "Pickup location",
    "pickup_date": "Pickup date",
    "return_date": "Return date",
}

MAX_LENGTHS = {
    "first_name": 255,
    "last_name": 255,
    "email": 255,
    "phone": 50,
    "pickup_location": 255,
    "dropoff_location": 255,
}
FIELD_LABELS = {**REQUIRED_FIELDS, "dropoff_location": "Dropoff location"}
SERVICE_TYPE_MAX_LENGTH = 100


class WorkflowState(str, Enum):
    EDITING = "editing"
    RULES_ACKNOWLEDGEMENT = "rules_acknowledgement"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class WorkflowError(Exception):
    """An operation was requested in a state that does not allow it."""


class BookingGateway(Protocol):
    async def create_booking(self, data: BookingCreate) -> BookingOutcome:
        ...


@dataclass
class BookingFormData:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    pickup_location: str = ""
    dropoff_location: Optional[str] = None
    pickup_date: Optional[datetime] = None
    return_date: Optional[datetime] = None


@dataclass(frozen=True)
class CarSnapshot:
    """The car being booked, as shown on its detail page."""

    id: int
    make: str
    model: str
    year: Optional[int] = None
    color: Optional[str] = None
    category: Optional[str] = None
    license_plate: Optional[str] = None
    daily_rate: Optional[Decimal] = None

    @classmethod
    def from_car(cls, car: Car) -> "CarSnapshot":
        return cls(
            id=car.id,
            make=car.make,
            model=car.model,
            year=car.year,
            color=car.color,
            category=car.category,
            license_plate=car.license_plate,
            daily_rate=car.daily_rate,
        )

    @property
    def display_name(self) -> str:
        return f"{self.make} {self.model}"


class BookingWorkflow:
    """One customer's pass through the booking form for one car."""

    def __init__(
        self,
        car: CarSnapshot,
        gateway: BookingGateway,
        email_sender: Optional[ConfirmationEmailSender] = None,
        messenger: Optional[StaffMessenger] = None,
        rules_phrase: str = DEFAULT_RULES_PHRASE,
    ):
        self.car = car
        self.gateway = gateway
        self.email_sender = email_sender
        self.messenger = messenger
        self.rules_phrase = rules_phrase

        self.state = WorkflowState.EDITING
        self.form = BookingFormData()
        self.error: Optional[str] = None
        self.notices: list[str] = []
        self.booking_id: Optional[int] = None
        self.redirect_url: Optional[str] = None
        self._rules_accepted = False

    def update_form(self, **changes) -> None:
        """Edit form fields. Leaves any dialog or failure and returns to EDITING."""
        if self.state == WorkflowState.SUBMITTING:
            raise WorkflowError("Cannot edit the form while submitting")

        known = {f.name for f in fields(BookingFormData)}
        for name, value in changes.items():
            if name not in known:
                raise WorkflowError(f"Unknown form field: {name}")
            if isinstance(value, datetime):
                value = naive_utc(value)
            setattr(self.form, name, value)

        self.state = WorkflowState.EDITING
        self.error = None
        self._rules_accepted = False

    def validate(self) -> Optional[str]:
        """First validation error of the form, or None."""
        form = self.form
        for name, label in REQUIRED_FIELDS.items():
            value = getattr(form, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                return f"{label} is required."

        for name, limit in MAX_LENGTHS.items():
            value = getattr(form, name)
            if value and len(value) > limit:
                return f"{FIELD_LABELS[name]} must be at most {limit} characters."

        if not EMAIL_PATTERN.match(form.email.strip()):
            return "Please enter a valid email address."

        if form.return_date <= form.pickup_date:
            return "Return date must be after the pickup date."

        return None

    def request_submit(self) -> bool:
        """Validate and, if the form is clean, open the rules acknowledgement."""
        if self.state not in (WorkflowState.EDITING, WorkflowState.FAILED):
            raise WorkflowError(f"Cannot submit from state {self.state.value}")

        error = self.validate()
        if error:
            self.state = WorkflowState.EDITING
            self.error = error
            return False

        self.error = None
        self._rules_accepted = False
        self.state = WorkflowState.RULES_ACKNOWLEDGEMENT
        return True

    def acknowledge_rules(self, text: str) -> bool:
        if self.state != WorkflowState.RULES_ACKNOWLEDGEMENT:
            raise WorkflowError("Rules acknowledgement is not open")
        self._rules_accepted = (text or "").strip().casefold() == self.rules_phrase.casefold()
        return self._rules_accepted

    @property
    def can_submit(self) -> bool:
        return self.state == WorkflowState.RULES_ACKNOWLEDGEMENT and self._rules_accepted

    @property
    def total_price(self) -> Optional[Decimal]:
        form = self.form
        if self.car.daily_rate is None or not form.pickup_date or not form.return_date:
            return None
        return compute_total_price(self.car.daily_rate, form.pickup_date, form.return_date)

    @property
    def customer_name(self) -> str:
        return canonical_name(first_name=self.form.first_name, last_name=self.form.last_name)

    @property
    def service_type(self) -> str:
        return f"Car rental: {self.car.display_name}"[:SERVICE_TYPE_MAX_LENGTH]

    async def submit(self) -> WorkflowState:
        """Store the booking, then notify the customer and staff."""
        if not self.can_submit:
            raise WorkflowError("Rules must be acknowledged before submitting")

        self.state = WorkflowState.SUBMITTING
        self._rules_accepted = False
        form = self.form
        total_price = self.total_price

        try:
            request = BookingCreate(
                car_id=self.car.id,
                first_name=form.first_name,
                last_name=form.last_name,
                email=form.email,
                phone=form.phone,
                start_date=form.pickup_date,
                end_date=form.return_date,
                pickup_location=form.pickup_location,
                dropoff_location=form.dropoff_location or form.pickup_location,
                service_type=self.service_type,
                total_price=total_price,
                source=BookingSource.WEB,
            )
            outcome = await self.gateway.create_booking(request)
        except ValidationError as e:
            logger.warning(f"[BOOKING] Rejected booking request: {e}")
            outcome = BookingOutcome(success=False, error="The booking details are invalid. Please check the form.")
        except Exception as e:
            logger.error(f"[BOOKING] Gateway error: {e}")
            outcome = BookingOutcome(success=False, error="Failed to create booking. Please try again.")

        if not outcome.success:
            self.state = WorkflowState.FAILED
            self.error = outcome.error
            return self.state

        self.booking_id = outcome.booking_id
        self.notices = []
        if not await self._send_confirmation_email(total_price):
            self.notices.append(EMAIL_FAILED_NOTICE)
        await self._send_staff_notice()

        self.redirect_url = self._confirmation_url(total_price)
        self.form = BookingFormData()
        self.error = None
        self.state = WorkflowState.SUCCEEDED
        return self.state

    async def _send_confirmation_email(self, total_price: Optional[Decimal]) -> bool:
        if self.email_sender is None:
            logger.warning("[EMAIL] No email sender configured, confirmation not sent")
            return False

        form = self.form
        try:
            result = await self.email_sender.send_confirmation(
                to=form.email.strip(),
                customer_name=self.customer_name,
                make=self.car.make,
                model=self.car.model,
                year=self.car.year,
                license_plate=self.car.license_plate,
                pickup_date=form.pickup_date,
                return_date=form.return_date,
                pickup_location=form.pickup_location,
                total_price=total_price,
                phone=form.phone,
            )
        except Exception as e:
            logger.error(f"[EMAIL] Confirmation for booking {self.booking_id} raised: {e}")
            return False

        if not result.success:
            logger.warning(f"[EMAIL] Confirmation for booking {self.booking_id} failed: {result.error}")
        return result.success

    async def _send_staff_notice(self) -> None:
        if self.messenger is None:
            logger.warning("[TWILIO] No messenger configured, staff notice not sent")
            return

        form = self.form
        try:
            result = await self.messenger.send_booking_notice(
                name=self.customer_name,
                phone=form.phone,
                booking_date=form.pickup_date.isoformat(),
                return_date=form.return_date.isoformat(),
                service_type=self.service_type,
            )
        except Exception as e:
            logger.error(f"[TWILIO] Staff notice for booking {self.booking_id} raised: {e}")
            return

        if not result.success:
            logger.warning(f"[TWILIO] Staff notice for booking {self.booking_id} failed: {result.error}")

    def _confirmation_url(self, total_price: Optional[Decimal]) -> str:
        form = self.form
        return confirmation_url(
            firstName=form.first_name,
            lastName=form.last_name,
            email=form.email,
            phone=form.phone,
            bookingId=self.booking_id,
            carMake=self.car.make,
            carModel=self.car.model,
            carYear=self.car.year,
            carColor=self.car.color,
            carLicensePlate=self.car.license_plate,
            carCategory=self.car.category,
            pickupDate=form.pickup_date.date().isoformat(),
            pickupTime=form.pickup_date.strftime("%H:%M"),
            returnDate=form.return_date.date().isoformat(),
            returnTime=form.return_date.strftime("%H:%M"),
            pickupLocation=form.pickup_location,
            returnLocation=form.dropoff_location or form.pickup_location,
            duration=f"{rental_days(form.pickup_date, form.return_date)} days",
            totalPrice=total_price,
        )
