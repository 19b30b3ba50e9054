from datetime import datetime, timedelta, timezone
from decimal import Decimal
from urllib.parse import parse_qs, urlparse

import pytest
from sqlalchemy import select

from app.models import Booking, Client
from app.models.enums import BookingStatus
from app.services.booking_workflow import (
    EMAIL_FAILED_NOTICE,
    BookingWorkflow,
    CarSnapshot,
    WorkflowError,
    WorkflowState,
)
from app.services.bookings import BookingService
from app.services.results import BookingOutcome, SendResult

from tests.conftest import RecordingEmailSender, RecordingMessenger

T0 = datetime(2025, 1, 15, 10, 0)
PHRASE = "I accept the rental rules"
CAR = CarSnapshot(
    id=1,
    make="Dacia",
    model="Logan",
    year=2023,
    color="White",
    category="Economy",
    license_plate="12345-A-6",
    daily_rate=Decimal("45"),
)

JANE = {
    "first_name": "Jane",
    "last_name": "Doe",
    "email": "jane@x.com",
    "phone": "+1555",
    "pickup_location": "Airport",
    "pickup_date": T0,
    "return_date": T0 + timedelta(days=2),
}


class FailingGateway:
    def __init__(self, outcome: BookingOutcome = None, error: Exception = None):
        self.outcome = outcome or BookingOutcome(
            success=False, error="This booking conflicts with an existing record.", error_kind="duplicate"
        )
        self.error = error
        self.calls = []

    async def create_booking(self, data):
        self.calls.append(data)
        if self.error:
            raise self.error
        return self.outcome


def workflow(gateway=None, email_sender=None, messenger=None, car=CAR) -> BookingWorkflow:
    return BookingWorkflow(
        car=car,
        gateway=gateway or FailingGateway(),
        email_sender=email_sender,
        messenger=messenger,
        rules_phrase=PHRASE,
    )


def test_return_before_pickup_stays_editing():
    gateway = FailingGateway()
    wf = workflow(gateway)
    wf.update_form(**{**JANE, "return_date": T0})

    assert not wf.request_submit()
    assert wf.state == WorkflowState.EDITING
    assert wf.error == "Return date must be after the pickup date."
    assert gateway.calls == []


@pytest.mark.parametrize("email", ["jane", "jane@x", "jane @x.com", "@x.com"])
def test_malformed_email_is_rejected_locally(email):
    wf = workflow()
    wf.update_form(**{**JANE, "email": email})

    assert not wf.request_submit()
    assert wf.error == "Please enter a valid email address."


def test_missing_field_is_reported():
    wf = workflow()
    wf.update_form(**{**JANE, "phone": "  "})

    assert not wf.request_submit()
    assert wf.error == "Phone is required."


def test_rules_phrase_gates_submit():
    wf = workflow()
    wf.update_form(**JANE)
    assert wf.request_submit()
    assert wf.state == WorkflowState.RULES_ACKNOWLEDGEMENT
    assert not wf.can_submit

    assert not wf.acknowledge_rules("I accept")
    assert not wf.can_submit
    assert wf.acknowledge_rules("  i ACCEPT the rental rules ")
    assert wf.can_submit


async def test_submit_requires_acknowledgement():
    wf = workflow()
    wf.update_form(**JANE)
    wf.request_submit()

    with pytest.raises(WorkflowError):
        await wf.submit()


def test_total_price_uses_whole_days():
    wf = workflow()
    wf.update_form(**{**JANE, "pickup_date": datetime(2025, 1, 15), "return_date": datetime(2025, 1, 17, 12)})

    assert wf.total_price == Decimal("135")


async def test_jane_doe_end_to_end(db, make_car):
    car_id = await make_car()
    email_sender, messenger = RecordingEmailSender(), RecordingMessenger()
    car = CarSnapshot(**{**CAR.__dict__, "id": car_id})
    wf = workflow(BookingService(db), email_sender, messenger, car=car)

    wf.update_form(**JANE)
    assert wf.request_submit()
    assert wf.acknowledge_rules(PHRASE)
    state = await wf.submit()

    assert state == WorkflowState.SUCCEEDED
    client = (await db.execute(select(Client))).scalar_one()
    assert client.name == "Jane Doe"
    booking = (await db.execute(select(Booking))).scalar_one()
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.client_id == client.id
    assert booking.total_price == Decimal("90")

    assert len(email_sender.calls) == 1
    assert email_sender.calls[0]["to"] == "jane@x.com"
    assert len(messenger.calls) == 1
    assert messenger.calls[0]["name"] == "Jane Doe"

    assert wf.redirect_url.startswith("/confirmation?firstName=Jane&lastName=Doe&")
    query = parse_qs(urlparse(wf.redirect_url).query)
    assert query["bookingId"] == [str(booking.id)]
    assert query["totalPrice"] == ["90"]
    assert query["duration"] == ["2 days"]
    assert wf.form.first_name == ""
    assert wf.notices == []


async def test_insert_failure_sends_nothing_and_keeps_form():
    gateway = FailingGateway()
    email_sender, messenger = RecordingEmailSender(), RecordingMessenger()
    wf = workflow(gateway, email_sender, messenger)
    wf.update_form(**JANE)
    wf.request_submit()
    wf.acknowledge_rules(PHRASE)

    state = await wf.submit()

    assert state == WorkflowState.FAILED
    assert wf.error == "This booking conflicts with an existing record."
    assert email_sender.calls == []
    assert messenger.calls == []
    assert wf.form.email == "jane@x.com"
    assert wf.redirect_url is None


async def test_gateway_exception_fails_submission():
    wf = workflow(FailingGateway(error=ConnectionError("network down")), RecordingEmailSender())
    wf.update_form(**JANE)
    wf.request_submit()
    wf.acknowledge_rules(PHRASE)

    assert await wf.submit() == WorkflowState.FAILED
    assert wf.error


async def test_acknowledgement_is_not_kept_after_failure():
    wf = workflow()
    wf.update_form(**JANE)
    wf.request_submit()
    wf.acknowledge_rules(PHRASE)
    await wf.submit()

    assert not wf.can_submit
    assert wf.request_submit()
    assert wf.state == WorkflowState.RULES_ACKNOWLEDGEMENT
    assert not wf.can_submit


async def test_editing_after_failure_returns_to_editing():
    wf = workflow()
    wf.update_form(**JANE)
    wf.request_submit()
    wf.acknowledge_rules(PHRASE)
    await wf.submit()

    wf.update_form(phone="+1666")

    assert wf.state == WorkflowState.EDITING
    assert wf.error is None


async def test_email_failure_adds_notice_and_still_messages_staff(db, make_car):
    car_id = await make_car()
    email_sender = RecordingEmailSender(result=SendResult(success=False, error="Failed to send email"))
    messenger = RecordingMessenger(error=RuntimeError("twilio down"))
    car = CarSnapshot(**{**CAR.__dict__, "id": car_id})
    wf = workflow(BookingService(db), email_sender, messenger, car=car)
    wf.update_form(**JANE)
    wf.request_submit()
    wf.acknowledge_rules(PHRASE)

    state = await wf.submit()

    assert state == WorkflowState.SUCCEEDED
    assert wf.notices == [EMAIL_FAILED_NOTICE]
    assert len(messenger.calls) == 1
    assert wf.booking_id is not None


class RecordingGateway:
    def __init__(self):
        self.calls = []

    async def create_booking(self, data):
        self.calls.append(data)
        return BookingOutcome(success=True)


def test_overlong_phone_is_rejected_locally():
    gateway = FailingGateway()
    wf = workflow(gateway)
    wf.update_form(**{**JANE, "phone": "+" + "1" * 61})

    assert not wf.request_submit()
    assert wf.state == WorkflowState.EDITING
    assert wf.error == "Phone must be at most 50 characters."
    assert gateway.calls == []


async def test_long_car_name_fits_service_type():
    gateway = RecordingGateway()
    car = CarSnapshot(**{**CAR.__dict__, "make": "M" * 60, "model": "X" * 60})
    wf = workflow(gateway, car=car)
    wf.update_form(**JANE)
    wf.request_submit()
    wf.acknowledge_rules(PHRASE)

    assert await wf.submit() == WorkflowState.SUCCEEDED
    assert len(gateway.calls[0].service_type) == 100


async def test_request_the_gateway_would_reject_ends_failed():
    gateway = RecordingGateway()
    wf = workflow(gateway, car=CarSnapshot(**{**CAR.__dict__, "daily_rate": Decimal("-45")}))
    wf.update_form(**JANE)
    wf.request_submit()
    wf.acknowledge_rules(PHRASE)

    state = await wf.submit()

    assert state == WorkflowState.FAILED
    assert wf.error == "The booking details are invalid. Please check the form."
    assert gateway.calls == []
    assert wf.form.email == "jane@x.com"


def test_mixed_timezones_are_compared_in_utc():
    wf = workflow()
    wf.update_form(**{**JANE, "pickup_date": datetime(2025, 1, 15, 10, tzinfo=timezone.utc), "return_date": T0})

    assert not wf.request_submit()
    assert wf.error == "Return date must be after the pickup date."

    casablanca = timezone(timedelta(hours=1))
    wf.update_form(pickup_date=datetime(2025, 1, 15, 10, tzinfo=casablanca))

    assert wf.form.pickup_date == datetime(2025, 1, 15, 9)
    assert wf.request_submit()
