from sqlalchemy import func, select

from app.main import app
from app.models import Booking, Client
from app.models.enums import BookingSource
from app.services.notifications import get_email_sender, get_staff_messenger, optional_email_sender
from app.services.results import SendResult

from tests.conftest import PUBLIC_BASE, RecordingMessenger

FORM = {
    "first_name": "Jane",
    "last_name": "Doe",
    "email": "jane@x.com",
    "phone": "+1555",
    "pickup_location": "Airport",
    "pickup_date": "2025-01-15T10:00:00",
    "return_date": "2025-01-17T10:00:00",
    "rules_confirmation": "I accept the rental rules",
}


async def count(session_factory, model) -> int:
    async with session_factory() as session:
        return (await session.execute(select(func.count(model.id)))).scalar_one()


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_public_car_listing_and_detail(client, make_car):
    car_id = await make_car(images=[f"{PUBLIC_BASE}/car-images/a.jpg"])

    listing = await client.get("/api/cars")
    detail = await client.get(f"/api/cars/{car_id}")
    missing = await client.get("/api/cars/999")

    assert listing.status_code == 200
    assert listing.json()["total"] == 1
    assert detail.json()["license_plate"] == "12345-A-6"
    assert missing.status_code == 404


async def test_search_returns_cards(client, make_car):
    await make_car(images=[f"{PUBLIC_BASE}/car-images/a.jpg"])

    response = await client.get(
        "/api/search",
        params={"destination": "Casablanca", "pickupDateTime": "2025-05-01T10:00", "dropoffDateTime": "2025-05-03T10:00"},
    )

    assert response.status_code == 200
    card = response.json()[0]
    assert card["name"] == "Dacia Logan"
    assert card["image_url"] == f"{PUBLIC_BASE}/car-images/a.jpg"


async def test_booking_api_creates_booking(client, make_car, session_factory):
    car_id = await make_car()

    response = await client.post("/api/bookings", json={
        "first_name": "Jane",
        "last_name": "Doe",
        "email": "jane@x.com",
        "phone": "+1555",
        "pickup_location": "Airport",
        "dropoff_location": "Airport",
        "start_date": "2025-01-15T10:00:00",
        "end_date": "2025-01-17T10:00:00",
        "car_id": car_id,
    })

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert await count(session_factory, Booking) == 1
    assert await count(session_factory, Client) == 1


async def test_booking_api_failures_answer_500(client, make_car):
    car_id = await make_car()
    body = {
        "first_name": "Jane",
        "email": "jane@x.com",
        "phone": "+1555",
        "start_date": "2025-01-15T10:00:00",
        "end_date": "2025-01-17T10:00:00",
        "car_id": car_id,
    }

    first = await client.post("/api/bookings", json=body)
    overlap = await client.post("/api/bookings", json=body)
    unknown = await client.post("/api/bookings", json={**body, "car_id": 999})

    assert first.status_code == 200
    assert overlap.status_code == 500
    assert overlap.json() == {"error": "This car is already booked for the selected dates."}
    assert unknown.status_code == 500
    assert unknown.json() == {"error": "Car not found"}


async def test_booking_api_rejects_inverted_dates(client, make_car):
    car_id = await make_car()

    response = await client.post("/api/bookings", json={
        "first_name": "Jane",
        "email": "jane@x.com",
        "phone": "+1555",
        "start_date": "2025-01-17T10:00:00",
        "end_date": "2025-01-15T10:00:00",
        "car_id": car_id,
    })

    assert response.status_code == 422


async def test_booking_form_submission(client, make_car, email_sender, messenger, session_factory):
    car_id = await make_car()

    response = await client.post(f"/api/cars/{car_id}/book", json=FORM)

    assert response.status_code == 201
    body = response.json()
    assert body["state"] == "succeeded"
    assert body["redirect_url"].startswith("/confirmation?firstName=Jane&lastName=Doe&")
    assert body["notices"] == []
    assert len(email_sender.calls) == 1
    assert len(messenger.calls) == 1
    assert await count(session_factory, Booking) == 1


async def test_booking_form_validation_error(client, make_car, email_sender, session_factory):
    car_id = await make_car()

    response = await client.post(f"/api/cars/{car_id}/book", json={**FORM, "email": "not-an-email"})

    assert response.status_code == 422
    assert response.json() == {"error": "Please enter a valid email address."}
    assert email_sender.calls == []
    assert await count(session_factory, Booking) == 0


async def test_booking_form_wrong_phrase(client, make_car, session_factory):
    car_id = await make_car()

    response = await client.post(f"/api/cars/{car_id}/book", json={**FORM, "rules_confirmation": "yes"})

    assert response.status_code == 400
    assert await count(session_factory, Booking) == 0


async def test_booking_form_rejects_overlong_phone(client, make_car, session_factory):
    car_id = await make_car()

    response = await client.post(f"/api/cars/{car_id}/book", json={**FORM, "phone": "+" + "1" * 61})

    assert response.status_code == 422
    assert await count(session_factory, Booking) == 0


async def test_booking_form_with_mixed_timezones(client, make_car):
    car_id = await make_car()

    response = await client.post(
        f"/api/cars/{car_id}/book", json={**FORM, "pickup_date": "2025-01-15T10:00:00Z"}
    )

    assert response.status_code == 201
    assert "duration=2+days" in response.json()["redirect_url"]


async def test_booking_form_unknown_car(client):
    response = await client.post("/api/cars/999/book", json=FORM)

    assert response.status_code == 404


async def test_booking_form_overlap_fails(client, make_car, email_sender):
    car_id = await make_car()
    await client.post(f"/api/cars/{car_id}/book", json=FORM)
    email_sender.calls.clear()

    response = await client.post(f"/api/cars/{car_id}/book", json=FORM)

    assert response.status_code == 500
    assert response.json() == {"error": "This car is already booked for the selected dates."}
    assert email_sender.calls == []


async def test_booking_form_without_email_provider_adds_notice(client, make_car):
    app.dependency_overrides[optional_email_sender] = lambda: None
    car_id = await make_car()

    response = await client.post(f"/api/cars/{car_id}/book", json=FORM)

    assert response.status_code == 201
    assert len(response.json()["notices"]) == 1


async def test_send_booking_missing_fields(client):
    app.dependency_overrides[get_staff_messenger] = lambda: RecordingMessenger()

    response = await client.post("/api/sendBooking", json={"name": "Jane"})

    assert response.status_code == 400
    assert response.json() == {"error": "Missing required fields for the booking message"}


async def test_send_booking_records_message_booking(client, session_factory):
    sent = RecordingMessenger()
    app.dependency_overrides[get_staff_messenger] = lambda: sent

    response = await client.post("/api/sendBooking", json={
        "name": "Youssef",
        "phone": "+212600000000",
        "bookingDate": "2025-02-01T09:00:00",
        "returnDate": "2025-02-03T09:00:00",
        "serviceType": "Airport transfer",
    })

    assert response.status_code == 200
    assert response.json() == {"success": True, "sid": "SM123"}
    assert sent.calls[0]["name"] == "Youssef"
    async with session_factory() as session:
        booking = (await session.execute(select(Booking))).scalar_one()
    assert booking.source == BookingSource.MESSAGE
    assert booking.first_name == "Youssef"


async def test_send_booking_without_twilio_config(client):
    response = await client.post("/api/sendBooking", json={"name": "Jane"})

    assert response.status_code == 500
    assert response.json()["error"].startswith("Server configuration error: Missing environment variables:")
    assert "TWILIO_ACCOUNT_SID" in response.json()["error"]


async def test_send_confirmation_email_without_api_key(client):
    response = await client.post("/api/send-confirmation-email", json={
        "customerName": "Jane Doe",
        "carDetails": {"make": "Dacia", "model": "Logan"},
        "bookingDetails": {"pickupDate": "2025-01-15", "returnDate": "2025-01-17"},
        "customerDetails": {"email": "jane@x.com"},
    })

    assert response.status_code == 500
    assert "RESEND_API_KEY" in response.json()["error"]


async def test_send_confirmation_email(client):
    sender = FakeResend()
    app.dependency_overrides[get_email_sender] = lambda: sender

    response = await client.post("/api/send-confirmation-email", json={
        "customerName": "Jane Doe",
        "carDetails": {"make": "Dacia", "model": "Logan", "year": 2023, "licensePlate": "12345-A-6"},
        "bookingDetails": {"pickupDate": "2025-01-15", "returnDate": "2025-01-17", "totalPrice": 90},
        "customerDetails": {"email": "jane@x.com", "phone": "+1555"},
    })

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"id": "email-1"}}
    assert sender.calls[0]["license_plate"] == "12345-A-6"


async def test_confirmation_page(client):
    response = await client.get("/confirmation", params={"firstName": "Jane", "lastName": "Doe", "totalPrice": "90"})
    data = await client.get("/api/confirmation", params={"firstName": "Jane", "totalPrice": "90"})

    assert response.status_code == 200
    assert "Print Confirmation" in response.text
    assert "Jane Doe" in response.text
    assert data.json() == {"name": "Jane", "total_amount": "90 MAD"}


async def test_confirmation_page_with_mixed_timezones(client):
    response = await client.get(
        "/confirmation", params={"pickupDate": "2025-01-01T00:00:00Z", "returnDate": "2025-01-03"}
    )

    assert response.status_code == 200
    assert "2 days" in response.text


# Dashboard


async def test_dashboard_car_crud(client):
    created = await client.post("/api/dashboard/cars", json={
        "make": "Renault",
        "model": "Clio",
        "license_plate": "777-C-7",
        "daily_rate": "35.00",
    })
    duplicate = await client.post("/api/dashboard/cars", json={
        "make": "Peugeot",
        "model": "208",
        "license_plate": "777-C-7",
        "daily_rate": "40.00",
    })
    car_id = created.json()["id"]
    updated = await client.patch(f"/api/dashboard/cars/{car_id}", json={"status": "Maintenance"})

    assert created.status_code == 201
    assert duplicate.status_code == 409
    assert duplicate.json()["detail"] == "A car with this license plate already exists."
    assert updated.json()["status"] == "Maintenance"


async def test_dashboard_delete_car_reports_image_failures(client, make_car, storage_provider):
    storage_provider.failing = {"car-images/b.jpg"}
    car_id = await make_car(images=[f"{PUBLIC_BASE}/car-images/a.jpg", f"{PUBLIC_BASE}/car-images/b.jpg"])

    response = await client.delete(f"/api/dashboard/cars/{car_id}")

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert "car-images/b.jpg" in response.json()["image_deletion_error"]
    assert len(storage_provider.deleted) == 2
    assert (await client.get(f"/api/dashboard/cars/{car_id}")).status_code == 404


async def test_dashboard_image_upload_url(client):
    response = await client.post("/api/dashboard/cars/images/upload-url", json={
        "file_name": "front.JPG",
        "mime_type": "image/jpeg",
        "file_size_bytes": 1024,
    })
    rejected = await client.post("/api/dashboard/cars/images/upload-url", json={
        "file_name": "notes.pdf",
        "mime_type": "application/pdf",
        "file_size_bytes": 1024,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["object_path"].startswith("car-images/")
    assert body["object_path"].endswith(".jpg")
    assert body["public_url"] == f"{PUBLIC_BASE}/{body['object_path']}"
    assert rejected.status_code == 400


async def test_dashboard_bookings_flow(client, make_car):
    car_id = await make_car()
    await client.post(f"/api/cars/{car_id}/book", json=FORM)

    bookings = (await client.get("/api/dashboard/bookings")).json()
    booking_id = bookings[0]["id"]
    updated = await client.patch(f"/api/dashboard/bookings/{booking_id}/status", json={"status": "Active"})
    stats = (await client.get("/api/dashboard/stats")).json()
    calendar = (await client.get(
        "/api/dashboard/calendar", params={"start": "2025-01-01T00:00:00", "end": "2025-01-31T00:00:00"}
    )).json()
    contract = await client.get(f"/api/dashboard/bookings/{booking_id}/contract")

    assert bookings[0]["client"]["name"] == "Jane Doe"
    assert updated.json()["status"] == "Active"
    assert stats["active_bookings"] == 1
    assert calendar[0]["title"] == "Booking: Jane Doe - Dacia Logan"
    assert contract.status_code == 200
    assert contract.headers["content-type"] == "application/pdf"
    assert contract.content.startswith(b"%PDF")


async def test_dashboard_clients(client, make_car):
    car_id = await make_car()
    await client.post(f"/api/cars/{car_id}/book", json=FORM)

    clients = (await client.get("/api/dashboard/clients")).json()
    client_id = clients[0]["id"]
    updated = await client.patch(f"/api/dashboard/clients/{client_id}", json={"phone": "+1666"})
    deleted = await client.delete(f"/api/dashboard/clients/{client_id}")

    assert clients[0]["booking_count"] == 1
    assert updated.json()["phone"] == "+1666"
    assert deleted.status_code == 204
    assert (await client.get(f"/api/dashboard/clients/{client_id}")).status_code == 404


class FakeResend:
    def __init__(self):
        self.calls = []

    async def send_confirmation(self, **kwargs):
        self.calls.append(kwargs)
        return SendResult(success=True, data={"id": "email-1"})
