import json
from datetime import datetime
from decimal import Decimal
from urllib.parse import parse_qs

import httpx
import pytest

from app.services.notifications import (
    EMAIL_SUBJECT,
    RESEND_API_URL,
    ConfirmationEmailSender,
    EmailConfig,
    MessagingConfig,
    MissingConfigurationError,
    StaffMessenger,
    french_long_date,
    get_email_sender,
    get_staff_messenger,
)

WHATSAPP_FROM = "whatsapp:+14155238886"
STAFF = "whatsapp:+212660513878"


def email_sender(handler) -> ConfirmationEmailSender:
    return ConfirmationEmailSender(
        EmailConfig(api_key="re_test", sender="Saifauto <reservations@saifauto.ma>"),
        transport=httpx.MockTransport(handler),
    )


def messenger(handler, to_number=STAFF) -> StaffMessenger:
    return StaffMessenger(
        MessagingConfig(account_sid="AC123", auth_token="secret", from_number=WHATSAPP_FROM, to_number=to_number),
        transport=httpx.MockTransport(handler),
    )


CONFIRMATION = {
    "to": "jane@x.com",
    "customer_name": "Jane <Doe>",
    "make": "Dacia",
    "model": "Logan",
    "year": 2023,
    "license_plate": "12345-A-6",
    "pickup_date": datetime(2025, 1, 15),
    "return_date": datetime(2025, 2, 1),
    "pickup_location": "Airport",
    "total_price": Decimal("135"),
    "phone": "+1555",
}


def test_french_long_date():
    assert french_long_date(datetime(2025, 1, 15)) == "15 janvier 2025"
    assert french_long_date("2025-08-03T10:00:00Z") == "3 août 2025"


async def test_confirmation_email_is_posted_to_resend():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"id": "email-42"})

    result = await email_sender(handler).send_confirmation(**CONFIRMATION)

    assert result.success
    assert result.data == {"id": "email-42"}
    request = requests[0]
    assert str(request.url) == RESEND_API_URL
    assert request.headers["Authorization"] == "Bearer re_test"
    payload = json.loads(request.content)
    assert payload["to"] == ["jane@x.com"]
    assert payload["subject"] == EMAIL_SUBJECT
    assert "15 janvier 2025" in payload["html"]
    assert "1 février 2025" in payload["html"]
    assert "135 MAD" in payload["html"]
    assert "Jane &lt;Doe&gt;" in payload["html"]


async def test_confirmation_email_provider_error():
    result = await email_sender(lambda request: httpx.Response(422, json={"message": "bad"})).send_confirmation(
        **CONFIRMATION
    )

    assert not result.success
    assert result.error == "Failed to send email"


async def test_email_without_optional_details():
    html = email_sender(lambda request: httpx.Response(200)).render_confirmation_html(
        "Jane", "Dacia", "Logan", datetime(2025, 1, 15), datetime(2025, 1, 16)
    )

    assert "Plaque" not in html
    assert "Prix total" not in html


async def test_booking_notice_is_sent_to_staff():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(201, json={"sid": "SM999"})

    result = await messenger(handler).send_booking_notice(
        name="Jane Doe",
        phone="+1555",
        booking_date="2025-01-15",
        return_date="2025-01-17",
        service_type="Car rental: Dacia Logan",
    )

    assert result.success
    assert result.sid == "SM999"
    form = parse_qs(requests[0].content.decode())
    assert form["From"] == [WHATSAPP_FROM]
    assert form["To"] == [STAFF]
    assert "📝 New Booking Request:" in form["Body"][0]
    assert "👤 Name: Jane Doe" in form["Body"][0]
    assert requests[0].url.path == "/2010-04-01/Accounts/AC123/Messages.json"


async def test_booking_notice_failure_is_reported():
    result = await messenger(
        lambda request: httpx.Response(400, json={"message": "Invalid 'To' Phone Number"})
    ).send_booking_notice(name="Jane", phone="+1", booking_date="2025-01-15", service_type="Rental")

    assert not result.success
    assert result.error == "Invalid 'To' Phone Number"


async def test_list_messages_keeps_whatsapp_conversation():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["PageSize"] == "50"
        return httpx.Response(200, json={"messages": [
            {"sid": "SM1", "body": "hi", "from": WHATSAPP_FROM, "to": STAFF, "date_sent": "Wed, 15 Jan 2025"},
            {"sid": "SM2", "body": "sms", "from": "+100", "to": "+200"},
            {"sid": "SM3", "body": "reply", "from": STAFF, "to": WHATSAPP_FROM, "error_code": None},
        ]})

    messages = await messenger(handler).list_messages()

    assert [m["sid"] for m in messages] == ["SM1", "SM3"]
    assert messages[0]["dateSent"] == "Wed, 15 Jan 2025"
    assert set(messages[0]) == {
        "sid", "body", "status", "dateSent", "direction", "from", "to", "errorCode", "errorMessage",
    }


async def test_list_messages_raises_on_provider_error():
    with pytest.raises(httpx.HTTPStatusError):
        await messenger(lambda request: httpx.Response(401)).list_messages()


def test_factories_name_missing_variables():
    with pytest.raises(MissingConfigurationError) as exc:
        get_email_sender()
    assert exc.value.missing == ["RESEND_API_KEY"]

    with pytest.raises(MissingConfigurationError) as exc:
        get_staff_messenger()
    assert "TWILIO_ACCOUNT_SID" in str(exc.value)


async def test_booking_notice_with_html_error_page():
    result = await messenger(
        lambda request: httpx.Response(502, text="<html>Bad Gateway</html>")
    ).send_booking_notice(name="Jane", phone="+1", booking_date="2025-01-15", service_type="Rental")

    assert not result.success
    assert result.error == "Failed to send message"


async def test_booking_notice_with_unreadable_success_body():
    result = await messenger(lambda request: httpx.Response(201, text="queued")).send_booking_notice(
        name="Jane", phone="+1", booking_date="2025-01-15", service_type="Rental"
    )

    assert not result.success
    assert result.sid is None


async def test_confirmation_email_with_unreadable_body():
    result = await email_sender(lambda request: httpx.Response(200, text="ok")).send_confirmation(**CONFIRMATION)

    assert not result.success
    assert result.error == "Failed to send email"


async def test_list_messages_with_unreadable_body():
    with pytest.raises(httpx.HTTPError):
        await messenger(lambda request: httpx.Response(200, text="<html></html>")).list_messages()
