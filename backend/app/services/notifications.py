"""
Saifauto - Notification senders

Confirmation email to the customer (Resend) and booking notice to staff
(Twilio, WhatsApp channel). Neither sender retries; failures are logged and
reported through SendResult.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from html import escape
from typing import Optional, Union

import httpx

from app.core.config import get_settings
from app.services.results import SendResult

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
TWILIO_API_URL = "https://api.twilio.com/2010-04-01"
HTTP_TIMEOUT = 10.0

EMAIL_SUBJECT = "Confirmation de Réservation - Saifauto"
CONTACT_PHONE = "+212 660-513878"
CONTACT_EMAIL = "contact@saifauto.ma"

FRENCH_MONTHS = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)


class MissingConfigurationError(Exception):
    """Raised when a sender is requested without its provider settings."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        super().__init__(
            f"Server configuration error: Missing environment variables: {', '.join(missing)}"
        )


@dataclass(frozen=True)
class EmailConfig:
    api_key: str
    sender: str


@dataclass(frozen=True)
class MessagingConfig:
    account_sid: str
    auth_token: str
    from_number: str
    to_number: Optional[str] = None


def french_long_date(value: Union[datetime, str]) -> str:
    """Format a date the way fr-FR "long" style does: 15 janvier 2025."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return f"{value.day} {FRENCH_MONTHS[value.month - 1]} {value.year}"


def _json_body(response: httpx.Response) -> Optional[dict]:
    """Decoded JSON object of a provider response, or None when the body is not one."""
    try:
        data = response.json()
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _paragraph(text: str) -> str:
    return f'<p style="margin: 5px 0;">{text}</p>'


def _section(title: str, body: str) -> str:
    return (
        '<div style="background-color: #f8f8f8; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        f'<h2 style="color: #1a1a1a; font-size: 18px; margin-bottom: 15px;">{title}</h2>'
        f"{body}</div>"
    )


class ConfirmationEmailSender:
    """Sends the booking confirmation email through Resend."""

    def __init__(self, config: EmailConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport

    def render_confirmation_html(
        self,
        customer_name: str,
        make: str,
        model: str,
        pickup_date: Union[datetime, str],
        return_date: Union[datetime, str],
        year: Optional[Union[int, str]] = None,
        license_plate: Optional[str] = None,
        pickup_location: Optional[str] = None,
        total_price: Optional[Decimal] = None,
        email: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> str:
        """Render the French confirmation template. Every value is HTML-escaped."""
        vehicle = " ".join(str(part) for part in (make, model, year) if part)
        car_lines = _paragraph(f"Véhicule: {escape(vehicle)}")
        if license_plate:
            car_lines += _paragraph(f"Plaque d'immatriculation: {escape(license_plate)}")

        booking_lines = _paragraph(f"Date de prise en charge: {french_long_date(pickup_date)}")
        booking_lines += _paragraph(f"Date de retour: {french_long_date(return_date)}")
        if pickup_location:
            booking_lines += _paragraph(f"Lieu de prise en charge: {escape(pickup_location)}")
        if total_price:
            booking_lines += _paragraph(f"Prix total: {escape(str(total_price))} {get_settings().currency}")

        contact_lines = _paragraph(f"Email: {escape(email or '')}")
        if phone:
            contact_lines += _paragraph(f"Téléphone: {escape(phone)}")

        return (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
            '<h1 style="color: #1a1a1a; text-align: center; margin-bottom: 30px;">Confirmation de Réservation</h1>'
            f'<p style="color: #333;">Cher/Chère {escape(customer_name)},</p>'
            '<p style="color: #333;">Nous vous remercions d\'avoir choisi Saifauto. '
            "Votre réservation a été confirmée avec succès.</p>"
            f"{_section('Détails de la Voiture', car_lines)}"
            f"{_section('Détails de la Réservation', booking_lines)}"
            f"{_section('Vos Coordonnées', contact_lines)}"
            '<p style="color: #333; margin-top: 30px;">Pour toute question ou modification de votre '
            "réservation, n'hésitez pas à nous contacter :</p>"
            '<ul style="color: #333;">'
            f"<li>Téléphone: {CONTACT_PHONE}</li>"
            f"<li>Email: {CONTACT_EMAIL}</li>"
            "</ul>"
            '<p style="color: #666; font-size: 12px; margin-top: 40px; text-align: center;">'
            "Ceci est un email automatique, merci de ne pas y répondre directement.</p>"
            "</div>"
        )

    async def send_confirmation(self, to: str, customer_name: str, **details) -> SendResult:
        """Render and send the confirmation email to one recipient."""
        html = self.render_confirmation_html(customer_name, email=to, **details)
        payload = {
            "from": self.config.sender,
            "to": [to],
            "subject": EMAIL_SUBJECT,
            "html": html,
        }

        try:
            async with httpx.AsyncClient(transport=self.transport) as client:
                response = await client.post(
                    RESEND_API_URL,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.config.api_key}"},
                    timeout=HTTP_TIMEOUT,
                )
        except httpx.HTTPError as e:
            logger.error(f"[EMAIL] Send error: {e}")
            return SendResult(success=False, error="Failed to send email")

        if response.status_code not in (200, 201):
            logger.warning(f"[EMAIL] Send failed: {response.status_code} {response.text}")
            return SendResult(success=False, error="Failed to send email")

        data = _json_body(response)
        if data is None:
            logger.warning(f"[EMAIL] Unreadable provider response: {response.text[:200]}")
            return SendResult(success=False, error="Failed to send email")

        logger.info(f"[EMAIL] Confirmation sent: {data.get('id')}")
        return SendResult(success=True, data=data)


class StaffMessenger:
    """Twilio bridge for the staff WhatsApp channel."""

    def __init__(self, config: MessagingConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport

    @property
    def messages_url(self) -> str:
        return f"{TWILIO_API_URL}/Accounts/{self.config.account_sid}/Messages.json"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self.transport,
            auth=(self.config.account_sid, self.config.auth_token),
        )

    @staticmethod
    def compose_booking_message(
        name: str,
        phone: str,
        booking_date: Union[datetime, str],
        service_type: str,
        return_date: Optional[Union[datetime, str]] = None,
    ) -> str:
        lines = [
            "📝 New Booking Request:",
            f"👤 Name: {name}",
            f"📞 Phone: {phone}",
            f"📅 Date: {booking_date}",
        ]
        if return_date:
            lines.append(f"📅 Return: {return_date}")
        lines.append(f"🔧 Service: {service_type}")
        return "\n".join(lines)

    async def send_booking_notice(self, **fields) -> SendResult:
        """Send the booking notice to the fixed staff recipient."""
        if not self.config.to_number:
            return SendResult(success=False, error="No staff recipient configured")

        body = self.compose_booking_message(**fields)
        try:
            async with self._client() as client:
                response = await client.post(
                    self.messages_url,
                    data={
                        "From": self.config.from_number,
                        "To": self.config.to_number,
                        "Body": body,
                    },
                    timeout=HTTP_TIMEOUT,
                )
        except httpx.HTTPError as e:
            logger.error(f"[TWILIO] Send error: {e}")
            return SendResult(success=False, error=str(e))

        data = _json_body(response)
        if response.status_code not in (200, 201):
            logger.warning(f"[TWILIO] Send failed: {response.status_code} {response.text[:200]}")
            return SendResult(success=False, error=(data or {}).get("message") or "Failed to send message")

        if data is None:
            logger.warning(f"[TWILIO] Unreadable provider response: {response.text[:200]}")
            return SendResult(success=False, error="Failed to send message")

        logger.info(f"[TWILIO] Booking notice sent: {data.get('sid')}")
        return SendResult(success=True, sid=data.get("sid"), data=data)

    async def list_messages(self, limit: int = 50) -> list[dict]:
        """Recent messages sent from or to the business WhatsApp number.

        Raises httpx.HTTPError when Twilio is unreachable or answers an error.
        """
        async with self._client() as client:
            response = await client.get(
                self.messages_url,
                params={"PageSize": limit},
                timeout=HTTP_TIMEOUT,
            )
            response.raise_for_status()

        data = _json_body(response)
        if data is None:
            raise httpx.DecodingError("Unreadable Twilio messages response", request=response.request)

        number = self.config.from_number
        return [
            {
                "sid": msg.get("sid"),
                "body": msg.get("body"),
                "status": msg.get("status"),
                "dateSent": msg.get("date_sent"),
                "direction": msg.get("direction"),
                "from": msg.get("from"),
                "to": msg.get("to"),
                "errorCode": msg.get("error_code"),
                "errorMessage": msg.get("error_message"),
            }
            for msg in data.get("messages", [])
            if msg.get("from") == number or msg.get("to") == number
        ]


def get_email_sender() -> ConfirmationEmailSender:
    """Build the email sender from settings; raises MissingConfigurationError."""
    settings = get_settings()
    missing = settings.missing("resend_api_key")
    if missing:
        raise MissingConfigurationError(missing)
    return ConfirmationEmailSender(EmailConfig(api_key=settings.resend_api_key, sender=settings.email_from))


def get_staff_messenger() -> StaffMessenger:
    """Build the Twilio sender from settings; raises MissingConfigurationError."""
    settings = get_settings()
    missing = settings.missing("twilio_account_sid", "twilio_auth_token", "twilio_whatsapp_from")
    if missing:
        raise MissingConfigurationError(missing)
    return StaffMessenger(MessagingConfig(
        account_sid=settings.twilio_account_sid,
        auth_token=settings.twilio_auth_token,
        from_number=settings.twilio_whatsapp_from,
        to_number=settings.twilio_to_number,
    ))


def optional_email_sender() -> Optional[ConfirmationEmailSender]:
    """Email sender for flows where a missing provider must not block the booking."""
    try:
        return get_email_sender()
    except MissingConfigurationError as e:
        logger.warning(f"[EMAIL] {e}")
        return None


def optional_staff_messenger() -> Optional[StaffMessenger]:
    try:
        return get_staff_messenger()
    except MissingConfigurationError as e:
        logger.warning(f"[TWILIO] {e}")
        return None
