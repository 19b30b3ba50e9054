"""Confirmation page: a stateless display model rebuilt from query parameters."""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from html import escape
from typing import Mapping, Optional
from urllib.parse import urlencode

from app.core.config import get_settings
from app.schemas.base import naive_utc

CONFIRMATION_PATH = "/confirmation"


def build_confirmation_query(**params) -> str:
    """Encode the snapshot handed to the confirmation page. Empty values are dropped."""
    return urlencode({key: str(value) for key, value in params.items() if value not in (None, "")})


def confirmation_url(**params) -> str:
    query = build_confirmation_query(**params)
    return f"{CONFIRMATION_PATH}?{query}" if query else CONFIRMATION_PATH


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return naive_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


@dataclass
class ConfirmationView:
    """What the confirmation page shows. Fields left as None are not rendered."""

    booking_id: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    license_number: Optional[str] = None
    car_make: Optional[str] = None
    car_model: Optional[str] = None
    car_year: Optional[str] = None
    car_color: Optional[str] = None
    car_license_plate: Optional[str] = None
    car_category: Optional[str] = None
    car_features: list[str] = field(default_factory=list)
    pickup_date: Optional[str] = None
    pickup_time: Optional[str] = None
    return_date: Optional[str] = None
    return_time: Optional[str] = None
    pickup_location: Optional[str] = None
    return_location: Optional[str] = None
    duration: Optional[str] = None
    total_amount: Optional[str] = None
    payment_method: Optional[str] = None

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "ConfirmationView":
        def get(key: str) -> Optional[str]:
            value = params.get(key)
            return value.strip() if value and value.strip() else None

        first_name, last_name = get("firstName"), get("lastName")
        name = f"{first_name} {last_name}" if first_name and last_name else first_name

        car_make, car_model = get("carMake"), get("carModel")
        if not car_make and get("car"):
            car_make, _, rest = get("car").partition(" ")
            car_model = car_model or rest or None

        features = [item.strip() for item in (get("carFeatures") or "").split(",") if item.strip()]

        duration = get("duration")
        if duration is None:
            pickup, dropoff = _parse_date(get("pickupDate")), _parse_date(get("returnDate"))
            if pickup and dropoff and dropoff > pickup:
                days = math.ceil((dropoff - pickup).total_seconds() / 86400)
                duration = f"{days} days"

        total_price = get("totalPrice")

        return cls(
            booking_id=get("bookingId"),
            name=name,
            email=get("email"),
            phone=get("phone"),
            license_number=get("licenseNumber"),
            car_make=car_make,
            car_model=car_model,
            car_year=get("carYear"),
            car_color=get("carColor"),
            car_license_plate=get("carLicensePlate"),
            car_category=get("carCategory"),
            car_features=features,
            pickup_date=get("pickupDate"),
            pickup_time=get("pickupTime"),
            return_date=get("returnDate"),
            return_time=get("returnTime"),
            pickup_location=get("pickupLocation"),
            return_location=get("returnLocation"),
            duration=duration,
            total_amount=f"{total_price} {get_settings().currency}" if total_price else None,
            payment_method=get("paymentMethod"),
        )

    @property
    def car_name(self) -> Optional[str]:
        parts = [part for part in (self.car_make, self.car_model) if part]
        return " ".join(parts) or None

    def to_dict(self) -> dict:
        """Present fields only."""
        return {key: value for key, value in asdict(self).items() if value not in (None, [])}


PAGE_STYLE = """
body { font-family: Arial, sans-serif; background: #f5f5f5; color: #1a1a1a; margin: 0; }
main { max-width: 720px; margin: 40px auto; background: #fff; padding: 32px; border-radius: 8px; }
h1 { text-align: center; }
section { margin-top: 24px; }
dl { display: grid; grid-template-columns: 180px 1fr; gap: 6px 12px; }
dt { color: #666; }
.actions { text-align: center; margin-top: 32px; }
@media print { .actions { display: none; } body { background: #fff; } }
"""


def _rows(pairs: list[tuple[str, Optional[str]]]) -> str:
    return "".join(
        f"<dt>{escape(label)}</dt><dd>{escape(value)}</dd>" for label, value in pairs if value
    )


def _section(title: str, pairs: list[tuple[str, Optional[str]]]) -> str:
    rows = _rows(pairs)
    if not rows:
        return ""
    return f"<section><h2>{escape(title)}</h2><dl>{rows}</dl></section>"


def render_confirmation_page(view: ConfirmationView) -> str:
    """HTML confirmation page with a print button."""
    pickup = " ".join(part for part in (view.pickup_date, view.pickup_time) if part) or None
    dropoff = " ".join(part for part in (view.return_date, view.return_time) if part) or None

    sections = [
        _section("Customer", [
            ("Name", view.name),
            ("Email", view.email),
            ("Phone", view.phone),
            ("License number", view.license_number),
        ]),
        _section("Vehicle", [
            ("Car", view.car_name),
            ("Year", view.car_year),
            ("Color", view.car_color),
            ("License plate", view.car_license_plate),
            ("Category", view.car_category),
            ("Features", ", ".join(view.car_features) or None),
        ]),
        _section("Rental", [
            ("Pickup", pickup),
            ("Return", dropoff),
            ("Pickup location", view.pickup_location),
            ("Return location", view.return_location),
            ("Duration", view.duration),
            ("Total", view.total_amount),
            ("Payment method", view.payment_method),
        ]),
    ]

    reference = ""
    if view.booking_id:
        reference = f"<p>Booking reference: <strong>{escape(view.booking_id)}</strong></p>"

    return (
        "<!DOCTYPE html>"
        '<html lang="en"><head><meta charset="utf-8">'
        "<title>Booking Confirmation - Saifauto</title>"
        f"<style>{PAGE_STYLE}</style></head>"
        "<body><main>"
        "<h1>Booking Confirmed</h1>"
        f"{reference}"
        f"{''.join(sections)}"
        '<div class="actions">'
        '<button type="button" onclick="window.print()">Print Confirmation</button>'
        "</div>"
        "</main></body></html>"
    )
