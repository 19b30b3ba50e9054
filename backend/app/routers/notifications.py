"""Notifications router - confirmation email, staff booking message, WhatsApp log."""

import logging

import httpx
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import AuthenticatedUser, require_staff
from app.models.enums import BookingSource
from app.schemas.booking import BookingCreate
from app.schemas.notifications import ConfirmationEmailRequest, StaffMessageRequest
from app.services.bookings import BookingService
from app.services.notifications import (
    ConfirmationEmailSender,
    MissingConfigurationError,
    StaffMessenger,
    get_email_sender,
    get_staff_messenger,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])


@router.post("/send-confirmation-email")
async def send_confirmation_email(
    data: ConfirmationEmailRequest,
    sender: ConfirmationEmailSender = Depends(get_email_sender),
):
    """Send the booking confirmation email to the customer."""
    car, booking, customer = data.car_details, data.booking_details, data.customer_details
    result = await sender.send_confirmation(
        to=customer.email,
        customer_name=data.customer_name,
        make=car.make,
        model=car.model,
        year=car.year,
        license_plate=car.license_plate,
        pickup_date=booking.pickup_date,
        return_date=booking.return_date,
        pickup_location=booking.pickup_location,
        total_price=booking.total_price,
        phone=customer.phone,
    )
    if not result.success:
        return JSONResponse({"error": result.error}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return {"success": True, "data": result.data}


@router.post("/sendBooking")
async def send_booking_message(
    data: StaffMessageRequest,
    db: AsyncSession = Depends(get_db),
    messenger: StaffMessenger = Depends(get_staff_messenger),
):
    """Notify staff of a booking request and record it as a booking."""
    if not messenger.config.to_number:
        raise MissingConfigurationError(["TWILIO_TO_NUMBER"])

    if data.missing_fields():
        return JSONResponse(
            {"error": "Missing required fields for the booking message"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    try:
        booking = BookingCreate(
            name=data.name,
            phone=data.phone,
            start_date=data.booking_date,
            end_date=data.return_date,
            service_type=data.service_type,
            source=BookingSource.MESSAGE,
        )
    except ValidationError:
        return JSONResponse(
            {"error": "Return date must be after the booking date"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    result = await messenger.send_booking_notice(
        name=data.name,
        phone=data.phone,
        booking_date=data.booking_date.isoformat(),
        return_date=data.return_date.isoformat(),
        service_type=data.service_type,
    )
    if not result.success:
        return JSONResponse({"error": result.error}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    outcome = await BookingService(db).create_booking(booking)
    if not outcome.success:
        logger.error(f"[TWILIO] Message {result.sid} sent but booking not saved: {outcome.error}")
        return JSONResponse(
            {
                "success": False,
                "message": "Message sent, but failed to save booking.",
                "error": outcome.error,
                "sid": result.sid,
            },
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return {"success": True, "sid": result.sid}


@router.get("/twilio/messages")
async def list_whatsapp_messages(
    messenger: StaffMessenger = Depends(get_staff_messenger),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Recent WhatsApp conversation with the business number."""
    try:
        messages = await messenger.list_messages(limit=50)
    except httpx.HTTPError as e:
        logger.error(f"[TWILIO] Error fetching messages: {e}")
        return JSONResponse(
            {"error": "Failed to fetch Twilio messages."},
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return {"success": True, "messages": messages}
