"""Bookings router - public booking endpoints.

POST /bookings takes a ready-made booking; POST /cars/{car_id}/book runs the
booking form workflow (validation, rules acknowledgement, storage, customer
email, staff notice).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db
from app.models.enums import BookingSource
from app.schemas.booking import BookingApiRequest, BookingCreate, BookingFormRequest, BookingFormResponse
from app.services.booking_workflow import BookingWorkflow, CarSnapshot, WorkflowState
from app.services.bookings import BookingService
from app.services.fleet import FleetService
from app.services.notifications import (
    ConfirmationEmailSender,
    StaffMessenger,
    optional_email_sender,
    optional_staff_messenger,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings"])


def error_response(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@router.post("/bookings")
async def create_booking(
    data: BookingApiRequest,
    db: AsyncSession = Depends(get_db),
):
    """Upsert the client and store the booking. No notifications are sent."""
    outcome = await BookingService(db).create_booking(
        BookingCreate(**data.model_dump(), source=BookingSource.WEB)
    )
    if not outcome.success:
        logger.warning(f"[BOOKING] API booking rejected ({outcome.error_kind}): {outcome.error}")
        return error_response(outcome.error)
    return {"success": True, "booking_id": outcome.booking_id}


@router.post(
    "/cars/{car_id}/book",
    response_model=BookingFormResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_booking_form(
    car_id: int,
    form: BookingFormRequest,
    db: AsyncSession = Depends(get_db),
    email_sender: Optional[ConfirmationEmailSender] = Depends(optional_email_sender),
    messenger: Optional[StaffMessenger] = Depends(optional_staff_messenger),
):
    """Submit the booking form of a car's detail page."""
    car = await FleetService(db).get_car(car_id)
    if not car:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Car not found")

    workflow = BookingWorkflow(
        car=CarSnapshot.from_car(car),
        gateway=BookingService(db),
        email_sender=email_sender,
        messenger=messenger,
        rules_phrase=get_settings().booking_rules_phrase,
    )
    workflow.update_form(**form.model_dump(exclude={"rules_confirmation"}))

    if not workflow.request_submit():
        return JSONResponse({"error": workflow.error}, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)

    if not workflow.acknowledge_rules(form.rules_confirmation):
        return JSONResponse(
            {"error": "Please type the confirmation phrase to accept the rental rules."},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    state = await workflow.submit()
    if state == WorkflowState.FAILED:
        return error_response(workflow.error)

    logger.info(f"[BOOKING] Form submitted for car {car_id}: booking {workflow.booking_id}")
    return BookingFormResponse(
        state=state.value,
        booking_id=workflow.booking_id,
        redirect_url=workflow.redirect_url,
        notices=workflow.notices,
    )
