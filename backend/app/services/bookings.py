"""Booking persistence.

create_booking is the one authoritative write path for bookings: the JSON
booking endpoint, the staff-message endpoint and the booking form all go
through it.
"""

import logging
import math
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.booking import Booking
from app.models.car import Car
from app.models.client import Client
from app.models.enums import BookingStatus, CarStatus
from app.schemas.booking import BookingCreate, CalendarEvent, DashboardStats
from app.services.clients import ClientService
from app.services.results import ActionResult, BookingOutcome

logger = logging.getLogger(__name__)

ONE_DAY = timedelta(days=1)


def rental_days(start: datetime, end: datetime) -> int:
    """Whole rental days between two instants; partial days round up."""
    return math.ceil((end - start) / ONE_DAY)


def compute_total_price(daily_rate: Decimal, start: datetime, end: datetime) -> Decimal:
    """daily_rate x ceil(day span)."""
    return Decimal(daily_rate) * rental_days(start, end)


class BookingService:
    """Create, list and update bookings."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _with_relations(self):
        return select(Booking).options(
            selectinload(Booking.car),
            selectinload(Booking.client),
        )

    async def has_overlap(
        self,
        car_id: int,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[int] = None,
    ) -> bool:
        """Whether the car already holds a non-cancelled booking overlapping [start, end)."""
        query = select(func.count(Booking.id)).where(
            Booking.car_id == car_id,
            Booking.status != BookingStatus.CANCELLED,
            Booking.start_date < end,
            Booking.end_date > start,
        )
        if exclude_booking_id is not None:
            query = query.where(Booking.id != exclude_booking_id)
        return (await self.db.execute(query)).scalar_one() > 0

    def insert_booking(
        self,
        data: BookingCreate,
        car: Optional[Car] = None,
        client: Optional[Client] = None,
    ) -> Booking:
        """Stage a Confirmed booking row with the contact snapshot. Not committed."""
        total_price = data.total_price
        if total_price is None and car is not None:
            total_price = compute_total_price(car.daily_rate, data.start_date, data.end_date)

        booking = Booking(
            car_id=car.id if car is not None else None,
            client_id=client.id if client is not None else None,
            start_date=data.start_date,
            end_date=data.end_date,
            pickup_location=data.pickup_location,
            dropoff_location=data.dropoff_location,
            status=BookingStatus.CONFIRMED,
            total_price=total_price,
            first_name=data.first_name or data.name,
            last_name=data.last_name,
            email=data.email,
            phone=data.phone,
            service_type=data.service_type,
            source=data.source,
        )
        self.db.add(booking)
        return booking

    async def create_booking(self, data: BookingCreate) -> BookingOutcome:
        """Upsert the client (when an email is given), then insert the booking.

        Status is always Confirmed on creation. The total price is computed
        from the car's daily rate when the caller did not supply one.
        """
        try:
            car = None
            if data.car_id is not None:
                car = await self.db.get(Car, data.car_id)
                if car is None:
                    return BookingOutcome(success=False, error="Car not found", error_kind="not_found")
                if await self.has_overlap(car.id, data.start_date, data.end_date):
                    logger.info(f"[BOOKING] Car {car.id} already booked for the requested dates")
                    return BookingOutcome(
                        success=False,
                        error="This car is already booked for the selected dates.",
                        error_kind="unavailable",
                    )

            client = None
            if data.email:
                client = await ClientService(self.db).upsert_client(
                    email=data.email,
                    name=data.name,
                    first_name=data.first_name,
                    last_name=data.last_name,
                    phone=data.phone,
                )

            booking = self.insert_booking(data, car, client)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"[BOOKING] Integrity error creating booking: {e}")
            return BookingOutcome(
                success=False,
                error="This booking conflicts with an existing record.",
                error_kind="duplicate",
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[BOOKING] Error creating booking: {e}")
            return BookingOutcome(
                success=False,
                error="Failed to create booking. Please try again.",
                error_kind="generic",
            )

        logger.info(f"[BOOKING] Booking {booking.id} created (client={booking.client_id}, car={booking.car_id})")
        return BookingOutcome(success=True, booking=await self.get_booking(booking.id))

    async def get_booking(self, booking_id: int) -> Optional[Booking]:
        result = await self.db.execute(
            self._with_relations()
            .where(Booking.id == booking_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_bookings(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        """Bookings overlapping the optional [start, end] window, latest first."""
        query = self._with_relations()
        if start:
            query = query.where(Booking.end_date >= start)
        if end:
            query = query.where(Booking.start_date <= end)
        if status:
            query = query.where(Booking.status == status)
        query = query.order_by(Booking.start_date.desc())

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"[BOOKING] Error fetching bookings: {e}")
            return []
        return list(result.scalars().all())

    async def recent_bookings(self, limit: int = 5) -> list[Booking]:
        try:
            result = await self.db.execute(
                self._with_relations().order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit)
            )
        except SQLAlchemyError as e:
            logger.error(f"[BOOKING] Error fetching recent bookings: {e}")
            return []
        return list(result.scalars().all())

    async def upcoming_bookings(self, limit: int = 3, now: Optional[datetime] = None) -> ActionResult:
        today = (now or datetime.utcnow()).replace(hour=0, minute=0, second=0, microsecond=0)
        try:
            result = await self.db.execute(
                self._with_relations()
                .where(Booking.start_date >= today)
                .order_by(Booking.start_date.asc())
                .limit(limit)
            )
        except SQLAlchemyError as e:
            logger.error(f"[BOOKING] Error fetching upcoming bookings: {e}")
            return ActionResult(success=False, error=str(e))
        return ActionResult(success=True, data=list(result.scalars().all()))

    async def update_booking_status(self, booking_id: int, status: BookingStatus) -> ActionResult:
        booking = await self.get_booking(booking_id)
        if booking is None:
            return ActionResult(success=False, error="Booking not found")

        booking.status = status
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[BOOKING] Error updating booking {booking_id}: {e}")
            return ActionResult(success=False, error="Failed to update booking status.")

        logger.info(f"[BOOKING] Booking {booking_id} status -> {status.value}")
        return ActionResult(success=True, data=await self.get_booking(booking_id))

    async def calendar_events(self, start: datetime, end: datetime) -> list[CalendarEvent]:
        events = []
        for booking in await self.list_bookings(start=start, end=end):
            title = "Booking"
            if booking.client is not None and booking.client.name:
                title = f"Booking: {booking.client.name}"
            if booking.car is not None and booking.car.display_name:
                title += f" - {booking.car.display_name}"
            events.append(CalendarEvent(
                id=booking.id,
                title=title,
                start=booking.start_date,
                end=booking.end_date,
                status=booking.status,
            ))
        return events

    async def dashboard_stats(self) -> DashboardStats:
        revenue = await self.db.execute(
            select(func.coalesce(func.sum(Booking.total_price), 0))
            .where(Booking.status != BookingStatus.CANCELLED)
        )
        active = await self.db.execute(
            select(func.count(Booking.id)).where(Booking.status == BookingStatus.ACTIVE)
        )
        available = await self.db.execute(
            select(func.count(Car.id)).where(Car.status == CarStatus.AVAILABLE)
        )
        clients = await self.db.execute(select(func.count(Client.id)))

        return DashboardStats(
            total_revenue=Decimal(revenue.scalar_one() or 0),
            active_bookings=active.scalar_one() or 0,
            available_cars=available.scalar_one() or 0,
            total_clients=clients.scalar_one() or 0,
        )
