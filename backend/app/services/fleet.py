"""Fleet persistence: cars and their stored images."""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.booking import Booking
from app.models.car import Car
from app.models.enums import BookingStatus, CarStatus
from app.schemas.car import CarCreate, CarUpdate
from app.services.results import ActionResult, DeleteCarResult
from app.services.storage import StorageService

logger = logging.getLogger(__name__)

DUPLICATE_PLATE = "A car with this license plate already exists."


def _is_plate_conflict(error: IntegrityError) -> bool:
    return "license_plate" in str(error.orig)


class FleetService:
    """CRUD over cars.

    Read paths swallow database failures and return empty results: callers
    treat a failed fetch the same as "no cars".
    """

    def __init__(self, db: AsyncSession, storage: Optional[StorageService] = None):
        self.db = db
        self.storage = storage

    async def list_cars(
        self,
        page: int = 1,
        page_size: int = 12,
        status: Optional[CarStatus] = None,
        category: Optional[str] = None,
    ) -> tuple[list[Car], int]:
        """One page of cars, newest first, plus the total count."""
        query = select(Car)
        count_query = select(func.count(Car.id))
        if status:
            query = query.where(Car.status == status)
            count_query = count_query.where(Car.status == status)
        if category:
            query = query.where(Car.category == category)
            count_query = count_query.where(Car.category == category)

        query = (
            query.order_by(Car.created_at.desc(), Car.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )

        try:
            total = (await self.db.execute(count_query)).scalar_one()
            cars = (await self.db.execute(query)).scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"[FLEET] Error fetching cars: {e}")
            return [], 0

        return list(cars), total

    async def get_car(self, car_id: int) -> Optional[Car]:
        try:
            result = await self.db.execute(select(Car).where(Car.id == car_id))
        except SQLAlchemyError as e:
            logger.error(f"[FLEET] Error fetching car {car_id}: {e}")
            return None
        return result.scalar_one_or_none()

    async def available_cars(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[Car]:
        """Cars for the public search page.

        When a date range is given, cars holding a non-cancelled booking that
        overlaps it are left out.
        """
        query = select(Car).order_by(Car.daily_rate.asc(), Car.id)
        if start and end:
            busy = (
                select(Booking.car_id)
                .where(
                    Booking.car_id.is_not(None),
                    Booking.status != BookingStatus.CANCELLED,
                    Booking.start_date < end,
                    Booking.end_date > start,
                )
            )
            query = query.where(Car.id.not_in(busy))

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"[FLEET] Error searching cars: {e}")
            return []
        return list(result.scalars().all())

    async def add_car(self, data: CarCreate) -> ActionResult:
        car = Car(**data.model_dump())
        self.db.add(car)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_plate_conflict(e):
                return ActionResult(success=False, error=DUPLICATE_PLATE)
            logger.error(f"[FLEET] Integrity error adding car: {e}")
            return ActionResult(success=False, error="A database error occurred while adding the car.")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[FLEET] Error adding car: {e}")
            return ActionResult(success=False, error="A database error occurred while adding the car.")

        await self.db.refresh(car)
        logger.info(f"[FLEET] Car added: {car.id} ({car.license_plate})")
        return ActionResult(success=True, data=car)

    async def update_car(self, car_id: int, data: CarUpdate) -> ActionResult:
        car = await self.get_car(car_id)
        if car is None:
            return ActionResult(success=False, error="Car not found")

        update_data = data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(car, field, value)

        if car.primary_image and car.primary_image not in (car.images or []):
            await self.db.rollback()
            return ActionResult(success=False, error="primary_image must be one of images")

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_plate_conflict(e):
                return ActionResult(success=False, error=f"{DUPLICATE_PLATE} Cannot update.")
            return ActionResult(success=False, error=f"Failed to update car: {e.orig}")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[FLEET] Error updating car {car_id}: {e}")
            return ActionResult(success=False, error="Failed to update car.")

        await self.db.refresh(car)
        return ActionResult(success=True, data=car)

    async def delete_car(self, car_id: int) -> DeleteCarResult:
        """Delete a car and, best-effort, its stored images.

        Image failures never block the record deletion; they come back as
        image_deletion_error next to a successful result.
        """
        car = await self.get_car(car_id)
        if car is None:
            return DeleteCarResult(success=False, error="Car not found")

        image_errors: list[str] = []
        if self.storage is not None and car.images:
            image_errors = await self.storage.delete_images(car.images)

        image_deletion_error = None
        if image_errors:
            image_deletion_error = "Some images failed to delete from storage: " + "; ".join(image_errors)
            logger.warning(f"[FLEET] Car {car_id}: {image_deletion_error}")

        try:
            await self.db.execute(delete(Car).where(Car.id == car_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"[FLEET] Error deleting car record {car_id}: {e}")
            return DeleteCarResult(
                success=False,
                error=f"Failed to delete car record: {e}",
                image_deletion_error=image_deletion_error,
            )

        logger.info(f"[FLEET] Car deleted: {car_id}")
        return DeleteCarResult(success=True, image_deletion_error=image_deletion_error)

    async def car_stats_by_status(self) -> ActionResult:
        """Number of cars per status, for the dashboard pie chart."""
        try:
            result = await self.db.execute(
                select(Car.status, func.count(Car.id)).group_by(Car.status)
            )
        except SQLAlchemyError as e:
            logger.error(f"[FLEET] Error fetching car status stats: {e}")
            return ActionResult(success=False, error=str(e))

        data = [
            {"name": status.value if isinstance(status, CarStatus) else str(status), "value": count}
            for status, count in result.all()
        ]
        return ActionResult(success=True, data=data)
