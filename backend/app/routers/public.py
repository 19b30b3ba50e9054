"""Public fleet router - car listings and search for the website."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_public_db
from app.models.car import Car
from app.models.enums import CarStatus
from app.schemas.car import CarCard, CarListResponse, CarResponse
from app.services.fleet import FleetService

router = APIRouter(tags=["fleet"])


def car_card(car: Car) -> CarCard:
    return CarCard(
        id=car.id,
        name=car.display_name,
        make=car.make,
        model=car.model,
        type=car.category,
        price_per_day=car.daily_rate,
        image_url=car.primary_image or (car.images[0] if car.images else None),
    )


@router.get("/cars", response_model=CarListResponse)
async def list_cars(
    page: int = Query(1, ge=1),
    page_size: int = Query(12, ge=1, le=100),
    status_filter: Optional[CarStatus] = Query(None, alias="status"),
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_public_db),
):
    """Paginated fleet listing."""
    cars, total = await FleetService(db).list_cars(
        page=page, page_size=page_size, status=status_filter, category=category
    )
    return CarListResponse(
        items=[CarResponse.model_validate(car) for car in cars],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/cars/{car_id}", response_model=CarResponse)
async def get_car(
    car_id: int,
    db: AsyncSession = Depends(get_public_db),
):
    car = await FleetService(db).get_car(car_id)
    if not car:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Car not found")
    return car


@router.get("/search", response_model=List[CarCard])
async def search_cars(
    destination: Optional[str] = None,
    pickup: Optional[datetime] = Query(None, alias="pickupDateTime"),
    dropoff: Optional[datetime] = Query(None, alias="dropoffDateTime"),
    db: AsyncSession = Depends(get_public_db),
):
    """Cars for the search results page.

    The destination is informational only; every car can be delivered to any
    of the agency locations.
    """
    if pickup and dropoff and dropoff <= pickup:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="dropoffDateTime must be after pickupDateTime",
        )
    cars = await FleetService(db).available_cars(start=pickup, end=dropoff)
    return [car_card(car) for car in cars]
