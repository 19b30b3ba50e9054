"""Dashboard router - staff management of cars, clients and bookings."""

import io
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import AuthenticatedUser, require_staff
from app.models.enums import BookingStatus, CarStatus
from app.schemas.booking import BookingResponse, BookingStatusUpdate, CalendarEvent, DashboardStats
from app.schemas.car import (
    CarCreate,
    CarListResponse,
    CarResponse,
    CarStatusCount,
    CarUpdate,
    ImageUploadRequest,
    ImageUploadResponse,
)
from app.schemas.client import ClientResponse, ClientUpdate
from app.services.bookings import BookingService
from app.services.clients import ClientService
from app.services.fleet import DUPLICATE_PLATE, FleetService
from app.services.pdf_generator import contract_data_for_booking, get_pdf_generator
from app.services.storage import StorageService, get_storage_service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def raise_for_result(error: Optional[str]):
    """Translate a failed service result into an HTTP error."""
    if error and error.endswith("not found"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error)
    if error and (error.startswith(DUPLICATE_PLATE) or "already exists" in error):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error)
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error or "Request failed")


# Cars


@router.get("/cars", response_model=CarListResponse)
async def list_cars(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    status_filter: Optional[CarStatus] = Query(None, alias="status"),
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    cars, total = await FleetService(db).list_cars(
        page=page, page_size=page_size, status=status_filter, category=category
    )
    return CarListResponse(
        items=[CarResponse.model_validate(car) for car in cars],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/cars", response_model=CarResponse, status_code=status.HTTP_201_CREATED)
async def add_car(
    data: CarCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    result = await FleetService(db).add_car(data)
    if not result.success:
        raise_for_result(result.error)
    return result.data


@router.get("/cars/stats/status", response_model=List[CarStatusCount])
async def car_status_overview(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Cars per status for the overview chart."""
    result = await FleetService(db).car_stats_by_status()
    if not result.success:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    return result.data


@router.post("/cars/images/upload-url", response_model=ImageUploadResponse)
async def create_image_upload_url(
    data: ImageUploadRequest,
    storage: StorageService = Depends(get_storage_service),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Presigned URL for uploading a car image straight to the bucket."""
    try:
        upload_url, object_path, expires_at = await storage.create_presigned_upload(
            file_name=data.file_name,
            mime_type=data.mime_type,
            file_size_bytes=data.file_size_bytes,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ImageUploadResponse(
        upload_url=upload_url,
        object_path=object_path,
        public_url=storage.public_url(object_path),
        expires_at=expires_at.isoformat(),
    )


@router.get("/cars/{car_id}", response_model=CarResponse)
async def get_car(
    car_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    car = await FleetService(db).get_car(car_id)
    if not car:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Car not found")
    return car


@router.patch("/cars/{car_id}", response_model=CarResponse)
async def update_car(
    car_id: int,
    data: CarUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    result = await FleetService(db).update_car(car_id, data)
    if not result.success:
        raise_for_result(result.error)
    return result.data


@router.delete("/cars/{car_id}")
async def delete_car(
    car_id: int,
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage_service),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Delete a car. Image cleanup failures come back as a warning."""
    result = await FleetService(db, storage=storage).delete_car(car_id)
    if not result.success:
        if result.error == "Car not found":
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    return {"success": True, "image_deletion_error": result.image_deletion_error}


# Clients


@router.get("/clients", response_model=List[ClientResponse])
async def list_clients(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    return await ClientService(db).list_clients()


@router.get("/clients/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    client = await ClientService(db).get_client(client_id)
    if not client:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return client


@router.patch("/clients/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    data: ClientUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    result = await ClientService(db).update_client(client_id, data)
    if not result.success:
        raise_for_result(result.error)
    return result.data


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Delete a client. Their bookings stay, detached."""
    result = await ClientService(db).delete_client(client_id)
    if not result.success:
        raise_for_result(result.error)


# Bookings


@router.get("/bookings", response_model=List[BookingResponse])
async def list_bookings(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    return await BookingService(db).list_bookings(start=start, end=end, status=status_filter)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    booking = await BookingService(db).get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")
    return booking


@router.patch("/bookings/{booking_id}/status", response_model=BookingResponse)
async def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    result = await BookingService(db).update_booking_status(booking_id, data.status)
    if not result.success:
        raise_for_result(result.error)
    return result.data


@router.get("/bookings/{booking_id}/contract")
async def download_contract(
    booking_id: int,
    notes: str = "",
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Rental agreement PDF for a booking."""
    booking = await BookingService(db).get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found")

    pdf_bytes = get_pdf_generator().generate_rental_contract(contract_data_for_booking(booking, notes))
    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=contract_{booking_id}.pdf"},
    )


@router.get("/calendar", response_model=List[CalendarEvent])
async def calendar_events(
    start: datetime,
    end: datetime,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Bookings overlapping the visible calendar range."""
    return await BookingService(db).calendar_events(start, end)


# Stats


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    return await BookingService(db).dashboard_stats()


@router.get("/stats/recent-bookings", response_model=List[BookingResponse])
async def recent_bookings(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    return await BookingService(db).recent_bookings(limit=limit)


@router.get("/stats/upcoming-bookings", response_model=List[BookingResponse])
async def upcoming_bookings(
    limit: int = Query(3, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    result = await BookingService(db).upcoming_bookings(limit=limit)
    if not result.success:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.error)
    return result.data
