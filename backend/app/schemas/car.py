"""Car schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import Field, model_validator

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin
from app.models.enums import CarStatus


class CarCreate(BaseSchema):
    """Create a new car."""

    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    color: Optional[str] = Field(None, max_length=50)
    category: Optional[str] = Field(None, max_length=100)
    license_plate: str = Field(..., min_length=1, max_length=32)
    status: CarStatus = CarStatus.AVAILABLE
    daily_rate: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    images: list[str] = Field(default_factory=list)
    primary_image: Optional[str] = None

    @model_validator(mode="after")
    def validate_primary_image(self):
        """Primary image, if set, must be one of the images."""
        if self.primary_image and self.primary_image not in self.images:
            raise ValueError("primary_image must be one of images")
        return self


class CarUpdate(BaseSchema):
    """Update a car. Omitted fields are left unchanged."""

    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    color: Optional[str] = Field(None, max_length=50)
    category: Optional[str] = Field(None, max_length=100)
    license_plate: Optional[str] = Field(None, min_length=1, max_length=32)
    status: Optional[CarStatus] = None
    daily_rate: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    images: Optional[list[str]] = None
    primary_image: Optional[str] = None

    @model_validator(mode="after")
    def validate_primary_image(self):
        if self.primary_image and self.images is not None and self.primary_image not in self.images:
            raise ValueError("primary_image must be one of images")
        return self


class CarResponse(BaseSchema, IDMixin, TimestampMixin):
    """Car response."""

    make: str
    model: str
    year: Optional[int] = None
    color: Optional[str] = None
    category: Optional[str] = None
    license_plate: str
    status: CarStatus
    daily_rate: Decimal
    images: list[str] = Field(default_factory=list)
    primary_image: Optional[str] = None


class CarListResponse(BaseSchema):
    """One page of cars."""

    items: list[CarResponse]
    total: int
    page: int
    page_size: int


class CarCard(BaseSchema):
    """Fleet card shown on the public site and search results."""

    id: int
    name: str
    make: str
    model: str
    type: Optional[str] = None
    price_per_day: Decimal
    image_url: Optional[str] = None


class CarStatusCount(BaseSchema):
    """Pie chart slice: number of cars in a status."""

    name: str
    value: int


class ImageUploadRequest(BaseSchema):
    """Request a presigned upload URL for a car image."""

    file_name: str = Field(..., min_length=1, max_length=255)
    mime_type: str
    file_size_bytes: int = Field(..., gt=0)


class ImageUploadResponse(BaseSchema):
    """Presigned upload target plus the public URL to store on the car."""

    upload_url: str
    object_path: str
    public_url: str
    expires_at: str
