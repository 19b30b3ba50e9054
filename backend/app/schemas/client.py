"""Client schemas."""

from typing import Optional

from pydantic import EmailStr, Field

from app.schemas.base import BaseSchema, IDMixin, TimestampMixin


class ClientUpdate(BaseSchema):
    """Update a client from the dashboard."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)


class ClientResponse(BaseSchema, IDMixin, TimestampMixin):
    """Client response."""

    name: str
    email: str
    phone: Optional[str] = None
    booking_count: int = 0
