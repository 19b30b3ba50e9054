"""Car model."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import JSON, DateTime, Enum as SQLEnum, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import CarStatus, enum_values

if TYPE_CHECKING:
    from app.models.booking import Booking


class Car(Base):
    """A rentable vehicle in the fleet."""

    __tablename__ = "cars"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    make: Mapped[str] = mapped_column(String(100), nullable=False)
    model: Mapped[str] = mapped_column(String(100), nullable=False)
    year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    color: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)  # Free-text fleet class
    license_plate: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
        index=True,
    )

    status: Mapped[CarStatus] = mapped_column(
        SQLEnum(CarStatus, name="carstatus", values_callable=enum_values),
        default=CarStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # Ordered public URLs; primary_image must be one of them
    images: Mapped[list[str]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        default=list,
        nullable=False,
    )
    primary_image: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking", back_populates="car", passive_deletes=True
    )

    @property
    def display_name(self) -> str:
        return f"{self.make or ''} {self.model or ''}".strip()
