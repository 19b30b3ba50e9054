"""Booking model."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import BookingSource, BookingStatus, enum_values

if TYPE_CHECKING:
    from app.models.car import Car
    from app.models.client import Client


class Booking(Base):
    """A reservation linking a client to a car for a date range.

    Contact fields are a snapshot taken at submission time, so the row stays
    readable after the client record is edited or deleted.
    """

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    car_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("cars.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    client_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Dates
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    pickup_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    dropoff_location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    status: Mapped[BookingStatus] = mapped_column(
        SQLEnum(BookingStatus, name="bookingstatus", values_callable=enum_values),
        default=BookingStatus.CONFIRMED,
        nullable=False,
        index=True,
    )
    total_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    # Contact snapshot
    first_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    service_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    source: Mapped[BookingSource] = mapped_column(
        SQLEnum(BookingSource, name="bookingsource", values_callable=enum_values),
        default=BookingSource.WEB,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    car: Mapped[Optional["Car"]] = relationship("Car", back_populates="bookings")
    client: Mapped[Optional["Client"]] = relationship("Client", back_populates="bookings")

    @property
    def customer_name(self) -> str:
        if self.client is not None and self.client.name:
            return self.client.name
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()
