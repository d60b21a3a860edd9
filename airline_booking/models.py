"""SQLAlchemy models for flights, travelers and the booking ledger."""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

FLIGHT_STATUSES = ("scheduled", "delayed", "cancelled", "completed")
BOOKING_STATUSES = ("confirmed", "cancelled", "completed")
PAYMENT_STATUSES = ("pending", "paid", "refunded")
GENDERS = ("male", "female", "other")
ROLES = ("user", "flight_operator", "admin")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class Traveler(Base):
    __tablename__ = "travelers"
    __table_args__ = (UniqueConstraint("email", name="uq_traveler_email"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(String(120), nullable=False)
    role: Mapped[str] = mapped_column(Enum(*ROLES, name="traveler_role"), default="user", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    bookings: Mapped[List["Booking"]] = relationship(back_populates="traveler")


class Flight(Base):
    __tablename__ = "flights"
    __table_args__ = (
        UniqueConstraint("flight_number", name="uq_flight_number"),
        CheckConstraint("total_seats > 0", name="ck_total_seats_positive"),
        CheckConstraint("available_seats >= 0", name="ck_available_non_negative"),
        CheckConstraint("available_seats <= total_seats", name="ck_available_within_capacity"),
        CheckConstraint("price >= 0", name="ck_price_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    flight_number: Mapped[str] = mapped_column(String(10), nullable=False)
    airline: Mapped[str] = mapped_column(String(60), nullable=False)
    departure_city: Mapped[str] = mapped_column(String(60), nullable=False)
    destination_city: Mapped[str] = mapped_column(String(60), nullable=False)
    departure_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    arrival_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    aircraft: Mapped[str] = mapped_column(String(20), nullable=False)
    gate: Mapped[Optional[str]] = mapped_column(String(10))
    status: Mapped[str] = mapped_column(
        Enum(*FLIGHT_STATUSES, name="flight_status"), default="scheduled", nullable=False
    )
    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("travelers.id"))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    bookings: Mapped[List["Booking"]] = relationship(back_populates="flight")

    @property
    def duration(self) -> str:
        minutes = int((self.arrival_time - self.departure_time).total_seconds() // 60)
        return f"{minutes // 60}h {minutes % 60}m"

    @property
    def seats_sold(self) -> int:
        return self.total_seats - self.available_seats


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint("reference", name="uq_booking_reference"),
        CheckConstraint("seat_count > 0", name="ck_booking_seat_count_positive"),
        CheckConstraint("total_amount >= 0", name="ck_booking_amount_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    reference: Mapped[str] = mapped_column(String(16), nullable=False)
    traveler_id: Mapped[int] = mapped_column(ForeignKey("travelers.id"), nullable=False, index=True)
    flight_id: Mapped[int] = mapped_column(ForeignKey("flights.id"), nullable=False, index=True)
    seat_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        Enum(*BOOKING_STATUSES, name="booking_status"), default="confirmed", nullable=False
    )
    payment_status: Mapped[str] = mapped_column(
        Enum(*PAYMENT_STATUSES, name="payment_status"), default="paid", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)

    traveler: Mapped[Traveler] = relationship(back_populates="bookings")
    flight: Mapped[Flight] = relationship(back_populates="bookings")
    passengers: Mapped[List["Passenger"]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="Passenger.position",
    )


class Passenger(Base):
    """A traveler seated under a booking. Has no lifecycle of its own."""

    __tablename__ = "booking_passengers"
    __table_args__ = (UniqueConstraint("booking_id", "position", name="uq_booking_passenger_position"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    booking_id: Mapped[int] = mapped_column(ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    first_name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(Date, nullable=False)
    gender: Mapped[str] = mapped_column(Enum(*GENDERS, name="passenger_gender"), nullable=False)
    seat_number: Mapped[Optional[str]] = mapped_column(String(4))

    booking: Mapped[Booking] = relationship(back_populates="passengers")
