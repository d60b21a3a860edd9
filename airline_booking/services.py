"""Reservation and cancellation transactions plus flight administration."""
from __future__ import annotations

import logging
import secrets
import string
import time
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Callable, Iterable, Iterator, List, Mapping, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload, sessionmaker
from sqlalchemy.orm.attributes import set_committed_value

from .config import Settings
from .database import session_scope
from .errors import (
    AlreadyCancelled,
    BookingNotFound,
    CancellationWindowClosed,
    DuplicateFlightNumber,
    DuplicateTravelerEmail,
    FlightNotFound,
    InventoryIntegrityError,
    ReferenceGenerationFailed,
    TravelerInactive,
    TravelerNotFound,
    ValidationFailure,
)
from .inventory import FlightInventoryStore, default_inventory
from .models import Booking, Flight, Passenger, Traveler, utcnow
from .schemas import PassengerIn, parse_flight_create, parse_flight_update, parse_passengers

logger = logging.getLogger(__name__)

_CENTS = Decimal("0.01")
_REFERENCE_ALPHABET = string.digits + string.ascii_uppercase


def generate_reference(now: Optional[float] = None) -> str:
    """Return ``BK`` + the last 8 digits of epoch milliseconds + 4 random characters."""

    millis = int((time.time() if now is None else now) * 1000)
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(4))
    return f"BK{str(millis)[-8:]}{suffix}"


class SeatAllocator:
    """Seat allocation helper that ensures deterministic seat numbering."""

    seat_letters: Sequence[str] = tuple("ABCDEF")

    @classmethod
    def seat_labels(cls, total_seats: int) -> Iterator[str]:
        per_row = len(cls.seat_letters)
        for index in range(total_seats):
            yield f"{index // per_row + 1}{cls.seat_letters[index % per_row]}"

    @classmethod
    def allocate(cls, session: Session, flight: Flight, count: int) -> List[str]:
        taken = set(
            session.scalars(
                select(Passenger.seat_number)
                .join(Booking)
                .where(
                    Booking.flight_id == flight.id,
                    Booking.status != "cancelled",
                    Passenger.seat_number.is_not(None),
                )
            )
        )
        free = [seat for seat in cls.seat_labels(flight.total_seats) if seat not in taken]
        if len(free) < count:
            raise InventoryIntegrityError(
                f"flight {flight.id} has {flight.available_seats} seat(s) available"
                f" but only {len(free)} unassigned seat label(s)"
            )
        return free[:count]


def add_traveler(
    session: Session,
    *,
    first_name: str,
    last_name: str,
    email: str,
    role: str = "user",
) -> Traveler:
    traveler = Traveler(
        first_name=first_name,
        last_name=last_name,
        email=email.lower(),
        role=role,
    )
    try:
        with session.begin_nested():
            session.add(traveler)
            session.flush()
    except IntegrityError as exc:
        if "email" not in str(exc.orig):
            raise
        raise DuplicateTravelerEmail(f"traveler {traveler.email} already exists") from exc
    return traveler


def set_traveler_active(session: Session, traveler_id: int, active: bool) -> Traveler:
    traveler = session.get(Traveler, traveler_id)
    if traveler is None:
        raise TravelerNotFound(f"traveler {traveler_id} not found")
    traveler.is_active = active
    session.flush()
    logger.info("traveler status changed", extra={"traveler_id": traveler_id, "active": active})
    return traveler


def add_flight(session: Session, *, created_by_id: Optional[int] = None, **fields: Any) -> Flight:
    """Create a flight entry with every seat available."""

    data = parse_flight_create(fields)
    if created_by_id is not None and session.get(Traveler, created_by_id) is None:
        raise TravelerNotFound(f"traveler {created_by_id} not found")
    flight = Flight(
        **data.model_dump(),
        available_seats=data.total_seats,
        status="scheduled",
        created_by_id=created_by_id,
    )
    try:
        with session.begin_nested():
            session.add(flight)
            session.flush()
    except IntegrityError as exc:
        if "flight_number" not in str(exc.orig):
            raise
        raise DuplicateFlightNumber(f"flight number {data.flight_number} already exists") from exc
    logger.info("flight added", extra={"flight_id": flight.id, "flight_number": flight.flight_number})
    return flight


def update_flight(
    session: Session,
    flight_id: int,
    changes: Optional[Mapping[str, Any]] = None,
    *,
    inventory: FlightInventoryStore = default_inventory,
    **fields: Any,
) -> Flight:
    """Apply an administrative edit restricted to the fields of ``FlightUpdate``."""

    edit = parse_flight_update({**(changes or {}), **fields})
    values = edit.model_dump(exclude_unset=True)
    flight = session.get(Flight, flight_id)
    if flight is None:
        raise FlightNotFound(f"flight {flight_id} not found")

    for field, value in values.items():
        if value is None and field != "gate":
            raise ValidationFailure(f"{field} cannot be null")

    departure = values.get("departure_time", flight.departure_time)
    arrival = values.get("arrival_time", flight.arrival_time)
    if arrival <= departure:
        raise ValidationFailure("arrival time must be after departure time")

    total_seats = values.pop("total_seats", None)
    if total_seats is not None and total_seats != flight.total_seats:
        flight = inventory.resize(session, flight_id, total_seats)
    for field, value in values.items():
        setattr(flight, field, value)
    session.flush()
    return flight


def complete_flight(session: Session, flight_id: int) -> Flight:
    """Mark a flight as flown and settle its confirmed bookings."""

    flight = session.get(Flight, flight_id)
    if flight is None:
        raise FlightNotFound(f"flight {flight_id} not found")
    flight.status = "completed"
    session.execute(
        update(Booking)
        .where(Booking.flight_id == flight_id, Booking.status == "confirmed")
        .values(status="completed")
        .execution_options(synchronize_session="fetch")
    )
    session.flush()
    return flight


def _load_booking(session: Session, traveler_id: int, booking_id: int) -> Optional[Booking]:
    return session.scalars(
        select(Booking)
        .where(Booking.id == booking_id, Booking.traveler_id == traveler_id)
        .options(joinedload(Booking.flight), selectinload(Booking.passengers))
        .execution_options(populate_existing=True)
    ).one_or_none()


def get_booking(session: Session, *, traveler_id: int, booking_id: int) -> Booking:
    booking = _load_booking(session, traveler_id, booking_id)
    if booking is None:
        raise BookingNotFound(f"booking {booking_id} not found")
    return booking


def ensure_cancellable(
    booking: Booking,
    *,
    now: Optional[datetime] = None,
    window: timedelta = timedelta(hours=24),
) -> None:
    """Caller-side policy: no cancellations once departure is ``window`` away."""

    if booking.status == "completed":
        raise CancellationWindowClosed(f"booking {booking.reference} is already completed")
    now = now or utcnow()
    if booking.flight.departure_time - now <= window:
        hours = int(window.total_seconds() // 3600)
        raise CancellationWindowClosed(
            f"booking {booking.reference} cannot be cancelled within {hours} hours of departure"
        )


def _insert_booking(
    session: Session,
    *,
    traveler_id: int,
    flight: Flight,
    manifest: List[PassengerIn],
    seats: List[str],
    attempts: int,
    reference_factory: Callable[[], str],
) -> Booking:
    total_amount = (Decimal(flight.price) * len(manifest)).quantize(_CENTS)
    for attempt in range(1, attempts + 1):
        booking = Booking(
            reference=reference_factory(),
            traveler_id=traveler_id,
            flight_id=flight.id,
            seat_count=len(manifest),
            total_amount=total_amount,
            status="confirmed",
            payment_status="paid",
            passengers=[
                Passenger(position=position, seat_number=seat, **passenger.model_dump())
                for position, (passenger, seat) in enumerate(zip(manifest, seats))
            ],
        )
        try:
            with session.begin_nested():
                session.add(booking)
                session.flush()
        except IntegrityError as exc:
            if "reference" not in str(exc.orig):
                raise
            logger.warning(
                "booking reference collision",
                extra={"booking_reference": booking.reference, "attempt": attempt},
            )
            continue
        set_committed_value(booking, "flight", flight)
        return booking
    raise ReferenceGenerationFailed(f"no unique booking reference after {attempts} attempt(s)")


def create_booking(
    session_factory: sessionmaker[Session],
    *,
    traveler_id: int,
    flight_id: int,
    passengers: Iterable[Any],
    settings: Optional[Settings] = None,
    inventory: FlightInventoryStore = default_inventory,
    reference_factory: Callable[[], str] = generate_reference,
) -> Booking:
    """Reserve seats for ``passengers`` and record the booking in one transaction.

    Either the seat decrement and the booking row are committed together or
    neither is: every failure raises out of :func:`session_scope`, which rolls
    the whole transaction back.
    """

    settings = settings or Settings()
    manifest = parse_passengers(passengers)
    try:
        with session_scope(session_factory) as session:
            traveler = session.get(Traveler, traveler_id)
            if traveler is None:
                raise TravelerNotFound(f"traveler {traveler_id} not found")
            if not traveler.is_active:
                raise TravelerInactive(f"traveler {traveler_id} is deactivated")
            flight = inventory.try_reserve(session, flight_id, len(manifest))
            seats = SeatAllocator.allocate(session, flight, len(manifest))
            booking = _insert_booking(
                session,
                traveler_id=traveler_id,
                flight=flight,
                manifest=manifest,
                seats=seats,
                attempts=settings.reference_attempts,
                reference_factory=reference_factory,
            )
    except Exception as exc:
        logger.info(
            "booking rejected",
            extra={"flight_id": flight_id, "seats": len(manifest), "reason": type(exc).__name__},
        )
        raise
    logger.info(
        "booking confirmed",
        extra={
            "booking_reference": booking.reference,
            "flight_id": flight_id,
            "seats": booking.seat_count,
            "available": flight.available_seats,
        },
    )
    return booking


def cancel_booking(
    session_factory: sessionmaker[Session],
    *,
    traveler_id: int,
    booking_id: int,
    reason: Optional[str] = None,
    inventory: FlightInventoryStore = default_inventory,
) -> Booking:
    """Cancel a booking, refund it and return its seats in one transaction."""

    reason = (reason or "").strip() or None
    with session_scope(session_factory) as session:
        result = session.execute(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.traveler_id == traveler_id,
                Booking.status != "cancelled",
            )
            .values(
                status="cancelled",
                payment_status="refunded",
                cancelled_at=utcnow(),
                cancellation_reason=reason,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            if _load_booking(session, traveler_id, booking_id) is None:
                raise BookingNotFound(f"booking {booking_id} not found")
            raise AlreadyCancelled(f"booking {booking_id} is already cancelled")
        booking = _load_booking(session, traveler_id, booking_id)
        # seat_count is fixed at booking time, so a later capacity edit does not change it
        inventory.release(session, booking.flight_id, booking.seat_count)
    logger.info(
        "booking cancelled",
        extra={
            "booking_reference": booking.reference,
            "flight_id": booking.flight_id,
            "seats": booking.seat_count,
        },
    )
    return booking
