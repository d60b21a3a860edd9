"""Guarded seat inventory.

Every change to ``Flight.available_seats`` goes through this module. Each
operation is a single conditional UPDATE, so the check and the write happen
in one statement under the flight row's lock; two requests racing for the
last seat cannot both see it free.
"""
from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from .errors import (
    FlightNotBookable,
    FlightNotFound,
    InsufficientInventory,
    InventoryIntegrityError,
    ValidationFailure,
)
from .models import Flight

logger = logging.getLogger(__name__)


class FlightInventoryStore:
    """Seat counter operations used by the reservation and cancellation paths."""

    bookable_status = "scheduled"

    def try_reserve(self, session: Session, flight_id: int, count: int) -> Flight:
        """Take ``count`` seats from the flight or raise without changing anything."""

        if count <= 0:
            raise ValidationFailure("seat count must be positive")
        result = session.execute(
            update(Flight)
            .where(
                Flight.id == flight_id,
                Flight.status == self.bookable_status,
                Flight.available_seats >= count,
            )
            .values(available_seats=Flight.available_seats - count)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self._raise_rejection(session, flight_id, count)
        flight = session.get(Flight, flight_id, populate_existing=True)
        logger.debug(
            "reserved seats",
            extra={"flight_id": flight_id, "seats": count, "available": flight.available_seats},
        )
        return flight

    def release(self, session: Session, flight_id: int, count: int) -> None:
        """Return ``count`` seats to the flight."""

        if count <= 0:
            raise ValidationFailure("seat count must be positive")
        result = session.execute(
            update(Flight)
            .where(
                Flight.id == flight_id,
                Flight.available_seats + count <= Flight.total_seats,
            )
            .values(available_seats=Flight.available_seats + count)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            flight = session.get(Flight, flight_id, populate_existing=True)
            if flight is None:
                raise FlightNotFound(f"flight {flight_id} not found")
            raise InventoryIntegrityError(
                f"releasing {count} seat(s) would exceed capacity of flight {flight_id}"
            )
        session.get(Flight, flight_id, populate_existing=True)
        logger.debug("released seats", extra={"flight_id": flight_id, "seats": count})

    def resize(self, session: Session, flight_id: int, total_seats: int) -> Flight:
        """Change capacity, shifting availability so the sold-seat count is unchanged."""

        if total_seats <= 0:
            raise ValidationFailure("total seats must be positive")
        result = session.execute(
            update(Flight)
            .where(
                Flight.id == flight_id,
                Flight.total_seats - Flight.available_seats <= total_seats,
            )
            .values(
                available_seats=Flight.available_seats + (total_seats - Flight.total_seats),
                total_seats=total_seats,
            )
            .execution_options(synchronize_session=False)
        )
        flight = session.get(Flight, flight_id, populate_existing=True)
        if flight is None:
            raise FlightNotFound(f"flight {flight_id} not found")
        if result.rowcount != 1:
            raise ValidationFailure(
                f"flight {flight_id} already has {flight.seats_sold} seat(s) sold;"
                f" capacity cannot drop to {total_seats}"
            )
        return flight

    def _raise_rejection(self, session: Session, flight_id: int, count: int) -> None:
        flight = session.get(Flight, flight_id, populate_existing=True)
        if flight is None:
            raise FlightNotFound(f"flight {flight_id} not found")
        if flight.status != self.bookable_status:
            raise FlightNotBookable(f"flight {flight.flight_number} is {flight.status}")
        raise InsufficientInventory(flight_id, count, flight.available_seats)


default_inventory = FlightInventoryStore()
