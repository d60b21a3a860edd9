from __future__ import annotations

import itertools
from datetime import date, timedelta
from decimal import Decimal

import pytest

from airline_booking.database import create_session_factory, session_scope
from airline_booking.models import Base, Booking, Flight, utcnow
from airline_booking.services import add_flight, add_traveler, update_flight


@pytest.fixture
def session_factory(tmp_path):
    engine, factory = create_session_factory(f"sqlite+pysqlite:///{tmp_path / 'airline-test.db'}")
    Base.metadata.create_all(engine)
    yield factory
    engine.dispose()


@pytest.fixture
def make_flight(session_factory):
    numbers = itertools.count(100)

    def _make(
        *,
        total_seats: int = 2,
        price: Decimal = Decimal("100.00"),
        status: str = "scheduled",
        departs_in: timedelta = timedelta(days=7),
    ) -> Flight:
        departure = (utcnow() + departs_in).replace(microsecond=0)
        with session_scope(session_factory) as session:
            flight = add_flight(
                session,
                flight_number=f"ar{next(numbers)}",
                airline="SkyWays",
                departure_city="Los Angeles",
                destination_city="New York",
                departure_time=departure,
                arrival_time=departure + timedelta(hours=5),
                price=price,
                total_seats=total_seats,
                aircraft="A320",
            )
            if status != "scheduled":
                update_flight(session, flight.id, status=status)
        return flight

    return _make


@pytest.fixture
def make_traveler(session_factory):
    emails = itertools.count(1)

    def _make(role: str = "user"):
        with session_scope(session_factory) as session:
            return add_traveler(
                session,
                first_name="Test",
                last_name="Traveler",
                email=f"traveler{next(emails)}@example.com",
                role=role,
            )

    return _make


@pytest.fixture
def fetch_flight(session_factory):
    def _fetch(flight_id: int) -> Flight:
        with session_factory() as session:
            return session.get(Flight, flight_id)

    return _fetch


@pytest.fixture
def count_bookings(session_factory):
    def _count() -> int:
        with session_factory() as session:
            return session.query(Booking).count()

    return _count


def passenger(first_name: str = "Ava", **overrides) -> dict:
    record = {
        "first_name": first_name,
        "last_name": "Johnson",
        "date_of_birth": date(1990, 5, 17),
        "gender": "female",
    }
    record.update(overrides)
    return record


@pytest.fixture
def passengers():
    def _build(count: int) -> list[dict]:
        return [passenger(f"Passenger{index}") for index in range(count)]

    return _build
