"""Utilities to populate the database with sample data for tests and demos."""
from __future__ import annotations

import logging
import random
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Sequence

from sqlalchemy.orm import Session, sessionmaker

from .config import Settings
from .database import session_scope
from .errors import BookingError
from .models import utcnow
from .services import add_flight, add_traveler, create_booking

logger = logging.getLogger(__name__)

CITIES: Sequence[str] = (
    "Atlanta",
    "Beijing",
    "Dubai",
    "Los Angeles",
    "Tokyo",
    "Chicago",
    "London",
    "Hong Kong",
    "Shanghai",
    "Paris",
)
AIRLINES = ("SkyWays", "Northwind Air", "Pacific Blue")
AIRCRAFT = ("A320", "A350", "B737", "B787")
FIRST_NAMES = ("Ava", "Noah", "Liam", "Mia", "Lucas", "Emma", "Ethan", "Isabella")
LAST_NAMES = ("Johnson", "Williams", "Smith", "Brown", "Garcia", "Lee")
GENDERS = ("male", "female", "other")


def _random_datetime(days_from_now: int) -> datetime:
    start = utcnow() + timedelta(days=days_from_now)
    hour = random.randint(5, 22)
    minute = random.choice((0, 15, 30, 45))
    return start.replace(hour=hour, minute=minute, second=0, microsecond=0)


def _random_passengers(count: int) -> List[dict]:
    return [
        {
            "first_name": random.choice(FIRST_NAMES),
            "last_name": random.choice(LAST_NAMES),
            "date_of_birth": date(random.randint(1950, 2015), random.randint(1, 12), random.randint(1, 28)),
            "gender": random.choice(GENDERS),
        }
        for _ in range(count)
    ]


def generate_sample_data(
    session_factory: sessionmaker[Session],
    *,
    flights: int = 25,
    travelers: int = 200,
    bookings: int = 500,
    settings: Settings | None = None,
) -> Dict[str, int]:
    """Populate the database with deterministic pseudo-random data."""

    random.seed(42)
    with session_scope(session_factory) as session:
        flight_ids = []
        for index in range(flights):
            origin, destination = random.sample(CITIES, 2)
            departure = _random_datetime(random.randint(2, 30))
            arrival = departure + timedelta(hours=random.randint(2, 12))
            flight = add_flight(
                session,
                flight_number=f"AR{1000 + index}",
                airline=random.choice(AIRLINES),
                departure_city=origin,
                destination_city=destination,
                departure_time=departure,
                arrival_time=arrival,
                price=Decimal(random.choice((120, 180, 220, 310))),
                total_seats=random.choice((90, 120, 180)),
                aircraft=random.choice(AIRCRAFT),
            )
            flight_ids.append(flight.id)
        traveler_ids = [
            add_traveler(
                session,
                first_name=random.choice(FIRST_NAMES),
                last_name=random.choice(LAST_NAMES),
                email=f"test{index}@example.com",
            ).id
            for index in range(travelers)
        ]

    if not flight_ids or not traveler_ids:
        return {"flights": 0, "travelers": 0, "bookings": 0}

    successful = 0
    for _ in range(bookings):
        try:
            create_booking(
                session_factory,
                traveler_id=random.choice(traveler_ids),
                flight_id=random.choice(flight_ids),
                passengers=_random_passengers(random.randint(1, 4)),
                settings=settings,
            )
        except BookingError as exc:
            logger.debug("sample booking skipped: %s", exc)
            continue
        successful += 1
    return {"flights": flights, "travelers": travelers, "bookings": successful}
