"""Read-only statistics over flights and the booking ledger."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from .models import Booking, Flight, Traveler

REVENUE_STATUSES = ("confirmed", "completed")


@dataclass(frozen=True)
class Statistics:
    user_count: int
    flight_count: int
    booking_count: int
    total_revenue: Decimal

    def as_dict(self) -> Dict[str, object]:
        return {
            "totalUsers": self.user_count,
            "totalFlights": self.flight_count,
            "totalBookings": self.booking_count,
            "totalRevenue": self.total_revenue,
        }


def compute_statistics(session: Session) -> Statistics:
    """Return dashboard figures from a single SELECT.

    All four numbers come from one statement and therefore one snapshot.
    They may be stale as soon as they are returned; nothing is locked.
    """

    users = select(func.count(Traveler.id)).where(Traveler.role == "user").scalar_subquery()
    flights = select(func.count(Flight.id)).scalar_subquery()
    bookings = select(func.count(Booking.id)).scalar_subquery()
    revenue = (
        select(func.coalesce(func.sum(Booking.total_amount), 0))
        .where(Booking.status.in_(REVENUE_STATUSES), Booking.payment_status == "paid")
        .scalar_subquery()
    )
    row = session.execute(
        select(
            users.label("user_count"),
            flights.label("flight_count"),
            bookings.label("booking_count"),
            revenue.label("total_revenue"),
        )
    ).one()
    return Statistics(
        user_count=int(row.user_count),
        flight_count=int(row.flight_count),
        booking_count=int(row.booking_count),
        total_revenue=Decimal(str(row.total_revenue)).quantize(Decimal("0.01")),
    )


def summarize_capacity(session: Session) -> List[dict]:
    """Per-flight seat usage, counting only bookings that still hold seats."""

    rows = session.execute(
        select(
            Flight.flight_number,
            Flight.departure_city,
            Flight.destination_city,
            Flight.status,
            Flight.available_seats,
            Flight.total_seats,
            func.count(Booking.id).label("bookings"),
            func.coalesce(func.sum(Booking.seat_count), 0).label("seats_booked"),
        )
        .outerjoin(Booking, and_(Booking.flight_id == Flight.id, Booking.status != "cancelled"))
        .group_by(Flight.id)
        .order_by(Flight.departure_time)
    ).all()
    return [
        {
            "flight": row.flight_number,
            "route": f"{row.departure_city}-{row.destination_city}",
            "status": row.status,
            "available": row.available_seats,
            "capacity": row.total_seats,
            "bookings": row.bookings,
            "seats_booked": int(row.seats_booked),
        }
        for row in rows
    ]
