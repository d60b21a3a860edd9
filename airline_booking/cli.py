"""Command line interface for managing the booking database."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import Iterable, List

from tabulate import tabulate

from .config import Settings
from .database import init_db
from .dataset import generate_sample_data
from .errors import BookingError
from .logging_config import configure_logging
from .reporting import compute_statistics, summarize_capacity

logger = logging.getLogger(__name__)

_CAPACITY_HEADERS = {
    "flight": "Flight",
    "route": "Route",
    "status": "Status",
    "available": "Available",
    "capacity": "Capacity",
    "bookings": "Bookings",
    "seats_booked": "Seats booked",
}


def _render_statistics(session_factory) -> str:
    with session_factory() as session:
        stats = compute_statistics(session)
        capacity = summarize_capacity(session)
    summary = tabulate(
        [
            ["Users", stats.user_count],
            ["Flights", stats.flight_count],
            ["Bookings", stats.booking_count],
            ["Revenue", f"{stats.total_revenue:,.2f}"],
        ],
        tablefmt="github",
    )
    if not capacity:
        return summary
    rows: List[list] = [[row[key] for key in _CAPACITY_HEADERS] for row in capacity]
    return summary + "\n\n" + tabulate(rows, headers=list(_CAPACITY_HEADERS.values()), tablefmt="github")


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage the airline booking database.")
    parser.add_argument(
        "--db-url",
        default=None,
        help="SQLAlchemy database URL (default: AIRLINE_BOOKING_DB_URL or sqlite airline.db).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database tables.")

    seed = subparsers.add_parser("seed", help="Populate the database with sample data.")
    seed.add_argument("--flights", type=int, default=25, help="Number of flights to create.")
    seed.add_argument("--travelers", type=int, default=200, help="Number of travelers to create.")
    seed.add_argument("--bookings", type=int, default=500, help="Number of booking attempts.")

    subparsers.add_parser("stats", help="Print dashboard statistics and per-flight capacity.")
    return parser.parse_args(list(argv))


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = Settings.from_env()
    configure_logging(settings)
    try:
        session_factory = init_db(args.db_url, settings=settings)
        if args.command == "init-db":
            print("Database initialised")
        elif args.command == "seed":
            summary = generate_sample_data(
                session_factory,
                flights=args.flights,
                travelers=args.travelers,
                bookings=args.bookings,
                settings=settings,
            )
            print(
                f"Created {summary['flights']} flights, {summary['travelers']} travelers"
                f" and {summary['bookings']} bookings"
            )
        elif args.command == "stats":
            print(_render_statistics(session_factory))
    except BookingError as exc:
        logger.error("command failed", extra={"command": args.command, "error": str(exc)})
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
