from __future__ import annotations

import logging

from sqlalchemy import func, select

from airline_booking import cli
from airline_booking.config import Settings
from airline_booking.dataset import generate_sample_data
from airline_booking.logging_config import PACKAGE_LOGGER, configure_logging
from airline_booking.models import Booking, Flight, Traveler


def test_dataset_generator_creates_consistent_records(session_factory):
    summary = generate_sample_data(session_factory, flights=5, travelers=20, bookings=25)

    with session_factory() as session:
        flight_count = session.query(Flight).count()
        traveler_count = session.query(Traveler).count()
        for flight in session.scalars(select(Flight)):
            held = session.scalar(
                select(func.coalesce(func.sum(Booking.seat_count), 0)).where(
                    Booking.flight_id == flight.id, Booking.status != "cancelled"
                )
            )
            assert 0 <= flight.available_seats <= flight.total_seats
            assert flight.available_seats == flight.total_seats - held
    assert flight_count == 5
    assert traveler_count == 20
    assert 0 < summary["bookings"] <= 25


def test_cli_seed_and_stats(tmp_path, capsys):
    db_url = f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"

    assert cli.main(["--db-url", db_url, "init-db"]) == 0
    assert cli.main(["--db-url", db_url, "seed", "--flights", "3", "--travelers", "5", "--bookings", "8"]) == 0
    assert cli.main(["--db-url", db_url, "stats"]) == 0

    output = capsys.readouterr().out
    assert "Database initialised" in output
    assert "Created 3 flights, 5 travelers" in output
    assert "Revenue" in output
    assert "AR1000" in output


def test_settings_from_environment():
    settings = Settings.from_env(
        {
            "AIRLINE_BOOKING_DB_URL": "sqlite+pysqlite:///:memory:",
            "AIRLINE_BOOKING_ECHO": "yes",
            "AIRLINE_BOOKING_CANCELLATION_WINDOW_HOURS": "48",
            "AIRLINE_BOOKING_REFERENCE_ATTEMPTS": "2",
            "AIRLINE_BOOKING_LOG_LEVEL": "debug",
            "AIRLINE_BOOKING_LOG_JSON": "0",
        }
    )
    assert settings.db_url.endswith(":memory:")
    assert settings.echo is True
    assert settings.cancellation_window_hours == 48
    assert settings.reference_attempts == 2
    assert settings.log_level == "DEBUG"
    assert settings.log_json is False
    assert Settings.from_env({}) == Settings()


def test_configure_logging_replaces_handlers():
    configure_logging(Settings(log_level="WARNING"))
    logger = configure_logging(Settings(log_level="DEBUG", log_json=False))

    assert logger is logging.getLogger(PACKAGE_LOGGER)
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG


def test_cli_reports_reseeding_as_an_error(tmp_path, capsys):
    db_url = f"sqlite+pysqlite:///{tmp_path / 'cli.db'}"
    seed = ["--db-url", db_url, "seed", "--flights", "2", "--travelers", "3", "--bookings", "2"]

    assert cli.main(seed) == 0
    assert cli.main(seed) == 1
    assert "Error:" in capsys.readouterr().err
