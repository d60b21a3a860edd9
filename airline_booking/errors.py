"""Error taxonomy for reservation, cancellation and flight administration."""
from __future__ import annotations


class BookingError(RuntimeError):
    """Base class for every error the booking engine reports to callers."""

    status_code = 400


class ValidationFailure(BookingError):
    """Raised when input is malformed. Nothing has been written yet."""

    status_code = 422

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class FlightNotFound(BookingError):
    status_code = 404


class TravelerNotFound(BookingError):
    status_code = 404


class BookingNotFound(BookingError):
    """Raised when a booking does not exist or belongs to another traveler."""

    status_code = 404


class FlightNotBookable(BookingError):
    """Raised when the flight is not in the ``scheduled`` state."""

    status_code = 409


class InsufficientInventory(BookingError):
    """Raised when fewer seats remain than passengers were requested."""

    status_code = 409

    def __init__(self, flight_id: int, requested: int, available: int) -> None:
        super().__init__(
            f"flight {flight_id} has {available} seat(s) available, {requested} requested"
        )
        self.flight_id = flight_id
        self.requested = requested
        self.available = available


class AlreadyCancelled(BookingError):
    status_code = 409


class CancellationWindowClosed(BookingError):
    status_code = 409


class DuplicateFlightNumber(BookingError):
    status_code = 409


class DuplicateTravelerEmail(BookingError):
    status_code = 409


class TravelerInactive(BookingError):
    """Raised when a deactivated traveler tries to book."""

    status_code = 403


class ReferenceGenerationFailed(BookingError):
    """Raised when no unique booking reference could be produced."""

    status_code = 503


class InventoryIntegrityError(BookingError):
    """Raised when a seat release would push availability above capacity."""

    status_code = 500


__all__ = [
    "AlreadyCancelled",
    "BookingError",
    "BookingNotFound",
    "CancellationWindowClosed",
    "DuplicateFlightNumber",
    "DuplicateTravelerEmail",
    "FlightNotBookable",
    "FlightNotFound",
    "InsufficientInventory",
    "InventoryIntegrityError",
    "ReferenceGenerationFailed",
    "TravelerInactive",
    "TravelerNotFound",
    "ValidationFailure",
]
