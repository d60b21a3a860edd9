"""Flight inventory and booking transaction engine."""
from typing import Any

from .config import Settings
from .database import create_session_factory, init_db, session_scope
from .dataset import generate_sample_data
from .errors import (
    AlreadyCancelled,
    BookingError,
    BookingNotFound,
    CancellationWindowClosed,
    DuplicateFlightNumber,
    DuplicateTravelerEmail,
    FlightNotBookable,
    FlightNotFound,
    InsufficientInventory,
    TravelerInactive,
    TravelerNotFound,
    ValidationFailure,
)
from .inventory import FlightInventoryStore
from .reporting import Statistics, compute_statistics
from .services import (
    add_flight,
    add_traveler,
    cancel_booking,
    complete_flight,
    create_booking,
    ensure_cancellable,
    set_traveler_active,
    update_flight,
)


def create_app(*args: Any, **kwargs: Any):  # pragma: no cover - thin wrapper
    from .web import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Settings",
    "create_session_factory",
    "init_db",
    "session_scope",
    "generate_sample_data",
    "AlreadyCancelled",
    "BookingError",
    "BookingNotFound",
    "CancellationWindowClosed",
    "DuplicateFlightNumber",
    "DuplicateTravelerEmail",
    "FlightNotBookable",
    "FlightNotFound",
    "InsufficientInventory",
    "TravelerInactive",
    "TravelerNotFound",
    "ValidationFailure",
    "FlightInventoryStore",
    "Statistics",
    "compute_statistics",
    "add_flight",
    "add_traveler",
    "cancel_booking",
    "complete_flight",
    "create_booking",
    "create_app",
    "ensure_cancellable",
    "set_traveler_active",
    "update_flight",
]
