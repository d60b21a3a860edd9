"""FastAPI application exposing the booking engine."""
from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Header, HTTPException
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings
from .database import init_db, session_scope
from .errors import BookingError, ValidationFailure
from .logging_config import configure_logging
from .reporting import compute_statistics
from .schemas import (
    BookingOut,
    BookingRequest,
    CancelRequest,
    FlightCreate,
    FlightOut,
    StatisticsOut,
    TravelerOut,
    TravelerStatusUpdate,
)
from .services import (
    add_flight,
    cancel_booking,
    complete_flight,
    create_booking,
    ensure_cancellable,
    get_booking,
    set_traveler_active,
    update_flight,
)


def _http_error(exc: BookingError) -> HTTPException:
    detail: Any = str(exc)
    if isinstance(exc, ValidationFailure) and exc.errors:
        detail = {"message": str(exc), "errors": exc.errors}
    return HTTPException(status_code=exc.status_code, detail=detail)


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker[Session]] = None,
) -> FastAPI:
    """Return an application bound to ``session_factory`` (created from settings if omitted)."""

    settings = settings or Settings.from_env()
    configure_logging(settings)
    if session_factory is None:
        session_factory = init_db(settings=settings)
    cancellation_window = timedelta(hours=settings.cancellation_window_hours)

    app = FastAPI(title="Airline Booking", description="Flight inventory and booking transactions")
    app.state.settings = settings
    app.state.session_factory = session_factory

    @app.post("/bookings", status_code=201, response_model=None)
    def create(
        payload: BookingRequest,
        traveler_id: int = Header(..., alias="X-Traveler-Id"),
    ) -> Dict[str, Any]:
        try:
            booking = create_booking(
                session_factory,
                traveler_id=traveler_id,
                flight_id=payload.flight_id,
                passengers=payload.passengers,
                settings=settings,
            )
        except BookingError as exc:
            raise _http_error(exc) from exc
        return {"message": "Booking created successfully", "booking": BookingOut.model_validate(booking)}

    @app.put("/bookings/{booking_id}/cancel", response_model=None)
    def cancel(
        booking_id: int,
        payload: Optional[CancelRequest] = Body(default=None),
        traveler_id: int = Header(..., alias="X-Traveler-Id"),
    ) -> Dict[str, Any]:
        reason = payload.reason if payload else None
        try:
            with session_factory() as session:
                current = get_booking(session, traveler_id=traveler_id, booking_id=booking_id)
                if current.status != "cancelled":
                    ensure_cancellable(current, window=cancellation_window)
            booking = cancel_booking(
                session_factory,
                traveler_id=traveler_id,
                booking_id=booking_id,
                reason=reason,
            )
        except BookingError as exc:
            raise _http_error(exc) from exc
        return {"message": "Booking cancelled successfully", "booking": BookingOut.model_validate(booking)}

    @app.get("/bookings/{booking_id}", response_model=None)
    def detail(
        booking_id: int,
        traveler_id: int = Header(..., alias="X-Traveler-Id"),
    ) -> Dict[str, Any]:
        try:
            with session_factory() as session:
                booking = BookingOut.model_validate(
                    get_booking(session, traveler_id=traveler_id, booking_id=booking_id)
                )
        except BookingError as exc:
            raise _http_error(exc) from exc
        return {"booking": booking}

    @app.get("/admin/dashboard", response_model=None)
    def dashboard() -> Dict[str, Any]:
        with session_factory() as session:
            stats = compute_statistics(session)
        return {
            "stats": StatisticsOut(
                total_users=stats.user_count,
                total_flights=stats.flight_count,
                total_bookings=stats.booking_count,
                total_revenue=stats.total_revenue,
            )
        }

    @app.put("/admin/users/{traveler_id}/status", response_model=None)
    def traveler_status(traveler_id: int, payload: TravelerStatusUpdate) -> Dict[str, Any]:
        try:
            with session_scope(session_factory) as session:
                traveler = set_traveler_active(session, traveler_id, payload.is_active)
                body = TravelerOut.model_validate(traveler)
        except BookingError as exc:
            raise _http_error(exc) from exc
        state = "activated" if payload.is_active else "deactivated"
        return {"message": f"User {state} successfully", "user": body}

    @app.post("/flights", status_code=201, response_model=None)
    def add(
        payload: FlightCreate,
        operator_id: Optional[int] = Header(default=None, alias="X-Traveler-Id"),
    ) -> Dict[str, Any]:
        try:
            with session_scope(session_factory) as session:
                flight = add_flight(session, created_by_id=operator_id, **payload.model_dump())
                body = FlightOut.model_validate(flight)
        except BookingError as exc:
            raise _http_error(exc) from exc
        return {"message": "Flight added successfully", "flight": body}

    @app.put("/flights/{flight_id}", response_model=None)
    def edit(flight_id: int, changes: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
        try:
            with session_scope(session_factory) as session:
                flight = update_flight(session, flight_id, changes)
                body = FlightOut.model_validate(flight)
        except BookingError as exc:
            raise _http_error(exc) from exc
        return {"message": "Flight updated successfully", "flight": body}

    @app.post("/flights/{flight_id}/complete", response_model=None)
    def complete(flight_id: int) -> Dict[str, Any]:
        try:
            with session_scope(session_factory) as session:
                body = FlightOut.model_validate(complete_flight(session, flight_id))
        except BookingError as exc:
            raise _http_error(exc) from exc
        return {"message": "Flight completed", "flight": body}

    return app


__all__ = ["create_app"]
