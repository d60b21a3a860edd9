from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest

from airline_booking.config import Settings
from airline_booking.database import session_scope
from airline_booking.errors import (
    FlightNotBookable,
    FlightNotFound,
    InsufficientInventory,
    ReferenceGenerationFailed,
    TravelerInactive,
    TravelerNotFound,
    ValidationFailure,
)
from airline_booking.models import Booking
from airline_booking.services import create_booking, generate_reference, set_traveler_active, update_flight


def test_booking_decrements_inventory_and_charges_per_passenger(
    session_factory, make_flight, make_traveler, fetch_flight, passengers
):
    flight = make_flight(total_seats=5, price=Decimal("149.50"))
    traveler = make_traveler()

    booking = create_booking(
        session_factory, traveler_id=traveler.id, flight_id=flight.id, passengers=passengers(3)
    )

    assert booking.status == "confirmed"
    assert booking.payment_status == "paid"
    assert booking.seat_count == 3
    assert booking.total_amount == Decimal("448.50")
    assert booking.reference.startswith("BK")
    assert [p.first_name for p in booking.passengers] == ["Passenger0", "Passenger1", "Passenger2"]
    assert [p.seat_number for p in booking.passengers] == ["1A", "1B", "1C"]
    assert booking.flight.flight_number == "AR100"
    assert fetch_flight(flight.id).available_seats == 2


def test_sold_out_request_fails_without_side_effects(
    session_factory, make_flight, make_traveler, fetch_flight, count_bookings, passengers
):
    flight = make_flight(total_seats=2)
    traveler = make_traveler()
    create_booking(session_factory, traveler_id=traveler.id, flight_id=flight.id, passengers=passengers(2))

    with pytest.raises(InsufficientInventory) as excinfo:
        create_booking(session_factory, traveler_id=traveler.id, flight_id=flight.id, passengers=passengers(1))

    assert excinfo.value.available == 0
    assert excinfo.value.requested == 1
    assert fetch_flight(flight.id).available_seats == 0
    assert count_bookings() == 1


def test_unknown_flight_is_reported(session_factory, make_traveler, passengers):
    traveler = make_traveler()
    with pytest.raises(FlightNotFound):
        create_booking(session_factory, traveler_id=traveler.id, flight_id=999, passengers=passengers(1))


def test_unknown_traveler_is_reported(session_factory, make_flight, fetch_flight, passengers):
    flight = make_flight()
    with pytest.raises(TravelerNotFound):
        create_booking(session_factory, traveler_id=999, flight_id=flight.id, passengers=passengers(1))
    assert fetch_flight(flight.id).available_seats == 2


def test_deactivated_traveler_cannot_book(
    session_factory, make_flight, make_traveler, fetch_flight, count_bookings, passengers
):
    flight = make_flight()
    traveler = make_traveler()
    with session_scope(session_factory) as session:
        set_traveler_active(session, traveler.id, False)

    with pytest.raises(TravelerInactive):
        create_booking(session_factory, traveler_id=traveler.id, flight_id=flight.id, passengers=passengers(1))
    assert fetch_flight(flight.id).available_seats == 2
    assert count_bookings() == 0

    with session_scope(session_factory) as session:
        set_traveler_active(session, traveler.id, True)
    create_booking(session_factory, traveler_id=traveler.id, flight_id=flight.id, passengers=passengers(1))
    assert fetch_flight(flight.id).available_seats == 1


@pytest.mark.parametrize("status", ["delayed", "cancelled", "completed"])
def test_only_scheduled_flights_are_bookable(
    session_factory, make_flight, make_traveler, fetch_flight, passengers, status
):
    flight = make_flight(status=status)
    traveler = make_traveler()

    with pytest.raises(FlightNotBookable):
        create_booking(session_factory, traveler_id=traveler.id, flight_id=flight.id, passengers=passengers(1))
    assert fetch_flight(flight.id).available_seats == 2


@pytest.mark.parametrize(
    "bad_passengers",
    [
        [],
        [{"first_name": "Ava", "last_name": "Lee", "date_of_birth": "1990-01-01", "gender": "robot"}],
        [{"first_name": "", "last_name": "Lee", "date_of_birth": "1990-01-01", "gender": "male"}],
        [{"first_name": "Ava", "last_name": "Lee", "gender": "male"}],
        [{"first_name": "Ava", "last_name": "Lee", "date_of_birth": "2999-01-01", "gender": "male"}],
    ],
)
def test_malformed_passengers_are_rejected_before_reserving(
    session_factory, make_flight, make_traveler, fetch_flight, count_bookings, bad_passengers
):
    flight = make_flight()
    traveler = make_traveler()

    with pytest.raises(ValidationFailure):
        create_booking(session_factory, traveler_id=traveler.id, flight_id=flight.id, passengers=bad_passengers)
    assert fetch_flight(flight.id).available_seats == 2
    assert count_bookings() == 0


def test_camel_case_passenger_payload_is_accepted(session_factory, make_flight, make_traveler):
    flight = make_flight()
    traveler = make_traveler()
    booking = create_booking(
        session_factory,
        traveler_id=traveler.id,
        flight_id=flight.id,
        passengers=[{"firstName": "Mia", "lastName": "Garcia", "dateOfBirth": "1985-03-02", "gender": "other"}],
    )
    assert booking.passengers[0].last_name == "Garcia"


def test_total_amount_is_fixed_at_booking_time(session_factory, make_flight, make_traveler, passengers):
    flight = make_flight(total_seats=4, price=Decimal("100.00"))
    traveler = make_traveler()
    booking = create_booking(session_factory, traveler_id=traveler.id, flight_id=flight.id, passengers=passengers(2))

    with session_scope(session_factory) as session:
        update_flight(session, flight.id, price=Decimal("999.00"))

    later = create_booking(session_factory, traveler_id=traveler.id, flight_id=flight.id, passengers=passengers(1))
    with session_factory() as session:
        stored = session.get(Booking, booking.id)
        assert stored.total_amount == Decimal("200.00")
    assert later.total_amount == Decimal("999.00")


def test_reference_collision_retries_with_a_new_reference(session_factory, make_flight, make_traveler, passengers):
    flight = make_flight(total_seats=4)
    traveler = make_traveler()
    create_booking(
        session_factory,
        traveler_id=traveler.id,
        flight_id=flight.id,
        passengers=passengers(1),
        reference_factory=lambda: "BK00000001AAAA",
    )
    references = iter(["BK00000001AAAA", "BK00000002BBBB"])

    booking = create_booking(
        session_factory,
        traveler_id=traveler.id,
        flight_id=flight.id,
        passengers=passengers(1),
        reference_factory=lambda: next(references),
    )

    assert booking.reference == "BK00000002BBBB"


def test_exhausted_reference_attempts_roll_back_the_reservation(
    session_factory, make_flight, make_traveler, fetch_flight, passengers
):
    flight = make_flight(total_seats=4)
    traveler = make_traveler()
    create_booking(
        session_factory,
        traveler_id=traveler.id,
        flight_id=flight.id,
        passengers=passengers(1),
        reference_factory=lambda: "BK00000001AAAA",
    )

    with pytest.raises(ReferenceGenerationFailed):
        create_booking(
            session_factory,
            traveler_id=traveler.id,
            flight_id=flight.id,
            passengers=passengers(2),
            settings=Settings(reference_attempts=3),
            reference_factory=lambda: "BK00000001AAAA",
        )
    assert fetch_flight(flight.id).available_seats == 3


def test_generated_reference_shape():
    reference = generate_reference(now=1_700_000_123.0)
    assert reference.startswith("BK00123000")
    assert len(reference) == 14
    assert reference[10:].isalnum() and reference[10:].upper() == reference[10:]


def test_concurrent_reservations_never_overbook(
    session_factory, make_flight, make_traveler, fetch_flight, count_bookings, passengers
):
    flight = make_flight(total_seats=4)
    travelers = [make_traveler() for _ in range(10)]
    barrier = Barrier(len(travelers))

    def attempt(traveler_id: int) -> str:
        barrier.wait()
        try:
            create_booking(session_factory, traveler_id=traveler_id, flight_id=flight.id, passengers=passengers(1))
        except InsufficientInventory:
            return "sold out"
        return "booked"

    with ThreadPoolExecutor(max_workers=len(travelers)) as pool:
        results = list(pool.map(attempt, [t.id for t in travelers]))

    assert results.count("booked") == 4
    assert results.count("sold out") == 6
    assert fetch_flight(flight.id).available_seats == 0
    assert count_bookings() == 4


def test_mixed_party_sizes_exhaust_inventory_exactly(
    session_factory, make_flight, make_traveler, fetch_flight, passengers
):
    flight = make_flight(total_seats=7)
    traveler = make_traveler()
    sizes = [3, 2, 2, 3, 1, 2]
    barrier = Barrier(len(sizes))

    def attempt(size: int) -> int:
        barrier.wait()
        try:
            create_booking(session_factory, traveler_id=traveler.id, flight_id=flight.id, passengers=passengers(size))
        except InsufficientInventory:
            return 0
        return size

    with ThreadPoolExecutor(max_workers=len(sizes)) as pool:
        booked = sum(pool.map(attempt, sizes))

    refreshed = fetch_flight(flight.id)
    assert 0 <= refreshed.available_seats <= refreshed.total_seats
    assert refreshed.available_seats + booked == 7


def test_last_seat_goes_to_exactly_one_of_two_simultaneous_requests(
    session_factory, make_flight, make_traveler, fetch_flight, passengers
):
    flight = make_flight(total_seats=1)
    first, second = make_traveler(), make_traveler()
    barrier = Barrier(2)

    def attempt(traveler_id: int) -> bool:
        barrier.wait()
        try:
            create_booking(session_factory, traveler_id=traveler_id, flight_id=flight.id, passengers=passengers(1))
        except InsufficientInventory:
            return False
        return True

    with ThreadPoolExecutor(max_workers=2) as pool:
        results = list(pool.map(attempt, [first.id, second.id]))

    assert sorted(results) == [False, True]
    assert fetch_flight(flight.id).available_seats == 0
