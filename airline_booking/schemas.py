"""Pydantic models for request payloads and API responses."""
from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Literal, Optional

from pydantic import (
    AliasGenerator,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .errors import ValidationFailure

Gender = Literal["male", "female", "other"]
FlightStatus = Literal["scheduled", "delayed", "cancelled", "completed"]


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Timestamps are stored as naive UTC
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class _Payload(BaseModel):
    # Accept both snake_case and the camelCase used by the web client
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",
    )


class PassengerIn(_Payload):
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    date_of_birth: date
    gender: Gender

    @field_validator("date_of_birth")
    @classmethod
    def _not_in_future(cls, value: date) -> date:
        if value > date.today():
            raise ValueError("date of birth cannot be in the future")
        return value


class BookingRequest(_Payload):
    flight_id: int
    passengers: List[PassengerIn] = Field(min_length=1)


class CancelRequest(_Payload):
    reason: Optional[str] = Field(default=None, max_length=500)


class TravelerStatusUpdate(_Payload):
    is_active: bool


class FlightCreate(_Payload):
    flight_number: str = Field(min_length=2, max_length=10)
    airline: str = Field(min_length=1, max_length=60)
    departure_city: str = Field(min_length=1, max_length=60)
    destination_city: str = Field(min_length=1, max_length=60)
    departure_time: datetime
    arrival_time: datetime
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    total_seats: int = Field(gt=0)
    aircraft: str = Field(min_length=1, max_length=20)
    gate: Optional[str] = Field(default=None, max_length=10)

    @field_validator("flight_number")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()

    @field_validator("departure_time", "arrival_time")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return _naive_utc(value)

    @model_validator(mode="after")
    def _arrives_after_departure(self) -> "FlightCreate":
        if self.arrival_time <= self.departure_time:
            raise ValueError("arrival time must be after departure time")
        return self


class FlightUpdate(_Payload):
    """Fields an administrator may edit. Anything else is rejected."""

    airline: Optional[str] = Field(default=None, min_length=1, max_length=60)
    departure_city: Optional[str] = Field(default=None, min_length=1, max_length=60)
    destination_city: Optional[str] = Field(default=None, min_length=1, max_length=60)
    departure_time: Optional[datetime] = None
    arrival_time: Optional[datetime] = None
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    total_seats: Optional[int] = Field(default=None, gt=0)
    aircraft: Optional[str] = Field(default=None, min_length=1, max_length=20)
    gate: Optional[str] = Field(default=None, max_length=10)
    status: Optional[FlightStatus] = None

    @field_validator("departure_time", "arrival_time")
    @classmethod
    def _to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(value)


class _Response(BaseModel):
    model_config = ConfigDict(alias_generator=AliasGenerator(serialization_alias=to_camel), from_attributes=True)


class PassengerOut(_Response):
    first_name: str
    last_name: str
    date_of_birth: date
    gender: str
    seat_number: Optional[str] = None


class FlightOut(_Response):
    id: int
    flight_number: str
    airline: str
    departure_city: str
    destination_city: str
    departure_time: datetime
    arrival_time: datetime
    duration: str
    price: Decimal
    total_seats: int
    available_seats: int
    aircraft: str
    gate: Optional[str] = None
    status: str


class FlightSummary(_Response):
    id: int
    flight_number: str
    airline: str
    departure_city: str
    destination_city: str
    departure_time: datetime
    arrival_time: datetime
    status: str


class BookingOut(_Response):
    id: int
    reference: str
    traveler_id: int
    flight: FlightSummary
    passengers: List[PassengerOut]
    seat_count: int
    total_amount: Decimal
    status: str
    payment_status: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None


class TravelerOut(_Response):
    id: int
    first_name: str
    last_name: str
    email: str
    role: str
    is_active: bool


class StatisticsOut(_Response):
    total_users: int
    total_flights: int
    total_bookings: int
    total_revenue: Decimal

    @field_serializer("total_revenue", when_used="json")
    def _revenue_as_number(self, value: Decimal) -> float:
        return float(value)


_PASSENGER_LIST = TypeAdapter(List[PassengerIn])


def _error_messages(exc: ValidationError) -> List[str]:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return messages


def parse_passengers(passengers: Iterable[Any]) -> List[PassengerIn]:
    """Validate raw passenger records, raising :class:`ValidationFailure`."""

    items = [
        item.model_dump() if isinstance(item, PassengerIn) else item
        for item in (passengers or [])
    ]
    if not items:
        raise ValidationFailure("at least one passenger is required")
    try:
        return _PASSENGER_LIST.validate_python(items)
    except ValidationError as exc:
        raise ValidationFailure("invalid passenger data", _error_messages(exc)) from exc


def parse_flight_update(changes: dict) -> FlightUpdate:
    try:
        return FlightUpdate.model_validate(changes)
    except ValidationError as exc:
        raise ValidationFailure("invalid flight update", _error_messages(exc)) from exc


def parse_flight_create(fields: dict) -> FlightCreate:
    try:
        return FlightCreate.model_validate(fields)
    except ValidationError as exc:
        raise ValidationFailure("invalid flight", _error_messages(exc)) from exc
