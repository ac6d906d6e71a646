"""
Data Schemas for CineLedger

The persisted snapshot is a single JSON document holding every user and
movie. Models serialize with camelCase keys (availableSeats, bookingId, ...)
and expose snake_case attributes in Python.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookingStatus(str, Enum):
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


# Legacy data files store the status as the enum ordinal.
_LEGACY_STATUS = {0: BookingStatus.CONFIRMED, 1: BookingStatus.CANCELLED}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Booking(CamelModel):
    booking_id: str = Field(..., description="6 character alphanumeric token")
    movie_id: int
    show_id: int
    seats: int = Field(..., gt=0)
    total_amount: float
    status: BookingStatus = BookingStatus.CONFIRMED
    booking_date: str = Field(default_factory=utc_now_iso, description="ISO-8601, refreshed on every change")

    @field_validator("status", mode="before")
    @classmethod
    def _accept_legacy_status(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return _LEGACY_STATUS.get(value, value)
        return value


class Show(CamelModel):
    show_id: int = Field(..., description="Unique within its movie")
    time: str
    price_per_seat: float = Field(..., ge=0)
    available_seats: int = Field(..., ge=0)
    capacity: Optional[int] = Field(None, ge=0, description="Derived on load when missing")


class Movie(CamelModel):
    id: int
    title: str
    genre: str
    duration: int = Field(..., description="Duration in minutes")
    shows: List[Show] = Field(default_factory=list)


class User(CamelModel):
    id: int
    username: Optional[str] = None
    # legacy files may hold users with a missing or malformed email
    email: Optional[str] = None
    password_hash: Optional[str] = Field(None, description="bcrypt hash, never returned by the API")
    bookings: List[Booking] = Field(default_factory=list)


class Snapshot(BaseModel):
    users: List[User] = Field(default_factory=list)
    movies: List[Movie] = Field(default_factory=list)


# Request payloads

class SignupPayload(BaseModel):
    username: Optional[str] = None
    email: EmailStr
    password: Optional[str] = None


class CreateBookingPayload(CamelModel):
    movie_id: int
    show_id: int
    seats: int = Field(..., gt=0)


class UpdateBookingPayload(BaseModel):
    seats: int = Field(..., gt=0)


# Response payloads

class SignupResponse(CamelModel):
    message: str = "User created successfully"
    user_id: int


class BookingResult(CamelModel):
    message: str = "Booking successful"
    booking_id: str
    movie_title: Optional[str] = None
    show_time: Optional[str] = None
    seats: int
    total_amount: float


class CancelResult(CamelModel):
    message: str = "Booking cancelled successfully"
    booking_id: str
    already_cancelled: bool = False


class Summary(CamelModel):
    user_id: int
    user_name: Optional[str] = None
    total_bookings: int = 0
    total_amount_spent: float = 0
    confirmed_bookings: int = 0
    cancelled_bookings: int = 0
    total_seats_booked: int = 0
