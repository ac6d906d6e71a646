"""
Booking ledger: seat inventory and booking lifecycle.

Every mutating operation runs inside a single store transaction, so a failed
check leaves both the show's seat count and the user's bookings untouched.
"""

import logging
import random
import string
from typing import Callable, List, Optional

from passlib.context import CryptContext

from database import SnapshotStore
from schemas import (
    Booking,
    BookingResult,
    BookingStatus,
    CancelResult,
    Movie,
    Show,
    Snapshot,
    Summary,
    User,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

BOOKING_ID_LENGTH = 6
BOOKING_ID_ALPHABET = string.ascii_uppercase + string.digits


class LedgerError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(LedgerError):
    status_code = 404

    def __init__(self, entity: str, message: Optional[str] = None):
        super().__init__(message or f"{entity} not found")
        self.entity = entity


class InsufficientSeats(LedgerError):
    status_code = 400

    def __init__(self, requested: int, available: int):
        super().__init__("Not enough seats available")
        self.requested = requested
        self.available = available


class InvalidSeats(LedgerError):
    status_code = 400

    def __init__(self, seats: int):
        super().__init__("Seats must be a positive number")
        self.seats = seats


class BookingCancelled(LedgerError):
    status_code = 400

    def __init__(self, booking_id: str):
        super().__init__(f"Booking {booking_id} is cancelled and cannot be updated")
        self.booking_id = booking_id


class EmailAlreadyRegistered(LedgerError):
    status_code = 400

    def __init__(self, email: str):
        super().__init__("Email already registered")
        self.email = email


def generate_booking_id() -> str:
    return "".join(random.choices(BOOKING_ID_ALPHABET, k=BOOKING_ID_LENGTH))


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


# Lookups

def _find_movie(snapshot: Snapshot, movie_id: int) -> Movie:
    for movie in snapshot.movies:
        if movie.id == movie_id:
            return movie
    raise NotFound("Movie")


def _find_user(snapshot: Snapshot, user_id: int) -> User:
    for user in snapshot.users:
        if user.id == user_id:
            return user
    raise NotFound("User")


def _find_show(movie: Movie, show_id: int) -> Show:
    for show in movie.shows:
        if show.show_id == show_id:
            return show
    raise NotFound("Show")


def _require_bookings(user: User) -> List[Booking]:
    if not user.bookings:
        raise NotFound("Booking", "User has no bookings")
    return user.bookings


def _find_booking(user: User, booking_id: str) -> Booking:
    for booking in _require_bookings(user):
        if booking.booking_id == booking_id:
            return booking
    raise NotFound("Booking")


class BookingLedger:
    def __init__(
        self,
        store: SnapshotStore,
        clock: Callable[[], str] = utc_now_iso,
        id_factory: Callable[[], str] = generate_booking_id,
    ):
        self.store = store
        self.clock = clock
        self.id_factory = id_factory

    # Users

    def signup(self, email: str, username: Optional[str] = None, password: Optional[str] = None) -> User:
        with self.store.transaction() as snapshot:
            if any((user.email or "").lower() == email.lower() for user in snapshot.users):
                logger.warning("Signup rejected, email already registered: %s", email)
                raise EmailAlreadyRegistered(email)
            next_id = max((user.id for user in snapshot.users), default=-1) + 1
            user = User(
                id=next_id,
                username=username,
                email=email,
                password_hash=get_password_hash(password) if password else None,
            )
            snapshot.users.append(user)
        logger.info("User %s created", user.id)
        return user

    # Catalogue

    def list_movies(self) -> List[Movie]:
        return self.store.load().movies

    def get_movie(self, movie_id: int) -> Movie:
        return _find_movie(self.store.load(), movie_id)

    def list_shows(self, movie_id: int) -> List[Show]:
        return self.get_movie(movie_id).shows

    # Bookings

    def _new_booking_id(self, snapshot: Snapshot) -> str:
        taken = {b.booking_id for user in snapshot.users for b in user.bookings}
        booking_id = self.id_factory()
        while booking_id in taken:
            booking_id = self.id_factory()
        return booking_id

    def create_booking(self, user_id: int, movie_id: int, show_id: int, seats: int) -> BookingResult:
        if seats <= 0:
            raise InvalidSeats(seats)

        with self.store.transaction() as snapshot:
            movie = _find_movie(snapshot, movie_id)
            user = _find_user(snapshot, user_id)
            show = _find_show(movie, show_id)

            if show.available_seats < seats:
                logger.warning(
                    "Booking rejected for user %s: requested %s, available %s",
                    user_id, seats, show.available_seats,
                )
                raise InsufficientSeats(seats, show.available_seats)

            booking = Booking(
                booking_id=self._new_booking_id(snapshot),
                movie_id=movie.id,
                show_id=show.show_id,
                seats=seats,
                total_amount=seats * show.price_per_seat,
                status=BookingStatus.CONFIRMED,
                booking_date=self.clock(),
            )
            show.available_seats -= seats
            user.bookings.append(booking)

        logger.info("Booking %s created: user %s, %s seats", booking.booking_id, user_id, seats)
        return BookingResult(
            booking_id=booking.booking_id,
            movie_title=movie.title,
            show_time=show.time,
            seats=seats,
            total_amount=booking.total_amount,
        )

    def update_booking(self, user_id: int, booking_id: str, seats: int) -> BookingResult:
        if seats <= 0:
            raise InvalidSeats(seats)

        with self.store.transaction() as snapshot:
            user = _find_user(snapshot, user_id)
            booking = _find_booking(user, booking_id)
            movie = _find_movie(snapshot, booking.movie_id)
            show = _find_show(movie, booking.show_id)

            if booking.status == BookingStatus.CANCELLED:
                logger.warning("Update rejected, booking %s is cancelled", booking_id)
                raise BookingCancelled(booking_id)

            delta = seats - booking.seats
            if delta > 0 and show.available_seats < delta:
                logger.warning(
                    "Update rejected for booking %s: needs %s more, available %s",
                    booking_id, delta, show.available_seats,
                )
                raise InsufficientSeats(delta, show.available_seats)

            show.available_seats -= delta
            booking.seats = seats
            booking.total_amount = seats * show.price_per_seat
            booking.booking_date = self.clock()

        logger.info("Booking %s updated to %s seats", booking_id, seats)
        return BookingResult(
            message="Booking updated successfully",
            booking_id=booking.booking_id,
            seats=seats,
            total_amount=booking.total_amount,
        )

    def cancel_booking(self, user_id: int, booking_id: str) -> CancelResult:
        with self.store.transaction() as snapshot:
            user = _find_user(snapshot, user_id)
            booking = _find_booking(user, booking_id)
            movie = _find_movie(snapshot, booking.movie_id)
            show = _find_show(movie, booking.show_id)

            if booking.status == BookingStatus.CANCELLED:
                logger.info("Booking %s already cancelled", booking_id)
                return CancelResult(
                    message="Booking already cancelled",
                    booking_id=booking_id,
                    already_cancelled=True,
                )

            show.available_seats += booking.seats
            booking.status = BookingStatus.CANCELLED
            booking.booking_date = self.clock()

        logger.info("Booking %s cancelled, %s seats released", booking_id, booking.seats)
        return CancelResult(booking_id=booking_id)

    def list_bookings(self, user_id: int) -> List[Booking]:
        user = _find_user(self.store.load(), user_id)
        return _require_bookings(user)

    def get_booking(self, user_id: int, booking_id: str) -> Booking:
        user = _find_user(self.store.load(), user_id)
        return _find_booking(user, booking_id)

    def summarize(self, user_id: int) -> Summary:
        user = _find_user(self.store.load(), user_id)
        confirmed = [b for b in user.bookings if b.status == BookingStatus.CONFIRMED]
        return Summary(
            user_id=user.id,
            user_name=user.username,
            total_bookings=len(user.bookings),
            total_amount_spent=sum(b.total_amount for b in confirmed),
            confirmed_bookings=len(confirmed),
            cancelled_bookings=len(user.bookings) - len(confirmed),
            total_seats_booked=sum(b.seats for b in confirmed),
        )
