from datetime import datetime, timedelta, timezone
from itertools import count

import pytest
from fastapi.testclient import TestClient

from database import SnapshotStore, get_store
from ledger import BookingLedger
from main import app
from schemas import Snapshot


INCEPTION = {
    "id": 1,
    "title": "Inception",
    "genre": "Sci-Fi",
    "duration": 148,
    "shows": [
        {"showId": 1, "time": "2026-11-01T14:00:00Z", "pricePerSeat": 12.5, "availableSeats": 10},
        {"showId": 2, "time": "2026-11-01T19:30:00Z", "pricePerSeat": 15.0, "availableSeats": 3},
    ],
}


def ticking_clock():
    """Clock that advances one second per call."""
    start = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
    ticks = count()
    return lambda: (start + timedelta(seconds=next(ticks))).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@pytest.fixture
def store(tmp_path):
    store = SnapshotStore(tmp_path / "data.json")
    store.save(Snapshot.model_validate({"users": [], "movies": [INCEPTION]}))
    return store


@pytest.fixture
def ledger(store):
    return BookingLedger(store, clock=ticking_clock())


@pytest.fixture
def user(ledger):
    return ledger.signup("ada@example.com", username="ada")


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def show_seats(store, movie_id=1, show_id=1):
    movie = next(m for m in store.load().movies if m.id == movie_id)
    return next(s for s in movie.shows if s.show_id == show_id).available_seats
