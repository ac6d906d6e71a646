import json
import threading

import pytest

from conftest import show_seats
from database import SnapshotStore, StoreError
from ledger import BookingLedger, InsufficientSeats
from schemas import BookingStatus


def test_initialize_seeds_catalogue(tmp_path):
    store = SnapshotStore(tmp_path / "fresh.json")
    store.initialize()

    snapshot = store.load()
    assert snapshot.users == []
    assert snapshot.movies[0].title == "Inception"


def test_initialize_keeps_existing_file(store):
    store.initialize()
    assert [m.id for m in store.load().movies] == [1]


def test_snapshot_is_pretty_printed_with_camel_case_keys(ledger, store, user):
    ledger.create_booking(user.id, 1, 1, 2)

    raw = store.path.read_text()
    data = json.loads(raw)
    assert raw.startswith('{\n  "users"')
    assert data["movies"][0]["shows"][0]["availableSeats"] == 8
    assert data["users"][0]["bookings"][0]["status"] == "Confirmed"
    assert "passwordHash" in data["users"][0]


def test_failed_transaction_writes_nothing(store):
    before = store.path.read_text()

    with pytest.raises(RuntimeError):
        with store.transaction() as snapshot:
            snapshot.movies[0].shows[0].available_seats = 0
            raise RuntimeError("boom")

    assert store.path.read_text() == before


def test_unreadable_file_raises_store_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")

    with pytest.raises(StoreError):
        SnapshotStore(path).load()


def test_missing_file_raises_store_error(tmp_path):
    with pytest.raises(StoreError):
        SnapshotStore(tmp_path / "absent.json").load()


def test_legacy_file_is_loaded(tmp_path):
    path = tmp_path / "legacy.json"
    path.write_text(json.dumps({
        "users": [{
            "id": 0,
            "username": "old",
            "email": "old@example.com",
            "bookings": [
                {"bookingId": "ABC123", "showId": 1, "movieId": 1, "seats": 3,
                 "totalAmount": 30, "status": 0, "bookingDate": "2024-01-01T00:00:00.000Z"},
                {"bookingId": "DEF456", "showId": 1, "movieId": 1, "seats": 2,
                 "totalAmount": 20, "status": 1, "bookingDate": "2024-01-01T00:00:00.000Z"},
            ],
        }, {
            "id": 1,
            "username": "noemail",
            "password": "p",
            "bookings": [],
        }, {
            "id": 2,
            "email": "bob",
            "bookings": [],
        }],
        "movies": [{
            "id": 1, "title": "Inception", "genre": "Sci-Fi", "duration": 148,
            "shows": [{"showId": 1, "time": "14:00", "pricePerSeat": 10, "availableSeats": 7}],
        }],
    }))

    snapshot = SnapshotStore(path).load()

    bookings = snapshot.users[0].bookings
    assert [b.status for b in bookings] == [BookingStatus.CONFIRMED, BookingStatus.CANCELLED]
    # confirmed seats count towards capacity, cancelled ones were already returned
    assert snapshot.movies[0].shows[0].capacity == 10
    assert [u.email for u in snapshot.users] == ["old@example.com", None, "bob"]
    assert BookingLedger(SnapshotStore(path)).list_movies()[0].title == "Inception"


def test_capacity_is_persisted_once_derived(ledger, store, user):
    ledger.create_booking(user.id, 1, 1, 4)
    data = json.loads(store.path.read_text())
    assert data["movies"][0]["shows"][0]["capacity"] == 10


def test_concurrent_bookings_never_oversell(store):
    ledger = BookingLedger(store)
    users = [ledger.signup(f"user{i}@example.com") for i in range(20)]
    outcomes = []
    lock = threading.Lock()

    def book(user_id):
        try:
            ledger.create_booking(user_id, 1, 1, 1)
            result = "ok"
        except InsufficientSeats:
            result = "full"
        with lock:
            outcomes.append(result)

    threads = [threading.Thread(target=book, args=(u.id,)) for u in users]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert outcomes.count("ok") == 10
    assert outcomes.count("full") == 10
    assert show_seats(store) == 0
    booked = sum(len(u.bookings) for u in store.load().users)
    assert booked == 10
