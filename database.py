"""
Flat-file snapshot store.

The whole ledger (users and movies) lives in one JSON document. Every
operation reads it in full and every mutation rewrites it in full. A single
re-entrant lock serializes each read-modify-write cycle so concurrent
requests handled by the same process cannot lose updates.
"""

import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from pydantic import ValidationError

from data import initial_snapshot
from schemas import BookingStatus, Snapshot

logger = logging.getLogger(__name__)

DATA_FILE = os.getenv("DATA_FILE", "data.json")


class StoreError(Exception):
    """The snapshot could not be read, parsed or written."""


def _fill_capacities(snapshot: Snapshot) -> None:
    # capacity = seats still free + seats held by confirmed bookings
    held = {}
    for user in snapshot.users:
        for booking in user.bookings:
            if booking.status == BookingStatus.CONFIRMED:
                key = (booking.movie_id, booking.show_id)
                held[key] = held.get(key, 0) + booking.seats
    for movie in snapshot.movies:
        for show in movie.shows:
            if show.capacity is None:
                show.capacity = show.available_seats + held.get((movie.id, show.show_id), 0)


class SnapshotStore:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.RLock()

    def initialize(self) -> None:
        """Write the seed catalogue if the data file does not exist yet."""
        with self._lock:
            if self.path.exists():
                return
            logger.info("Seeding data file %s", self.path)
            self._write(Snapshot.model_validate(initial_snapshot()))

    def load(self) -> Snapshot:
        with self._lock:
            try:
                contents = self.path.read_text(encoding="utf-8")
                snapshot = Snapshot.model_validate(json.loads(contents))
            except (OSError, ValueError, ValidationError) as exc:
                logger.error("Failed to read data file %s: %s", self.path, exc)
                raise StoreError(f"Cannot read {self.path}") from exc
            _fill_capacities(snapshot)
            return snapshot

    def save(self, snapshot: Snapshot) -> None:
        with self._lock:
            self._write(snapshot)

    def _write(self, snapshot: Snapshot) -> None:
        payload = json.dumps(snapshot.model_dump(mode="json", by_alias=True), indent=2)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp.write_text(payload, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as exc:
            logger.error("Failed to write data file %s: %s", self.path, exc)
            raise StoreError(f"Cannot write {self.path}") from exc

    @contextmanager
    def transaction(self) -> Iterator[Snapshot]:
        """
        Hold the lock for a full read-modify-write cycle.

        The snapshot is written back only when the block exits normally; any
        exception discards the in-memory changes.
        """
        with self._lock:
            snapshot = self.load()
            yield snapshot
            self._write(snapshot)


db: Optional[SnapshotStore] = None


def get_store() -> SnapshotStore:
    global db
    if db is None:
        db = SnapshotStore(DATA_FILE)
        db.initialize()
    return db
