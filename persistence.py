"""
Durable storage for the three collections owned by the booking directory.

Loads return an empty list when nothing has been stored yet; only genuine
I/O or decoding failures raise StorageError. `persist_all` replaces all
three collections together or leaves the previous state untouched.
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from pydantic import BaseModel, ValidationError

from errors import StorageError
from models import Account, Booking, Room

logger = logging.getLogger(__name__)


class Persistence(Protocol):
    def load_accounts(self) -> List[Account]: ...

    def load_rooms(self) -> List[Room]: ...

    def load_bookings(self) -> List[Booking]: ...

    def persist_all(
        self,
        accounts: Sequence[Account],
        rooms: Sequence[Room],
        bookings: Sequence[Booking],
    ) -> None: ...


class Snapshot(BaseModel):
    accounts: List[Account] = []
    rooms: List[Room] = []
    bookings: List[Booking] = []


def _copy(items: Sequence[BaseModel]) -> list:
    return [item.model_copy(deep=True) for item in items]


class InMemoryPersistence:
    """Keeps copies of the last persisted collections. Restarting clears everything."""

    def __init__(self, snapshot: Optional[Snapshot] = None) -> None:
        self._snapshot = snapshot.model_copy(deep=True) if snapshot else Snapshot()
        self.persist_count = 0

    def load_accounts(self) -> List[Account]:
        return _copy(self._snapshot.accounts)

    def load_rooms(self) -> List[Room]:
        return _copy(self._snapshot.rooms)

    def load_bookings(self) -> List[Booking]:
        return _copy(self._snapshot.bookings)

    def persist_all(self, accounts, rooms, bookings) -> None:
        self._snapshot = Snapshot(
            accounts=_copy(accounts),
            rooms=_copy(rooms),
            bookings=_copy(bookings),
        )
        self.persist_count += 1


class JsonFilePersistence:
    """
    Stores all three collections in one JSON document.

    Writes go to a temporary file next to the target which is then renamed
    over it, so readers see either the old snapshot or the new one.
    """

    def __init__(self, path: os.PathLike | str) -> None:
        self.path = Path(path)

    def _read(self) -> Snapshot:
        if not self.path.exists():
            return Snapshot()
        try:
            return Snapshot.model_validate_json(self.path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.error("Could not load %s: %s", self.path, e)
            raise StorageError(f"Could not load data from {self.path}.") from e

    def load_accounts(self) -> List[Account]:
        return self._read().accounts

    def load_rooms(self) -> List[Room]:
        return self._read().rooms

    def load_bookings(self) -> List[Booking]:
        return self._read().bookings

    def persist_all(self, accounts, rooms, bookings) -> None:
        payload = Snapshot(
            accounts=list(accounts),
            rooms=list(rooms),
            bookings=list(bookings),
        ).model_dump_json(indent=2)

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except OSError as e:
            logger.error("Could not write %s: %s", self.path, e)
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(f"Could not write data to {self.path}.") from e
        logger.debug(
            "Persisted %d accounts, %d rooms, %d bookings to %s",
            len(accounts), len(rooms), len(bookings), self.path,
        )
