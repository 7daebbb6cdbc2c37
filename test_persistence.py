from __future__ import annotations

from datetime import datetime

import pytest
from pydantic import ValidationError

from BookingDirectory import BookingDirectory
from errors import StorageError
from models import Account, Booking, Room
from permissions import Role
from persistence import JsonFilePersistence


def sample_collections():
    accounts = [
        Account(username="admin", password="admin", role=Role.ADMIN),
        Account(username="alice", password="pw", role=Role.USER),
    ]
    rooms = [Room(name="Alpha", capacity=8, description="Second floor"), Room(name="Bravo")]
    bookings = [
        Booking(room_name="Alpha", start=datetime(2026, 3, 2, 9), end=datetime(2026, 3, 2, 10), owner="alice"),
        Booking(
            room_name="Bravo",
            start=datetime(2026, 3, 1, 9),
            end=datetime(2026, 3, 1, 10),
            owner="admin",
            title="Planning",
        ),
    ]
    return accounts, rooms, bookings


def test_missing_file_loads_empty(tmp_path):
    store = JsonFilePersistence(tmp_path / "nothing.json")
    assert store.load_accounts() == []
    assert store.load_rooms() == []
    assert store.load_bookings() == []


def test_round_trip(tmp_path):
    accounts, rooms, bookings = sample_collections()
    JsonFilePersistence(tmp_path / "data" / "booking_data.json").persist_all(accounts, rooms, bookings)

    fresh = JsonFilePersistence(tmp_path / "data" / "booking_data.json")
    assert fresh.load_accounts() == accounts
    assert fresh.load_rooms() == rooms
    assert fresh.load_bookings() == bookings


def test_corrupt_file_raises_storage_error(tmp_path):
    path = tmp_path / "booking_data.json"
    path.write_text("{not json")

    with pytest.raises(StorageError) as excinfo:
        JsonFilePersistence(path).load_bookings()
    assert excinfo.value.code == "STORAGE_FAILURE"


def test_booking_requires_start_before_end():
    with pytest.raises(ValidationError):
        Booking(room_name="Alpha", start=datetime(2026, 3, 2, 10), end=datetime(2026, 3, 2, 9), owner="alice")
    with pytest.raises(ValidationError):
        Booking(room_name="Alpha", start=datetime(2026, 3, 2, 10), end=datetime(2026, 3, 2, 10), owner="alice")


def test_inverted_booking_on_disk_raises_storage_error(tmp_path):
    path = tmp_path / "booking_data.json"
    JsonFilePersistence(path).persist_all(*sample_collections())
    path.write_text(path.read_text().replace("2026-03-02T10:00:00", "2026-03-02T08:00:00"))

    with pytest.raises(StorageError):
        JsonFilePersistence(path).load_bookings()


def test_failed_write_keeps_previous_state(tmp_path):
    # a directory in the target's place makes the final rename fail
    target = tmp_path / "booking_data.json"
    target.mkdir()

    with pytest.raises(StorageError):
        JsonFilePersistence(target).persist_all(*sample_collections())
    assert list(tmp_path.iterdir()) == [target]
    assert list(target.iterdir()) == []


def test_directory_reloads_from_json(tmp_path):
    path = tmp_path / "booking_data.json"
    directory = BookingDirectory(JsonFilePersistence(path))
    admin = directory.authenticate("admin", "admin")
    directory.create_room(admin, "Alpha", 8)
    booking = directory.create_booking(admin, "Alpha", datetime(2026, 3, 2, 9), datetime(2026, 3, 2, 10))

    reloaded = BookingDirectory(JsonFilePersistence(path))
    assert reloaded.list_bookings(admin) == [booking]
    assert reloaded.authenticate("admin", "admin") is not None
