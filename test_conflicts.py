from __future__ import annotations

from datetime import datetime

import pytest

from conflicts import find_conflicts, find_conflicts_for_slots, overlaps
from models import Booking
from timeslots import TimeInterval


def at(hour: int, minute: int = 0, day: int = 1) -> datetime:
    return datetime(2026, 3, day, hour, minute)


def booking(room: str, start: datetime, end: datetime, owner: str = "alice") -> Booking:
    return Booking(room_name=room, start=start, end=end, owner=owner)


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ((9, 10), (9, 10), True),
        ((9, 11), (10, 12), True),
        ((10, 12), (9, 11), True),
        ((9, 12), (10, 11), True),
        ((9, 10), (10, 11), False),
        ((10, 11), (9, 10), False),
        ((9, 10), (11, 12), False),
    ],
)
def test_overlap_is_strict(a, b, expected):
    first = TimeInterval(at(a[0]), at(a[1]))
    second = TimeInterval(at(b[0]), at(b[1]))
    assert overlaps(first, second) is expected
    assert overlaps(second, first) is expected


def test_find_conflicts_matches_room_case_insensitively():
    existing = [
        booking("Alpha", at(9), at(10)),
        booking("Bravo", at(9), at(10)),
    ]
    conflicts = find_conflicts(existing, "ALPHA", TimeInterval(at(9, 30), at(10, 30)))
    assert conflicts == [existing[0]]


def test_find_conflicts_skips_excluded_booking():
    existing = [booking("Alpha", at(9), at(10))]
    candidate = TimeInterval(at(9), at(10))

    assert find_conflicts(existing, "Alpha", candidate, exclude_id=existing[0].id) == []
    assert find_conflicts(existing, "Alpha", candidate) == existing


def test_touching_bookings_do_not_conflict():
    existing = [booking("Alpha", at(9), at(10)), booking("Alpha", at(11), at(12))]
    assert find_conflicts(existing, "Alpha", TimeInterval(at(10), at(11))) == []


def test_batch_union_is_deduplicated_in_source_order():
    existing = [
        booking("Alpha", at(14), at(16)),
        booking("Alpha", at(8), at(10)),
        booking("Alpha", at(20), at(21)),
    ]
    candidates = [
        TimeInterval(at(9), at(15)),
        TimeInterval(at(15), at(15, 30)),
        TimeInterval(at(8, 30), at(9, 30)),
    ]
    conflicts = find_conflicts_for_slots(existing, "Alpha", candidates)
    assert [c.id for c in conflicts] == [existing[0].id, existing[1].id]


def test_find_conflicts_does_not_mutate_input():
    existing = [booking("Alpha", at(9), at(10))]
    snapshot = [b.model_copy() for b in existing]
    find_conflicts_for_slots(existing, "Alpha", [TimeInterval(at(9), at(10))])
    assert existing == snapshot
