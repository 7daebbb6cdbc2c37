from __future__ import annotations

from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from models import Booking
from timeslots import TimeInterval


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """Strict overlap: a.start < b.end and b.start < a.end."""
    return a.start < b.end and b.start < a.end


def find_conflicts(
    bookings: Iterable[Booking],
    room_name: str,
    candidate: TimeInterval,
    exclude_id: Optional[UUID] = None,
) -> List[Booking]:
    return find_conflicts_for_slots(bookings, room_name, [candidate], exclude_id)


def find_conflicts_for_slots(
    bookings: Iterable[Booking],
    room_name: str,
    candidates: Sequence[TimeInterval],
    exclude_id: Optional[UUID] = None,
) -> List[Booking]:
    """
    Return the bookings on `room_name` overlapping any of `candidates`.

    Results follow the order of `bookings` and each booking appears once,
    however many candidates it collides with. The booking whose id is
    `exclude_id` is skipped so a reschedule is not checked against itself.
    """
    target = room_name.lower()
    conflicts: List[Booking] = []
    seen = set()
    for booking in bookings:
        if booking.room_name.lower() != target:
            continue
        if exclude_id is not None and booking.id == exclude_id:
            continue
        if booking.id in seen:
            continue
        if any(overlaps(booking.interval, c) for c in candidates):
            conflicts.append(booking)
            seen.add(booking.id)
    return conflicts
