from __future__ import annotations

import logging
from threading import Lock
from typing import Callable, List, Optional, Sequence
from uuid import UUID

from config import (
    DEFAULT_ADMIN_PASSWORD,
    DEFAULT_ADMIN_USERNAME,
    DEFAULT_RECURRENCE_HORIZON_WEEKS,
)
from conflicts import find_conflicts_for_slots, overlaps
from errors import (
    ACCOUNT_ALREADY_EXISTS,
    ACCOUNT_NOT_FOUND,
    BOOKING_INVALID_REQUEST,
    BOOKING_NOT_FOUND,
    BOOKING_SLOTS_OVERLAP,
    EMPTY_NAME,
    EMPTY_PASSWORD,
    INVALID_CAPACITY,
    LAST_ADMIN_ACCOUNT,
    ROOM_ALREADY_EXISTS,
    ROOM_HAS_BOOKINGS,
    ROOM_NOT_FOUND,
    ConflictError,
    InputValidationError,
    InvariantViolationError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
)
from models import Account, Booking, Room
from permissions import (
    TOP_ROLE,
    Capabilities,
    Role,
    can_list_accounts,
    can_modify_booking,
    can_see_all_bookings,
    capabilities_for,
)
from persistence import Persistence
from timeslots import RecurrenceSpec, TimeInterval, format_datetime

logger = logging.getLogger(__name__)


class BookingDirectory:
    """
    Owns the accounts, rooms and bookings and applies every mutation.

    Each operation runs under one lock as: check permission, validate and
    check conflicts, build the new collections, persist, then publish them
    in memory. If persisting fails the in-memory state is left as it was.
    """

    def __init__(
        self,
        persistence: Persistence,
        *,
        seed_default_admin: bool = True,
        default_admin_username: str = DEFAULT_ADMIN_USERNAME,
        default_admin_password: str = DEFAULT_ADMIN_PASSWORD,
        recurrence_horizon_weeks: int = DEFAULT_RECURRENCE_HORIZON_WEEKS,
    ) -> None:
        self._lock = Lock()
        self._persistence = persistence
        self._accounts: List[Account] = list(persistence.load_accounts())
        self._rooms: List[Room] = list(persistence.load_rooms())
        self._bookings: List[Booking] = list(persistence.load_bookings())
        self.recurrence_horizon_weeks = recurrence_horizon_weeks
        logger.info(
            "Loaded %d accounts, %d rooms, %d bookings",
            len(self._accounts), len(self._rooms), len(self._bookings),
        )
        if seed_default_admin:
            self.ensure_default_admin(default_admin_username, default_admin_password)

    # ----------------------------
    # Initialization
    # ----------------------------

    def ensure_default_admin(
        self,
        username: str = DEFAULT_ADMIN_USERNAME,
        password: str = DEFAULT_ADMIN_PASSWORD,
    ) -> Optional[Account]:
        """
        Create an admin account with a well-known password if none exists.
        Returns the created account, or None when an admin was already present.
        """
        with self._lock:
            if any(a.role == TOP_ROLE for a in self._accounts):
                return None
            admin = Account(username=username, password=password, role=TOP_ROLE)
            self._commit(accounts=self._accounts + [admin])
        logger.warning(
            "No admin account found; created '%s' with the default password. "
            "Change it immediately.",
            username,
        )
        return admin

    # ----------------------------
    # Helpers
    # ----------------------------

    def _commit(
        self,
        accounts: Optional[List[Account]] = None,
        rooms: Optional[List[Room]] = None,
        bookings: Optional[List[Booking]] = None,
    ) -> None:
        """Persist the new collections, then make them current. Caller holds the lock."""
        accounts = self._accounts if accounts is None else accounts
        rooms = self._rooms if rooms is None else rooms
        bookings = self._bookings if bookings is None else bookings
        try:
            self._persistence.persist_all(accounts, rooms, bookings)
        except StorageError:
            logger.error("Persisting changes failed; in-memory state left unchanged")
            raise
        self._accounts, self._rooms, self._bookings = accounts, rooms, bookings

    @staticmethod
    def _require(actor: Account, check: Callable[[Capabilities], bool], action: str) -> None:
        if not check(capabilities_for(actor.role)):
            logger.warning("%s (%s) denied: %s", actor.username, actor.role.value, action)
            raise PermissionDeniedError(role=actor.role.value, action=action)

    @staticmethod
    def _require_text(value: Optional[str], error=EMPTY_NAME) -> str:
        value = (value or "").strip()
        if not value:
            raise InputValidationError(error)
        return value

    @staticmethod
    def _require_capacity(capacity: int) -> int:
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 0:
            raise InputValidationError(INVALID_CAPACITY, capacity=capacity)
        return capacity

    def _find_account(self, username: str) -> Optional[Account]:
        return next((a for a in self._accounts if a.matches(username)), None)

    def _get_account(self, username: str) -> Account:
        account = self._find_account(username)
        if account is None:
            raise NotFoundError(ACCOUNT_NOT_FOUND, f"Account not found: {username}", username=username)
        return account

    def _find_room(self, name: str) -> Optional[Room]:
        return next((r for r in self._rooms if r.matches(name)), None)

    def _get_room(self, name: str) -> Room:
        room = self._find_room(name)
        if room is None:
            raise NotFoundError(ROOM_NOT_FOUND, f"Room not found: {name}", room_name=name)
        return room

    def _get_booking(self, booking_id: UUID) -> Booking:
        booking = next((b for b in self._bookings if b.id == booking_id), None)
        if booking is None:
            raise NotFoundError(
                BOOKING_NOT_FOUND,
                f"Booking not found: {booking_id}",
                booking_id=str(booking_id),
            )
        return booking

    def _require_booking_access(self, actor: Account, booking: Booking, action: str) -> None:
        if not can_modify_booking(actor.role, actor.username, booking.owner):
            logger.warning("%s denied: %s %s", actor.username, action, booking.id)
            raise PermissionDeniedError(role=actor.role.value, action=action)

    def _count_admins(self, accounts: Sequence[Account]) -> int:
        return sum(1 for a in accounts if a.role == TOP_ROLE)

    # ----------------------------
    # Authentication and accounts
    # ----------------------------

    def authenticate(self, username: str, password: str) -> Optional[Account]:
        with self._lock:
            account = self._find_account(username)
            if account is not None and account.verify_password(password):
                return account.model_copy()
            return None

    def sign_up(self, username: str, password: str) -> Account:
        """Self-service registration; always creates an ordinary user."""
        with self._lock:
            return self._add_account(username, password, Role.USER)

    def create_account(self, actor: Account, username: str, password: str, role: Role) -> Account:
        with self._lock:
            self._require(actor, lambda c: c.manage_accounts, "create accounts")
            return self._add_account(username, password, Role(role))

    def _add_account(self, username: str, password: str, role: Role) -> Account:
        username = self._require_text(username)
        if not password:
            raise InputValidationError(EMPTY_PASSWORD)
        if self._find_account(username) is not None:
            raise InvariantViolationError(
                ACCOUNT_ALREADY_EXISTS,
                f"Username already exists: {username}",
                username=username,
            )
        account = Account(username=username, password=password, role=role)
        self._commit(accounts=self._accounts + [account])
        logger.info("Created %s account %s", role.value, username)
        return account.model_copy()

    def delete_account(self, actor: Account, username: str) -> None:
        with self._lock:
            self._require(actor, lambda c: c.manage_accounts, "delete accounts")
            target = self._get_account(username)
            remaining = [a for a in self._accounts if a is not target]
            if target.role == TOP_ROLE and self._count_admins(remaining) == 0:
                raise InvariantViolationError(
                    LAST_ADMIN_ACCOUNT,
                    f"Cannot remove the last {TOP_ROLE.value} account: {target.username}",
                    username=target.username,
                    role=TOP_ROLE.value,
                )
            self._commit(accounts=remaining)
            logger.info("%s deleted account %s", actor.username, target.username)

    def change_password(self, actor: Account, username: str, new_password: str) -> None:
        with self._lock:
            if not actor.matches(username):
                self._require(actor, lambda c: c.manage_accounts, "change other accounts' passwords")
            if not new_password:
                raise InputValidationError(EMPTY_PASSWORD)
            target = self._get_account(username)
            updated = target.model_copy(update={"password": new_password})
            self._commit(accounts=[updated if a is target else a for a in self._accounts])
            logger.info("%s changed the password of %s", actor.username, target.username)

    def list_accounts(self, actor: Account) -> List[Account]:
        with self._lock:
            if not can_list_accounts(actor.role):
                raise PermissionDeniedError(role=actor.role.value, action="view accounts")
            return [a.model_copy() for a in self._accounts]

    # ----------------------------
    # Rooms
    # ----------------------------

    def list_rooms(self, actor: Account) -> List[Room]:
        with self._lock:
            self._require(actor, lambda c: c.view_schedules, "view rooms")
            return [r.model_copy() for r in self._rooms]

    def create_room(self, actor: Account, name: str, capacity: int, description: str = "") -> Room:
        with self._lock:
            self._require(actor, lambda c: c.manage_rooms, "create rooms")
            name = self._require_text(name)
            capacity = self._require_capacity(capacity)
            if self._find_room(name) is not None:
                raise InvariantViolationError(
                    ROOM_ALREADY_EXISTS, f"Room already exists: {name}", room_name=name
                )
            room = Room(name=name, capacity=capacity, description=(description or "").strip())
            self._commit(rooms=self._rooms + [room])
            logger.info("%s created room %s", actor.username, name)
            return room.model_copy()

    def update_room(self, actor: Account, name: str, capacity: int, description: str = "") -> Room:
        with self._lock:
            self._require(actor, lambda c: c.manage_rooms, "update rooms")
            room = self._get_room(name)
            capacity = self._require_capacity(capacity)
            updated = room.model_copy(
                update={"capacity": capacity, "description": (description or "").strip()}
            )
            self._commit(rooms=[updated if r is room else r for r in self._rooms])
            logger.info("%s updated room %s", actor.username, room.name)
            return updated.model_copy()

    def delete_room(self, actor: Account, name: str) -> None:
        with self._lock:
            self._require(actor, lambda c: c.manage_rooms, "delete rooms")
            room = self._get_room(name)
            referencing = [b for b in self._bookings if room.matches(b.room_name)]
            if referencing:
                raise InvariantViolationError(
                    ROOM_HAS_BOOKINGS,
                    f"Cannot delete room {room.name}: {len(referencing)} booking(s) reference it",
                    room_name=room.name,
                    booking_ids=[str(b.id) for b in referencing],
                )
            self._commit(rooms=[r for r in self._rooms if r is not room])
            logger.info("%s deleted room %s", actor.username, room.name)

    # ----------------------------
    # Bookings
    # ----------------------------

    def list_bookings(self, actor: Account) -> List[Booking]:
        with self._lock:
            if can_see_all_bookings(actor.role):
                return [b.model_copy() for b in self._bookings]
            return [b.model_copy() for b in self._bookings if b.is_owned_by(actor.username)]

    def find_conflicts(
        self,
        actor: Account,
        room_name: str,
        slots: Sequence[TimeInterval],
        exclude_id: Optional[UUID] = None,
    ) -> List[Booking]:
        """Preview which bookings would collide with `slots`; changes nothing."""
        with self._lock:
            self._require(actor, lambda c: c.view_schedules, "view schedules")
            room = self._get_room(room_name)
            conflicts = find_conflicts_for_slots(self._bookings, room.name, slots, exclude_id)
            return [b.model_copy() for b in conflicts]

    def create_booking(
        self,
        actor: Account,
        room_name: str,
        start,
        end,
        title: Optional[str] = None,
    ) -> Booking:
        self._require(actor, lambda c: c.create_bookings, "create bookings")
        return self.create_bookings(actor, room_name, [TimeInterval(start, end)], title)[0]

    def create_bookings(
        self,
        actor: Account,
        room_name: str,
        slots: Sequence[TimeInterval],
        title: Optional[str] = None,
    ) -> List[Booking]:
        """
        Book every slot for `actor`, or none of them.

        Slots overlapping each other are rejected as invalid input. Slots
        colliding with stored bookings raise ConflictError naming every
        booking hit across all slots.
        """
        with self._lock:
            self._require(actor, lambda c: c.create_bookings, "create bookings")
            if not slots:
                raise InputValidationError(BOOKING_INVALID_REQUEST)
            room = self._get_room(room_name)

            order = sorted(range(len(slots)), key=lambda i: slots[i].start)
            for first, second in zip(order, order[1:]):
                if overlaps(slots[first], slots[second]):
                    raise InputValidationError(
                        BOOKING_SLOTS_OVERLAP,
                        slot_indexes=sorted([first, second]),
                        slots=[
                            [format_datetime(slots[i].start), format_datetime(slots[i].end)]
                            for i in sorted([first, second])
                        ],
                    )

            conflicts = find_conflicts_for_slots(self._bookings, room.name, slots)
            if conflicts:
                logger.info(
                    "Booking request by %s on %s rejected: conflicts with %s",
                    actor.username, room.name, [str(b.id) for b in conflicts],
                )
                raise ConflictError([b.model_copy() for b in conflicts])

            new_bookings = [
                Booking(
                    room_name=room.name,
                    start=slot.start,
                    end=slot.end,
                    owner=actor.username,
                    title=title,
                )
                for slot in slots
            ]

            self._commit(bookings=self._bookings + new_bookings)
            logger.info(
                "%s booked %s for %d slot(s)", actor.username, room.name, len(new_bookings)
            )
            return [b.model_copy() for b in new_bookings]

    def create_recurring_bookings(
        self,
        actor: Account,
        room_name: str,
        recurrence: RecurrenceSpec,
        title: Optional[str] = None,
    ) -> List[Booking]:
        self._require(actor, lambda c: c.create_bookings, "create bookings")
        slots = recurrence.expand(horizon_weeks=self.recurrence_horizon_weeks)
        return self.create_bookings(actor, room_name, slots, title)

    def update_booking(self, actor: Account, booking_id: UUID, start, end) -> Booking:
        with self._lock:
            booking = self._get_booking(booking_id)
            self._require_booking_access(actor, booking, "modify bookings for other users")
            interval = TimeInterval(start, end)
            conflicts = find_conflicts_for_slots(
                self._bookings, booking.room_name, [interval], exclude_id=booking.id
            )
            if conflicts:
                raise ConflictError([b.model_copy() for b in conflicts])
            updated = booking.model_copy(update={"start": interval.start, "end": interval.end})
            self._commit(bookings=[updated if b is booking else b for b in self._bookings])
            logger.info("%s rescheduled booking %s", actor.username, booking.id)
            return updated.model_copy()

    def cancel_booking(self, actor: Account, booking_id: UUID) -> None:
        with self._lock:
            booking = self._get_booking(booking_id)
            self._require_booking_access(actor, booking, "cancel bookings for other users")
            self._commit(bookings=[b for b in self._bookings if b is not booking])
            logger.info("%s cancelled booking %s", actor.username, booking.id)
