from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class Role(str, Enum):
    ADMIN = "admin"
    SCHEDULER = "scheduler"
    USER = "user"
    GUEST = "guest"


@dataclass(frozen=True)
class Capabilities:
    manage_accounts: bool
    manage_rooms: bool
    manage_all_bookings: bool
    view_schedules: bool
    create_bookings: bool


# ----------------------------
# Role -> capability table
# ----------------------------

POLICY: Dict[Role, Capabilities] = {
    Role.ADMIN: Capabilities(
        manage_accounts=True,
        manage_rooms=True,
        manage_all_bookings=True,
        view_schedules=True,
        create_bookings=True,
    ),
    Role.SCHEDULER: Capabilities(
        manage_accounts=False,
        manage_rooms=True,
        manage_all_bookings=True,
        view_schedules=True,
        create_bookings=True,
    ),
    Role.USER: Capabilities(
        manage_accounts=False,
        manage_rooms=False,
        manage_all_bookings=False,
        view_schedules=True,
        create_bookings=True,
    ),
    # view-only
    Role.GUEST: Capabilities(
        manage_accounts=False,
        manage_rooms=False,
        manage_all_bookings=False,
        view_schedules=True,
        create_bookings=False,
    ),
}

# Role holding every capability; at least one account must always have it.
TOP_ROLE = Role.ADMIN

# Role that may list accounts without managing them.
SECONDARY_ROLE = Role.SCHEDULER


def capabilities_for(role: Role) -> Capabilities:
    return POLICY[Role(role)]


def can_list_accounts(role: Role) -> bool:
    return capabilities_for(role).manage_accounts or Role(role) == SECONDARY_ROLE


def can_see_all_bookings(role: Role) -> bool:
    return capabilities_for(role).manage_all_bookings or Role(role) == Role.GUEST


def can_modify_booking(role: Role, username: str, owner: str) -> bool:
    """Owners may always touch their own bookings; others need manage_all_bookings."""
    if capabilities_for(role).manage_all_bookings:
        return True
    return username.lower() == owner.lower()
