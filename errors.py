from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from fastapi import HTTPException, status


@dataclass(frozen=True)
class ApiError:
    code: str
    message: str
    http_status: int

    def to_http_exception(self, *, extra: Optional[Dict[str, Any]] = None) -> HTTPException:
        """
        Convert this error to FastAPI's HTTPException.
        If extra is provided, it will be included in the detail payload.
        """
        detail: Any

        detail = {"code": self.code, "message": self.message}
        if extra:
            detail.update(extra)

        headers = None
        if self.http_status == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Basic"}

        return HTTPException(status_code=self.http_status, detail=detail, headers=headers)


# ----------------------------
# Input validation errors (400)
# ----------------------------

INVALID_DATETIME = ApiError(
    code="INVALID_DATETIME",
    message="Date-times must use the format YYYY-MM-DD HH:MM.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

INVALID_DATE = ApiError(
    code="INVALID_DATE",
    message="Dates must use the format YYYY-MM-DD.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

INVALID_TIME = ApiError(
    code="INVALID_TIME",
    message="Times must use the 24-hour format HH:MM.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

INVALID_DAY_OF_WEEK = ApiError(
    code="INVALID_DAY_OF_WEEK",
    message="Unknown day of week.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

EMPTY_NAME = ApiError(
    code="EMPTY_NAME",
    message="A name is required.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

EMPTY_PASSWORD = ApiError(
    code="EMPTY_PASSWORD",
    message="A password is required.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

INVALID_CAPACITY = ApiError(
    code="INVALID_CAPACITY",
    message="Capacity must be a non-negative integer.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

BOOKING_START_AFTER_END = ApiError(
    code="BOOKING_START_AFTER_END",
    message="Start time must be before end time.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

BOOKING_INVALID_REQUEST = ApiError(
    code="BOOKING_INVALID_REQUEST",
    message="At least one time slot is required.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

BOOKING_SLOTS_OVERLAP = ApiError(
    code="BOOKING_SLOTS_OVERLAP",
    message="Requested time slots overlap each other.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

RECURRENCE_TIME_ORDER = ApiError(
    code="RECURRENCE_TIME_ORDER",
    message="Start time must be before end time.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

RECURRENCE_DATE_ORDER = ApiError(
    code="RECURRENCE_DATE_ORDER",
    message="End date cannot be before start date.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

RECURRENCE_NO_DAYS = ApiError(
    code="RECURRENCE_NO_DAYS",
    message="At least one day of week must be selected.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

RECURRENCE_EMPTY = ApiError(
    code="RECURRENCE_EMPTY",
    message="No slots generated; check selected days and date range.",
    http_status=status.HTTP_400_BAD_REQUEST,
)

# ----------------------------
# Authentication and permission errors (401 / 403)
# ----------------------------

AUTHENTICATION_FAILED = ApiError(
    code="AUTHENTICATION_FAILED",
    message="Invalid credentials.",
    http_status=status.HTTP_401_UNAUTHORIZED,
)

PERMISSION_DENIED = ApiError(
    code="PERMISSION_DENIED",
    message="Insufficient permissions.",
    http_status=status.HTTP_403_FORBIDDEN,
)

# ----------------------------
# Not found errors (404)
# ----------------------------

ROUTE_NOT_FOUND = ApiError(
    code="ROUTE_NOT_FOUND",
    message="Route not found.",
    http_status=status.HTTP_404_NOT_FOUND,
)

ACCOUNT_NOT_FOUND = ApiError(
    code="ACCOUNT_NOT_FOUND",
    message="Account not found.",
    http_status=status.HTTP_404_NOT_FOUND,
)

ROOM_NOT_FOUND = ApiError(
    code="ROOM_NOT_FOUND",
    message="Room not found.",
    http_status=status.HTTP_404_NOT_FOUND,
)

BOOKING_NOT_FOUND = ApiError(
    code="BOOKING_NOT_FOUND",
    message="Booking not found.",
    http_status=status.HTTP_404_NOT_FOUND,
)

# ----------------------------
# Conflict and invariant errors (409)
# ----------------------------

BOOKING_OVERLAPS = ApiError(
    code="BOOKING_OVERLAPS",
    message="Booking overlaps with an existing booking.",
    http_status=status.HTTP_409_CONFLICT,
)

ACCOUNT_ALREADY_EXISTS = ApiError(
    code="ACCOUNT_ALREADY_EXISTS",
    message="Username already exists.",
    http_status=status.HTTP_409_CONFLICT,
)

ROOM_ALREADY_EXISTS = ApiError(
    code="ROOM_ALREADY_EXISTS",
    message="Room already exists.",
    http_status=status.HTTP_409_CONFLICT,
)

LAST_ADMIN_ACCOUNT = ApiError(
    code="LAST_ADMIN_ACCOUNT",
    message="Cannot remove the last admin account.",
    http_status=status.HTTP_409_CONFLICT,
)

ROOM_HAS_BOOKINGS = ApiError(
    code="ROOM_HAS_BOOKINGS",
    message="Cannot delete a room with bookings.",
    http_status=status.HTTP_409_CONFLICT,
)

# ----------------------------
# Storage errors (500)
# ----------------------------

STORAGE_FAILURE = ApiError(
    code="STORAGE_FAILURE",
    message="Could not save changes; the operation did not take effect.",
    http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
)


# ----------------------------
# Exceptions raised by the booking core
# ----------------------------

class BookingSystemError(Exception):
    """
    Base class for every error raised by the booking core.

    Carries the ApiError describing it, a human-readable message and
    structured extras (ids, role names) a caller can act on.
    """

    def __init__(self, error: ApiError, message: Optional[str] = None, **extra: Any) -> None:
        self.error = error
        self.message = message or error.message
        self.extra = extra
        super().__init__(self.message)

    @property
    def code(self) -> str:
        return self.error.code

    def to_http_exception(self) -> HTTPException:
        return self.error.to_http_exception(extra={"message": self.message, **self.extra})


class InputValidationError(BookingSystemError, ValueError):
    """Malformed input. Also a ValueError so pydantic validators report it as a field error."""


class AuthenticationError(BookingSystemError):
    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(AUTHENTICATION_FAILED, message)


class PermissionDeniedError(BookingSystemError):
    def __init__(self, role: str, action: str) -> None:
        super().__init__(
            PERMISSION_DENIED,
            f"Insufficient permissions to {action}.",
            role=role,
            action=action,
        )
        self.role = role
        self.action = action


class NotFoundError(BookingSystemError):
    pass


class ConflictError(BookingSystemError):
    def __init__(self, conflicts: list, message: Optional[str] = None) -> None:
        self.conflicts = list(conflicts)
        ids = [str(b.id) for b in self.conflicts]
        super().__init__(
            BOOKING_OVERLAPS,
            message or f"Requested slot conflicts with booking {', '.join(ids)}.",
            conflicting_booking_ids=ids,
        )

    @property
    def conflicting_ids(self) -> list:
        return [b.id for b in self.conflicts]


class InvariantViolationError(BookingSystemError):
    pass


class StorageError(BookingSystemError):
    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(STORAGE_FAILURE, message)
