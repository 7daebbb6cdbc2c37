from __future__ import annotations

import logging
from threading import Lock
from typing import List, Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Path, Request, status
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette.exceptions import HTTPException as StarletteHTTPException

from BookingDirectory import BookingDirectory
from config import load_settings
from errors import ROUTE_NOT_FOUND, AuthenticationError, BookingSystemError, InputValidationError
from models import (
    Account,
    AccountCreateRequest,
    AccountResponse,
    BookingCreateRequest,
    BookingResponse,
    BookingUpdateRequest,
    ConflictCheckRequest,
    ConflictCheckResponse,
    PasswordChangeRequest,
    RecurringBookingCreateRequest,
    RoomCreateRequest,
    RoomResponse,
    RoomUpdateRequest,
    SignUpRequest,
)
from persistence import InMemoryPersistence, JsonFilePersistence
from timeslots import TimeInterval

logger = logging.getLogger(__name__)

# ----------------------------
# Directory wiring
# ----------------------------

_directory: Optional[BookingDirectory] = None
_directory_lock = Lock()


def get_directory() -> BookingDirectory:
    """Build the directory from settings on first use. Tests override this dependency."""
    global _directory
    with _directory_lock:
        if _directory is None:
            settings = load_settings()
            logging.basicConfig(level=settings.log_level)
            if settings.storage == "memory":
                persistence = InMemoryPersistence()
            else:
                persistence = JsonFilePersistence(settings.data_file)
            _directory = BookingDirectory(
                persistence,
                default_admin_username=settings.default_admin_username,
                default_admin_password=settings.default_admin_password,
                recurrence_horizon_weeks=settings.recurrence_horizon_weeks,
            )
            logger.info("Booking directory ready (storage=%s)", settings.storage)
        return _directory


security = HTTPBasic(auto_error=False)


def current_account(
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
    directory: BookingDirectory = Depends(get_directory),
) -> Account:
    if credentials is None:
        raise AuthenticationError("Credentials required.")
    account = directory.authenticate(credentials.username, credentials.password)
    if account is None:
        raise AuthenticationError()
    return account


app = FastAPI(
    title="Room Booking API",
    version="1.0.0",
    description=(
        "Accounts, rooms and bookings with role-based permissions.\n\n"
        "## Roles\n"
        "- `admin`: everything, including account management.\n"
        "- `scheduler`: rooms and all bookings; may list accounts.\n"
        "- `user`: books rooms and manages own bookings.\n"
        "- `guest`: view-only; sees every booking.\n\n"
        "## Booking rules\n"
        "- **No overlaps per room**: bookings use half-open intervals **[start, end)**.\n"
        "- **Valid times**: `start` must be strictly before `end`.\n"
        "- Conflicts are reported with the ids of the colliding bookings; nothing is changed.\n\n"
        "## Formats\n"
        "- Date-times are local and written `YYYY-MM-DD HH:MM`; dates `YYYY-MM-DD`.\n"
        "- Recurrence days: `MON`..`SUN`, `WEEKDAYS`, `ALL`.\n\n"
        "## Authentication\n"
        "- HTTP Basic. A default `admin`/`admin` account is created when no admin exists: "
        "change its password."
    ),
)


@app.exception_handler(BookingSystemError)
async def booking_system_error_handler(request: Request, exc: BookingSystemError):
    return await http_exception_handler(request, exc.to_http_exception())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Text-format parsers raise InputValidationError; report its code instead of a generic 422.
    for error in exc.errors():
        cause = (error.get("ctx") or {}).get("error")
        if isinstance(cause, InputValidationError):
            return await http_exception_handler(request, cause.to_http_exception())
    return await request_validation_exception_handler(request, exc)


@app.exception_handler(StarletteHTTPException)
async def route_not_found_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND and not isinstance(exc.detail, dict):
        exc = ROUTE_NOT_FOUND.to_http_exception(extra={"path": request.url.path})
    return await http_exception_handler(request, exc)


def _booking_response(booking) -> BookingResponse:
    return BookingResponse(**booking.model_dump())


# ----------------------------
# Accounts
# ----------------------------

@app.get("/me", response_model=AccountResponse, summary="Show the authenticated account")
def me(account: Account = Depends(current_account)):
    return AccountResponse(username=account.username, role=account.role)


@app.post(
    "/accounts/signup",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user account",
)
def sign_up(payload: SignUpRequest, directory: BookingDirectory = Depends(get_directory)):
    account = directory.sign_up(payload.username, payload.password)
    return AccountResponse(username=account.username, role=account.role)


@app.get("/accounts", response_model=List[AccountResponse], summary="List accounts")
def list_accounts(
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    return [AccountResponse(username=a.username, role=a.role) for a in directory.list_accounts(account)]


@app.post(
    "/accounts",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account with any role",
)
def create_account(
    payload: AccountCreateRequest,
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    created = directory.create_account(account, payload.username, payload.password, payload.role)
    return AccountResponse(username=created.username, role=created.role)


@app.delete(
    "/accounts/{username}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an account",
)
def delete_account(
    username: str,
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    directory.delete_account(account, username)
    return None


@app.put(
    "/accounts/{username}/password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change an account password",
)
def change_password(
    username: str,
    payload: PasswordChangeRequest,
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    directory.change_password(account, username, payload.password)
    return None


# ----------------------------
# Rooms
# ----------------------------

@app.get("/rooms", response_model=List[RoomResponse], summary="List rooms")
def list_rooms(
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    return [RoomResponse(**r.model_dump()) for r in directory.list_rooms(account)]


@app.post(
    "/rooms",
    response_model=RoomResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a room",
)
def create_room(
    payload: RoomCreateRequest,
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    room = directory.create_room(account, payload.name, payload.capacity, payload.description)
    return RoomResponse(**room.model_dump())


@app.put("/rooms/{room_name}", response_model=RoomResponse, summary="Update a room")
def update_room(
    payload: RoomUpdateRequest,
    room_name: str = Path(..., description="Room name (case-insensitive)."),
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    room = directory.update_room(account, room_name, payload.capacity, payload.description)
    return RoomResponse(**room.model_dump())


@app.delete(
    "/rooms/{room_name}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a room without bookings",
)
def delete_room(
    room_name: str = Path(..., description="Room name (case-insensitive)."),
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    directory.delete_room(account, room_name)
    return None


# ----------------------------
# Bookings
# ----------------------------

@app.get(
    "/bookings",
    response_model=List[BookingResponse],
    summary="List bookings visible to the caller",
)
def list_bookings(
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    return [_booking_response(b) for b in directory.list_bookings(account)]


@app.post(
    "/rooms/{room_name}/bookings",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a booking for a room",
)
def create_booking(
    payload: BookingCreateRequest,
    room_name: str = Path(..., description="Room name (case-insensitive).", examples=["alpha"]),
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    booking = directory.create_booking(account, room_name, payload.start, payload.end, payload.title)
    return _booking_response(booking)


@app.post(
    "/rooms/{room_name}/bookings/recurring",
    response_model=List[BookingResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create one booking per matching date of a recurrence",
)
def create_recurring_bookings(
    payload: RecurringBookingCreateRequest,
    room_name: str = Path(..., description="Room name (case-insensitive).", examples=["alpha"]),
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    bookings = directory.create_recurring_bookings(account, room_name, payload.to_spec(), payload.title)
    return [_booking_response(b) for b in bookings]


@app.post(
    "/rooms/{room_name}/conflicts",
    response_model=ConflictCheckResponse,
    summary="Preview the bookings that would collide with the given slots",
)
def check_conflicts(
    payload: ConflictCheckRequest,
    room_name: str = Path(..., description="Room name (case-insensitive)."),
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    slots = [TimeInterval(s.start, s.end) for s in payload.slots]
    conflicts = directory.find_conflicts(account, room_name, slots, payload.exclude_id)
    return ConflictCheckResponse(conflicts=[_booking_response(b) for b in conflicts])


@app.patch(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    summary="Reschedule a booking",
)
def update_booking(
    booking_id: UUID,
    payload: BookingUpdateRequest,
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    booking = directory.update_booking(account, booking_id, payload.start, payload.end)
    return _booking_response(booking)


@app.delete(
    "/bookings/{booking_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel a booking by ID",
)
def cancel_booking(
    booking_id: UUID,
    account: Account = Depends(current_account),
    directory: BookingDirectory = Depends(get_directory),
):
    directory.cancel_booking(account, booking_id)
    return None


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
