from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer, model_validator
from typing import Annotated, FrozenSet, List, Optional
from datetime import date, datetime, time
from uuid import UUID, uuid4

from permissions import Role
from timeslots import (
    RecurrenceSpec,
    TimeInterval,
    Weekday,
    format_date,
    format_datetime,
    format_time,
    parse_date,
    parse_datetime,
    parse_days,
    parse_time,
)

# ----------------------------
# Text-formatted field types
# ----------------------------

LocalDateTime = Annotated[
    datetime,
    BeforeValidator(parse_datetime),
    PlainSerializer(format_datetime, return_type=str),
]
LocalDate = Annotated[
    date,
    BeforeValidator(parse_date),
    PlainSerializer(format_date, return_type=str),
]
LocalTime = Annotated[
    time,
    BeforeValidator(parse_time),
    PlainSerializer(format_time, return_type=str),
]
DaysOfWeek = Annotated[FrozenSet[Weekday], BeforeValidator(parse_days)]


# ----------------------------
# Models (entities)
# ----------------------------

class Account(BaseModel):
    username: str
    # Plaintext, compared by exact equality.
    password: str
    role: Role

    def verify_password(self, candidate: str) -> bool:
        return self.password == candidate

    def matches(self, username: str) -> bool:
        return self.username.lower() == username.lower()


class Room(BaseModel):
    name: str
    capacity: int = 0
    description: str = ""

    def matches(self, name: str) -> bool:
        return self.name.lower() == name.lower()


class Booking(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    room_name: str
    start: datetime
    end: datetime
    owner: str
    title: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)

    @model_validator(mode="after")
    def require_start_before_end(self) -> "Booking":
        if self.start >= self.end:
            raise ValueError("Booking start must be before its end.")
        return self

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start, self.end)

    def is_owned_by(self, username: str) -> bool:
        return self.owner.lower() == username.lower()


# ----------------------------
# Models (API)
# ----------------------------

class SignUpRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100, examples=["jdoe"])
    password: str = Field(..., min_length=1, max_length=200)


class AccountCreateRequest(SignUpRequest):
    role: Role = Field(
        Role.USER,
        description="One of `admin`, `scheduler`, `user` or `guest` (view-only).",
    )


class PasswordChangeRequest(BaseModel):
    password: str = Field(..., min_length=1, max_length=200)


class AccountResponse(BaseModel):
    username: str
    role: Role


class RoomCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["alpha"])
    capacity: int = Field(
        0,
        ge=0,
        description="Informational only; not enforced against bookings.",
        examples=[8],
    )
    description: str = Field("", max_length=500, examples=["Second floor, projector"])


class RoomUpdateRequest(BaseModel):
    capacity: int = Field(..., ge=0, examples=[12])
    description: str = Field("", max_length=500)


class RoomResponse(BaseModel):
    name: str
    capacity: int
    description: str


class BookingCreateRequest(BaseModel):
    start: LocalDateTime = Field(
        ...,
        description="Start of the booking, `YYYY-MM-DD HH:MM` (24-hour, local time).",
        examples=["2026-01-17 10:00"],
    )
    end: LocalDateTime = Field(
        ...,
        description=(
            "End of the booking, `YYYY-MM-DD HH:MM`.\n\n"
            "**Important:** end must be after start. Adjacent bookings are allowed:\n"
            "`10:00–11:00` and `11:00–12:00` do **not** overlap."
        ),
        examples=["2026-01-17 11:00"],
    )
    title: Optional[str] = Field(
        None,
        max_length=200,
        description="Optional short description for the booking (max 200 chars).",
        examples=["Sprint planning"],
    )


class BookingUpdateRequest(BaseModel):
    start: LocalDateTime = Field(..., examples=["2026-01-17 13:00"])
    end: LocalDateTime = Field(..., examples=["2026-01-17 14:00"])


class RecurringBookingCreateRequest(BaseModel):
    start_date: LocalDate = Field(..., examples=["2026-01-05"])
    end_date: Optional[LocalDate] = Field(
        None,
        description="Last date (inclusive). When omitted the configured horizon is used.",
        examples=["2026-02-27"],
    )
    start_time: LocalTime = Field(..., examples=["09:00"])
    end_time: LocalTime = Field(..., examples=["10:00"])
    days: DaysOfWeek = Field(
        ...,
        description="`MON`..`SUN`, or the groups `WEEKDAYS` and `ALL`; a list or a comma separated string.",
        examples=["MON,WED", ["WEEKDAYS"]],
    )
    title: Optional[str] = Field(None, max_length=200)

    def to_spec(self) -> RecurrenceSpec:
        return RecurrenceSpec(
            days_of_week=self.days,
            start_date=self.start_date,
            end_date=self.end_date,
            start_time=self.start_time,
            end_time=self.end_time,
        )


class TimeSlotRequest(BaseModel):
    start: LocalDateTime
    end: LocalDateTime


class ConflictCheckRequest(BaseModel):
    slots: List[TimeSlotRequest] = Field(..., min_length=1)
    exclude_id: Optional[UUID] = Field(
        None,
        description="Booking to ignore, e.g. the one being rescheduled.",
    )


class BookingResponse(BaseModel):
    id: UUID
    room_name: str
    start: LocalDateTime
    end: LocalDateTime
    owner: str
    title: Optional[str] = None
    created_at: LocalDateTime


class ConflictCheckResponse(BaseModel):
    conflicts: List[BookingResponse]
