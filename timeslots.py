"""
Time values exchanged with the booking core: half-open intervals, the
textual date/time formats used by front ends, day-of-week tokens and
expansion of recurring requests into concrete intervals.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import IntEnum
from typing import FrozenSet, Iterable, List, Optional, Union

from dateutil import rrule

from config import DEFAULT_RECURRENCE_HORIZON_WEEKS
from errors import (
    BOOKING_START_AFTER_END,
    INVALID_DATE,
    INVALID_DATETIME,
    INVALID_DAY_OF_WEEK,
    INVALID_TIME,
    RECURRENCE_DATE_ORDER,
    RECURRENCE_EMPTY,
    RECURRENCE_NO_DAYS,
    RECURRENCE_TIME_ORDER,
    InputValidationError,
)

DATETIME_FORMAT = "%Y-%m-%d %H:%M"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


class Weekday(IntEnum):
    # values match date.weekday()
    MON = 0
    TUE = 1
    WED = 2
    THU = 3
    FRI = 4
    SAT = 5
    SUN = 6


WEEKDAYS: FrozenSet[Weekday] = frozenset(
    {Weekday.MON, Weekday.TUE, Weekday.WED, Weekday.THU, Weekday.FRI}
)
ALL_DAYS: FrozenSet[Weekday] = frozenset(Weekday)

DAY_GROUPS = {
    "WEEKDAYS": WEEKDAYS,
    "ALL": ALL_DAYS,
}


@dataclass(frozen=True)
class TimeInterval:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InputValidationError(
                BOOKING_START_AFTER_END,
                start=format_datetime(self.start),
                end=format_datetime(self.end),
            )


# ----------------------------
# Text formats
# ----------------------------

def parse_datetime(value: Union[str, datetime]) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.strptime(str(value).strip(), DATETIME_FORMAT)
    except ValueError:
        raise InputValidationError(INVALID_DATETIME, value=str(value))


def parse_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date()
    except ValueError:
        raise InputValidationError(INVALID_DATE, value=str(value))


def parse_time(value: Union[str, time]) -> time:
    if isinstance(value, time):
        return value
    try:
        return datetime.strptime(str(value).strip(), TIME_FORMAT).time()
    except ValueError:
        raise InputValidationError(INVALID_TIME, value=str(value))


def format_datetime(value: datetime) -> str:
    return value.strftime(DATETIME_FORMAT)


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def format_time(value: time) -> str:
    return value.strftime(TIME_FORMAT)


def parse_days(value: Union[str, Iterable[Union[str, int]]]) -> FrozenSet[Weekday]:
    """
    Parse day-of-week tokens into a set of weekdays.

    Accepts a comma/space separated string or an iterable of tokens.
    Tokens are three-letter abbreviations (MON..SUN) or the groups
    WEEKDAYS (Monday to Friday) and ALL (every day). Case-insensitive.
    An empty input gives an empty set; expansion rejects it.
    """
    if isinstance(value, str):
        tokens: List[Union[str, int]] = [t for t in re.split(r"[,\s]+", value) if t]
    else:
        tokens = list(value)

    days = set()
    for token in tokens:
        if isinstance(token, Weekday):
            days.add(token)
            continue
        if isinstance(token, int):
            try:
                days.add(Weekday(token))
            except ValueError:
                raise InputValidationError(INVALID_DAY_OF_WEEK, value=token)
            continue
        key = str(token).strip().upper()
        if key in DAY_GROUPS:
            days.update(DAY_GROUPS[key])
        elif key in Weekday.__members__:
            days.add(Weekday[key])
        else:
            raise InputValidationError(
                INVALID_DAY_OF_WEEK,
                f"Unknown day of week: {token!r}. Use MON..SUN, WEEKDAYS or ALL.",
                value=str(token),
            )
    return frozenset(days)


# ----------------------------
# Recurrence
# ----------------------------

def expand(
    start_date: date,
    end_date: Optional[date],
    start_time: time,
    end_time: time,
    days_of_week: Iterable[Weekday],
    horizon_weeks: int = DEFAULT_RECURRENCE_HORIZON_WEEKS,
) -> List[TimeInterval]:
    """
    Expand a recurring request into one interval per matching date.

    Every date from start_date to end_date (inclusive) whose weekday is in
    days_of_week yields (date@start_time, date@end_time), in ascending
    date order. When end_date is None the range covers horizon_weeks weeks
    starting at start_date.
    """
    days = frozenset(Weekday(d) for d in days_of_week)

    if start_time >= end_time:
        raise InputValidationError(
            RECURRENCE_TIME_ORDER,
            start_time=format_time(start_time),
            end_time=format_time(end_time),
        )
    if end_date is None:
        end_date = start_date + timedelta(weeks=horizon_weeks) - timedelta(days=1)
    if end_date < start_date:
        raise InputValidationError(
            RECURRENCE_DATE_ORDER,
            start_date=format_date(start_date),
            end_date=format_date(end_date),
        )
    if not days:
        raise InputValidationError(RECURRENCE_NO_DAYS)

    occurrences = rrule.rrule(
        rrule.DAILY,
        dtstart=datetime.combine(start_date, start_time),
        until=datetime.combine(end_date, start_time),
        byweekday=sorted(int(d) for d in days),
    )
    slots = [
        TimeInterval(occurrence, datetime.combine(occurrence.date(), end_time))
        for occurrence in occurrences
    ]
    if not slots:
        raise InputValidationError(
            RECURRENCE_EMPTY,
            start_date=format_date(start_date),
            end_date=format_date(end_date),
        )
    return slots


@dataclass(frozen=True)
class RecurrenceSpec:
    days_of_week: FrozenSet[Weekday]
    start_date: date
    start_time: time
    end_time: time
    end_date: Optional[date] = None

    def expand(self, horizon_weeks: int = DEFAULT_RECURRENCE_HORIZON_WEEKS) -> List[TimeInterval]:
        return expand(
            self.start_date,
            self.end_date,
            self.start_time,
            self.end_time,
            self.days_of_week,
            horizon_weeks=horizon_weeks,
        )
