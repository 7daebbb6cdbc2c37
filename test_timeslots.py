from __future__ import annotations

from datetime import date, datetime, time

import pytest

from errors import InputValidationError
from timeslots import (
    ALL_DAYS,
    WEEKDAYS,
    RecurrenceSpec,
    TimeInterval,
    Weekday,
    expand,
    format_datetime,
    parse_date,
    parse_datetime,
    parse_days,
    parse_time,
)


def test_expand_two_mondays_in_ascending_order():
    slots = expand(date(2024, 1, 1), date(2024, 1, 14), time(9, 0), time(10, 0), {Weekday.MON})

    assert slots == [
        TimeInterval(datetime(2024, 1, 1, 9, 0), datetime(2024, 1, 1, 10, 0)),
        TimeInterval(datetime(2024, 1, 8, 9, 0), datetime(2024, 1, 8, 10, 0)),
    ]


def test_expand_includes_end_date():
    slots = expand(date(2024, 1, 1), date(2024, 1, 8), time(9, 0), time(10, 0), {Weekday.MON})
    assert [s.start.date() for s in slots] == [date(2024, 1, 1), date(2024, 1, 8)]


def test_expand_weekdays_over_one_week():
    slots = expand(date(2024, 1, 1), date(2024, 1, 7), time(13, 0), time(14, 30), WEEKDAYS)

    assert [s.start.date() for s in slots] == [date(2024, 1, d) for d in range(1, 6)]
    assert all(s.end.time() == time(14, 30) for s in slots)


def test_expand_without_end_date_uses_horizon():
    slots = expand(date(2024, 1, 1), None, time(9, 0), time(10, 0), {Weekday.MON}, horizon_weeks=3)
    assert [s.start.date() for s in slots] == [date(2024, 1, 1), date(2024, 1, 8), date(2024, 1, 15)]


def test_expand_default_horizon_is_twelve_weeks():
    slots = expand(date(2024, 1, 1), None, time(9, 0), time(10, 0), ALL_DAYS)
    assert len(slots) == 12 * 7


@pytest.mark.parametrize(
    "start_date, end_date, start_time, end_time, days, code",
    [
        (date(2024, 1, 1), date(2024, 1, 14), time(10, 0), time(9, 0), {Weekday.MON}, "RECURRENCE_TIME_ORDER"),
        (date(2024, 1, 1), date(2024, 1, 14), time(9, 0), time(9, 0), {Weekday.MON}, "RECURRENCE_TIME_ORDER"),
        (date(2024, 1, 14), date(2024, 1, 1), time(9, 0), time(10, 0), {Weekday.MON}, "RECURRENCE_DATE_ORDER"),
        (date(2024, 1, 1), date(2024, 1, 14), time(9, 0), time(10, 0), set(), "RECURRENCE_NO_DAYS"),
        # Tuesday to Saturday never hits a Monday
        (date(2024, 1, 2), date(2024, 1, 6), time(9, 0), time(10, 0), {Weekday.MON}, "RECURRENCE_EMPTY"),
    ],
)
def test_expand_rejects_bad_input(start_date, end_date, start_time, end_time, days, code):
    with pytest.raises(InputValidationError) as excinfo:
        expand(start_date, end_date, start_time, end_time, days)
    assert excinfo.value.code == code


def test_recurrence_spec_expands_with_given_horizon():
    spec = RecurrenceSpec(
        days_of_week=frozenset({Weekday.WED}),
        start_date=date(2024, 1, 1),
        start_time=time(9, 0),
        end_time=time(9, 30),
    )
    assert len(spec.expand(horizon_weeks=4)) == 4


def test_time_interval_requires_start_before_end():
    with pytest.raises(InputValidationError) as excinfo:
        TimeInterval(datetime(2024, 1, 1, 10, 0), datetime(2024, 1, 1, 10, 0))
    assert excinfo.value.code == "BOOKING_START_AFTER_END"


def test_parse_days_tokens_and_groups():
    assert parse_days("mon, Wed") == {Weekday.MON, Weekday.WED}
    assert parse_days("WEEKDAYS") == WEEKDAYS
    assert parse_days(["all"]) == ALL_DAYS
    assert parse_days("SAT SUN") == {Weekday.SAT, Weekday.SUN}
    assert parse_days("") == frozenset()


def test_parse_days_rejects_unknown_token():
    with pytest.raises(InputValidationError) as excinfo:
        parse_days("MON,FUNDAY")
    assert excinfo.value.code == "INVALID_DAY_OF_WEEK"
    assert excinfo.value.extra["value"] == "FUNDAY"


def test_text_formats():
    assert parse_datetime("2024-01-01 09:30") == datetime(2024, 1, 1, 9, 30)
    assert format_datetime(datetime(2024, 1, 1, 9, 30)) == "2024-01-01 09:30"
    assert parse_date("2024-02-29") == date(2024, 2, 29)
    assert parse_time("17:05") == time(17, 5)


@pytest.mark.parametrize(
    "parser, value, code",
    [
        (parse_datetime, "2024-01-01T09:30", "INVALID_DATETIME"),
        (parse_datetime, "01/01/2024 09:30", "INVALID_DATETIME"),
        (parse_date, "2023-02-29", "INVALID_DATE"),
        (parse_time, "25:00", "INVALID_TIME"),
    ],
)
def test_text_formats_reject_malformed_values(parser, value, code):
    with pytest.raises(InputValidationError) as excinfo:
        parser(value)
    assert excinfo.value.code == code
