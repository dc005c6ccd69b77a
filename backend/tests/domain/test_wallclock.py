import time as time_mod
from datetime import date, datetime, time, timezone
from typing import Iterator

import pytest
from booking_admin.domain.wallclock import (
    BoundaryRole,
    WallClock,
    add_duration,
    crosses_midnight,
    decode,
    decode_date,
    decode_time_of_day,
    encode,
    encode_wall_clock,
    parse_date,
    parse_time_of_day,
)


@pytest.fixture(params=["UTC", "America/New_York", "Europe/Rome", "Asia/Tokyo", "Pacific/Kiritimati"])
def process_tz(request: pytest.FixtureRequest, monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    if not hasattr(time_mod, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", request.param)
    time_mod.tzset()
    yield request.param
    monkeypatch.undo()
    time_mod.tzset()


def test_round_trip_keeps_typed_digits_in_any_process_timezone(process_tz: str) -> None:
    days = ["2024-02-29", "2025-01-01", "2025-03-30", "2025-06-01", "2025-10-26", "2025-12-31"]
    for typed_day in days:
        for minute_of_day in range(0, 24 * 60, 15):
            typed_time = f"{minute_of_day // 60:02d}:{minute_of_day % 60:02d}"
            persisted = encode(typed_day, typed_time)
            assert persisted is not None
            assert decode_date(persisted).isoformat() == typed_day, (process_tz, persisted)
            assert parse_time_of_day(typed_time) == decode_time_of_day(persisted), (process_tz, persisted)


def test_encode_writes_zero_padded_literal_with_fixed_offset() -> None:
    assert encode("2025-6-1", "9:05") == "2025-06-01T09:05:00+00:00"
    assert encode(date(2025, 6, 1), time(20, 0)) == "2025-06-01T20:00:00+00:00"


def test_midnight_crossover_moves_end_to_next_day() -> None:
    start = encode("2025-01-15", "22:00", BoundaryRole.START)
    end = encode("2025-01-15", "02:00", BoundaryRole.END, paired_start="22:00")

    assert decode_date(start) == date(2025, 1, 15)
    assert decode_date(end) == date(2025, 1, 16)
    assert decode_time_of_day(start) == time(22, 0)
    assert decode_time_of_day(end) == time(2, 0)


@pytest.mark.parametrize(
    "start_day, next_day",
    [
        ("2025-01-31", "2025-02-01"),
        ("2025-12-31", "2026-01-01"),
        ("2024-02-28", "2024-02-29"),
        ("2025-02-28", "2025-03-01"),
    ],
)
def test_crossover_rolls_month_and_year(start_day: str, next_day: str) -> None:
    end = encode(start_day, "01:30", BoundaryRole.END, paired_start="23:00")
    assert decode_date(end).isoformat() == next_day
    assert decode_time_of_day(end) == time(1, 30)


def test_end_after_start_stays_on_same_day() -> None:
    end = encode("2025-06-01", "23:00", BoundaryRole.END, paired_start="20:00")
    assert end == "2025-06-01T23:00:00+00:00"


def test_start_role_ignores_paired_start() -> None:
    assert encode("2025-06-01", "01:00", BoundaryRole.START, paired_start="22:00") == "2025-06-01T01:00:00+00:00"


def test_crosses_midnight_rule() -> None:
    assert crosses_midnight(time(22, 0), time(2, 0))
    assert crosses_midnight(time(20, 30), time(20, 0))
    assert not crosses_midnight(time(20, 0), time(23, 0))
    assert not crosses_midnight(time(22, 0), time(23, 30))
    assert not crosses_midnight(time(12, 0), time(12, 0))


@pytest.mark.parametrize(
    "persisted, expected_day, expected_time",
    [
        ("2025-01-15T20:00:00+00:00", date(2025, 1, 15), time(20, 0)),
        ("2025-01-15T20:00:00Z", date(2025, 1, 15), time(20, 0)),
        ("2025-01-15T20:00:00+02:00", date(2025, 1, 15), time(20, 0)),
        ("2025-01-15 20:00:00+00", date(2025, 1, 15), time(20, 0)),
    ],
)
def test_decode_reads_digits_and_ignores_offset(persisted: str, expected_day: date, expected_time: time) -> None:
    assert decode_date(persisted) == expected_day
    assert decode_time_of_day(persisted) == expected_time
    assert decode(persisted) == WallClock(expected_day, expected_time)


@pytest.mark.parametrize("persisted", [None, "", "not a timestamp", "2025-13-40T10:00:00+00:00"])
def test_decode_date_returns_none_for_unusable_input(persisted: str | None) -> None:
    assert decode_date(persisted) is None
    assert decode(persisted) is None


@pytest.mark.parametrize("persisted", [None, "", "2025-01-15", "2025-01-15T25:00:00+00:00", "2025-01-15T10:75"])
def test_decode_time_returns_none_for_unusable_input(persisted: str | None) -> None:
    assert decode_time_of_day(persisted) is None


@pytest.mark.parametrize(
    "day, at",
    [("2025-02-30", "10:00"), ("2025-01-01", "24:00"), ("2025-01-01", "10:60"), ("01/02/2025", "10:00"), ("", "")],
)
def test_encode_returns_none_for_malformed_input(day: str, at: str) -> None:
    assert encode(day, at) is None


def test_encode_returns_none_for_malformed_paired_start() -> None:
    assert encode("2025-01-01", "02:00", BoundaryRole.END, paired_start="late") is None


def test_parse_date_refuses_instants() -> None:
    assert parse_date(datetime(2025, 1, 1, 23, 0, tzinfo=timezone.utc)) is None
    assert parse_date(date(2025, 1, 1)) == date(2025, 1, 1)


def test_parse_time_drops_seconds() -> None:
    assert parse_time_of_day("20:15:42") == time(20, 15)
    assert parse_time_of_day(time(20, 15, 42)) == time(20, 15)


def test_add_duration_wraps_past_midnight() -> None:
    assert add_duration(time(20, 0), 180) == time(23, 0)
    assert add_duration(time(22, 30), 180) == time(1, 30)


def test_encode_wall_clock_uses_explicit_day() -> None:
    value = WallClock(date(2025, 1, 16), time(2, 0))
    assert encode_wall_clock(value) == "2025-01-16T02:00:00+00:00"
    assert decode(encode_wall_clock(value)) == value
    assert str(value) == "2025-01-16 02:00"
    assert value.minute_of_day == 120
