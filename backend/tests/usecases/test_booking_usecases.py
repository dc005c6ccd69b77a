from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

import pytest
from booking_admin.domain.errors import (
    BookingNotFoundError,
    CapacityExceededError,
    InvalidTransitionError,
    InvalidWallClockError,
    VersionConflictError,
)
from booking_admin.domain.slots import SlotCalendar, SlotDefinition, SlotName
from booking_admin.domain.wallclock import BoundaryRole, encode
from booking_admin.models import BookingRequest, BookingStatus, EventType
from booking_admin.usecases import bookings as uc


class FakeBookingRepo:
    def __init__(self, rows: Optional[List[BookingRequest]] = None) -> None:
        self.rows: Dict[int, BookingRequest] = {row.id: row for row in rows or []}
        self.saved: List[BookingRequest] = []
        self.snapshot_calls: List[tuple[date, bool]] = []

    async def get(self, booking_id: int) -> Optional[BookingRequest]:
        return self.rows.get(booking_id)

    async def get_for_update(self, booking_id: int) -> Optional[BookingRequest]:
        return self.rows.get(booking_id)

    async def list_accepted_around(self, day: date, *, for_update: bool = False) -> List[BookingRequest]:
        self.snapshot_calls.append((day, for_update))
        prefixes = {day.isoformat(), (day - timedelta(days=1)).isoformat()}
        return [
            row
            for row in self.rows.values()
            if row.status == BookingStatus.ACCEPTED and (row.confirmed_start or "")[:10] in prefixes
        ]

    async def list_by_status(self, status: Optional[BookingStatus] = None) -> List[BookingRequest]:
        return [row for row in self.rows.values() if status is None or row.status == status]

    async def create(self, **fields) -> BookingRequest:
        row = BookingRequest(
            id=len(self.rows) + 1,
            status=BookingStatus.PENDING,
            version=1,
            created_at=datetime(2025, 1, 1),
            updated_at=datetime(2025, 1, 1),
            **fields,
        )
        self.rows[row.id] = row
        return row

    async def save(self, booking: BookingRequest) -> BookingRequest:
        self.saved.append(booking)
        return booking


def _row(
    booking_id: int,
    *,
    status: BookingStatus = BookingStatus.PENDING,
    desired_date: str = "2025-06-01",
    desired_time: str = "20:00",
    num_guests: int = 4,
    start: Optional[str] = None,
    end: Optional[str] = None,
    version: int = 1,
) -> BookingRequest:
    confirmed_start = confirmed_end = None
    if start is not None and end is not None:
        confirmed_start = encode(desired_date, start)
        confirmed_end = encode(desired_date, end, BoundaryRole.END, paired_start=start)
    return BookingRequest(
        id=booking_id,
        client_name="Giulia Rossi",
        client_email="giulia@example.com",
        client_phone=None,
        event_type=EventType.CENA,
        desired_date=desired_date,
        desired_time=desired_time,
        num_guests=num_guests,
        special_requests=None,
        status=status,
        confirmed_start=confirmed_start,
        confirmed_end=confirmed_end,
        version=version,
        created_at=datetime(2025, 1, 1),
        updated_at=datetime(2025, 1, 1),
    )


@pytest.mark.asyncio
async def test_submit_normalises_desired_digits() -> None:
    repo = FakeBookingRepo()
    row = await uc.submit_booking_request(
        repo,
        client_name="Giulia Rossi",
        client_email="giulia@example.com",
        client_phone="+39 333 000",
        event_type=EventType.LAUREA,
        desired_date="2025-6-1",
        desired_time="9:30",
        num_guests=12,
        special_requests=None,
    )
    assert row.desired_date == "2025-06-01"
    assert row.desired_time == "09:30"
    assert row.status == BookingStatus.PENDING
    assert row.confirmed_start is None


@pytest.mark.asyncio
async def test_submit_refuses_impossible_date() -> None:
    repo = FakeBookingRepo()
    with pytest.raises(InvalidWallClockError):
        await uc.submit_booking_request(
            repo,
            client_name="Giulia Rossi",
            client_email="giulia@example.com",
            client_phone=None,
            event_type=EventType.CENA,
            desired_date="2025-02-30",
            desired_time="20:00",
            num_guests=2,
            special_requests=None,
        )
    assert repo.rows == {}


@pytest.mark.asyncio
async def test_accept_writes_bounds_and_bumps_version() -> None:
    repo = FakeBookingRepo([_row(1)])

    row, result = await uc.accept_booking(repo, booking_id=1, version=1)

    assert row.status == BookingStatus.ACCEPTED
    assert row.confirmed_start == "2025-06-01T20:00:00+00:00"
    assert row.confirmed_end == "2025-06-01T23:00:00+00:00"
    assert row.desired_date == "2025-06-01"
    assert row.desired_time == "20:00"
    assert row.version == 2
    assert result.overridden is False
    assert repo.saved == [row]
    assert repo.snapshot_calls == [(date(2025, 6, 1), True)]


@pytest.mark.asyncio
async def test_accept_refusal_leaves_row_untouched() -> None:
    full = _row(2, status=BookingStatus.ACCEPTED, num_guests=70, start="19:00", end="22:00")
    repo = FakeBookingRepo([_row(1), full])

    with pytest.raises(CapacityExceededError):
        await uc.accept_booking(repo, booking_id=1)

    assert repo.rows[1].status == BookingStatus.PENDING
    assert repo.rows[1].version == 1
    assert repo.saved == []


@pytest.mark.asyncio
async def test_accept_override_commits_over_capacity() -> None:
    full = _row(2, status=BookingStatus.ACCEPTED, num_guests=70, start="19:00", end="22:00")
    repo = FakeBookingRepo([_row(1), full])

    row, result = await uc.accept_booking(repo, booking_id=1, override_capacity=True)

    assert row.status == BookingStatus.ACCEPTED
    assert result.overridden is True


@pytest.mark.asyncio
async def test_accept_snapshot_follows_target_day() -> None:
    repo = FakeBookingRepo([_row(1)])
    await uc.accept_booking(repo, booking_id=1, day="2025-06-03", start="12:00", end="14:00")
    assert repo.snapshot_calls == [(date(2025, 6, 3), True)]


@pytest.mark.asyncio
async def test_accept_sees_previous_day_crossover() -> None:
    night = SlotCalendar(
        [
            SlotDefinition(SlotName.MORNING, 0, 180, 10),
            SlotDefinition(SlotName.EVENING, 19 * 60, 24 * 60, 40),
        ]
    )
    late = _row(2, status=BookingStatus.ACCEPTED, desired_date="2025-06-01", num_guests=8, start="23:00", end="02:00")
    early = _row(1, desired_date="2025-06-02", desired_time="00:30", num_guests=4)
    repo = FakeBookingRepo([early, late])

    with pytest.raises(CapacityExceededError) as exc_info:
        await uc.accept_booking(repo, booking_id=1, end="01:30", calendar=night)
    assert exc_info.value.verdict.exceeded[0].exceeded_by == 2


@pytest.mark.asyncio
async def test_accept_crossover_locks_and_checks_the_next_day() -> None:
    lunch = _row(2, status=BookingStatus.ACCEPTED, desired_date="2025-01-16", num_guests=50, start="10:00", end="12:00")
    late = _row(1, desired_date="2025-01-15", desired_time="22:00", num_guests=6)
    repo = FakeBookingRepo([late, lunch])

    with pytest.raises(CapacityExceededError) as exc_info:
        await uc.accept_booking(repo, booking_id=1, end="11:00")

    assert repo.snapshot_calls == [(date(2025, 1, 15), True), (date(2025, 1, 16), True)]
    assert exc_info.value.verdict.exceeded[0].day == date(2025, 1, 16)
    assert repo.rows[1].status == BookingStatus.PENDING


@pytest.mark.asyncio
async def test_version_mismatch_is_a_conflict() -> None:
    repo = FakeBookingRepo([_row(1, version=3)])
    with pytest.raises(VersionConflictError):
        await uc.accept_booking(repo, booking_id=1, version=2)


@pytest.mark.asyncio
async def test_missing_booking_is_not_found() -> None:
    repo = FakeBookingRepo()
    with pytest.raises(BookingNotFoundError):
        await uc.accept_booking(repo, booking_id=99)
    with pytest.raises(BookingNotFoundError):
        await uc.get_booking(repo, booking_id=99)


@pytest.mark.asyncio
async def test_edit_resizes_without_counting_itself() -> None:
    mine = _row(1, status=BookingStatus.ACCEPTED, num_guests=10, start="19:00", end="22:00")
    other = _row(2, status=BookingStatus.ACCEPTED, num_guests=55, start="19:00", end="22:00")
    repo = FakeBookingRepo([mine, other])

    row, result = await uc.edit_booking(repo, booking_id=1, num_guests=15, version=1)

    assert row.num_guests == 15
    assert row.version == 2
    assert result.verdict.per_slot[0].occupied == 55


@pytest.mark.asyncio
async def test_edit_pending_booking_is_invalid() -> None:
    repo = FakeBookingRepo([_row(1)])
    with pytest.raises(InvalidTransitionError):
        await uc.edit_booking(repo, booking_id=1, num_guests=5)


@pytest.mark.asyncio
async def test_reject_is_idempotent() -> None:
    repo = FakeBookingRepo([_row(1, status=BookingStatus.REJECTED, version=2)])
    row, result = await uc.reject_booking(repo, booking_id=1, reason="late", version=1)
    assert result is None
    assert row.version == 2
    assert repo.saved == []


@pytest.mark.asyncio
async def test_cancel_records_who_and_keeps_bounds() -> None:
    repo = FakeBookingRepo([_row(1, status=BookingStatus.ACCEPTED, start="20:00", end="23:00")])

    row, result = await uc.cancel_booking(repo, booking_id=1, reason="customer called", cancelled_by="op-7")

    assert result is not None
    assert row.status == BookingStatus.CANCELLED
    assert row.cancellation_reason == "customer called"
    assert row.cancelled_by == "op-7"
    assert row.cancelled_at is not None
    assert row.confirmed_start == "2025-06-01T20:00:00+00:00"


@pytest.mark.asyncio
async def test_cancel_twice_returns_existing_row() -> None:
    cancelled = _row(1, status=BookingStatus.CANCELLED, start="20:00", end="23:00", version=4)
    repo = FakeBookingRepo([cancelled])
    row, result = await uc.cancel_booking(repo, booking_id=1, version=1)
    assert row is cancelled
    assert result is None


@pytest.mark.asyncio
async def test_restore_without_recheck_skips_snapshot() -> None:
    cancelled = _row(1, status=BookingStatus.CANCELLED, start="20:00", end="23:00")
    cancelled.cancelled_by = "op-7"
    repo = FakeBookingRepo([cancelled])

    row, result = await uc.restore_booking(repo, booking_id=1)

    assert row.status == BookingStatus.ACCEPTED
    assert row.cancelled_by is None
    assert result.verdict is None
    assert repo.snapshot_calls == []


@pytest.mark.asyncio
async def test_restore_recheck_refuses_when_slot_filled_meanwhile() -> None:
    cancelled = _row(1, status=BookingStatus.CANCELLED, num_guests=10, start="20:00", end="23:00")
    other = _row(2, status=BookingStatus.ACCEPTED, num_guests=65, start="19:00", end="22:00")
    repo = FakeBookingRepo([cancelled, other])

    with pytest.raises(CapacityExceededError):
        await uc.restore_booking(repo, booking_id=1, recheck_capacity=True)
    assert repo.snapshot_calls == [(date(2025, 6, 1), True)]


@pytest.mark.asyncio
async def test_list_bookings_filters_by_status() -> None:
    repo = FakeBookingRepo(
        [_row(1), _row(2, status=BookingStatus.ACCEPTED, start="20:00", end="23:00"), _row(3)]
    )
    pending = await uc.list_bookings(repo, status=BookingStatus.PENDING)
    assert [row.id for row in pending] == [1, 3]
    assert len(await uc.list_bookings(repo)) == 3
