import logging
from datetime import date, time
from typing import Optional

from ..domain import lifecycle
from ..domain.errors import BookingNotFoundError, InvariantViolationError, VersionConflictError
from ..domain.lifecycle import TransitionResult
from ..domain.records import BookingRecord
from ..domain.repositories import BookingRepository
from ..domain.slots import DEFAULT_CALENDAR, SlotCalendar
from ..domain.wallclock import format_time_of_day, parse_date, parse_time_of_day
from ..models import BookingRequest, BookingStatus, EventType
from ..utils.time import utc_now_naive

logger = logging.getLogger(__name__)


def to_record(row: BookingRequest) -> BookingRecord:
    desired_date = parse_date(row.desired_date)
    desired_time = parse_time_of_day(row.desired_time)
    if desired_date is None or desired_time is None:
        raise InvariantViolationError(f"booking {row.id} has a malformed desired date/time")
    return BookingRecord(
        id=row.id,
        desired_date=desired_date,
        desired_time=desired_time,
        num_guests=row.num_guests,
        status=BookingStatus(row.status),
        confirmed_start=row.confirmed_start,
        confirmed_end=row.confirmed_end,
        rejection_reason=row.rejection_reason,
        cancellation_reason=row.cancellation_reason,
        version=row.version,
    )


def apply_record(row: BookingRequest, record: BookingRecord) -> BookingRequest:
    """Copy the engine-owned fields back; desired date/time are never written here."""
    row.status = record.status
    row.num_guests = record.num_guests
    row.confirmed_start = record.confirmed_start
    row.confirmed_end = record.confirmed_end
    row.rejection_reason = record.rejection_reason
    row.cancellation_reason = record.cancellation_reason
    return row


async def load_snapshot(repo: BookingRepository, *days: date, for_update: bool = False) -> list[BookingRecord]:
    """Accepted bookings that can occupy seats on any of ``days``, each loaded once."""
    rows: dict[int, BookingRequest] = {}
    for day in days:
        for row in await repo.list_accepted_around(day, for_update=for_update):
            rows.setdefault(row.id, row)
    return [to_record(row) for row in rows.values()]


async def submit_booking_request(
    repo: BookingRepository,
    *,
    client_name: str,
    client_email: str,
    client_phone: str | None,
    event_type: EventType,
    desired_date: str | date,
    desired_time: str | time,
    num_guests: int,
    special_requests: str | None,
) -> BookingRequest:
    record = lifecycle.request_booking(desired_date, desired_time, num_guests)
    return await repo.create(
        client_name=client_name,
        client_email=client_email,
        client_phone=client_phone,
        event_type=event_type,
        desired_date=record.desired_date.isoformat(),
        desired_time=format_time_of_day(record.desired_time),
        num_guests=record.num_guests,
        special_requests=special_requests,
    )


async def accept_booking(
    repo: BookingRepository,
    *,
    booking_id: int,
    day: str | date | None = None,
    start: str | time | None = None,
    end: str | time | None = None,
    num_guests: Optional[int] = None,
    override_capacity: bool = False,
    version: Optional[int] = None,
    calendar: SlotCalendar = DEFAULT_CALENDAR,
    duration_minutes: int = lifecycle.DEFAULT_DURATION_MINUTES,
) -> tuple[BookingRequest, TransitionResult]:
    row = await _load_for_update(repo, booking_id, version)
    record = to_record(row)
    target_day, start_at, end_at = lifecycle.accept_bounds(
        record, day=day, start=start, end=end, duration_minutes=duration_minutes
    )
    # Lock every touched day's accepted rows.
    snapshot = await load_snapshot(
        repo, *lifecycle.days_touched(target_day, start_at, end_at), for_update=True
    )
    result = lifecycle.accept(
        record,
        snapshot,
        day=target_day,
        start=start_at,
        end=end_at,
        num_guests=num_guests,
        override_capacity=override_capacity,
        calendar=calendar,
        duration_minutes=duration_minutes,
    )
    return await _commit(repo, row, result), result


async def edit_booking(
    repo: BookingRepository,
    *,
    booking_id: int,
    day: str | date | None = None,
    start: str | time | None = None,
    end: str | time | None = None,
    num_guests: Optional[int] = None,
    override_capacity: bool = False,
    version: Optional[int] = None,
    calendar: SlotCalendar = DEFAULT_CALENDAR,
) -> tuple[BookingRequest, TransitionResult]:
    row = await _load_for_update(repo, booking_id, version)
    record = to_record(row)
    lifecycle.assert_transition("edit", record.status)
    target_day, start_at, end_at = lifecycle.edit_bounds(record, day=day, start=start, end=end)
    snapshot = await load_snapshot(
        repo, *lifecycle.days_touched(target_day, start_at, end_at), for_update=True
    )
    result = lifecycle.edit(
        record,
        snapshot,
        day=target_day,
        start=start_at,
        end=end_at,
        num_guests=num_guests,
        override_capacity=override_capacity,
        calendar=calendar,
    )
    return await _commit(repo, row, result), result


async def reject_booking(
    repo: BookingRepository,
    *,
    booking_id: int,
    reason: Optional[str] = None,
    version: Optional[int] = None,
) -> tuple[BookingRequest, Optional[TransitionResult]]:
    row = await _load_for_update(repo, booking_id, version, idempotent_status=BookingStatus.REJECTED)
    if row.status == BookingStatus.REJECTED:
        return row, None
    result = lifecycle.reject(to_record(row), reason)
    return await _commit(repo, row, result), result


async def cancel_booking(
    repo: BookingRepository,
    *,
    booking_id: int,
    reason: Optional[str] = None,
    cancelled_by: Optional[str] = None,
    version: Optional[int] = None,
) -> tuple[BookingRequest, Optional[TransitionResult]]:
    row = await _load_for_update(repo, booking_id, version, idempotent_status=BookingStatus.CANCELLED)
    # Idempotent: already cancelled returns as-is
    if row.status == BookingStatus.CANCELLED:
        return row, None
    result = lifecycle.cancel(to_record(row), reason)
    row.cancelled_at = utc_now_naive()
    row.cancelled_by = cancelled_by
    return await _commit(repo, row, result), result


async def restore_booking(
    repo: BookingRepository,
    *,
    booking_id: int,
    recheck_capacity: bool = False,
    override_capacity: bool = False,
    version: Optional[int] = None,
    calendar: SlotCalendar = DEFAULT_CALENDAR,
) -> tuple[BookingRequest, TransitionResult]:
    row = await _load_for_update(repo, booking_id, version)
    record = to_record(row)
    snapshot = None
    start, end = record.start, record.end
    if recheck_capacity and start is not None and end is not None:
        snapshot = await load_snapshot(repo, *lifecycle.days_touched(start.day, start.at, end.at), for_update=True)
    result = lifecycle.restore(record, snapshot, override_capacity=override_capacity, calendar=calendar)
    row.cancelled_at = None
    row.cancelled_by = None
    return await _commit(repo, row, result), result


async def list_bookings(
    repo: BookingRepository,
    *,
    status: Optional[BookingStatus] = None,
) -> list[BookingRequest]:
    return await repo.list_by_status(status)


async def get_booking(repo: BookingRepository, *, booking_id: int) -> BookingRequest:
    row = await repo.get(booking_id)
    if row is None:
        raise BookingNotFoundError(f"booking {booking_id} not found")
    return row


async def _load_for_update(
    repo: BookingRepository,
    booking_id: int,
    version: Optional[int],
    *,
    idempotent_status: Optional[BookingStatus] = None,
) -> BookingRequest:
    row = await repo.get_for_update(booking_id)
    if row is None:
        raise BookingNotFoundError(f"booking {booking_id} not found")
    if idempotent_status is not None and row.status == idempotent_status:
        return row
    # Version check after idempotent guard
    if version is not None and row.version != version:
        raise VersionConflictError(f"booking {booking_id} is at version {row.version}, not {version}")
    return row


async def _commit(repo: BookingRepository, row: BookingRequest, result: TransitionResult) -> BookingRequest:
    apply_record(row, result.booking)
    row.version += 1
    row.updated_at = utc_now_naive()
    if result.overridden:
        logger.warning("booking %s committed over capacity", row.id)
    return await repo.save(row)
