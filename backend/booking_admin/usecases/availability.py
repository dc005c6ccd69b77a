from datetime import date, time
from typing import List, Optional

from ..domain import ledger
from ..domain.errors import InvalidWallClockError
from ..domain.lifecycle import DEFAULT_DURATION_MINUTES, days_touched
from ..domain.repositories import BookingRepository
from ..domain.slots import DEFAULT_CALENDAR, SlotCalendar
from ..domain.wallclock import add_duration, parse_time_of_day
from .bookings import load_snapshot


async def daily_occupancy(
    repo: BookingRepository,
    *,
    day: date,
    calendar: SlotCalendar = DEFAULT_CALENDAR,
) -> List[ledger.SlotOccupancy]:
    snapshot = await load_snapshot(repo, day)
    return ledger.occupancy_for(day, snapshot, calendar)


async def check_availability(
    repo: BookingRepository,
    *,
    day: date,
    start: str | time,
    end: str | time | None,
    num_guests: int,
    exclude_booking_id: Optional[int] = None,
    calendar: SlotCalendar = DEFAULT_CALENDAR,
    duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> ledger.AvailabilityVerdict:
    """Advisory read: the answer is re-checked when the transition itself is committed."""
    start_at = parse_time_of_day(start)
    end_at = parse_time_of_day(end) if end is not None else (
        add_duration(start_at, duration_minutes) if start_at is not None else None
    )
    if start_at is None or end_at is None:
        raise InvalidWallClockError(f"invalid time range: {start!r}-{end!r}")
    prospective = ledger.ProspectiveBooking(day=day, start=start_at, end=end_at, num_guests=num_guests)
    snapshot = await load_snapshot(repo, *days_touched(day, start_at, end_at))
    return ledger.evaluate(prospective, snapshot, calendar, exclude_booking_id=exclude_booking_id)
