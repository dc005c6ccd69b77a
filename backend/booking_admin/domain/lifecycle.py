from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, time, timedelta
from typing import Iterable, Optional

from ..models import BookingStatus
from .errors import CapacityExceededError, InvalidTransitionError, InvalidWallClockError, InvariantViolationError
from .ledger import AvailabilityVerdict, ProspectiveBooking, evaluate
from .records import BookingRecord, validate_guests
from .slots import DEFAULT_CALENDAR, SlotCalendar
from .wallclock import BoundaryRole, WallClock, add_duration, crosses_midnight, encode, parse_date, parse_time_of_day

logger = logging.getLogger(__name__)

DEFAULT_DURATION_MINUTES = 180

# action -> (statuses it may start from, status it leads to)
TRANSITIONS: dict[str, tuple[frozenset[BookingStatus], BookingStatus]] = {
    "accept": (frozenset({BookingStatus.PENDING}), BookingStatus.ACCEPTED),
    "reject": (frozenset({BookingStatus.PENDING}), BookingStatus.REJECTED),
    "edit": (frozenset({BookingStatus.ACCEPTED}), BookingStatus.ACCEPTED),
    "cancel": (frozenset({BookingStatus.ACCEPTED}), BookingStatus.CANCELLED),
    "restore": (frozenset({BookingStatus.CANCELLED}), BookingStatus.ACCEPTED),
}


@dataclass(frozen=True)
class TransitionResult:
    booking: BookingRecord
    verdict: Optional[AvailabilityVerdict] = None
    overridden: bool = False


def assert_transition(action: str, current: BookingStatus) -> BookingStatus:
    allowed_from, target = TRANSITIONS[action]
    if current not in allowed_from:
        raise InvalidTransitionError(f"cannot {action} a {current} booking")
    return target


def request_booking(
    desired_date: str | date,
    desired_time: str | time,
    num_guests: int,
    *,
    booking_id: Optional[int] = None,
) -> BookingRecord:
    day = parse_date(desired_date)
    at = parse_time_of_day(desired_time)
    if day is None or at is None:
        raise InvalidWallClockError(f"invalid desired date/time: {desired_date!r} {desired_time!r}")
    return BookingRecord(
        id=booking_id,
        desired_date=day,
        desired_time=at,
        num_guests=validate_guests(num_guests),
        status=BookingStatus.PENDING,
    )


def accept(
    booking: BookingRecord,
    accepted_bookings: Iterable[BookingRecord],
    *,
    day: str | date | None = None,
    start: str | time | None = None,
    end: str | time | None = None,
    num_guests: Optional[int] = None,
    override_capacity: bool = False,
    calendar: SlotCalendar = DEFAULT_CALENDAR,
    duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> TransitionResult:
    """
    Confirm a pending request.

    Day and start default to what the customer asked for, the end to ``duration_minutes`` later.
    Refuses with ``CapacityExceededError`` when a touched slot lacks seats, unless ``override_capacity``.
    """
    target = assert_transition("accept", booking.status)
    target_day, start_at, end_at = accept_bounds(
        booking, day=day, start=start, end=end, duration_minutes=duration_minutes
    )
    guests = validate_guests(num_guests) if num_guests is not None else booking.num_guests
    return _confirm(
        "accept",
        booking,
        accepted_bookings,
        target=target,
        day=target_day,
        start_at=start_at,
        end_at=end_at,
        guests=guests,
        override_capacity=override_capacity,
        calendar=calendar,
    )


def edit(
    booking: BookingRecord,
    accepted_bookings: Iterable[BookingRecord],
    *,
    day: str | date | None = None,
    start: str | time | None = None,
    end: str | time | None = None,
    num_guests: Optional[int] = None,
    override_capacity: bool = False,
    calendar: SlotCalendar = DEFAULT_CALENDAR,
) -> TransitionResult:
    """
    Change an accepted booking's bounds and/or guest count.

    The booking's own seats are left out of the snapshot before the new shape is checked, so a resize
    never competes with itself. Moving only the start keeps the previous duration.
    """
    target = assert_transition("edit", booking.status)
    target_day, start_at, end_at = edit_bounds(booking, day=day, start=start, end=end)
    guests = validate_guests(num_guests) if num_guests is not None else booking.num_guests
    return _confirm(
        "edit",
        booking,
        accepted_bookings,
        target=target,
        day=target_day,
        start_at=start_at,
        end_at=end_at,
        guests=guests,
        override_capacity=override_capacity,
        calendar=calendar,
    )


def accept_bounds(
    booking: BookingRecord,
    *,
    day: str | date | None = None,
    start: str | time | None = None,
    end: str | time | None = None,
    duration_minutes: int = DEFAULT_DURATION_MINUTES,
) -> tuple[date, time, time]:
    """Day, start and end an accept would confirm, with the desired values and duration filled in."""
    target_day = _parse_day(day) if day is not None else booking.desired_date
    start_at = _parse_at(start) if start is not None else booking.desired_time
    end_at = _parse_at(end) if end is not None else add_duration(start_at, duration_minutes)
    return target_day, start_at, end_at


def edit_bounds(
    booking: BookingRecord,
    *,
    day: str | date | None = None,
    start: str | time | None = None,
    end: str | time | None = None,
) -> tuple[date, time, time]:
    """Day, start and end an edit would confirm; unchanged parts come from the current bounds."""
    current_start, current_end = _confirmed_bounds(booking)
    target_day = _parse_day(day) if day is not None else current_start.day
    start_at = _parse_at(start) if start is not None else current_start.at
    if end is not None:
        end_at = _parse_at(end)
    elif start is not None:
        end_at = add_duration(start_at, _duration_minutes(current_start, current_end))
    else:
        end_at = current_end.at
    return target_day, start_at, end_at


def days_touched(day: date, start_at: time, end_at: time) -> tuple[date, ...]:
    """Calendar days whose seats a booking starting on ``day`` may occupy."""
    if crosses_midnight(start_at, end_at):
        return (day, day + timedelta(days=1))
    return (day,)


def reject(booking: BookingRecord, reason: Optional[str] = None) -> TransitionResult:
    target = assert_transition("reject", booking.status)
    return TransitionResult(booking=replace(booking, status=target, rejection_reason=reason))


def cancel(booking: BookingRecord, reason: Optional[str] = None) -> TransitionResult:
    """Soft-delete; confirmed bounds stay on the record for a later restore."""
    target = assert_transition("cancel", booking.status)
    return TransitionResult(booking=replace(booking, status=target, cancellation_reason=reason))


def restore(
    booking: BookingRecord,
    accepted_bookings: Optional[Iterable[BookingRecord]] = None,
    *,
    override_capacity: bool = False,
    calendar: SlotCalendar = DEFAULT_CALENDAR,
) -> TransitionResult:
    """
    Bring a cancelled booking back with its previously confirmed bounds.

    Without a snapshot no capacity check runs. With one, the unchanged bounds are re-validated and the
    restore is refused on a shortfall unless ``override_capacity``.
    """
    target = assert_transition("restore", booking.status)
    restored = replace(booking, status=target, cancellation_reason=None)
    if accepted_bookings is None:
        return TransitionResult(booking=restored)

    start, end = _confirmed_bounds(booking)
    prospective = ProspectiveBooking(day=start.day, start=start.at, end=end.at, num_guests=booking.num_guests)
    verdict = evaluate(prospective, accepted_bookings, calendar, exclude_booking_id=booking.id)
    _enforce("restore", booking, verdict, override_capacity)
    return TransitionResult(booking=restored, verdict=verdict, overridden=not verdict.is_available)


def _confirm(
    action: str,
    booking: BookingRecord,
    accepted_bookings: Iterable[BookingRecord],
    *,
    target: BookingStatus,
    day: date,
    start_at: time,
    end_at: time,
    guests: int,
    override_capacity: bool,
    calendar: SlotCalendar,
) -> TransitionResult:
    confirmed_start = encode(day, start_at, BoundaryRole.START)
    confirmed_end = encode(day, end_at, BoundaryRole.END, paired_start=start_at)
    if confirmed_start is None or confirmed_end is None:
        raise InvalidWallClockError(f"cannot encode bounds {day} {start_at}-{end_at}")

    prospective = ProspectiveBooking(day=day, start=start_at, end=end_at, num_guests=guests)
    verdict = evaluate(prospective, accepted_bookings, calendar, exclude_booking_id=booking.id)
    _enforce(action, booking, verdict, override_capacity)

    updated = replace(
        booking,
        status=target,
        num_guests=guests,
        confirmed_start=confirmed_start,
        confirmed_end=confirmed_end,
    )
    return TransitionResult(booking=updated, verdict=verdict, overridden=not verdict.is_available)


def _enforce(action: str, booking: BookingRecord, verdict: AvailabilityVerdict, override_capacity: bool) -> None:
    if verdict.is_available:
        return
    if not override_capacity:
        logger.info("refused %s of booking %s: %s", action, booking.id, "; ".join(verdict.messages()))
        raise CapacityExceededError(verdict)
    logger.warning(
        "%s of booking %s overrides capacity: %s", action, booking.id, "; ".join(verdict.messages())
    )


def _duration_minutes(start: WallClock, end: WallClock) -> int:
    return (end.day - start.day).days * 24 * 60 + end.minute_of_day - start.minute_of_day


def _parse_day(value: str | date) -> date:
    parsed = parse_date(value)
    if parsed is None:
        raise InvalidWallClockError(f"invalid date: {value!r}")
    return parsed


def _parse_at(value: str | time) -> time:
    parsed = parse_time_of_day(value)
    if parsed is None:
        raise InvalidWallClockError(f"invalid time of day: {value!r}")
    return parsed


def _confirmed_bounds(booking: BookingRecord) -> tuple[WallClock, WallClock]:
    start, end = booking.start, booking.end
    if start is None or end is None:
        raise InvariantViolationError(f"{booking.status} booking {booking.id} has no usable confirmed bounds")
    return start, end
