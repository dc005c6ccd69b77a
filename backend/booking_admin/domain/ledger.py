"""
Seat accounting per service slot per day.

Everything here is a pure query over an explicit snapshot of bookings: nothing raises on a capacity
shortfall, the verdict says so and the caller decides whether to block, warn or override.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Iterable, Mapping, Optional, Sequence

from .records import BookingRecord, validate_guests
from .slots import DEFAULT_CALENDAR, SlotCalendar, SlotName


@dataclass(frozen=True)
class SlotOccupancy:
    slot: SlotName
    capacity: int
    occupied: int

    @property
    def available(self) -> int:
        """Signed: negative when the slot was knowingly overfilled."""
        return self.capacity - self.occupied

    @property
    def remaining(self) -> int:
        return max(self.available, 0)

    @property
    def exceeded_by(self) -> int:
        return max(self.occupied - self.capacity, 0)


@dataclass(frozen=True)
class ProspectiveBooking:
    day: date
    start: time
    end: time
    num_guests: int

    def __post_init__(self) -> None:
        validate_guests(self.num_guests)


@dataclass(frozen=True)
class SlotCheck:
    slot: SlotName
    capacity: int
    occupied: int
    requested: int
    day: date

    @property
    def available(self) -> int:
        return self.capacity - self.occupied

    @property
    def remaining(self) -> int:
        return max(self.available, 0)

    @property
    def fits(self) -> bool:
        return self.available >= self.requested


@dataclass(frozen=True)
class SlotOverflow:
    slot: SlotName
    capacity: int
    occupied: int
    requested: int
    exceeded_by: int
    day: date


@dataclass(frozen=True)
class AvailabilityVerdict:
    is_available: bool
    per_slot: tuple[SlotCheck, ...]
    exceeded: tuple[SlotOverflow, ...]
    occupancy: tuple[SlotOccupancy, ...] = ()

    @property
    def outside_service_slots(self) -> bool:
        return not self.per_slot

    def messages(self) -> list[str]:
        spans_days = len({entry.day for entry in self.per_slot}) > 1
        lines = []
        for check_ in self.per_slot:
            if check_.fits:
                continue
            label = f"{check_.slot} {check_.day.isoformat()}" if spans_days else f"{check_.slot}"
            line = (
                f"{label}: {check_.available} of {check_.capacity} seats available "
                f"(requested {check_.requested})"
            )
            overflow = next(
                (o for o in self.exceeded if o.slot == check_.slot and o.day == check_.day), None
            )
            if overflow is not None:
                line += f", over capacity by {overflow.exceeded_by}"
            lines.append(line)
        return lines


def occupancy_for(
    day: date,
    bookings: Iterable[BookingRecord],
    calendar: SlotCalendar = DEFAULT_CALENDAR,
    *,
    exclude_booking_id: Optional[int] = None,
) -> list[SlotOccupancy]:
    """
    Seats taken per slot on ``day``.

    A booking counts its full guest count in every slot its confirmed interval overlaps on ``day``;
    the part of a midnight-crossing booking that lands on the next day counts against that day.
    Only accepted bookings occupy seats.
    """
    occupied = {slot.name: 0 for slot in calendar.slots}
    for booking in bookings:
        if not booking.occupies_capacity:
            continue
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        start, end = booking.start, booking.end
        if start is None or end is None:
            continue
        for slot in calendar.classify_span(start, end).get(day, ()):
            occupied[slot.name] += booking.num_guests
    return [SlotOccupancy(slot=s.name, capacity=s.capacity, occupied=occupied[s.name]) for s in calendar.slots]


def check(
    prospective: ProspectiveBooking,
    occupancy: Mapping[date, Sequence[SlotOccupancy]],
    calendar: SlotCalendar = DEFAULT_CALENDAR,
) -> AvailabilityVerdict:
    """
    Would ``prospective`` fit into the days described by ``occupancy``?

    ``occupancy`` maps each calendar day the booking touches (its start day, plus the next day for a
    midnight crossover) to that day's rows; a missing day counts as empty. The rows must already
    leave out a booking being edited in place: use ``evaluate`` with ``exclude_booking_id`` for that.
    """
    per_slot: list[SlotCheck] = []
    exceeded: list[SlotOverflow] = []
    touched = calendar.classify(prospective.day, prospective.start, prospective.end)
    for day, slots in touched.items():
        by_slot = {o.slot: o for o in occupancy.get(day, ())}
        for slot in slots:
            current = by_slot.get(slot.name) or SlotOccupancy(slot=slot.name, capacity=slot.capacity, occupied=0)
            entry = SlotCheck(
                slot=slot.name,
                capacity=current.capacity,
                occupied=current.occupied,
                requested=prospective.num_guests,
                day=day,
            )
            per_slot.append(entry)
            if entry.fits:
                continue
            overflow = current.occupied + prospective.num_guests - current.capacity
            if overflow > 0:
                exceeded.append(
                    SlotOverflow(
                        slot=slot.name,
                        capacity=current.capacity,
                        occupied=current.occupied,
                        requested=prospective.num_guests,
                        exceeded_by=overflow,
                        day=day,
                    )
                )

    return AvailabilityVerdict(
        is_available=all(entry.fits for entry in per_slot),
        per_slot=tuple(per_slot),
        exceeded=tuple(exceeded),
        occupancy=tuple(occupancy.get(prospective.day, ())),
    )


def evaluate(
    prospective: ProspectiveBooking,
    bookings: Iterable[BookingRecord],
    calendar: SlotCalendar = DEFAULT_CALENDAR,
    *,
    exclude_booking_id: Optional[int] = None,
) -> AvailabilityVerdict:
    """Check ``prospective`` against every day it touches, computing each day's occupancy from ``bookings``."""
    bookings = list(bookings)
    days = calendar.classify(prospective.day, prospective.start, prospective.end)
    occupancy = {
        day: occupancy_for(day, bookings, calendar, exclude_booking_id=exclude_booking_id) for day in days
    }
    return check(prospective, occupancy, calendar)
