from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time, timedelta
from enum import StrEnum
from typing import Sequence

from .errors import InvariantViolationError
from .wallclock import MINUTES_PER_DAY, WallClock, crosses_midnight, format_time_of_day, from_minutes, to_minutes


class SlotName(StrEnum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


@dataclass(frozen=True)
class SlotDefinition:
    name: SlotName
    start: int  # minutes since midnight, inclusive
    end: int  # minutes since midnight, exclusive
    capacity: int

    def __post_init__(self) -> None:
        if not (0 <= self.start < self.end <= MINUTES_PER_DAY):
            raise ValueError(f"slot {self.name} must satisfy 00:00 <= start < end <= 24:00")
        if self.capacity < 0:
            raise ValueError(f"slot {self.name} capacity must be >= 0")

    def overlaps(self, start: int, end: int) -> bool:
        if start == end:
            return self.start <= start < self.end
        return start < self.end and end > self.start

    @property
    def label(self) -> str:
        return f"{self.name} {format_time_of_day(from_minutes(self.start))}-{format_time_of_day(from_minutes(self.end))}"


def _hm(hour: int, minute: int = 0) -> int:
    return hour * 60 + minute


DEFAULT_SLOTS: tuple[SlotDefinition, ...] = (
    SlotDefinition(SlotName.MORNING, _hm(10), _hm(14, 30), 50),
    SlotDefinition(SlotName.AFTERNOON, _hm(14, 30), _hm(18, 30), 50),
    SlotDefinition(SlotName.EVENING, _hm(18, 30), _hm(23, 30), 70),
)


@dataclass(frozen=True)
class DaySegment:
    """The part of a booking that falls on one calendar day, as ``[start, end)`` minutes."""

    day: date
    start: int
    end: int


class SlotCalendar:
    """The day's fixed service slots, ordered and non-overlapping."""

    def __init__(self, slots: Sequence[SlotDefinition] = DEFAULT_SLOTS) -> None:
        if not slots:
            raise ValueError("a slot calendar needs at least one slot")
        ordered = tuple(sorted(slots, key=lambda s: s.start))
        names = [s.name for s in ordered]
        if len(set(names)) != len(names):
            raise ValueError("slot names must be unique")
        for prev, nxt in zip(ordered, ordered[1:]):
            if nxt.start < prev.end:
                raise ValueError(f"slots {prev.name} and {nxt.name} overlap")
        self._slots = ordered

    @property
    def slots(self) -> tuple[SlotDefinition, ...]:
        return self._slots

    def get(self, name: SlotName) -> SlotDefinition:
        for slot in self._slots:
            if slot.name == name:
                return slot
        raise KeyError(name)

    def with_capacities(self, capacities: dict[SlotName, int]) -> "SlotCalendar":
        return SlotCalendar(
            [
                SlotDefinition(s.name, s.start, s.end, capacities.get(s.name, s.capacity))
                for s in self._slots
            ]
        )

    def slots_overlapping(self, start: time, end: time) -> tuple[SlotDefinition, ...]:
        """
        Slots overlapping ``[start, end)``.

        When the interval crosses midnight the same-day part ``[start, 24:00)`` and the next-day part
        ``[00:00, end)`` are each checked against the calendar; the result is their union in calendar order.
        """
        if crosses_midnight(start, end):
            hit = self._overlapping(to_minutes(start), MINUTES_PER_DAY)
            hit += self._overlapping(0, to_minutes(end)) if to_minutes(end) > 0 else ()
            return tuple(s for s in self._slots if s in hit)
        return self._overlapping(to_minutes(start), to_minutes(end))

    def classify(self, day: date, start: time, end: time) -> dict[date, tuple[SlotDefinition, ...]]:
        """Slots per calendar day for a booking starting on ``day``."""
        end_day = day + timedelta(days=1) if crosses_midnight(start, end) else day
        return self.classify_span(WallClock(day, start), WallClock(end_day, end))

    def classify_span(self, start: WallClock, end: WallClock) -> dict[date, tuple[SlotDefinition, ...]]:
        return {seg.day: self._overlapping(seg.start, seg.end) for seg in split_by_day(start, end)}

    def _overlapping(self, start: int, end: int) -> tuple[SlotDefinition, ...]:
        return tuple(s for s in self._slots if s.overlaps(start, end))


def split_by_day(start: WallClock, end: WallClock) -> list[DaySegment]:
    if end.day == start.day:
        if end.at < start.at:
            raise InvariantViolationError(f"booking ends before it starts: {start} -> {end}")
        return [DaySegment(start.day, start.minute_of_day, end.minute_of_day)]
    if end.day == start.day + timedelta(days=1):
        segments = [DaySegment(start.day, start.minute_of_day, MINUTES_PER_DAY)]
        if end.minute_of_day > 0:
            segments.append(DaySegment(end.day, 0, end.minute_of_day))
        return segments
    raise InvariantViolationError(f"booking must end on its start day or the day after: {start} -> {end}")


DEFAULT_CALENDAR = SlotCalendar()
