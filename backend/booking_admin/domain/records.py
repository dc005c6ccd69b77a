from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Optional

from ..models import BookingStatus
from .errors import InvariantViolationError
from .slots import split_by_day
from .wallclock import WallClock, decode

BOUNDED_STATUSES = frozenset({BookingStatus.ACCEPTED, BookingStatus.CANCELLED})


@dataclass(frozen=True)
class BookingRecord:
    """
    Engine view of a booking.

    ``desired_date``/``desired_time`` are the customer's request and survive every transition.
    ``confirmed_start``/``confirmed_end`` hold persisted wall-clock literals; they are set for accepted
    bookings and kept on cancelled ones so a restore brings back the same schedule.
    """

    id: Optional[int]
    desired_date: date
    desired_time: time
    num_guests: int
    status: BookingStatus = BookingStatus.PENDING
    confirmed_start: Optional[str] = None
    confirmed_end: Optional[str] = None
    rejection_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None
    version: int = 1

    def __post_init__(self) -> None:
        validate_guests(self.num_guests)
        has_start = self.confirmed_start is not None
        has_end = self.confirmed_end is not None
        if self.status in BOUNDED_STATUSES:
            if not (has_start and has_end):
                raise InvariantViolationError(f"{self.status} booking {self.id} is missing confirmed bounds")
            start, end = self.start, self.end
            if start is None or end is None:
                raise InvariantViolationError(f"booking {self.id} has undecodable confirmed bounds")
            split_by_day(start, end)
        elif has_start or has_end:
            raise InvariantViolationError(f"{self.status} booking {self.id} must not carry confirmed bounds")

    @property
    def start(self) -> Optional[WallClock]:
        return decode(self.confirmed_start)

    @property
    def end(self) -> Optional[WallClock]:
        return decode(self.confirmed_end)

    @property
    def occupies_capacity(self) -> bool:
        return self.status == BookingStatus.ACCEPTED


def validate_guests(num_guests: int) -> int:
    if isinstance(num_guests, bool) or not isinstance(num_guests, int):
        raise InvariantViolationError(f"num_guests must be an integer, got {num_guests!r}")
    if num_guests < 1:
        raise InvariantViolationError(f"num_guests must be positive, got {num_guests}")
    return num_guests
