from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ledger import AvailabilityVerdict


class DomainError(Exception):
    pass


class InvariantViolationError(DomainError):
    """A caller handed the engine a record or value that breaks its contract."""


class InvalidWallClockError(DomainError):
    """Date or time digits that do not form a real wall-clock value."""


class InvalidTransitionError(DomainError):
    pass


class BookingNotFoundError(DomainError):
    pass


class VersionConflictError(DomainError):
    pass


class CapacityExceededError(DomainError):
    def __init__(self, verdict: "AvailabilityVerdict", message: str = "capacity exceeded") -> None:
        super().__init__(message)
        self.verdict = verdict
