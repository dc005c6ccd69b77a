from __future__ import annotations

from datetime import date
from typing import Optional, Protocol

from ..models import BookingRequest, BookingStatus, EventType


class BookingRepository(Protocol):
    async def get(self, booking_id: int) -> BookingRequest | None: ...

    async def get_for_update(self, booking_id: int) -> BookingRequest | None: ...

    async def list_accepted_around(self, day: date, *, for_update: bool = False) -> list[BookingRequest]:
        """Accepted bookings confirmed to start on ``day`` or the day before (midnight crossovers)."""
        ...

    async def list_by_status(self, status: Optional[BookingStatus] = None) -> list[BookingRequest]: ...

    async def create(
        self,
        *,
        client_name: str,
        client_email: str,
        client_phone: str | None,
        event_type: EventType,
        desired_date: str,
        desired_time: str,
        num_guests: int,
        special_requests: str | None,
    ) -> BookingRequest: ...

    async def save(self, booking: BookingRequest) -> BookingRequest: ...
