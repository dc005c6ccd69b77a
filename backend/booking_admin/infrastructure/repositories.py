from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..domain.repositories import BookingRepository
from ..models import BookingRequest, BookingStatus, EventType
from ..utils.time import utc_now_naive


class SqlAlchemyBookingRepository(BookingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, booking_id: int) -> BookingRequest | None:
        result = await self.session.scalar(select(BookingRequest).where(BookingRequest.id == booking_id))
        return result if isinstance(result, BookingRequest) else None

    async def get_for_update(self, booking_id: int) -> BookingRequest | None:
        result = await self.session.scalar(
            select(BookingRequest).where(BookingRequest.id == booking_id).with_for_update()
        )
        return result if isinstance(result, BookingRequest) else None

    async def list_accepted_around(self, day: date, *, for_update: bool = False) -> List[BookingRequest]:
        # confirmed_start is the codec literal, so its first ten characters are the wall-clock date.
        previous = day - timedelta(days=1)
        stmt: Select[tuple[BookingRequest]] = (
            select(BookingRequest)
            .where(
                BookingRequest.status == BookingStatus.ACCEPTED,
                or_(
                    BookingRequest.confirmed_start.startswith(day.isoformat()),
                    BookingRequest.confirmed_start.startswith(previous.isoformat()),
                ),
            )
            .order_by(BookingRequest.id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        rows = await self.session.scalars(stmt)
        return list(rows.all())

    async def list_by_status(self, status: Optional[BookingStatus] = None) -> List[BookingRequest]:
        stmt: Select[tuple[BookingRequest]] = select(BookingRequest).order_by(
            BookingRequest.desired_date, BookingRequest.desired_time, BookingRequest.id
        )
        if status is not None:
            stmt = stmt.where(BookingRequest.status == status)
        rows = await self.session.scalars(stmt)
        return list(rows.all())

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
    ) -> BookingRequest:
        now = utc_now_naive()
        booking = BookingRequest(
            client_name=client_name,
            client_email=client_email,
            client_phone=client_phone,
            event_type=event_type,
            desired_date=desired_date,
            desired_time=desired_time,
            num_guests=num_guests,
            special_requests=special_requests,
            status=BookingStatus.PENDING,
            version=1,
            created_at=now,
            updated_at=now,
        )
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def save(self, booking: BookingRequest) -> BookingRequest:
        self.session.add(booking)
        await self.session.flush()
        return booking
