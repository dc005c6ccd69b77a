from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_calendar, get_default_duration_minutes, get_operator_id, get_session
from ..domain.errors import InvalidWallClockError
from ..domain.slots import SlotCalendar
from ..infrastructure.repositories import SqlAlchemyBookingRepository
from ..schemas import AvailabilityQuery, AvailabilityRead, SlotOccupancyRead
from ..usecases import availability as availability_usecase

router = APIRouter(prefix="", tags=["availability"])


@router.get("/days/{day}/occupancy", response_model=List[SlotOccupancyRead])
async def daily_occupancy(
    day: date,
    session: AsyncSession = Depends(get_session),
    operator_id: str = Depends(get_operator_id),
    calendar: SlotCalendar = Depends(get_calendar),
) -> list[SlotOccupancyRead]:
    repo = SqlAlchemyBookingRepository(session)
    rows = await availability_usecase.daily_occupancy(repo, day=day, calendar=calendar)
    return [SlotOccupancyRead.from_domain(row) for row in rows]


@router.post("/availability/check", response_model=AvailabilityRead)
async def check_availability(
    payload: AvailabilityQuery,
    session: AsyncSession = Depends(get_session),
    operator_id: str = Depends(get_operator_id),
    calendar: SlotCalendar = Depends(get_calendar),
    duration_minutes: int = Depends(get_default_duration_minutes),
) -> AvailabilityRead:
    repo = SqlAlchemyBookingRepository(session)
    try:
        verdict = await availability_usecase.check_availability(
            repo,
            day=payload.day,
            start=payload.start_time,
            end=payload.end_time,
            num_guests=payload.num_guests,
            exclude_booking_id=payload.exclude_booking_id,
            calendar=calendar,
            duration_minutes=duration_minutes,
        )
    except InvalidWallClockError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return AvailabilityRead.from_domain(verdict)
