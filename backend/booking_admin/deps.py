from typing import AsyncIterator

from fastapi import Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings, get_slot_calendar
from .database import async_session
from .domain.slots import SlotCalendar


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


async def get_operator_id(x_operator_id: str | None = Header(default=None)) -> str:
    if x_operator_id is None or not x_operator_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="X-Operator-Id header required")
    return x_operator_id.strip()


def get_calendar() -> SlotCalendar:
    return get_slot_calendar()


def get_default_duration_minutes() -> int:
    return get_settings().default_duration_minutes
