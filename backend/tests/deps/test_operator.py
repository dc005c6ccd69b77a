import pytest
from booking_admin.config import Settings, get_settings, get_slot_calendar
from booking_admin.deps import get_default_duration_minutes, get_operator_id
from booking_admin.domain.slots import SlotName
from fastapi import HTTPException


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.mark.asyncio
async def test_get_operator_id_strips_header() -> None:
    assert await get_operator_id(x_operator_id="  op-7 ") == "op-7"


@pytest.mark.asyncio
@pytest.mark.parametrize("header", [None, "", "   "])
async def test_get_operator_id_requires_header(header) -> None:
    with pytest.raises(HTTPException) as excinfo:
        await get_operator_id(x_operator_id=header)
    assert excinfo.value.status_code == 401


def test_slot_capacities_come_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EVENING_CAPACITY", "90")
    monkeypatch.setenv("DEFAULT_DURATION_MINUTES", "150")

    calendar = get_slot_calendar()

    assert calendar.get(SlotName.EVENING).capacity == 90
    assert calendar.get(SlotName.MORNING).capacity == 50
    assert get_default_duration_minutes() == 150


def test_slot_calendar_from_explicit_settings() -> None:
    calendar = get_slot_calendar(Settings(morning_capacity=0))
    assert calendar.get(SlotName.MORNING).capacity == 0
    assert calendar.get(SlotName.AFTERNOON).capacity == 50
