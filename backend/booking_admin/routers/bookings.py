import logging
import re
from typing import List, Optional, Protocol

from fastapi import APIRouter, Depends, Header, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_calendar, get_default_duration_minutes, get_operator_id, get_session
from ..domain.errors import (
    BookingNotFoundError,
    CapacityExceededError,
    DomainError,
    InvalidTransitionError,
    InvalidWallClockError,
    VersionConflictError,
)
from ..domain.lifecycle import TransitionResult
from ..domain.slots import SlotCalendar
from ..infrastructure.repositories import SqlAlchemyBookingRepository
from ..models import BookingRequest, BookingStatus
from ..schemas import (
    AvailabilityRead,
    BookingAccept,
    BookingCancel,
    BookingEdit,
    BookingRead,
    BookingReject,
    BookingRequestCreate,
    BookingRestore,
    BookingTransitionRead,
)
from ..usecases import bookings as booking_usecase
from ..utils.audit_log import AuditAction, emit_audit_log

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])

_ETAG_VERSION = re.compile(r'^(?:W/)?"(\d+)"$')


class _HasVersion(Protocol):
    version: Optional[int]


def _extract_version(if_match: str | None, payload: Optional[_HasVersion]) -> Optional[int]:
    """If-Match wins over the body; no version at all means no optimistic check."""
    if if_match is not None:
        match = _ETAG_VERSION.match(if_match.strip())
        if match is None:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid If-Match header")
        version = int(match.group(1))
    elif payload is not None and payload.version is not None:
        version = payload.version
    else:
        return None
    if version < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="version must be >= 1")
    return version


def _to_http(exc: DomainError) -> HTTPException:
    if isinstance(exc, BookingNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="booking not found")
    if isinstance(exc, CapacityExceededError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": "capacity exceeded",
                "availability": AvailabilityRead.from_domain(exc.verdict).model_dump(mode="json"),
            },
        )
    if isinstance(exc, (InvalidTransitionError, VersionConflictError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, InvalidWallClockError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    raise exc


def _audit(
    action: AuditAction,
    booking: BookingRequest,
    *,
    status_from: Optional[BookingStatus],
    operator_id: Optional[str],
    result: Optional[TransitionResult] = None,
    message: Optional[str] = None,
) -> None:
    extra = None
    if result is not None and result.verdict is not None and result.verdict.exceeded:
        extra = {
            "exceeded": [
                {"day": o.day.isoformat(), "slot": str(o.slot), "exceeded_by": o.exceeded_by}
                for o in result.verdict.exceeded
            ]
        }
    try:
        emit_audit_log(
            action=action,
            initiator="operator" if operator_id is not None else "customer",
            booking_id=booking.id,
            operator_id=operator_id,
            num_guests=booking.num_guests,
            status_from=status_from,
            status_to=booking.status,
            version=booking.version,
            confirmed_start=booking.confirmed_start,
            confirmed_end=booking.confirmed_end,
            capacity_overridden=result.overridden if result is not None and result.overridden else None,
            message=message,
            extra=extra,
        )
    except RuntimeError as exc:
        logger.exception("audit log failed for booking %s", booking.id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc


def _transition_read(booking: BookingRequest, result: Optional[TransitionResult]) -> BookingTransitionRead:
    verdict = result.verdict if result is not None else None
    return BookingTransitionRead(
        booking=BookingRead.from_db(booking=booking),
        capacity_overridden=bool(result and result.overridden),
        availability=AvailabilityRead.from_domain(verdict) if verdict is not None else None,
    )


@router.post("", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def submit_booking_request(
    payload: BookingRequestCreate,
    session: AsyncSession = Depends(get_session),
) -> BookingRead:
    repo = SqlAlchemyBookingRepository(session)
    async with session.begin():
        try:
            booking = await booking_usecase.submit_booking_request(
                repo,
                client_name=payload.client_name,
                client_email=payload.client_email,
                client_phone=payload.client_phone,
                event_type=payload.event_type,
                desired_date=payload.desired_date,
                desired_time=payload.desired_time,
                num_guests=payload.num_guests,
                special_requests=payload.special_requests,
            )
        except DomainError as exc:
            raise _to_http(exc) from exc
        _audit("booking.requested", booking, status_from=None, operator_id=None)

    return BookingRead.from_db(booking=booking)


@router.get("", response_model=List[BookingRead])
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(default=None, alias="status"),
    session: AsyncSession = Depends(get_session),
    operator_id: str = Depends(get_operator_id),
) -> list[BookingRead]:
    repo = SqlAlchemyBookingRepository(session)
    rows = await booking_usecase.list_bookings(repo, status=status_filter)
    return [BookingRead.from_db(booking=row) for row in rows]


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    operator_id: str = Depends(get_operator_id),
) -> BookingRead:
    repo = SqlAlchemyBookingRepository(session)
    try:
        booking = await booking_usecase.get_booking(repo, booking_id=booking_id)
    except DomainError as exc:
        raise _to_http(exc) from exc
    return BookingRead.from_db(booking=booking)


@router.post("/{booking_id}/accept", response_model=BookingTransitionRead)
async def accept_booking(
    payload: BookingAccept,
    booking_id: int = Path(..., ge=1),
    if_match: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
    operator_id: str = Depends(get_operator_id),
    calendar: SlotCalendar = Depends(get_calendar),
    duration_minutes: int = Depends(get_default_duration_minutes),
) -> BookingTransitionRead:
    version = _extract_version(if_match, payload)
    repo = SqlAlchemyBookingRepository(session)
    async with session.begin():
        try:
            booking, result = await booking_usecase.accept_booking(
                repo,
                booking_id=booking_id,
                day=payload.day,
                start=payload.start_time,
                end=payload.end_time,
                num_guests=payload.num_guests,
                override_capacity=payload.override_capacity,
                version=version,
                calendar=calendar,
                duration_minutes=duration_minutes,
            )
        except DomainError as exc:
            raise _to_http(exc) from exc
        _audit(
            "booking.accepted",
            booking,
            status_from=BookingStatus.PENDING,
            operator_id=operator_id,
            result=result,
        )

    return _transition_read(booking, result)


@router.post("/{booking_id}/edit", response_model=BookingTransitionRead)
async def edit_booking(
    payload: BookingEdit,
    booking_id: int = Path(..., ge=1),
    if_match: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
    operator_id: str = Depends(get_operator_id),
    calendar: SlotCalendar = Depends(get_calendar),
) -> BookingTransitionRead:
    version = _extract_version(if_match, payload)
    repo = SqlAlchemyBookingRepository(session)
    async with session.begin():
        try:
            booking, result = await booking_usecase.edit_booking(
                repo,
                booking_id=booking_id,
                day=payload.day,
                start=payload.start_time,
                end=payload.end_time,
                num_guests=payload.num_guests,
                override_capacity=payload.override_capacity,
                version=version,
                calendar=calendar,
            )
        except DomainError as exc:
            raise _to_http(exc) from exc
        _audit(
            "booking.edited",
            booking,
            status_from=BookingStatus.ACCEPTED,
            operator_id=operator_id,
            result=result,
        )

    return _transition_read(booking, result)


@router.post("/{booking_id}/reject", response_model=BookingTransitionRead)
async def reject_booking(
    payload: BookingReject,
    booking_id: int = Path(..., ge=1),
    if_match: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
    operator_id: str = Depends(get_operator_id),
) -> BookingTransitionRead:
    version = _extract_version(if_match, payload)
    repo = SqlAlchemyBookingRepository(session)
    async with session.begin():
        try:
            booking, result = await booking_usecase.reject_booking(
                repo,
                booking_id=booking_id,
                reason=payload.reason,
                version=version,
            )
        except DomainError as exc:
            raise _to_http(exc) from exc
        if result is not None:
            _audit(
                "booking.rejected",
                booking,
                status_from=BookingStatus.PENDING,
                operator_id=operator_id,
                message=payload.reason,
            )

    return _transition_read(booking, result)


@router.post("/{booking_id}/cancel", response_model=BookingTransitionRead)
async def cancel_booking(
    payload: BookingCancel,
    booking_id: int = Path(..., ge=1),
    if_match: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
    operator_id: str = Depends(get_operator_id),
) -> BookingTransitionRead:
    version = _extract_version(if_match, payload)
    repo = SqlAlchemyBookingRepository(session)
    async with session.begin():
        try:
            booking, result = await booking_usecase.cancel_booking(
                repo,
                booking_id=booking_id,
                reason=payload.reason,
                cancelled_by=operator_id,
                version=version,
            )
        except DomainError as exc:
            raise _to_http(exc) from exc
        if result is not None:
            _audit(
                "booking.cancelled",
                booking,
                status_from=BookingStatus.ACCEPTED,
                operator_id=operator_id,
                message=payload.reason,
            )

    return _transition_read(booking, result)


@router.post("/{booking_id}/restore", response_model=BookingTransitionRead)
async def restore_booking(
    payload: BookingRestore,
    booking_id: int = Path(..., ge=1),
    if_match: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
    operator_id: str = Depends(get_operator_id),
    calendar: SlotCalendar = Depends(get_calendar),
) -> BookingTransitionRead:
    version = _extract_version(if_match, payload)
    repo = SqlAlchemyBookingRepository(session)
    async with session.begin():
        try:
            booking, result = await booking_usecase.restore_booking(
                repo,
                booking_id=booking_id,
                recheck_capacity=payload.recheck_capacity,
                override_capacity=payload.override_capacity,
                version=version,
                calendar=calendar,
            )
        except DomainError as exc:
            raise _to_http(exc) from exc
        _audit(
            "booking.restored",
            booking,
            status_from=BookingStatus.CANCELLED,
            operator_id=operator_id,
            result=result,
        )

    return _transition_read(booking, result)
