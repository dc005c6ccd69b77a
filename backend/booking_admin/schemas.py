from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.ledger import AvailabilityVerdict, SlotCheck, SlotOccupancy, SlotOverflow
from .domain.slots import SlotName
from .domain.wallclock import decode_date, decode_time_of_day, format_time_of_day
from .models import BookingRequest, BookingStatus, EventType


class BookingRequestCreate(BaseModel):
    client_name: str = Field(min_length=1, max_length=255)
    client_email: str = Field(min_length=3, max_length=255)
    client_phone: Optional[str] = Field(default=None, max_length=50)
    event_type: EventType = EventType.CENA
    desired_date: date
    desired_time: time
    num_guests: int = Field(ge=1)
    special_requests: Optional[str] = None


class BookingAccept(BaseModel):
    day: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    num_guests: Optional[int] = Field(default=None, ge=1)
    override_capacity: bool = False
    version: Optional[int] = Field(default=None, ge=1)


class BookingEdit(BookingAccept):
    pass


class BookingReject(BaseModel):
    reason: Optional[str] = None
    version: Optional[int] = Field(default=None, ge=1)


class BookingCancel(BaseModel):
    reason: Optional[str] = None
    version: Optional[int] = Field(default=None, ge=1)


class BookingRestore(BaseModel):
    recheck_capacity: bool = False
    override_capacity: bool = False
    version: Optional[int] = Field(default=None, ge=1)


class AvailabilityQuery(BaseModel):
    day: date
    start_time: time
    end_time: Optional[time] = None
    num_guests: int = Field(ge=1)
    exclude_booking_id: Optional[int] = None


class BookingRead(BaseModel):
    booking_id: int
    client_name: str
    client_email: str
    client_phone: Optional[str]
    event_type: EventType
    desired_date: str
    desired_time: str
    num_guests: int
    special_requests: Optional[str]
    status: BookingStatus
    confirmed_start: Optional[str]
    confirmed_end: Optional[str]
    confirmed_start_date: Optional[date]
    confirmed_start_time: Optional[time]
    confirmed_end_date: Optional[date]
    confirmed_end_time: Optional[time]
    rejection_reason: Optional[str]
    cancellation_reason: Optional[str]
    cancelled_at: Optional[datetime]
    cancelled_by: Optional[str]
    version: int

    @field_serializer("confirmed_start_time", "confirmed_end_time")
    def _ser_time(self, value: Optional[time]) -> Optional[str]:
        return format_time_of_day(value) if value is not None else None

    @classmethod
    def from_db(cls, *, booking: BookingRequest) -> "BookingRead":
        return cls(
            booking_id=booking.id,
            client_name=booking.client_name,
            client_email=booking.client_email,
            client_phone=booking.client_phone,
            event_type=booking.event_type,
            desired_date=booking.desired_date,
            desired_time=booking.desired_time,
            num_guests=booking.num_guests,
            special_requests=booking.special_requests,
            status=booking.status,
            confirmed_start=booking.confirmed_start,
            confirmed_end=booking.confirmed_end,
            confirmed_start_date=decode_date(booking.confirmed_start),
            confirmed_start_time=decode_time_of_day(booking.confirmed_start),
            confirmed_end_date=decode_date(booking.confirmed_end),
            confirmed_end_time=decode_time_of_day(booking.confirmed_end),
            rejection_reason=booking.rejection_reason,
            cancellation_reason=booking.cancellation_reason,
            cancelled_at=booking.cancelled_at,
            cancelled_by=booking.cancelled_by,
            version=booking.version,
        )


class SlotOccupancyRead(BaseModel):
    slot: SlotName
    capacity: int
    occupied: int
    available: int
    remaining: int

    @classmethod
    def from_domain(cls, occupancy: SlotOccupancy) -> "SlotOccupancyRead":
        return cls(
            slot=occupancy.slot,
            capacity=occupancy.capacity,
            occupied=occupancy.occupied,
            available=occupancy.available,
            remaining=occupancy.remaining,
        )


class SlotCheckRead(BaseModel):
    slot: SlotName
    day: date
    capacity: int
    occupied: int
    available: int
    requested: int
    fits: bool

    @classmethod
    def from_domain(cls, entry: SlotCheck) -> "SlotCheckRead":
        return cls(
            slot=entry.slot,
            day=entry.day,
            capacity=entry.capacity,
            occupied=entry.occupied,
            available=entry.available,
            requested=entry.requested,
            fits=entry.fits,
        )


class SlotOverflowRead(BaseModel):
    slot: SlotName
    day: date
    capacity: int
    occupied: int
    requested: int
    exceeded_by: int

    @classmethod
    def from_domain(cls, overflow: SlotOverflow) -> "SlotOverflowRead":
        return cls(
            slot=overflow.slot,
            day=overflow.day,
            capacity=overflow.capacity,
            occupied=overflow.occupied,
            requested=overflow.requested,
            exceeded_by=overflow.exceeded_by,
        )


class AvailabilityRead(BaseModel):
    is_available: bool
    per_slot: List[SlotCheckRead]
    exceeded: List[SlotOverflowRead]
    occupancy: List[SlotOccupancyRead]
    messages: List[str]

    @classmethod
    def from_domain(cls, verdict: AvailabilityVerdict) -> "AvailabilityRead":
        return cls(
            is_available=verdict.is_available,
            per_slot=[SlotCheckRead.from_domain(e) for e in verdict.per_slot],
            exceeded=[SlotOverflowRead.from_domain(o) for o in verdict.exceeded],
            occupancy=[SlotOccupancyRead.from_domain(o) for o in verdict.occupancy],
            messages=verdict.messages(),
        )


class BookingTransitionRead(BaseModel):
    booking: BookingRead
    capacity_overridden: bool = False
    availability: Optional[AvailabilityRead] = None
