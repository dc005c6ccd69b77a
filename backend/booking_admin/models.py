from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from sqlalchemy import CheckConstraint, Enum, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.sqltypes import BigInteger, DateTime, Integer, String, Text


class Base(DeclarativeBase):
    pass


class BookingStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class EventType(StrEnum):
    CENA = "cena"
    APERITIVO = "aperitivo"
    EVENTO = "evento"
    LAUREA = "laurea"


def _enum_column(enum_cls: type[StrEnum]) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


class BookingRequest(Base):
    __tablename__ = "booking_requests"
    __table_args__ = (
        CheckConstraint("num_guests >= 1", name="chk_booking_num_guests"),
        CheckConstraint(
            "(status IN ('accepted', 'cancelled')) = (confirmed_start IS NOT NULL AND confirmed_end IS NOT NULL)",
            name="chk_booking_confirmed_bounds",
        ),
        Index("idx_booking_status", "status"),
        Index("idx_booking_confirmed_start", "confirmed_start"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_email: Mapped[str] = mapped_column(String(255), nullable=False)
    client_phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    event_type: Mapped[EventType] = mapped_column(_enum_column(EventType), nullable=False, default=EventType.CENA)
    # Digits exactly as typed by the requester; never rewritten.
    desired_date: Mapped[str] = mapped_column(String(10), nullable=False)
    desired_time: Mapped[str] = mapped_column(String(5), nullable=False)
    num_guests: Mapped[int] = mapped_column(Integer, nullable=False)
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[BookingStatus] = mapped_column(
        _enum_column(BookingStatus),
        nullable=False,
        default=BookingStatus.PENDING,
    )
    # Wall-clock literals produced by domain.wallclock.encode; kept as text so no driver re-bases them.
    confirmed_start: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    confirmed_end: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
    cancelled_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
