import datetime as dt
from decimal import Decimal
from enum import Enum as PyEnum
from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..session import Base


class SlotStatus(str, PyEnum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    CLOSED = "CLOSED"


class Slot(Base):
    __tablename__ = "slots"
    __table_args__ = (
        UniqueConstraint("mentor_id", "date", "start_time", name="uq_slot_mentor_date_start"),
        CheckConstraint(
            "substr(start_time, 4, 2) IN ('00', '30')", name="ck_slot_start_half_hour"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    mentor_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[SlotStatus] = mapped_column(Enum(SlotStatus), default=SlotStatus.AVAILABLE)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    mentor = relationship("User")
    booking_items = relationship("BookingItem", back_populates="slot")
