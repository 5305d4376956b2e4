from datetime import date as Date, datetime

from pydantic import field_validator

from ...core import time_window
from ..models import SlotStatus
from .base import CamelModel
from .user import UserSummary


class SlotOpen(CamelModel):
    date: Date
    start_time: str

    @field_validator("start_time")
    @classmethod
    def _half_hour_start(cls, value: str) -> str:
        parsed = time_window.parse_time(value)
        if not time_window.is_valid_start_time(value):
            raise ValueError(
                "Start time must be in 30-minute intervals (e.g., 09:00, 09:30, 10:00)"
            )
        return time_window.format_time(parsed)


class Slot(CamelModel):
    id: int
    mentor_id: int
    date: Date
    start_time: str
    end_time: str
    price: float
    status: SlotStatus
    created_at: datetime | None = None


class SlotBookingInfo(CamelModel):
    booking_item_id: int
    booking_id: int
    status: str
    student: UserSummary | None = None


class MentorSlot(Slot):
    booking: SlotBookingInfo | None = None


class MentorSlotList(CamelModel):
    slots: list[MentorSlot]
    total_count: int
    status_counts: dict[str, int]


class AvailableSlotList(CamelModel):
    mentor: UserSummary
    slots: list[Slot]
    total_count: int


class SlotClosed(CamelModel):
    slot_id: int
