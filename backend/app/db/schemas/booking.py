from datetime import date as Date, datetime

from ..models import BookingItemStatus, BookingStatus
from .base import CamelModel
from .user import UserSummary


class BookingItem(CamelModel):
    id: int
    slot_id: int
    mentor_id: int
    date: Date
    start_time: str
    end_time: str
    price: float
    status: BookingItemStatus


class Booking(CamelModel):
    id: int
    student_id: int
    mentor_id: int
    total_price: float
    status: BookingStatus
    created_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancelled_by: str | None = None
    student: UserSummary | None = None
    mentor: UserSummary | None = None
    items: list[BookingItem] = []


class CartItemSlotDetails(CamelModel):
    mentor_id: int
    mentor_name: str | None = None
    date: Date
    start_time: str
    end_time: str


class CartItemError(CamelModel):
    cart_item_id: int
    reason: str
    message: str
    slot: CartItemSlotDetails | None = None


class CheckoutResult(CamelModel):
    bookings: list[Booking]
    errors: list[CartItemError] | None = None


class BookingList(CamelModel):
    bookings: list[Booking]
    count: int
