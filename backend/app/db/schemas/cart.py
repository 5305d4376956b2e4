from datetime import date as Date, datetime

from ..models import CartItemStatus
from .base import CamelModel
from .slot import Slot
from .user import MentorSummary


class CartItemCreate(CamelModel):
    slot_id: int


class CartSlot(Slot):
    mentor: MentorSummary | None = None


class CartItem(CamelModel):
    id: int
    cart_id: int
    user_id: int
    slot_id: int | None = None
    mentor_id: int
    date: Date
    start_time: str
    end_time: str
    price: float
    status: CartItemStatus
    expires_at: datetime
    created_at: datetime | None = None
    expired: bool = False
    slot: CartSlot | None = None


class CartContents(CamelModel):
    cart_id: int | None = None
    items: list[CartItem]
    total_items: int
    total_price: float


class CartCleared(CamelModel):
    deleted_count: int
