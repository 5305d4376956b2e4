from .base import CamelModel, Envelope
from .user import UserSummary, MentorSummary
from .slot import (
    Slot,
    SlotOpen,
    SlotBookingInfo,
    MentorSlot,
    MentorSlotList,
    AvailableSlotList,
    SlotClosed,
)
from .cart import CartItem, CartItemCreate, CartSlot, CartContents, CartCleared
from .booking import (
    Booking,
    BookingItem,
    BookingList,
    CartItemError,
    CartItemSlotDetails,
    CheckoutResult,
)
