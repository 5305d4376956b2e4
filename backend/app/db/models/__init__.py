from .user import User, UserRole
from .category import Category
from .slot import Slot, SlotStatus
from .cart import Cart, CartItem, CartItemStatus
from .booking import Booking, BookingItem, BookingStatus, BookingItemStatus
from .notification import Notification
