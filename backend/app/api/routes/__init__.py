from . import (
    slots,
    cart,
    bookings,
    misc,
)

__all__ = [
    "slots",
    "cart",
    "bookings",
    "misc",
]
