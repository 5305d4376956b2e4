from . import (
    booking_service,
    cart_service,
    lifecycle_service,
    notification_service,
    slot_service,
)
__all__ = [
    "booking_service",
    "cart_service",
    "lifecycle_service",
    "notification_service",
    "slot_service",
]
