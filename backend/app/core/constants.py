"""Common application-wide constants."""

from datetime import timedelta

# Every slot is a fixed half-hour window
SLOT_DURATION = timedelta(minutes=30)
SLOT_START_MINUTES = (0, 30)

# Slots are opened/closed at least this far ahead and booked no earlier than this
BOOKING_WINDOW = timedelta(hours=48)

# How long a cart item holds a slot before checkout rejects it
CART_ITEM_HOLD = timedelta(minutes=30)

# Who cancelled a booking
CANCELLED_BY_STUDENT = "student"
CANCELLED_BY_MENTOR = "mentor"

# Per-item checkout rejection reasons
REASON_EXPIRED = "expired"
REASON_OUTSIDE_WINDOW = "too-late-or-too-early"
REASON_SLOT_GONE = "slot-gone"
REASON_ALREADY_BOOKED = "already-booked"
REASON_SLOT_CLOSED = "slot-closed"
REASON_GROUP_ABORTED = "group-aborted"
REASON_CHECKOUT_FAILED = "checkout-failed"


__all__ = [
    "SLOT_DURATION",
    "SLOT_START_MINUTES",
    "BOOKING_WINDOW",
    "CART_ITEM_HOLD",
    "CANCELLED_BY_STUDENT",
    "CANCELLED_BY_MENTOR",
    "REASON_EXPIRED",
    "REASON_OUTSIDE_WINDOW",
    "REASON_SLOT_GONE",
    "REASON_ALREADY_BOOKED",
    "REASON_SLOT_CLOSED",
    "REASON_GROUP_ABORTED",
    "REASON_CHECKOUT_FAILED",
]
