"""Service-level error taxonomy mapped onto HTTP responses by ``api.errors``."""
from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    status_code = 400
    code = "bad_request"
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None, *, errors: Any = None) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class NotFoundError(ServiceError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class ForbiddenError(ServiceError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class ConflictError(ServiceError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class StateError(ServiceError):
    status_code = 400
    code = "invalid_state"


class ValidationFailed(ServiceError):
    status_code = 400
    code = "validation_failed"
    default_message = "Validation failed"


class NoPriceConfigured(StateError):
    code = "no_price_configured"
    default_message = (
        "No price configured for this mentor. Please set price in profile or category."
    )


class SlotConflict(ConflictError):
    code = "slot_conflict"
    default_message = (
        "A slot already exists for this time. Please choose a different time "
        "or close the existing slot first."
    )


class TooSoon(StateError):
    code = "too_soon"
    default_message = "Slot must be scheduled at least 48 hours in advance"


class HasBooking(StateError):
    code = "has_booking"
    default_message = "Cannot close a slot that has a booking. Please cancel the booking first."


class NotMentor(StateError):
    code = "not_mentor"
    default_message = "User is not a mentor"


class MentorNotVerified(ForbiddenError):
    code = "mentor_not_verified"
    default_message = "Mentor is not verified"


class NotAvailable(StateError):
    code = "not_available"
    default_message = "Slot is not available"


class OutsideBookingWindow(StateError):
    code = "outside_booking_window"
    default_message = "Slots must be booked within 48 hours."


class AlreadyInCart(ConflictError):
    code = "already_in_cart"
    default_message = "This slot is already in your cart"


class EmptyCart(StateError):
    code = "empty_cart"
    default_message = "Your cart is empty"


class CheckoutFailed(StateError):
    code = "checkout_failed"
    default_message = "All cart items failed validation"


class AlreadyCancelled(StateError):
    code = "already_cancelled"
    default_message = "This booking is already cancelled"


class CannotCancelCompleted(StateError):
    code = "cannot_cancel_completed"
    default_message = "Cannot cancel a completed booking"


class HasPassedSlot(StateError):
    code = "has_passed_slot"
    default_message = "Cannot cancel booking with past time slots"


class InvalidTransition(StateError):
    code = "invalid_transition"
    default_message = "Booking status transition is not allowed"
