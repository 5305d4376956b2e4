"""Booking state changes after checkout: cancellation and status promotion.

Bookings are created ``PENDING``. Only :func:`cancel_booking` is exposed over
HTTP; :func:`transition_booking` is the hook for collaborators outside the
booking core (payment confirmation, the completion job) and enforces
``CANCELLED`` and ``COMPLETED`` as terminal states.
"""
from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from ..core import errors, time_window
from ..core.constants import CANCELLED_BY_MENTOR, CANCELLED_BY_STUDENT
from ..db import models
from ..db.models.booking import BookingItemStatus, BookingStatus
from ..db.models.slot import SlotStatus
from . import notification_service, slot_service
from .notification_service import NotificationMessage

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (BookingStatus.CANCELLED, BookingStatus.COMPLETED)

ALLOWED_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.COMPLETED},
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED},
    BookingStatus.CANCELLED: set(),
    BookingStatus.COMPLETED: set(),
}


def _load_booking(db: Session, booking_id: int) -> models.Booking | None:
    return db.execute(
        select(models.Booking)
        .options(selectinload(models.Booking.items))
        .where(models.Booking.id == booking_id)
    ).scalar_one_or_none()


def _raise_for_terminal(status: BookingStatus) -> None:
    if status == BookingStatus.CANCELLED:
        raise errors.AlreadyCancelled()
    if status == BookingStatus.COMPLETED:
        raise errors.CannotCancelCompleted()


def cancel_booking(
    db: Session, actor_id: int, booking_id: int
) -> tuple[models.Booking, NotificationMessage | None]:
    booking = _load_booking(db, booking_id)
    if not booking:
        raise errors.NotFoundError("Booking not found")
    if actor_id not in (booking.student_id, booking.mentor_id):
        raise errors.ForbiddenError("You are not authorized to cancel this booking")
    _raise_for_terminal(booking.status)
    if any(time_window.has_started(item.date, item.start_time) for item in booking.items):
        raise errors.HasPassedSlot()

    cancelled_by = CANCELLED_BY_STUDENT if actor_id == booking.student_id else CANCELLED_BY_MENTOR
    recipient_id = booking.mentor_id if actor_id == booking.student_id else booking.student_id
    now = time_window.utc_now()

    result = db.execute(
        update(models.Booking)
        .where(
            models.Booking.id == booking.id,
            models.Booking.status.not_in(TERMINAL_STATUSES),
        )
        .values(status=BookingStatus.CANCELLED, cancelled_at=now, cancelled_by=cancelled_by)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        # Cancelled or completed concurrently
        db.rollback()
        db.refresh(booking)
        _raise_for_terminal(booking.status)
        raise errors.StateError("Booking could not be cancelled")

    for item in booking.items:
        item.status = BookingItemStatus.CANCELLED
        released = slot_service.compare_and_set_status(
            db, item.slot_id, SlotStatus.BOOKED, SlotStatus.AVAILABLE
        )
        if not released:
            logger.warning(
                "Slot was not booked while cancelling",
                extra={"booking_id": booking.id, "slot_id": item.slot_id},
            )

    notification = notification_service.create_notification(
        db,
        recipient_id,
        notification_service.BOOKING_CANCELLED_TITLE,
        notification_service.build_cancellation_message(cancelled_by),
    )
    db.commit()
    db.refresh(booking)
    logger.info(
        "Booking cancelled",
        extra={"booking_id": booking.id, "cancelled_by": cancelled_by},
    )
    return booking, notification


def transition_booking(
    db: Session, booking_id: int, target: BookingStatus
) -> models.Booking:
    booking = db.get(models.Booking, booking_id)
    if not booking:
        raise errors.NotFoundError("Booking not found")
    if target not in ALLOWED_TRANSITIONS[booking.status]:
        raise errors.InvalidTransition(
            f"Cannot move booking from {booking.status.value} to {target.value}"
        )
    result = db.execute(
        update(models.Booking)
        .where(models.Booking.id == booking_id, models.Booking.status == booking.status)
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise errors.InvalidTransition("Booking status changed concurrently")
    db.commit()
    db.refresh(booking)
    logger.info(
        "Booking status changed",
        extra={"booking_id": booking_id, "status": target.value},
    )
    return booking
