import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from ..core import errors, time_window
from ..db import models
from ..db.models.booking import BookingItemStatus, BookingStatus
from ..db.session import SessionLocal
from ..services import lifecycle_service

logger = logging.getLogger(__name__)

COMPLETION_INTERVAL_MINUTES = 15


def _has_elapsed(booking: models.Booking) -> bool:
    items = [item for item in booking.items if item.status != BookingItemStatus.CANCELLED]
    return bool(items) and all(time_window.has_ended(item.date, item.start_time) for item in items)


def complete_elapsed_bookings(session_factory=SessionLocal) -> int:
    """Mark open bookings whose every slot has ended as COMPLETED."""
    completed = 0
    with session_factory() as db:
        bookings = db.execute(
            select(models.Booking)
            .options(selectinload(models.Booking.items))
            .where(models.Booking.status.in_((BookingStatus.PENDING, BookingStatus.CONFIRMED)))
        ).scalars().all()
        for booking in bookings:
            if not _has_elapsed(booking):
                continue
            try:
                lifecycle_service.transition_booking(db, booking.id, BookingStatus.COMPLETED)
            except errors.InvalidTransition:
                logger.info("Booking changed before completion", extra={"booking_id": booking.id})
                continue
            completed += 1
    if completed:
        logger.info("Completed elapsed bookings", extra={"count": completed})
    return completed


def get_scheduler() -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    scheduler.add_job(complete_elapsed_bookings, "interval", minutes=COMPLETION_INTERVAL_MINUTES)
    return scheduler
