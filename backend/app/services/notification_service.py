from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import get_settings
from ..db import models

logger = logging.getLogger(__name__)

NEW_BOOKING_TITLE = "New Booking Received"
BOOKING_CANCELLED_TITLE = "Booking Cancelled"


@dataclass(slots=True)
class NotificationMessage:
    user_id: int
    title: str
    message: str


def build_new_booking_message(slot_count: int) -> str:
    return f"You have received a new booking for {slot_count} slot(s)"


def build_cancellation_message(cancelled_by: str) -> str:
    return f"A booking has been cancelled by the {cancelled_by}"


def create_notification(
    db: Session, user_id: int, title: str, message: str
) -> NotificationMessage | None:
    """Store a notification inside the caller's transaction.

    The insert runs in its own savepoint, so a failure is logged and rolled back
    without touching the surrounding booking work.
    """
    db.flush()
    try:
        with db.begin_nested():
            db.add(models.Notification(user_id=user_id, title=title, message=message))
    except SQLAlchemyError:
        logger.exception(
            "Failed to create notification",
            extra={"user_id": user_id, "title": title},
        )
        return None
    return NotificationMessage(user_id=user_id, title=title, message=message)


def deliver(notifications: list[NotificationMessage]) -> None:
    if not notifications:
        return

    settings = get_settings()
    url = settings.notification_webhook_url
    if not url:
        logger.debug("Notification webhook is not configured; skipping delivery")
        return

    with httpx.Client(timeout=settings.notification_timeout) as client:
        for notification in notifications:
            try:
                response = client.post(
                    url,
                    json={
                        "userId": notification.user_id,
                        "title": notification.title,
                        "message": notification.message,
                    },
                )
                response.raise_for_status()
            except httpx.HTTPError:
                logger.exception(
                    "Failed to deliver notification",
                    extra={"user_id": notification.user_id},
                )
