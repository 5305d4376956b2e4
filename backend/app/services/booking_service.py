from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core import errors, time_window
from ..core.constants import (
    REASON_ALREADY_BOOKED,
    REASON_CHECKOUT_FAILED,
    REASON_EXPIRED,
    REASON_GROUP_ABORTED,
    REASON_OUTSIDE_WINDOW,
    REASON_SLOT_CLOSED,
    REASON_SLOT_GONE,
)
from ..db import models
from ..db.models.booking import BookingItemStatus, BookingStatus
from ..db.models.cart import CartItemStatus
from ..db.models.slot import SlotStatus
from . import cart_service, notification_service, slot_service
from .notification_service import NotificationMessage

logger = logging.getLogger(__name__)

REASON_MESSAGES = {
    REASON_EXPIRED: "This cart item has expired",
    REASON_OUTSIDE_WINDOW: "Booking must be made within 48 hours of the slot time",
    REASON_SLOT_GONE: "Slot no longer exists",
    REASON_ALREADY_BOOKED: "This slot has already been booked by someone else",
    REASON_SLOT_CLOSED: "This slot is no longer available",
    REASON_GROUP_ABORTED: "Not booked because another slot with this mentor could not be reserved",
    REASON_CHECKOUT_FAILED: "Booking could not be created, please try again",
}


@dataclass(slots=True)
class CartItemRejection:
    cart_item_id: int
    reason: str
    message: str
    slot: dict | None = None

    def as_dict(self) -> dict:
        return {
            "cartItemId": self.cart_item_id,
            "reason": self.reason,
            "message": self.message,
            "slot": self.slot,
        }


@dataclass(slots=True)
class CheckoutOutcome:
    bookings: list[models.Booking] = field(default_factory=list)
    errors: list[CartItemRejection] = field(default_factory=list)
    notifications: list[NotificationMessage] = field(default_factory=list)


class SlotClaimLost(Exception):
    """A slot changed hands between validation and the booking transaction."""

    def __init__(self, cart_item_id: int | None, reason: str) -> None:
        self.cart_item_id = cart_item_id
        self.reason = reason
        super().__init__(reason)


@contextmanager
def _atomic(db: Session):
    if db.in_transaction():
        with db.begin_nested():
            yield
        db.commit()
    else:
        with db.begin():
            yield


def _reject(item: models.CartItem, reason: str) -> CartItemRejection:
    mentor = item.mentor
    return CartItemRejection(
        cart_item_id=item.id,
        reason=reason,
        message=REASON_MESSAGES[reason],
        slot={
            "mentorId": item.mentor_id,
            "mentorName": mentor.name if mentor else None,
            "date": item.date.isoformat(),
            "startTime": item.start_time,
            "endTime": item.end_time,
        },
    )


def _current_slot_status(db: Session, slot_id: int | None) -> SlotStatus | None:
    if slot_id is None:
        return None
    return db.scalar(select(models.Slot.status).where(models.Slot.id == slot_id))


def _unavailable_reason(status: SlotStatus | None) -> str | None:
    if status is None:
        return REASON_SLOT_GONE
    if status == SlotStatus.BOOKED:
        return REASON_ALREADY_BOOKED
    if status == SlotStatus.CLOSED:
        return REASON_SLOT_CLOSED
    return None


def validate_item(db: Session, item: models.CartItem, now: datetime | None = None) -> str | None:
    """Return the rejection reason for a cart item, or ``None`` if it can be booked."""
    if cart_service.is_expired(item, now):
        return REASON_EXPIRED
    if not time_window.is_within_48_hours(item.date, item.start_time):
        return REASON_OUTSIDE_WINDOW
    return _unavailable_reason(_current_slot_status(db, item.slot_id))


def _group_by_mentor(items: list[models.CartItem]) -> dict[int, list[models.CartItem]]:
    groups: dict[int, list[models.CartItem]] = {}
    for item in items:
        groups.setdefault(item.mentor_id, []).append(item)
    return groups


def _checkout_group(
    db: Session, student_id: int, mentor_id: int, items: list[models.CartItem]
) -> tuple[models.Booking, NotificationMessage | None]:
    with _atomic(db):
        # Claim first: nothing else is written unless every slot is ours
        for item in items:
            claimed = slot_service.compare_and_set_status(
                db, item.slot_id, SlotStatus.AVAILABLE, SlotStatus.BOOKED
            )
            if not claimed:
                reason = _unavailable_reason(_current_slot_status(db, item.slot_id))
                raise SlotClaimLost(item.id, reason or REASON_ALREADY_BOOKED)

        booking = models.Booking(
            student_id=student_id,
            mentor_id=mentor_id,
            total_price=sum((item.price for item in items), Decimal("0")),
            status=BookingStatus.PENDING,
            items=[
                models.BookingItem(
                    slot_id=item.slot_id,
                    mentor_id=item.mentor_id,
                    date=item.date,
                    start_time=item.start_time,
                    end_time=item.end_time,
                    price=item.price,
                    status=BookingItemStatus.CONFIRMED,
                )
                for item in items
            ],
        )
        db.add(booking)
        try:
            db.flush()
        except IntegrityError as exc:
            raise SlotClaimLost(None, REASON_ALREADY_BOOKED) from exc

        db.execute(
            update(models.CartItem)
            .where(
                models.CartItem.id.in_([item.id for item in items]),
                models.CartItem.status == CartItemStatus.ACTIVE,
            )
            .values(status=CartItemStatus.CHECKED_OUT)
            .execution_options(synchronize_session="evaluate")
        )
        notification = notification_service.create_notification(
            db,
            mentor_id,
            notification_service.NEW_BOOKING_TITLE,
            notification_service.build_new_booking_message(len(items)),
        )
    return booking, notification


def book_from_cart(db: Session, student_id: int) -> CheckoutOutcome:
    items = cart_service.active_items(db, student_id)
    if not items:
        raise errors.EmptyCart()

    outcome = CheckoutOutcome()
    now = time_window.utc_now()
    valid: list[models.CartItem] = []
    for item in items:
        reason = validate_item(db, item, now)
        if reason:
            outcome.errors.append(_reject(item, reason))
        else:
            valid.append(item)

    if not valid:
        raise errors.CheckoutFailed(errors=[error.as_dict() for error in outcome.errors])

    for mentor_id, group in _group_by_mentor(valid).items():
        try:
            booking, notification = _checkout_group(db, student_id, mentor_id, group)
        except SlotClaimLost as lost:
            logger.warning(
                "Slot claim lost during checkout",
                extra={"student_id": student_id, "mentor_id": mentor_id, "reason": lost.reason},
            )
            for item in group:
                if lost.cart_item_id is None or item.id == lost.cart_item_id:
                    reason = lost.reason
                else:
                    reason = REASON_GROUP_ABORTED
                outcome.errors.append(_reject(item, reason))
            continue
        except SQLAlchemyError:
            logger.exception(
                "Checkout transaction failed",
                extra={"student_id": student_id, "mentor_id": mentor_id},
            )
            db.rollback()
            outcome.errors.extend(_reject(item, REASON_CHECKOUT_FAILED) for item in group)
            continue

        outcome.bookings.append(booking)
        if notification:
            outcome.notifications.append(notification)
        logger.info(
            "Booking created",
            extra={"booking_id": booking.id, "student_id": student_id, "mentor_id": mentor_id},
        )

    if not outcome.bookings:
        raise errors.CheckoutFailed(
            "No bookings could be created",
            errors=[error.as_dict() for error in outcome.errors],
        )
    return outcome


def _booking_query():
    return select(models.Booking).options(
        selectinload(models.Booking.items),
        selectinload(models.Booking.student),
        selectinload(models.Booking.mentor),
    ).order_by(models.Booking.created_at.desc(), models.Booking.id.desc())


def list_all_bookings(db: Session) -> list[models.Booking]:
    return list(db.execute(_booking_query()).scalars().all())


def list_mentor_bookings(db: Session, mentor_id: int) -> list[models.Booking]:
    stmt = _booking_query().where(models.Booking.mentor_id == mentor_id)
    return list(db.execute(stmt).scalars().all())


def list_student_bookings(db: Session, student_id: int) -> list[models.Booking]:
    stmt = _booking_query().where(models.Booking.student_id == student_id)
    return list(db.execute(stmt).scalars().all())


def get_booking(db: Session, user: models.User, booking_id: int) -> models.Booking:
    booking = db.execute(
        _booking_query().where(models.Booking.id == booking_id)
    ).scalar_one_or_none()
    if not booking:
        raise errors.NotFoundError("Booking not found")
    if user.role != models.UserRole.ADMIN and user.id not in (booking.student_id, booking.mentor_id):
        raise errors.ForbiddenError("You are not allowed to view this booking")
    return booking
