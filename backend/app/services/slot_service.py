import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, exists, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..core import errors, time_window
from ..db import models
from ..db.models.slot import SlotStatus

logger = logging.getLogger(__name__)


def _resolve_price(mentor: models.User) -> Decimal:
    if mentor.price_per_slot is not None:
        return mentor.price_per_slot
    if mentor.category is not None and mentor.category.price_per_slot is not None:
        return mentor.category.price_per_slot
    raise errors.NoPriceConfigured()


def compare_and_set_status(
    db: Session, slot_id: int, expected: SlotStatus, target: SlotStatus
) -> bool:
    """Move a slot from ``expected`` to ``target`` in a single conditional UPDATE.

    Returns ``False`` when the slot is gone or no longer in ``expected``; the
    row lock taken by the UPDATE makes concurrent callers see each other's write.
    """
    result = db.execute(
        update(models.Slot)
        .where(models.Slot.id == slot_id, models.Slot.status == expected)
        .values(status=target)
        .execution_options(synchronize_session="evaluate")
    )
    return result.rowcount == 1


def _find_slot(db: Session, mentor_id: int, slot_date: date, start_time: str) -> models.Slot | None:
    return db.execute(
        select(models.Slot).where(
            models.Slot.mentor_id == mentor_id,
            models.Slot.date == slot_date,
            models.Slot.start_time == start_time,
        )
    ).scalar_one_or_none()


def open_slot(db: Session, mentor_id: int, slot_date: date, start_time: str) -> models.Slot:
    mentor = db.get(models.User, mentor_id)
    if not mentor:
        raise errors.NotFoundError("Mentor not found")
    if mentor.role != models.UserRole.MENTOR:
        raise errors.ForbiddenError("Only mentors can open slots")
    price = _resolve_price(mentor)

    existing = _find_slot(db, mentor_id, slot_date, start_time)
    if existing:
        raise errors.SlotConflict(
            errors={"existingSlot": {"id": existing.id, "status": existing.status.value}}
        )

    if not time_window.is_at_least_48_hours_away(slot_date, start_time):
        raise errors.TooSoon()

    slot = models.Slot(
        mentor_id=mentor_id,
        date=slot_date,
        start_time=start_time,
        end_time=time_window.calculate_end_time(start_time),
        price=price,
        status=SlotStatus.AVAILABLE,
    )
    db.add(slot)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise errors.SlotConflict() from exc
    db.refresh(slot)
    logger.info("Slot opened", extra={"slot_id": slot.id, "mentor_id": mentor_id})
    return slot


def _has_booking_item(slot_id: int):
    return exists().where(models.BookingItem.slot_id == slot_id)


def close_slot(db: Session, mentor_id: int, slot_id: int) -> None:
    slot = db.get(models.Slot, slot_id)
    if not slot:
        raise errors.NotFoundError("Slot not found")
    if slot.mentor_id != mentor_id:
        raise errors.ForbiddenError("You can only close your own slots")
    if db.scalar(select(_has_booking_item(slot_id))):
        raise errors.HasBooking()
    if not time_window.is_at_least_48_hours_away(slot.date, slot.start_time):
        raise errors.TooSoon("Cannot close a slot that is less than 48 hours away")

    result = db.execute(
        delete(models.Slot)
        .where(
            models.Slot.id == slot_id,
            models.Slot.status == SlotStatus.AVAILABLE,
            ~_has_booking_item(slot_id),
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        # Lost to a concurrent checkout or close
        current = db.get(models.Slot, slot_id)
        if current is None:
            raise errors.NotFoundError("Slot not found")
        if db.scalar(select(_has_booking_item(slot_id))):
            raise errors.HasBooking()
        raise errors.NotAvailable(f"Slot is not available. Current status: {current.status.value}")
    db.commit()
    db.expunge(slot)
    logger.info("Slot closed", extra={"slot_id": slot_id, "mentor_id": mentor_id})


def _apply_date_filters(stmt, slot_date: date | None, start_date: date | None, end_date: date | None):
    if slot_date:
        stmt = stmt.where(models.Slot.date == slot_date)
    if start_date:
        stmt = stmt.where(models.Slot.date >= start_date)
    if end_date:
        stmt = stmt.where(models.Slot.date <= end_date)
    return stmt


def list_mentor_slots(
    db: Session,
    mentor_id: int,
    status: SlotStatus | None = None,
    slot_date: date | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[list[models.Slot], dict[str, int]]:
    stmt = (
        select(models.Slot)
        .options(
            selectinload(models.Slot.booking_items)
            .selectinload(models.BookingItem.booking)
            .selectinload(models.Booking.student)
        )
        .where(models.Slot.mentor_id == mentor_id)
    )
    if status:
        stmt = stmt.where(models.Slot.status == status)
    stmt = _apply_date_filters(stmt, slot_date, start_date, end_date)
    slots = list(
        db.execute(stmt.order_by(models.Slot.date, models.Slot.start_time)).scalars().all()
    )

    counts = dict(
        db.execute(
            select(models.Slot.status, func.count(models.Slot.id))
            .where(models.Slot.mentor_id == mentor_id)
            .group_by(models.Slot.status)
        ).all()
    )
    status_counts = {key.value: int(value) for key, value in counts.items()}
    return slots, status_counts


def list_available_slots(
    db: Session,
    mentor_id: int,
    slot_date: date | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[models.User, list[models.Slot]]:
    mentor = db.get(models.User, mentor_id)
    if not mentor:
        raise errors.NotFoundError("Mentor not found")
    if mentor.role != models.UserRole.MENTOR:
        raise errors.NotMentor()
    if not mentor.is_verified:
        raise errors.MentorNotVerified()

    today = time_window.now().date()
    if slot_date and slot_date < today:
        return mentor, []
    start_date = max(start_date, today) if start_date else today

    stmt = select(models.Slot).where(
        models.Slot.mentor_id == mentor_id,
        models.Slot.status == SlotStatus.AVAILABLE,
    )
    stmt = _apply_date_filters(stmt, slot_date, start_date, end_date)
    slots = db.execute(stmt.order_by(models.Slot.date, models.Slot.start_time)).scalars().all()
    return mentor, [slot for slot in slots if not time_window.has_started(slot.date, slot.start_time)]
