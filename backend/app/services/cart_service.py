import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from ..core import errors, time_window
from ..core.constants import CART_ITEM_HOLD
from ..db import models
from ..db.models.cart import CartItemStatus
from ..db.models.slot import SlotStatus

logger = logging.getLogger(__name__)


def is_expired(item: models.CartItem, now: datetime | None = None) -> bool:
    expires_at = item.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return (now or time_window.utc_now()) > expires_at


def get_cart(db: Session, user_id: int) -> models.Cart | None:
    return db.execute(
        select(models.Cart).where(models.Cart.user_id == user_id)
    ).scalar_one_or_none()


def _get_or_create_cart(db: Session, user_id: int) -> models.Cart:
    cart = get_cart(db, user_id)
    if cart:
        return cart
    cart = models.Cart(user_id=user_id)
    try:
        with db.begin_nested():
            db.add(cart)
    except IntegrityError:
        # Created concurrently by another request of the same user
        cart = get_cart(db, user_id)
        if cart is None:
            raise
    return cart


def active_items(db: Session, user_id: int, newest_first: bool = False) -> list[models.CartItem]:
    order = (
        (models.CartItem.created_at.desc(), models.CartItem.id.desc())
        if newest_first
        else (models.CartItem.created_at, models.CartItem.id)
    )
    stmt = (
        select(models.CartItem)
        .options(
            selectinload(models.CartItem.slot),
            selectinload(models.CartItem.mentor),
        )
        .where(
            models.CartItem.user_id == user_id,
            models.CartItem.status == CartItemStatus.ACTIVE,
        )
        .order_by(*order)
    )
    return list(db.execute(stmt).scalars().all())


def _has_active_item(db: Session, user_id: int, slot_id: int) -> bool:
    return db.execute(
        select(models.CartItem.id).where(
            models.CartItem.user_id == user_id,
            models.CartItem.slot_id == slot_id,
            models.CartItem.status == CartItemStatus.ACTIVE,
        )
    ).first() is not None


def add_item(db: Session, user_id: int, slot_id: int) -> models.CartItem:
    slot = db.get(models.Slot, slot_id)
    if not slot:
        raise errors.NotFoundError("Slot not found")
    if slot.status != SlotStatus.AVAILABLE:
        raise errors.NotAvailable(f"Slot is not available. Current status: {slot.status.value}")
    if not time_window.is_within_48_hours(slot.date, slot.start_time):
        raise errors.OutsideBookingWindow()

    if _has_active_item(db, user_id, slot_id):
        raise errors.AlreadyInCart()

    cart = _get_or_create_cart(db, user_id)
    item = models.CartItem(
        cart_id=cart.id,
        user_id=user_id,
        slot_id=slot.id,
        mentor_id=slot.mentor_id,
        date=slot.date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        price=slot.price,
        status=CartItemStatus.ACTIVE,
        expires_at=time_window.utc_now() + CART_ITEM_HOLD,
    )
    db.add(item)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise errors.AlreadyInCart() from exc
    db.refresh(item)
    logger.info(
        "Cart item added",
        extra={"cart_item_id": item.id, "user_id": user_id, "slot_id": slot_id},
    )
    return item


def remove_item(db: Session, user_id: int, cart_item_id: int) -> None:
    item = db.get(models.CartItem, cart_item_id)
    if not item:
        raise errors.NotFoundError("Cart item not found")
    if item.user_id != user_id:
        raise errors.ForbiddenError("You can only remove items from your own cart")
    db.delete(item)
    db.commit()
    logger.info("Cart item removed", extra={"cart_item_id": cart_item_id, "user_id": user_id})


def clear_cart(db: Session, user_id: int) -> int:
    cart = get_cart(db, user_id)
    if not cart:
        raise errors.NotFoundError("Cart not found")
    result = db.execute(
        delete(models.CartItem)
        .where(models.CartItem.cart_id == cart.id, models.CartItem.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    db.expire_all()
    return result.rowcount


def list_items(db: Session, user_id: int) -> tuple[models.Cart | None, list[models.CartItem], Decimal]:
    cart = get_cart(db, user_id)
    if not cart:
        return None, [], Decimal("0")
    items = active_items(db, user_id, newest_first=True)
    total = sum((item.price for item in items), Decimal("0"))
    return cart, items, total
