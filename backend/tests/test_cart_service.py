from datetime import timedelta
from decimal import Decimal

import pytest

from app.core import errors
from app.db import models
from app.services import cart_service


def test_add_item_snapshots_slot_and_creates_cart(db_session, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    slot = make_slot(mentor, price="60.00")

    item = cart_service.add_item(db_session, student.id, slot.id)

    assert item.cart_id == cart_service.get_cart(db_session, student.id).id
    assert item.mentor_id == mentor.id
    assert (item.date, item.start_time, item.end_time) == (slot.date, slot.start_time, slot.end_time)
    assert item.price == Decimal("60.00")
    assert item.status == models.CartItemStatus.ACTIVE
    assert not cart_service.is_expired(item)


def test_add_item_rejects_unavailable_and_out_of_window_slots(db_session, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    booked = make_slot(mentor, offset=timedelta(hours=5), status=models.SlotStatus.BOOKED)
    far = make_slot(mentor, offset=timedelta(hours=60))
    started = make_slot(mentor, offset=timedelta(hours=-2))

    with pytest.raises(errors.NotAvailable):
        cart_service.add_item(db_session, student.id, booked.id)
    with pytest.raises(errors.OutsideBookingWindow):
        cart_service.add_item(db_session, student.id, far.id)
    with pytest.raises(errors.OutsideBookingWindow):
        cart_service.add_item(db_session, student.id, started.id)
    with pytest.raises(errors.NotFoundError):
        cart_service.add_item(db_session, student.id, 9999)


def test_add_same_slot_twice_conflicts(db_session, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    slot = make_slot(mentor)
    cart_service.add_item(db_session, student.id, slot.id)

    with pytest.raises(errors.AlreadyInCart):
        cart_service.add_item(db_session, student.id, slot.id)


def test_two_students_can_hold_the_same_slot(db_session, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    first = make_user()
    second = make_user()
    slot = make_slot(mentor)

    cart_service.add_item(db_session, first.id, slot.id)
    cart_service.add_item(db_session, second.id, slot.id)

    assert db_session.query(models.CartItem).filter_by(slot_id=slot.id).count() == 2


def test_remove_item_checks_owner(db_session, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    owner = make_user()
    stranger = make_user()
    item = cart_service.add_item(db_session, owner.id, make_slot(mentor).id)

    with pytest.raises(errors.ForbiddenError):
        cart_service.remove_item(db_session, stranger.id, item.id)

    cart_service.remove_item(db_session, owner.id, item.id)
    assert db_session.get(models.CartItem, item.id) is None

    with pytest.raises(errors.NotFoundError):
        cart_service.remove_item(db_session, owner.id, item.id)


def test_clear_cart_returns_deleted_count(db_session, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    for hours in (3, 4, 5):
        cart_service.add_item(db_session, student.id, make_slot(mentor, offset=timedelta(hours=hours)).id)

    assert cart_service.clear_cart(db_session, student.id) == 3
    assert cart_service.clear_cart(db_session, student.id) == 0

    with pytest.raises(errors.NotFoundError):
        cart_service.clear_cart(db_session, make_user().id)


def test_list_items_newest_first_with_total(db_session, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    older = cart_service.add_item(db_session, student.id, make_slot(mentor, offset=timedelta(hours=3)).id)
    newer = cart_service.add_item(
        db_session, student.id, make_slot(mentor, offset=timedelta(hours=4), price="20.00").id
    )

    cart, items, total = cart_service.list_items(db_session, student.id)

    assert cart is not None
    assert [item.id for item in items] == [newer.id, older.id]
    assert total == Decimal("70.00")


def test_list_items_without_cart_is_empty(db_session, make_user):
    cart, items, total = cart_service.list_items(db_session, make_user().id)

    assert cart is None
    assert items == []
    assert total == Decimal("0")


def test_expired_items_stay_listed(db_session, make_user, make_slot, expire_cart_item):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    item = cart_service.add_item(db_session, student.id, make_slot(mentor).id)
    expire_cart_item(item)

    _, items, _ = cart_service.list_items(db_session, student.id)

    assert [i.id for i in items] == [item.id]
    assert cart_service.is_expired(items[0])


def test_concurrent_add_hits_active_hold_index(db_session, make_user, make_slot, monkeypatch):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    slot = make_slot(mentor)
    cart_service.add_item(db_session, student.id, slot.id)
    monkeypatch.setattr(cart_service, "_has_active_item", lambda *args: False)

    with pytest.raises(errors.AlreadyInCart):
        cart_service.add_item(db_session, student.id, slot.id)

    assert db_session.query(models.CartItem).filter_by(slot_id=slot.id).count() == 1


def test_checked_out_item_does_not_block_new_hold(db_session, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    slot = make_slot(mentor)
    item = cart_service.add_item(db_session, student.id, slot.id)
    item.status = models.CartItemStatus.CHECKED_OUT
    db_session.commit()

    again = cart_service.add_item(db_session, student.id, slot.id)

    assert again.id != item.id
