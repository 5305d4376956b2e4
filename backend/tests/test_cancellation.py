from datetime import timedelta

import pytest

from app.core import errors
from app.db import models
from app.services import booking_service, cart_service, lifecycle_service


@pytest.fixture()
def booked(db_session, make_user, make_slot):
    """A student booking with one mentor covering two upcoming slots."""
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    slots = [make_slot(mentor, offset=timedelta(hours=3)), make_slot(mentor, offset=timedelta(hours=4))]
    for slot in slots:
        cart_service.add_item(db_session, student.id, slot.id)
    (booking,) = booking_service.book_from_cart(db_session, student.id).bookings
    return booking, student, mentor, slots


def _direct_booking(db_session, student, mentor, slot, status=models.BookingStatus.PENDING):
    booking = models.Booking(
        student_id=student.id,
        mentor_id=mentor.id,
        total_price=slot.price,
        status=status,
        items=[
            models.BookingItem(
                slot_id=slot.id,
                mentor_id=mentor.id,
                date=slot.date,
                start_time=slot.start_time,
                end_time=slot.end_time,
                price=slot.price,
            )
        ],
    )
    db_session.add(booking)
    db_session.commit()
    return booking


def test_student_cancel_releases_slots_and_notifies_mentor(db_session, booked):
    booking, student, mentor, slots = booked

    result, notification = lifecycle_service.cancel_booking(db_session, student.id, booking.id)

    assert result.status == models.BookingStatus.CANCELLED
    assert result.cancelled_by == "student"
    assert result.cancelled_at is not None
    assert all(item.status == models.BookingItemStatus.CANCELLED for item in result.items)

    db_session.expire_all()
    assert all(db_session.get(models.Slot, s.id).status == models.SlotStatus.AVAILABLE for s in slots)

    assert notification.user_id == mentor.id
    assert notification.message == "A booking has been cancelled by the student"
    stored = db_session.query(models.Notification).filter_by(title="Booking Cancelled").one()
    assert stored.user_id == mentor.id


def test_mentor_cancel_notifies_student(db_session, booked):
    booking, student, mentor, _ = booked

    result, notification = lifecycle_service.cancel_booking(db_session, mentor.id, booking.id)

    assert result.cancelled_by == "mentor"
    assert notification.user_id == student.id
    assert notification.message == "A booking has been cancelled by the mentor"


def test_released_slot_can_be_booked_again(db_session, booked, make_user):
    booking, student, _, slots = booked
    lifecycle_service.cancel_booking(db_session, student.id, booking.id)
    newcomer = make_user()

    cart_service.add_item(db_session, newcomer.id, slots[0].id)
    outcome = booking_service.book_from_cart(db_session, newcomer.id)

    assert [item.slot_id for item in outcome.bookings[0].items] == [slots[0].id]


def test_cancel_twice_fails(db_session, booked):
    booking, student, _, _ = booked
    lifecycle_service.cancel_booking(db_session, student.id, booking.id)

    with pytest.raises(errors.AlreadyCancelled):
        lifecycle_service.cancel_booking(db_session, student.id, booking.id)


def test_cancel_requires_party_to_booking(db_session, booked, make_user):
    booking, _, _, _ = booked
    stranger = make_user()

    with pytest.raises(errors.ForbiddenError):
        lifecycle_service.cancel_booking(db_session, stranger.id, booking.id)
    with pytest.raises(errors.NotFoundError):
        lifecycle_service.cancel_booking(db_session, stranger.id, 9999)


def test_cancel_completed_booking_fails(db_session, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    slot = make_slot(mentor, status=models.SlotStatus.BOOKED)
    booking = _direct_booking(db_session, student, mentor, slot, status=models.BookingStatus.COMPLETED)

    with pytest.raises(errors.CannotCancelCompleted):
        lifecycle_service.cancel_booking(db_session, student.id, booking.id)


def test_cancel_after_slot_started_fails(db_session, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    slot = make_slot(mentor, offset=timedelta(hours=-1), status=models.SlotStatus.BOOKED)
    booking = _direct_booking(db_session, student, mentor, slot)

    with pytest.raises(errors.HasPassedSlot):
        lifecycle_service.cancel_booking(db_session, mentor.id, booking.id)

    db_session.expire_all()
    assert db_session.get(models.Booking, booking.id).status == models.BookingStatus.PENDING
    assert db_session.get(models.Slot, slot.id).status == models.SlotStatus.BOOKED


def test_transition_booking_follows_allowed_moves(db_session, booked):
    booking, _, _, _ = booked

    confirmed = lifecycle_service.transition_booking(
        db_session, booking.id, models.BookingStatus.CONFIRMED
    )
    assert confirmed.status == models.BookingStatus.CONFIRMED

    with pytest.raises(errors.InvalidTransition):
        lifecycle_service.transition_booking(db_session, booking.id, models.BookingStatus.PENDING)

    completed = lifecycle_service.transition_booking(
        db_session, booking.id, models.BookingStatus.COMPLETED
    )
    assert completed.status == models.BookingStatus.COMPLETED

    with pytest.raises(errors.InvalidTransition):
        lifecycle_service.transition_booking(db_session, booking.id, models.BookingStatus.CANCELLED)
