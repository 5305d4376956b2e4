from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...services import booking_service, lifecycle_service, notification_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


def _booking_list(bookings: list[models.Booking]) -> dict:
    return {"bookings": bookings, "count": len(bookings)}


@router.post(
    "/book-from-cart",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.Envelope[schemas.CheckoutResult],
    response_model_exclude_none=True,
)
def book_from_cart(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.require_roles("USER")),
):
    outcome = booking_service.book_from_cart(db, user.id)
    background_tasks.add_task(notification_service.deliver, outcome.notifications)
    return {
        "success": True,
        "message": "Bookings created successfully",
        "data": {
            "bookings": outcome.bookings,
            "errors": [error.as_dict() for error in outcome.errors] or None,
        },
    }


@router.get("/all", response_model=schemas.Envelope[schemas.BookingList])
def list_all_bookings(
    db: Session = Depends(get_db),
    _: models.User = Depends(deps.require_roles("ADMIN")),
):
    bookings = booking_service.list_all_bookings(db)
    return {"success": True, "data": _booking_list(bookings)}


@router.get("/mentor", response_model=schemas.Envelope[schemas.BookingList])
def list_mentor_bookings(
    db: Session = Depends(get_db),
    mentor: models.User = Depends(deps.require_roles("MENTOR")),
):
    bookings = booking_service.list_mentor_bookings(db, mentor.id)
    return {"success": True, "data": _booking_list(bookings)}


@router.get("/user", response_model=schemas.Envelope[schemas.BookingList])
def list_user_bookings(
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.require_roles("USER")),
):
    bookings = booking_service.list_student_bookings(db, user.id)
    return {"success": True, "data": _booking_list(bookings)}


@router.get("/{booking_id}", response_model=schemas.Envelope[schemas.Booking])
def get_booking(
    booking_id: int,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.get_current_user),
):
    booking = booking_service.get_booking(db, user, booking_id)
    return {"success": True, "data": booking}


@router.patch("/{booking_id}/cancel", response_model=schemas.Envelope[schemas.Booking])
def cancel_booking(
    booking_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: models.User = Depends(deps.require_roles("USER", "MENTOR")),
):
    booking, notification = lifecycle_service.cancel_booking(db, user.id, booking_id)
    if notification:
        background_tasks.add_task(notification_service.deliver, [notification])
    return {"success": True, "message": "Booking cancelled successfully", "data": booking}
