from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from ...api import deps
from ...db.session import get_db
from ...db import models, schemas
from ...db.models.booking import BookingItemStatus
from ...services import slot_service

router = APIRouter(prefix="/slots", tags=["slots"])


def _mentor_slot(slot: models.Slot) -> schemas.MentorSlot:
    result = schemas.MentorSlot.model_validate(slot)
    items = sorted(slot.booking_items, key=lambda item: item.id)
    active = [item for item in items if item.status != BookingItemStatus.CANCELLED]
    item = active[-1] if active else (items[-1] if items else None)
    if item is not None:
        student = item.booking.student if item.booking else None
        result.booking = schemas.SlotBookingInfo(
            booking_item_id=item.id,
            booking_id=item.booking_id,
            status=item.status.value,
            student=schemas.UserSummary.model_validate(student) if student else None,
        )
    return result


@router.post(
    "/open",
    status_code=status.HTTP_201_CREATED,
    response_model=schemas.Envelope[schemas.Slot],
)
def open_slot(
    payload: schemas.SlotOpen,
    db: Session = Depends(get_db),
    mentor: models.User = Depends(deps.require_roles("MENTOR")),
):
    slot = slot_service.open_slot(db, mentor.id, payload.date, payload.start_time)
    return {"success": True, "message": "Slot opened successfully", "data": slot}


@router.delete("/close/{slot_id}", response_model=schemas.Envelope[schemas.SlotClosed])
def close_slot(
    slot_id: int,
    db: Session = Depends(get_db),
    mentor: models.User = Depends(deps.require_roles("MENTOR")),
):
    slot_service.close_slot(db, mentor.id, slot_id)
    return {
        "success": True,
        "message": "Slot closed successfully",
        "data": {"slot_id": slot_id},
    }


@router.get("/my-slots", response_model=schemas.Envelope[schemas.MentorSlotList])
def list_my_slots(
    slot_status: models.SlotStatus | None = Query(None, alias="status"),
    slot_date: date | None = Query(None, alias="date"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    mentor: models.User = Depends(deps.require_roles("MENTOR")),
):
    slots, status_counts = slot_service.list_mentor_slots(
        db,
        mentor.id,
        status=slot_status,
        slot_date=slot_date,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "success": True,
        "message": "Slots retrieved successfully",
        "data": schemas.MentorSlotList(
            slots=[_mentor_slot(slot) for slot in slots],
            total_count=len(slots),
            status_counts=status_counts,
        ),
    }


@router.get("/mentor/{mentor_id}", response_model=schemas.Envelope[schemas.AvailableSlotList])
def list_available_slots(
    mentor_id: int,
    slot_date: date | None = Query(None, alias="date"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
):
    mentor, slots = slot_service.list_available_slots(
        db,
        mentor_id,
        slot_date=slot_date,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "success": True,
        "message": "Available slots retrieved successfully",
        "data": {"mentor": mentor, "slots": slots, "total_count": len(slots)},
    }
