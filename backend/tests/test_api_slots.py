from datetime import timedelta

from app.db import models
from conftest import slot_time


def test_health(api_client):
    response = api_client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_mentor_opens_and_closes_slot(api_client, make_user, auth_headers):
    mentor = make_user(models.UserRole.MENTOR)
    slot_date, start_time = slot_time(timedelta(hours=72))

    response = api_client.post(
        "/api/v1/slots/open",
        json={"date": slot_date.isoformat(), "startTime": start_time},
        headers=auth_headers(mentor),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Slot opened successfully"
    data = body["data"]
    assert data["mentorId"] == mentor.id
    assert data["startTime"] == start_time
    assert data["status"] == "AVAILABLE"
    assert data["price"] == 50.0

    response = api_client.delete(f"/api/v1/slots/close/{data['id']}", headers=auth_headers(mentor))

    assert response.status_code == 200
    assert response.json()["data"] == {"slotId": data["id"]}


def test_open_slot_validation_errors(api_client, make_user, auth_headers):
    mentor = make_user(models.UserRole.MENTOR)
    slot_date, _ = slot_time(timedelta(hours=72))

    response = api_client.post(
        "/api/v1/slots/open",
        json={"date": slot_date.isoformat(), "startTime": "10:15"},
        headers=auth_headers(mentor),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "validation_failed"
    assert "startTime" in body["errors"]


def test_open_slot_conflict_and_too_soon(api_client, make_user, make_slot, auth_headers):
    mentor = make_user(models.UserRole.MENTOR)
    existing = make_slot(mentor, offset=timedelta(hours=72))
    near_date, near_time = slot_time(timedelta(hours=10))

    conflict = api_client.post(
        "/api/v1/slots/open",
        json={"date": existing.date.isoformat(), "startTime": existing.start_time},
        headers=auth_headers(mentor),
    )
    too_soon = api_client.post(
        "/api/v1/slots/open",
        json={"date": near_date.isoformat(), "startTime": near_time},
        headers=auth_headers(mentor),
    )

    assert conflict.status_code == 409
    assert conflict.json()["errors"]["existingSlot"]["id"] == existing.id
    assert too_soon.status_code == 400
    assert too_soon.json()["code"] == "too_soon"


def test_slot_routes_require_mentor(api_client, make_user, auth_headers):
    student = make_user()
    slot_date, start_time = slot_time(timedelta(hours=72))
    payload = {"date": slot_date.isoformat(), "startTime": start_time}

    anonymous = api_client.post("/api/v1/slots/open", json=payload)
    bad_token = api_client.post(
        "/api/v1/slots/open", json=payload, headers={"Authorization": "Bearer nope"}
    )
    forbidden = api_client.post("/api/v1/slots/open", json=payload, headers=auth_headers(student))

    assert anonymous.status_code == 401
    assert bad_token.status_code == 401
    assert bad_token.json()["message"] == "Invalid or expired token"
    assert forbidden.status_code == 403


def test_my_slots_include_booking_details(
    api_client, db_session, make_user, make_slot, auth_headers
):
    mentor = make_user(models.UserRole.MENTOR)
    student = make_user()
    make_slot(mentor, offset=timedelta(hours=72))
    booked = make_slot(mentor, offset=timedelta(hours=5), status=models.SlotStatus.BOOKED)
    booking = models.Booking(
        student_id=student.id,
        mentor_id=mentor.id,
        total_price=booked.price,
        items=[
            models.BookingItem(
                slot_id=booked.id,
                mentor_id=mentor.id,
                date=booked.date,
                start_time=booked.start_time,
                end_time=booked.end_time,
                price=booked.price,
            )
        ],
    )
    db_session.add(booking)
    db_session.commit()

    response = api_client.get("/api/v1/slots/my-slots", headers=auth_headers(mentor))

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["totalCount"] == 2
    assert data["statusCounts"] == {"AVAILABLE": 1, "BOOKED": 1}
    booked_slot = next(slot for slot in data["slots"] if slot["id"] == booked.id)
    assert booked_slot["booking"]["bookingId"] == booking.id
    assert booked_slot["booking"]["student"]["email"] == student.email

    filtered = api_client.get(
        "/api/v1/slots/my-slots", params={"status": "BOOKED"}, headers=auth_headers(mentor)
    )
    assert [slot["id"] for slot in filtered.json()["data"]["slots"]] == [booked.id]


def test_public_mentor_slots(api_client, make_user, make_slot):
    mentor = make_user(models.UserRole.MENTOR)
    available = make_slot(mentor, offset=timedelta(hours=5))
    make_slot(mentor, offset=timedelta(hours=6), status=models.SlotStatus.BOOKED)
    unverified = make_user(models.UserRole.MENTOR, is_verified=False)

    response = api_client.get(f"/api/v1/slots/mentor/{mentor.id}")
    forbidden = api_client.get(f"/api/v1/slots/mentor/{unverified.id}")
    missing = api_client.get("/api/v1/slots/mentor/9999")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["mentor"]["id"] == mentor.id
    assert [slot["id"] for slot in data["slots"]] == [available.id]
    assert data["totalCount"] == 1
    assert forbidden.status_code == 403
    assert missing.status_code == 404
    assert missing.json()["code"] == "not_found"
