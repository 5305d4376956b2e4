from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.errors import register_exception_handlers
from app.api.routes import bookings, cart, misc, slots
from app.core import time_window
from app.core.security import create_access_token
from app.db import models
from app.db.session import Base, get_db


def slot_time(offset: timedelta):
    """Date and half-hour start time roughly ``offset`` from now, rounded down."""
    target = time_window.now() + offset
    target = target.replace(minute=0 if target.minute < 30 else 30, second=0, microsecond=0)
    return target.date(), target.strftime("%H:%M")


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    TestingSessionLocal = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield TestingSessionLocal
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def api_client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    test_app = FastAPI()
    register_exception_handlers(test_app)
    for module in (slots, cart, bookings, misc):
        test_app.include_router(module.router, prefix="/api/v1")
    test_app.dependency_overrides[get_db] = override_get_db

    with TestClient(test_app) as client:
        yield client

    test_app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session):
    counter = {"value": 0}

    def factory(role=models.UserRole.USER, **kwargs):
        counter["value"] += 1
        kwargs.setdefault("name", f"{role.value.title()} {counter['value']}")
        kwargs.setdefault("email", f"{role.value.lower()}{counter['value']}@example.com")
        if role == models.UserRole.MENTOR:
            kwargs.setdefault("is_verified", True)
            kwargs.setdefault("price_per_slot", Decimal("50.00"))
        user = models.User(role=role, **kwargs)
        db_session.add(user)
        db_session.commit()
        return user

    return factory


@pytest.fixture()
def make_slot(db_session):
    def factory(mentor, offset=timedelta(hours=5), status=models.SlotStatus.AVAILABLE, price="50.00"):
        slot_date, start_time = slot_time(offset)
        slot = models.Slot(
            mentor_id=mentor.id,
            date=slot_date,
            start_time=start_time,
            end_time=time_window.calculate_end_time(start_time),
            price=Decimal(price),
            status=status,
        )
        db_session.add(slot)
        db_session.commit()
        return slot

    return factory


@pytest.fixture()
def expire_cart_item(db_session):
    def expire(item):
        item.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        db_session.commit()

    return expire


@pytest.fixture()
def auth_headers():
    def build(user):
        token = create_access_token({"sub": str(user.id)})
        return {"Authorization": f"Bearer {token}"}

    return build
