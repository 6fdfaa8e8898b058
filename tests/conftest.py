from datetime import date, timedelta

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from jamroom.api import deps
from jamroom.api.routes import admin, auth, bookings, misc, profile, settings, slots
from jamroom.core import security
from jamroom.core.errors import BookingEngineError
from jamroom.db.session import Base, get_db
from jamroom.db import models
from jamroom.main import booking_engine_error_handler
from jamroom.services import notification_service, settings_service


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def studio(db_session):
    return settings_service.ensure_admin_settings(db_session)


@pytest.fixture()
def make_user(db_session):
    counter = {"n": 0}

    def factory(name="Riya", role=models.UserRole.user, mobile=None, whatsapp_enabled=False):
        counter["n"] += 1
        user = models.User(
            name=name,
            email=f"{name.lower()}{counter['n']}@example.com",
            mobile=mobile,
            password_hash=security.get_password_hash("secret1"),
            role=role,
            whatsapp_enabled=whatsapp_enabled,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return factory


@pytest.fixture()
def make_slot(db_session):
    def factory(on=None, start_time="18:00", end_time="19:00", is_blocked=False):
        slot = models.Slot(
            date=on or date.today() + timedelta(days=3),
            start_time=start_time,
            end_time=end_time,
            is_blocked=is_blocked,
        )
        db_session.add(slot)
        db_session.commit()
        db_session.refresh(slot)
        return slot

    return factory


@pytest.fixture()
def events():
    """Pass ``events.append`` as the notifier to record every event."""
    return []


@pytest.fixture()
def api_client(monkeypatch):
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
    with TestingSessionLocal() as session:
        settings_service.ensure_admin_settings(session)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    principal = {"user_id": None}

    def override_get_current_user(db=Depends(get_db)):
        return db.get(models.User, principal["user_id"])

    dispatched = []
    monkeypatch.setattr(notification_service, "dispatch_event", dispatched.append)

    test_app = FastAPI()
    test_app.add_exception_handler(BookingEngineError, booking_engine_error_handler)
    for module in (auth, slots, bookings, admin, settings, profile, misc):
        test_app.include_router(module.router, prefix="/api/v1")
    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[deps.get_current_user] = override_get_current_user

    def login_as(user):
        principal["user_id"] = user.id

    with TestClient(test_app) as client:
        client.login_as = login_as
        client.dispatched = dispatched
        yield client, TestingSessionLocal

    test_app.dependency_overrides.clear()
