"""
Pytest configuration for the booking backend

Each test gets its own SQLite file, a ReminderScheduler that is never
started (jobs stay pending and are inspected through APScheduler's
get_job) and a mocked notifier.
"""

import os
import sys
from datetime import date, time, timedelta
from unittest.mock import MagicMock

import pytest

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite:///./test_bootstrap.db"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["TIMEZONE"] = "America/Argentina/Buenos_Aires"
os.environ["REMINDER_LEAD_MINUTES"] = "60"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ.pop("AWS_ACCESS_KEY_ID", None)
os.environ.pop("AWS_SECRET_ACCESS_KEY", None)

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.database import Base, get_db
from app.dependencies import get_notifier, get_reminder_scheduler
from app.main import app
from app.models.availability import Availability
from app.models.user import User, ROLE_PATIENT, ROLE_PROFESSIONAL
from app.services.appointment_service import AppointmentService
from app.services.notification_service import NotificationService
from app.services.reminder_scheduler import ReminderScheduler
from app.utils.security import create_access_token


def upcoming(weekday: int) -> date:
    """A date with the given weekday, one to two weeks ahead"""
    today = date.today()
    return today + timedelta(days=7 + (weekday - today.weekday()) % 7)


def add_window(db, professional: User, weekday: int, start: str, end: str) -> Availability:
    window = Availability(
        professional_id=professional.id,
        weekday=weekday,
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
    )
    db.add(window)
    db.commit()
    return window


def auth(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'id': user.id})}"}


@pytest.fixture(scope="function")
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False}
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def notifier():
    return MagicMock(spec=NotificationService)


@pytest.fixture
def reminder_scheduler(session_factory, notifier):
    return ReminderScheduler(session_factory, notifier)


@pytest.fixture
def service(db_session, reminder_scheduler, notifier):
    return AppointmentService(db_session, reminder_scheduler, notifier)


@pytest.fixture(scope="function")
def client(db_session, reminder_scheduler, notifier):
    """Test client without lifespan: no real scheduler, no default database"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_reminder_scheduler] = lambda: reminder_scheduler
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _make_user(db, email, role, first_name, last_name, specialty=None) -> User:
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        specialty=specialty,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def patient(db_session):
    return _make_user(db_session, "ana@test.com", ROLE_PATIENT, "Ana", "García")


@pytest.fixture
def other_patient(db_session):
    return _make_user(db_session, "bruno@test.com", ROLE_PATIENT, "Bruno", "Díaz")


@pytest.fixture
def professional(db_session):
    return _make_user(
        db_session, "dra.lopez@test.com", ROLE_PROFESSIONAL, "Laura", "López", specialty="Cardiología"
    )
