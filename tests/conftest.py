"""
Pytest fixtures: an isolated in-memory SQLite database per test, a TestClient
wired to it, and small factories for the rows access checks depend on.

The engine gets the same SAVEPOINT setup as the application's SQLite engine.
There is a single connection (StaticPool) and a single session: the test and the
requests it makes through the client share it, so only one transaction is ever
open on that connection.
"""
from datetime import date, datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.security import create_access_token
from app.db import registry  # noqa: F401
from app.db.base import Base
from app.db.session import enable_sqlite_savepoints, get_db
from app.main import app as fastapi_app
from app.models.content import LectureRecording, LiveClass
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.plan import SubscriptionPlan
from app.models.subscription import Subscription
from app.models.trial_grant import TrialGrant
from app.models.user import User

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(test_engine)
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()


# ---------------------------
# factories
# ---------------------------

def _save(db, obj):
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role="student", trial_used=False, email=None):
        counter["n"] += 1
        return _save(db, User(
            email=email or f"user{counter['n']}@example.com",
            password_hash="not-a-real-hash",
            full_name=f"User {counter['n']}",
            role=role,
            trial_used=trial_used,
        ))
    return _make


@pytest.fixture
def make_course(db):
    def _make(title="Physics 101"):
        return _save(db, Course(title=title, description="Mechanics and waves"))
    return _make


@pytest.fixture
def make_plan(db):
    def _make(type="recordings_and_live", duration_months=1, duration_until_date=None, is_active=True, price=1000):
        if duration_until_date is not None:
            duration_months = None
        return _save(db, SubscriptionPlan(
            name=f"{type} plan",
            type=type,
            price=price,
            currency="PKR",
            duration_months=duration_months,
            duration_until_date=duration_until_date,
            is_active=is_active,
        ))
    return _make


@pytest.fixture
def make_subscription(db):
    def _make(user, course, plan, expires_at, status="active"):
        return _save(db, Subscription(
            user_id=user.id,
            course_id=course.id,
            plan_id=plan.id,
            status=status,
            starts_at=expires_at - timedelta(days=30),
            expires_at=expires_at,
        ))
    return _make


@pytest.fixture
def make_enrollment(db):
    def _make(user, course, type="paid", subscription_id=None):
        return _save(db, Enrollment(
            user_id=user.id, course_id=course.id, type=type, subscription_id=subscription_id,
        ))
    return _make


@pytest.fixture
def make_grant(db):
    def _make(user, course, resource_type="lecture_recording", expires_at=None, granted_by=None):
        expires_at = expires_at or NOW + timedelta(hours=24)
        return _save(db, TrialGrant(
            user_id=user.id,
            course_id=course.id,
            resource_type=resource_type,
            expires_at=expires_at,
            used_at=expires_at - timedelta(hours=24),
            granted_by=granted_by,
        ))
    return _make


@pytest.fixture
def make_recording(db):
    def _make(course, title, created_at, is_published=True):
        return _save(db, LectureRecording(
            course_id=course.id,
            title=title,
            description=f"{title} notes",
            video_url=f"https://cdn.example.com/{title.replace(' ', '-').lower()}.mp4",
            duration_seconds=1800,
            is_published=is_published,
            created_at=created_at,
        ))
    return _make


@pytest.fixture
def make_live_class(db):
    def _make(course, title="Weekly Q&A", scheduled_at=None):
        return _save(db, LiveClass(
            course_id=course.id,
            title=title,
            scheduled_at=scheduled_at or NOW + timedelta(days=2),
            duration_minutes=60,
            meeting_url="https://meet.example.com/abc-defg-hij",
        ))
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(subject=str(user.id), role=user.role)}"}
    return _headers


@pytest.fixture
def cutoff_date():
    return date(2025, 6, 30)
