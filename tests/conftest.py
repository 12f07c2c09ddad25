import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"
os.environ["ENABLE_SCHEDULER"] = "false"
os.environ["ENABLE_WEBSOCKET_NOTIFICATIONS"] = "true"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import crud
from app.api import deps
from app.core.security import get_password_hash
from app.core.session_store import InMemorySessionStore
from app.core.websocket_manager import realtime_hub
from app.db.database import Base, get_db
from app.main import app
from app.models import (
    Activity,
    ActivityStatus,
    AdminLevel,
    AdminRole,
    Department,
    Faculty,
    Participation,
    ParticipationStatus,
    User,
)
from app.services.auth_service import build_admin_snapshot, session_ttl

PASSWORD = "correct-horse-battery"


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def events():
    return []


@pytest.fixture
def store(clock, events):
    def sink(event):
        events.append(event)
        realtime_hub.handle_session_event(event)

    return InMemorySessionStore(max_lifetime=timedelta(days=30), clock=clock, event_sink=sink)


def _user(db, student_id, email, first_name, department_id):
    user = User(
        student_id=student_id,
        email=email,
        hashed_password=get_password_hash(PASSWORD),
        first_name=first_name,
        last_name="Tester",
        department_id=department_id,
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


def _admin(db, user, level, faculty_id=None):
    db.add(AdminRole(user_id=user.id, admin_level=level, faculty_id=faculty_id, permissions=[]))


@pytest.fixture
def seed(db, clock):
    """Two faculties, their admins, three students and one ongoing activity in faculty one."""
    engineering = Faculty(name="Engineering", code="ENG")
    science = Faculty(name="Science", code="SCI")
    db.add_all([engineering, science])
    db.flush()

    computing = Department(name="Computing", code="CPE", faculty_id=engineering.id)
    physics = Department(name="Physics", code="PHY", faculty_id=science.id)
    db.add_all([computing, physics])
    db.flush()

    super_admin = _user(db, "A0001", "root@example.edu", "Root", None)
    eng_admin = _user(db, "A0002", "eng.admin@example.edu", "Enid", computing.id)
    eng_staff = _user(db, "A0003", "eng.staff@example.edu", "Ezra", computing.id)
    sci_admin = _user(db, "A0004", "sci.admin@example.edu", "Sana", physics.id)
    student_a = _user(db, "6400001", "alice@example.edu", "Alice", computing.id)
    student_b = _user(db, "6400002", "bob@example.edu", "Bob", computing.id)
    student_c = _user(db, "6400003", "carol@example.edu", "Carol", physics.id)

    _admin(db, super_admin, AdminLevel.SUPER_ADMIN)
    _admin(db, eng_admin, AdminLevel.FACULTY_ADMIN, engineering.id)
    _admin(db, eng_staff, AdminLevel.REGULAR_ADMIN, engineering.id)
    _admin(db, sci_admin, AdminLevel.FACULTY_ADMIN, science.id)

    activity = Activity(
        title="Robotics Workshop",
        description="Hands-on session",
        location="Lab 3",
        start_time=clock.now - timedelta(hours=1),
        end_time=clock.now + timedelta(hours=2),
        max_participants=10,
        status=ActivityStatus.ONGOING,
        faculty_id=engineering.id,
        created_by=eng_admin.id,
    )
    db.add(activity)
    db.commit()

    return SimpleNamespace(
        engineering=engineering,
        science=science,
        computing=computing,
        physics=physics,
        super_admin=super_admin,
        eng_admin=eng_admin,
        eng_staff=eng_staff,
        sci_admin=sci_admin,
        student_a=student_a,
        student_b=student_b,
        student_c=student_c,
        activity=activity,
    )


@pytest.fixture
def make_session(db, store):
    """Issue a session for a seeded user the same way login does."""
    def _make(user, remember_me=False):
        role = crud.admin_role.get_by_user(db, user_id=user.id)
        snapshot, permissions = build_admin_snapshot(role)
        return store.create(
            user.id,
            snapshot,
            session_ttl(remember_me),
            permissions=permissions,
            user_agent="pytest",
            remember_me=remember_me,
        )
    return _make


@pytest.fixture
def register(db):
    def _register(user, activity, status=ParticipationStatus.REGISTERED, **values):
        participation = Participation(user_id=user.id, activity_id=activity.id, status=status, **values)
        db.add(participation)
        db.commit()
        db.refresh(participation)
        return participation
    return _register


@pytest.fixture
def client(session_factory, store):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_session_store] = lambda: store
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def login(client):
    """Log in through the API and return headers that carry the session id."""
    def _login(identifier, password=PASSWORD, remember_me=False):
        response = client.post(
            "/api/v1/sessions",
            json={"identifier": identifier, "password": password, "remember_me": remember_me},
        )
        assert response.status_code == 200, response.text
        # Keep one client usable for several users
        client.cookies.clear()
        return {"X-Session-ID": response.json()["data"]["session_id"]}
    return _login
