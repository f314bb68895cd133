"""
Shared fixtures.

Every test gets its own SQLite file so that sessions opened from worker
threads see the same database, with the same BEGIN IMMEDIATE engine the
application uses.
"""
import itertools

import pytest
from fastapi import HTTPException, status
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

import main  # registers every model and router
from apps.auth.services import Actor, ADMIN, STAFF, SUPER_ADMIN, USER_PRINCIPAL, actor_for_garage, get_current_actor
from apps.garages.models import Garage, Engineer
from apps.job_cards.schemas import JobCardCreate
from core.database import Base, build_engine, get_db
from core.mailer import MailResult


@pytest.fixture
def engine(tmp_path):
    test_engine = build_engine(f"sqlite:///{tmp_path / 'garage-test.db'}")
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_garage(db):
    counter = itertools.count(1)

    def _make(**overrides):
        n = next(counter)
        fields = {
            "name": f"Garage {n}",
            "address": f"{n} Ring Road",
            "phone": f"98765000{n:02d}",
            "email": f"garage{n}@garagemail.com",
            "hashed_password": "unused",
            "logo": f"https://cdn.garagemail.com/logo{n}.png",
            "bank_details": {"bank_name": "State Bank", "account_number": f"0000{n}"},
            "payment_details": {},
            "is_subscribed": True,
            "approved": True,
            "is_verified": True,
        }
        fields.update(overrides)
        garage = Garage(**fields)
        db.add(garage)
        db.commit()
        db.refresh(garage)
        return garage

    return _make


@pytest.fixture
def garage(make_garage):
    return make_garage()


@pytest.fixture
def make_engineer(db):
    def _make(garage, name="Ravi"):
        engineer = Engineer(garage_id=garage.id, name=name)
        db.add(engineer)
        db.commit()
        db.refresh(engineer)
        return engineer

    return _make


@pytest.fixture
def garage_actor(garage):
    return actor_for_garage(garage)


@pytest.fixture
def make_user_actor():
    counter = itertools.count(100)

    def _make(garage=None, role=STAFF):
        return Actor(
            kind=USER_PRINCIPAL,
            id=next(counter),
            garage_id=garage.id if garage is not None else None,
            role=role,
            name=f"{role} user",
        )

    return _make


@pytest.fixture
def super_admin(make_user_actor):
    return make_user_actor(role=SUPER_ADMIN)


@pytest.fixture
def admin_actor(garage, make_user_actor):
    return make_user_actor(garage, role=ADMIN)


@pytest.fixture
def job_card_data():
    def _make(garage_id, **overrides):
        fields = {
            "garage_id": garage_id,
            "customer_number": "C-100",
            "customer_name": "Asha Rao",
            "contact_number": "9000000001",
            "car_number": "KA01AB1234",
            "model": "Swift",
            "kilometer": 42000,
            "fuel_type": "Petrol",
        }
        fields.update(overrides)
        return JobCardCreate(**fields)

    return _make


class FakeMailer:
    """Records every message instead of talking to SMTP."""

    def __init__(self, success=True, error=None):
        self.success = success
        self.error = error
        self.sent = []

    def __call__(self, to, subject, body, attachment=None, filename=None):
        self.sent.append({
            "to": to,
            "subject": subject,
            "body": body,
            "attachment": attachment,
            "filename": filename,
        })
        return MailResult(success=self.success, error=self.error)


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def failing_mailer():
    return FakeMailer(success=False, error="SMTP connection refused")


@pytest.fixture
def auth_state():
    return {"actor": None}


@pytest.fixture
def client(db, auth_state):
    # Requests share the test session: with BEGIN IMMEDIATE a second
    # connection would wait on the fixture session's write lock.
    def override_get_db():
        yield db

    def override_current_actor():
        if auth_state["actor"] is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
        return auth_state["actor"]

    main.app.dependency_overrides[get_db] = override_get_db
    main.app.dependency_overrides[get_current_actor] = override_current_actor
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def act_as(auth_state):
    def _act_as(actor):
        auth_state["actor"] = actor

    return _act_as
