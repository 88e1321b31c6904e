"""pytest configuration and shared fixtures."""
from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest
from werkzeug.security import generate_password_hash

# Ensure the project root is available on sys.path so tests can import the package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from barbershop import create_app
from barbershop.auth import build_token
from barbershop.extensions import db
from barbershop.models import AuthAccount, Role, Staff, User
from barbershop.permissions import Actor

# Tuesday
DEFAULT_NOW = datetime(2025, 6, 10, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class TestingConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    TOKEN_MAX_AGE_SECONDS = 3600
    CORS_ORIGINS = "*"


@pytest.fixture
def clock():
    return FrozenClock(DEFAULT_NOW)


@pytest.fixture
def app(clock):
    flask_app = create_app(TestingConfig)
    flask_app.config["CLOCK"] = clock

    with flask_app.app_context():
        db.create_all()

    yield flask_app

    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_ctx(app):
    with app.app_context():
        yield app


def create_user(role: Role, email: str, name: str | None = None, password: str | None = None) -> User:
    user = User(name=name or email.split("@")[0].title(), email=email, role=role)
    db.session.add(user)
    db.session.flush()
    if password is not None:
        db.session.add(AuthAccount(user_id=user.user_id, password_hash=generate_password_hash(password)))
    if role == Role.BARBEIRO:
        db.session.add(Staff(user_id=user.user_id, specialty="Fades"))
    db.session.commit()
    return user


def actor_for(user: User) -> Actor:
    return Actor(id=user.user_id, role=user.role)


@pytest.fixture
def people(app):
    """A standard cast: admins, two barbers with staff profiles and two clients."""
    with app.app_context():
        users = {
            "super_admin": create_user(Role.SUPER_ADMIN, "root@example.com"),
            "admin": create_user(Role.ADMIN, "admin@example.com"),
            "barber": create_user(Role.BARBEIRO, "barber@example.com"),
            "other_barber": create_user(Role.BARBEIRO, "other.barber@example.com"),
            "client": create_user(Role.CLIENTE, "client@example.com", password="Secret123!"),
            "other_client": create_user(Role.CLIENTE, "other.client@example.com"),
        }
        cast = SimpleNamespace()
        for key, user in users.items():
            setattr(cast, key, actor_for(user))
            setattr(cast, f"{key}_token", build_token(user))
        cast.staff_id = Staff.query.filter_by(user_id=users["barber"].user_id).one().staff_id
        cast.other_staff_id = Staff.query.filter_by(user_id=users["other_barber"].user_id).one().staff_id
        return cast


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
