"""Pytest configuration and fixtures."""

import os

# Settings are read once at import time
os.environ["APP_ENV"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key-0123456789abcdef0123456789"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from estate_api.core.database import build_engine, build_session_factory, init_db
from estate_api.main import create_app
from estate_api.models.property import Property, PropertyCategory, PropertyStatus, TransactionType
from estate_api.models.user import User, UserRole
from estate_api.services.moderation import set_status, submit
from estate_api.utils.auth import create_user_token, get_password_hash

DEFAULT_PASSWORD = "password123"


@pytest.fixture
def engine():
    """Fresh in-memory database shared by every session of one test."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    with TestClient(create_app(session_factory=session_factory)) as test_client:
        yield test_client


@pytest.fixture
def make_user(session_factory):
    """Insert a user directly; returns the detached, fully loaded row."""
    counter = {"n": 0}

    def _make(
        email: str = None,
        password: str = DEFAULT_PASSWORD,
        role: UserRole = UserRole.INDIVIDUAL,
        is_active: bool = True,
        name: str = "Test User",
        **extra,
    ) -> User:
        counter["n"] += 1
        with session_factory() as session:
            user = User(
                name=name,
                email=(email or f"user{counter['n']}@example.com").lower(),
                phone="+9647701234567",
                password_hash=get_password_hash(password),
                role=role,
                is_active=is_active,
                **extra,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user

    return _make


@pytest.fixture
def make_property(session_factory):
    """Create a listing through ``submit`` and optionally moderate it."""

    def _make(owner: User, status: PropertyStatus = None, **fields) -> Property:
        draft = {
            "title": "Family house near the river",
            "transaction_type": TransactionType.SALE,
            "category": PropertyCategory.HOUSE,
            "price": 150000,
            "area": 200,
            "rooms": 4,
            "bathrooms": 2,
            "city": "Baghdad",
            "district": "Karrada",
            "features": ["garden"],
        }
        draft.update(fields)
        with session_factory() as session:
            prop = submit(draft, owner_id=owner.id)
            session.add(prop)
            session.commit()
            session.refresh(prop)
            if status is not None:
                prop = set_status(session, prop.id, status)
            return prop

    return _make


@pytest.fixture
def fetch(session_factory):
    """Read a row back through a new session, bypassing any cached state."""

    def _fetch(model, ident):
        with session_factory() as session:
            return session.get(model, ident)

    return _fetch


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {create_user_token(user)}"}

    return _headers


@pytest.fixture
def owner(make_user) -> User:
    return make_user(email="owner@example.com", name="Listing Owner")


@pytest.fixture
def other_user(make_user) -> User:
    return make_user(email="other@example.com", name="Someone Else")


@pytest.fixture
def admin(make_user) -> User:
    return make_user(email="admin@example.com", name="Site Admin", role=UserRole.ADMIN)
