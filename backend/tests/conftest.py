import os
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite:///./data/cardflow.db")
os.environ.setdefault("SECRET_KEY", "0123456789abcdef0123456789abcdef0123456789abcdef0123456789abcdef")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app import models  # noqa: E402,F401
from app.api import deps  # noqa: E402
from app.database import Base, enable_sqlite_foreign_keys  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.access import Identity  # noqa: E402


def build_session_factory(url: str = "sqlite://", **engine_kwargs):
    if url == "sqlite://":
        engine_kwargs.setdefault("poolclass", StaticPool)
    engine = create_engine(url, connect_args={"check_same_thread": False}, **engine_kwargs)
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    return engine, sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def session_factory():
    engine, factory = build_session_factory()
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db):
    """Insert a user directly and return the caller identity for it."""

    def _make_user(role: str = "Admin", email: str | None = None) -> Identity:
        email = email or f"{role.lower().replace(' ', '.')}-{db.query(User).count()}@example.com"
        user = User(name=f"{role} user", email=email, password_hash="hashed", role=role)
        db.add(user)
        db.commit()
        return Identity(user_id=user.id, email=user.email, role=user.role)

    return _make_user


@pytest.fixture
def client(session_factory):
    from app.main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[deps.get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
