"""
Shared fixtures: in-memory database, API client and bearer tokens.
"""

from __future__ import annotations

import time
import uuid

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from researchai.core.config import settings
from researchai.core.security import Principal
from researchai.db.models import Base
from researchai.db.session import get_db
from researchai.main import create_app

TEST_JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setattr(settings, "supabase_jwt_secret", TEST_JWT_SECRET)
    return TEST_JWT_SECRET


@pytest.fixture
def make_token(jwt_secret):
    def _make(user_id: uuid.UUID | None = None, *, role: str = "authenticated", **claims) -> str:
        now = int(time.time())
        payload = {"role": role, "aud": role, "iat": now, "exp": now + 3600}
        if user_id is not None:
            payload["sub"] = str(user_id)
        payload.update(claims)
        return jwt.encode(payload, jwt_secret, algorithm="HS256")

    return _make


@pytest.fixture
def client(engine, jwt_secret):
    factory = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)

    def _override_get_db():
        session = factory()
        try:
            yield session
        finally:
            session.close()

    app = create_app()
    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def alice() -> Principal:
    return Principal.authenticated(uuid.uuid4())


@pytest.fixture
def bob() -> Principal:
    return Principal.authenticated(uuid.uuid4())


@pytest.fixture
def anonymous() -> Principal:
    return Principal.anonymous()
