"""
Shared pytest setup: settings for a Redis-less test run and an in-memory
SQLite database rebuilt for every test.
"""
import os

# Must be set before anything under app/ reads get_settings()
os.environ.setdefault("DATABASE_URL", "sqlite:///annuaire_test.db")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ["ENV"] = "dev"
os.environ["DEFAULT_TENANT_HOSTNAME"] = "haguenau.pro"
os.environ["DOMAIN_CACHE_TTL_SECONDS"] = "0"
os.environ["GOOGLE_PLACE_ID_CACHE_TTL_SECONDS"] = "0"
os.environ.pop("API_AUTH_KEY", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.core.db as core_db
from app.core.db import Base, get_db
from app.models import Domain
from app.main import app as fastapi_app
import app.services.catalog as catalog


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine, monkeypatch):
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    # Celery tasks and start-up checks open their own sessions
    monkeypatch.setattr(core_db, "SessionLocal", factory)
    return factory


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def no_cache_invalidation(monkeypatch):
    """Keep domain edits from reaching for Redis."""
    deleted = []
    monkeypatch.setattr(catalog, "invalidate_tenant_cache", deleted.append)
    return deleted


@pytest.fixture
def default_domain(db):
    domain = Domain(hostname="haguenau.pro", display_name="Haguenau.PRO", is_active=True)
    db.add(domain)
    db.commit()
    db.refresh(domain)
    return domain


@pytest.fixture
def client(session_factory, default_domain):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    fastapi_app.dependency_overrides[get_db] = _get_db
    # Entering the client runs the lifespan start-up check against the test DB
    with TestClient(fastapi_app) as test_client:
        yield test_client
    fastapi_app.dependency_overrides.clear()
