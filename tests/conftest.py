"""Shared fixtures: environment for Settings and a throwaway SQLite database per test."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOCAL_STORAGE_SECRET", "test-local-secret")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("REDIS_URL", "")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base
from app.models import audit_log, certificate, content_unit, course, course_version, entitlement, purchase  # noqa: F401


@pytest.fixture
def session_factory(tmp_path):
    # file-backed: worker threads get their own connections
    engine = create_engine(
        f"sqlite:///{tmp_path / 'access.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
