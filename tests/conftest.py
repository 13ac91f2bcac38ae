import os
from datetime import datetime, timezone

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "unidocs-test-signing-key-0123456789abcdef")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from unidocs import models  # noqa: F401
from unidocs.api.deps import get_clock
from unidocs.db import Base, get_db, get_engine
from unidocs.main import app
from unidocs.models import (
    ApprovalStatus,
    Document,
    UniversityBody,
    UniversityBodyType,
    User,
    UserRole,
)
from unidocs.services.auth_dependencies import create_access_token
from unidocs.services.clock import FrozenClock

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def engine():
    engine = get_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def db_session(engine):
    Session = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def clock():
    return FrozenClock(T0)


@pytest.fixture()
def client(db_session, clock):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def make_unit(db_session):
    counter = {"n": 0}

    def _make_unit(**overrides):
        counter["n"] += 1
        defaults = dict(
            name=f"Unit {counter['n']}",
            type=UniversityBodyType.department,
            is_active=True,
        )
        defaults.update(overrides)
        unit = UniversityBody(**defaults)
        db_session.add(unit)
        db_session.commit()
        db_session.refresh(unit)
        return unit

    return _make_unit


@pytest.fixture()
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(role=UserRole.sub_admin, unit=None, **overrides):
        counter["n"] += 1
        defaults = dict(
            email=f"user{counter['n']}@example.edu",
            role=role,
            first_name="Test",
            last_name=f"User{counter['n']}",
            university_body_id=unit.id if unit is not None else None,
            is_active=True,
        )
        defaults.update(overrides)
        user = User(**defaults)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def make_document(db_session):
    def _make_document(uploader, unit=None, **overrides):
        defaults = dict(
            title="Senate minutes",
            file_data=b"%PDF-1.4 test",
            file_name="minutes.pdf",
            mime_type="application/pdf",
            file_size=13,
            uploaded_by_id=uploader.id,
            university_body_id=unit.id if unit is not None else None,
            approval_status=ApprovalStatus.pending,
            is_public=False,
            created_at=T0,
            updated_at=T0,
        )
        defaults.update(overrides)
        document = Document(**defaults)
        db_session.add(document)
        db_session.commit()
        db_session.refresh(document)
        return document

    return _make_document


@pytest.fixture()
def auth_headers():
    def _auth_headers(user):
        return {"Authorization": f"Bearer {create_access_token(user)}"}

    return _auth_headers
