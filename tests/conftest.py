"""Shared fixtures: a file-backed SQLite database per test and caller contexts."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# Keep the module-level engine off PostgreSQL; tests bind their own engine.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from app.config import settings
from app.context import RequestContext, Role
from app.database import build_engine, create_tables
from app.schemas.gate_pass import PassCreate

# Wednesday 2025-09-24, 12:00 in Asia/Kolkata
NOW = datetime(2025, 9, 24, 6, 30, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def quota_policy(monkeypatch):
    monkeypatch.setattr(settings, "QUOTA_LIMIT", 2)
    monkeypatch.setattr(settings, "QUOTA_PERIOD", "week")
    monkeypatch.setattr(settings, "CAMPUS_TIMEZONE", "Asia/Kolkata")
    monkeypatch.setattr(settings, "NOTIFY_WEBHOOK_URL", None)


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'gatepass.db'}")
    create_tables(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


def student(actor_id="stu-1", name="Asha Rao"):
    return RequestContext(actor_id, Role.STUDENT, name)


def mentor(actor_id="men-1", name="Dr. Mentor"):
    return RequestContext(actor_id, Role.MENTOR, name)


def hod(actor_id="hod-1", name="Prof. Head"):
    return RequestContext(actor_id, Role.HOD, name)


def guard(actor_id="sec-1", name="Main Gate"):
    return RequestContext(actor_id, Role.SECURITY, name)


def make_payload(**overrides):
    data = dict(
        reason="medical",
        mentor_id="men-1",
        student_mobile="9000000001",
        parent_mobile="9000000002",
        department="CSE",
        year="3",
        section="A",
        leave_at=datetime(2025, 9, 24, 9, 0, tzinfo=timezone.utc),
        student_name="Asha Rao",
        usn="1XX21CS001",
    )
    data.update(overrides)
    return PassCreate(**data)
