"""Shared fixtures: an in-memory database, attempt factories and an API client."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"

from datetime import datetime, timedelta
from itertools import count

import pytest
from fastapi.testclient import TestClient

from scoring_api.attempts import ScoringAttempt
from scoring_api.db import Base, SessionLocal, engine
from scoring_api.main import app
from scoring_api.models import AdminUser, ScoringAttemptRow
from scoring_api.routers.auth import create_access_token

BASE_TIME = datetime(2024, 3, 10, 12, 0, 0)
_ids = count(1)


def attempt_fields(**overrides):
    """Build the column values of one attempt; scored attempts get a score."""
    n = next(_ids)
    fields = {
        "id": f"att-{n:04d}",
        "user_id": "user-1",
        "exam_session_id": None,
        "provider": "EOI",
        "level": "B2",
        "task": "writing",
        "status": "scored",
        "score_json": None,
        "quality_metrics": None,
        "error_details": None,
        "processing_time_ms": 1000,
        "created_at": BASE_TIME - timedelta(minutes=n),
        "updated_at": BASE_TIME - timedelta(minutes=n),
    }
    percentage = overrides.pop("percentage", 75)
    passed = overrides.pop("passed", percentage >= 60)
    fields.update(overrides)
    if fields["status"] == "scored" and "score_json" not in overrides:
        fields["score_json"] = {
            "total_score": percentage / 4,
            "max_score": 25,
            "percentage": percentage,
            "pass": passed,
            "detailed_scores": {"task_achievement": 4},
            "feedback": "Good organisation.",
        }
    if fields["status"] == "failed" and "error_details" not in overrides:
        fields["error_details"] = {"message": "model timeout"}
    return fields


def make_attempt(**overrides) -> ScoringAttempt:
    fields = attempt_fields(**overrides)
    return ScoringAttempt(
        id=fields["id"],
        user_id=fields["user_id"],
        exam_session_id=fields["exam_session_id"],
        provider=fields["provider"],
        level=fields["level"],
        task=fields["task"],
        status=fields["status"],
        score=fields["score_json"],
        quality_metrics=fields["quality_metrics"],
        error_details=fields["error_details"],
        processing_time_ms=fields["processing_time_ms"],
        created_at=fields["created_at"],
        updated_at=fields["updated_at"],
    )


def newest_first(attempts):
    return sorted(attempts, key=lambda a: a.created_at, reverse=True)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seed(db):
    """Insert attempt rows built from keyword overrides; returns the rows."""
    def _seed(*attempts):
        rows = [ScoringAttemptRow(**attempt_fields(**a)) for a in attempts]
        db.add_all(rows)
        db.commit()
        return rows
    return _seed


@pytest.fixture
def admin(db):
    db.add(AdminUser(id="admin-1", role="admin"))
    db.commit()
    return "admin-1"


@pytest.fixture
def client(db):
    return TestClient(app, raise_server_exceptions=False)


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
def scenario_attempts():
    """Ten attempts: seven scored, three failed."""
    percentages = [90, 85, 40, 72, 65, 55, 95]
    passes = [True, True, False, True, False, False, True]
    attempts = [
        make_attempt(percentage=p, passed=ok, provider="EOI" if i % 2 else "Cambridge")
        for i, (p, ok) in enumerate(zip(percentages, passes))
    ]
    attempts += [make_attempt(status="failed", provider="JQCV") for _ in range(3)]
    return newest_first(attempts)
