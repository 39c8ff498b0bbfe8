"""
Pytest fixtures for the bulk upload test suite.

Provides:
- In-memory and file-backed SQLite sessions with SAVEPOINT support and the
  upload tables
- A deterministic clock
- Fakes for the identity, organisation and location services
- Structured log capture
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import upload_ingestion.models  # noqa: F401  registers the upload tables
from upload_batch.domain.enrichment import Location
from upload_config import get_upload_settings
from upload_ingestion.services.record_store import SqlAlchemyRecordStore
from upload_kernel.db.base import Base
from upload_kernel.db.engine import enable_sqlite_savepoints
from upload_kernel.domain.clock import DeterministicClock
from upload_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

FIXED_NOW = datetime(2026, 2, 1, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture upload_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, upload_service):
            upload_service.submit(...)
            logs = captured_logs()
            assert any(r["message"] == "job_submitted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("upload_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """Fresh in-memory SQLite engine with the upload tables."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(eng)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def file_session_factory(tmp_path):
    """
    Session factory on a file-backed SQLite database.

    Each session gets its own connection, so a session only sees what other
    sessions have committed.
    """
    eng = create_engine(
        f"sqlite:///{tmp_path / 'uploads.db'}",
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_savepoints(eng)
    Base.metadata.create_all(eng)
    yield sessionmaker(bind=eng, expire_on_commit=False)
    eng.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def store(db_session):
    return SqlAlchemyRecordStore(db_session)


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def settings():
    """The packaged default upload settings."""
    return get_upload_settings()


# =============================================================================
# Downstream service fakes
# =============================================================================


class FakeIdentityService:
    """Users and organisations keyed by (kind, id)."""

    def __init__(self, entities: dict[tuple[str, str], dict[str, Any]] | None = None):
        self.entities = dict(entities or {})
        self.calls: list[tuple[str, str]] = []

    def get_entity_by_id(self, kind: str, entity_id: str) -> dict[str, Any] | None:
        self.calls.append((kind, entity_id))
        return self.entities.get((kind, entity_id))


class FakeOrganisationClient:
    """Records every mutation; names listed in ``fail_on`` raise."""

    def __init__(self, fail_on: tuple[str, ...] = ()):
        self.fail_on = set(fail_on)
        self.created: list[dict[str, Any]] = []
        self.updated: list[dict[str, Any]] = []

    def create(self, record: dict[str, Any]) -> str:
        if record.get("orgName") in self.fail_on:
            raise RuntimeError(f"organisation service rejected {record['orgName']}")
        self.created.append(record)
        return f"org-{len(self.created)}"

    def update(self, record: dict[str, Any]) -> None:
        if record.get("orgName") in self.fail_on:
            raise RuntimeError(f"organisation service rejected {record['orgName']}")
        self.updated.append(record)

    @property
    def call_count(self) -> int:
        return len(self.created) + len(self.updated)


class FakeLocationClient:
    """Resolves codes from a name mapping and counts calls per code."""

    def __init__(self, names: dict[str, str] | None = None):
        self.names = dict(names or {})
        self.calls: list[str] = []

    def resolve_by_code(self, code: str) -> Location | None:
        self.calls.append(code)
        name = self.names.get(code)
        if name is None:
            return None
        return Location(code=code, name=name, id=f"loc-{code}")


class RecordingQueue:
    """JobQueue that remembers what was enqueued."""

    def __init__(self):
        self.job_ids: list = []

    def enqueue(self, job_id) -> None:
        self.job_ids.append(job_id)


@pytest.fixture
def identity():
    """A user u1 whose active root organisation carries channel ch-1."""
    return FakeIdentityService({
        ("user", "u1"): {"id": "u1", "rootOrgId": "root-1"},
        ("organisation", "root-1"): {"id": "root-1", "channel": "ch-1", "status": 1},
        ("user", "orphan"): {"id": "orphan"},
    })


@pytest.fixture
def org_client():
    return FakeOrganisationClient()


@pytest.fixture
def location_client():
    return FakeLocationClient({"A": "Alpha", "B": "Bravo", "C": "Charlie"})


@pytest.fixture
def job_queue():
    return RecordingQueue()


@pytest.fixture
def failing_org_client():
    """Organisation client that rejects the organisation named Alpha."""
    return FakeOrganisationClient(fail_on=("Alpha",))
