"""
Pytest fixtures for the production kernel test suite.

Provides:
- Structured logging configuration and log capture
- A fresh SQLite database per test (in-memory by default)
- File-backed SQLite engines for multi-threaded tests
- Factory fixtures for projects, processes, catches and work transactions

Environment Variables:
- DATABASE_URL: optional SQLAlchemy URL (e.g. a PostgreSQL test database).
  If not set, each test gets its own in-memory SQLite database.
"""

import json
import logging
import os
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from production_kernel.db.engine import create_database_engine, create_tables, drop_tables
from production_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from production_kernel.models.process import Process
from production_kernel.models.project import Project, ProjectType
from production_kernel.models.quantity_sheet import QuantitySheet
from tests.factories import make_catch, make_process, make_project


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
    Capture production_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.toggle_stop(catch_id)
            logs = captured_logs()
            assert any(r["message"] == "catch_stop_toggled" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("production_kernel")
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


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", "sqlite://")


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Fresh schema per test.  In-memory SQLite unless DATABASE_URL is set."""
    eng = create_database_engine(get_database_url())
    create_tables(eng)
    yield eng
    drop_tables(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def session(session_factory) -> Generator[Session, None, None]:
    """A session whose work is rolled back at teardown."""
    sess = session_factory()
    yield sess
    try:
        sess.rollback()
    finally:
        sess.close()


@pytest.fixture
def file_engine(tmp_path) -> Generator[Engine, None, None]:
    """
    File-backed SQLite engine for tests that use real threads.

    Every thread gets its own pooled connection; the busy timeout lets
    writers on different lots queue behind SQLite's database-level lock.
    """
    eng = create_engine(
        f"sqlite:///{tmp_path / 'production.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    create_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def file_session_factory(file_engine) -> sessionmaker[Session]:
    return sessionmaker(bind=file_engine, expire_on_commit=False)


# =============================================================================
# Factory fixtures
# =============================================================================


@pytest.fixture
def create_project(session):
    """Factory fixture to create projects in the test session."""

    def _create(**kwargs) -> Project:
        return make_project(session, **kwargs)

    return _create


@pytest.fixture
def create_process(session):
    """Factory fixture to create catalog processes in the test session."""

    def _create(process_id: int, name: str, **kwargs) -> Process:
        return make_process(session, process_id, name, **kwargs)

    return _create


@pytest.fixture
def create_catch(session):
    """Factory fixture to create quantity-sheet rows in the test session."""

    def _create(project_id: int, lot_no: str, catch_no: str, quantity, **kwargs) -> QuantitySheet:
        return make_catch(session, project_id, lot_no, catch_no, quantity, **kwargs)

    return _create


@pytest.fixture
def paper_project(create_project) -> Project:
    return create_project(name="Paper Project", project_type=ProjectType.PAPER)


@pytest.fixture
def booklet_project(create_project) -> Project:
    return create_project(
        name="Booklet Project",
        project_type=ProjectType.BOOKLET,
        series_count=4,
    )

