"""
Shared pytest fixtures for all tests.

Provides a temporary sync-state database, fake store services, and a test
client for the lookup API.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest
from dotenv import load_dotenv
from sqlalchemy import create_engine
from starlette.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from freebusy_sync.api.main import create_app  # noqa: E402
from freebusy_sync.config import DomainMap, SyncConfig  # noqa: E402
from freebusy_sync.database.session import SessionManager  # noqa: E402
from freebusy_sync.database.typed_operations import SyncStateStore  # noqa: E402

from fakes import FakeAppointmentService, FakeFreeBusyService  # noqa: E402


env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    try:
        load_dotenv(env_path)
    except (OSError, IOError):
        pass


@pytest.fixture
def sqlite_sessions():
    """SessionManager over a temporary SQLite database."""
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    engine = create_engine(f"sqlite:///{db_path}", echo=False)

    sessions = SessionManager(engine)
    sessions.create_tables()

    yield sessions

    engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def sync_state_store(sqlite_sessions):
    """Thread-safe sync-state store backed by the temporary database."""
    return SyncStateStore(sqlite_sessions)


@pytest.fixture
def domain_map():
    """Maps example.org on the calendar side to woot.org locally."""
    return DomainMap(
        external_to_local={"example.org": "woot.org"},
        local_to_external={"woot.org": "example.org"},
    )


@pytest.fixture
def appointment_service():
    return FakeAppointmentService()


@pytest.fixture
def free_busy_service():
    return FakeFreeBusyService()


@pytest.fixture
def test_config(sqlite_sessions):
    """Configuration used by the API fixtures."""
    return SyncConfig(database_url=str(sqlite_sessions.engine.url))


@pytest.fixture
def app(appointment_service, free_busy_service, test_config, sqlite_sessions):
    """Lookup application wired to the fake services."""
    return create_app(
        appointments=appointment_service,
        free_busy=free_busy_service,
        config=test_config,
        sessions=sqlite_sessions,
    )


@pytest.fixture
def client(app):
    """Test client for the lookup application."""
    with TestClient(app) as test_client:
        yield test_client
