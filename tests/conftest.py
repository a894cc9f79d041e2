"""
Pytest configuration and fixtures for the Case Ledger tests.
"""

import os

# Keep test runs from writing log files before any config is imported
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("LOG_ENABLE_CONSOLE", "false")

import pytest  # noqa: E402

from case_ledger import create_app, get_ledger  # noqa: E402
from case_ledger.config.settings import TestingConfig  # noqa: E402
from case_ledger.models.entities import Case, Client  # noqa: E402
from case_ledger.services.ledger_service import CaseLedger  # noqa: E402
from case_ledger.services.repository import RecordRepository  # noqa: E402
from case_ledger.services.store import JsonFileStore  # noqa: E402

USER_A = "user-a"
USER_B = "user-b"


class FakeClock:
    """Millisecond clock that only moves when told to"""

    def __init__(self, start=1_700_000_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms=1000):
        self.now += ms
        return self.now


def make_case(case_id="c1", user_id=USER_A, **overrides):
    values = dict(
        case_id=case_id,
        user_id=user_id,
        case_number="CR/1/2024",
        next_date="2024-05-10",
        court_name="District Court",
        case_type="Criminal",
        case_name_parties="State vs Rao",
        step_of_the_day="Filing",
        notes="bring docs",
    )
    values.update(overrides)
    return Case(**values)


def make_client(client_id="k1", user_id=USER_A, **overrides):
    values = dict(client_id=client_id, user_id=user_id, name="Asha Rao", phone="9800000000")
    values.update(overrides)
    return Client(**values)


@pytest.fixture
def app(tmp_path):
    """Create application for testing."""

    class _TestConfig(TestingConfig):
        DATA_DIR = str(tmp_path / "data")

    app = create_app(_TestConfig)
    app.config.update({
        "TESTING": True,
    })

    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def headers():
    """Request headers acting as USER_A"""
    return {"X-User-Id": USER_A}


@pytest.fixture
def app_ledger(app):
    """The ledger behind the test app"""
    return get_ledger()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    return JsonFileStore(str(tmp_path / "store"))


@pytest.fixture
def repository(store, clock):
    return RecordRepository(store, clock=clock)


@pytest.fixture
def ledger(repository):
    return CaseLedger(repository)
