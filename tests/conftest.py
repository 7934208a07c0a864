"""Pytest configuration and fixtures."""

import pytest
import pytest_asyncio

from faultline.database import build_engine, build_session_factory, init_db
from faultline.kinds import ERRORS, LOGS
from faultline.services import GroupService, IngestionService



@pytest_asyncio.fixture
async def engine(tmp_path):
    """
    File-backed SQLite database, one per test.

    A file (not :memory:) so that concurrent sessions get their own connections.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/faultline-test.db")
    await init_db(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def error_service(session_factory):
    return IngestionService(ERRORS, session_factory)


@pytest.fixture
def log_service(session_factory):
    return IngestionService(LOGS, session_factory)


@pytest.fixture
def error_groups(session_factory):
    return GroupService(ERRORS, session_factory)


@pytest.fixture
def log_groups(session_factory):
    return GroupService(LOGS, session_factory)


@pytest.fixture
def error_payload():
    """A valid error as sent by a client."""
    return {
        "time": 1704067200000,
        "message": "Division by zero in calculate() for user 42",
        "stacktrace": "at index.php:15, at main(), at calculate()",
        "file": "/var/www/app/index.php",
        "line": 15,
        "context": '{"userId": 42, "action": "calculate"}',
        "ip": "192.168.1.1",
        "url": "https://example.com/api/v1/calculate",
        "method": "POST",
        "headers": {"Content-Type": "application/json"},
    }


@pytest.fixture
def log_payload():
    return {
        "time": 1704067200000,
        "level": "ERROR",
        "message": "payment 1234 declined",
        "context": {"gateway": "stripe", "attempt": 3},
    }
