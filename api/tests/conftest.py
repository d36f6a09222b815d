import os
from datetime import datetime

import pytest

# Set test environment variables before the application modules are imported
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["CACHE_ENABLED"] = "false"

from cardwise.core.database import build_engine, init_db  # noqa: E402
from cardwise.repositories import (  # noqa: E402
    CachedCardRepository,
    InMemoryCardRepository,
    SqlModelCardRepository,
)
from cardwise.services.memory_model import SchedulerParameters  # noqa: E402
from cardwise.services.scheduling_service import SchedulingEngine  # noqa: E402

T0 = datetime(2024, 3, 1, 9, 0, 0)


@pytest.fixture
def t0():
    """Fixed naive UTC instant used as 'now' by scheduling tests."""
    return T0


@pytest.fixture
def params():
    return SchedulerParameters()


@pytest.fixture
def sql_engine():
    """Fresh in-memory SQLite database with the schema created."""
    engine = build_engine("sqlite:///:memory:")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_repository(sql_engine):
    return SqlModelCardRepository(sql_engine)


@pytest.fixture
def memory_repository():
    return InMemoryCardRepository()


@pytest.fixture(params=["memory", "sqlmodel", "cached"])
def repository(request):
    """Every CardRepository implementation, so contract tests run against each."""
    if request.param == "memory":
        return InMemoryCardRepository()
    engine = build_engine("sqlite:///:memory:")
    init_db(engine)
    request.addfinalizer(engine.dispose)
    repo = SqlModelCardRepository(engine)
    if request.param == "cached":
        repo = CachedCardRepository(repo)
    return repo


@pytest.fixture
def scheduler(repository, params):
    """Scheduling engine over each repository implementation."""
    return SchedulingEngine(repository, parameters=params)


@pytest.fixture
def memory_scheduler(memory_repository, params):
    return SchedulingEngine(memory_repository, parameters=params)


@pytest.fixture
def client(sql_repository, params):
    """TestClient wired to an isolated SQLite-backed scheduling engine."""
    from fastapi.testclient import TestClient

    from cardwise.api.v1.dependencies import get_scheduling_engine
    from cardwise.main import app

    scheduling_engine = SchedulingEngine(CachedCardRepository(sql_repository), parameters=params)
    app.dependency_overrides[get_scheduling_engine] = lambda: scheduling_engine
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
