"""Test configuration and fixtures."""

import os

import pytest
from fastapi.testclient import TestClient

# Set test environment variables BEFORE importing the app
os.environ["ENVIRONMENT"] = "test"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["API_RATE_LIMIT_RPM"] = "100000"
os.environ["API_RATE_LIMIT_BURST"] = "1000"
os.environ["SUBMIT_RATE_LIMIT_PER_WINDOW"] = "1000"

from viberank.config import get_settings
from viberank.database.connection import DatabaseManager
from viberank.database.migrations import create_tables
from viberank.main import app
from viberank.middleware.rate_limit import SubmissionRateLimits
from viberank.storage import MemoryStorage, SQLStorage, get_storage

TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}


class UsageFactory:
    """Builds ccusage-shaped report dicts with consistent totals."""

    def day(
        self,
        date,
        input_tokens=1000,
        output_tokens=500,
        cache_creation_tokens=0,
        cache_read_tokens=0,
        total_cost=None,
        models=("claude-sonnet-4-20250514",),
    ):
        total_tokens = input_tokens + output_tokens + cache_creation_tokens + cache_read_tokens
        if total_cost is None:
            total_cost = round(total_tokens * 0.00001, 6)
        return {
            "date": date,
            "inputTokens": input_tokens,
            "outputTokens": output_tokens,
            "cacheCreationTokens": cache_creation_tokens,
            "cacheReadTokens": cache_read_tokens,
            "totalTokens": total_tokens,
            "totalCost": total_cost,
            "modelsUsed": list(models),
        }

    def report(self, days):
        keys = ["inputTokens", "outputTokens", "cacheCreationTokens", "cacheReadTokens", "totalTokens"]
        totals = {key: sum(d[key] for d in days) for key in keys}
        totals["totalCost"] = sum(d["totalCost"] for d in days)
        return {"totals": totals, "daily": days}

    def single(self, date="2024-01-15", **kwargs):
        return self.report([self.day(date, **kwargs)])


@pytest.fixture
def usage():
    """Factory for usage report payloads."""
    return UsageFactory()


@pytest.fixture
async def sql_storage():
    """SQLStorage over a fresh in-memory SQLite database."""
    manager = DatabaseManager()
    manager.initialize(TEST_ASYNC_DATABASE_URL)
    await create_tables(manager.engine)
    yield SQLStorage(manager)
    await manager.close()


@pytest.fixture(params=["memory", "sql"])
async def storage(request):
    """Each storage backend in turn."""
    if request.param == "memory":
        yield MemoryStorage()
        return

    manager = DatabaseManager()
    manager.initialize(TEST_ASYNC_DATABASE_URL)
    await create_tables(manager.engine)
    yield SQLStorage(manager)
    await manager.close()


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def client(memory_storage):
    """Test client backed by an in-memory store."""
    app.dependency_overrides[get_storage] = lambda: memory_storage
    app.state.submission_limits = SubmissionRateLimits(get_settings())
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    return dict(ADMIN_HEADERS)
