"""Tests for the storage backends.

Every test runs against both the in-memory store and SQLite.
"""

import uuid
from datetime import datetime, timezone

import pytest

from viberank.database.migrations import drop_tables
from viberank.exceptions import NotFoundError, StorageError
from viberank.storage import PROFILES, SUBMISSIONS


def _profile(username, total_submissions=1, github_username=None):
    return {
        "username": username,
        "github_username": github_username,
        "total_submissions": total_submissions,
    }


def _submission(username, total_cost, flagged=False):
    return {
        "username": username,
        "total_tokens": int(total_cost * 100000),
        "total_cost": total_cost,
        "date_range": {"start": "2024-01-01", "end": "2024-01-02"},
        "models_used": ["claude-sonnet-4"],
        "daily_breakdown": [],
        "submitted_at": datetime(2024, 1, 3, tzinfo=timezone.utc),
        "source": "cli",
        "flagged_for_review": flagged,
        "flag_reasons": ["too big"] if flagged else [],
    }


class TestStorageBackend:
    """Behaviour shared by every backend."""

    async def test_insert_and_get(self, storage):
        record_id = await storage.insert(PROFILES, _profile("alice"))

        doc = await storage.get(PROFILES, record_id)

        assert doc["id"] == record_id
        assert doc["username"] == "alice"
        assert doc["total_submissions"] == 1
        assert doc["created_at"] is not None

    async def test_json_fields_round_trip(self, storage):
        record_id = await storage.insert(SUBMISSIONS, _submission("alice", 1.5, flagged=True))

        doc = await storage.get(SUBMISSIONS, record_id)

        assert doc["date_range"] == {"start": "2024-01-01", "end": "2024-01-02"}
        assert doc["models_used"] == ["claude-sonnet-4"]
        assert doc["flag_reasons"] == ["too big"]
        assert doc["flagged_for_review"] is True

    async def test_get_missing(self, storage):
        assert await storage.get(PROFILES, str(uuid.uuid4())) is None
        assert await storage.get(PROFILES, "not-an-id") is None

    async def test_patch(self, storage):
        record_id = await storage.insert(PROFILES, _profile("alice"))

        await storage.patch(PROFILES, record_id, {"total_submissions": 5, "bio": "hi"})

        doc = await storage.get(PROFILES, record_id)
        assert doc["total_submissions"] == 5
        assert doc["bio"] == "hi"
        assert doc["username"] == "alice"

    async def test_patch_missing_raises(self, storage):
        with pytest.raises(NotFoundError):
            await storage.patch(PROFILES, str(uuid.uuid4()), {"bio": "x"})

    async def test_query_eq_insertion_order(self, storage):
        first = await storage.insert(PROFILES, _profile("alice", github_username="gh"))
        await storage.insert(PROFILES, _profile("bob"))
        third = await storage.insert(PROFILES, _profile("carol", github_username="gh"))

        docs = await storage.query_eq(PROFILES, "github_username", "gh")

        assert [d["id"] for d in docs] == [first, third]

    async def test_query_eq_order_and_limit(self, storage):
        await storage.insert(PROFILES, _profile("a", total_submissions=1, github_username="gh"))
        await storage.insert(PROFILES, _profile("b", total_submissions=3, github_username="gh"))
        await storage.insert(PROFILES, _profile("c", total_submissions=2, github_username="gh"))

        docs = await storage.query_eq(
            PROFILES, "github_username", "gh",
            order_by="total_submissions", descending=True, limit=2,
        )

        assert [d["username"] for d in docs] == ["b", "c"]

    async def test_query_eq_boolean(self, storage):
        await storage.insert(SUBMISSIONS, _submission("alice", 1.0))
        flagged = await storage.insert(SUBMISSIONS, _submission("bob", 2.0, flagged=True))

        docs = await storage.query_eq(SUBMISSIONS, "flagged_for_review", True)

        assert [d["id"] for d in docs] == [flagged]

    async def test_query_top(self, storage):
        low = await storage.insert(SUBMISSIONS, _submission("low", 1.0))
        high = await storage.insert(SUBMISSIONS, _submission("high", 9.0))
        tie = await storage.insert(SUBMISSIONS, _submission("tie", 1.0))

        docs = await storage.query_top(SUBMISSIONS, "total_cost", 3)

        assert [d["id"] for d in docs] == [high, low, tie]
        assert len(await storage.query_top(SUBMISSIONS, "total_cost", 1)) == 1

    async def test_scan(self, storage):
        ids = [await storage.insert(PROFILES, _profile(name)) for name in ("a", "b", "c")]

        assert [d["id"] for d in await storage.scan(PROFILES)] == ids
        assert [d["id"] for d in await storage.scan(PROFILES, limit=2)] == ids[:2]

    async def test_delete(self, storage):
        record_id = await storage.insert(PROFILES, _profile("alice"))

        assert await storage.delete(PROFILES, record_id) is True
        assert await storage.delete(PROFILES, record_id) is False
        assert await storage.get(PROFILES, record_id) is None

    async def test_ping(self, storage):
        await storage.ping()

    async def test_unknown_collection(self, storage):
        with pytest.raises(ValueError):
            await storage.scan("teams")


class TestSQLStorageErrors:
    """Database failures surface as StorageError."""

    async def test_query_failure_wrapped(self, sql_storage):
        await drop_tables(sql_storage.manager.engine)

        with pytest.raises(StorageError) as exc:
            await sql_storage.scan(SUBMISSIONS)
        assert exc.value.operation == "query"
        assert exc.value.message == "Failed to query submissions"

    async def test_insert_failure_wrapped(self, sql_storage):
        await drop_tables(sql_storage.manager.engine)

        with pytest.raises(StorageError) as exc:
            await sql_storage.insert(PROFILES, _profile("alice"))
        assert exc.value.operation == "create"
