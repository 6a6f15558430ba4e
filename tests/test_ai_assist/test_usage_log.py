"""Tests for the SQLite usage log."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio

from task_ai.ai_assist.exceptions import UsageLogError
from task_ai.ai_assist.models import FeatureType, UsageRecord
from task_ai.ai_assist.usage_log import UsageLogDatabase


def make_record(
    feature_type: FeatureType = FeatureType.AUTOFILL,
    execution_time_ms: int = 100,
    success: bool = True,
    created_at: datetime | None = None,
) -> UsageRecord:
    """Build a usage record for testing."""
    record = UsageRecord(
        provider="Ollama",
        feature_type=feature_type,
        execution_time_ms=execution_time_ms,
        success=success,
        prompt="prompt text",
        response="response text" if success else None,
        error_message=None if success else "Connection refused",
    )
    if created_at is not None:
        record.created_at = created_at
    return record


@pytest_asyncio.fixture
async def usage_log() -> AsyncIterator[UsageLogDatabase]:
    """Create an initialized in-memory usage log."""
    db = UsageLogDatabase(":memory:")
    await db.initialize()
    yield db
    await db.close()


@pytest.mark.unit
class TestUsageLogSchema:
    """Test cases for schema creation."""

    @pytest.mark.asyncio
    async def test_schema_creation_creates_usage_table(
        self, usage_log: UsageLogDatabase
    ) -> None:
        """Test that initialization creates the ai_usage table."""
        async with usage_log._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='ai_usage'"
            )
            result = await cursor.fetchone()

        assert result is not None

    @pytest.mark.asyncio
    async def test_schema_creation_creates_indexes(
        self, usage_log: UsageLogDatabase
    ) -> None:
        """Test that initialization creates the usage indexes."""
        async with usage_log._get_connection() as conn:
            cursor = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_%'"
            )
            index_names = [row[0] for row in await cursor.fetchall()]

        assert "idx_usage_feature" in index_names
        assert "idx_usage_created_at" in index_names

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, usage_log: UsageLogDatabase) -> None:
        """Test that initializing twice keeps existing records."""
        await usage_log.record(make_record())
        await usage_log.initialize()

        assert len(await usage_log.list_recent()) == 1

    @pytest.mark.asyncio
    async def test_file_database_creates_parent_directory(self, tmp_path: Path) -> None:
        """Test that a missing parent directory is created."""
        db_path = tmp_path / "nested" / "usage.db"
        db = UsageLogDatabase(str(db_path))
        await db.initialize()
        await db.record(make_record())
        await db.close()

        assert db_path.exists()

    @pytest.mark.asyncio
    async def test_uninitialized_log_raises_error(self) -> None:
        """Test that using the log before initialize raises UsageLogError."""
        db = UsageLogDatabase(":memory:")

        with pytest.raises(UsageLogError, match="not initialized"):
            await db.record(make_record())


@pytest.mark.unit
class TestUsageRecords:
    """Test cases for recording and listing usage."""

    @pytest.mark.asyncio
    async def test_record_round_trip(self, usage_log: UsageLogDatabase) -> None:
        """Test that a stored record is read back with all fields."""
        record = make_record(success=False, execution_time_ms=250)
        await usage_log.record(record)

        [stored] = await usage_log.list_recent()

        assert stored == record

    @pytest.mark.asyncio
    async def test_list_recent_orders_newest_first(
        self, usage_log: UsageLogDatabase
    ) -> None:
        """Test ordering and limit of list_recent."""
        now = datetime.now(UTC)
        for minutes in (3, 1, 2):
            await usage_log.record(
                make_record(execution_time_ms=minutes, created_at=now - timedelta(minutes=minutes))
            )

        records = await usage_log.list_recent(limit=2)

        assert [r.execution_time_ms for r in records] == [1, 2]

    @pytest.mark.asyncio
    async def test_list_recent_filters_by_feature(
        self, usage_log: UsageLogDatabase
    ) -> None:
        """Test the feature filter."""
        await usage_log.record(make_record(FeatureType.AUTOFILL))
        await usage_log.record(make_record(FeatureType.SUMMARY))

        records = await usage_log.list_recent(feature_type=FeatureType.SUMMARY)

        assert [r.feature_type for r in records] == [FeatureType.SUMMARY]

    @pytest.mark.asyncio
    async def test_duplicate_id_raises_error(self, usage_log: UsageLogDatabase) -> None:
        """Test that inserting the same record twice fails."""
        record = make_record()
        await usage_log.record(record)

        with pytest.raises(UsageLogError, match="Failed to record usage"):
            await usage_log.record(record)


@pytest.mark.unit
class TestUsageStatistics:
    """Test cases for usage statistics."""

    @pytest.mark.asyncio
    async def test_statistics_empty(self, usage_log: UsageLogDatabase) -> None:
        """Test statistics with no records."""
        assert await usage_log.get_statistics() == {}

    @pytest.mark.asyncio
    async def test_statistics_per_feature(self, usage_log: UsageLogDatabase) -> None:
        """Test totals, successes, failures and average time per feature."""
        await usage_log.record(make_record(FeatureType.AUTOFILL, 100, True))
        await usage_log.record(make_record(FeatureType.AUTOFILL, 200, False))
        await usage_log.record(make_record(FeatureType.SUMMARY, 50, True))

        stats = await usage_log.get_statistics()

        assert stats["Autofill"] == {
            "total": 2,
            "successes": 1,
            "failures": 1,
            "avg_time_ms": 150.0,
        }
        assert stats["Summary"]["total"] == 1
        assert stats["Summary"]["failures"] == 0
