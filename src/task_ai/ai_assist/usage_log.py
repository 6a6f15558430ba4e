"""Usage log for AI feature calls using SQLite."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

import aiosqlite

from .config import USAGE_SCHEMA_VERSION
from .exceptions import UsageLogError
from .interfaces import UsageSink
from .models import FeatureType, UsageRecord


class UsageLogDatabase(UsageSink):
    """SQLite storage for AI usage records."""

    def __init__(self, db_path: str, wal_mode: bool = True) -> None:
        """
        Initialize usage log.

        Args:
            db_path: Path to SQLite database file (use ":memory:" for in-memory)
            wal_mode: Enable WAL mode for concurrent access
        """
        self.db_path = db_path
        self.wal_mode = wal_mode
        self._connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open the connection and create the schema."""
        if self._connection is None:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            self._connection = await aiosqlite.connect(self.db_path)
            self._connection.row_factory = aiosqlite.Row

            # WAL is not supported for :memory:
            if self.wal_mode and self.db_path != ":memory:":
                await self._connection.execute("PRAGMA journal_mode=WAL")

        await self._create_schema()

    async def _create_schema(self) -> None:
        async with self._get_connection() as conn:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY,
                    applied_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )

            cursor = await conn.execute("SELECT MAX(version) FROM schema_version")
            result = await cursor.fetchone()
            current_version = result[0] if result and result[0] is not None else 0

            if current_version < USAGE_SCHEMA_VERSION:
                await self._apply_migrations(conn, current_version)

            await conn.commit()

    async def _apply_migrations(
        self, conn: aiosqlite.Connection, from_version: int
    ) -> None:
        """
        Apply schema migrations.

        Args:
            conn: Database connection
            from_version: Current schema version
        """
        if from_version < 1:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS ai_usage (
                    id TEXT PRIMARY KEY,
                    provider TEXT NOT NULL,
                    feature_type TEXT NOT NULL,
                    execution_time_ms INTEGER NOT NULL,
                    success INTEGER NOT NULL,
                    prompt TEXT,
                    response TEXT,
                    error_message TEXT,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_usage_feature ON ai_usage(feature_type)"
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_usage_created_at ON ai_usage(created_at)"
            )

        await conn.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (USAGE_SCHEMA_VERSION,),
        )

    @asynccontextmanager
    async def _get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Get database connection context manager.

        Raises:
            UsageLogError: If connection is not initialized
        """
        if self._connection is None:
            raise UsageLogError("Usage log not initialized")
        yield self._connection

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    async def record(self, usage: UsageRecord) -> None:
        """
        Insert a usage record.

        Args:
            usage: Record to store

        Raises:
            UsageLogError: If the log is not initialized or the insert fails
        """
        try:
            async with self._get_connection() as conn:
                await conn.execute(
                    """
                    INSERT INTO ai_usage (
                        id, provider, feature_type, execution_time_ms, success,
                        prompt, response, error_message, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(usage.id),
                        usage.provider,
                        usage.feature_type.value,
                        usage.execution_time_ms,
                        int(usage.success),
                        usage.prompt,
                        usage.response,
                        usage.error_message,
                        usage.created_at.isoformat(),
                    ),
                )
                await conn.commit()
        except aiosqlite.Error as e:
            raise UsageLogError(f"Failed to record usage: {e}") from e

    async def list_recent(
        self, limit: int = 50, feature_type: FeatureType | None = None
    ) -> list[UsageRecord]:
        """
        List the most recent usage records, newest first.

        Args:
            limit: Maximum number of records
            feature_type: Optional feature filter

        Returns:
            List of UsageRecord
        """
        query = "SELECT * FROM ai_usage"
        params: list[Any] = []
        if feature_type is not None:
            query += " WHERE feature_type = ?"
            params.append(feature_type.value)
        query += " ORDER BY created_at DESC LIMIT ?"
        params.append(limit)

        async with self._get_connection() as conn:
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()

        return [self._row_to_record(row) for row in rows]

    async def get_statistics(self) -> dict[str, dict[str, Any]]:
        """
        Summarize usage per feature.

        Returns:
            Mapping of feature name to total, successes, failures and
            average execution time in milliseconds
        """
        async with self._get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT feature_type,
                       COUNT(*) AS total,
                       SUM(success) AS successes,
                       AVG(execution_time_ms) AS avg_time_ms
                FROM ai_usage
                GROUP BY feature_type
                """
            )
            rows = await cursor.fetchall()

        stats: dict[str, dict[str, Any]] = {}
        for row in rows:
            successes = int(row["successes"] or 0)
            stats[row["feature_type"]] = {
                "total": row["total"],
                "successes": successes,
                "failures": row["total"] - successes,
                "avg_time_ms": round(row["avg_time_ms"] or 0.0, 1),
            }
        return stats

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> UsageRecord:
        return UsageRecord(
            id=UUID(row["id"]),
            provider=row["provider"],
            feature_type=FeatureType(row["feature_type"]),
            execution_time_ms=row["execution_time_ms"],
            success=bool(row["success"]),
            prompt=row["prompt"],
            response=row["response"],
            error_message=row["error_message"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
