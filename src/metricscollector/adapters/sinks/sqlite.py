"""SQLite metrics sink."""

import json
import sqlite3
from collections.abc import AsyncIterable

from metricscollector.adapters.storage.sqlite_base import AsyncConnectionManager
from metricscollector.core.errors import SinkError
from metricscollector.core.models import MetricBatch, MetricPoint

_METRICS_SCHEMA = """
CREATE TABLE IF NOT EXISTS metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    namespace TEXT NOT NULL,
    name TEXT NOT NULL,
    timestamp REAL,
    value REAL NOT NULL,
    unit TEXT NOT NULL,
    dimensions TEXT NOT NULL DEFAULT '[]'
);
CREATE INDEX IF NOT EXISTS idx_metrics_name_timestamp ON metrics(name, timestamp);
"""

_INSERT_METRIC = """
INSERT INTO metrics (namespace, name, timestamp, value, unit, dimensions)
VALUES (?, ?, ?, ?, ?, ?)
"""

_SELECT_METRICS = """
SELECT name, value, unit, dimensions, timestamp FROM metrics
WHERE namespace = ?
ORDER BY id ASC
"""

_COUNT_METRICS = """
SELECT COUNT(*) FROM metrics
"""


class SQLiteMetricsSink:
    """SQLite implementation of MetricsSinkPort.

    Persists every dispatched point as one row, keeping dimension order.
    Useful for local runs where no metrics backend is reachable.
    """

    def __init__(self, db_path: str) -> None:
        self._manager = AsyncConnectionManager(db_path, _METRICS_SCHEMA)

    async def put_batch(self, batch: MetricBatch) -> None:
        """Write all points of a batch in one transaction."""
        rows = [
            (
                batch.namespace,
                point.name,
                point.timestamp,
                point.value,
                point.unit,
                json.dumps([list(pair) for pair in point.dimensions]),
            )
            for point in batch.points
        ]
        try:
            async with self._manager.connection() as db:
                await db.executemany(_INSERT_METRIC, rows)
                await db.commit()
        except sqlite3.Error as exc:
            raise SinkError(f"failed to store metric batch: {exc}") from exc

    async def scrape(self, namespace: str = "CVS") -> AsyncIterable[MetricPoint]:
        """Yield stored points of a namespace in write order."""
        async with self._manager.connection() as db:
            async with db.execute(_SELECT_METRICS, (namespace,)) as cursor:
                async for row in cursor:
                    yield MetricPoint(
                        name=row[0],
                        value=row[1],
                        unit=row[2],
                        dimensions=tuple(
                            (key, value) for key, value in json.loads(row[3])
                        ),
                        timestamp=row[4],
                    )

    async def count(self) -> int:
        """Return total number of stored points."""
        async with self._manager.connection() as db:
            async with db.execute(_COUNT_METRICS) as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    async def close(self) -> None:
        """Close persistent connection (for :memory: databases)."""
        await self._manager.close()
