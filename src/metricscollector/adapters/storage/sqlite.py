"""SQLite counting store for activity records.

Items are stored as JSON documents. A scan segment is the set of rows whose
id is congruent to the segment index modulo the segment count; a page is
``page_size`` consecutive scanned rows of that segment, and the continuation
token is the id of the last scanned row.
"""

import json
import sqlite3
from collections.abc import Iterable
from typing import Any

from metricscollector.adapters.storage.sqlite_base import (
    AsyncConnectionManager,
    quote_table,
)
from metricscollector.core.errors import StoreError
from metricscollector.core.models import FilterExpression, ScanPage, ScanQuery

DEFAULT_PAGE_SIZE = 100

_SCHEMA = """
CREATE TABLE IF NOT EXISTS {table} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    document TEXT NOT NULL
);
"""

_INSERT = "INSERT INTO {table} (document) VALUES (?)"

_SCAN_PAGE = """
SELECT COUNT(*), MAX(id), SUM(CASE WHEN {where} THEN 1 ELSE 0 END)
FROM (
    SELECT id, document FROM {table}
    WHERE id % ? = ? AND id > ?
    ORDER BY id ASC
    LIMIT ?
)
"""

_SQL_OPERATORS = {"=": "=", ">=": ">=", "<=": "<="}


def compile_filter(predicate: FilterExpression) -> tuple[str, list[Any]]:
    """Translate a FilterExpression into a SQL condition over ``document``.

    Returns:
        Tuple of (sql, params). An empty expression compiles to ``1``.
    """
    clauses: list[str] = []
    params: list[Any] = []
    for cond in predicate.conditions:
        # Attribute names are restricted to identifiers by Condition.
        extract = f"json_extract(document, '$.{cond.attribute}')"
        if cond.operator == "is_null":
            clauses.append(f"{extract} IS NULL")
        else:
            clauses.append(f"{extract} {_SQL_OPERATORS[cond.operator]} ?")
            params.append(cond.value)
    if not clauses:
        return "1", []
    return " AND ".join(clauses), params


class SQLiteCountingStore:
    """SQLite implementation of CountingStorePort.

    Uses aiosqlite for non-blocking access. For :memory: databases a
    persistent connection is kept, so the data lives as long as the store.
    """

    def __init__(
        self,
        db_path: str,
        table: str = "activities",
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._table = quote_table(table)
        self.page_size = page_size
        self._manager = AsyncConnectionManager(
            db_path, _SCHEMA.format(table=self._table)
        )

    async def put(self, item: dict[str, Any]) -> None:
        """Insert one item document."""
        await self.put_many([item])

    async def put_many(self, items: Iterable[dict[str, Any]]) -> None:
        """Insert several item documents in one transaction."""
        rows = [(json.dumps(item),) for item in items]
        try:
            async with self._manager.connection() as db:
                await db.executemany(_INSERT.format(table=self._table), rows)
                await db.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"insert failed: {exc}") from exc

    async def scan_page(self, query: ScanQuery) -> ScanPage:
        """Count matching rows in one page of one segment."""
        where, params = compile_filter(query.predicate)
        after = query.continuation_token or 0
        sql = _SCAN_PAGE.format(where=where, table=self._table)
        try:
            async with self._manager.connection() as db:
                async with db.execute(
                    sql,
                    (
                        *params,
                        query.total_segments,
                        query.segment_index,
                        after,
                        self.page_size,
                    ),
                ) as cursor:
                    row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise StoreError(
                f"scan of segment {query.segment_index} failed: {exc}"
            ) from exc
        scanned, last_id, matched = row if row else (0, None, None)
        next_token = last_id if scanned == self.page_size else None
        return ScanPage(count=matched, next_token=next_token)

    async def close(self) -> None:
        """Close persistent connection (for :memory: databases)."""
        await self._manager.close()
