"""In-memory counting store."""

from collections.abc import Iterable
from typing import Any

from metricscollector.core.models import ScanPage, ScanQuery


class InMemoryCountingStore:
    """In-memory implementation of CountingStorePort.

    Items are plain dicts. Item ``i`` belongs to segment
    ``i % total_segments``; the continuation token is the offset of the next
    page within the segment. Suitable for testing and local runs.
    """

    def __init__(
        self, items: Iterable[dict[str, Any]] = (), page_size: int = 100
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self._items: list[dict[str, Any]] = list(items)
        self.page_size = page_size
        self.requests: list[ScanQuery] = []

    def put(self, item: dict[str, Any]) -> None:
        self._items.append(item)

    async def scan_page(self, query: ScanQuery) -> ScanPage:
        """Count matching items in one page of one segment."""
        self.requests.append(query)
        segment = self._items[query.segment_index :: query.total_segments]
        offset = query.continuation_token or 0
        page = segment[offset : offset + self.page_size]
        count = sum(1 for item in page if query.predicate.matches(item))
        next_offset = offset + self.page_size
        next_token = next_offset if next_offset < len(segment) else None
        return ScanPage(count=count, next_token=next_token)
