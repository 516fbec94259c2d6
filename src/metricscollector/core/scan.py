"""Segmented, paginated, parallel count-only scans."""

import logging
import os
from dataclasses import replace

from metricscollector.core.models import ScanQuery
from metricscollector.core.ports import CountingStorePort
from metricscollector.core.tasks import run_all
from metricscollector.core.tracing import Span, span

logger = logging.getLogger(__name__)


def default_segments() -> int:
    """Number of scan segments to use when none is configured."""
    return os.cpu_count() or 1


class SegmentedCounter:
    """Counts matching items by scanning a store in parallel segments.

    Each segment is scanned by its own worker, which follows continuation
    tokens page by page until the store returns none. Workers run
    concurrently and the result is the sum of all segment totals.

    Example:
        ```python
        counter = SegmentedCounter(store, segments=4)
        total = await counter.count(ScanQuery(predicate))
        ```
    """

    def __init__(self, store: CountingStorePort, segments: int | None = None) -> None:
        """Initialize the counter.

        Args:
            store: Counting store to scan.
            segments: Default number of parallel segments. Defaults to the
                host CPU count.
        """
        self._store = store
        self.segments = segments if segments is not None else default_segments()
        if self.segments < 1:
            raise ValueError("segments must be at least 1")

    async def count(
        self,
        query: ScanQuery,
        segments: int | None = None,
        context: Span | None = None,
    ) -> int:
        """Return the number of items matching ``query.predicate``.

        Args:
            query: Template query; its segment fields and token are ignored.
            segments: Override for the number of segments.
            context: Optional parent tracing span.

        Returns:
            Total count across every segment.

        Raises:
            StoreError: If any page request fails. No partial total is
                returned.
        """
        total_segments = segments if segments is not None else self.segments
        if total_segments < 1:
            raise ValueError("segments must be at least 1")

        with span(context, "scanCount") as sub:
            if sub is not None:
                sub.add_metadata("query", query)
                sub.add_metadata("segments", total_segments)
            workers = [
                self._scan_segment(
                    replace(
                        query,
                        segment_index=index,
                        total_segments=total_segments,
                        continuation_token=None,
                    )
                )
                for index in range(total_segments)
            ]
            totals = await run_all(workers)
            total = sum(totals)
            if sub is not None:
                sub.add_metadata("count", total)
        return total

    async def _scan_segment(self, query: ScanQuery) -> int:
        """Follow one segment's continuation tokens until exhausted."""
        count = 0
        pages = 0
        while True:
            page = await self._store.scan_page(query)
            pages += 1
            count += page.count or 0
            if page.next_token is None:
                break
            query = replace(query, continuation_token=page.next_token)
        logger.debug(
            "segment %d/%d counted %d in %d pages",
            query.segment_index,
            query.total_segments,
            count,
            pages,
        )
        return count
