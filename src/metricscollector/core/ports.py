"""Port interfaces for the pipeline's external collaborators.

These protocols define the contracts that adapters must implement.
The core depends only on these interfaces, not concrete implementations.
"""

from typing import Protocol, runtime_checkable

from metricscollector.core.models import LogBatch, MetricBatch, ScanPage, ScanQuery


@runtime_checkable
class DecoderPort(Protocol):
    """Port for turning a raw input record into a LogBatch.

    Examples: GzipJsonDecoder.
    """

    async def decode(self, raw: bytes | str) -> LogBatch:
        """Decode one raw record.

        Raises:
            DecodeError: If the payload is malformed or corrupt.
        """
        ...


@runtime_checkable
class CountingStorePort(Protocol):
    """Port for paginated, segmented count-only scans.

    Examples: InMemoryCountingStore, SQLiteCountingStore.
    """

    async def scan_page(self, query: ScanQuery) -> ScanPage:
        """Count matching items in one page of one segment.

        Args:
            query: Predicate, segment and continuation token to scan.

        Returns:
            ScanPage with the page count and the token for the next page,
            or a None token when the segment is exhausted.

        Raises:
            StoreError: If the request fails.
        """
        ...


@runtime_checkable
class MetricsSinkPort(Protocol):
    """Port for delivering metric batches to a backend.

    Examples: InMemoryMetricsSink, SQLiteMetricsSink, HttpMetricsSink.
    """

    async def put_batch(self, batch: MetricBatch) -> None:
        """Deliver one batch of at most 20 points.

        Raises:
            SinkError: If delivery fails after the sink's own retries.
        """
        ...
