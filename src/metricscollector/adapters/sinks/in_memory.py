"""In-memory metrics sink."""

from metricscollector.core.models import MetricBatch, MetricPoint


class InMemoryMetricsSink:
    """In-memory implementation of MetricsSinkPort.

    Keeps every delivered batch in a list. Suitable for testing and
    dry runs where no backend is available.
    """

    def __init__(self) -> None:
        self.batches: list[MetricBatch] = []

    async def put_batch(self, batch: MetricBatch) -> None:
        """Record a delivered batch."""
        self.batches.append(batch)

    @property
    def points(self) -> list[MetricPoint]:
        """All delivered points, in delivery order."""
        return [point for batch in self.batches for point in batch.points]
