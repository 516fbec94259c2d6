"""Batching and dispatch of metric points to a metrics sink."""

import asyncio
import logging
import time
from collections.abc import Callable, Iterator, Sequence
from dataclasses import replace

from metricscollector.core.models import MetricBatch, MetricPoint
from metricscollector.core.ports import MetricsSinkPort
from metricscollector.core.tracing import Span, span

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 20
DEFAULT_NAMESPACE = "CVS"


def chunk(
    points: Sequence[MetricPoint], size: int
) -> Iterator[tuple[MetricPoint, ...]]:
    """Split points into ordered chunks of at most ``size``."""
    for start in range(0, len(points), size):
        yield tuple(points[start : start + size])


class MetricDispatcher:
    """Stamps metric points and sends them to a sink in bounded batches.

    Every point of one ``send_counts`` call shares a single timestamp and
    carries the Environment dimension first.
    """

    def __init__(
        self,
        sink: MetricsSinkPort,
        environment: str,
        namespace: str = DEFAULT_NAMESPACE,
        batch_size: int = MAX_BATCH_SIZE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            sink: Backend the batches are delivered to.
            environment: Deployment environment used as the Environment
                dimension.
            namespace: Metric namespace for every batch.
            batch_size: Maximum points per batch, capped by the backend
                limit of 20.
            clock: Source of the shared timestamp.
        """
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
        self._sink = sink
        self.environment = environment
        self.namespace = namespace
        self.batch_size = batch_size
        self._clock = clock

    def stamp(self, point: MetricPoint, timestamp: float) -> MetricPoint:
        """Return ``point`` with the shared timestamp and Environment set."""
        others = tuple((k, v) for k, v in point.dimensions if k != "Environment")
        return replace(
            point,
            timestamp=timestamp,
            dimensions=(("Environment", self.environment), *others),
        )

    def batches(self, points: Sequence[MetricPoint]) -> list[MetricBatch]:
        """Stamp points and group them into MetricBatch chunks."""
        timestamp = self._clock()
        stamped = [self.stamp(p, timestamp) for p in points]
        return [
            MetricBatch(namespace=self.namespace, points=group)
            for group in chunk(stamped, self.batch_size)
        ]

    async def send_counts(
        self,
        points: Sequence[MetricPoint],
        context: Span | None = None,
    ) -> None:
        """Send all points, waiting for every batch.

        Raises:
            SinkError: If any batch fails; the other batches still run to
                completion but the call fails as a whole.
        """
        if not points:
            return
        batches = self.batches(points)
        with span(context, "sendMetrics") as sub:
            if sub is not None:
                sub.add_metadata("metricsParams", batches)
            results = await asyncio.gather(
                *(self._sink.put_batch(batch) for batch in batches),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result
        logger.info(
            "Dispatched %d metric points in %d batches (%s)",
            len(points),
            len(batches),
            ", ".join(f"{p.name}={p.value:g}" for p in points),
        )
