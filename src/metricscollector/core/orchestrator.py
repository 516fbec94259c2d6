"""Per-invocation orchestration of decode, aggregation and dispatch."""

import logging
from collections.abc import Sequence

from metricscollector.core.dispatch import MetricDispatcher
from metricscollector.core.errors import MetricsCollectorError
from metricscollector.core.metrics import timeout_point, visit_points
from metricscollector.core.models import (
    InputRecord,
    LogBatch,
    MetricPoint,
    RecordOutcome,
    RecordStatus,
)
from metricscollector.core.patterns import PatternCounter, ServiceClassifier
from metricscollector.core.ports import DecoderPort
from metricscollector.core.tasks import run_all
from metricscollector.core.tracing import Span, span
from metricscollector.core.visits import VisitAggregator

logger = logging.getLogger(__name__)


class BatchOrchestrator:
    """Turns one batch of log records into visit and timeout metrics.

    The input records are never altered: each is acknowledged with its
    original data, either all Ok or, when any step fails, all
    ProcessingFailed.
    """

    def __init__(
        self,
        decoder: DecoderPort,
        aggregator: VisitAggregator,
        dispatcher: MetricDispatcher,
        pattern_counter: PatternCounter | None = None,
        classifier: ServiceClassifier | None = None,
    ) -> None:
        self._decoder = decoder
        self._aggregator = aggregator
        self._dispatcher = dispatcher
        self._pattern_counter = pattern_counter or PatternCounter()
        self._classifier = classifier or ServiceClassifier()

    async def process_batch(
        self,
        records: Sequence[InputRecord],
        context: Span | None = None,
    ) -> list[RecordOutcome]:
        """Process every record and return one outcome per record, in order.

        Args:
            records: Records as delivered by the stream.
            context: Optional parent tracing span.

        Returns:
            Outcomes with the same length and order as ``records``.
        """
        if not records:
            return []
        try:
            await self._run(records, context)
        except MetricsCollectorError as exc:
            logger.exception("Batch of %d records failed", len(records))
            logger.info(
                "Failed records: %s", ", ".join(r.record_id for r in records)
            )
            if context is not None:
                context.add_error(exc)
            return _outcomes(records, RecordStatus.PROCESSING_FAILED)
        return _outcomes(records, RecordStatus.OK)

    async def _run(self, records: Sequence[InputRecord], context: Span | None) -> None:
        with span(context, "decodeEvent") as sub:
            batches: list[LogBatch] = list(
                await run_all(self._decoder.decode(r.data) for r in records)
            )
            if sub is not None:
                sub.add_metadata("decodedEvent", batches)

        points: list[MetricPoint] = []
        # Visit metrics are collected once per invocation at most.
        visits_collected = False
        for batch in batches:
            if not visits_collected and self._classifier.is_activity(
                batch.service_group_id
            ):
                with span(context, "getVisits") as sub:
                    counts = await self._aggregator.collect(context=sub)
                visits_collected = True
                logger.info(
                    "visits: %d, oldVisits: %d, openVisits: %d",
                    counts.visits_today,
                    counts.stale_open_visits,
                    counts.open_visits,
                )
                points.extend(visit_points(counts))

            timeouts = self._pattern_counter.count(batch.events)
            logger.info("%s: %d", batch.service_group_id, timeouts)
            points.append(timeout_point(batch.service_group_id, timeouts))

        await self._dispatcher.send_counts(points, context=context)


def _outcomes(
    records: Sequence[InputRecord], status: RecordStatus
) -> list[RecordOutcome]:
    return [RecordOutcome(r.record_id, status, r.data) for r in records]
