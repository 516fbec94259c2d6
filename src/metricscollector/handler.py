"""Transformation-event entry point.

The handler only derives metrics; every record is returned unchanged with
result ``Ok`` or ``ProcessingFailed``.
"""

import asyncio
from datetime import timedelta
from typing import Any

from metricscollector.adapters.codec import GzipJsonDecoder
from metricscollector.adapters.logging import configure_logging, get_logger
from metricscollector.adapters.sinks.http import HttpMetricsSink
from metricscollector.adapters.sinks.sqlite import SQLiteMetricsSink
from metricscollector.adapters.storage.sqlite import SQLiteCountingStore
from metricscollector.config import Settings, get_settings
from metricscollector.core.dispatch import MetricDispatcher
from metricscollector.core.models import InputRecord
from metricscollector.core.orchestrator import BatchOrchestrator
from metricscollector.core.patterns import PatternCounter, ServiceClassifier
from metricscollector.core.ports import CountingStorePort, MetricsSinkPort
from metricscollector.core.scan import SegmentedCounter
from metricscollector.core.tracing import Span
from metricscollector.core.visits import VisitAggregator

logger = get_logger(__name__)


def default_store(settings: Settings) -> SQLiteCountingStore:
    return SQLiteCountingStore(
        settings.activities_db_path,
        table=settings.activities_table,
        page_size=settings.scan_page_size,
    )


def default_sink(settings: Settings) -> HttpMetricsSink | SQLiteMetricsSink:
    """HTTP sink when an endpoint is configured, SQLite sink otherwise."""
    if settings.metrics_endpoint:
        return HttpMetricsSink(settings.metrics_endpoint)
    return SQLiteMetricsSink(settings.metrics_db_path)


def create_orchestrator(
    settings: Settings,
    store: CountingStorePort | None = None,
    sink: MetricsSinkPort | None = None,
) -> BatchOrchestrator:
    """Wire a BatchOrchestrator from settings.

    Args:
        settings: Deployment settings.
        store: Counting store; defaults to ``default_store(settings)``.
        sink: Metrics sink; defaults to ``default_sink(settings)``.
    """
    if store is None:
        store = default_store(settings)
    if sink is None:
        sink = default_sink(settings)
    aggregator = VisitAggregator(
        SegmentedCounter(store, segments=settings.scan_segments),
        stale_after=timedelta(hours=settings.stale_after_hours),
    )
    dispatcher = MetricDispatcher(
        sink,
        environment=settings.environment,
        namespace=settings.metrics_namespace,
    )
    return BatchOrchestrator(
        decoder=GzipJsonDecoder(),
        aggregator=aggregator,
        dispatcher=dispatcher,
        pattern_counter=PatternCounter(settings.timeout_pattern),
        classifier=ServiceClassifier(settings.activity_log_group_prefix),
    )


async def handle_event(
    event: dict[str, Any],
    orchestrator: BatchOrchestrator,
    context: Span | None = None,
) -> dict[str, Any]:
    """Process a transformation event and build its result document.

    Args:
        event: ``{"records": [{"recordId": ..., "data": ...}, ...]}``.
        orchestrator: Pipeline to run.
        context: Optional parent tracing span.

    Returns:
        ``{"records": [{"recordId", "result", "data"}, ...]}`` in input order.
    """
    records = [
        InputRecord(record_id=r["recordId"], data=r["data"])
        for r in event.get("records", [])
    ]
    outcomes = await orchestrator.process_batch(records, context=context)
    return {
        "records": [
            {"recordId": o.record_id, "result": str(o.status), "data": o.data}
            for o in outcomes
        ]
    }


async def _handle_with_defaults(
    event: dict[str, Any], settings: Settings, root: Span
) -> dict[str, Any]:
    store = default_store(settings)
    sink = default_sink(settings)
    try:
        orchestrator = create_orchestrator(settings, store=store, sink=sink)
        return await handle_event(event, orchestrator, root)
    finally:
        await store.close()
        if isinstance(sink, HttpMetricsSink):
            await sink.aclose()
        else:
            await sink.close()


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Synchronous entry point for the stream trigger."""
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.debug("context: %r", context)
    root = Span("metricsCollector")
    try:
        return asyncio.run(_handle_with_defaults(event, settings, root))
    finally:
        root.close()
