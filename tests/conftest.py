"""Shared test fixtures for all test modules."""

from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import pytest

from metricscollector.adapters.codec import GzipJsonDecoder, encode_log_batch
from metricscollector.adapters.sinks.in_memory import InMemoryMetricsSink
from metricscollector.adapters.storage.in_memory import InMemoryCountingStore
from metricscollector.core.dispatch import MetricDispatcher
from metricscollector.core.models import InputRecord, LogBatch, LogLine
from metricscollector.core.orchestrator import BatchOrchestrator
from metricscollector.core.scan import SegmentedCounter
from metricscollector.core.visits import VisitAggregator
from tests.fakes import ACTIVITY_ITEMS, FIXED_NOW, FIXED_TIMESTAMP


@pytest.fixture
def db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for SQLite adapter tests."""
    return str(tmp_path / "activities.db")


@pytest.fixture
def metrics_db_path(tmp_path: Path) -> str:
    """Provide a temporary database path for metrics sink tests."""
    return str(tmp_path / "metrics.db")


@pytest.fixture
def make_record() -> Callable[..., InputRecord]:
    """Factory fixture for encoded transformation-event records.

    Usage:
        record = make_record("testLogGroup", ["[ERROR] Task timed out"])
    """

    def _record(
        log_group: str,
        messages: list[str] | tuple[str, ...] = (),
        record_id: str = "record-1",
    ) -> InputRecord:
        batch = LogBatch(
            service_group_id=log_group,
            events=tuple(
                LogLine(id=f"event{i}", timestamp=1440442987000 + i, message=m)
                for i, m in enumerate(messages)
            ),
            log_stream="testLogStream",
        )
        return InputRecord(record_id=record_id, data=encode_log_batch(batch))

    return _record


@pytest.fixture
def activity_store() -> InMemoryCountingStore:
    """In-memory store holding ACTIVITY_ITEMS, one item per page."""
    return InMemoryCountingStore(ACTIVITY_ITEMS, page_size=1)


@pytest.fixture
def metrics_sink() -> InMemoryMetricsSink:
    return InMemoryMetricsSink()


@pytest.fixture
def aggregator(activity_store: InMemoryCountingStore) -> VisitAggregator:
    return VisitAggregator(
        SegmentedCounter(activity_store, segments=2), clock=lambda: FIXED_NOW
    )


@pytest.fixture
def dispatcher(metrics_sink: InMemoryMetricsSink) -> MetricDispatcher:
    return MetricDispatcher(
        metrics_sink, environment="develop", clock=lambda: FIXED_TIMESTAMP
    )


@pytest.fixture
async def orchestrator(
    aggregator: VisitAggregator, dispatcher: MetricDispatcher
) -> AsyncGenerator[BatchOrchestrator]:
    """Orchestrator wired to in-memory store and sink."""
    yield BatchOrchestrator(GzipJsonDecoder(), aggregator, dispatcher)
