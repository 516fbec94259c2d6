"""BDD step definitions for the metrics collection pipeline."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from metricscollector.adapters.codec import GzipJsonDecoder
from metricscollector.adapters.sinks.in_memory import InMemoryMetricsSink
from metricscollector.adapters.storage.in_memory import InMemoryCountingStore
from metricscollector.core.dispatch import MetricDispatcher
from metricscollector.core.errors import StoreError
from metricscollector.core.models import (
    FilterExpression,
    InputRecord,
    RecordOutcome,
    ScanPage,
    ScanQuery,
)
from metricscollector.core.orchestrator import BatchOrchestrator
from metricscollector.core.ports import CountingStorePort
from metricscollector.core.scan import SegmentedCounter
from metricscollector.core.visits import VisitAggregator
from tests.fakes import (
    ACTIVITY_ITEMS,
    FIXED_NOW,
    FIXED_TIMESTAMP,
    ScriptedStore,
    paged,
)

MakeRecord = Callable[..., InputRecord]


@dataclass
class PipelineScenarioContext:
    """State shared between the steps of one scenario."""

    store: CountingStorePort | None = None
    sink: InMemoryMetricsSink = field(default_factory=InMemoryMetricsSink)
    records: list[InputRecord] = field(default_factory=list)
    outcomes: list[RecordOutcome] = field(default_factory=list)
    total: int | None = None


def run_async(coro: Any) -> Any:
    """Run a coroutine synchronously."""
    return asyncio.run(coro)


@pytest.fixture
def ctx() -> PipelineScenarioContext:
    """Fresh scenario context for each test."""
    return PipelineScenarioContext()


def _add_record(
    ctx: PipelineScenarioContext, make_record: MakeRecord, group: str, lines: list[str]
) -> None:
    ctx.records.append(
        make_record(group, lines, record_id=f"record-{len(ctx.records) + 1}")
    )


# === Store Steps ===
@given("an activity store holding the sample visits")
def step_sample_store(ctx: PipelineScenarioContext) -> None:
    ctx.store = InMemoryCountingStore(ACTIVITY_ITEMS, page_size=1)


@given(
    parsers.parse(
        "an activity store that fails on page {page:d} of segment {segment:d}"
    )
)
def step_failing_store(ctx: PipelineScenarioContext, page: int, segment: int) -> None:
    script = paged([1] * (page - 1) + [None])
    script[page - 1] = StoreError(f"segment {segment} throttled")
    ctx.store = ScriptedStore({segment: script})


@given(
    parsers.parse(
        'an activity store with page counts "{first}" in segment 0 '
        'and "{second}" in segment 1'
    )
)
def step_scripted_store(ctx: PipelineScenarioContext, first: str, second: str) -> None:
    ctx.store = ScriptedStore(
        {
            0: paged([int(c) for c in first.split(",")]),
            1: paged([int(c) for c in second.split(",")]),
        }
    )


# === Record Steps ===
@given(parsers.parse('a record from "{group}" with {n:d} ordinary lines'))
def step_ordinary_record(
    ctx: PipelineScenarioContext, make_record: MakeRecord, group: str, n: int
) -> None:
    _add_record(ctx, make_record, group, [f"[INFO] request {i} done" for i in range(n)])


@given(parsers.parse('a record from "{group}" with {n:d} timeout lines'))
def step_timeout_record(
    ctx: PipelineScenarioContext, make_record: MakeRecord, group: str, n: int
) -> None:
    lines = [
        f"2024-05-01T12:00:0{i}Z abc Task timed out after 6.01 seconds"
        for i in range(n)
    ]
    _add_record(ctx, make_record, group, lines)


@given(parsers.parse('a record from "{group}" with no lines'))
def step_empty_record(
    ctx: PipelineScenarioContext, make_record: MakeRecord, group: str
) -> None:
    _add_record(ctx, make_record, group, [])


@given(parsers.parse('{n:d} records from "{group}" with no lines'))
def step_empty_records(
    ctx: PipelineScenarioContext, make_record: MakeRecord, n: int, group: str
) -> None:
    for _ in range(n):
        _add_record(ctx, make_record, group, [])


@given("a record whose data is not base64")
def step_malformed_record(ctx: PipelineScenarioContext) -> None:
    ctx.records.append(InputRecord(record_id="malformed", data="not*base64!"))


# === Action Steps ===
@when("the batch is processed")
def step_process(ctx: PipelineScenarioContext) -> None:
    assert ctx.store is not None
    orchestrator = BatchOrchestrator(
        GzipJsonDecoder(),
        VisitAggregator(
            SegmentedCounter(ctx.store, segments=4), clock=lambda: FIXED_NOW
        ),
        MetricDispatcher(
            ctx.sink, environment="develop", clock=lambda: FIXED_TIMESTAMP
        ),
    )
    ctx.outcomes = run_async(orchestrator.process_batch(ctx.records))


@when(parsers.parse("everything in the store is counted across {n:d} segments"))
def step_count(ctx: PipelineScenarioContext, n: int) -> None:
    assert ctx.store is not None
    counter = SegmentedCounter(ctx.store, segments=n)
    ctx.total = run_async(counter.count(ScanQuery(FilterExpression())))


# === Assertion Steps ===
@then(parsers.parse('every record is acknowledged as "{status}"'))
def step_all_status(ctx: PipelineScenarioContext, status: str) -> None:
    assert [o.record_id for o in ctx.outcomes] == [r.record_id for r in ctx.records]
    assert {str(o.status) for o in ctx.outcomes} == {status}
    assert [o.data for o in ctx.outcomes] == [r.data for r in ctx.records]


@then("the activity store was not scanned")
def step_not_scanned(ctx: PipelineScenarioContext) -> None:
    assert isinstance(ctx.store, InMemoryCountingStore)
    assert ctx.store.requests == []


@then(parsers.parse('the "{name}" metric for "{service}" is {value:d}'))
def step_service_metric(
    ctx: PipelineScenarioContext, name: str, service: str, value: int
) -> None:
    matching = [
        p
        for p in ctx.sink.points
        if p.name == name and p.dimension("Service") == service
    ]
    assert [p.value for p in matching] == [value]


@then(parsers.parse('the "{name}" metric is reported once with value {value:d}'))
def step_metric_once(ctx: PipelineScenarioContext, name: str, value: int) -> None:
    assert [p.value for p in ctx.sink.points if p.name == name] == [value]


@then(parsers.parse('every metric carries the "{environment}" environment'))
def step_environment(ctx: PipelineScenarioContext, environment: str) -> None:
    assert ctx.sink.points
    assert {p.dimension("Environment") for p in ctx.sink.points} == {environment}


@then("no metrics were sent")
def step_no_metrics(ctx: PipelineScenarioContext) -> None:
    assert ctx.sink.batches == []


@then(parsers.parse("the total count is {total:d}"))
def step_total(ctx: PipelineScenarioContext, total: int) -> None:
    assert ctx.total == total
