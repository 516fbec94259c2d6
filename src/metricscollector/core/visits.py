"""Visit statistics computed from the activities store."""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from metricscollector.core.models import (
    Condition,
    FilterExpression,
    ScanQuery,
    VisitCounts,
)
from metricscollector.core.scan import SegmentedCounter
from metricscollector.core.tasks import run_all
from metricscollector.core.tracing import Span, span

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(hours=10)


def utc_now() -> datetime:
    return datetime.now(UTC)


def to_store_timestamp(moment: datetime) -> str:
    """Format a datetime the way the activities store records it.

    The store keeps times as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` strings in UTC and
    range predicates rely on their lexical order, so this exact shape must
    be used for comparison values.

    Args:
        moment: Timezone-aware datetime. Naive values are taken as UTC.

    Returns:
        ISO-8601 string with millisecond precision and a trailing ``Z``.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    moment = moment.astimezone(UTC)
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{moment.microsecond // 1000:03d}Z"


def start_of_day(moment: datetime) -> datetime:
    """Midnight UTC of the day containing ``moment``."""
    return moment.astimezone(UTC).replace(hour=0, minute=0, second=0, microsecond=0)


class VisitAggregator:
    """Builds visit predicates and counts them with a SegmentedCounter."""

    def __init__(
        self,
        counter: SegmentedCounter,
        activity_type: str = "visit",
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._counter = counter
        self.activity_type = activity_type
        self.stale_after = stale_after
        self._clock = clock

    def _is_visit(self) -> Condition:
        return Condition("activityType", "=", self.activity_type)

    async def _count(
        self, name: str, predicate: FilterExpression, context: Span | None
    ) -> int:
        with span(context, name) as sub:
            if sub is not None:
                sub.add_metadata("predicate", predicate)
            return await self._counter.count(ScanQuery(predicate), context=sub)

    async def visits_today(self, context: Span | None = None) -> int:
        """Number of visits started since 00:00 UTC today."""
        midnight = start_of_day(self._clock())
        logger.info("Retrieving total visits today")
        predicate = FilterExpression(
            (
                Condition("startTime", ">=", to_store_timestamp(midnight)),
                self._is_visit(),
            )
        )
        result = await self._count("getVisits", predicate, context)
        logger.info("Total visits for %s: %d", midnight.isoformat(), result)
        return result

    async def stale_open_visits(
        self,
        stale_after: timedelta | None = None,
        context: Span | None = None,
    ) -> int:
        """Number of open visits started at least ``stale_after`` ago."""
        if stale_after is None:
            stale_after = self.stale_after
        cutoff = self._clock() - stale_after
        logger.info("Retrieving total open visits older than %s", cutoff.isoformat())
        predicate = FilterExpression(
            (
                Condition("startTime", "<=", to_store_timestamp(cutoff)),
                Condition("endTime", "is_null"),
                self._is_visit(),
            )
        )
        result = await self._count("getOldVisits", predicate, context)
        logger.info("Total old visits older than %s: %d", cutoff.isoformat(), result)
        return result

    async def open_visits(self, context: Span | None = None) -> int:
        """Number of visits with no end time."""
        logger.info("Retrieving total open visits")
        predicate = FilterExpression(
            (Condition("endTime", "is_null"), self._is_visit())
        )
        result = await self._count("getOpenVisits", predicate, context)
        logger.info("Total open visits: %d", result)
        return result

    async def collect(self, context: Span | None = None) -> VisitCounts:
        """Compute all three visit counts concurrently."""
        today, stale, open_ = await run_all(
            [
                self.visits_today(context=context),
                self.stale_open_visits(context=context),
                self.open_visits(context=context),
            ]
        )
        return VisitCounts(
            visits_today=today, stale_open_visits=stale, open_visits=open_
        )
