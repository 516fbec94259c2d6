"""Metric helper functions for creating MetricPoint objects."""

from metricscollector.core.models import MetricPoint, VisitCounts

VISITS_TODAY = "VisitsToday"
OLD_VISITS = "OldVisits"
OPEN_VISITS = "OpenVisits"
TIMEOUTS = "Timeouts"


def counter(
    name: str,
    value: float,
    dimensions: dict[str, str] | None = None,
) -> MetricPoint:
    """Create a count metric point.

    The point is left unstamped; MetricDispatcher sets the timestamp and
    the Environment dimension when it is sent.

    Args:
        name: Metric name (e.g., "Timeouts")
        value: Counted value
        dimensions: Optional dimensions, kept in insertion order

    Returns:
        MetricPoint with unit "Count"
    """
    return MetricPoint(
        name=name,
        value=float(value),
        unit="Count",
        dimensions=tuple((dimensions or {}).items()),
    )


def visit_points(counts: VisitCounts) -> list[MetricPoint]:
    """Create the three visit metric points for a VisitCounts."""
    return [
        counter(VISITS_TODAY, counts.visits_today),
        counter(OLD_VISITS, counts.stale_open_visits),
        counter(OPEN_VISITS, counts.open_visits),
    ]


def timeout_point(service: str, value: int) -> MetricPoint:
    """Create a Timeouts point tagged with the originating log group."""
    return counter(TIMEOUTS, value, dimensions={"Service": service})
