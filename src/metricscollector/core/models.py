"""Core domain models for the metrics pipeline."""

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

_ATTRIBUTE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

OPERATORS = frozenset({"=", ">=", "<=", "is_null"})


@dataclass(frozen=True)
class LogLine:
    """A single CloudWatch log event.

    Attributes:
        id: Event identifier assigned by the log service.
        timestamp: Event time in epoch milliseconds.
        message: The raw log message.
    """

    id: str
    timestamp: int
    message: str


@dataclass(frozen=True)
class LogBatch:
    """One decoded input record: the events of a single log group.

    Attributes:
        service_group_id: Name of the originating log group.
        events: Log events in delivery order.
        log_stream: Name of the originating log stream.
        message_type: Payload type reported by the log service.
    """

    service_group_id: str
    events: tuple[LogLine, ...] = ()
    log_stream: str = ""
    message_type: str = "DATA_MESSAGE"


@dataclass(frozen=True)
class Condition:
    """A single comparison on a stored item attribute.

    Attributes:
        attribute: Item attribute name (identifier characters only).
        operator: One of "=", ">=", "<=" or "is_null".
        value: Right-hand operand; ignored for "is_null".
    """

    attribute: str
    operator: str
    value: str | int | float | None = None

    def __post_init__(self) -> None:
        if not _ATTRIBUTE_NAME.match(self.attribute):
            raise ValueError(f"invalid attribute name: {self.attribute!r}")
        if self.operator not in OPERATORS:
            raise ValueError(f"unsupported operator: {self.operator!r}")


@dataclass(frozen=True)
class FilterExpression:
    """Conjunction of conditions evaluated by a counting store."""

    conditions: tuple[Condition, ...] = ()

    def matches(self, item: dict[str, Any]) -> bool:
        """Evaluate the expression against a plain item dict.

        Comparisons against a missing or null attribute are false, except
        for "is_null" which is true. Values of different types never match.
        """
        for cond in self.conditions:
            actual = item.get(cond.attribute)
            if cond.operator == "is_null":
                if actual is not None:
                    return False
                continue
            if actual is None or type(actual) is not type(cond.value):
                return False
            if cond.operator == "=" and not actual == cond.value:
                return False
            if cond.operator == ">=" and not actual >= cond.value:
                return False
            if cond.operator == "<=" and not actual <= cond.value:
                return False
        return True


@dataclass(frozen=True)
class ScanQuery:
    """A count-only scan request for one segment of a store.

    Attributes:
        predicate: Filter applied to every scanned item.
        segment_index: Zero-based index of the segment to scan.
        total_segments: Number of segments the scan is split into.
        continuation_token: Opaque cursor from the previous page, if any.
    """

    predicate: FilterExpression
    segment_index: int = 0
    total_segments: int = 1
    continuation_token: Any = None


@dataclass(frozen=True)
class ScanPage:
    """Result of one scan request. A None token ends the segment."""

    count: int | None
    next_token: Any = None


@dataclass(frozen=True)
class VisitCounts:
    """Visit statistics computed once per batch."""

    visits_today: int
    stale_open_visits: int
    open_visits: int

    def __post_init__(self) -> None:
        for name in ("visits_today", "stale_open_visits", "open_visits"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")


@dataclass(frozen=True)
class MetricPoint:
    """A single metric data point.

    Attributes:
        name: Metric name (e.g., Timeouts).
        value: The measured value.
        unit: Backend unit name.
        dimensions: Ordered (key, value) pairs.
        timestamp: Unix timestamp in seconds, set at dispatch time.
    """

    name: str
    value: float
    unit: str = "Count"
    dimensions: tuple[tuple[str, str], ...] = ()
    timestamp: float | None = None

    def dimension(self, key: str) -> str | None:
        """Return the value of a dimension, or None if absent."""
        for name, value in self.dimensions:
            if name == key:
                return value
        return None


@dataclass(frozen=True)
class MetricBatch:
    """Points delivered to the metrics backend in one request."""

    namespace: str
    points: tuple[MetricPoint, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class InputRecord:
    """A transformation-event record as delivered (base64 payload)."""

    record_id: str
    data: str


class RecordStatus(StrEnum):
    OK = "Ok"
    PROCESSING_FAILED = "ProcessingFailed"


@dataclass(frozen=True)
class RecordOutcome:
    """Acknowledgement for one input record, carrying the original data."""

    record_id: str
    status: RecordStatus
    data: str
