"""Visit and timeout metrics derived from streamed CloudWatch log batches."""

from metricscollector.adapters.logging import get_logger
from metricscollector.core.models import (
    InputRecord,
    LogBatch,
    LogLine,
    MetricPoint,
    RecordOutcome,
    RecordStatus,
    VisitCounts,
)
from metricscollector.core.orchestrator import BatchOrchestrator

__all__ = [
    "BatchOrchestrator",
    "InputRecord",
    "LogBatch",
    "LogLine",
    "MetricPoint",
    "RecordOutcome",
    "RecordStatus",
    "VisitCounts",
    "get_logger",
]
