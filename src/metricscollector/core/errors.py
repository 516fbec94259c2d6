"""Error taxonomy for the metrics pipeline.

Adapters translate library exceptions into these types so the orchestrator
can turn any of them into a batch-wide ProcessingFailed outcome.
"""


class MetricsCollectorError(Exception):
    """Base class for failures of a batch-processing pass."""


class DecodeError(MetricsCollectorError):
    """A raw input record could not be decoded into a LogBatch."""


class StoreError(MetricsCollectorError):
    """A counting-store request failed, including mid-pagination failures."""


class SinkError(MetricsCollectorError):
    """A metric batch could not be delivered after the sink's retries."""


class PatternError(MetricsCollectorError):
    """A log-message pattern could not be compiled."""
