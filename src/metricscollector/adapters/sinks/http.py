"""HTTP metrics sink.

Posts each batch as a JSON document shaped like a PutMetricData request::

    {"Namespace": "CVS", "MetricData": [{"MetricName": "Timeouts",
      "Dimensions": [{"Name": "Environment", "Value": "develop"}],
      "Timestamp": "2024-01-01T00:00:00.000Z", "Value": 0.0, "Unit": "Count"}]}
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

import httpx

from metricscollector.core.errors import SinkError
from metricscollector.core.models import MetricBatch, MetricPoint
from metricscollector.core.visits import to_store_timestamp

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


def encode_point(point: MetricPoint) -> dict[str, Any]:
    """Encode a MetricPoint as one MetricData entry."""
    entry: dict[str, Any] = {
        "MetricName": point.name,
        "Dimensions": [{"Name": k, "Value": v} for k, v in point.dimensions],
        "Value": point.value,
        "Unit": point.unit,
    }
    if point.timestamp is not None:
        entry["Timestamp"] = to_store_timestamp(
            datetime.fromtimestamp(point.timestamp, UTC)
        )
    return entry


def encode_batch(batch: MetricBatch) -> dict[str, Any]:
    return {
        "Namespace": batch.namespace,
        "MetricData": [encode_point(p) for p in batch.points],
    }


class HttpMetricsSink:
    """MetricsSinkPort implementation over HTTP using httpx.

    Transport errors and 429/5xx responses are retried with exponential
    backoff, starting at ``backoff_base`` seconds and doubling per retry.
    Other error responses fail immediately.
    """

    def __init__(
        self,
        endpoint: str,
        client: httpx.AsyncClient | None = None,
        max_attempts: int = 3,
        backoff_base: float = 0.5,
        timeout: float = 10.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the sink.

        Args:
            endpoint: URL the batches are posted to.
            client: Shared client; one is created and owned otherwise.
            max_attempts: Total attempts per batch, including the first.
            backoff_base: Delay before the first retry, in seconds.
            timeout: Per-request timeout in seconds.
            sleep: Awaitable used between attempts.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.endpoint = endpoint
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self._sleep = sleep

    async def put_batch(self, batch: MetricBatch) -> None:
        """Post one batch, retrying transient failures.

        Raises:
            SinkError: If the batch is rejected or attempts are exhausted.
        """
        body = encode_batch(batch)
        last_error = ""
        for attempt in range(self.max_attempts):
            if attempt:
                await self._sleep(self.backoff_base * 2 ** (attempt - 1))
            try:
                response = await self._client.post(self.endpoint, json=body)
            except httpx.TransportError as exc:
                last_error = f"{type(exc).__name__}: {exc}"
                logger.warning(
                    "Metric batch attempt %d/%d failed: %s",
                    attempt + 1,
                    self.max_attempts,
                    last_error,
                )
                continue
            if response.is_success:
                return
            last_error = f"HTTP {response.status_code}"
            if response.status_code not in _RETRYABLE_STATUS:
                raise SinkError(f"metrics endpoint rejected batch: {last_error}")
            logger.warning(
                "Metric batch attempt %d/%d failed: %s",
                attempt + 1,
                self.max_attempts,
                last_error,
            )
        raise SinkError(
            f"metric batch failed after {self.max_attempts} attempts: {last_error}"
        )

    async def aclose(self) -> None:
        """Close the HTTP client if this sink created it."""
        if self._owns_client:
            await self._client.aclose()
