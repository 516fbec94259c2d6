"""Codec for CloudWatch Logs subscription payloads.

Records arrive base64-encoded, gzip-compressed JSON documents of the form::

    {"messageType": "DATA_MESSAGE", "logGroup": "...", "logStream": "...",
     "logEvents": [{"id": "...", "timestamp": 0, "message": "..."}]}
"""

import asyncio
import base64
import binascii
import gzip
import json
import zlib
from typing import Any

from metricscollector.core.errors import DecodeError
from metricscollector.core.models import LogBatch, LogLine


def _parse_events(raw_events: Any) -> tuple[LogLine, ...]:
    if not isinstance(raw_events, list):
        raise DecodeError("logEvents must be a list")
    events = []
    for raw in raw_events:
        if not isinstance(raw, dict):
            raise DecodeError("log event must be an object")
        events.append(
            LogLine(
                id=str(raw.get("id", "")),
                timestamp=int(raw.get("timestamp", 0)),
                message=raw.get("message", ""),
            )
        )
    return tuple(events)


def parse_log_batch(document: Any) -> LogBatch:
    """Build a LogBatch from a decoded subscription document.

    Raises:
        DecodeError: If required fields are missing or mistyped.
    """
    if not isinstance(document, dict):
        raise DecodeError("payload must be a JSON object")
    log_group = document.get("logGroup")
    if not isinstance(log_group, str):
        raise DecodeError("payload has no logGroup")
    try:
        events = _parse_events(document.get("logEvents", []))
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"malformed log event: {exc}") from exc
    return LogBatch(
        service_group_id=log_group,
        events=events,
        log_stream=str(document.get("logStream", "")),
        message_type=str(document.get("messageType", "DATA_MESSAGE")),
    )


def _decompress(payload: bytes) -> bytes:
    return gzip.decompress(payload)


class GzipJsonDecoder:
    """Decodes base64 gzip JSON log payloads into LogBatch objects.

    Decompression runs in a worker thread so large payloads do not block
    the event loop.
    """

    async def decode(self, raw: bytes | str) -> LogBatch:
        """Decode one record.

        Raises:
            DecodeError: On invalid base64, gzip, UTF-8, JSON or payload
                shape.
        """
        try:
            compressed = base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise DecodeError(f"invalid base64 payload: {exc}") from exc
        try:
            inflated = await asyncio.to_thread(_decompress, compressed)
        except (OSError, EOFError, zlib.error) as exc:
            raise DecodeError(f"invalid gzip payload: {exc}") from exc
        try:
            document = json.loads(inflated.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise DecodeError(f"invalid JSON payload: {exc}") from exc
        return parse_log_batch(document)


def encode_log_batch(batch: LogBatch, owner: str = "000000000000") -> str:
    """Encode a LogBatch as a base64 gzip JSON payload.

    Args:
        batch: Batch to encode.
        owner: Account id recorded in the payload.

    Returns:
        Base64 text suitable as a transformation-event record's data.
    """
    document = {
        "messageType": batch.message_type,
        "owner": owner,
        "logGroup": batch.service_group_id,
        "logStream": batch.log_stream,
        "subscriptionFilters": [],
        "logEvents": [
            {"id": e.id, "timestamp": e.timestamp, "message": e.message}
            for e in batch.events
        ],
    }
    compressed = gzip.compress(json.dumps(document).encode("utf-8"))
    return base64.b64encode(compressed).decode("ascii")
