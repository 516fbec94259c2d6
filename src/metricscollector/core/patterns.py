"""Log-message pattern matching and log-group classification."""

import re
from collections.abc import Iterable

from metricscollector.core.errors import PatternError
from metricscollector.core.models import LogLine

TIMEOUT_PATTERN = "Task timed out"
ACTIVITY_LOG_GROUP_PREFIX = "/aws/lambda/activities-"


class PatternCounter:
    """Counts log lines whose message contains a fixed pattern.

    Matching is a case-sensitive regular-expression search, so a plain
    phrase behaves as "message contains phrase".
    """

    def __init__(self, pattern: str = TIMEOUT_PATTERN) -> None:
        try:
            self._regex = re.compile(pattern)
        except re.error as exc:
            raise PatternError(f"invalid pattern {pattern!r}: {exc}") from exc
        self.pattern = pattern

    def matches(self, line: LogLine) -> bool:
        message = getattr(line, "message", None)
        if not isinstance(message, str):
            return False
        return self._regex.search(message) is not None

    def count(self, lines: Iterable[LogLine]) -> int:
        """Return the number of lines matching the pattern (0 for none)."""
        return sum(1 for line in lines if self.matches(line))


class ServiceClassifier:
    """Decides whether a log group belongs to the activity service.

    A log group matches when it starts with ``prefix`` followed by an
    environment qualifier, e.g. ``/aws/lambda/activities-develop``.
    """

    def __init__(self, prefix: str = ACTIVITY_LOG_GROUP_PREFIX) -> None:
        self.prefix = prefix
        self._regex = re.compile(re.escape(prefix) + r"[\w-]+")

    def is_activity(self, service_group_id: str) -> bool:
        return self._regex.match(service_group_id) is not None
