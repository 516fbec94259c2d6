"""
metricscollector/config.py

Runtime configuration read from environment variables.
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from metricscollector.core.patterns import ACTIVITY_LOG_GROUP_PREFIX, TIMEOUT_PATTERN
from metricscollector.core.scan import default_segments


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.") from None
    if value < 1:
        raise RuntimeError(f"{name} must be at least 1, got {value}.")
    return value


@dataclass(frozen=True)
class Settings:
    """
    Deployment settings for one process.

    ``environment`` is the deployment identity attached to every metric.
    """

    environment: str
    activities_table: str
    activities_db_path: str
    metrics_db_path: str
    metrics_endpoint: str | None
    metrics_namespace: str
    scan_segments: int
    scan_page_size: int
    stale_after_hours: int
    activity_log_group_prefix: str
    timeout_pattern: str
    log_level: str


def load_settings() -> Settings:
    """
    Build Settings from the current environment.
    """

    environment = (os.getenv("BRANCH") or "local").strip().lower()
    return Settings(
        environment=environment,
        activities_table=(
            os.getenv("ACTIVITIES_TABLE") or f"cvs-{environment}-activities"
        ),
        activities_db_path=os.getenv("ACTIVITIES_DB_PATH") or "activities.db",
        metrics_db_path=os.getenv("METRICS_DB_PATH") or "metrics.db",
        metrics_endpoint=os.getenv("METRICS_ENDPOINT") or None,
        metrics_namespace=os.getenv("METRICS_NAMESPACE") or "CVS",
        scan_segments=_int_env("SCAN_SEGMENTS", default_segments()),
        scan_page_size=_int_env("SCAN_PAGE_SIZE", 100),
        stale_after_hours=_int_env("STALE_AFTER_HOURS", 10),
        activity_log_group_prefix=(
            os.getenv("ACTIVITY_LOG_GROUP_PREFIX") or ACTIVITY_LOG_GROUP_PREFIX
        ),
        timeout_pattern=os.getenv("TIMEOUT_PATTERN") or TIMEOUT_PATTERN,
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return process-wide settings, read once.
    """

    return load_settings()
