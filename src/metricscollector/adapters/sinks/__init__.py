"""Metrics sink adapters implementing MetricsSinkPort."""

from metricscollector.adapters.sinks.http import HttpMetricsSink
from metricscollector.adapters.sinks.in_memory import InMemoryMetricsSink
from metricscollector.adapters.sinks.sqlite import SQLiteMetricsSink

__all__ = ["HttpMetricsSink", "InMemoryMetricsSink", "SQLiteMetricsSink"]
