"""Tests for PatternCounter and ServiceClassifier."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from metricscollector.core.errors import PatternError
from metricscollector.core.models import LogLine
from metricscollector.core.patterns import PatternCounter, ServiceClassifier


def _lines(*messages: str) -> list[LogLine]:
    return [LogLine(id=str(i), timestamp=i, message=m) for i, m in enumerate(messages)]


class TestPatternCounter:
    """Tests for PatternCounter.count()."""

    @pytest.mark.core
    def test_counts_timeout_lines(self) -> None:
        """Lines containing the timeout phrase are counted."""
        counter = PatternCounter()
        lines = _lines(
            "[ERROR] Task timed out after 30.03 seconds",
            "[ERROR] Fatal error",
            "2024-05-01 Task timed out",
        )
        assert counter.count(lines) == 2

    @pytest.mark.core
    def test_no_match_returns_zero(self) -> None:
        """A batch without timeouts counts zero."""
        counter = PatternCounter()
        assert counter.count(_lines("[ERROR] Fatal error")) == 0

    @pytest.mark.core
    def test_empty_input_returns_zero(self) -> None:
        assert PatternCounter().count([]) == 0

    @pytest.mark.core
    def test_matching_is_case_sensitive(self) -> None:
        """Differently cased phrases do not match."""
        counter = PatternCounter()
        assert counter.count(_lines("task timed out", "TASK TIMED OUT")) == 0

    @pytest.mark.core
    def test_non_string_message_does_not_match(self) -> None:
        """Malformed lines are skipped rather than failing."""
        counter = PatternCounter()
        bad = LogLine(id="x", timestamp=0, message=None)  # type: ignore[arg-type]
        assert counter.count([bad, *_lines("Task timed out")]) == 1

    @pytest.mark.core
    def test_custom_pattern(self) -> None:
        counter = PatternCounter(r"Runtime\.ExitError")
        assert counter.count(_lines("Runtime.ExitError", "RuntimeXExitError")) == 1

    @pytest.mark.core
    def test_invalid_pattern_raises_pattern_error(self) -> None:
        with pytest.raises(PatternError, match="invalid pattern"):
            PatternCounter("(unclosed")

    @pytest.mark.core
    @given(st.lists(st.text(max_size=40)))
    def test_count_equals_substring_matches(self, messages: list[str]) -> None:
        """The count equals the number of messages containing the phrase."""
        counter = PatternCounter()
        expected = sum(1 for m in messages if "Task timed out" in m)
        assert counter.count(_lines(*messages)) == expected

    @pytest.mark.core
    @given(st.lists(st.sampled_from(["Task timed out", "ok", "x Task timed out y"])))
    def test_count_with_frequent_matches(self, messages: list[str]) -> None:
        counter = PatternCounter()
        assert counter.count(_lines(*messages)) == sum(
            1 for m in messages if m != "ok"
        )


class TestServiceClassifier:
    """Tests for ServiceClassifier.is_activity()."""

    @pytest.mark.core
    @pytest.mark.parametrize(
        "log_group",
        [
            "/aws/lambda/activities-develop",
            "/aws/lambda/activities-cvsb-1234",
            "/aws/lambda/activities-prod_eu",
        ],
    )
    def test_activity_log_groups_match(self, log_group: str) -> None:
        assert ServiceClassifier().is_activity(log_group)

    @pytest.mark.core
    @pytest.mark.parametrize(
        "log_group",
        [
            "testLogGroup",
            "/aws/lambda/activities-",
            "/aws/lambda/test-results-develop",
            "prefix/aws/lambda/activities-develop",
        ],
    )
    def test_other_log_groups_do_not_match(self, log_group: str) -> None:
        assert not ServiceClassifier().is_activity(log_group)

    @pytest.mark.core
    def test_custom_prefix(self) -> None:
        classifier = ServiceClassifier("/ecs/visits.")
        assert classifier.is_activity("/ecs/visits.staging")
        assert not classifier.is_activity("/ecs/visitsXstaging")
