"""Lightweight diagnostic spans.

A span collects metadata and errors for one operation. Every core operation
accepts an optional parent span; passing None disables tracing without
changing behavior.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Span:
    """A named, timed unit of work with attached diagnostics.

    Attributes:
        name: Operation name (e.g., "getVisits").
        metadata: Arbitrary key/value diagnostics.
        errors: Exceptions recorded against this span.
        children: Sub-spans opened from this span.
    """

    name: str
    metadata: dict[str, Any] = field(default_factory=dict)
    errors: list[BaseException] = field(default_factory=list)
    children: list["Span"] = field(default_factory=list)
    started_at: float = field(default_factory=time.perf_counter)
    ended_at: float | None = None

    def child(self, name: str) -> "Span":
        """Open a sub-span."""
        sub = Span(name)
        self.children.append(sub)
        return sub

    def add_metadata(self, key: str, value: Any) -> None:
        self.metadata[key] = value

    def add_error(self, error: BaseException) -> None:
        self.errors.append(error)

    def close(self) -> None:
        if self.ended_at is None:
            self.ended_at = time.perf_counter()

    @property
    def closed(self) -> bool:
        return self.ended_at is not None

    @property
    def elapsed(self) -> float | None:
        """Seconds between open and close, or None while still open."""
        if self.ended_at is None:
            return None
        return self.ended_at - self.started_at

    def find(self, name: str) -> "Span | None":
        """Depth-first search for a descendant span by name."""
        for sub in self.children:
            if sub.name == name:
                return sub
            found = sub.find(name)
            if found is not None:
                return found
        return None


@contextmanager
def span(parent: Span | None, name: str) -> Iterator[Span | None]:
    """Open a child span of ``parent`` for the duration of the block.

    Yields None when no parent is given. Exceptions raised inside the block
    are recorded on the span and re-raised.
    """
    if parent is None:
        yield None
        return
    sub = parent.child(name)
    try:
        yield sub
    except Exception as exc:
        sub.add_error(exc)
        raise
    finally:
        sub.close()
