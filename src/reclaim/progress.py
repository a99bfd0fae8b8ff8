"""Progress reporting channels and cooperative cancellation."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Iterator

_CLOSED = object()


@dataclass(frozen=True, slots=True)
class ProgressReport:
    """Snapshot of an operation's progress.

    Attributes:
        operation: Name of the reporting operation (``scan`` or ``duplicates``).
        processed: Items processed so far.
        total: Estimated or known total item count.
        percentage: Completion percentage clamped to 0..100.
    """

    operation: str
    processed: int
    total: int
    percentage: int

    @classmethod
    def compute(cls, operation: str, processed: int, total: int) -> ProgressReport:
        """Build a report, deriving and clamping the percentage."""
        percentage = round(processed * 100 / total) if total > 0 else 0
        return cls(operation, processed, total, max(0, min(100, percentage)))

    @classmethod
    def complete(cls, operation: str, processed: int, total: int) -> ProgressReport:
        """Build the terminal 100% report."""
        return cls(operation, processed, max(processed, total), 100)


class ProgressChannel:
    """One progress stream per operation invocation.

    Producers call :meth:`publish` and finally :meth:`close`. Consumers either
    iterate (blocking until the channel closes) or call :meth:`poll` to drain
    whatever has been published so far. The queue is unbounded, so reports are
    never dropped.
    """

    def __init__(self) -> None:
        self._queue: queue.Queue[object] = queue.Queue()
        self._closed = threading.Event()
        self._last_percentage = 0

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def publish(self, report: ProgressReport) -> None:
        """Queue a report; percentages never go backwards within one channel."""
        if self._closed.is_set():
            raise RuntimeError("Cannot publish to a closed progress channel.")
        if report.percentage < self._last_percentage:
            report = ProgressReport(
                report.operation, report.processed, report.total, self._last_percentage
            )
        self._last_percentage = report.percentage
        self._queue.put(report)

    def close(self) -> None:
        """Mark the stream finished; idempotent."""
        if not self._closed.is_set():
            self._closed.set()
            self._queue.put(_CLOSED)

    def poll(self) -> list[ProgressReport]:
        """Return every report published so far without blocking."""
        reports: list[ProgressReport] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                return reports
            if item is _CLOSED:
                # Keep the sentinel for blocking consumers.
                self._queue.put(_CLOSED)
                return reports
            reports.append(item)  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[ProgressReport]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return
            yield item  # type: ignore[misc]


class CancellationToken:
    """Cooperative cancellation flag checked at every suspension point."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def is_cancelled(token: CancellationToken | None) -> bool:
    """Return True when a token was supplied and has been cancelled."""
    return token is not None and token.cancelled


__all__ = ["ProgressReport", "ProgressChannel", "CancellationToken", "is_cancelled"]
