"""
Progress tracking for archive builds.

Turns the raw cumulative byte counts emitted by the archive builder into
throttled updates: one per percentage point at most.
"""

from dataclasses import dataclass
from typing import Callable, Optional


REPORT_STEP = 0.01


@dataclass(frozen=True)
class ProgressUpdate:
    """A single progress notification."""
    processed_bytes: int
    total_bytes: int

    @property
    def fraction(self) -> float:
        return self.processed_bytes / self.total_bytes

    @property
    def percent(self) -> int:
        return self.processed_bytes * 100 // self.total_bytes


class ProgressTracker:
    """
    Rate-limits byte progress into fraction updates.

    An update is emitted when the fraction has advanced by at least `step`
    since the last update. The comparison is done on byte counts so that
    float rounding cannot shift the reporting points.

    A tracker with total_bytes == 0 is disabled: it never emits and never
    divides.
    """

    def __init__(
        self,
        total_bytes: int,
        on_update: Optional[Callable[[ProgressUpdate], None]] = None,
        step: float = REPORT_STEP
    ):
        if total_bytes < 0:
            raise ValueError(f"total_bytes must be non-negative: {total_bytes}")

        self.total_bytes = total_bytes
        self.on_update = on_update
        self.step = step
        self.processed_bytes = 0
        self.last_reported_bytes = 0
        self.updates_emitted = 0
        self._threshold = total_bytes * step

    @property
    def enabled(self) -> bool:
        return self.total_bytes > 0

    @property
    def fraction(self) -> float:
        if not self.enabled:
            return 0.0
        return self.processed_bytes / self.total_bytes

    @property
    def last_reported_fraction(self) -> float:
        if not self.enabled:
            return 0.0
        return self.last_reported_bytes / self.total_bytes

    def advance(self, processed_bytes: int) -> Optional[ProgressUpdate]:
        """
        Record a new cumulative byte count.

        The count is clamped to total_bytes and never moves backwards.

        Returns:
            The emitted ProgressUpdate, or None if the change was too small
        """
        if not self.enabled:
            return None

        self.processed_bytes = max(self.processed_bytes, min(processed_bytes, self.total_bytes))

        if self.processed_bytes - self.last_reported_bytes >= self._threshold:
            return self._emit()
        return None

    def finish(self) -> Optional[ProgressUpdate]:
        """Mark the build as complete, emitting 100% if it was not reported yet."""
        if not self.enabled:
            return None

        self.processed_bytes = self.total_bytes
        if self.last_reported_bytes < self.total_bytes:
            return self._emit()
        return None

    def _emit(self) -> ProgressUpdate:
        update = ProgressUpdate(self.processed_bytes, self.total_bytes)
        self.last_reported_bytes = self.processed_bytes
        self.updates_emitted += 1
        if self.on_update:
            self.on_update(update)
        return update
