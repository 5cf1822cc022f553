"""Responsive column count resolution and resize debouncing."""

import time
from collections.abc import Callable

# Narrowest column that still renders a usable card (logical px)
MIN_COLUMN_WIDTH = 160

# Width changes smaller than this are treated as noise
WIDTH_EPSILON_PX = 0.5


def resolve_columns(container_width: float, max_columns: int, cell_gap: float) -> int:
    """Largest column count (1..max_columns) whose columns are all ≥ MIN_COLUMN_WIDTH.

    Pure function of its inputs; non-decreasing in container_width.
    """
    max_columns = max(1, int(max_columns))
    for cols in range(max_columns, 0, -1):
        available = (container_width - cell_gap * (cols - 1)) / cols
        if available >= MIN_COLUMN_WIDTH:
            return cols
    return 1


class WidthDebouncer:
    """Coalesce a burst of container width observations into one update.

    A width is released only after no new observation has arrived for
    `delay` seconds. Time is read from `clock` so tests can drive it.
    """

    def __init__(self, delay: float, clock: Callable[[], float] = time.monotonic):
        self.delay = delay
        self._clock = clock
        self._pending: float | None = None
        self._last_seen = 0.0

    @property
    def pending(self) -> float | None:
        return self._pending

    def push(self, width: float) -> None:
        self._pending = width
        self._last_seen = self._clock()

    def poll(self) -> float | None:
        """Return the settled width once the quiet period has elapsed, else None."""
        if self._pending is None:
            return None
        if self._clock() - self._last_seen < self.delay:
            return None
        width, self._pending = self._pending, None
        return width

    def clear(self) -> None:
        self._pending = None
