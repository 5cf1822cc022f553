"""Per-container layout controller.

One LayoutController is owned by each rendered grid container (one per
section) and lives exactly as long as that container. On every change of
items, grid config or container width it runs a full synchronous pass:

    resolve columns → pack → locate empty cells → notify listeners

Listeners (animator, affordance layer) always see the packing of the pass
that notified them, so an empty-cell affordance can never point at a stale
layout.
"""

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

from ..config import RESIZE_DEBOUNCE_S
from ..models.schemas import GridConfig
from .columns import WIDTH_EPSILON_PX, WidthDebouncer, resolve_columns
from .empty_cells import locate_in_layout
from .grid_types import EmptyCell, GridItem, PackedLayout
from .packer import pack
from .visualize import render_ascii

logger = logging.getLogger(__name__)


class LayoutPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    SETTLED = "settled"
    DISPOSED = "disposed"


@dataclass
class LayoutSnapshot:
    """The settled result of one layout pass."""
    version: int
    columns: int
    container_width: float | None
    layout: PackedLayout
    empty_cells: list[EmptyCell] = field(default_factory=list)
    items: tuple[GridItem, ...] = ()

    @property
    def total_rows(self) -> int:
        """Rows the container renders, including any reserved append row."""
        rows = self.layout.total_rows
        if self.empty_cells:
            rows = max(rows, max(c.row for c in self.empty_cells))
        return rows

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "columns": self.columns,
            "container_width": self.container_width,
            "total_rows": self.total_rows,
            "layout": self.layout.to_dict(),
            "empty_cells": [c.to_dict() for c in self.empty_cells],
        }


# (previous snapshot or None, new snapshot)
LayoutListener = Callable[[LayoutSnapshot | None, LayoutSnapshot], None]


class LayoutController:
    """Owns the packing lifecycle of one grid container.

    Args:
        config: Grid settings (max columns, gap, aspect ratio).
        editable: Whether add-card affordances are shown.
        debounce_s: Quiet period before a container resize is applied.
        clock: Monotonic time source used by the resize debouncer.
    """

    def __init__(
        self,
        config: GridConfig | None = None,
        *,
        editable: bool = True,
        debounce_s: float = RESIZE_DEBOUNCE_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or GridConfig()
        self.editable = editable
        self.phase = LayoutPhase.UNINITIALIZED
        self.snapshot: LayoutSnapshot | None = None

        self._items: tuple[GridItem, ...] = ()
        self._width: float | None = None
        self._debouncer = WidthDebouncer(debounce_s, clock)
        self._listeners: list[LayoutListener] = []
        self._version = 0

    # -- observers ---------------------------------------------------------

    def subscribe(self, listener: LayoutListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- inputs ------------------------------------------------------------

    @property
    def container_width(self) -> float | None:
        return self._width

    @property
    def columns(self) -> int:
        """Column count for the current inputs (configured max before first measure)."""
        if self._width is None:
            return self.config.max_columns
        return resolve_columns(self._width, self.config.max_columns, self.config.cell_gap)

    def set_items(self, items: Iterable[GridItem | Mapping]) -> LayoutSnapshot:
        self._items = tuple(
            i if isinstance(i, GridItem) else GridItem(id=str(i["id"]), cols=int(i.get("cols", 1)), rows=int(i.get("rows", 1)))
            for i in items
        )
        return self.recompute()

    def set_config(self, config: GridConfig) -> LayoutSnapshot:
        self.config = config
        return self.recompute()

    def set_editable(self, editable: bool) -> LayoutSnapshot:
        self.editable = editable
        return self.recompute()

    def observe_width(self, width: float) -> LayoutSnapshot | None:
        """Feed a container width from a resize observer.

        The first measurement is applied immediately so the initial fallback
        (configured max columns) is replaced before anything animates. Later
        measurements are debounced; call flush() to apply them.
        """
        self._check_alive()
        if self._width is None:
            self._width = width
            return self.recompute()
        if abs(width - self._width) < WIDTH_EPSILON_PX and self._debouncer.pending is None:
            return None
        self._debouncer.push(width)
        return None

    def flush(self) -> LayoutSnapshot | None:
        """Apply a pending debounced width once its quiet period has elapsed."""
        width = self._debouncer.poll()
        if width is None:
            return None
        previous_columns = self.columns
        self._width = width
        if self.snapshot is not None and self.columns == previous_columns:
            # Same column count: packing is unchanged, only pixel sizes move
            self.snapshot.container_width = width
            return None
        return self.recompute()

    # -- layout pass -------------------------------------------------------

    def recompute(self) -> LayoutSnapshot:
        """Run a full synchronous layout pass and notify listeners."""
        self._check_alive()
        columns = self.columns
        layout = pack(self._items, columns)

        empty_cells: list[EmptyCell] = []
        if self.editable:
            rows = max(layout.total_rows, 1)
            empty_cells = locate_in_layout(layout, rows)
            if not any(c.is_trailing for c in empty_cells):
                # Grid is full to its last cell: reserve a row for the append slot
                empty_cells = locate_in_layout(layout, rows + 1)

        self._version += 1
        previous = self.snapshot
        self.snapshot = LayoutSnapshot(
            version=self._version,
            columns=columns,
            container_width=self._width,
            layout=layout,
            empty_cells=empty_cells,
            items=self._items,
        )
        self.phase = LayoutPhase.SETTLED
        logger.debug(
            "Layout pass %d: %d items, %d cols, %d rows, %d empty",
            self._version, len(self._items), columns, layout.total_rows, len(empty_cells),
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("\n%s", render_ascii(layout, empty_cells))

        for listener in list(self._listeners):
            listener(previous, self.snapshot)
        return self.snapshot

    def dispose(self) -> None:
        self._listeners.clear()
        self._debouncer.clear()
        self.snapshot = None
        self.phase = LayoutPhase.DISPOSED

    def _check_alive(self) -> None:
        if self.phase == LayoutPhase.DISPOSED:
            raise RuntimeError("LayoutController used after dispose()")
