"""First-fit bento packer.

Places variable-sized items into a fixed-column grid in input order. Each item
takes the first origin, scanning rows top-to-bottom and columns left-to-right,
where its whole rectangle is free. Input order is the user's intended visual
order and is never changed here.

The same rule is embedded in exported pages (see tools/export_html.py), so any
change to the scan order must be mirrored there.
"""

import logging
from collections.abc import Iterable, Mapping

from .grid_types import GridItem, PackedLayout, Rect

logger = logging.getLogger(__name__)

# Cards are created and resized within this range on each axis
MIN_SPAN = 1
MAX_SPAN = 4


def parse_bento(bento: str) -> tuple[int, int]:
    """Parse a bento string like "2x3" → (cols, rows). Malformed parts become 1."""
    parts = (bento or "").lower().split("x")
    values = []
    for part in (parts + ["", ""])[:2]:
        try:
            values.append(max(MIN_SPAN, int(part)))
        except ValueError:
            values.append(MIN_SPAN)
    return values[0], values[1]


def format_bento(cols: int, rows: int) -> str:
    return f"{cols}x{rows}"


def clamp_bento(bento: str, max_columns: int) -> str:
    """Clamp a bento size so it fits within max_columns."""
    cols, rows = parse_bento(bento)
    return format_bento(min(cols, max(1, max_columns)), rows)


def _as_item(raw: GridItem | Mapping) -> GridItem:
    if isinstance(raw, GridItem):
        return raw
    return GridItem(id=str(raw["id"]), cols=int(raw.get("cols", 1)), rows=int(raw.get("rows", 1)))


def _fits(occupancy: set[tuple[int, int]], row: int, col: int, cols: int, rows: int) -> bool:
    for r in range(row, row + rows):
        for c in range(col, col + cols):
            if (r, c) in occupancy:
                return False
    return True


def pack(items: Iterable[GridItem | Mapping], max_columns: int) -> PackedLayout:
    """Assign each item a (row, col) origin so that no two items overlap.

    Args:
        items: Items in visual order, as GridItem or {"id", "cols", "rows"} dicts.
        max_columns: Column count of the grid. Values below 1 are treated as 1.

    Returns:
        PackedLayout with one Rect per item id and total_rows (0 when empty).

    Never fails: items wider than the grid are clamped to max_columns, and
    non-positive spans are clamped to 1.
    """
    columns = max(1, int(max_columns))
    layout = PackedLayout(columns=columns)
    occupancy = layout.occupancy

    for raw in items:
        item = _as_item(raw)
        cols = min(max(item.cols, MIN_SPAN), columns)
        rows = max(item.rows, MIN_SPAN)
        if cols != item.cols or rows != item.rows:
            logger.debug("Clamped %s from %dx%d to %dx%d", item.id, item.cols, item.rows, cols, rows)

        row = 1
        placed = None
        while placed is None:
            for col in range(1, columns - cols + 2):
                if _fits(occupancy, row, col, cols, rows):
                    placed = Rect(row_start=row, col_start=col, row_span=rows, col_span=cols)
                    break
            row += 1

        occupancy |= placed.cells()
        layout.positions[item.id] = placed
        layout.total_rows = max(layout.total_rows, placed.row_end)

    return layout
