"""Locate the empty cells of a packing for the add-card affordances.

Every real hole the packer left behind gets an affordance. Cells after the
last occupied cell (in row-major scan order) are "trailing"; only the first
of those becomes an actionable append slot, the rest are suppressed.
"""

from collections.abc import Collection

from .grid_types import EmptyCell, PackedLayout


def _scan_index(row: int, col: int, columns: int) -> int:
    return (row - 1) * columns + (col - 1)


def locate_empty_cells(
    occupancy: Collection[tuple[int, int]],
    total_rows: int,
    max_columns: int,
    origins: Collection[tuple[int, int]] = (),
) -> list[EmptyCell]:
    """Enumerate unoccupied cells of a total_rows × max_columns grid in scan order.

    Args:
        occupancy: Occupied (row, col) cells, 1-based.
        total_rows: Rows to scan.
        max_columns: Column count of the grid.
        origins: Item origins (row_start, col_start) in card order. Used only to
            compute each cell's insert_index; may be omitted.

    Returns:
        One EmptyCell per unoccupied cell. Non-trailing cells are always
        actionable; of the trailing cells only the first is.
    """
    columns = max(1, max_columns)
    last_occupied = max(
        (_scan_index(r, c, columns) for (r, c) in occupancy if c <= columns),
        default=-1,
    )
    origin_indices = sorted(_scan_index(r, c, columns) for (r, c) in origins)

    cells: list[EmptyCell] = []
    append_slot_taken = False
    for row in range(1, total_rows + 1):
        for col in range(1, columns + 1):
            if (row, col) in occupancy:
                continue
            idx = _scan_index(row, col, columns)
            trailing = idx > last_occupied
            if trailing:
                actionable = not append_slot_taken
                append_slot_taken = True
                insert_index = len(origin_indices)
            else:
                actionable = True
                insert_index = sum(1 for o in origin_indices if o < idx)
            cells.append(EmptyCell(
                row=row,
                col=col,
                is_trailing=trailing,
                actionable=actionable,
                insert_index=insert_index,
            ))
    return cells


def locate_in_layout(layout: PackedLayout, total_rows: int | None = None) -> list[EmptyCell]:
    """locate_empty_cells driven directly by a PackedLayout."""
    origins = [(r.row_start, r.col_start) for r in layout.positions.values()]
    return locate_empty_cells(
        layout.occupancy,
        layout.total_rows if total_rows is None else total_rows,
        layout.columns,
        origins,
    )


def actionable_cells(cells: list[EmptyCell]) -> list[EmptyCell]:
    return [c for c in cells if c.actionable]
