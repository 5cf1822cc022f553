"""Convert a packing into pixel boxes.

The visual layer is a pure function of the packing: boxes are computed from
grid positions, container width, gap and aspect ratio, never read back from
rendered output.
"""

from .grid_types import Box, PackedLayout, Rect


def column_width(container_width: float, columns: int, cell_gap: float) -> float:
    columns = max(1, columns)
    return max(0.0, (container_width - cell_gap * (columns - 1)) / columns)


def rect_to_box(
    rect: Rect,
    col_width: float,
    row_height: float,
    cell_gap: float,
) -> Box:
    return Box(
        left=(rect.col_start - 1) * (col_width + cell_gap),
        top=(rect.row_start - 1) * (row_height + cell_gap),
        width=rect.col_span * col_width + (rect.col_span - 1) * cell_gap,
        height=rect.row_span * row_height + (rect.row_span - 1) * cell_gap,
    )


def layout_boxes(
    layout: PackedLayout,
    container_width: float,
    cell_gap: float,
    aspect_ratio: float = 1.0,
) -> dict[str, Box]:
    """Pixel box per item id. Row height is column_width / aspect_ratio."""
    col_w = column_width(container_width, layout.columns, cell_gap)
    row_h = col_w / aspect_ratio if aspect_ratio > 0 else col_w
    return {
        item_id: rect_to_box(rect, col_w, row_h, cell_gap)
        for item_id, rect in layout.positions.items()
    }


def cell_box(
    row: int,
    col: int,
    columns: int,
    container_width: float,
    cell_gap: float,
    aspect_ratio: float = 1.0,
) -> Box:
    """Pixel box of a single 1×1 cell (e.g. an empty-cell affordance)."""
    col_w = column_width(container_width, columns, cell_gap)
    row_h = col_w / aspect_ratio if aspect_ratio > 0 else col_w
    return rect_to_box(Rect(row_start=row, col_start=col), col_w, row_h, cell_gap)


def grid_height(total_rows: int, container_width: float, columns: int, cell_gap: float, aspect_ratio: float = 1.0) -> float:
    if total_rows <= 0:
        return 0.0
    col_w = column_width(container_width, columns, cell_gap)
    row_h = col_w / aspect_ratio if aspect_ratio > 0 else col_w
    return total_rows * row_h + (total_rows - 1) * cell_gap
