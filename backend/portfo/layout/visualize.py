"""Debug views of a packed layout: ASCII text and a PNG image.

Each item gets a distinct colour (or letter), actionable empty cells are
marked, suppressed trailing cells are left blank.
"""

import colorsys
import string
from collections.abc import Iterable

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .grid_types import EmptyCell, PackedLayout

_LABELS = string.ascii_uppercase + string.ascii_lowercase + string.digits


def _distinct_colors(n: int) -> list[tuple[int, int, int]]:
    colors = []
    for i in range(n):
        r, g, b = colorsys.hsv_to_rgb(i / max(n, 1), 0.45, 0.9)
        colors.append((int(r * 255), int(g * 255), int(b * 255)))
    return colors


def _labels(layout: PackedLayout) -> dict[str, str]:
    return {item_id: _LABELS[i % len(_LABELS)] for i, item_id in enumerate(layout.positions)}


def render_ascii(
    layout: PackedLayout,
    empty_cells: Iterable[EmptyCell] = (),
    total_rows: int | None = None,
) -> str:
    """One character per cell: item letters, "+" for actionable empty cells, "." otherwise.

    A 2x1 item in a 4-column row renders as "AA+.".
    """
    empty_cells = list(empty_cells)
    rows = max([layout.total_rows, total_rows or 0, *(c.row for c in empty_cells)])
    grid = [["." for _ in range(layout.columns)] for _ in range(rows)]
    labels = _labels(layout)
    for item_id, rect in layout.positions.items():
        for r, c in rect.cells():
            grid[r - 1][c - 1] = labels[item_id]
    for cell in empty_cells:
        if cell.actionable and cell.row <= rows:
            grid[cell.row - 1][cell.col - 1] = "+"
    return "\n".join("".join(row) for row in grid)


def layout_to_image_array(
    layout: PackedLayout,
    empty_cells: Iterable[EmptyCell] = (),
    scale: int = 40,
    total_rows: int | None = None,
) -> np.ndarray:
    """RGB array of shape (rows * scale, columns * scale, 3)."""
    empty_cells = list(empty_cells)
    rows = max([layout.total_rows, total_rows or 0, 1, *(c.row for c in empty_cells)])
    img = np.full((rows * scale, layout.columns * scale, 3), 255, dtype=np.uint8)

    colors = _distinct_colors(len(layout.positions))
    for color, rect in zip(colors, layout.positions.values()):
        y0, x0 = (rect.row_start - 1) * scale, (rect.col_start - 1) * scale
        img[y0:y0 + rect.row_span * scale, x0:x0 + rect.col_span * scale] = color

    for cell in empty_cells:
        if not cell.actionable or cell.row > rows:
            continue
        cy = (cell.row - 1) * scale + scale // 2
        cx = (cell.col - 1) * scale + scale // 2
        arm = max(2, scale // 6)
        img[cy - 1:cy + 2, cx - arm:cx + arm + 1] = (120, 120, 120)
        img[cy - arm:cy + arm + 1, cx - 1:cx + 2] = (120, 120, 120)

    # Cell grid lines
    for i in range(rows + 1):
        y = min(i * scale, img.shape[0] - 1)
        img[y, :] = (200, 200, 200)
    for j in range(layout.columns + 1):
        x = min(j * scale, img.shape[1] - 1)
        img[:, x] = (200, 200, 200)

    # Item outlines
    for rect in layout.positions.values():
        y0, x0 = (rect.row_start - 1) * scale, (rect.col_start - 1) * scale
        y1, x1 = y0 + rect.row_span * scale - 1, x0 + rect.col_span * scale - 1
        img[y0, x0:x1 + 1] = img[y1, x0:x1 + 1] = (60, 60, 60)
        img[y0:y1 + 1, x0] = img[y0:y1 + 1, x1] = (60, 60, 60)

    return img


def save_layout_image(
    layout: PackedLayout,
    output_path: str,
    empty_cells: Iterable[EmptyCell] = (),
    scale: int = 40,
) -> str:
    """Save a PNG of the layout with item labels. Returns the output path."""
    img = Image.fromarray(layout_to_image_array(layout, empty_cells, scale))
    draw = ImageDraw.Draw(img)
    try:
        font = ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", max(12, scale // 3))
    except OSError:
        font = ImageFont.load_default()

    labels = _labels(layout)
    for item_id, rect in layout.positions.items():
        x = int((rect.col_start - 1 + rect.col_span / 2) * scale)
        y = int((rect.row_start - 1 + rect.row_span / 2) * scale)
        draw.text((x, y), labels[item_id], fill=(0, 0, 0), font=font, anchor="mm")

    img.save(output_path)
    return output_path
