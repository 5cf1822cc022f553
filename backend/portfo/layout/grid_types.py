"""Data types for the bento grid layout engine.

Coordinate system:
- Grid cells are addressed (row, col), both 1-based, matching CSS grid lines.
- Rows grow downward without bound; columns are fixed at the packed column count.
- A card occupies a rectangle of col_span × row_span cells starting at its origin.
- Pixel boxes (Box) are relative to the top-left corner of the grid container.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class GridItem:
    """A card as the packer sees it: an id plus a size in grid units."""
    id: str
    cols: int = 1
    rows: int = 1

    @property
    def bento(self) -> str:
        return f"{self.cols}x{self.rows}"


@dataclass(frozen=True)
class Rect:
    """The cells covered by one packed item."""
    row_start: int
    col_start: int
    row_span: int = 1
    col_span: int = 1

    @property
    def row_end(self) -> int:
        """Last row covered (inclusive)."""
        return self.row_start + self.row_span - 1

    @property
    def col_end(self) -> int:
        """Last column covered (inclusive)."""
        return self.col_start + self.col_span - 1

    def cells(self) -> set[tuple[int, int]]:
        return {
            (r, c)
            for r in range(self.row_start, self.row_end + 1)
            for c in range(self.col_start, self.col_end + 1)
        }

    def intersects(self, other: "Rect") -> bool:
        return not (
            self.col_end < other.col_start
            or other.col_end < self.col_start
            or self.row_end < other.row_start
            or other.row_end < self.row_start
        )

    def to_dict(self) -> dict:
        return {
            "row_start": self.row_start,
            "col_start": self.col_start,
            "row_span": self.row_span,
            "col_span": self.col_span,
        }


@dataclass
class PackedLayout:
    """The result of packing one ordered list of items into a fixed column count.

    Derived data only: regenerated on every input change, never patched.
    """
    columns: int
    positions: dict[str, Rect] = field(default_factory=dict)
    total_rows: int = 0

    # (row, col) cells covered by some item
    occupancy: set[tuple[int, int]] = field(default_factory=set)

    def is_occupied(self, row: int, col: int) -> bool:
        return (row, col) in self.occupancy

    def to_dict(self) -> dict:
        """Serialize to JSON-safe dict."""
        return {
            "columns": self.columns,
            "total_rows": self.total_rows,
            "positions": {item_id: rect.to_dict() for item_id, rect in self.positions.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PackedLayout":
        """Deserialize from dict, rebuilding the occupancy set."""
        layout = cls(columns=data["columns"], total_rows=data.get("total_rows", 0))
        for item_id, r in data.get("positions", {}).items():
            rect = Rect(
                row_start=r["row_start"],
                col_start=r["col_start"],
                row_span=r.get("row_span", 1),
                col_span=r.get("col_span", 1),
            )
            layout.positions[item_id] = rect
            layout.occupancy |= rect.cells()
        return layout


@dataclass(frozen=True)
class EmptyCell:
    """An unoccupied grid cell, consumed by the add-card affordance layer."""
    row: int
    col: int
    is_trailing: bool = False
    actionable: bool = True
    insert_index: int = 0  # card position a new card created here is inserted at

    def to_dict(self) -> dict:
        return {
            "row": self.row,
            "col": self.col,
            "is_trailing": self.is_trailing,
            "actionable": self.actionable,
            "insert_index": self.insert_index,
        }


@dataclass(frozen=True)
class Box:
    """A pixel-space bounding box."""
    left: float
    top: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.left + self.width

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def center(self) -> tuple[float, float]:
        return (self.left + self.width / 2, self.top + self.height / 2)

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x < self.right and self.top <= y < self.bottom

    def translated(self, dx: float, dy: float) -> "Box":
        return Box(self.left + dx, self.top + dy, self.width, self.height)

    def to_dict(self) -> dict:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}
