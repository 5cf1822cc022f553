from .controller import LayoutController, LayoutSnapshot
from .empty_cells import locate_empty_cells
from .grid_types import Box, EmptyCell, GridItem, PackedLayout, Rect
from .packer import pack

__all__ = [
    "Box",
    "EmptyCell",
    "GridItem",
    "LayoutController",
    "LayoutSnapshot",
    "PackedLayout",
    "Rect",
    "locate_empty_cells",
    "pack",
]
