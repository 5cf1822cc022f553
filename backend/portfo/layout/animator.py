"""FLIP reorder animation.

First-Last-Invert-Play: capture each card's box before a packing change,
compare with its box after, and for every card that moved emit an intent to
jump back by the delta and animate to zero offset. The animator only
describes motion; how an intent is rendered (CSS transition, canvas, ...) is
up to the caller. It never feeds back into the packing.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from .controller import LayoutSnapshot
from .geometry import layout_boxes
from .grid_types import Box

logger = logging.getLogger(__name__)

# Moves smaller than this (px on both axes) are not animated
FLIP_THRESHOLD_PX = 1.0
FLIP_DURATION_MS = 200
FLIP_EASING = "ease"


@dataclass(frozen=True)
class AnimationIntent:
    item_id: str
    from_box: Box
    to_box: Box
    duration_ms: int = FLIP_DURATION_MS
    easing: str = FLIP_EASING

    @property
    def invert(self) -> tuple[float, float]:
        """Offset to apply instantly at the new position before playing to zero."""
        return (self.from_box.left - self.to_box.left, self.from_box.top - self.to_box.top)

    def to_dict(self) -> dict:
        dx, dy = self.invert
        return {
            "item_id": self.item_id,
            "from": self.from_box.to_dict(),
            "to": self.to_box.to_dict(),
            "dx": dx,
            "dy": dy,
            "duration_ms": self.duration_ms,
            "easing": self.easing,
        }


def diff_boxes(
    before: Mapping[str, Box],
    after: Mapping[str, Box],
    *,
    exclude: str | None = None,
    threshold: float = FLIP_THRESHOLD_PX,
    duration_ms: int = FLIP_DURATION_MS,
) -> list[AnimationIntent]:
    """Intents for every id present in both snapshots that moved past threshold."""
    intents = []
    for item_id, new_box in after.items():
        old_box = before.get(item_id)
        if old_box is None or item_id == exclude:
            continue
        dx = old_box.left - new_box.left
        dy = old_box.top - new_box.top
        if abs(dx) < threshold and abs(dy) < threshold:
            continue
        intents.append(AnimationIntent(item_id, old_box, new_box, duration_ms))
    return intents


class ReorderAnimator:
    """Turns consecutive layout snapshots into FLIP animation intents.

    Attach to a LayoutController with `controller.subscribe(animator.on_layout)`
    or drive it manually with capture()/play().
    """

    def __init__(
        self,
        cell_gap: float = 8,
        aspect_ratio: float = 1.0,
        duration_ms: int = FLIP_DURATION_MS,
        on_intents: Callable[[list[AnimationIntent]], None] | None = None,
    ):
        self.cell_gap = cell_gap
        self.aspect_ratio = aspect_ratio
        self.duration_ms = duration_ms
        self.dragging_id: str | None = None
        self._captured: dict[str, Box] = {}
        self._on_intents = on_intents

    def capture(self, boxes: Mapping[str, Box]) -> None:
        """First: remember where every visible item is right now."""
        self._captured = dict(boxes)

    def play(self, boxes: Mapping[str, Box]) -> list[AnimationIntent]:
        """Last/Invert/Play against the captured boxes. Consumes the capture."""
        if not self._captured:
            return []
        intents = diff_boxes(
            self._captured, boxes, exclude=self.dragging_id, duration_ms=self.duration_ms,
        )
        self._captured = {}
        if intents:
            logger.debug("FLIP: animating %d items", len(intents))
            if self._on_intents:
                self._on_intents(intents)
        return intents

    def boxes_for(self, snapshot: LayoutSnapshot) -> dict[str, Box]:
        if snapshot.container_width is None:
            return {}
        return layout_boxes(snapshot.layout, snapshot.container_width, self.cell_gap, self.aspect_ratio)

    def on_layout(self, previous: LayoutSnapshot | None, current: LayoutSnapshot) -> list[AnimationIntent]:
        """LayoutController listener: diff the two pure snapshots."""
        if previous is None:
            return []
        if not self._captured:
            self.capture(self.boxes_for(previous))
        return self.play(self.boxes_for(current))
