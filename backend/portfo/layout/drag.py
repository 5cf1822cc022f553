"""Pointer-driven drag reorder session.

State machine: IDLE → DRAGGING → (IDLE | COMMITTED). A drag that ends over a
valid target emits exactly one intent (reorder within the source section or
move to another section); anything else is a cancel and emits nothing.

Hit-testing runs against the pixel boxes of the current packing of each
section (page coordinates), never against rendered output. The ghost is not
part of that geometry, so it can never be its own drop target.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

from ..store.actions import MOVE_CARD_TO_SECTION, REORDER_CARDS, Action
from .grid_types import Box

logger = logging.getLogger(__name__)

# Auto-scroll tuning
AUTOSCROLL_EDGE_PX = 60
AUTOSCROLL_GAIN = 0.6       # scroll px per px/frame of pointer velocity toward the edge
AUTOSCROLL_MIN_SPEED = 2.0  # px per frame while parked inside the edge zone
AUTOSCROLL_MAX_SPEED = 40.0
AUTOSCROLL_DAMPING = 0.5    # per-frame decay once the pointer heads away from the edge


class DragPhase(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTED = "committed"


@dataclass(frozen=True)
class ReorderIntent:
    section_id: str
    from_index: int
    to_index: int

    def to_action(self) -> Action:
        return Action(REORDER_CARDS, {
            "section_id": self.section_id,
            "from_index": self.from_index,
            "to_index": self.to_index,
        })


@dataclass(frozen=True)
class MoveIntent:
    card_id: str
    from_section_id: str
    to_section_id: str
    to_index: int | None = None  # None appends

    def to_action(self) -> Action:
        return Action(MOVE_CARD_TO_SECTION, {
            "card_id": self.card_id,
            "from_section_id": self.from_section_id,
            "to_section_id": self.to_section_id,
            "to_index": self.to_index,
        })


DragIntent = ReorderIntent | MoveIntent


@dataclass
class SectionGeometry:
    """Hit-test geometry of one section container, in page coordinates."""
    section_id: str
    container: Box
    card_ids: list[str] = field(default_factory=list)  # in card order
    card_boxes: dict[str, Box] = field(default_factory=dict)


@dataclass(frozen=True)
class DropTarget:
    section_id: str
    card_id: str | None = None
    card_index: int | None = None


@dataclass
class DragFrame:
    """What the renderer needs after one pointer move."""
    ghost: Box
    target: DropTarget | None
    scroll_dy: float = 0.0


class AutoScroller:
    """Scroll a scrollable ancestor while the pointer is near its edge.

    Speed follows the pointer's velocity toward the edge; when the pointer
    reverses, the current speed decays to zero instead of stopping dead.
    """

    def __init__(
        self,
        edge_px: float = AUTOSCROLL_EDGE_PX,
        gain: float = AUTOSCROLL_GAIN,
        max_speed: float = AUTOSCROLL_MAX_SPEED,
        damping: float = AUTOSCROLL_DAMPING,
    ):
        self.edge_px = edge_px
        self.gain = gain
        self.max_speed = max_speed
        self.damping = damping
        self.speed = 0.0
        self._last_y: float | None = None

    def reset(self) -> None:
        self.speed = 0.0
        self._last_y = None

    def update(self, pointer_y: float, viewport_top: float, viewport_height: float) -> float:
        """Return the scroll delta (px, positive = down) for this frame."""
        velocity = 0.0 if self._last_y is None else pointer_y - self._last_y
        self._last_y = pointer_y

        if pointer_y > viewport_top + viewport_height - self.edge_px:
            direction = 1
        elif pointer_y < viewport_top + self.edge_px:
            direction = -1
        else:
            direction = 0

        toward_edge = direction != 0 and velocity * direction >= 0
        if toward_edge:
            target = max(AUTOSCROLL_MIN_SPEED, abs(velocity) * self.gain) * direction
            # Ease in: move halfway to the target speed each frame
            self.speed += (target - self.speed) * 0.5
        else:
            self.speed *= self.damping
            if abs(self.speed) < 0.5:
                self.speed = 0.0

        self.speed = max(-self.max_speed, min(self.max_speed, self.speed))
        return self.speed


class DragReorderController:
    """One drag session at a time over a set of section grids.

    Args:
        geometry: Callable returning the current SectionGeometry of every
            section. Called on each move so it always reflects the latest packing.
        on_commit: Receives the single intent of a committed drag.
        autoscroller: Optional AutoScroller; defaults to a fresh one.
    """

    def __init__(
        self,
        geometry: Callable[[], Sequence[SectionGeometry]],
        on_commit: Callable[[DragIntent], None] | None = None,
        autoscroller: AutoScroller | None = None,
    ):
        self._geometry = geometry
        self._on_commit = on_commit
        self.autoscroller = autoscroller or AutoScroller()
        self.phase = DragPhase.IDLE
        self.card_id: str | None = None
        self.source_section_id: str | None = None
        self.source_index: int | None = None
        self.target: DropTarget | None = None
        self.ghost: Box | None = None
        self._grab_offset = (0.0, 0.0)

    @property
    def is_dragging(self) -> bool:
        return self.phase == DragPhase.DRAGGING

    def start(self, section_id: str, index: int, pointer: tuple[float, float]) -> Box:
        """Begin dragging the card at `index` of `section_id`. Returns the ghost box."""
        if self.is_dragging:
            self.cancel()
        sections = {g.section_id: g for g in self._geometry()}
        geo = sections.get(section_id)
        if geo is None or not 0 <= index < len(geo.card_ids):
            raise ValueError(f"No card at index {index} in section {section_id}")

        self.card_id = geo.card_ids[index]
        box = geo.card_boxes[self.card_id]
        self.source_section_id = section_id
        self.source_index = index
        self._grab_offset = (pointer[0] - box.left, pointer[1] - box.top)
        self.ghost = box
        self.target = None
        self.phase = DragPhase.DRAGGING
        self.autoscroller.reset()
        logger.debug("Drag start: %s from %s[%d]", self.card_id, section_id, index)
        return box

    def hit_test(self, x: float, y: float) -> DropTarget | None:
        """Resolve the drop target under (x, y) for the card being dragged."""
        for geo in self._geometry():
            for i, cid in enumerate(geo.card_ids):
                box = geo.card_boxes.get(cid)
                if box is None or not box.contains(x, y):
                    continue
                if cid == self.card_id:
                    return None
                return DropTarget(geo.section_id, cid, i)
            if geo.container.contains(x, y):
                if geo.section_id == self.source_section_id:
                    # Empty area of the source section is not a target
                    return None
                return DropTarget(geo.section_id)
        return None

    def move(
        self,
        x: float,
        y: float,
        viewport: tuple[float, float] | None = None,
    ) -> DragFrame:
        """Track the pointer. `viewport` is (top, height) of the scrollable ancestor."""
        if not self.is_dragging:
            raise RuntimeError("move() called without an active drag")
        self.ghost = Box(x - self._grab_offset[0], y - self._grab_offset[1], self.ghost.width, self.ghost.height)
        self.target = self.hit_test(x, y)
        scroll_dy = 0.0
        if viewport is not None:
            scroll_dy = self.autoscroller.update(y, viewport[0], viewport[1])
        return DragFrame(ghost=self.ghost, target=self.target, scroll_dy=scroll_dy)

    def release(self) -> DragIntent | None:
        """End the drag. Emits and returns an intent, or None for a cancel."""
        if not self.is_dragging:
            return None
        intent = self._intent_for(self.target)
        if intent is None:
            logger.debug("Drag cancelled: %s", self.card_id)
            self._reset(DragPhase.IDLE)
            return None

        logger.info("Drag commit: %s", intent)
        self._reset(DragPhase.COMMITTED)
        if self._on_commit:
            self._on_commit(intent)
        return intent

    def cancel(self) -> None:
        self._reset(DragPhase.IDLE)

    def _intent_for(self, target: DropTarget | None) -> DragIntent | None:
        if target is None:
            return None
        if target.section_id == self.source_section_id:
            if target.card_index is None or target.card_index == self.source_index:
                return None
            return ReorderIntent(self.source_section_id, self.source_index, target.card_index)
        return MoveIntent(
            card_id=self.card_id,
            from_section_id=self.source_section_id,
            to_section_id=target.section_id,
            to_index=target.card_index,
        )

    def _reset(self, phase: DragPhase) -> None:
        self.phase = phase
        self.card_id = None
        self.source_section_id = None
        self.source_index = None
        self.target = None
        self.ghost = None
        self.autoscroller.reset()
