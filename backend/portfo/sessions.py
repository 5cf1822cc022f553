"""In-memory editor sessions.

An EditorSession bundles everything one open editor owns: the portfolio store,
the chat history, the model API key, and one LayoutController per section.
Controllers are created when their section appears and disposed when it goes
away, and every store dispatch feeds them the new items.
"""

import logging
import threading
import uuid

from .config import GITHUB_TOKEN
from .layout.animator import AnimationIntent, ReorderAnimator
from .layout.controller import LayoutController, LayoutSnapshot
from .layout.drag import DragIntent, DragReorderController, SectionGeometry
from .layout.geometry import grid_height, layout_boxes
from .layout.grid_types import Box, GridItem
from .models.schemas import PortfolioState, Section
from .store.actions import Action
from .store.store import PortfolioStore
from .tools.llm import ModelClient, create_model_client

logger = logging.getLogger(__name__)

# Vertical space between stacked section grids (heading included)
SECTION_SPACING_PX = 48.0


def section_items(section: Section) -> list[GridItem]:
    return [GridItem(c.id, c.size.cols, c.size.rows) for c in section.cards]


class EditorSession:
    def __init__(
        self,
        state: PortfolioState | None = None,
        *,
        profile_id: str | None = None,
        api_key: str | None = None,
        editable: bool = True,
        resize_debounce_s: float = 0.0,
    ):
        self.id = uuid.uuid4().hex[:16]
        self.profile_id = profile_id
        self.api_key = api_key or GITHUB_TOKEN or None
        self.history: list[dict] = []
        self.store = PortfolioStore(state)
        self.controllers: dict[str, LayoutController] = {}
        self.animations: dict[str, list[AnimationIntent]] = {}
        self._animators: dict[str, ReorderAnimator] = {}
        self._editable = editable
        self._resize_debounce_s = resize_debounce_s
        self._client: ModelClient | None = None
        self._client_key: str | None = None

        self.drag = DragReorderController(self.section_geometry, on_commit=self._commit_drag)
        self.store.subscribe(lambda before, after, action: self.sync_layouts())
        self.sync_layouts()

    # -- model client ------------------------------------------------------

    @property
    def client(self) -> ModelClient | None:
        """Model client for the current key, rebuilt when the key changes."""
        if self.api_key != self._client_key:
            self._client = create_model_client(self.api_key)
            self._client_key = self.api_key
        return self._client

    def set_api_key(self, api_key: str | None) -> None:
        self.api_key = api_key or None

    # -- layout ------------------------------------------------------------

    def sync_layouts(self) -> None:
        """Bring one controller per section in line with the store."""
        state = self.store.state
        live = {s.id for s in state.sections}
        for section_id in list(self.controllers):
            if section_id not in live:
                self.controllers.pop(section_id).dispose()
                self._animators.pop(section_id, None)
                self.animations.pop(section_id, None)

        for section in state.sections:
            items = tuple(section_items(section))
            controller = self.controllers.get(section.id)
            if controller is None:
                controller = self._new_controller(section.id)
                controller.set_items(items)
                continue
            if controller.config != state.grid_config:
                animator = self._animators[section.id]
                animator.cell_gap = state.grid_config.cell_gap
                animator.aspect_ratio = state.grid_config.aspect_ratio
                controller.config = state.grid_config
                controller.set_items(items)
            elif controller.snapshot is None or controller.snapshot.items != items:
                controller.set_items(items)

    def _new_controller(self, section_id: str) -> LayoutController:
        config = self.store.state.grid_config
        controller = LayoutController(config, editable=self._editable, debounce_s=self._resize_debounce_s)
        animator = ReorderAnimator(
            cell_gap=config.cell_gap,
            aspect_ratio=config.aspect_ratio,
            on_intents=lambda intents: self.animations.__setitem__(section_id, intents),
        )
        controller.subscribe(animator.on_layout)
        self.controllers[section_id] = controller
        self._animators[section_id] = animator
        return controller

    def layouts(self, width: float | None = None, editable: bool | None = None) -> dict[str, LayoutSnapshot]:
        """Current snapshot per section, after applying a container width and edit mode."""
        for controller in self.controllers.values():
            if editable is not None and editable != controller.editable:
                controller.set_editable(editable)
            if width is not None:
                controller.observe_width(width)
                controller.flush()
        return {sid: c.snapshot for sid, c in self.controllers.items()}

    def section_geometry(self) -> list[SectionGeometry]:
        """Page-coordinate boxes of each section grid, stacked top to bottom."""
        config = self.store.state.grid_config
        top = 0.0
        geometry = []
        for section in self.store.state.sections:
            controller = self.controllers.get(section.id)
            snapshot = controller.snapshot if controller else None
            if snapshot is None or snapshot.container_width is None:
                continue
            width = snapshot.container_width
            top += SECTION_SPACING_PX
            height = grid_height(snapshot.total_rows, width, snapshot.columns, config.cell_gap, config.aspect_ratio)
            boxes = layout_boxes(snapshot.layout, width, config.cell_gap, config.aspect_ratio)
            geometry.append(SectionGeometry(
                section_id=section.id,
                container=Box(0.0, top, width, height),
                card_ids=[c.id for c in section.cards],
                card_boxes={cid: box.translated(0.0, top) for cid, box in boxes.items()},
            ))
            top += height
        return geometry

    def start_drag(self, section_id: str, index: int, pointer: tuple[float, float]) -> Box:
        box = self.drag.start(section_id, index, pointer)
        for animator in self._animators.values():
            animator.dragging_id = self.drag.card_id
        return box

    def end_drag(self) -> DragIntent | None:
        intent = self.drag.release()
        for animator in self._animators.values():
            animator.dragging_id = None
        return intent

    def _commit_drag(self, intent: DragIntent) -> None:
        self.store.dispatch(intent.to_action())

    def dispatch(self, action: Action | dict) -> PortfolioState:
        return self.store.dispatch(action)

    def close(self) -> None:
        for controller in self.controllers.values():
            controller.dispose()
        self.controllers.clear()
        self._animators.clear()


_sessions: dict[str, EditorSession] = {}
_lock = threading.Lock()


def create_session(state: PortfolioState | None = None, **kwargs) -> EditorSession:
    session = EditorSession(state, **kwargs)
    with _lock:
        _sessions[session.id] = session
    logger.info("Session %s opened (%d sections)", session.id, len(session.store.state.sections))
    return session


def get_session(session_id: str) -> EditorSession | None:
    return _sessions.get(session_id)


def close_session(session_id: str) -> bool:
    with _lock:
        session = _sessions.pop(session_id, None)
    if session is None:
        return False
    session.close()
    logger.info("Session %s closed", session_id)
    return True


def clear_sessions() -> None:
    with _lock:
        for session in _sessions.values():
            session.close()
        _sessions.clear()
