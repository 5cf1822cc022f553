"""The single serialized mutation entry point for portfolio state.

Manual UI actions, drag commits and agent tool calls all go through
PortfolioStore.dispatch, so every layout pass observes a consistent state.
"""

import logging
import threading
from collections.abc import Callable

from ..models.schemas import PortfolioState
from .actions import LOAD_STATE, RESTORE_SNAPSHOT, TRACKABLE_ACTIONS, Action
from .history import UndoHistory, take_snapshot
from .reducer import reduce

logger = logging.getLogger(__name__)

# (previous state, new state, action)
StoreListener = Callable[[PortfolioState, PortfolioState, Action], None]


class PortfolioStore:
    def __init__(self, state: PortfolioState | None = None, history: UndoHistory | None = None):
        self._state = state or PortfolioState()
        self.history = history or UndoHistory()
        self._lock = threading.RLock()
        self._listeners: list[StoreListener] = []

    @property
    def state(self) -> PortfolioState:
        return self._state

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, action: Action | dict) -> PortfolioState:
        if isinstance(action, dict):
            action = Action.from_dict(action)
        with self._lock:
            before = self._state
            after = reduce(before, action)
            if after is before:
                return after
            if action.type in TRACKABLE_ACTIONS or action.type == LOAD_STATE:
                self.history.record(action.type, before)
            self._state = after
            logger.debug("dispatch %s", action.type)
            for listener in list(self._listeners):
                listener(before, after, action)
            return after

    def undo(self) -> bool:
        with self._lock:
            snap = self.history.undo(self._state)
            if snap is None:
                return False
            self._apply_snapshot(snap)
            return True

    def redo(self) -> bool:
        with self._lock:
            snap = self.history.redo(self._state)
            if snap is None:
                return False
            self._apply_snapshot(snap)
            return True

    def _apply_snapshot(self, snap: dict) -> None:
        action = Action(RESTORE_SNAPSHOT, snap)
        before = self._state
        self._state = reduce(before, action)
        for listener in list(self._listeners):
            listener(before, self._state, action)

    def checkpoint(self) -> tuple[PortfolioState, list[dict], list[dict]]:
        with self._lock:
            return self._state, list(self.history.past), list(self.history.future)

    def rollback(self, checkpoint: tuple[PortfolioState, list[dict], list[dict]]) -> bool:
        """Return state and undo history to a checkpoint. False if nothing changed since."""
        state, past, future = checkpoint
        with self._lock:
            before = self._state
            if before is state:
                return False
            self.history.past[:] = past
            self.history.future[:] = future
            self._state = state
            logger.info("rolled back to checkpoint")
            action = Action(RESTORE_SNAPSHOT, take_snapshot(state))
            for listener in list(self._listeners):
                listener(before, state, action)
            return True
