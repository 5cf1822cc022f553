"""Snapshot-based undo/redo history."""

import time
from collections.abc import Callable

from ..config import UNDO_DEBOUNCE_S, UNDO_HISTORY_LIMIT
from ..models.schemas import PortfolioState
from .actions import DEBOUNCED_ACTIONS, LOAD_STATE, TRACKABLE_ACTIONS


def take_snapshot(state: PortfolioState) -> dict:
    """Deep copy of the undoable part of the state (sections + bio)."""
    return {
        "sections": [s.model_dump() for s in state.sections],
        "bio": state.bio.model_dump() if state.bio else None,
    }


class UndoHistory:
    """Past/future stacks of (sections, bio) snapshots.

    Snapshots are whole-state, not per-field diffs. Repeats of a debounced
    action within `debounce_s` share one snapshot so a burst of typing undoes
    as one step.
    """

    def __init__(
        self,
        limit: int = UNDO_HISTORY_LIMIT,
        debounce_s: float = UNDO_DEBOUNCE_S,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit
        self.debounce_s = debounce_s
        self._clock = clock
        self.past: list[dict] = []
        self.future: list[dict] = []
        self._last_snapshot_at = float("-inf")
        self._last_action_type: str | None = None

    @property
    def can_undo(self) -> bool:
        return bool(self.past)

    @property
    def can_redo(self) -> bool:
        return bool(self.future)

    def _push(self, stack: list[dict], snap: dict) -> None:
        stack.append(snap)
        del stack[:-self.limit]

    def record(self, action_type: str, state_before: PortfolioState) -> None:
        """Call before applying an action."""
        if action_type == LOAD_STATE:
            self.clear()
            return
        if action_type not in TRACKABLE_ACTIONS:
            return

        now = self._clock()
        debounce = (
            action_type in DEBOUNCED_ACTIONS
            and action_type == self._last_action_type
            and now - self._last_snapshot_at < self.debounce_s
        )
        if not debounce:
            self._push(self.past, take_snapshot(state_before))
            self.future.clear()
            self._last_snapshot_at = now
        self._last_action_type = action_type

    def undo(self, current: PortfolioState) -> dict | None:
        if not self.past:
            return None
        self._push(self.future, take_snapshot(current))
        self._last_action_type = None
        return self.past.pop()

    def redo(self, current: PortfolioState) -> dict | None:
        if not self.future:
            return None
        self._push(self.past, take_snapshot(current))
        self._last_action_type = None
        return self.future.pop()

    def clear(self) -> None:
        self.past.clear()
        self.future.clear()
        self._last_action_type = None
