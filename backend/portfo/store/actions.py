"""Action types for the portfolio store."""

from dataclasses import dataclass, field
from typing import Any

SET_MODE = "SET_MODE"
SELECT_CARD = "SELECT_CARD"
DESELECT_CARD = "DESELECT_CARD"
ADD_CARD = "ADD_CARD"
REMOVE_CARD = "REMOVE_CARD"
RESIZE_CARD = "RESIZE_CARD"
UPDATE_CARD_CONTENT = "UPDATE_CARD_CONTENT"
REORDER_CARDS = "REORDER_CARDS"
MOVE_CARD_TO_SECTION = "MOVE_CARD_TO_SECTION"
ADD_SECTION = "ADD_SECTION"
REMOVE_SECTION = "REMOVE_SECTION"
UPDATE_SECTION_TITLE = "UPDATE_SECTION_TITLE"
REORDER_SECTIONS = "REORDER_SECTIONS"
SET_BIO = "SET_BIO"
CLEAR_BIO = "CLEAR_BIO"
SET_GRID_CONFIG = "SET_GRID_CONFIG"
LOAD_STATE = "LOAD_STATE"
RESTORE_SNAPSHOT = "RESTORE_SNAPSHOT"
RESET_STATE = "RESET_STATE"
SAVE = "SAVE"

ALL_ACTIONS = {
    SET_MODE, SELECT_CARD, DESELECT_CARD, ADD_CARD, REMOVE_CARD, RESIZE_CARD,
    UPDATE_CARD_CONTENT, REORDER_CARDS, MOVE_CARD_TO_SECTION, ADD_SECTION,
    REMOVE_SECTION, UPDATE_SECTION_TITLE, REORDER_SECTIONS, SET_BIO, CLEAR_BIO,
    SET_GRID_CONFIG, LOAD_STATE, RESTORE_SNAPSHOT, RESET_STATE, SAVE,
}

# Actions that change sections or bio and can be undone
TRACKABLE_ACTIONS = {
    ADD_CARD, REMOVE_CARD, RESIZE_CARD, UPDATE_CARD_CONTENT,
    REORDER_CARDS, ADD_SECTION, REMOVE_SECTION, UPDATE_SECTION_TITLE,
    MOVE_CARD_TO_SECTION, REORDER_SECTIONS, SET_BIO, CLEAR_BIO, RESET_STATE,
}

# Rapid repeats of these collapse into one undo step (typing)
DEBOUNCED_ACTIONS = {UPDATE_CARD_CONTENT, SET_BIO}


@dataclass
class Action:
    type: str
    payload: Any = field(default=None)

    @classmethod
    def from_dict(cls, data: dict) -> "Action":
        return cls(type=data["type"], payload=data.get("payload"))
