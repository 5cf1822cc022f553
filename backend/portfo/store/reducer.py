"""Pure reducer: (state, action) → new state.

The input state is never mutated. Unknown action types and actions that
reference missing entities return the state unchanged.
"""

import logging
from datetime import UTC, datetime

from ..models.schemas import (
    CARD_COLORS,
    Bio,
    Card,
    CardContent,
    CardSize,
    GridConfig,
    PortfolioState,
    Section,
    new_id,
)
from . import actions as A
from .actions import Action

logger = logging.getLogger(__name__)


def _clamp_span(value) -> int:
    try:
        return max(1, min(4, int(value)))
    except (TypeError, ValueError):
        return 1


def _move(items: list, from_index: int, to_index: int) -> bool:
    if not (0 <= from_index < len(items) and 0 <= to_index < len(items)):
        return False
    item = items.pop(from_index)
    items.insert(to_index, item)
    return True


def _find_section(state: PortfolioState, section_id: str) -> Section | None:
    return next((s for s in state.sections if s.id == section_id), None)


def make_card(state: PortfolioState, payload: dict) -> Card:
    """Build a new card, cycling the default background colour."""
    content = CardContent(bg_color=CARD_COLORS[state.card_count() % len(CARD_COLORS)])
    if payload.get("content"):
        content = content.with_updates(payload["content"])
    return Card(
        id=payload.get("id") or new_id(),
        size=CardSize(cols=_clamp_span(payload.get("cols", 1)), rows=_clamp_span(payload.get("rows", 1))),
        content=content,
    )


def reduce(state: PortfolioState, action: Action) -> PortfolioState:
    t = action.type
    p = action.payload

    if t == A.SET_MODE:
        return state.model_copy(update={"mode": p, "selected_card_id": None})

    if t == A.SELECT_CARD:
        return state.model_copy(update={"selected_card_id": p})

    if t == A.DESELECT_CARD:
        return state.model_copy(update={"selected_card_id": None})

    if t == A.SAVE:
        saved_at = (p or {}).get("saved_at") or datetime.now(UTC).isoformat()
        return state.model_copy(update={"is_dirty": False, "last_saved": saved_at})

    if t == A.SET_GRID_CONFIG:
        config = GridConfig.model_validate({**state.grid_config.model_dump(), **(p or {})})
        return state.model_copy(update={"grid_config": config, "is_dirty": True})

    if t == A.LOAD_STATE:
        p = p or {}
        return PortfolioState(
            mode=state.mode,
            sections=[Section.model_validate(s) for s in p.get("sections", [])],
            bio=Bio.model_validate(p["bio"]) if p.get("bio") else None,
            grid_config=GridConfig.model_validate(p["grid_config"]) if p.get("grid_config") else state.grid_config,
            last_saved=p.get("last_saved"),
            is_dirty=False,
        )

    if t == A.RESTORE_SNAPSHOT:
        return state.model_copy(update={
            "sections": [Section.model_validate(s) for s in p.get("sections", [])],
            "bio": Bio.model_validate(p["bio"]) if p.get("bio") else None,
            "selected_card_id": None,
            "is_dirty": True,
        }, deep=True)

    if t == A.RESET_STATE:
        return state.model_copy(update={
            "sections": [], "bio": None, "selected_card_id": None, "is_dirty": True,
        })

    if t not in A.ALL_ACTIONS:
        logger.warning("Ignoring unknown action %s", t)
        return state

    new = state.model_copy(deep=True)

    if t == A.ADD_CARD:
        section = _find_section(new, p["section_id"])
        if section is None:
            return state
        card = make_card(state, p)
        insert_index = p.get("insert_index")
        if insert_index is None or not 0 <= insert_index <= len(section.cards):
            section.cards.append(card)
        else:
            section.cards.insert(insert_index, card)
        new.is_dirty = True
        return new

    if t == A.REMOVE_CARD:
        found = new.find_card(p)
        if found is None:
            return state
        section, index = found
        del section.cards[index]
        if new.selected_card_id == p:
            new.selected_card_id = None
        new.is_dirty = True
        return new

    if t == A.RESIZE_CARD:
        found = new.find_card(p["id"])
        if found is None:
            return state
        section, index = found
        section.cards[index].size = CardSize(cols=_clamp_span(p["cols"]), rows=_clamp_span(p["rows"]))
        new.is_dirty = True
        return new

    if t == A.UPDATE_CARD_CONTENT:
        found = new.find_card(p["id"])
        if found is None:
            return state
        section, index = found
        card = section.cards[index]
        card.content = card.content.with_updates(p.get("updates") or {})
        new.is_dirty = True
        return new

    if t == A.REORDER_CARDS:
        section = _find_section(new, p["section_id"])
        if section is None or not _move(section.cards, p["from_index"], p["to_index"]):
            return state
        new.is_dirty = True
        return new

    if t == A.MOVE_CARD_TO_SECTION:
        source = _find_section(new, p["from_section_id"])
        target = _find_section(new, p["to_section_id"])
        if source is None or target is None:
            return state
        index = next((i for i, c in enumerate(source.cards) if c.id == p["card_id"]), None)
        if index is None:
            return state
        card = source.cards.pop(index)
        to_index = p.get("to_index")
        if to_index is None or not 0 <= to_index <= len(target.cards):
            target.cards.append(card)
        else:
            target.cards.insert(to_index, card)
        new.is_dirty = True
        return new

    if t == A.ADD_SECTION:
        new.sections.append(Section(id=p.get("id") or new_id(), title=p["title"]))
        new.is_dirty = True
        return new

    if t == A.REMOVE_SECTION:
        section = _find_section(new, p)
        if section is None:
            return state
        removed_ids = {c.id for c in section.cards}
        new.sections = [s for s in new.sections if s.id != p]
        if new.selected_card_id in removed_ids:
            new.selected_card_id = None
        new.is_dirty = True
        return new

    if t == A.UPDATE_SECTION_TITLE:
        section = _find_section(new, p["id"])
        if section is None:
            return state
        section.title = p["title"]
        new.is_dirty = True
        return new

    if t == A.REORDER_SECTIONS:
        if not _move(new.sections, p["from_index"], p["to_index"]):
            return state
        new.is_dirty = True
        return new

    if t == A.SET_BIO:
        base = new.bio.model_dump() if new.bio else Bio().model_dump()
        new.bio = Bio.model_validate({**base, **(p or {})})
        new.is_dirty = True
        return new

    if t == A.CLEAR_BIO:
        new.bio = None
        new.is_dirty = True
        return new

    return state
