"""Layout endpoints: per-session packing and a stateless pack service."""

import logging

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from ..layout.columns import resolve_columns
from ..layout.empty_cells import locate_in_layout
from ..layout.grid_types import GridItem
from ..layout.packer import MAX_SPAN, pack
from ..models.schemas import GridConfig
from .portfolio import require_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["layout"])


MAX_PACK_COLUMNS = 12
MAX_PACK_ITEMS = 500


class PackItem(BaseModel):
    id: str
    # Non-positive spans are clamped by the packer
    cols: int = Field(default=1, le=MAX_SPAN)
    rows: int = Field(default=1, le=MAX_SPAN)


class PackRequest(BaseModel):
    items: list[PackItem] = Field(default_factory=list, max_length=MAX_PACK_ITEMS)
    max_columns: int = Field(default=4, ge=1, le=MAX_PACK_COLUMNS)
    container_width: float | None = None
    cell_gap: float = 8
    include_empty_cells: bool = True


class DragStartRequest(BaseModel):
    section_id: str
    index: int
    x: float
    y: float


class DragMoveRequest(BaseModel):
    x: float
    y: float
    viewport_top: float | None = None
    viewport_height: float | None = None


@router.post("/layout/pack")
async def pack_items(body: PackRequest):
    columns = body.max_columns
    if body.container_width is not None:
        columns = resolve_columns(body.container_width, body.max_columns, body.cell_gap)
    layout = pack([GridItem(i.id, i.cols, i.rows) for i in body.items], columns)
    result = layout.to_dict()
    if body.include_empty_cells:
        result["empty_cells"] = [c.to_dict() for c in locate_in_layout(layout)]
    return result


@router.get("/sessions/{session_id}/layout")
async def session_layout(
    session_id: str,
    width: float | None = Query(default=None, gt=0),
    editable: bool | None = None,
):
    session = require_session(session_id)
    snapshots = session.layouts(width=width, editable=editable)
    return {
        "sections": [
            {
                "section_id": section_id,
                **snapshot.to_dict(),
                "animations": [a.to_dict() for a in session.animations.get(section_id, [])],
            }
            for section_id, snapshot in snapshots.items()
        ],
    }


@router.post("/sessions/{session_id}/grid")
async def update_grid(session_id: str, body: GridConfig):
    session = require_session(session_id)
    session.dispatch({"type": "SET_GRID_CONFIG", "payload": body.model_dump()})
    return {"grid_config": session.store.state.grid_config.model_dump()}


@router.post("/sessions/{session_id}/drag/start")
async def drag_start(session_id: str, body: DragStartRequest):
    session = require_session(session_id)
    try:
        ghost = session.start_drag(body.section_id, body.index, (body.x, body.y))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"card_id": session.drag.card_id, "ghost": ghost.to_dict()}


@router.post("/sessions/{session_id}/drag/move")
async def drag_move(session_id: str, body: DragMoveRequest):
    session = require_session(session_id)
    if not session.drag.is_dragging:
        raise HTTPException(status_code=409, detail="No drag in progress")
    viewport = None
    if body.viewport_top is not None and body.viewport_height is not None:
        viewport = (body.viewport_top, body.viewport_height)
    frame = session.drag.move(body.x, body.y, viewport)
    target = frame.target
    return {
        "ghost": frame.ghost.to_dict(),
        "target": None if target is None else {
            "section_id": target.section_id,
            "card_id": target.card_id,
            "card_index": target.card_index,
        },
        "scroll_dy": frame.scroll_dy,
    }


@router.post("/sessions/{session_id}/drag/end")
async def drag_end(session_id: str):
    session = require_session(session_id)
    intent = session.end_drag()
    return {
        "committed": intent is not None,
        "action": None if intent is None else {"type": intent.to_action().type, "payload": intent.to_action().payload},
    }
