"""Editor session endpoints: open/close, manual actions, undo/redo, save, export, media."""

import logging
import uuid

from fastapi import APIRouter, HTTPException, UploadFile
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from .. import db
from ..sessions import EditorSession, close_session, create_session, get_session
from ..store.actions import ALL_ACTIONS, SAVE, Action
from ..tools.export_html import generate_export_html

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


class CreateSessionRequest(BaseModel):
    username: str | None = None


class ActionRequest(BaseModel):
    type: str
    payload: dict | str | None = None


def require_session(session_id: str) -> EditorSession:
    session = get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def session_view(session: EditorSession) -> dict:
    history = session.store.history
    return {
        "session_id": session.id,
        "profile_id": session.profile_id,
        "state": session.store.state.model_dump(),
        "can_undo": history.can_undo,
        "can_redo": history.can_redo,
        "has_api_key": bool(session.api_key),
    }


@router.post("")
async def open_session(body: CreateSessionRequest | None = None):
    body = body or CreateSessionRequest()
    state, profile_id = None, None
    if body.username:
        try:
            loaded = db.load_portfolio(body.username)
        except db.PersistenceError as exc:
            logger.exception("Loading portfolio %s failed", body.username)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        if loaded is not None:
            profile, state = loaded
            profile_id = profile["id"]
    session = create_session(state, profile_id=profile_id)
    return session_view(session)


@router.get("/{session_id}")
async def read_session(session_id: str):
    return session_view(require_session(session_id))


@router.delete("/{session_id}")
async def delete_session(session_id: str):
    if not close_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"closed": True}


@router.post("/{session_id}/actions")
async def dispatch_action(session_id: str, body: ActionRequest):
    session = require_session(session_id)
    if body.type not in ALL_ACTIONS:
        raise HTTPException(status_code=400, detail=f"Unknown action type: {body.type}")
    try:
        session.dispatch(Action(body.type, body.payload))
    except (KeyError, TypeError, ValueError) as exc:
        raise HTTPException(status_code=400, detail=f"Malformed {body.type} payload: {exc}") from exc
    return session_view(session)


@router.post("/{session_id}/undo")
async def undo(session_id: str):
    session = require_session(session_id)
    return {"applied": session.store.undo(), **session_view(session)}


@router.post("/{session_id}/redo")
async def redo(session_id: str):
    session = require_session(session_id)
    return {"applied": session.store.redo(), **session_view(session)}


@router.post("/{session_id}/save")
async def save(session_id: str):
    session = require_session(session_id)
    if session.profile_id is None:
        raise HTTPException(status_code=400, detail="Session is not linked to a stored profile")
    try:
        db.save_portfolio(session.profile_id, session.store.state)
    except db.PersistenceError as exc:
        logger.exception("Saving session %s failed", session_id)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    session.dispatch(Action(SAVE))
    return session_view(session)


@router.get("/{session_id}/export", response_class=HTMLResponse)
async def export(session_id: str, title: str = "Portfolio"):
    session = require_session(session_id)
    return HTMLResponse(generate_export_html(session.store.state, title=title))


@router.post("/{session_id}/media")
async def upload_media(session_id: str, file: UploadFile):
    session = require_session(session_id)
    contents = await file.read()
    ext = (file.filename or "media.png").rsplit(".", 1)[-1]
    path = f"{session.profile_id or session.id}/{uuid.uuid4().hex[:12]}.{ext}"
    try:
        url = db.upload_media(path, contents, file.content_type or "image/png")
    except db.PersistenceError as exc:
        logger.exception("Media upload for session %s failed", session_id)
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"url": url}
