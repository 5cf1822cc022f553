"""Chat and API-key endpoints for the editing assistant."""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from ..agents.key_commands import SUPPORTED_PROVIDERS, KeyCommand, parse_key_command
from ..agents.orchestrator import run_chat
from ..sessions import EditorSession
from ..tools.llm import LLMError
from ..tools.token_counter import get_token_counter
from .portfolio import require_session, session_view

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["chat"])

CHAT_CLEARED_MESSAGE = "Chat cleared. What would you like to work on?"


class ChatRequest(BaseModel):
    message: str
    model: str | None = None


class KeyRequest(BaseModel):
    api_key: str
    provider: str = "github"
    validate_key: bool = False


def _reply(session: EditorSession, user_message: str, text: str, **extra) -> dict:
    session.history.extend([
        {"role": "user", "content": user_message},
        {"role": "assistant", "content": text},
    ])
    return {"message": text, "iterations": 0, "tool_calls": 0, "truncated": False, **extra}


async def _handle_key_command(session: EditorSession, command: KeyCommand) -> str:
    if command.action == "status":
        if not session.api_key:
            return "No provider is set up yet. Say \"Set my GitHub key: ghp_...\" to add one."
        return "Using GitHub Models. The model is picked per request based on its complexity."
    if command.provider not in SUPPORTED_PROVIDERS:
        return f"I don't support the {command.provider} provider. Supported: {', '.join(sorted(SUPPORTED_PROVIDERS))}."
    if command.action == "remove":
        session.set_api_key(None)
        return "Your GitHub key has been removed."
    session.set_api_key(command.api_key)
    if not await session.client.validate_key():
        session.set_api_key(None)
        return "GitHub Models rejected that key, so it was not saved. Please check it and try again."
    return "Your GitHub key is set. What would you like to change in your portfolio?"


@router.post("/{session_id}/keys")
async def set_key(session_id: str, body: KeyRequest):
    session = require_session(session_id)
    if body.provider not in SUPPORTED_PROVIDERS:
        return {"ok": False, "error": f"Unsupported provider: {body.provider}"}
    session.set_api_key(body.api_key)
    if body.validate_key and not await session.client.validate_key():
        session.set_api_key(None)
        return {"ok": False, "error": "The key was rejected by GitHub Models"}
    return {"ok": True}


@router.delete("/{session_id}/keys")
async def clear_key(session_id: str):
    session = require_session(session_id)
    session.set_api_key(None)
    return {"ok": True}


@router.delete("/{session_id}/history")
async def clear_history(session_id: str):
    session = require_session(session_id)
    session.history = []
    return {"ok": True}


@router.get("/{session_id}/usage")
async def usage(session_id: str):
    require_session(session_id)
    return get_token_counter().report()


@router.post("/{session_id}/chat")
async def chat(session_id: str, body: ChatRequest):
    session = require_session(session_id)

    if command := parse_key_command(body.message):
        if command.action == "clear":
            session.history = []
            logger.info("Chat history cleared for session %s", session_id)
            return {
                "message": CHAT_CLEARED_MESSAGE, "iterations": 0, "tool_calls": 0, "truncated": False, "cleared": True,
            }
        # Keys never reach the model through the history
        shown = body.message.replace(command.api_key, "***") if command.api_key else body.message
        return _reply(session, shown, await _handle_key_command(session, command))

    try:
        result = await run_chat(body.message, session.history, session.store, session.client, model=body.model)
    except LLMError as exc:
        logger.exception("Chat failed for session %s", session_id)
        text = f"Sorry, I hit an error: {exc.user_message()}"
        return {**_reply(session, body.message, text, error=str(exc)), "state": session.store.state.model_dump()}

    session.history = result.updated_history
    return {**result.to_dict(), "state": session_view(session)["state"]}
