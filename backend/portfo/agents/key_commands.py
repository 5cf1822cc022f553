"""Chat commands handled without calling a model: API key management and clearing the chat."""

import re
from dataclasses import dataclass
from typing import Literal

_SET_KEY = re.compile(r"(?:set|use|connect|add)\s+(?:my\s+)?(\w+)\s+key[:\s]+(\S+)", re.IGNORECASE)
_REMOVE_KEY = re.compile(r"(?:remove|delete|clear)\s+(?:my\s+)?(\w+)\s+key", re.IGNORECASE)
_WHICH = re.compile(r"(?:which|what)\s+(?:model|provider|key)", re.IGNORECASE)
_CLEAR_CHAT = re.compile(r"(?:clear|reset|start\s+new)\s+(?:chat|conversation|history)", re.IGNORECASE)
_CLEAR_ONLY = re.compile(r"^\s*(?:clear|reset)\s*$", re.IGNORECASE)

SUPPORTED_PROVIDERS = {"github"}


@dataclass
class KeyCommand:
    action: Literal["set", "remove", "status", "clear"]
    provider: str | None = None
    api_key: str | None = None


def parse_key_command(text: str) -> KeyCommand | None:
    """Recognise 'Set my GitHub key: ghp_...', 'remove my github key', 'which model?',
    and 'clear chat' / 'reset conversation' / 'start new chat'."""
    if m := _SET_KEY.search(text):
        return KeyCommand("set", m.group(1).lower(), m.group(2))
    if m := _REMOVE_KEY.search(text):
        return KeyCommand("remove", m.group(1).lower())
    if _WHICH.search(text):
        return KeyCommand("status")
    if _CLEAR_CHAT.search(text) or _CLEAR_ONLY.match(text):
        return KeyCommand("clear")
    return None
