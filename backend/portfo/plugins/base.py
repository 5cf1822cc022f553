"""Plugin contract shared by every agent-callable operation.

A plugin is a named operation with a JSON-schema parameter contract and a
handler that mutates portfolio state through the store. Handlers return
`{"success": True, "message": ..., **data}` or `{"success": False, "error": ...}`
and never raise across this boundary for bad input.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from jsonschema import Draft202012Validator

from ..models.schemas import PortfolioState
from ..store.actions import Action
from ..store.store import PortfolioStore

# How many schema errors to report back to the caller
_MAX_REPORTED_ERRORS = 3


@dataclass
class PluginContext:
    store: PortfolioStore

    @property
    def state(self) -> PortfolioState:
        return self.store.state

    def dispatch(self, type_: str, payload: Any = None) -> PortfolioState:
        return self.store.dispatch(Action(type_, payload))


Handler = Callable[[dict, PluginContext], dict]


@dataclass
class Plugin:
    name: str
    description: str
    parameters: dict
    handler: Handler

    def __post_init__(self):
        Draft202012Validator.check_schema(self.parameters)
        self._validator = Draft202012Validator(self.parameters)

    def validate(self, args: dict) -> list[str]:
        """Return human-readable schema violations (empty when valid)."""
        errors = sorted(self._validator.iter_errors(args), key=lambda e: list(e.path))
        messages = []
        for err in errors[:_MAX_REPORTED_ERRORS]:
            where = ".".join(str(p) for p in err.path)
            messages.append(f"{where}: {err.message}" if where else err.message)
        return messages

    def execute(self, args: dict | None, ctx: PluginContext) -> dict:
        args = args or {}
        problems = self.validate(args)
        if problems:
            return fail(f"Invalid arguments for {self.name}: " + "; ".join(problems))
        return self.handler(args, ctx)

    def to_tool_definition(self) -> dict:
        return {"name": self.name, "description": self.description, "parameters": self.parameters}


def ok(message: str, **data) -> dict:
    return {"success": True, "message": message, **data}


def fail(error: str) -> dict:
    return {"success": False, "error": error}


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


# Schema fragments reused across plugins
SECTION_REF = {
    "section_title": {"type": "string", "description": "Title of the section (case-insensitive)"},
    "section_index": {"type": "integer", "description": "Index of the section (0-based)"},
}
CARD_REF = {
    "card_index": {"type": "integer", "description": "Index of the card within the section (0-based)"},
    "card_title": {"type": "string", "description": "Caption or text content to match the card"},
}
SPAN = {"type": "integer", "minimum": 1, "maximum": 4}
