"""The closed set of operations exposed to the agent."""

from .base import Plugin
from .bio_plugins import BIO_PLUGINS
from .card_plugins import CARD_PLUGINS
from .section_plugins import SECTION_PLUGINS

ALL_PLUGINS: list[Plugin] = [*SECTION_PLUGINS, *CARD_PLUGINS, *BIO_PLUGINS]

_BY_NAME = {p.name: p for p in ALL_PLUGINS}
assert len(_BY_NAME) == len(ALL_PLUGINS), "duplicate plugin name"


def get_plugin(name: str) -> Plugin | None:
    return _BY_NAME.get(name)


def get_tool_definitions() -> list[dict]:
    """Provider-neutral tool definitions: [{name, description, parameters}]."""
    return [p.to_tool_definition() for p in ALL_PLUGINS]
