from .base import Plugin, PluginContext, fail, ok
from .registry import ALL_PLUGINS, get_plugin, get_tool_definitions

__all__ = ["ALL_PLUGINS", "Plugin", "PluginContext", "fail", "get_plugin", "get_tool_definitions", "ok"]
