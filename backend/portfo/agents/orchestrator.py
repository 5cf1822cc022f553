"""
Chat agent loop — the model edits the portfolio through plugin tool calls.

Each turn sends the accumulated messages (system prompt rebuilt from the
current state) plus the tool definitions. A reply without tool calls is the
final answer. Otherwise every requested call is dispatched to the plugin
registry and its result fed back as a tool message, then the loop repeats.

The loop is capped at MAX_TOOL_ITERATIONS model calls. Hitting the cap while
the model still wants tools truncates the plan and reports it; it is not
retried or continued.

Plugin failures never escape: an unknown tool name or an exception inside a
handler becomes `{"success": false, "error": ...}` for the model to read.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field

from ..config import MAX_CONTEXT_TOKENS, MAX_TOOL_ITERATIONS, MODEL_TIMEOUT_S
from ..plugins import PluginContext, fail, get_plugin, get_tool_definitions
from ..prompts.system_prompt import build_system_prompt
from ..store.store import PortfolioStore
from ..tools.context_optimizer import trim_history
from ..tools.llm import LLMError, LLMResponse, ModelClient, ToolCall
from ..tools.model_selector import select_model

logger = logging.getLogger(__name__)

NO_PROVIDER_MESSAGE = (
    "I need an LLM provider to help you. Please set one up first:\n\n"
    '- "Set my GitHub key: ghp_..."'
)
ACTION_LIMIT_MESSAGE = (
    "I reached the maximum number of actions for this request. Here's what I've done so far. "
    "Please check the preview and let me know if you need anything else."
)
FALLBACK_TEXT = "Done."


@dataclass
class OrchestratorResult:
    final_text: str
    updated_history: list[dict]
    iterations: int = 0
    tool_calls: int = 0
    truncated: bool = False
    model: str | None = None
    tool_results: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "message": self.final_text,
            "iterations": self.iterations,
            "tool_calls": self.tool_calls,
            "truncated": self.truncated,
            "model": self.model,
            "tool_results": self.tool_results,
        }


def execute_tool_call(call: ToolCall, ctx: PluginContext) -> dict:
    plugin = get_plugin(call.name)
    if plugin is None:
        return fail(f"Unknown tool: {call.name}")
    try:
        return plugin.execute(call.arguments, ctx)
    except Exception as exc:
        logger.exception("Tool %s raised", call.name)
        return fail(f"Tool execution error: {exc}")


async def _call_model(
    client: ModelClient,
    messages: list[dict],
    tools: list[dict],
    model: str | None,
    timeout_s: float | None,
) -> LLMResponse:
    # Rate-limit waits can last a full minute and are not part of the request timeout
    throttle = getattr(client, "throttle", None)
    if throttle is not None:
        await throttle(messages, model)
    request = client.chat(messages, tools, model=model)
    if timeout_s is None:
        return await request
    try:
        return await asyncio.wait_for(request, timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        raise LLMError(f"Model request timed out after {timeout_s:g}s", is_timeout=True) from exc


async def run_chat(
    user_message: str,
    history: list[dict],
    store: PortfolioStore,
    client: ModelClient | None,
    model: str | None = None,
    max_iterations: int = MAX_TOOL_ITERATIONS,
    timeout_s: float | None = MODEL_TIMEOUT_S,
) -> OrchestratorResult:
    """Run one user turn.

    Raises LLMError if a model call fails. Tool changes already applied in
    the turn are rolled back first, undo history included.
    """
    user_msg = {"role": "user", "content": user_message}

    if client is None:
        return OrchestratorResult(
            final_text=NO_PROVIDER_MESSAGE,
            updated_history=[*history, user_msg, {"role": "assistant", "content": NO_PROVIDER_MESSAGE}],
        )

    tools = get_tool_definitions()
    model = model or select_model(user_message, len(history))
    ctx = PluginContext(store)
    checkpoint = store.checkpoint()

    messages = [{"role": "system", "content": build_system_prompt(store.state)}, *history, user_msg]
    new_messages = [user_msg]
    result = OrchestratorResult(final_text=FALLBACK_TEXT, updated_history=[], model=model)

    for iteration in range(1, max_iterations + 1):
        result.iterations = iteration
        logger.info("Chat — turn %d/%d (%s)", iteration, max_iterations, model)
        # Tool results grow the context every iteration
        messages, _ = trim_history(messages, max_tokens=MAX_CONTEXT_TOKENS)
        try:
            response = await _call_model(client, messages, tools, model, timeout_s)
        except LLMError:
            if store.rollback(checkpoint):
                logger.warning("Model call failed after %d tool calls; changes rolled back", result.tool_calls)
            raise

        if not response.tool_calls:
            assistant = {"role": "assistant", "content": response.content}
            new_messages.append(assistant)
            messages.append(assistant)
            break

        assistant = {
            "role": "assistant",
            "content": response.content or "",
            "tool_calls": [tc.to_dict() for tc in response.tool_calls],
        }
        new_messages.append(assistant)
        messages.append(assistant)

        for call in response.tool_calls:
            logger.info("  → %s(%s)", call.name, json.dumps(call.arguments)[:200])
            outcome = execute_tool_call(call, ctx)
            logger.info("  ← %s", json.dumps(outcome, default=str)[:200])
            result.tool_calls += 1
            result.tool_results.append({"name": call.name, **outcome})
            tool_msg = {
                "role": "tool",
                "tool_call_id": call.id,
                "name": call.name,
                "content": json.dumps(outcome, default=str),
            }
            new_messages.append(tool_msg)
            messages.append(tool_msg)

        # Tools may have changed the state the prompt describes
        messages[0] = {"role": "system", "content": build_system_prompt(store.state)}
    else:
        result.truncated = True
        logger.warning("Chat hit the %d-iteration cap with tool calls pending", max_iterations)
        new_messages.append({"role": "assistant", "content": ACTION_LIMIT_MESSAGE})

    last_assistant = next((m for m in reversed(new_messages) if m["role"] == "assistant"), None)
    result.final_text = (last_assistant or {}).get("content") or FALLBACK_TEXT
    result.updated_history = [*history, *new_messages]
    return result
