"""Chat agent loop against a scripted model client."""

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from portfo.agents.orchestrator import (
    ACTION_LIMIT_MESSAGE,
    FALLBACK_TEXT,
    NO_PROVIDER_MESSAGE,
    execute_tool_call,
    run_chat,
)
from portfo.config import MAX_CONTEXT_TOKENS
from portfo.plugins import PluginContext
from portfo.tools.llm import GitHubModelsClient, LLMError, LLMResponse, ToolCall
from portfo.tools.token_counter import TokenCounter


class ScriptedClient:
    """Returns the queued responses in order and records every request."""

    def __init__(self, *responses: LLMResponse):
        self.responses = list(responses)
        self.requests: list[list[dict]] = []

    async def chat(self, messages, tools, model=None):
        self.requests.append([dict(m) for m in messages])
        return self.responses.pop(0)


def tool_response(*calls: tuple[str, dict]) -> LLMResponse:
    return LLMResponse(
        content="",
        tool_calls=[ToolCall(id=f"call_{n}", name=name, arguments=args) for n, (name, args) in enumerate(calls)],
        finish_reason="tool_calls",
    )


def tool_messages(history: list[dict]) -> list[dict]:
    return [json.loads(m["content"]) for m in history if m["role"] == "tool"]


class TestNoProvider:
    @pytest.mark.asyncio
    async def test_returns_guidance_without_calls(self, store):
        before = store.state
        result = await run_chat("Add a section", [], store, client=None)
        assert result.final_text == NO_PROVIDER_MESSAGE
        assert result.iterations == 0
        assert result.tool_calls == 0
        assert store.state is before
        assert [m["role"] for m in result.updated_history] == ["user", "assistant"]


class TestLoop:
    @pytest.mark.asyncio
    async def test_plain_reply_ends_after_one_call(self, store):
        client = ScriptedClient(LLMResponse(content="Hi! What should we build?"))
        result = await run_chat("hello", [], store, client)
        assert result.final_text == "Hi! What should we build?"
        assert result.iterations == 1
        assert len(client.requests) == 1
        assert client.requests[0][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_tool_call_then_summary(self, store):
        client = ScriptedClient(
            tool_response(("create_section", {"title": "Press"})),
            LLMResponse(content="Created the Press section."),
        )
        result = await run_chat("add a press section", [], store, client)
        assert result.iterations == 2
        assert result.tool_calls == 1
        assert [s.title for s in store.state.sections][-1] == "Press"
        assert tool_messages(result.updated_history)[0]["success"] is True
        # The second request sees the updated state in its system prompt
        assert '"Press"' in client.requests[1][0]["content"]

    @pytest.mark.asyncio
    async def test_nonexistent_section_error_feeds_second_iteration(self, store):
        client = ScriptedClient(
            tool_response(("add_card", {"section_title": "Projects"})),
            LLMResponse(content="There is no Projects section. Did you mean Work?"),
        )
        result = await run_chat("add a card to projects", [], store, client)
        assert result.iterations == 2
        error = tool_messages(result.updated_history)[0]
        assert error["success"] is False
        assert '"Work"' in error["error"] and '"About"' in error["error"]
        tool_msg = next(m for m in client.requests[1] if m["role"] == "tool")
        assert tool_msg["tool_call_id"] == "call_0"

    @pytest.mark.asyncio
    async def test_unknown_tool_is_reported_and_loop_continues(self, store):
        client = ScriptedClient(
            tool_response(("launch_rockets", {})),
            LLMResponse(content="I can't do that."),
        )
        result = await run_chat("launch", [], store, client)
        assert tool_messages(result.updated_history) == [{"success": False, "error": "Unknown tool: launch_rockets"}]
        assert result.final_text == "I can't do that."

    @pytest.mark.asyncio
    async def test_iteration_cap_truncates_and_reports(self, store):
        client = ScriptedClient(*[tool_response(("list_sections", {})) for _ in range(10)])
        result = await run_chat("keep going", [], store, client, max_iterations=5)
        assert len(client.requests) == 5
        assert result.iterations == 5
        assert result.tool_calls == 5
        assert result.truncated is True
        assert result.final_text == ACTION_LIMIT_MESSAGE

    @pytest.mark.asyncio
    async def test_empty_final_reply_falls_back(self, store):
        client = ScriptedClient(LLMResponse(content=""))
        result = await run_chat("hmm", [], store, client)
        assert result.final_text == FALLBACK_TEXT

    @pytest.mark.asyncio
    async def test_history_is_extended(self, store):
        history = [{"role": "user", "content": "earlier"}, {"role": "assistant", "content": "ok"}]
        client = ScriptedClient(LLMResponse(content="sure"))
        result = await run_chat("again", history, store, client)
        assert result.updated_history[:2] == history
        assert result.updated_history[-1] == {"role": "assistant", "content": "sure"}
        assert [m["content"] for m in client.requests[0][1:]] == ["earlier", "ok", "again"]


class TestFailures:
    @pytest.mark.asyncio
    async def test_timeout_becomes_llm_error(self, store):
        class SlowClient:
            async def chat(self, messages, tools, model=None):
                await asyncio.sleep(1)

        with pytest.raises(LLMError) as info:
            await run_chat("hi", [], store, SlowClient(), timeout_s=0.01)
        assert info.value.is_timeout

    @pytest.mark.asyncio
    async def test_model_error_rolls_back_earlier_tool_changes(self, store):
        class FailingSecondCall(ScriptedClient):
            async def chat(self, messages, tools, model=None):
                if self.requests:
                    raise LLMError("boom", status_code=500)
                return await super().chat(messages, tools, model)

        before = store.state
        changes = []
        store.subscribe(lambda old, new, action: changes.append(action.type))
        client = FailingSecondCall(tool_response(("create_section", {"title": "Press"})))
        with pytest.raises(LLMError):
            await run_chat("add press", [], store, client)
        assert store.state is before
        assert [s.title for s in store.state.sections] == ["Work", "About"]
        assert not store.history.can_undo
        assert changes == ["ADD_SECTION", "RESTORE_SNAPSHOT"]

    @pytest.mark.asyncio
    async def test_failure_before_any_tool_leaves_store_untouched(self, store):
        class Failing:
            async def chat(self, messages, tools, model=None):
                raise LLMError("boom", status_code=500)

        changes = []
        store.subscribe(lambda old, new, action: changes.append(action.type))
        with pytest.raises(LLMError):
            await run_chat("hi", [], store, Failing())
        assert changes == []

    def test_handler_exception_becomes_failure(self, store, monkeypatch):
        from portfo.plugins import registry

        plugin = registry.get_plugin("list_sections")

        def explode(args, ctx):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(plugin, "handler", explode)
        result = execute_tool_call(ToolCall("c1", "list_sections", {}), PluginContext(store))
        assert result == {"success": False, "error": "Tool execution error: kaboom"}


class TestRealClientLoop:
    """Several tool iterations through GitHubModelsClient against a stand-in SDK."""

    @staticmethod
    def sdk(*choices) -> MagicMock:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            side_effect=[SimpleNamespace(choices=[c]) for c in choices]
        )
        return client

    @staticmethod
    def wire_choice(content="", call=None):
        tool_calls = None
        if call:
            name, args = call
            tool_calls = [SimpleNamespace(id=f"call_{name}_{args.get('title')}",
                                          function=SimpleNamespace(name=name, arguments=json.dumps(args)))]
        return SimpleNamespace(
            message=SimpleNamespace(content=content, tool_calls=tool_calls),
            finish_reason="tool_calls" if call else "stop",
        )

    @pytest.mark.asyncio
    async def test_per_minute_window_waits_across_tool_iterations(self, store):
        now = [0.0]
        slept = []

        async def sleep(seconds):
            slept.append(seconds)
            now[0] += seconds

        sdk = self.sdk(
            self.wire_choice(call=("create_section", {"title": "Press"})),
            self.wire_choice(call=("create_section", {"title": "Talks"})),
            self.wire_choice(call=("create_section", {"title": "Awards"})),
            self.wire_choice(content="Added three sections."),
        )
        counter = TokenCounter(clock=lambda: now[0])
        client = GitHubModelsClient("ghp_test", counter=counter, client=sdk, sleep=sleep)
        # About 110 tokens each, so every request is trimmed to just under the context budget
        history = [{"role": "user" if i % 2 == 0 else "assistant", "content": "x" * 400} for i in range(40)]

        result = await run_chat("add press, talks and awards", history, store, client, model="gpt-4o-mini")

        assert result.iterations == 4
        assert result.truncated is False
        assert result.final_text == "Added three sections."
        assert [s.title for s in store.state.sections] == ["Work", "About", "Press", "Talks", "Awards"]
        assert sdk.chat.completions.create.await_count == 4
        # Two trimmed requests plus the expected reply overflow one minute, so every later call waits
        assert len(slept) == 3
        usage = counter.daily_usage("gpt-4o-mini")
        assert usage["requests"] == 4
        assert usage["input_tokens"] <= 4 * MAX_CONTEXT_TOKENS
        for call in sdk.chat.completions.create.await_args_list:
            sent = call.kwargs["messages"]
            assert sent[0]["role"] == "system"
            assert len(sent) < len(history)

    @pytest.mark.asyncio
    async def test_exhausted_daily_quota_mid_turn_rolls_back(self, store):
        counter = TokenCounter()
        counter.record("gpt-4o", requests=49)
        sdk = self.sdk(
            self.wire_choice(call=("create_section", {"title": "Press"})),
            self.wire_choice(content="never sent"),
        )
        client = GitHubModelsClient("ghp_test", counter=counter, client=sdk)

        with pytest.raises(LLMError) as info:
            await run_chat("add press", [], store, client, model="gpt-4o")
        assert info.value.is_rate_limit
        assert sdk.chat.completions.create.await_count == 1
        assert [s.title for s in store.state.sections] == ["Work", "About"]
