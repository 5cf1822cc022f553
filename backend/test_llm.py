"""GitHub Models client: wire translation, error mapping, usage limits, rate limiting."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from portfo.tools.llm import (
    GitHubModelsClient,
    LLMError,
    RateLimitedClient,
    create_model_client,
    from_openai_choice,
    parse_arguments,
    to_openai_messages,
    to_openai_tools,
)
from portfo.tools.token_counter import TokenCounter


def choice(content=None, tool_calls=None, finish_reason="stop"):
    return SimpleNamespace(
        message=SimpleNamespace(content=content, tool_calls=tool_calls),
        finish_reason=finish_reason,
    )


def wire_tool_call(call_id, name, arguments):
    return SimpleNamespace(id=call_id, function=SimpleNamespace(name=name, arguments=arguments))


def sdk_client(*results):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=list(results))
    return client


def status_error(status: int) -> openai.APIStatusError:
    request = httpx.Request("POST", "https://models.example/chat/completions")
    response = httpx.Response(status, request=request)
    return openai.APIStatusError("denied", response=response, body=None)


class TestTranslation:
    def test_messages(self):
        messages = [
            {"role": "system", "content": "sys"},
            {"role": "assistant", "content": "", "tool_calls": [{"id": "c1", "name": "list_sections", "arguments": {}}]},
            {"role": "tool", "tool_call_id": "c1", "name": "list_sections", "content": '{"success": true}'},
        ]
        wire = to_openai_messages(messages)
        assert wire[0] == {"role": "system", "content": "sys"}
        assert wire[1]["content"] is None
        assert wire[1]["tool_calls"][0] == {
            "id": "c1", "type": "function", "function": {"name": "list_sections", "arguments": "{}"},
        }
        assert wire[2] == {"role": "tool", "tool_call_id": "c1", "content": '{"success": true}'}

    def test_tools(self):
        assert to_openai_tools([]) is None
        tool = {"name": "t", "description": "d", "parameters": {"type": "object"}}
        assert to_openai_tools([tool]) == [{"type": "function", "function": tool}]

    def test_parse_arguments(self):
        assert parse_arguments('{"title": "A"}') == {"title": "A"}
        assert parse_arguments("{not json") == {}
        assert parse_arguments("[1, 2]") == {}
        assert parse_arguments(None) == {}

    def test_from_choice_with_tool_calls(self):
        result = from_openai_choice(
            choice(tool_calls=[wire_tool_call("c1", "create_section", '{"title": "Press"}')], finish_reason="tool_calls"),
            model="gpt-4o-mini",
        )
        assert result.finish_reason == "tool_calls"
        assert result.content == ""
        assert result.tool_calls[0].arguments == {"title": "Press"}

    def test_from_choice_plain(self):
        result = from_openai_choice(choice(content="hi"))
        assert (result.content, result.tool_calls, result.finish_reason) == ("hi", [], "stop")


class TestGitHubModelsClient:
    @pytest.mark.asyncio
    async def test_chat_records_usage(self):
        counter = TokenCounter()
        sdk = sdk_client(SimpleNamespace(choices=[choice(content="done")]))
        client = GitHubModelsClient("ghp_test", counter=counter, client=sdk)
        result = await client.chat([{"role": "user", "content": "hello"}], [], model="gpt-4o-mini")
        assert result.content == "done"
        assert counter.daily_usage("gpt-4o-mini")["requests"] == 1
        kwargs = sdk.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert "tools" not in kwargs

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,flag", [(429, "is_rate_limit"), (401, "is_auth_error"), (403, "is_auth_error")])
    async def test_status_errors_are_wrapped(self, status, flag):
        client = GitHubModelsClient("ghp_test", counter=TokenCounter(), client=sdk_client(status_error(status)))
        with pytest.raises(LLMError) as info:
            await client.chat([{"role": "user", "content": "x"}], [])
        assert getattr(info.value, flag)
        assert info.value.status_code == status

    @pytest.mark.asyncio
    async def test_exhausted_daily_quota_blocks_request(self):
        counter = TokenCounter()
        counter.record("gpt-4o", requests=50)
        sdk = sdk_client()
        client = GitHubModelsClient("ghp_test", counter=counter, client=sdk)
        with pytest.raises(LLMError) as info:
            await client.throttle([{"role": "user", "content": "x"}], model="gpt-4o")
        assert info.value.is_rate_limit
        sdk.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_full_minute_window_is_waited_out(self):
        now = [0.0]
        slept = []

        async def sleep(seconds):
            slept.append(seconds)
            now[0] += seconds

        counter = TokenCounter(clock=lambda: now[0])
        counter.record("gpt-4o-mini", input_tokens=5000)
        now[0] = 20.0
        counter.record("gpt-4o-mini", input_tokens=2000)
        client = GitHubModelsClient("ghp_test", counter=counter, client=sdk_client(), sleep=sleep)

        waited = await client.throttle([{"role": "user", "content": "x" * 4000}], model="gpt-4o-mini")
        # Only the first entry has to age out for 1010 more tokens to fit
        assert waited == pytest.approx(40.1)
        assert slept == [waited]
        assert counter.minute_usage()["input_tokens"] == 2000

    @pytest.mark.asyncio
    async def test_room_in_window_does_not_wait(self):
        sleep = AsyncMock()
        client = GitHubModelsClient("ghp_test", counter=TokenCounter(), client=sdk_client(), sleep=sleep)
        assert await client.throttle([{"role": "user", "content": "hi"}]) == 0.0
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_validate_key(self):
        good = GitHubModelsClient("k", counter=TokenCounter(), client=sdk_client(SimpleNamespace(choices=[])))
        bad = GitHubModelsClient("k", counter=TokenCounter(), client=sdk_client(status_error(401)))
        assert await good.validate_key() is True
        assert await bad.validate_key() is False

    def test_error_user_messages(self):
        assert "API key error" in LLMError("x", is_auth_error=True).user_message()
        assert "Rate limited" in LLMError("x", is_rate_limit=True).user_message()


class TestRateLimitedClient:
    @pytest.mark.asyncio
    async def test_one_limiter_per_model(self):
        inner = MagicMock()
        inner.chat = AsyncMock(return_value="ok")
        inner.throttle = AsyncMock(return_value=1.5)
        limiters = {}

        def factory(model):
            limiter = MagicMock()
            limiter.wait = AsyncMock(return_value=0.0)
            limiters[model] = limiter
            return limiter

        client = RateLimitedClient(inner, limiter_factory=factory)
        await client.throttle([], model="gpt-4o")
        await client.throttle([], model="gpt-4o")
        assert await client.throttle([], model="gpt-4o-mini") == 1.5
        assert set(limiters) == {"gpt-4o", "gpt-4o-mini"}
        assert limiters["gpt-4o"].wait.await_count == 2
        assert inner.throttle.await_count == 3

    @pytest.mark.asyncio
    async def test_chat_does_not_touch_the_limiter(self):
        inner = MagicMock()
        inner.chat = AsyncMock(return_value="ok")
        factory = MagicMock()
        client = RateLimitedClient(inner, limiter_factory=factory)
        assert await client.chat([], [], model="gpt-4o") == "ok"
        factory.assert_not_called()

    def test_no_key_no_client(self):
        assert create_model_client(None) is None
        assert create_model_client("") is None
