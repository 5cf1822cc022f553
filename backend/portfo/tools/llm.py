"""Model client for the chat agent — GitHub Models via the OpenAI SDK.

Internal message shape (provider-neutral):
    {"role": "system" | "user" | "assistant" | "tool", "content": str,
     "tool_calls": [{"id", "name", "arguments": dict}],   # assistant only
     "tool_call_id": str, "name": str}                     # tool only

Tool definitions are `{"name", "description", "parameters"}`. Translation to
and from the OpenAI wire shape happens here and nowhere else.
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal, Protocol

import openai
from openai import AsyncOpenAI

from ..config import DEFAULT_MODEL, GITHUB_MODELS_URL, MODEL_TIMEOUT_S
from .rate_limiter import RateLimiter, requests_per_minute
from .token_counter import TokenCounter, count_conversation_tokens, estimate_tokens, get_token_counter

logger = logging.getLogger(__name__)

PROVIDER = "github"
_EXPECTED_OUTPUT_TOKENS = 1000


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}


@dataclass
class LLMResponse:
    content: str
    tool_calls: list[ToolCall] = field(default_factory=list)
    finish_reason: Literal["stop", "tool_calls"] = "stop"
    model: str | None = None


class LLMError(Exception):
    def __init__(
        self,
        message: str,
        provider: str = PROVIDER,
        status_code: int | None = None,
        is_rate_limit: bool = False,
        is_auth_error: bool = False,
        is_timeout: bool = False,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.is_rate_limit = is_rate_limit
        self.is_auth_error = is_auth_error
        self.is_timeout = is_timeout

    def user_message(self) -> str:
        if self.is_auth_error:
            return f"API key error for {self.provider}. Please update your key."
        if self.is_rate_limit:
            return "Rate limited. Please wait a moment and try again."
        if self.is_timeout:
            return "The model took too long to respond. Please try again."
        return str(self)


class ModelClient(Protocol):
    """Clients may also define `async throttle(messages, model) -> float`, awaited before each chat."""

    async def chat(self, messages: list[dict], tools: list[dict], model: str | None = None) -> LLMResponse: ...


# ─────────────────────────────────────────────────────────────────────────────
# Wire translation
# ─────────────────────────────────────────────────────────────────────────────

def to_openai_messages(messages: list[dict]) -> list[dict]:
    out = []
    for msg in messages:
        if msg["role"] == "tool":
            out.append({"role": "tool", "tool_call_id": msg["tool_call_id"], "content": msg["content"]})
        elif msg["role"] == "assistant" and msg.get("tool_calls"):
            out.append({
                "role": "assistant",
                "content": msg.get("content") or None,
                "tool_calls": [
                    {
                        "id": tc["id"],
                        "type": "function",
                        "function": {"name": tc["name"], "arguments": json.dumps(tc["arguments"])},
                    }
                    for tc in msg["tool_calls"]
                ],
            })
        else:
            out.append({"role": msg["role"], "content": msg.get("content") or ""})
    return out


def to_openai_tools(tools: list[dict]) -> list[dict] | None:
    if not tools:
        return None
    return [{"type": "function", "function": t} for t in tools]


def parse_arguments(raw: str | dict | None) -> dict:
    """Tool-call arguments arrive as a JSON string; malformed JSON becomes {}."""
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Unparseable tool arguments: %s", raw[:200])
        return {}
    return parsed if isinstance(parsed, dict) else {}


def from_openai_choice(choice, model: str | None = None) -> LLMResponse:
    msg = choice.message
    tool_calls = [
        ToolCall(id=tc.id, name=tc.function.name, arguments=parse_arguments(tc.function.arguments))
        for tc in (msg.tool_calls or [])
    ]
    finish = "tool_calls" if choice.finish_reason == "tool_calls" or tool_calls else "stop"
    return LLMResponse(content=msg.content or "", tool_calls=tool_calls, finish_reason=finish, model=model)


def _wrap_sdk_error(exc: openai.OpenAIError) -> LLMError:
    if isinstance(exc, openai.APITimeoutError):
        return LLMError("Model request timed out", is_timeout=True)
    if isinstance(exc, openai.APIStatusError):
        message = exc.message or f"GitHub Models API error: {exc.status_code}"
        return LLMError(
            message,
            status_code=exc.status_code,
            is_rate_limit=exc.status_code == 429,
            is_auth_error=exc.status_code in (401, 403),
        )
    return LLMError(f"GitHub Models request failed: {exc}")


# ─────────────────────────────────────────────────────────────────────────────
# Clients
# ─────────────────────────────────────────────────────────────────────────────

class GitHubModelsClient:
    """OpenAI-compatible GitHub Models endpoint, with daily usage tracking.

    `throttle()` runs the usage checks and is awaited before each `chat()`.
    It may sleep for up to a minute, so callers keep it outside any request
    timeout.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = GITHUB_MODELS_URL,
        timeout: float = MODEL_TIMEOUT_S,
        counter: TokenCounter | None = None,
        client: AsyncOpenAI | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.counter = counter or get_token_counter()
        self._client = client or AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=timeout)
        self._sleep = sleep

    async def throttle(self, messages: list[dict], model: str | None = None) -> float:
        """Raise on an exhausted daily quota; wait out a full per-minute window."""
        model = model or DEFAULT_MODEL
        input_tokens = count_conversation_tokens(messages)
        check = self.counter.check_limits(model, input_tokens, _EXPECTED_OUTPUT_TOKENS)
        if not check.allowed:
            raise LLMError(check.warnings[0], is_rate_limit=True)
        for warning in check.warnings:
            logger.warning("[%s] %s", model, warning)

        delay = self.counter.minute_wait(input_tokens, _EXPECTED_OUTPUT_TOKENS)
        if delay > 0:
            logger.info("[%s] Per-minute token window full, waiting %.1fs", model, delay)
            await self._sleep(delay)
        return delay

    async def chat(self, messages: list[dict], tools: list[dict], model: str | None = None) -> LLMResponse:
        model = model or DEFAULT_MODEL
        kwargs = {"model": model, "messages": to_openai_messages(messages)}
        openai_tools = to_openai_tools(tools)
        if openai_tools:
            kwargs["tools"] = openai_tools

        try:
            resp = await self._client.chat.completions.create(**kwargs)
        except openai.OpenAIError as exc:
            raise _wrap_sdk_error(exc) from exc

        result = from_openai_choice(resp.choices[0], model=model)
        self.counter.record(model, count_conversation_tokens(messages), estimate_tokens(result.content))
        return result

    async def validate_key(self) -> bool:
        try:
            await self._client.chat.completions.create(
                model=DEFAULT_MODEL,
                messages=[{"role": "user", "content": "test"}],
                max_tokens=10,
            )
        except openai.OpenAIError as exc:
            logger.warning("GitHub Models key validation failed: %s", exc)
            return False
        return True


class RateLimitedClient:
    """Wraps a client with one RateLimiter per model."""

    def __init__(self, inner: ModelClient, limiter_factory=None):
        self.inner = inner
        self._factory = limiter_factory or (lambda model: RateLimiter(requests_per_minute(model)))
        self._limiters: dict[str, RateLimiter] = {}

    def limiter_for(self, model: str | None) -> RateLimiter:
        key = model or DEFAULT_MODEL
        if key not in self._limiters:
            self._limiters[key] = self._factory(key)
        return self._limiters[key]

    async def throttle(self, messages: list[dict], model: str | None = None) -> float:
        waited = await self.limiter_for(model).wait()
        inner_throttle = getattr(self.inner, "throttle", None)
        if inner_throttle is not None:
            waited += await inner_throttle(messages, model)
        return waited

    async def chat(self, messages: list[dict], tools: list[dict], model: str | None = None) -> LLMResponse:
        return await self.inner.chat(messages, tools, model=model)

    async def validate_key(self) -> bool:
        return await self.inner.validate_key()


def create_model_client(api_key: str | None) -> RateLimitedClient | None:
    """Rate-limited GitHub Models client, or None when no key is configured."""
    if not api_key:
        return None
    return RateLimitedClient(GitHubModelsClient(api_key))
