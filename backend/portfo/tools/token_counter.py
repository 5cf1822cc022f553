"""Rough token estimates and per-model daily usage tracking.

GitHub Models free tier is quota'd per model per day, so usage is tracked
in-process and checked before each request. Counts reset when the UTC date
changes. The shared per-minute token window is a wait, not a failure.
"""

import json
import logging
import math
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
MESSAGE_OVERHEAD_TOKENS = 10
WARNING_PERCENT = 80

DAILY_LIMITS: dict[str, dict[str, int]] = {
    "gpt-4o":        {"requests": 50,  "input_tokens": 200_000, "output_tokens": 50_000},
    "gpt-4o-mini":   {"requests": 150, "input_tokens": 600_000, "output_tokens": 200_000},
    "llama-3.3-70b": {"requests": 150, "input_tokens": 600_000, "output_tokens": 200_000},
    "phi-4-mini":    {"requests": 150, "input_tokens": 600_000, "output_tokens": 200_000},
    "default":       {"requests": 100, "input_tokens": 400_000, "output_tokens": 150_000},
}

# Across all models, sliding 60 s window
MINUTE_LIMITS = {"input_tokens": 8000, "output_tokens": 4000}
MINUTE_WINDOW_S = 60
WAIT_BUFFER_S = 0.1


def estimate_tokens(text: str | None) -> int:
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def count_message_tokens(message: dict | None) -> int:
    if not message:
        return 0
    tokens = MESSAGE_OVERHEAD_TOKENS + estimate_tokens(message.get("content"))
    for tc in message.get("tool_calls") or []:
        tokens += estimate_tokens(tc["name"]) + estimate_tokens(json.dumps(tc["arguments"]))
    tokens += estimate_tokens(message.get("tool_call_id"))
    return tokens


def count_conversation_tokens(messages: list[dict]) -> int:
    return sum(count_message_tokens(m) for m in messages)


def limits_for(model: str) -> dict[str, int]:
    return DAILY_LIMITS.get(model, DAILY_LIMITS["default"])


@dataclass
class DailyUsage:
    requests: int = 0
    input_tokens: int = 0
    output_tokens: int = 0

    def percent_used(self, limit: dict[str, int]) -> dict[str, int]:
        return {
            key: round(getattr(self, key) / limit[key] * 100)
            for key in ("requests", "input_tokens", "output_tokens")
        }


@dataclass
class LimitCheck:
    allowed: bool
    warnings: list[str] = field(default_factory=list)


class TokenCounter:
    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        today: Callable[[], str] = lambda: datetime.now(UTC).date().isoformat(),
    ):
        self._clock = clock
        self._today = today
        self._day = today()
        self._daily: dict[str, DailyUsage] = {}
        self._minute: deque[tuple[float, int, int]] = deque()

    def _rollover(self) -> None:
        day = self._today()
        if day != self._day:
            logger.info("Token usage reset for %s", day)
            self._day = day
            self._daily.clear()

    def _usage(self, model: str) -> DailyUsage:
        self._rollover()
        return self._daily.setdefault(model, DailyUsage())

    def record(self, model: str, input_tokens: int = 0, output_tokens: int = 0, requests: int = 1) -> None:
        usage = self._usage(model)
        usage.requests += requests
        usage.input_tokens += input_tokens
        usage.output_tokens += output_tokens
        self._minute.append((self._clock(), input_tokens, output_tokens))

    def daily_usage(self, model: str) -> dict:
        usage = self._usage(model)
        limit = limits_for(model)
        return {
            "requests": usage.requests,
            "input_tokens": usage.input_tokens,
            "output_tokens": usage.output_tokens,
            "limit": limit,
            "percent_used": usage.percent_used(limit),
        }

    def minute_usage(self) -> dict[str, int]:
        cutoff = self._clock() - MINUTE_WINDOW_S
        while self._minute and self._minute[0][0] <= cutoff:
            self._minute.popleft()
        return {
            "input_tokens": sum(e[1] for e in self._minute),
            "output_tokens": sum(e[2] for e in self._minute),
        }

    def minute_wait(self, input_tokens: int = 0, output_tokens: int = 0) -> float:
        """Seconds until the sliding window has room for a request of this size.

        Walks the window oldest-first until enough usage has aged out. A request
        bigger than the cap on its own waits for the whole window to drain.
        """
        usage = self.minute_usage()
        over_in = usage["input_tokens"] + input_tokens - MINUTE_LIMITS["input_tokens"]
        over_out = usage["output_tokens"] + output_tokens - MINUTE_LIMITS["output_tokens"]
        if (over_in <= 0 and over_out <= 0) or not self._minute:
            return 0.0
        freed_in = freed_out = 0
        until = self._minute[-1][0]
        for at, tin, tout in self._minute:
            freed_in += tin
            freed_out += tout
            if freed_in >= over_in and freed_out >= over_out:
                until = at
                break
        return max(0.0, until + MINUTE_WINDOW_S - self._clock()) + WAIT_BUFFER_S

    def requests_remaining(self, model: str) -> int:
        return max(0, limits_for(model)["requests"] - self._usage(model).requests)

    def check_limits(self, model: str, input_tokens: int = 0, output_tokens: int = 0) -> LimitCheck:
        """Only the daily request quota fails the check.

        Token budgets warn. The per-minute window is waited out via minute_wait().
        """
        daily = self.daily_usage(model)
        limit = daily["limit"]
        if daily["requests"] >= limit["requests"]:
            return LimitCheck(False, [f"Daily request limit ({limit['requests']}) exceeded for {model}"])

        warnings: list[str] = []
        if daily["input_tokens"] + input_tokens > limit["input_tokens"]:
            warnings.append(f"Daily input token budget exceeded for {model}")
        if daily["output_tokens"] + output_tokens > limit["output_tokens"]:
            warnings.append(f"Daily output token budget exceeded for {model}")
        warnings += [
            f"Daily {key.replace('_', ' ')} at {pct}% capacity"
            for key, pct in daily["percent_used"].items()
            if pct > WARNING_PERCENT
        ]
        return LimitCheck(True, warnings)

    def report(self) -> dict[str, dict]:
        return {model: self.daily_usage(model) for model in list(self._daily)}

    def reset(self, model: str | None = None) -> None:
        if model:
            self._daily.pop(model, None)
        else:
            self._daily.clear()
        self._minute.clear()


_counter: TokenCounter | None = None


def get_token_counter() -> TokenCounter:
    global _counter
    if _counter is None:
        _counter = TokenCounter()
    return _counter
