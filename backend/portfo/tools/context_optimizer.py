"""Trim chat history to a token budget, oldest messages first."""

import logging

from ..config import MAX_CONTEXT_TOKENS
from .token_counter import count_conversation_tokens

logger = logging.getLogger(__name__)

MIN_MESSAGES = 2


def _drop_orphans(messages: list[dict]) -> list[dict]:
    # A tool result is meaningless without the assistant turn that requested it
    start = 0
    while start < len(messages) and messages[start]["role"] == "tool":
        start += 1
    return messages[start:]


def trim_history(
    messages: list[dict],
    max_tokens: int = MAX_CONTEXT_TOKENS,
    min_messages: int = MIN_MESSAGES,
) -> tuple[list[dict], int]:
    """Return (messages, tokens_removed).

    System messages are always kept. At least `min_messages` of the newest
    non-system messages survive even when they alone exceed the budget.
    """
    before = count_conversation_tokens(messages)
    if before <= max_tokens:
        return messages, 0

    system = [m for m in messages if m["role"] == "system"]
    rest = [m for m in messages if m["role"] != "system"]
    if len(rest) <= min_messages:
        return messages, 0

    # Smallest start index whose suffix fits
    lo, hi = 0, len(rest) - min_messages
    while lo < hi:
        mid = (lo + hi) // 2
        if count_conversation_tokens(system + rest[mid:]) <= max_tokens:
            hi = mid
        else:
            lo = mid + 1

    kept = system + _drop_orphans(rest[lo:])
    removed = before - count_conversation_tokens(kept)
    if removed:
        logger.info("Context trimmed: %d → %d messages (-%d tokens)", len(messages), len(kept), removed)
    return kept, removed
