"""Pick a GitHub Models model by task complexity and remaining daily quota."""

import logging
from dataclasses import dataclass, field
from typing import Literal

from ..config import DEFAULT_MODEL
from .token_counter import TokenCounter, get_token_counter

logger = logging.getLogger(__name__)

Complexity = Literal["simple", "moderate", "complex"]
SelectionMode = Literal["balanced", "cheap", "fast", "quality"]


@dataclass(frozen=True)
class ModelInfo:
    label: str
    complexity: tuple[str, ...]
    best_for: str
    daily_limit: int
    input_cost: float   # USD per 1M tokens
    output_cost: float
    context_window: int
    speed_ms: int


MODELS: dict[str, ModelInfo] = {
    "gpt-4o-mini": ModelInfo(
        "GPT-4o Mini (Recommended)", ("simple", "moderate"),
        "quick responses, chat, general questions", 150, 0.15, 0.60, 128_000, 1000,
    ),
    "gpt-4o": ModelInfo(
        "GPT-4o (Premium)", ("moderate", "complex"),
        "complex reasoning, detailed analysis", 50, 2.50, 10.0, 128_000, 2000,
    ),
    "llama-3.3-70b": ModelInfo(
        "Llama 3.3 70B", ("simple", "moderate"),
        "general purpose, open-source alternative", 150, 0.71, 0.71, 8192, 1500,
    ),
    "phi-4-mini": ModelInfo(
        "Phi-4 Mini (Most Efficient)", ("simple",),
        "lightweight tasks, maximum daily usage", 150, 0.08, 0.30, 4096, 800,
    ),
}

COMPLEX_KEYWORDS = (
    "analyze", "compare", "design", "architecture", "optimize",
    "debug", "refactor", "explain", "review",
)


@dataclass
class ModelSuggestion:
    model: str
    reason: str
    alternatives: list[dict] = field(default_factory=list)


def analyze_complexity(prompt: str = "", conversation_length: int = 0, tools: list | None = None) -> Complexity:
    score = 0
    if len(prompt) > 500:
        score += 2
    elif len(prompt) > 200:
        score += 1

    if conversation_length > 10:
        score += 2
    elif conversation_length > 5:
        score += 1

    n_tools = len(tools or [])
    if n_tools > 3:
        score += 2
    elif n_tools > 0:
        score += 1

    lowered = prompt.lower()
    if any(kw in lowered for kw in COMPLEX_KEYWORDS):
        score += 2

    if score >= 5:
        return "complex"
    if score >= 2:
        return "moderate"
    return "simple"


def suggest_model(
    complexity: Complexity = "simple",
    mode: SelectionMode = "balanced",
    include_availability: bool = True,
    counter: TokenCounter | None = None,
) -> ModelSuggestion:
    counter = counter or get_token_counter()
    candidates = [
        (model_id, info, counter.requests_remaining(model_id))
        for model_id, info in MODELS.items()
        if complexity in info.complexity
    ]
    if include_availability:
        candidates = [c for c in candidates if c[2] > 0]

    if not candidates:
        return ModelSuggestion(DEFAULT_MODEL, "No models matched criteria, using default")

    if mode == "cheap":
        candidates.sort(key=lambda c: c[1].input_cost + c[1].output_cost)
        reason = "cost efficiency"
    elif mode == "fast":
        candidates.sort(key=lambda c: c[1].speed_ms)
        reason = "speed"
    elif mode == "quality":
        candidates.sort(key=lambda c: -(c[1].input_cost * 10 + c[1].output_cost))
        reason = "best quality"
    else:
        candidates.sort(key=lambda c: c[0] != DEFAULT_MODEL)
        reason = "balanced cost/quality"

    model_id, info, _ = candidates[0]
    alternatives = [
        {"model": mid, "label": alt.label, "best_for": alt.best_for, "requests_remaining": remaining}
        for mid, alt, remaining in candidates[1:3]
    ]
    return ModelSuggestion(model_id, f"Selected for {reason} ({info.label})", alternatives)


def select_model(prompt: str, conversation_length: int, tools: list | None = None) -> str:
    complexity = analyze_complexity(prompt, conversation_length, tools)
    suggestion = suggest_model(complexity)
    logger.info("Model: %s (%s task) — %s", suggestion.model, complexity, suggestion.reason)
    return suggestion.model
