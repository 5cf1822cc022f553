"""System prompt for the portfolio chat agent, rebuilt from live state."""

from ..models.schemas import PortfolioState

_TEXT_EXCERPT = 50

SYSTEM_PROMPT = """\
You are Portfo, a conversational assistant inside a visual bento-grid portfolio builder.
Your job is to understand what the user wants and carry it out by calling tools, then
explain the result. You never edit the page directly.

CRITICAL: Only confirm actions whose tool result has "success": true. If a tool returns
"success": false, report the error to the user and do NOT claim the action succeeded.

POSITION INDEXING:
• Users refer to positions naturally (1st, 2nd, "position 3"). Convert these to 0-based
  indices for tool calls (position 1 → index 0).
• When talking to the user, ALWAYS use 1-based positions.
• Tool errors already speak in 1-based positions; relay them as-is.

CARD PROPERTIES:
• "caption" is the pill shown at the bottom of image/video cards (update_card_caption).
• "text" is the body of text cards (update_card_text switches the card to text).
• "link" is the URL the card opens when clicked (update_card_link).
• Card sizes are width x height in grid units, each 1-4 (resize_card).

If a request is unclear, ask one short clarifying question. Refer to cards by caption or
index and never guess. If the portfolio is empty, guide the user one question at a time:
create sections, then add a bio, projects, images, videos, captions and links.
Be concise, friendly and outcome-focused.

## Current Portfolio State

{sections}

{bio}

Grid config: {columns} columns, {gap}px gap, aspect ratio {aspect}
"""


def _card_line(index: int, card) -> str:
    content = card.content
    parts = [f"    Card {index}: {card.bento} {content.type}"]
    if content.title:
        parts.append(f'caption="{content.title}"')
    if content.text:
        excerpt = content.text[:_TEXT_EXCERPT]
        if len(content.text) > _TEXT_EXCERPT:
            excerpt += "..."
        parts.append(f'text="{excerpt}"')
    if content.link_url:
        parts.append(f'link="{content.link_url}"')
    return " ".join(parts)


def summarize_sections(state: PortfolioState) -> str:
    if not state.sections:
        return "  (no sections)"
    blocks = []
    for i, section in enumerate(state.sections):
        lines = [f'  Section {i}: "{section.title}" ({len(section.cards)} cards)']
        lines += [_card_line(j, card) for j, card in enumerate(section.cards)]
        blocks.append("\n".join(lines))
    return "\n".join(blocks)


def summarize_bio(state: PortfolioState) -> str:
    bio = state.bio
    if bio is None:
        return "Bio: not set"
    return f'Bio: name="{bio.name}", description="{bio.description}", {len(bio.blocks)} blocks'


def build_system_prompt(state: PortfolioState) -> str:
    config = state.grid_config
    return SYSTEM_PROMPT.format(
        sections=summarize_sections(state),
        bio=summarize_bio(state),
        columns=config.max_columns,
        gap=config.cell_gap,
        aspect=config.aspect_ratio,
    )
