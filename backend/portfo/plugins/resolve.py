"""Title/index → entity resolution shared by the plugins.

Resolvers return `(entity, None)` or `(None, error)`. Errors list the valid
alternatives and speak in 1-based positions so a conversational caller can
correct itself.
"""

from ..models.schemas import Card, PortfolioState, Section
from .base import plural


def positions(count: int) -> str:
    if count == 0:
        return "there are none"
    return f"valid positions are 1 to {count}"


def resolve_section(
    state: PortfolioState,
    section_title: str | None = None,
    section_index: int | None = None,
) -> tuple[Section | None, str | None]:
    if section_title is not None:
        wanted = section_title.strip().lower()
        for section in state.sections:
            if section.title.lower() == wanted:
                return section, None
        titles = ", ".join(f'"{s.title}"' for s in state.sections) or "none"
        return None, f'No section found with title "{section_title}". Available sections: {titles}'

    if section_index is not None:
        count = len(state.sections)
        if not 0 <= section_index < count:
            return None, (
                f"Section position {section_index + 1} is out of range. "
                f"The portfolio has {plural(count, 'section')} ({positions(count)})."
            )
        return state.sections[section_index], None

    return None, "Either section_title or section_index must be provided."


def resolve_card(
    section: Section,
    card_index: int | None = None,
    card_title: str | None = None,
) -> tuple[Card | None, str | None]:
    if card_index is not None:
        count = len(section.cards)
        if not 0 <= card_index < count:
            return None, (
                f'Card position {card_index + 1} is out of range. The "{section.title}" section '
                f"only has {plural(count, 'card')} ({positions(count)})."
            )
        return section.cards[card_index], None

    if card_title is not None:
        wanted = card_title.strip().lower()
        for card in section.cards:
            if wanted in card.content.title.lower() or wanted in card.content.text.lower():
                return card, None
        labels = [c.content.title or c.content.text[:30] for c in section.cards]
        known = ", ".join(f'"{label}"' for label in labels if label) or "no captioned cards"
        return None, f'No card found matching "{card_title}" in section "{section.title}". Cards: {known}'

    return None, "Either card_index or card_title must be provided."


def resolve_section_and_card(state: PortfolioState, args: dict) -> tuple[Section | None, Card | None, str | None]:
    section, error = resolve_section(state, args.get("section_title"), args.get("section_index"))
    if error:
        return None, None, error
    card, error = resolve_card(section, args.get("card_index"), args.get("card_title"))
    if error:
        return section, None, error
    return section, card, None
