"""Card operations: add, remove, resize, update content, reorder and move."""

from ..layout.packer import format_bento
from ..models.schemas import new_id
from ..store.actions import (
    ADD_CARD,
    MOVE_CARD_TO_SECTION,
    REMOVE_CARD,
    REORDER_CARDS,
    RESIZE_CARD,
    UPDATE_CARD_CONTENT,
)
from .base import CARD_REF, SECTION_REF, SPAN, Plugin, PluginContext, fail, ok, plural
from .resolve import positions, resolve_card, resolve_section, resolve_section_and_card

_HEX_COLOR = {"type": "string", "pattern": "^#[0-9a-fA-F]{6}$"}

# Tool argument name → CardContent field
_CONTENT_ARGS = {
    "type": "type",
    "text": "text",
    "caption": "title",
    "bg_color": "bg_color",
    "text_color": "text_color",
    "link_url": "link_url",
    "image_url": "image_url",
    "video_url": "video_url",
}


def _add_card(args: dict, ctx: PluginContext) -> dict:
    section, error = resolve_section(ctx.state, args.get("section_title"), args.get("section_index"))
    if error:
        return fail(error)

    count = len(section.cards)
    position = args.get("position")
    if position is not None and not 0 <= position <= count:
        return fail(
            f'Invalid position {position + 1}. The "{section.title}" section has '
            f"{plural(count, 'card')} (valid positions are 1 to {count + 1})."
        )

    cols, rows = args.get("width", 1), args.get("height", 1)
    payload = {"section_id": section.id, "id": new_id(), "cols": cols, "rows": rows, "insert_index": position}
    if args.get("content_type"):
        payload["content"] = {"type": args["content_type"]}
    ctx.dispatch(ADD_CARD, payload)

    card_index = count if position is None else position
    return ok(
        f'Added {format_bento(cols, rows)} card to section "{section.title}" at position {card_index + 1}',
        card_id=payload["id"],
        card_index=card_index,
    )


def _remove_card(args: dict, ctx: PluginContext) -> dict:
    section, card, error = resolve_section_and_card(ctx.state, args)
    if error:
        return fail(error)
    ctx.dispatch(REMOVE_CARD, card.id)
    return ok(f'Removed card from section "{section.title}"')


def _resize_card(args: dict, ctx: PluginContext) -> dict:
    section, card, error = resolve_section_and_card(ctx.state, args)
    if error:
        return fail(error)
    ctx.dispatch(RESIZE_CARD, {"id": card.id, "cols": args["width"], "rows": args["height"]})
    return ok(f"Resized card to {format_bento(args['width'], args['height'])}")


def _content_updates(args: dict) -> dict:
    return {field: args[key] for key, field in _CONTENT_ARGS.items() if args.get(key) is not None}


def _update_card(args: dict, ctx: PluginContext) -> dict:
    section, card, error = resolve_section_and_card(ctx.state, args)
    if error:
        return fail(error)
    updates = _content_updates(args)
    if not updates:
        return fail("Nothing to update. Provide at least one content field.")
    ctx.dispatch(UPDATE_CARD_CONTENT, {"id": card.id, "updates": updates})
    return ok("Updated card: " + ", ".join(sorted(updates)))


def _update_card_caption(args: dict, ctx: PluginContext) -> dict:
    section, card, error = resolve_section_and_card(ctx.state, args)
    if error:
        return fail(error)
    ctx.dispatch(UPDATE_CARD_CONTENT, {"id": card.id, "updates": {"title": args["caption"]}})
    return ok(f'Updated caption to "{args["caption"]}"')


def _update_card_text(args: dict, ctx: PluginContext) -> dict:
    section, card, error = resolve_section_and_card(ctx.state, args)
    if error:
        return fail(error)
    updates = {"type": "text", **_content_updates(args)}
    ctx.dispatch(UPDATE_CARD_CONTENT, {"id": card.id, "updates": updates})
    return ok("Updated card text")


def _update_card_link(args: dict, ctx: PluginContext) -> dict:
    section, card, error = resolve_section_and_card(ctx.state, args)
    if error:
        return fail(error)
    ctx.dispatch(UPDATE_CARD_CONTENT, {"id": card.id, "updates": {"link_url": args["link_url"]}})
    return ok("Set link URL on card")


def _update_card_media(args: dict, ctx: PluginContext) -> dict:
    section, card, error = resolve_section_and_card(ctx.state, args)
    if error:
        return fail(error)
    kind = args["media_type"]
    updates = {"type": kind, f"{kind}_url": args["url"]}
    ctx.dispatch(UPDATE_CARD_CONTENT, {"id": card.id, "updates": updates})
    return ok(f"Set {kind} on card")


def _list_cards(args: dict, ctx: PluginContext) -> dict:
    if args.get("section_title") is not None or args.get("section_index") is not None:
        section, error = resolve_section(ctx.state, args.get("section_title"), args.get("section_index"))
        if error:
            return fail(error)
        sections = [section]
    else:
        sections = ctx.state.sections

    data = [
        {
            "section_title": s.title,
            "cards": [
                {
                    "index": i,
                    "bento": c.bento,
                    "type": c.content.type,
                    "caption": c.content.title or None,
                    "text": c.content.text or None,
                    "link_url": c.content.link_url or None,
                    "bg_color": c.content.bg_color,
                }
                for i, c in enumerate(s.cards)
            ],
        }
        for s in sections
    ]
    total = sum(len(s["cards"]) for s in data)
    return ok(plural(total, "card"), sections=data)


def _move_card(args: dict, ctx: PluginContext) -> dict:
    section, error = resolve_section(ctx.state, args.get("section_title"), args.get("section_index"))
    if error:
        return fail(error)

    count = len(section.cards)
    for key in ("from_index", "to_index"):
        if not 0 <= args[key] < count:
            label = "source" if key == "from_index" else "target"
            return fail(
                f'Invalid {label} position {args[key] + 1}. The "{section.title}" section '
                f"only has {plural(count, 'card')} ({positions(count)})."
            )

    ctx.dispatch(REORDER_CARDS, {
        "section_id": section.id,
        "from_index": args["from_index"],
        "to_index": args["to_index"],
    })
    return ok(
        f"Moved card from position {args['from_index'] + 1} to position {args['to_index'] + 1} "
        f'in section "{section.title}"'
    )


def _move_card_to_section(args: dict, ctx: PluginContext) -> dict:
    state = ctx.state
    source, error = resolve_section(state, args.get("from_section_title"), args.get("from_section_index"))
    if error:
        return fail(f"Source: {error}")
    target, error = resolve_section(state, args.get("to_section_title"), args.get("to_section_index"))
    if error:
        return fail(f"Target: {error}")
    card, error = resolve_card(source, args.get("card_index"), args.get("card_title"))
    if error:
        return fail(error)

    to_index = args.get("to_index")
    if to_index is not None:
        count = len(target.cards)
        if not 0 <= to_index <= count:
            return fail(
                f'Invalid target position {to_index + 1}. The "{target.title}" section only has '
                f"{plural(count, 'card')} (valid positions are 1 to {count + 1})."
            )

    ctx.dispatch(MOVE_CARD_TO_SECTION, {
        "card_id": card.id,
        "from_section_id": source.id,
        "to_section_id": target.id,
        "to_index": to_index,
    })
    return ok(f'Moved card from section "{source.title}" to section "{target.title}"')


_CARD_TARGET = {**SECTION_REF, **CARD_REF}

CARD_PLUGINS = [
    Plugin(
        name="add_card",
        description=(
            "Adds a new card to a section. Specify the section by title or index. "
            "Optionally set the size in grid units (width x height, each 1-4), the content type, "
            "and the 0-based position to insert at (default: end)."
        ),
        parameters={
            "type": "object",
            "properties": {
                **SECTION_REF,
                "width": {**SPAN, "default": 1, "description": "Card width in grid columns (1-4)"},
                "height": {**SPAN, "default": 1, "description": "Card height in grid rows (1-4)"},
                "content_type": {"type": "string", "enum": ["image", "video", "text"]},
                "position": {"type": "integer", "description": "Insert position (0-based). Omit to append."},
            },
        },
        handler=_add_card,
    ),
    Plugin(
        name="remove_card",
        description="Removes a card. Identify the card by index (0-based) or by matching caption/text.",
        parameters={"type": "object", "properties": {**_CARD_TARGET}},
        handler=_remove_card,
    ),
    Plugin(
        name="resize_card",
        description="Resizes a card. Specify width (columns) and height (rows), each 1-4.",
        parameters={
            "type": "object",
            "properties": {
                **_CARD_TARGET,
                "width": {**SPAN, "description": "New width in columns (1-4)"},
                "height": {**SPAN, "description": "New height in rows (1-4)"},
            },
            "required": ["width", "height"],
        },
        handler=_resize_card,
    ),
    Plugin(
        name="update_card",
        description=(
            "Updates any card content fields. Changing type clears the media or text "
            "that belonged to the old type."
        ),
        parameters={
            "type": "object",
            "properties": {
                **_CARD_TARGET,
                "type": {"type": "string", "enum": ["image", "video", "text"]},
                "text": {"type": "string"},
                "caption": {"type": "string"},
                "bg_color": {**_HEX_COLOR, "description": 'Background colour as hex, e.g. "#fde2e4"'},
                "text_color": {**_HEX_COLOR, "description": 'Text colour as hex, e.g. "#374151"'},
                "link_url": {"type": "string"},
                "image_url": {"type": "string"},
                "video_url": {"type": "string"},
            },
        },
        handler=_update_card,
    ),
    Plugin(
        name="update_card_caption",
        description="Updates only the caption pill on an image or video card. Does not change the card type.",
        parameters={
            "type": "object",
            "properties": {**_CARD_TARGET, "caption": {"type": "string", "description": "New caption text"}},
            "required": ["caption"],
        },
        handler=_update_card_caption,
    ),
    Plugin(
        name="update_card_text",
        description='Sets a card\'s text content, caption and colours. The card type becomes "text".',
        parameters={
            "type": "object",
            "properties": {
                **_CARD_TARGET,
                "text": {"type": "string", "description": "Main text content"},
                "caption": {"type": "string"},
                "bg_color": _HEX_COLOR,
                "text_color": _HEX_COLOR,
            },
        },
        handler=_update_card_text,
    ),
    Plugin(
        name="update_card_link",
        description="Sets or updates the click-through link URL on a card.",
        parameters={
            "type": "object",
            "properties": {**_CARD_TARGET, "link_url": {"type": "string", "description": "The URL to link to"}},
            "required": ["link_url"],
        },
        handler=_update_card_link,
    ),
    Plugin(
        name="update_card_media",
        description="Sets the image or video URL shown on a card and switches its type accordingly.",
        parameters={
            "type": "object",
            "properties": {
                **_CARD_TARGET,
                "media_type": {"type": "string", "enum": ["image", "video"]},
                "url": {"type": "string", "minLength": 1},
            },
            "required": ["media_type", "url"],
        },
        handler=_update_card_media,
    ),
    Plugin(
        name="list_cards",
        description="Lists cards in one section, or in all sections when none is given.",
        parameters={"type": "object", "properties": {**SECTION_REF}},
        handler=_list_cards,
    ),
    Plugin(
        name="move_card",
        description="Moves a card within its section. Provide from_index and to_index (0-based).",
        parameters={
            "type": "object",
            "properties": {
                **SECTION_REF,
                "from_index": {"type": "integer", "description": "Current position (0-based)"},
                "to_index": {"type": "integer", "description": "Target position (0-based)"},
            },
            "required": ["from_index", "to_index"],
        },
        handler=_move_card,
    ),
    Plugin(
        name="move_card_to_section",
        description="Moves a card to another section. Optionally give the 0-based position in the target section.",
        parameters={
            "type": "object",
            "properties": {
                **CARD_REF,
                "from_section_title": {"type": "string"},
                "from_section_index": {"type": "integer"},
                "to_section_title": {"type": "string"},
                "to_section_index": {"type": "integer"},
                "to_index": {"type": "integer", "description": "Position in the target section (0-based). Omit to append."},
            },
        },
        handler=_move_card_to_section,
    ),
]
