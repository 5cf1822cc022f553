"""Bio sidebar operations."""

from ..models.schemas import new_id
from ..store.actions import CLEAR_BIO, SET_BIO
from .base import Plugin, PluginContext, fail, ok, plural


def _blocks(ctx: PluginContext) -> list[dict]:
    bio = ctx.state.bio
    return [b.model_dump() for b in bio.blocks] if bio else []


def _check_block_index(index: int, blocks: list[dict]) -> str | None:
    count = len(blocks)
    if 0 <= index < count:
        return None
    valid = f"valid positions are 1 to {count}" if count else "there are none"
    return f"Bio block position {index + 1} is out of range. The bio has {plural(count, 'block')} ({valid})."


def _set_bio_info(args: dict, ctx: PluginContext) -> dict:
    updates = {k: args[k] for k in ("name", "description", "avatar") if args.get(k) is not None}
    if not updates:
        return fail("Provide at least one of name, description or avatar.")
    ctx.dispatch(SET_BIO, updates)
    return ok("Updated bio info")


def _add_bio_block(args: dict, ctx: PluginContext) -> dict:
    blocks = _blocks(ctx)
    blocks.append({"id": new_id(), "heading": args["heading"], "body": args["body"]})
    ctx.dispatch(SET_BIO, {"blocks": blocks})
    return ok(f'Added bio block "{args["heading"]}"', block_index=len(blocks) - 1)


def _update_bio_block(args: dict, ctx: PluginContext) -> dict:
    blocks = _blocks(ctx)
    error = _check_block_index(args["block_index"], blocks)
    if error:
        return fail(error)
    block = blocks[args["block_index"]]
    for key in ("heading", "body"):
        if args.get(key) is not None:
            block[key] = args[key]
    ctx.dispatch(SET_BIO, {"blocks": blocks})
    return ok(f"Updated bio block at position {args['block_index'] + 1}")


def _remove_bio_block(args: dict, ctx: PluginContext) -> dict:
    blocks = _blocks(ctx)
    error = _check_block_index(args["block_index"], blocks)
    if error:
        return fail(error)
    del blocks[args["block_index"]]
    ctx.dispatch(SET_BIO, {"blocks": blocks})
    return ok(f"Removed bio block at position {args['block_index'] + 1}")


def _clear_bio(args: dict, ctx: PluginContext) -> dict:
    ctx.dispatch(CLEAR_BIO)
    return ok("Cleared bio section")


def _get_bio(args: dict, ctx: PluginContext) -> dict:
    bio = ctx.state.bio
    if bio is None:
        return ok("No bio section exists yet.", bio=None)
    return ok("Current bio", bio={
        "name": bio.name,
        "description": bio.description,
        "has_avatar": bool(bio.avatar),
        "blocks": [{"index": i, "heading": b.heading, "body": b.body} for i, b in enumerate(bio.blocks)],
    })


_BLOCK_INDEX = {"type": "integer", "description": "Index of the block (0-based)"}

BIO_PLUGINS = [
    Plugin(
        name="set_bio",
        description="Sets or updates the bio name, description and/or avatar URL. Creates the bio if missing.",
        parameters={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Display name"},
                "description": {"type": "string", "description": "Short bio description"},
                "avatar": {"type": "string", "description": "Avatar image URL"},
            },
        },
        handler=_set_bio_info,
    ),
    Plugin(
        name="add_bio_block",
        description="Adds a content block (heading + body text) to the bio.",
        parameters={
            "type": "object",
            "properties": {"heading": {"type": "string"}, "body": {"type": "string"}},
            "required": ["heading", "body"],
        },
        handler=_add_bio_block,
    ),
    Plugin(
        name="update_bio_block",
        description="Updates the heading and/or body of a bio block by index (0-based).",
        parameters={
            "type": "object",
            "properties": {"block_index": _BLOCK_INDEX, "heading": {"type": "string"}, "body": {"type": "string"}},
            "required": ["block_index"],
        },
        handler=_update_bio_block,
    ),
    Plugin(
        name="remove_bio_block",
        description="Removes a bio block by index (0-based).",
        parameters={"type": "object", "properties": {"block_index": _BLOCK_INDEX}, "required": ["block_index"]},
        handler=_remove_bio_block,
    ),
    Plugin(
        name="clear_bio",
        description="Removes the entire bio section.",
        parameters={"type": "object", "properties": {}},
        handler=_clear_bio,
    ),
    Plugin(
        name="get_bio",
        description="Returns the current bio (name, description, blocks).",
        parameters={"type": "object", "properties": {}},
        handler=_get_bio,
    ),
]
