"""Section operations: create, delete, rename, reorder, list."""

from ..store.actions import ADD_SECTION, REMOVE_SECTION, REORDER_SECTIONS, UPDATE_SECTION_TITLE
from .base import SECTION_REF, Plugin, PluginContext, fail, ok, plural
from .resolve import positions, resolve_section


def _create_section(args: dict, ctx: PluginContext) -> dict:
    title = args["title"].strip()
    if not title:
        return fail("Section title cannot be empty.")
    existing, _ = resolve_section(ctx.state, section_title=title)
    if existing is not None:
        return ok(f'Section "{existing.title}" already exists', section_id=existing.id, created=False)
    state = ctx.dispatch(ADD_SECTION, {"title": title})
    return ok(f'Created section "{title}"', section_id=state.sections[-1].id, created=True)


def _delete_section(args: dict, ctx: PluginContext) -> dict:
    section, error = resolve_section(ctx.state, args.get("section_title"), args.get("section_index"))
    if error:
        return fail(error)
    ctx.dispatch(REMOVE_SECTION, section.id)
    return ok(f'Deleted section "{section.title}" and its {plural(len(section.cards), "card")}')


def _rename_section(args: dict, ctx: PluginContext) -> dict:
    section, error = resolve_section(ctx.state, args.get("section_title"), args.get("section_index"))
    if error:
        return fail(error)
    ctx.dispatch(UPDATE_SECTION_TITLE, {"id": section.id, "title": args["new_title"]})
    return ok(f'Renamed section "{section.title}" to "{args["new_title"]}"')


def _reorder_section(args: dict, ctx: PluginContext) -> dict:
    count = len(ctx.state.sections)
    for key in ("from_index", "to_index"):
        if not 0 <= args[key] < count:
            label = "source" if key == "from_index" else "target"
            return fail(
                f"Invalid {label} position {args[key] + 1}. The portfolio has "
                f"{plural(count, 'section')} ({positions(count)})."
            )
    ctx.dispatch(REORDER_SECTIONS, {"from_index": args["from_index"], "to_index": args["to_index"]})
    return ok(f"Moved section from position {args['from_index'] + 1} to position {args['to_index'] + 1}")


def _list_sections(args: dict, ctx: PluginContext) -> dict:
    sections = [
        {"index": i, "title": s.title, "card_count": len(s.cards)}
        for i, s in enumerate(ctx.state.sections)
    ]
    return ok(f"{plural(len(sections), 'section')}", sections=sections)


SECTION_PLUGINS = [
    Plugin(
        name="create_section",
        description="Creates a new section with the given title. If a section with that title already exists it is returned instead.",
        parameters={
            "type": "object",
            "properties": {"title": {"type": "string", "description": "The title for the new section"}},
            "required": ["title"],
        },
        handler=_create_section,
    ),
    Plugin(
        name="delete_section",
        description="Deletes a section and all its cards. Identify it by title or index (0-based).",
        parameters={"type": "object", "properties": {**SECTION_REF}},
        handler=_delete_section,
    ),
    Plugin(
        name="rename_section",
        description="Renames a section. Identify it by current title or index (0-based).",
        parameters={
            "type": "object",
            "properties": {
                **SECTION_REF,
                "new_title": {"type": "string", "minLength": 1, "description": "The new title for the section"},
            },
            "required": ["new_title"],
        },
        handler=_rename_section,
    ),
    Plugin(
        name="reorder_section",
        description="Moves a section to a different position. Provide from_index and to_index (0-based).",
        parameters={
            "type": "object",
            "properties": {
                "from_index": {"type": "integer", "description": "Current position (0-based)"},
                "to_index": {"type": "integer", "description": "Target position (0-based)"},
            },
            "required": ["from_index", "to_index"],
        },
        handler=_reorder_section,
    ),
    Plugin(
        name="list_sections",
        description="Lists all sections with their titles and card counts.",
        parameters={"type": "object", "properties": {}},
        handler=_list_sections,
    ),
]
