"""Supabase client, portfolio load/save, and media storage."""

import logging
from datetime import UTC, datetime

from supabase import Client, create_client

from .config import MEDIA_BUCKET, SUPABASE_ANON_KEY, SUPABASE_URL
from .layout.packer import parse_bento
from .models.schemas import Bio, BioBlock, Card, CardContent, CardSize, GridConfig, PortfolioState, Section

logger = logging.getLogger(__name__)

_client: Client | None = None


class PersistenceError(Exception):
    """A load or save step failed. The message names the table and operation."""


def get_client() -> Client:
    global _client
    if _client is None:
        _client = create_client(SUPABASE_URL, SUPABASE_ANON_KEY)
    return _client


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _run(label: str, query):
    try:
        return query.execute()
    except Exception as exc:
        raise PersistenceError(f"[{label}] {exc}") from exc


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------

def grid_config_from_profile(profile: dict) -> GridConfig:
    defaults = GridConfig()
    return GridConfig(
        max_columns=profile.get("grid_columns") or defaults.max_columns,
        cell_gap=profile.get("grid_cell_gap") if profile.get("grid_cell_gap") is not None else defaults.cell_gap,
        aspect_ratio=profile.get("grid_aspect_ratio") or defaults.aspect_ratio,
    )


def card_from_row(row: dict) -> Card:
    cols, rows = parse_bento(row.get("bento") or "1x1")
    content = CardContent(
        type=row.get("content_type") or "image",
        image_url=row.get("image_url") or "",
        video_url=row.get("video_url") or "",
        text=row.get("text_body") or "",
        title=row.get("title") or "",
        link_url=row.get("link_url") or "",
        manual_font_size=row.get("manual_font_size"),
        media_scale=row["media_scale"] if row.get("media_scale") is not None else 1.0,
        media_offset_x=row.get("media_offset_x") or 0.0,
        media_offset_y=row.get("media_offset_y") or 0.0,
    )
    # Colours keep the model defaults when the row has none
    if row.get("bg_color"):
        content.bg_color = row["bg_color"]
    if row.get("text_color"):
        content.text_color = row["text_color"]
    return Card(id=row["id"], size=CardSize(cols=min(cols, 4), rows=min(rows, 4)), content=content)


def card_to_row(card: Card, section_id: str, sort_order: int) -> dict:
    c = card.content
    return {
        "id": card.id,
        "section_id": section_id,
        "bento": card.bento,
        "sort_order": sort_order,
        "content_type": c.type,
        "image_url": c.image_url,
        "video_url": c.video_url,
        "text_body": c.text,
        "title": c.title,
        "bg_color": c.bg_color,
        "text_color": c.text_color,
        "link_url": c.link_url,
        "manual_font_size": c.manual_font_size,
        "media_scale": c.media_scale,
        "media_offset_x": c.media_offset_x,
        "media_offset_y": c.media_offset_y,
        "updated_at": _now(),
    }


def section_to_row(section: Section, profile_id: str, sort_order: int) -> dict:
    return {
        "id": section.id,
        "profile_id": profile_id,
        "title": section.title,
        "sort_order": sort_order,
        "updated_at": _now(),
    }


def bio_from_rows(bio_row: dict, block_rows: list[dict]) -> Bio:
    return Bio(
        avatar=bio_row.get("avatar_url") or "",
        name=bio_row.get("name") or "",
        description=bio_row.get("description") or "",
        blocks=[
            BioBlock(
                id=b["id"],
                heading=b.get("heading") or "",
                body=b.get("body") or "",
                links=b.get("links") or [],
                formatting=b.get("formatting") or [],
            )
            for b in block_rows
        ],
    )


def bio_to_row(bio: Bio, profile_id: str) -> dict:
    return {
        "profile_id": profile_id,
        "avatar_url": bio.avatar,
        "name": bio.name,
        "description": bio.description,
        "updated_at": _now(),
    }


def block_to_row(block: BioBlock, bio_id: str, sort_order: int) -> dict:
    return {
        "id": block.id,
        "bio_id": bio_id,
        "heading": block.heading,
        "body": block.body,
        "sort_order": sort_order,
        "links": block.links,
        "formatting": block.formatting,
    }


def assemble_state(
    profile: dict,
    section_rows: list[dict],
    card_rows: list[dict],
    bio_row: dict | None,
    block_rows: list[dict],
) -> PortfolioState:
    """Build a PortfolioState from rows already ordered by sort_order."""
    cards_by_section: dict[str, list[Card]] = {}
    for row in card_rows:
        cards_by_section.setdefault(row["section_id"], []).append(card_from_row(row))
    return PortfolioState(
        grid_config=grid_config_from_profile(profile),
        sections=[
            Section(id=s["id"], title=s.get("title") or "", cards=cards_by_section.get(s["id"], []))
            for s in section_rows
        ],
        bio=bio_from_rows(bio_row, block_rows) if bio_row else None,
    )


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------

def load_portfolio(username: str) -> tuple[dict, PortfolioState] | None:
    """Return (profile row, state) for a username, or None if no such profile."""
    client = get_client()
    profiles = _run(
        "profiles.select",
        client.table("profiles")
        .select("id, username, display_name, grid_columns, grid_cell_gap, grid_aspect_ratio")
        .eq("username", username),
    ).data
    if not profiles:
        return None
    profile = profiles[0]

    bios = _run("bios.select", client.table("bios").select("*").eq("profile_id", profile["id"])).data
    bio_row = bios[0] if bios else None
    sections = _run(
        "sections.select",
        client.table("sections").select("*").eq("profile_id", profile["id"]).order("sort_order"),
    ).data

    blocks = []
    if bio_row:
        blocks = _run(
            "bio_blocks.select",
            client.table("bio_blocks").select("*").eq("bio_id", bio_row["id"]).order("sort_order"),
        ).data
    cards = []
    if sections:
        cards = _run(
            "cards.select",
            client.table("cards").select("*").in_("section_id", [s["id"] for s in sections]).order("sort_order"),
        ).data

    state = assemble_state(profile, sections, cards, bio_row, blocks)
    logger.info("Loaded portfolio %s: %d sections, %d cards", username, len(state.sections), state.card_count())
    return profile, state


def save_portfolio(profile_id: str, state: PortfolioState) -> None:
    """Write the state over what is stored for profile_id.

    Rows missing from the state are deleted, the rest upserted with their
    current sort_order. Raises PersistenceError on the first failing step.
    """
    client = get_client()
    grid = state.grid_config
    _run(
        "profiles.update",
        client.table("profiles").update({
            "grid_columns": grid.max_columns,
            "grid_cell_gap": grid.cell_gap,
            "grid_aspect_ratio": grid.aspect_ratio,
            "updated_at": _now(),
        }).eq("id", profile_id),
    )

    current_sections = {
        r["id"] for r in _run(
            "sections.select", client.table("sections").select("id").eq("profile_id", profile_id)
        ).data
    }
    state_sections = {s.id for s in state.sections}
    if stale := sorted(current_sections - state_sections):
        # Cards of deleted sections go with them (ON DELETE CASCADE)
        _run("sections.delete", client.table("sections").delete().in_("id", stale))
    if state.sections:
        rows = [section_to_row(s, profile_id, i) for i, s in enumerate(state.sections)]
        _run("sections.upsert", client.table("sections").upsert(rows, on_conflict="id"))

        current_cards = {
            r["id"] for r in _run(
                "cards.select", client.table("cards").select("id").in_("section_id", sorted(state_sections))
            ).data
        }
        state_cards = {c.id for s in state.sections for c in s.cards}
        if stale := sorted(current_cards - state_cards):
            _run("cards.delete", client.table("cards").delete().in_("id", stale))
        card_rows = [card_to_row(c, s.id, i) for s in state.sections for i, c in enumerate(s.cards)]
        if card_rows:
            _run("cards.upsert", client.table("cards").upsert(card_rows, on_conflict="id"))

    _save_bio(client, profile_id, state.bio)
    logger.info("Saved portfolio %s: %d sections, %d cards", profile_id, len(state.sections), state.card_count())


def _save_bio(client: Client, profile_id: str, bio: Bio | None) -> None:
    existing = _run("bios.select", client.table("bios").select("id").eq("profile_id", profile_id)).data
    if bio is None:
        if existing:
            _run("bios.delete", client.table("bios").delete().eq("profile_id", profile_id))
        return

    row = bio_to_row(bio, profile_id)
    if existing:
        bio_id = existing[0]["id"]
        _run("bios.update", client.table("bios").update(row).eq("id", bio_id))
    else:
        bio_id = _run("bios.insert", client.table("bios").insert(row)).data[0]["id"]

    current_blocks = {
        r["id"] for r in _run("bio_blocks.select", client.table("bio_blocks").select("id").eq("bio_id", bio_id)).data
    }
    if stale := sorted(current_blocks - {b.id for b in bio.blocks}):
        _run("bio_blocks.delete", client.table("bio_blocks").delete().in_("id", stale))
    if bio.blocks:
        rows = [block_to_row(b, bio_id, i) for i, b in enumerate(bio.blocks)]
        _run("bio_blocks.upsert", client.table("bio_blocks").upsert(rows, on_conflict="id"))


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

def upload_media(path: str, data: bytes, content_type: str = "image/png", bucket: str = MEDIA_BUCKET) -> str:
    """Store a blob and return its public URL."""
    client = get_client()
    try:
        client.storage.from_(bucket).upload(
            path, data, file_options={"content-type": content_type, "upsert": "true"},
        )
    except Exception as exc:
        raise PersistenceError(f"[storage.upload] {exc}") from exc
    return client.storage.from_(bucket).get_public_url(path)
