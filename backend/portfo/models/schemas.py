"""Pydantic models for portfolio state."""

import uuid
from typing import Literal

from pydantic import BaseModel, Field

from ..config import DEFAULT_ASPECT_RATIO, DEFAULT_CELL_GAP, DEFAULT_GRID_COLUMNS

ContentType = Literal["image", "video", "text"]

# Background colours handed out to new cards in rotation
CARD_COLORS = ["#fde2e4", "#d3e4cd", "#dde1f8", "#fce8c3", "#c9e8f5", "#f5e6d3"]
DEFAULT_TEXT_COLOR = "#374151"

# Payload fields that belong to each content type
_TYPE_FIELDS: dict[str, set[str]] = {
    "image": {"image_url", "media_scale", "media_offset_x", "media_offset_y"},
    "video": {"video_url", "media_scale", "media_offset_x", "media_offset_y"},
    "text": {"text", "manual_font_size"},
}


def new_id() -> str:
    return uuid.uuid4().hex[:16]


class GridConfig(BaseModel):
    """Grid settings shared by every section of one portfolio."""

    max_columns: int = Field(default=DEFAULT_GRID_COLUMNS, ge=1, le=12)
    cell_gap: int = Field(default=DEFAULT_CELL_GAP, ge=0)
    aspect_ratio: float = Field(default=DEFAULT_ASPECT_RATIO, gt=0)


class CardSize(BaseModel):
    cols: int = Field(default=1, ge=1, le=4)
    rows: int = Field(default=1, ge=1, le=4)

    @property
    def bento(self) -> str:
        return f"{self.cols}x{self.rows}"


class CardContent(BaseModel):
    """What a card shows. Opaque to the packer."""

    type: ContentType = "image"
    image_url: str = ""
    video_url: str = ""
    text: str = ""
    title: str = Field(default="", description="Caption pill on media cards")
    bg_color: str = CARD_COLORS[0]
    text_color: str = DEFAULT_TEXT_COLOR
    link_url: str = ""
    manual_font_size: float | None = None
    media_scale: float = 1.0
    media_offset_x: float = 0.0
    media_offset_y: float = 0.0

    def with_updates(self, updates: dict) -> "CardContent":
        """Apply a partial update. Switching type clears the payload of the old type."""
        data = self.model_dump()
        new_type = updates.get("type", self.type)
        if new_type != self.type:
            defaults = CardContent().model_dump()
            for name in _TYPE_FIELDS[self.type] - _TYPE_FIELDS[new_type]:
                data[name] = defaults[name]
        data.update(updates)
        return CardContent.model_validate(data)


class Card(BaseModel):
    id: str = Field(default_factory=new_id)
    size: CardSize = Field(default_factory=CardSize)
    content: CardContent = Field(default_factory=CardContent)

    @property
    def bento(self) -> str:
        return self.size.bento


class Section(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str
    cards: list[Card] = Field(default_factory=list)


class BioBlock(BaseModel):
    id: str = Field(default_factory=new_id)
    heading: str = ""
    body: str = ""
    links: list[dict] = Field(default_factory=list)
    formatting: list[dict] = Field(default_factory=list)


class Bio(BaseModel):
    avatar: str = ""
    name: str = ""
    description: str = ""
    blocks: list[BioBlock] = Field(default_factory=list)


class PortfolioState(BaseModel):
    """Everything the editor renders. Mutated only through the store's dispatch."""

    mode: Literal["edit", "preview"] = "edit"
    selected_card_id: str | None = None
    is_dirty: bool = False
    last_saved: str | None = None
    grid_config: GridConfig = Field(default_factory=GridConfig)
    sections: list[Section] = Field(default_factory=list)
    bio: Bio | None = None

    def find_card(self, card_id: str) -> tuple[Section, int] | None:
        """Return (section, index) of a card, or None."""
        for section in self.sections:
            for i, card in enumerate(section.cards):
                if card.id == card_id:
                    return section, i
        return None

    def card_count(self) -> int:
        return sum(len(s.cards) for s in self.sections)
