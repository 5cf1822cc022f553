"""Self-contained static HTML export of a portfolio.

Every card is placed with explicit grid-row / grid-column values computed by
`layout.packer.pack`, so the file renders correctly with scripts disabled.
The inline script carries the same column-fit and first-fit packing rules and
re-packs each grid when the viewport width changes.
"""

import html
import logging

from bs4 import BeautifulSoup

from ..layout.columns import MIN_COLUMN_WIDTH
from ..layout.grid_types import GridItem, Rect
from ..layout.packer import pack, parse_bento
from ..models.schemas import Bio, Card, PortfolioState, Section

logger = logging.getLogger(__name__)

# Must stay rule-for-rule identical to packer.pack and columns.resolve_columns
_PACKER_JS = """\
(function () {
  var MIN_COLUMN_WIDTH = %(min_width)d;

  function resolveColumns(width, maxColumns, gap) {
    for (var cols = maxColumns; cols >= 1; cols--) {
      if ((width - gap * (cols - 1)) / cols >= MIN_COLUMN_WIDTH) return cols;
    }
    return 1;
  }

  function parseBento(bento) {
    var parts = String(bento || '').toLowerCase().split('x');
    var span = function (p) { var n = parseInt(p, 10); return isNaN(n) ? 1 : n; };
    return [span(parts[0]), span(parts[1])];
  }

  function pack(items, columns) {
    columns = Math.max(1, columns);
    var occupied = {}, positions = [];
    function fits(r, c, w, h) {
      for (var dr = 0; dr < h; dr++)
        for (var dc = 0; dc < w; dc++)
          if (occupied[(r + dr) + ',' + (c + dc)]) return false;
      return true;
    }
    items.forEach(function (item) {
      var w = Math.min(Math.max(item.cols, 1), columns), h = Math.max(item.rows, 1);
      for (var r = 1; ; r++) {
        for (var c = 1; c <= columns - w + 1; c++) {
          if (fits(r, c, w, h)) {
            for (var dr = 0; dr < h; dr++)
              for (var dc = 0; dc < w; dc++) occupied[(r + dr) + ',' + (c + dc)] = true;
            positions.push({ row: r, col: c, rowSpan: h, colSpan: w });
            return;
          }
        }
      }
    });
    return positions;
  }

  function layout(grid) {
    var maxColumns = parseInt(grid.dataset.columns, 10);
    var gap = parseFloat(grid.dataset.gap);
    var aspect = parseFloat(grid.dataset.aspect);
    var width = grid.clientWidth;
    var columns = resolveColumns(width, maxColumns, gap);
    var cards = Array.prototype.slice.call(grid.querySelectorAll(':scope > .bento-card'));
    var items = cards.map(function (el) {
      var span = parseBento(el.dataset.bento);
      return { cols: span[0], rows: span[1] };
    });
    var colWidth = (width - gap * (columns - 1)) / columns;
    grid.style.gridTemplateColumns = 'repeat(' + columns + ', 1fr)';
    grid.style.gridAutoRows = (colWidth / aspect) + 'px';
    pack(items, columns).forEach(function (p, i) {
      cards[i].style.gridColumn = p.col + ' / span ' + p.colSpan;
      cards[i].style.gridRow = p.row + ' / span ' + p.rowSpan;
    });
  }

  function layoutAll() {
    document.querySelectorAll('.bento-grid').forEach(layout);
  }

  var timer = null;
  window.addEventListener('resize', function () {
    clearTimeout(timer);
    timer = setTimeout(layoutAll, 100);
  });
  layoutAll();
})();
"""

_STYLE = """\
*, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }
body { background: #f8fafc; min-height: 100vh; padding: 32px; font-family: system-ui, sans-serif; color: #111827; }
main { max-width: 960px; margin: 0 auto; }
.bio { margin-bottom: 40px; }
.bio img { width: 96px; height: 96px; border-radius: 50%; object-fit: cover; }
.bio h1 { font-size: 2rem; margin: 12px 0 4px; }
.bio-block { margin-top: 16px; }
.portfo-section { margin-bottom: 40px; }
.portfo-section h2 { font-size: 1.25rem; margin-bottom: 12px; }
.bento-grid { display: grid; }
.bento-card { position: relative; overflow: hidden; border-radius: 16px; padding: 20px;
  display: flex; flex-direction: column; justify-content: flex-end; text-decoration: none; }
.bento-card img, .bento-card video { position: absolute; inset: 0; width: 100%; height: 100%; object-fit: cover; }
.bento-card .caption { position: relative; align-self: flex-start; background: rgba(255,255,255,0.85);
  border-radius: 999px; padding: 4px 12px; font-size: 0.875rem; }
.bento-card .text { white-space: pre-wrap; }
"""


def _e(value: str) -> str:
    return html.escape(value or "", quote=True)


def _card_html(card: Card, rect: Rect) -> str:
    c = card.content
    style = (
        f"grid-column:{rect.col_start} / span {rect.col_span};"
        f"grid-row:{rect.row_start} / span {rect.row_span};"
        f"background-color:{_e(c.bg_color)};color:{_e(c.text_color)};"
    )
    inner = []
    if c.type == "image" and c.image_url:
        transform = f"transform:translate({c.media_offset_x}%,{c.media_offset_y}%) scale({c.media_scale});"
        inner.append(f'<img src="{_e(c.image_url)}" alt="{_e(c.title)}" style="{transform}" loading="lazy">')
    elif c.type == "video" and c.video_url:
        inner.append(f'<video src="{_e(c.video_url)}" autoplay muted loop playsinline></video>')
    elif c.type == "text" and c.text:
        font = f' style="font-size:{c.manual_font_size}px"' if c.manual_font_size else ""
        inner.append(f'<p class="text"{font}>{_e(c.text)}</p>')
    if c.title:
        inner.append(f'<span class="caption">{_e(c.title)}</span>')

    tag, href = ("a", f' href="{_e(c.link_url)}" target="_blank" rel="noopener"') if c.link_url else ("div", "")
    return (
        f'<{tag} class="bento-card" data-card-id="{_e(card.id)}" data-bento="{card.bento}"'
        f'{href} style="{style}">{"".join(inner)}</{tag}>'
    )


def _section_html(section: Section, state: PortfolioState) -> str:
    config = state.grid_config
    layout = pack([GridItem(c.id, c.size.cols, c.size.rows) for c in section.cards], config.max_columns)
    cards = "\n      ".join(_card_html(card, layout.positions[card.id]) for card in section.cards)
    return f"""\
  <section class="portfo-section" data-section-id="{_e(section.id)}">
    <h2>{_e(section.title)}</h2>
    <div class="bento-grid" data-columns="{config.max_columns}" data-gap="{config.cell_gap}" \
data-aspect="{config.aspect_ratio}" style="gap:{config.cell_gap}px;\
grid-template-columns:repeat({layout.columns}, 1fr);">
      {cards}
    </div>
  </section>"""


def _bio_html(bio: Bio | None) -> str:
    if bio is None:
        return ""
    parts = ['  <header class="bio">']
    if bio.avatar:
        parts.append(f'    <img src="{_e(bio.avatar)}" alt="{_e(bio.name)}">')
    if bio.name:
        parts.append(f"    <h1>{_e(bio.name)}</h1>")
    if bio.description:
        parts.append(f"    <p>{_e(bio.description)}</p>")
    for block in bio.blocks:
        parts.append(f'    <div class="bio-block"><h3>{_e(block.heading)}</h3><p>{_e(block.body)}</p></div>')
    parts.append("  </header>")
    return "\n".join(parts)


def generate_export_html(state: PortfolioState, title: str = "Portfolio") -> str:
    sections = "\n".join(_section_html(s, state) for s in state.sections)
    logger.info("Export: %d sections, %d cards", len(state.sections), state.card_count())
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{_e(title)}</title>
  <style>
{_STYLE}  </style>
</head>
<body>
<main>
{_bio_html(state.bio)}
{sections}
</main>
<script>
{_PACKER_JS % {"min_width": MIN_COLUMN_WIDTH}}</script>
</body>
</html>
"""


def _parse_placement(style: str) -> tuple[int, int, int, int]:
    """Pull (row, col, row_span, col_span) out of an inline grid placement style."""
    props = {}
    for decl in style.split(";"):
        if ":" in decl:
            key, value = decl.split(":", 1)
            props[key.strip()] = value.strip()

    def start_span(value: str) -> tuple[int, int]:
        start, _, span = value.partition("/")
        return int(start), int(span.replace("span", "").strip() or 1)

    row, row_span = start_span(props["grid-row"])
    col, col_span = start_span(props["grid-column"])
    return row, col, row_span, col_span


def parse_export(document: str) -> list[dict]:
    """Recover each section's declared items and placements from an export.

    Returns `[{"section_id", "title", "max_columns", "items": [GridItem],
    "positions": {card_id: Rect}}]` in document order.
    """
    soup = BeautifulSoup(document, "html.parser")
    sections = []
    for el in soup.select("section.portfo-section"):
        grid = el.select_one(".bento-grid")
        items, positions = [], {}
        for card in grid.select(".bento-card"):
            cols, rows = parse_bento(card["data-bento"])
            items.append(GridItem(card["data-card-id"], cols, rows))
            row, col, row_span, col_span = _parse_placement(card.get("style", ""))
            positions[card["data-card-id"]] = Rect(row, col, row_span, col_span)
        sections.append({
            "section_id": el["data-section-id"],
            "title": el.h2.get_text() if el.h2 else "",
            "max_columns": int(grid["data-columns"]),
            "items": items,
            "positions": positions,
        })
    return sections
