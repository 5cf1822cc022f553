"""Static HTML export."""

from bs4 import BeautifulSoup

from conftest import make_card
from portfo.layout.grid_types import GridItem
from portfo.layout.packer import pack
from portfo.models.schemas import Bio, BioBlock, GridConfig, PortfolioState, Section
from portfo.tools.export_html import generate_export_html, parse_export


class TestPlacement:
    def test_positions_match_packer(self, sample_state):
        document = generate_export_html(sample_state)
        parsed = parse_export(document)
        assert [s["section_id"] for s in parsed] == ["s-work", "s-about"]
        for section, exported in zip(sample_state.sections, parsed):
            expected = pack([GridItem(c.id, c.size.cols, c.size.rows) for c in section.cards], 4)
            assert exported["positions"] == expected.positions
            assert exported["max_columns"] == 4

    def test_three_column_grid(self):
        state = PortfolioState(
            grid_config=GridConfig(max_columns=3),
            sections=[Section(id="s", title="Grid", cards=[
                make_card("a", 2, 2), make_card("b"), make_card("c"), make_card("d", 2, 1),
            ])],
        )
        positions = parse_export(generate_export_html(state))[0]["positions"]
        assert (positions["c"].row_start, positions["c"].col_start) == (2, 3)
        assert (positions["d"].row_start, positions["d"].col_start) == (3, 1)

    def test_packer_script_is_inlined(self, sample_state):
        document = generate_export_html(sample_state)
        assert "function pack(items, columns)" in document
        assert "MIN_COLUMN_WIDTH = " in document


class TestContent:
    def test_values_are_escaped(self):
        state = PortfolioState(sections=[Section(id="s", title="<b>Work</b>", cards=[
            make_card("c", type="text", text='<script>alert("x")</script>'),
        ])])
        document = generate_export_html(state, title="Me & you")
        assert "<script>alert" not in document
        assert "&lt;b&gt;Work&lt;/b&gt;" in document
        assert "<title>Me &amp; you</title>" in document
        assert parse_export(document)[0]["title"] == "<b>Work</b>"

    def test_link_cards_are_anchors(self):
        state = PortfolioState(sections=[Section(id="s", title="Links", cards=[
            make_card("linked", title="Site", link_url="https://example.com"),
            make_card("plain", title="No link"),
        ])])
        soup = BeautifulSoup(generate_export_html(state), "html.parser")
        anchor = soup.select_one('[data-card-id="linked"]')
        assert anchor.name == "a"
        assert anchor["href"] == "https://example.com"
        assert soup.select_one('[data-card-id="plain"]').name == "div"

    def test_media_cards(self, sample_state):
        soup = BeautifulSoup(generate_export_html(sample_state), "html.parser")
        video = soup.select_one('[data-card-id="c-video"] video')
        assert video["src"] == "https://cdn.example.com/reel.mp4"
        assert soup.select_one('[data-card-id="c-video"] .caption').get_text() == "Reel"

    def test_bio(self, sample_state):
        sample_state.bio = Bio(name="Ada", description="Designer", blocks=[BioBlock(heading="Now", body="Studio")])
        soup = BeautifulSoup(generate_export_html(sample_state), "html.parser")
        header = soup.select_one("header.bio")
        assert header.h1.get_text() == "Ada"
        assert header.select_one(".bio-block h3").get_text() == "Now"

    def test_no_bio_no_header(self, sample_state):
        soup = BeautifulSoup(generate_export_html(sample_state), "html.parser")
        assert soup.select_one("header.bio") is None
