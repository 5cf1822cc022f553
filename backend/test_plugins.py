"""Agent-callable plugin operations."""

import pytest

from portfo.plugins import ALL_PLUGINS, PluginContext, get_plugin, get_tool_definitions


@pytest.fixture
def ctx(store):
    return PluginContext(store)


def run(ctx: PluginContext, name: str, /, **args) -> dict:
    return get_plugin(name).execute(args, ctx)


class TestRegistry:
    def test_names_are_unique(self):
        names = [p.name for p in ALL_PLUGINS]
        assert len(names) == len(set(names))

    def test_tool_definitions_have_object_schemas(self):
        for tool in get_tool_definitions():
            assert set(tool) == {"name", "description", "parameters"}
            assert tool["parameters"]["type"] == "object"

    def test_unknown_name(self):
        assert get_plugin("launch_rockets") is None


class TestValidation:
    def test_schema_violation_reported_without_raising(self, ctx):
        result = run(ctx, "resize_card", section_index=0, card_index=0, width=7, height=1)
        assert result["success"] is False
        assert result["error"].startswith("Invalid arguments for resize_card")
        assert "width" in result["error"]

    def test_missing_required(self, ctx):
        result = run(ctx, "create_section")
        assert result["success"] is False
        assert "title" in result["error"]


class TestSectionPlugins:
    def test_unknown_section_lists_titles(self, ctx):
        result = run(ctx, "add_card", section_title="Projects")
        assert result["success"] is False
        assert '"Work"' in result["error"]
        assert '"About"' in result["error"]

    def test_section_title_is_case_insensitive(self, ctx, store):
        result = run(ctx, "add_card", section_title="work", width=2, height=1)
        assert result["success"] is True
        assert store.state.sections[0].cards[-1].bento == "2x1"

    def test_section_index_out_of_range_is_one_based(self, ctx):
        result = run(ctx, "delete_section", section_index=5)
        assert result["success"] is False
        assert "position 6" in result["error"]
        assert "valid positions are 1 to 2" in result["error"]

    def test_create_section_is_idempotent(self, ctx, store):
        first = run(ctx, "create_section", title="Press")
        again = run(ctx, "create_section", title="press")
        assert first["created"] is True
        assert again["created"] is False
        assert again["section_id"] == first["section_id"]
        assert [s.title for s in store.state.sections] == ["Work", "About", "Press"]

    def test_rename_and_reorder(self, ctx, store):
        assert run(ctx, "rename_section", section_title="About", new_title="Me")["success"]
        assert run(ctx, "reorder_section", from_index=1, to_index=0)["success"]
        assert [s.title for s in store.state.sections] == ["Me", "Work"]

    def test_reorder_section_out_of_range(self, ctx):
        result = run(ctx, "reorder_section", from_index=0, to_index=3)
        assert "Invalid target position 4" in result["error"]

    def test_list_sections(self, ctx):
        result = run(ctx, "list_sections")
        assert result["sections"] == [
            {"index": 0, "title": "Work", "card_count": 3},
            {"index": 1, "title": "About", "card_count": 1},
        ]


class TestCardPlugins:
    def test_add_card_at_position(self, ctx, store):
        result = run(ctx, "add_card", section_index=0, position=0, content_type="text")
        assert result["card_index"] == 0
        assert store.state.sections[0].cards[0].id == result["card_id"]
        assert store.state.sections[0].cards[0].content.type == "text"

    def test_add_card_bad_position(self, ctx):
        result = run(ctx, "add_card", section_index=1, position=4)
        assert "Invalid position 5" in result["error"]
        assert "valid positions are 1 to 2" in result["error"]

    def test_card_index_out_of_range_is_one_based(self, ctx):
        result = run(ctx, "remove_card", section_title="Work", card_index=3)
        assert result["success"] is False
        assert "Card position 4 is out of range" in result["error"]
        assert "valid positions are 1 to 3" in result["error"]

    def test_card_matched_by_caption_or_text(self, ctx, store):
        assert run(ctx, "remove_card", section_title="Work", card_title="hello")["success"]
        assert [c.id for c in store.state.sections[0].cards] == ["c-landing", "c-video"]

    def test_card_match_failure_lists_cards(self, ctx):
        result = run(ctx, "remove_card", section_title="Work", card_title="Résumé")
        assert '"Landing page"' in result["error"]

    def test_resize(self, ctx, store):
        assert run(ctx, "resize_card", section_index=1, card_index=0, width=3, height=2)["success"]
        assert store.state.sections[1].cards[0].bento == "3x2"

    def test_update_card_requires_a_field(self, ctx):
        result = run(ctx, "update_card", section_index=0, card_index=0)
        assert result["success"] is False

    def test_update_card_rejects_bad_color(self, ctx):
        result = run(ctx, "update_card", section_index=0, card_index=0, bg_color="red")
        assert result["error"].startswith("Invalid arguments")

    def test_update_caption_keeps_type(self, ctx, store):
        run(ctx, "update_card_caption", section_index=0, card_index=2, caption="Showreel")
        content = store.state.sections[0].cards[2].content
        assert (content.type, content.title) == ("video", "Showreel")

    def test_update_text_switches_type(self, ctx, store):
        run(ctx, "update_card_text", section_index=0, card_index=0, text="About this project")
        content = store.state.sections[0].cards[0].content
        assert (content.type, content.text) == ("text", "About this project")

    def test_update_media(self, ctx, store):
        run(ctx, "update_card_media", section_index=0, card_index=1, media_type="image", url="https://x/y.png")
        content = store.state.sections[0].cards[1].content
        assert (content.type, content.image_url) == ("image", "https://x/y.png")

    def test_update_link(self, ctx, store):
        run(ctx, "update_card_link", section_index=1, card_index=0, link_url="https://example.com")
        assert store.state.sections[1].cards[0].content.link_url == "https://example.com"

    def test_move_card(self, ctx, store):
        result = run(ctx, "move_card", section_title="Work", from_index=2, to_index=0)
        assert result["success"]
        assert [c.id for c in store.state.sections[0].cards] == ["c-video", "c-landing", "c-hello"]

    def test_move_card_bad_source(self, ctx):
        result = run(ctx, "move_card", section_title="Work", from_index=5, to_index=0)
        assert "Invalid source position 6" in result["error"]

    def test_move_card_to_section_end(self, ctx, store):
        result = run(
            ctx, "move_card_to_section",
            from_section_title="Work", to_section_title="About", card_index=0, to_index=1,
        )
        assert result["success"]
        assert [c.id for c in store.state.sections[1].cards] == ["c-portrait", "c-landing"]

    def test_move_card_to_section_bad_target(self, ctx):
        result = run(ctx, "move_card_to_section", from_section_index=0, to_section_title="Nope", card_index=0)
        assert result["error"].startswith("Target: ")

    def test_list_cards(self, ctx):
        result = run(ctx, "list_cards", section_title="About")
        assert result["sections"][0]["cards"][0]["bento"] == "1x2"


class TestBioPlugins:
    def test_set_bio_and_blocks(self, ctx, store):
        assert run(ctx, "set_bio", name="Ada", description="Designer")["success"]
        assert run(ctx, "add_bio_block", heading="Now", body="Freelancing")["success"]
        assert run(ctx, "update_bio_block", block_index=0, body="At a studio")["success"]
        bio = store.state.bio
        assert bio.name == "Ada"
        assert [(b.heading, b.body) for b in bio.blocks] == [("Now", "At a studio")]

    def test_block_index_out_of_range(self, ctx):
        run(ctx, "set_bio", name="Ada")
        result = run(ctx, "remove_bio_block", block_index=0)
        assert "Bio block position 1 is out of range" in result["error"]

    def test_clear_bio(self, ctx, store):
        run(ctx, "set_bio", name="Ada")
        assert run(ctx, "clear_bio")["success"]
        assert store.state.bio is None
