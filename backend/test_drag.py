import pytest

from portfo.layout.drag import (
    AutoScroller,
    DragPhase,
    DragReorderController,
    MoveIntent,
    ReorderIntent,
    SectionGeometry,
)
from portfo.layout.grid_types import Box
from portfo.store.actions import MOVE_CARD_TO_SECTION, REORDER_CARDS


def geometry() -> list[SectionGeometry]:
    # Two sections of 100 px cards, stacked vertically
    return [
        SectionGeometry(
            section_id="s1",
            container=Box(0, 0, 300, 100),
            card_ids=["a", "b", "c"],
            card_boxes={"a": Box(0, 0, 100, 100), "b": Box(100, 0, 100, 100), "c": Box(200, 0, 100, 100)},
        ),
        SectionGeometry(
            section_id="s2",
            container=Box(0, 200, 300, 200),
            card_ids=["d"],
            card_boxes={"d": Box(0, 200, 100, 100)},
        ),
    ]


@pytest.fixture
def committed():
    return []


@pytest.fixture
def drag(committed):
    return DragReorderController(geometry, on_commit=committed.append)


class TestDragReorder:
    def test_drop_on_card_in_same_section_reorders(self, drag, committed):
        drag.start("s1", 0, (50, 50))
        drag.move(250, 50)
        intent = drag.release()
        assert intent == ReorderIntent("s1", 0, 2)
        assert committed == [intent]
        assert intent.to_action().type == REORDER_CARDS
        assert drag.phase == DragPhase.COMMITTED

    def test_drop_on_card_in_other_section_moves_before_it(self, drag):
        drag.start("s1", 1, (150, 50))
        drag.move(50, 250)
        intent = drag.release()
        assert intent == MoveIntent("b", "s1", "s2", 0)
        assert intent.to_action().type == MOVE_CARD_TO_SECTION

    def test_drop_on_empty_area_of_other_section_appends(self, drag):
        drag.start("s1", 1, (150, 50))
        drag.move(250, 350)
        assert drag.release() == MoveIntent("b", "s1", "s2", None)

    def test_drop_on_self_cancels(self, drag, committed):
        drag.start("s1", 0, (50, 50))
        drag.move(60, 60)
        assert drag.release() is None
        assert committed == []
        assert drag.phase == DragPhase.IDLE

    def test_drop_outside_any_section_cancels(self, drag, committed):
        drag.start("s1", 0, (50, 50))
        drag.move(900, 900)
        assert drag.release() is None
        assert committed == []

    def test_ghost_follows_pointer_with_grab_offset(self, drag):
        ghost = drag.start("s1", 1, (130, 20))
        assert ghost == Box(100, 0, 100, 100)
        frame = drag.move(230, 120)
        assert frame.ghost == Box(200, 100, 100, 100)

    def test_start_with_bad_index_raises(self, drag):
        with pytest.raises(ValueError):
            drag.start("s1", 5, (0, 0))

    def test_move_without_drag_raises(self, drag):
        with pytest.raises(RuntimeError):
            drag.move(0, 0)

    def test_release_without_drag_is_noop(self, drag, committed):
        assert drag.release() is None
        assert committed == []


class TestAutoScroller:
    def test_scrolls_down_near_bottom_edge(self):
        scroller = AutoScroller()
        scroller.update(900, 0, 1000)
        assert scroller.update(960, 0, 1000) > 0

    def test_scrolls_up_near_top_edge(self):
        scroller = AutoScroller()
        scroller.update(40, 0, 1000)
        assert scroller.update(20, 0, 1000) < 0

    def test_idle_in_middle(self):
        scroller = AutoScroller()
        assert scroller.update(500, 0, 1000) == 0.0

    def test_decays_when_pointer_reverses(self):
        scroller = AutoScroller()
        scroller.update(950, 0, 1000)
        fast = scroller.update(990, 0, 1000)
        slower = scroller.update(970, 0, 1000)
        assert 0 <= slower < fast

    def test_speed_is_capped(self):
        scroller = AutoScroller(max_speed=10)
        scroller.update(0, 0, 1000)
        for y in (500, 995, 999):
            speed = scroller.update(y, 0, 1000)
        assert speed <= 10
