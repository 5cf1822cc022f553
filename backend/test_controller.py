import pytest

from portfo.layout.controller import LayoutController, LayoutPhase
from portfo.layout.grid_types import GridItem
from portfo.models.schemas import GridConfig


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def controller(clock):
    return LayoutController(GridConfig(max_columns=4, cell_gap=8), debounce_s=0.1, clock=clock)


class TestLayoutPass:
    def test_uses_max_columns_before_first_measure(self, controller):
        snapshot = controller.set_items([GridItem("a", 2, 1)])
        assert controller.phase == LayoutPhase.SETTLED
        assert snapshot.columns == 4
        assert snapshot.container_width is None

    def test_first_width_applies_immediately(self, controller):
        controller.set_items([GridItem("a", 1, 1)])
        snapshot = controller.observe_width(650)
        assert snapshot is not None
        assert snapshot.columns == 3

    def test_later_widths_are_debounced(self, controller, clock):
        controller.set_items([GridItem("a", 1, 1)])
        controller.observe_width(1000)
        assert controller.observe_width(400) is None
        assert controller.flush() is None
        clock.now = 0.2
        snapshot = controller.flush()
        assert snapshot.columns == 2

    def test_same_column_count_skips_repack(self, controller, clock):
        controller.set_items([GridItem("a", 1, 1)])
        first = controller.observe_width(1000)
        controller.observe_width(990)
        clock.now = 0.2
        assert controller.flush() is None
        assert controller.snapshot.version == first.version
        assert controller.snapshot.container_width == 990

    def test_listeners_see_each_pass(self, controller):
        seen = []
        controller.subscribe(lambda previous, current: seen.append((previous, current)))
        first = controller.set_items([GridItem("a", 1, 1)])
        second = controller.set_items([GridItem("a", 2, 1)])
        assert seen == [(None, first), (first, second)]

    def test_unsubscribe(self, controller):
        seen = []
        unsubscribe = controller.subscribe(lambda previous, current: seen.append(current))
        unsubscribe()
        controller.recompute()
        assert seen == []


class TestEmptyCells:
    def test_editable_grid_reports_actionable_cells(self, controller):
        snapshot = controller.set_items([GridItem("a", 2, 1)])
        assert [(c.row, c.col) for c in snapshot.empty_cells if c.actionable] == [(1, 3)]

    def test_full_grid_reserves_a_row(self, controller):
        snapshot = controller.set_items([GridItem("a", 4, 1)])
        actionable = [c for c in snapshot.empty_cells if c.actionable]
        assert [(c.row, c.col) for c in actionable] == [(2, 1)]
        assert snapshot.total_rows == 2
        assert snapshot.layout.total_rows == 1

    def test_empty_section_offers_first_cell(self, controller):
        snapshot = controller.set_items([])
        assert [(c.row, c.col) for c in snapshot.empty_cells if c.actionable] == [(1, 1)]

    def test_preview_mode_has_no_cells(self, controller):
        controller.set_items([GridItem("a", 2, 1)])
        snapshot = controller.set_editable(False)
        assert snapshot.empty_cells == []

    def test_cells_follow_current_packing(self, controller):
        controller.set_items([GridItem("a", 2, 1)])
        snapshot = controller.set_config(GridConfig(max_columns=2, cell_gap=8))
        # Two columns are full, so the append slot moved to a new row
        assert [(c.row, c.col) for c in snapshot.empty_cells if c.actionable] == [(2, 1)]


class TestDispose:
    def test_use_after_dispose_raises(self, controller):
        controller.set_items([GridItem("a", 1, 1)])
        controller.dispose()
        assert controller.phase == LayoutPhase.DISPOSED
        assert controller.snapshot is None
        with pytest.raises(RuntimeError):
            controller.recompute()
