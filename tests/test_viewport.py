from __future__ import annotations

from bitquest.sim.cells import Cell, CoordinateMapper, GeoPoint, SpatialBounds
from bitquest.sim.generation import CellGenerator
from bitquest.sim.overrides import OverrideStore
from bitquest.sim.viewport import ViewportWindow


class TableGenerator(CellGenerator):
    def __init__(self, table: dict[Cell, int]) -> None:
        super().__init__(seed=0)
        self.table = table

    def decide_spawn(self, cell: Cell) -> bool:
        return cell in self.table

    def decide_value(self, cell: Cell) -> int:
        return self.table.get(cell, 1)


class RecordingSink:
    def __init__(self) -> None:
        self.live: dict[tuple[str, int, int], int] = {}
        self.activations: list[Cell] = []
        self.deactivations: list[Cell] = []

    def activate(self, cell: Cell, bounds: SpatialBounds, value: int) -> tuple[str, int, int]:
        handle = ("tile", cell.i, cell.j)
        assert handle not in self.live
        self.live[handle] = value
        self.activations.append(cell)
        return handle

    def deactivate(self, handle: tuple[str, int, int]) -> None:
        del self.live[handle]
        self.deactivations.append(Cell(handle[1], handle[2]))

    def update_label(self, handle: tuple[str, int, int], value: int) -> None:
        self.live[handle] = value

    def set_marker_position(self, point: GeoPoint) -> None:
        pass


def _make_window(
    generator: CellGenerator,
    *,
    radius: int = 2,
    overrides: OverrideStore | None = None,
) -> tuple[ViewportWindow, RecordingSink, OverrideStore]:
    sink = RecordingSink()
    store = overrides if overrides is not None else OverrideStore()
    window = ViewportWindow(radius=radius, mapper=CoordinateMapper(), overrides=store, generator=generator, render=sink)
    return window, sink, store


def _expected_active(center: Cell, radius: int, generator: CellGenerator, overrides: OverrideStore) -> set[Cell]:
    expected: set[Cell] = set()
    for i in range(center.i - radius, center.i + radius + 1):
        for j in range(center.j - radius, center.j + radius + 1):
            cell = Cell(i, j)
            if cell in overrides or generator.decide_spawn(cell):
                expected.add(cell)
    return expected


def test_recompute_activates_exactly_existing_cells_in_window() -> None:
    generator = CellGenerator(seed=21)
    window, sink, store = _make_window(generator, radius=4)

    window.recompute(Cell(10, -3))

    assert window.active_cells == _expected_active(Cell(10, -3), 4, generator, store)
    assert len(sink.live) == len(window.active_cells)


def test_recompute_twice_is_a_no_op() -> None:
    window, sink, _ = _make_window(CellGenerator(seed=4), radius=3)

    window.recompute(Cell(0, 0))
    before = (window.active_cells, len(sink.activations), len(sink.deactivations))
    activated, deactivated = window.recompute(Cell(0, 0))

    assert activated == []
    assert deactivated == []
    assert (window.active_cells, len(sink.activations), len(sink.deactivations)) == before


def test_moving_deactivates_cells_that_leave_window() -> None:
    table = {Cell(0, -2): 1, Cell(0, 2): 2, Cell(0, 3): 3}
    window, sink, _ = _make_window(TableGenerator(table), radius=2)

    window.recompute(Cell(0, 0))
    assert window.active_cells == {Cell(0, -2), Cell(0, 2)}

    activated, deactivated = window.recompute(Cell(0, 1))

    assert deactivated == [Cell(0, -2)]
    assert activated == [Cell(0, 3)]
    assert window.active_cells == {Cell(0, 2), Cell(0, 3)}
    assert ("tile", 0, -2) not in sink.live


def test_override_materializes_cell_generator_would_skip() -> None:
    store = OverrideStore([(Cell(1, 1), 0)])
    window, sink, _ = _make_window(TableGenerator({}), radius=1, overrides=store)

    window.recompute(Cell(0, 0))

    assert window.active_cells == {Cell(1, 1)}
    assert sink.live[("tile", 1, 1)] == 0


def test_reentering_cell_reproduces_generated_value() -> None:
    generator = CellGenerator(seed=99)
    window, sink, _ = _make_window(generator, radius=1)
    window.recompute(Cell(0, 0))
    first_seen = {handle: value for handle, value in sink.live.items()}

    window.recompute(Cell(50, 50))
    window.recompute(Cell(0, 0))

    assert sink.live == first_seen


def test_deactivation_keeps_override_entries() -> None:
    store = OverrideStore([(Cell(0, 0), 0)])
    window, _, _ = _make_window(TableGenerator({Cell(0, 0): 3}), radius=0, overrides=store)

    window.recompute(Cell(0, 0))
    window.recompute(Cell(5, 5))

    assert not window.is_active(Cell(0, 0))
    assert store.get(Cell(0, 0)) == 0


def test_clear_releases_every_handle() -> None:
    window, sink, _ = _make_window(TableGenerator({Cell(0, 0): 1, Cell(1, 1): 2}), radius=1)
    window.recompute(Cell(0, 0))

    cleared = window.clear()

    assert cleared == [Cell(0, 0), Cell(1, 1)]
    assert sink.live == {}
    assert window.active_cells == frozenset()
