from __future__ import annotations

from bitquest.sim.cells import Cell, CoordinateMapper
from bitquest.sim.generation import CellGenerator, resolve_cell_value
from bitquest.sim.overrides import OverrideStore
from bitquest.sim.render import RenderHandle, RenderSink


class ViewportWindow:
    """Flyweight set of materialized cells inside a Chebyshev window around the player.

    Deactivation only drops render handles; override entries are untouched.
    """

    def __init__(
        self,
        *,
        radius: int,
        mapper: CoordinateMapper,
        overrides: OverrideStore,
        generator: CellGenerator,
        render: RenderSink,
    ) -> None:
        if radius < 0:
            raise ValueError("radius must be >= 0")
        self.radius = radius
        self.mapper = mapper
        self.overrides = overrides
        self.generator = generator
        self.render = render
        self.center: Cell | None = None
        self._active: dict[Cell, RenderHandle] = {}

    @property
    def active_cells(self) -> frozenset[Cell]:
        return frozenset(self._active)

    def handle_for(self, cell: Cell) -> RenderHandle | None:
        return self._active.get(cell)

    def is_active(self, cell: Cell) -> bool:
        return cell in self._active

    def in_window(self, cell: Cell) -> bool:
        return self.center is not None and self.center.chebyshev_distance(cell) <= self.radius

    def window_cells(self, center: Cell) -> list[Cell]:
        cells: list[Cell] = []
        for i in range(center.i - self.radius, center.i + self.radius + 1):
            for j in range(center.j - self.radius, center.j + self.radius + 1):
                cells.append(Cell(i, j))
        return cells

    def recompute(self, center: Cell) -> tuple[list[Cell], list[Cell]]:
        """Bring the active set in line with the window at ``center``.

        Returns the (activated, deactivated) cells; both are empty when the window
        did not change.
        """
        self.center = center
        deactivated = [cell for cell in self._active if not self.in_window(cell)]
        for cell in deactivated:
            self.render.deactivate(self._active.pop(cell))

        activated: list[Cell] = []
        for cell in self.window_cells(center):
            if cell in self._active:
                continue
            value = resolve_cell_value(cell, self.overrides, self.generator)
            if value is None:
                continue
            self._active[cell] = self.render.activate(cell, self.mapper.to_bounds(cell), value)
            activated.append(cell)
        return activated, sorted(deactivated)

    def clear(self) -> list[Cell]:
        deactivated = sorted(self._active)
        for cell in deactivated:
            self.render.deactivate(self._active.pop(cell))
        self.center = None
        return deactivated
