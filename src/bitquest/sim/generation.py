from __future__ import annotations

import math

from bitquest.sim.cells import DEFAULT_SPAWN_PROBABILITY, Cell
from bitquest.sim.overrides import OverrideStore
from bitquest.sim.rng import unit_draw

VALUE_SALT = "val"
MIN_BASE_VALUE = 1
BASE_VALUE_CHOICES = 4


class CellGenerator:
    """Stateless procedural source of cell spawns and base values.

    Every decision is a pure function of (seed, cell), so a cell that leaves the
    viewport and comes back later resolves to the same value.
    """

    def __init__(self, seed: int = 0, spawn_probability: float = DEFAULT_SPAWN_PROBABILITY) -> None:
        if not 0.0 < spawn_probability < 1.0:
            raise ValueError("spawn_probability must be within (0.0, 1.0)")
        self.seed = seed
        self.spawn_probability = spawn_probability

    def draw(self, cell: Cell, salt: str | None = None) -> float:
        key = f"{cell.i},{cell.j}" if salt is None else f"{cell.i},{cell.j},{salt}"
        return unit_draw(self.seed, key)

    def decide_spawn(self, cell: Cell) -> bool:
        return self.draw(cell) < self.spawn_probability

    def decide_value(self, cell: Cell) -> int:
        return math.floor(self.draw(cell, VALUE_SALT) * BASE_VALUE_CHOICES) + MIN_BASE_VALUE

    def generated_value(self, cell: Cell) -> int | None:
        if not self.decide_spawn(cell):
            return None
        return self.decide_value(cell)


def resolve_cell_value(cell: Cell, overrides: OverrideStore, generator: CellGenerator) -> int | None:
    """Effective value: override first, generator second, else the cell does not exist."""
    stored = overrides.get(cell)
    if stored is not None:
        return stored
    return generator.generated_value(cell)
