from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from bitquest.sim.cells import Cell
from bitquest.sim.generation import CellGenerator, resolve_cell_value
from bitquest.sim.overrides import OverrideStore
from bitquest.sim.player import EMPTY_INVENTORY, PlayerState

OUTCOME_COLLECTED = "collected"
OUTCOME_MERGED = "merged"
OUTCOME_NO_CHANGE = "no_change"
OUTCOME_OUT_OF_RANGE = "out_of_range"
OUTCOME_UNKNOWN_TARGET = "unknown_target"
STATE_CHANGING_OUTCOMES = frozenset({OUTCOME_COLLECTED, OUTCOME_MERGED})


@dataclass(frozen=True)
class InteractionOutcome:
    outcome: str
    cell: Cell
    inventory: int
    cell_value: int | None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return self.outcome in STATE_CHANGING_OUTCOMES

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcome": self.outcome,
            "cell": self.cell.to_dict(),
            "inventory": self.inventory,
            "cell_value": self.cell_value,
            "details": dict(self.details),
        }


class InteractionEngine:
    """Collect/merge transitions between the player's single slot and the occupied cell.

    Rules, in order:
      * empty hand, cell holding v > 0: take v, cell becomes 0
      * holding v, cell holding exactly v: cell becomes 2v, hand empties
      * anything else: no change
    Every applied transition is written straight into the override store.
    """

    def __init__(self, overrides: OverrideStore, generator: CellGenerator) -> None:
        self.overrides = overrides
        self.generator = generator

    def interact(self, player: PlayerState, cell: Cell) -> InteractionOutcome:
        if player.position != cell:
            return InteractionOutcome(
                outcome=OUTCOME_OUT_OF_RANGE,
                cell=cell,
                inventory=player.inventory,
                cell_value=None,
                details={"distance": player.position.chebyshev_distance(cell)},
            )

        cell_value = resolve_cell_value(cell, self.overrides, self.generator)
        if cell_value is None:
            return InteractionOutcome(
                outcome=OUTCOME_UNKNOWN_TARGET,
                cell=cell,
                inventory=player.inventory,
                cell_value=None,
            )

        if not player.is_holding and cell_value > 0:
            player.inventory = cell_value
            self.overrides.set(cell, 0)
            return InteractionOutcome(
                outcome=OUTCOME_COLLECTED,
                cell=cell,
                inventory=player.inventory,
                cell_value=0,
                details={"taken": cell_value},
            )

        if player.is_holding and cell_value == player.inventory:
            deposited = player.inventory
            merged = cell_value + deposited
            player.inventory = EMPTY_INVENTORY
            self.overrides.set(cell, merged)
            return InteractionOutcome(
                outcome=OUTCOME_MERGED,
                cell=cell,
                inventory=player.inventory,
                cell_value=merged,
                details={"deposited": deposited},
            )

        return InteractionOutcome(
            outcome=OUTCOME_NO_CHANGE,
            cell=cell,
            inventory=player.inventory,
            cell_value=cell_value,
        )
