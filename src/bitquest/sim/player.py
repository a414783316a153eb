from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from bitquest.sim.cells import Cell

EMPTY_INVENTORY = 0


@dataclass
class PlayerState:
    position: Cell
    inventory: int = EMPTY_INVENTORY

    def __post_init__(self) -> None:
        if not isinstance(self.position, Cell):
            raise ValueError("player.position must be a Cell")
        if isinstance(self.inventory, bool) or not isinstance(self.inventory, int):
            raise ValueError("player.inventory must be an integer")
        if self.inventory < 0:
            raise ValueError("player.inventory must be >= 0")

    @property
    def is_holding(self) -> bool:
        return self.inventory > EMPTY_INVENTORY

    def to_dict(self) -> dict[str, Any]:
        return {"inventory": self.inventory, "position": self.position.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlayerState":
        position = data["position"]
        if not isinstance(position, dict):
            raise ValueError("player.position must be an object")
        return cls(position=Cell.from_dict(position), inventory=data["inventory"])
