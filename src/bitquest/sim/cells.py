from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

DEFAULT_CELL_SIZE = 1e-4
DEFAULT_VIEW_RADIUS = 15
DEFAULT_SPAWN_PROBABILITY = 0.3
DEFAULT_ORIGIN = (36.997936938057016, -122.05703507501151)

GeoPoint = tuple[float, float]


@dataclass(frozen=True, order=True)
class Cell:
    """Integer grid address (i, j); i follows latitude, j follows longitude."""

    i: int
    j: int

    def offset(self, delta_i: int, delta_j: int) -> "Cell":
        return Cell(
            self.i + require_int(delta_i, field_name="delta_i"),
            self.j + require_int(delta_j, field_name="delta_j"),
        )

    def chebyshev_distance(self, other: "Cell") -> int:
        return max(abs(self.i - other.i), abs(self.j - other.j))

    def to_dict(self) -> dict[str, int]:
        return {"i": self.i, "j": self.j}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Cell":
        return cls(i=require_int(data["i"], field_name="cell.i"), j=require_int(data["j"], field_name="cell.j"))


@dataclass(frozen=True)
class SpatialBounds:
    south: float
    west: float
    north: float
    east: float

    def center(self) -> GeoPoint:
        return ((self.south + self.north) / 2.0, (self.west + self.east) / 2.0)

    def contains(self, point: GeoPoint) -> bool:
        lat, lng = point
        return self.south <= lat < self.north and self.west <= lng < self.east


@dataclass(frozen=True)
class WorldConfig:
    seed: int = 0
    cell_size: float = DEFAULT_CELL_SIZE
    view_radius: int = DEFAULT_VIEW_RADIUS
    spawn_probability: float = DEFAULT_SPAWN_PROBABILITY
    origin: GeoPoint = DEFAULT_ORIGIN

    def __post_init__(self) -> None:
        if isinstance(self.seed, bool) or not isinstance(self.seed, int):
            raise ValueError("world_config.seed must be an integer")
        if not isinstance(self.cell_size, (int, float)) or self.cell_size <= 0:
            raise ValueError("world_config.cell_size must be > 0")
        if isinstance(self.view_radius, bool) or not isinstance(self.view_radius, int) or self.view_radius < 0:
            raise ValueError("world_config.view_radius must be an integer >= 0")
        if not isinstance(self.spawn_probability, (int, float)) or not 0.0 < self.spawn_probability < 1.0:
            raise ValueError("world_config.spawn_probability must be within (0.0, 1.0)")
        if len(self.origin) != 2:
            raise ValueError("world_config.origin must be a (lat, lng) pair")
        object.__setattr__(self, "origin", (float(self.origin[0]), float(self.origin[1])))

    def to_dict(self) -> dict[str, Any]:
        return {
            "seed": self.seed,
            "cell_size": self.cell_size,
            "view_radius": self.view_radius,
            "spawn_probability": self.spawn_probability,
            "origin": [self.origin[0], self.origin[1]],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorldConfig":
        origin = data.get("origin", DEFAULT_ORIGIN)
        return cls(
            seed=int(data.get("seed", 0)),
            cell_size=float(data.get("cell_size", DEFAULT_CELL_SIZE)),
            view_radius=int(data.get("view_radius", DEFAULT_VIEW_RADIUS)),
            spawn_probability=float(data.get("spawn_probability", DEFAULT_SPAWN_PROBABILITY)),
            origin=(float(origin[0]), float(origin[1])),
        )


class CoordinateMapper:
    """Maps geographic points onto the fixed-size cell grid and back."""

    def __init__(self, cell_size: float = DEFAULT_CELL_SIZE) -> None:
        if cell_size <= 0:
            raise ValueError("cell_size must be > 0")
        self.cell_size = cell_size

    def to_cell(self, point: GeoPoint) -> Cell:
        lat, lng = point
        return Cell(i=math.floor(lat / self.cell_size), j=math.floor(lng / self.cell_size))

    def to_bounds(self, cell: Cell) -> SpatialBounds:
        return SpatialBounds(
            south=cell.i * self.cell_size,
            west=cell.j * self.cell_size,
            north=(cell.i + 1) * self.cell_size,
            east=(cell.j + 1) * self.cell_size,
        )

    def cell_center(self, cell: Cell) -> GeoPoint:
        return self.to_bounds(cell).center()


def require_int(value: Any, *, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    return value
