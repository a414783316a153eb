from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from bitquest.sim.cells import Cell, CoordinateMapper, GeoPoint, WorldConfig
from bitquest.sim.generation import CellGenerator, resolve_cell_value
from bitquest.sim.interactions import InteractionEngine, InteractionOutcome
from bitquest.sim.overrides import OverrideStore
from bitquest.sim.player import PlayerState
from bitquest.sim.render import NullRenderSink, RenderSink
from bitquest.sim.viewport import ViewportWindow

if TYPE_CHECKING:
    from bitquest.content.io import PersistenceGateway

DIRECTIONS: dict[str, tuple[int, int]] = {
    "north": (1, 0),
    "south": (-1, 0),
    "west": (0, -1),
    "east": (0, 1),
}
WORLD_SHAPING_FIELDS = ("seed", "cell_size", "spawn_probability")


@dataclass
class SessionSnapshot:
    """Authoritative saved state; the active set is derived and never stored."""

    player: PlayerState
    overrides: OverrideStore = field(default_factory=OverrideStore)
    metadata: dict[str, Any] = field(default_factory=dict)


class GameSession:
    """Owns one world: player, override memento, viewport and interaction rules.

    Commands run to completion synchronously; the render sink only observes.
    """

    def __init__(
        self,
        config: WorldConfig,
        snapshot: SessionSnapshot,
        *,
        render: RenderSink | None = None,
        gateway: PersistenceGateway | None = None,
        generator: CellGenerator | None = None,
    ) -> None:
        self.config = config
        self.render = render if render is not None else NullRenderSink()
        self.gateway = gateway
        self.mapper = CoordinateMapper(config.cell_size)
        self.generator = generator if generator is not None else CellGenerator(
            seed=config.seed, spawn_probability=config.spawn_probability
        )
        self.player = snapshot.player
        self.overrides = snapshot.overrides
        self.viewport = ViewportWindow(
            radius=config.view_radius,
            mapper=self.mapper,
            overrides=self.overrides,
            generator=self.generator,
            render=self.render,
        )
        self.interactions = InteractionEngine(self.overrides, self.generator)
        self.config_drift = describe_config_drift(config, snapshot.metadata)
        self._refresh_view()

    @classmethod
    def fresh(
        cls,
        config: WorldConfig,
        *,
        render: RenderSink | None = None,
        gateway: PersistenceGateway | None = None,
        generator: CellGenerator | None = None,
    ) -> "GameSession":
        return cls(config, default_snapshot(config), render=render, gateway=gateway, generator=generator)

    @classmethod
    def from_snapshot(
        cls,
        config: WorldConfig,
        snapshot: SessionSnapshot,
        *,
        render: RenderSink | None = None,
        gateway: PersistenceGateway | None = None,
        generator: CellGenerator | None = None,
    ) -> "GameSession":
        return cls(config, snapshot, render=render, gateway=gateway, generator=generator)

    @classmethod
    def start(
        cls,
        config: WorldConfig,
        *,
        render: RenderSink | None = None,
        gateway: PersistenceGateway | None = None,
        generator: CellGenerator | None = None,
    ) -> "GameSession":
        """Resume from the gateway's save when one loads cleanly, else start fresh."""
        snapshot = gateway.load() if gateway is not None else None
        if snapshot is None:
            return cls.fresh(config, render=render, gateway=gateway, generator=generator)
        return cls.from_snapshot(config, snapshot, render=render, gateway=gateway, generator=generator)

    def effective_value(self, cell: Cell) -> int | None:
        return resolve_cell_value(cell, self.overrides, self.generator)

    def player_point(self) -> GeoPoint:
        return self.mapper.cell_center(self.player.position)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            player=PlayerState(position=self.player.position, inventory=self.player.inventory),
            overrides=OverrideStore(self.overrides.snapshot()),
            metadata={"world_config": self.config.to_dict()},
        )

    def move_player(self, delta_i: int, delta_j: int) -> Cell:
        self.player.position = self.player.position.offset(delta_i, delta_j)
        self._refresh_view()
        self.save()
        return self.player.position

    def move_direction(self, direction: str) -> Cell:
        if direction not in DIRECTIONS:
            raise ValueError(f"unknown direction: {direction}")
        delta_i, delta_j = DIRECTIONS[direction]
        return self.move_player(delta_i, delta_j)

    def interact(self, cell: Cell) -> InteractionOutcome:
        outcome = self.interactions.interact(self.player, cell)
        if outcome.changed:
            handle = self.viewport.handle_for(cell)
            if handle is not None and outcome.cell_value is not None:
                self.render.update_label(handle, outcome.cell_value)
            self.save()
        return outcome

    def interact_here(self) -> InteractionOutcome:
        return self.interact(self.player.position)

    def reset_session(self) -> None:
        if self.gateway is not None:
            self.gateway.clear()
        self.viewport.clear()
        fresh = default_snapshot(self.config)
        self.player.position = fresh.player.position
        self.player.inventory = fresh.player.inventory
        self.overrides.restore(())
        self._refresh_view()

    def save(self) -> bool:
        if self.gateway is None:
            return True
        return self.gateway.save(self.snapshot())

    def _refresh_view(self) -> None:
        self.render.set_marker_position(self.player_point())
        self.viewport.recompute(self.player.position)


def default_snapshot(config: WorldConfig) -> SessionSnapshot:
    start = CoordinateMapper(config.cell_size).to_cell(config.origin)
    return SessionSnapshot(player=PlayerState(position=start), metadata={"world_config": config.to_dict()})


def describe_config_drift(config: WorldConfig, metadata: dict[str, Any]) -> dict[str, tuple[Any, Any]]:
    """Fields where the save's recorded world config differs from ``config``, as (saved, active).

    Only fields that change which cells spawn or where they lie are compared.
    """
    raw = metadata.get("world_config")
    if raw is None:
        return {}
    active = config.to_dict()
    try:
        saved = WorldConfig.from_dict(raw).to_dict()
    except (ValueError, TypeError, KeyError, IndexError, AttributeError):
        return {"world_config": (raw, active)}
    return {name: (saved[name], active[name]) for name in WORLD_SHAPING_FIELDS if saved[name] != active[name]}
