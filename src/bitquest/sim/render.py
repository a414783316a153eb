from __future__ import annotations

from typing import Any, Protocol

from bitquest.sim.cells import Cell, GeoPoint, SpatialBounds

RenderHandle = Any


class RenderSink(Protocol):
    """Observer of engine state; never mutates the session."""

    def activate(self, cell: Cell, bounds: SpatialBounds, value: int) -> RenderHandle:
        ...

    def deactivate(self, handle: RenderHandle) -> None:
        ...

    def update_label(self, handle: RenderHandle, value: int) -> None:
        ...

    def set_marker_position(self, point: GeoPoint) -> None:
        ...


class NullRenderSink:
    """Headless sink; handles are the cells themselves."""

    def activate(self, cell: Cell, bounds: SpatialBounds, value: int) -> RenderHandle:
        return cell

    def deactivate(self, handle: RenderHandle) -> None:
        return None

    def update_label(self, handle: RenderHandle, value: int) -> None:
        return None

    def set_marker_position(self, point: GeoPoint) -> None:
        return None
