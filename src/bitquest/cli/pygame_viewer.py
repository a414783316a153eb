from __future__ import annotations

import argparse
import importlib.metadata
import os
import platform
import sys
from dataclasses import dataclass, field
from typing import Any

from bitquest.cli.viewer import config_drift_warnings, save_report
from bitquest.content.io import DEFAULT_SAVE_PATH, PersistenceGateway
from bitquest.sim.cells import Cell, GeoPoint, SpatialBounds, WorldConfig
from bitquest.sim.hash import session_hash
from bitquest.sim.interactions import OUTCOME_OUT_OF_RANGE
from bitquest.sim.render import RenderHandle
from bitquest.sim.session import GameSession

CELL_PIXELS = 24
WINDOW_SIZE = (980, 820)
HUD_HEIGHT = 64
VIEWPORT_MARGIN = 12
PLAYER_RADIUS = 7

BACKGROUND_COLOR = (17, 18, 25)
CACHE_COLOR = (255, 120, 0)
EMPTY_CACHE_COLOR = (128, 128, 128)
PLAYER_COLOR = (80, 160, 255)
TEXT_COLOR = (230, 230, 230)

MOVE_KEYS: dict[str, tuple[int, int]] = {
    "K_UP": (1, 0),
    "K_w": (1, 0),
    "K_DOWN": (-1, 0),
    "K_s": (-1, 0),
    "K_LEFT": (0, -1),
    "K_a": (0, -1),
    "K_RIGHT": (0, 1),
    "K_d": (0, 1),
}

pygame: Any | None = None


@dataclass
class TileRecord:
    cell: Cell
    bounds: SpatialBounds
    value: int


@dataclass
class PygameRenderSink:
    """Keeps one tile record per active cell; drawn every frame by the viewer."""

    tiles: dict[int, TileRecord] = field(default_factory=dict)
    marker: GeoPoint | None = None
    _next_handle: int = 0

    def activate(self, cell: Cell, bounds: SpatialBounds, value: int) -> RenderHandle:
        handle = self._next_handle
        self._next_handle += 1
        self.tiles[handle] = TileRecord(cell=cell, bounds=bounds, value=value)
        return handle

    def deactivate(self, handle: RenderHandle) -> None:
        self.tiles.pop(handle, None)

    def update_label(self, handle: RenderHandle, value: int) -> None:
        tile = self.tiles.get(handle)
        if tile is not None:
            tile.value = value

    def set_marker_position(self, point: GeoPoint) -> None:
        self.marker = point


def _viewport_center() -> tuple[float, float]:
    width = WINDOW_SIZE[0] - (VIEWPORT_MARGIN * 2)
    height = WINDOW_SIZE[1] - HUD_HEIGHT - (VIEWPORT_MARGIN * 2)
    return (VIEWPORT_MARGIN + width / 2.0, HUD_HEIGHT + VIEWPORT_MARGIN + height / 2.0)


def _geo_to_pixel(point: GeoPoint, marker: GeoPoint, cell_size: float, center: tuple[float, float]) -> tuple[float, float]:
    lat, lng = point
    marker_lat, marker_lng = marker
    pixel_x = center[0] + (lng - marker_lng) / cell_size * CELL_PIXELS
    pixel_y = center[1] - (lat - marker_lat) / cell_size * CELL_PIXELS
    return (pixel_x, pixel_y)


def _pixel_to_geo(pixel: tuple[int, int], marker: GeoPoint, cell_size: float, center: tuple[float, float]) -> GeoPoint:
    marker_lat, marker_lng = marker
    lng = marker_lng + (pixel[0] - center[0]) / CELL_PIXELS * cell_size
    lat = marker_lat - (pixel[1] - center[1]) / CELL_PIXELS * cell_size
    return (lat, lng)


def _cell_at_pixel(session: GameSession, pixel: tuple[int, int]) -> Cell:
    point = _pixel_to_geo(pixel, session.player_point(), session.config.cell_size, _viewport_center())
    return session.mapper.to_cell(point)


def _tile_rect(tile: TileRecord, marker: GeoPoint, cell_size: float, center: tuple[float, float]) -> tuple[int, int, int, int]:
    left, top = _geo_to_pixel((tile.bounds.north, tile.bounds.west), marker, cell_size, center)
    right, bottom = _geo_to_pixel((tile.bounds.south, tile.bounds.east), marker, cell_size, center)
    return (round(left), round(top), round(right - left), round(bottom - top))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m bitquest.cli.pygame_viewer", description="BitQuest pygame viewer.")
    parser.add_argument("--seed", type=int, default=0, help="World seed for procedural cells.")
    parser.add_argument("--radius", type=int, default=None, help="Visibility radius in cells (default 15).")
    parser.add_argument("--headless", action="store_true", help="Run startup path without opening a window.")
    parser.add_argument("--save-path", default=DEFAULT_SAVE_PATH, help="Session save JSON path.")
    parser.add_argument("--reset", action="store_true", help="Discard any existing save before starting.")
    return parser


def _env_flag_enabled(var_name: str) -> bool:
    return os.environ.get(var_name, "").strip().lower() in {"1", "true", "yes", "on"}


def _print_startup_banner() -> None:
    try:
        pygame_version = importlib.metadata.version("pygame")
    except importlib.metadata.PackageNotFoundError:
        pygame_version = "not-installed"
    print(
        "[bitquest.viewer] startup "
        f"python={platform.python_version()} "
        f"pygame={pygame_version} "
        f"platform={platform.platform()}"
    )
    for name in ("SDL_VIDEODRIVER", "SDL_AUDIODRIVER"):
        value = os.environ.get(name, "<unset>")
        print(f"[bitquest.viewer] env {name}={value}")


def _ensure_pygame_imported() -> Any:
    global pygame
    if pygame is None:
        import pygame as pygame_module

        pygame = pygame_module
    return pygame


def _build_viewer_session(config: WorldConfig, save_path: str, *, reset: bool) -> tuple[GameSession, PygameRenderSink]:
    gateway = PersistenceGateway(save_path)
    if reset:
        gateway.clear()
    sink = PygameRenderSink()
    session = GameSession.start(config, render=sink, gateway=gateway)
    if gateway.last_error is not None:
        print(f"[bitquest.viewer] discarded unreadable save path={save_path}: {gateway.last_error}", file=sys.stderr)
    for warning in config_drift_warnings(session):
        print(warning, file=sys.stderr)
    print(
        "[bitquest.viewer] session ready "
        f"path={save_path} pos=({session.player.position.i},{session.player.position.j}) "
        f"inventory={session.player.inventory} overrides={len(session.overrides)} "
        f"session_hash={session_hash(session)}"
    )
    return session, sink


def _saves_attempted(session: GameSession) -> int:
    return session.gateway.saves_attempted if session.gateway is not None else 0


def _print_save_report(session: GameSession, saves_before: int) -> str | None:
    """Print the save line for the last command; answers a HUD status only when the save failed."""
    message, failed = save_report(session, saves_before)
    if message is None:
        return None
    if failed:
        print(message, file=sys.stderr)
        return "save failed; progress is not on disk"
    print(message)
    return None


def _draw_world(screen: Any, session: GameSession, sink: PygameRenderSink, font: Any) -> None:
    center = _viewport_center()
    marker = sink.marker if sink.marker is not None else session.player_point()
    cell_size = session.config.cell_size
    for tile in sink.tiles.values():
        rect = pygame.Rect(*_tile_rect(tile, marker, cell_size, center))
        color = EMPTY_CACHE_COLOR if tile.value == 0 else CACHE_COLOR
        pygame.draw.rect(screen, color, rect, 1)
        label = font.render(str(tile.value), True, color)
        screen.blit(label, label.get_rect(center=rect.center))
    pygame.draw.circle(screen, PLAYER_COLOR, (round(center[0]), round(center[1])), PLAYER_RADIUS)


def _draw_hud(screen: Any, session: GameSession, font: Any, status_message: str | None) -> None:
    position = session.player.position
    text = f"Inventory: {session.player.inventory}   cell=({position.i},{position.j})"
    screen.blit(font.render(text, True, TEXT_COLOR), (VIEWPORT_MARGIN, VIEWPORT_MARGIN))
    hint = status_message or "arrows/WASD move | click your cell | R reset | Esc quit"
    screen.blit(font.render(hint, True, TEXT_COLOR), (VIEWPORT_MARGIN, VIEWPORT_MARGIN + 26))


def run_pygame_viewer(
    *,
    seed: int = 0,
    radius: int | None = None,
    headless: bool = False,
    save_path: str = DEFAULT_SAVE_PATH,
    reset: bool = False,
) -> int:
    if headless:
        os.environ["SDL_VIDEODRIVER"] = "dummy"
        print("[bitquest.viewer] warning: headless mode active; no window will open.")

    _print_startup_banner()

    try:
        config = WorldConfig(seed=seed) if radius is None else WorldConfig(seed=seed, view_radius=radius)
        session, sink = _build_viewer_session(config, save_path, reset=reset)
    except (OSError, ValueError) as exc:
        print(f"[bitquest.viewer] failed to initialize session: {exc}", file=sys.stderr)
        return 1

    if headless:
        return 0

    pygame_module = _ensure_pygame_imported()
    try:
        pygame_module.init()
        pygame_module.display.set_caption("BitQuest")
        screen = pygame_module.display.set_mode(WINDOW_SIZE)
    except Exception as exc:
        print(
            "[bitquest.viewer] failed to open display: "
            f"{exc}. Hint: use --headless or BITQUEST_HEADLESS=1 without a display.",
            file=sys.stderr,
        )
        pygame_module.quit()
        return 1

    move_keys = {getattr(pygame_module, name): delta for name, delta in MOVE_KEYS.items()}
    clock = pygame_module.time.Clock()
    font = pygame_module.font.SysFont("consolas", 20)
    label_font = pygame_module.font.SysFont("consolas", 14)
    status_message: str | None = None
    confirming_reset = False
    running = True

    while running:
        clock.tick(30)
        for event in pygame_module.event.get():
            if event.type == pygame_module.QUIT:
                running = False
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_ESCAPE:
                running = False
            elif event.type == pygame_module.KEYDOWN and confirming_reset:
                confirming_reset = False
                if event.key == pygame_module.K_y:
                    session.reset_session()
                    status_message = "session reset"
                    if session.gateway is not None and session.gateway.last_error is not None:
                        status_message = "could not erase save"
                        print(f"[bitquest.viewer] could not erase save path={save_path}: {session.gateway.last_error}", file=sys.stderr)
                    print(f"[bitquest.viewer] session reset path={save_path}")
                else:
                    status_message = "reset cancelled"
            elif event.type == pygame_module.KEYDOWN and event.key == pygame_module.K_r:
                confirming_reset = True
                status_message = "Erase your save and restart? Y to confirm"
            elif event.type == pygame_module.KEYDOWN and event.key in move_keys:
                delta_i, delta_j = move_keys[event.key]
                saves_before = _saves_attempted(session)
                session.move_player(delta_i, delta_j)
                status_message = _print_save_report(session, saves_before)
            elif event.type == pygame_module.MOUSEBUTTONDOWN and event.button == 1:
                cell = _cell_at_pixel(session, event.pos)
                if not session.viewport.is_active(cell):
                    continue
                saves_before = _saves_attempted(session)
                outcome = session.interact(cell)
                if outcome.outcome == OUTCOME_OUT_OF_RANGE:
                    status_message = "Too far to interact!"
                    print(f"[bitquest.viewer] too far to interact cell=({cell.i},{cell.j})")
                else:
                    status_message = f"{outcome.outcome}: inventory={outcome.inventory}"
                status_message = _print_save_report(session, saves_before) or status_message

        screen.fill(BACKGROUND_COLOR)
        _draw_world(screen, session, sink, label_font)
        _draw_hud(screen, session, font, status_message)
        pygame_module.display.flip()

    pygame_module.quit()
    return 0


def main(argv: list[str] | None = None) -> None:
    args = _build_parser().parse_args(argv)
    headless = args.headless or _env_flag_enabled("BITQUEST_HEADLESS")
    raise SystemExit(
        run_pygame_viewer(
            seed=args.seed,
            radius=args.radius,
            headless=headless,
            save_path=args.save_path,
            reset=args.reset,
        )
    )


if __name__ == "__main__":
    main()
