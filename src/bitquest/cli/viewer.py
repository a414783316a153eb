from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field
from typing import Callable, Sequence

from bitquest.content.io import DEFAULT_SAVE_PATH, PersistenceGateway
from bitquest.sim.cells import Cell, GeoPoint, SpatialBounds, WorldConfig
from bitquest.sim.hash import session_hash
from bitquest.sim.interactions import OUTCOME_OUT_OF_RANGE, InteractionOutcome
from bitquest.sim.render import RenderHandle
from bitquest.sim.session import DIRECTIONS, GameSession

DEFAULT_TERMINAL_RADIUS = 6
PLAYER_GLYPH = "@"
EMPTY_GLYPH = "."
COMMAND_ALIASES: dict[str, str] = {"n": "north", "s": "south", "w": "west", "e": "east"}


@dataclass
class TextRenderSink:
    """Render collaborator that keeps the labels the terminal map prints."""

    labels: dict[Cell, int] = field(default_factory=dict)
    marker: GeoPoint | None = None

    def activate(self, cell: Cell, bounds: SpatialBounds, value: int) -> RenderHandle:
        self.labels[cell] = value
        return cell

    def deactivate(self, handle: RenderHandle) -> None:
        self.labels.pop(handle, None)

    def update_label(self, handle: RenderHandle, value: int) -> None:
        self.labels[handle] = value

    def set_marker_position(self, point: GeoPoint) -> None:
        self.marker = point


class AsciiViewer:
    """Read-only projection of the session window; north is up."""

    def __init__(self, sink: TextRenderSink) -> None:
        self.sink = sink

    def render(self, session: GameSession) -> str:
        player = session.player
        radius = session.viewport.radius
        lines = [
            f"pos=({player.position.i},{player.position.j}) inventory={player.inventory} "
            f"active={len(session.viewport.active_cells)} overrides={len(session.overrides)}"
        ]
        for i in range(player.position.i + radius, player.position.i - radius - 1, -1):
            row: list[str] = []
            for j in range(player.position.j - radius, player.position.j + radius + 1):
                cell = Cell(i, j)
                if cell == player.position:
                    row.append(f"{PLAYER_GLYPH:>2}")
                    continue
                value = self.sink.labels.get(cell)
                row.append(f"{EMPTY_GLYPH if value is None else value:>2}")
            lines.append("".join(row))
        here = self.sink.labels.get(player.position)
        lines.append(f"here={'-' if here is None else here}")
        return "\n".join(lines)


def _print_error(message: str) -> None:
    print(message, file=sys.stderr)


def save_report(session: GameSession, saves_before: int) -> tuple[str | None, bool]:
    """Message for the save a command triggered, and whether it failed; ``(None, False)`` if none was written."""
    gateway = session.gateway
    if gateway is None or gateway.saves_attempted == saves_before:
        return (None, False)
    if gateway.last_error is not None:
        return (f"[bitquest.viewer] save failed path={gateway.path}: {gateway.last_error}", True)
    return (f"[bitquest.viewer] saved path={gateway.path} save_hash={gateway.last_save_hash}", False)


def config_drift_warnings(session: GameSession) -> list[str]:
    return [
        f"[bitquest.viewer] warning: save was made with {name}={saved!r}, running with {name}={active!r}"
        for name, (saved, active) in sorted(session.config_drift.items())
    ]


class SessionController:
    """Terminal command adapter; the session remains the source of truth."""

    def __init__(
        self,
        session: GameSession,
        *,
        emit: Callable[[str], None] = print,
        emit_error: Callable[[str], None] = _print_error,
    ) -> None:
        self.session = session
        self.emit = emit
        self.emit_error = emit_error

    def move(self, direction: str) -> Cell:
        saves_before = self._saves_attempted()
        position = self.session.move_direction(direction)
        self._report_save(saves_before)
        return position

    def click(self, i: int, j: int) -> InteractionOutcome:
        saves_before = self._saves_attempted()
        outcome = self.session.interact(Cell(i, j))
        self._report(outcome)
        self._report_save(saves_before)
        return outcome

    def take(self) -> InteractionOutcome:
        saves_before = self._saves_attempted()
        outcome = self.session.interact_here()
        self._report(outcome)
        self._report_save(saves_before)
        return outcome

    def reset(self) -> None:
        self.session.reset_session()
        gateway = self.session.gateway
        if gateway is not None and gateway.last_error is not None:
            self.emit_error(f"[bitquest.viewer] could not erase save path={gateway.path}: {gateway.last_error}")
        self.emit("[bitquest.viewer] session reset")

    def _saves_attempted(self) -> int:
        return self.session.gateway.saves_attempted if self.session.gateway is not None else 0

    def _report_save(self, saves_before: int) -> None:
        message, failed = save_report(self.session, saves_before)
        if message is None:
            return
        if failed:
            self.emit_error(message)
        else:
            self.emit(message)

    def _report(self, outcome: InteractionOutcome) -> None:
        if outcome.outcome == OUTCOME_OUT_OF_RANGE:
            self.emit(f"[bitquest.viewer] too far to interact cell=({outcome.cell.i},{outcome.cell.j})")
            return
        self.emit(f"[bitquest.viewer] {outcome.outcome} inventory={outcome.inventory} cell_value={outcome.cell_value}")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bitquest-terminal", description="Terminal BitQuest session.")
    parser.add_argument("--seed", type=int, default=0, help="World seed for procedural cells.")
    parser.add_argument("--radius", type=int, default=DEFAULT_TERMINAL_RADIUS, help="Visibility radius in cells.")
    parser.add_argument("--save-path", default=DEFAULT_SAVE_PATH, help="Session save JSON path.")
    parser.add_argument("--reset", action="store_true", help="Discard any existing save before starting.")
    return parser


def build_terminal_session(args: argparse.Namespace) -> tuple[GameSession, TextRenderSink]:
    gateway = PersistenceGateway(args.save_path)
    if args.reset:
        gateway.clear()
    sink = TextRenderSink()
    session = GameSession.start(WorldConfig(seed=args.seed, view_radius=args.radius), render=sink, gateway=gateway)
    if gateway.last_error is not None:
        print(f"[bitquest.viewer] discarded unreadable save path={gateway.path}: {gateway.last_error}", file=sys.stderr)
    for warning in config_drift_warnings(session):
        print(warning, file=sys.stderr)
    return session, sink


def run_terminal(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    session, sink = build_terminal_session(args)
    view = AsciiViewer(sink)
    controller = SessionController(session)

    print("BitQuest. Commands: n | s | e | w | take | click <i> <j> | show | reset | quit")
    print(f"[bitquest.viewer] started save={args.save_path} session_hash={session_hash(session)}")
    print(view.render(session))

    while True:
        try:
            raw = input("> ").strip()
        except EOFError:
            break
        if raw in {"quit", "exit"}:
            break
        if raw == "show":
            print(view.render(session))
            continue
        if raw in COMMAND_ALIASES or raw in DIRECTIONS:
            controller.move(COMMAND_ALIASES.get(raw, raw))
            print(view.render(session))
            continue
        if raw == "take":
            controller.take()
            continue
        if raw == "reset":
            confirm = input("Erase your save and restart? [y/N] ").strip().lower()
            if confirm in {"y", "yes"}:
                controller.reset()
                print(view.render(session))
            continue

        parts = raw.split()
        if len(parts) == 3 and parts[0] == "click":
            try:
                i, j = int(parts[1]), int(parts[2])
            except ValueError:
                print("click expects two integers")
                continue
            controller.click(i, j)
            continue

        print("unknown command")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    raise SystemExit(run_terminal(argv))


if __name__ == "__main__":
    main()
