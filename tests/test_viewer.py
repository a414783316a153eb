from __future__ import annotations

import json
from pathlib import Path

import pytest

from bitquest.cli.viewer import AsciiViewer, SessionController, TextRenderSink, _build_parser, run_terminal
from bitquest.content.io import DEFAULT_SAVE_PATH, PersistenceGateway, load_session_json
from bitquest.sim.cells import Cell, CoordinateMapper, WorldConfig
from bitquest.sim.generation import CellGenerator
from bitquest.sim.interactions import OUTCOME_COLLECTED, OUTCOME_OUT_OF_RANGE
from bitquest.sim.session import GameSession


class TableGenerator(CellGenerator):
    def __init__(self, table: dict[Cell, int]) -> None:
        super().__init__(seed=0)
        self.table = table

    def decide_spawn(self, cell: Cell) -> bool:
        return cell in self.table

    def decide_value(self, cell: Cell) -> int:
        return self.table.get(cell, 1)


def _make_session(sink: TextRenderSink) -> GameSession:
    config = WorldConfig(cell_size=1.0, view_radius=1, origin=(0.5, 0.5))
    return GameSession.fresh(config, render=sink, generator=TableGenerator({Cell(0, 1): 3}))


def test_ascii_viewer_draws_window_with_north_up() -> None:
    sink = TextRenderSink()
    session = _make_session(sink)

    lines = AsciiViewer(sink).render(session).splitlines()

    assert lines[0] == "pos=(0,0) inventory=0 active=1 overrides=0"
    assert lines[1:4] == [" . . .", " . @ 3", " . . ."]
    assert lines[4] == "here=-"


def test_controller_reports_out_of_range_and_collects() -> None:
    sink = TextRenderSink()
    session = _make_session(sink)
    messages: list[str] = []
    controller = SessionController(session, emit=messages.append)

    assert controller.click(0, 1).outcome == OUTCOME_OUT_OF_RANGE
    assert messages[-1] == "[bitquest.viewer] too far to interact cell=(0,1)"

    controller.move("east")
    assert controller.take().outcome == OUTCOME_COLLECTED
    assert sink.labels[Cell(0, 1)] == 0
    assert session.player.inventory == 3

    controller.reset()
    assert messages[-1] == "[bitquest.viewer] session reset"
    assert sink.labels == {Cell(0, 1): 3}


def test_terminal_parser_defaults() -> None:
    args = _build_parser().parse_args([])

    assert args.seed == 0
    assert args.save_path == DEFAULT_SAVE_PATH
    assert args.reset is False


def test_run_terminal_moves_and_saves(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    save_path = tmp_path / "terminal.json"
    commands = iter(["n", "click 0 0", "bogus", "show", "quit"])
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(commands))

    result = run_terminal(["--seed", "3", "--radius", "2", "--save-path", str(save_path)])

    assert result == 0
    loaded = load_session_json(save_path)
    start = CoordinateMapper().to_cell(WorldConfig().origin)
    assert loaded.player.position == start.offset(1, 0)
    output = capsys.readouterr().out
    assert "too far to interact cell=(0,0)" in output
    assert "unknown command" in output


def test_run_terminal_reset_requires_confirmation(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    save_path = tmp_path / "terminal.json"
    commands = iter(["s", "reset", "n", "reset", "y", "quit"])
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(commands))

    result = run_terminal(["--radius", "1", "--save-path", str(save_path)])

    assert result == 0
    assert not save_path.exists()


def test_controller_reports_each_save(tmp_path: Path) -> None:
    sink = TextRenderSink()
    config = WorldConfig(cell_size=1.0, view_radius=1, origin=(0.5, 0.5))
    gateway = PersistenceGateway(tmp_path / "save.json")
    session = GameSession.fresh(config, render=sink, gateway=gateway, generator=TableGenerator({Cell(0, 1): 3}))
    messages: list[str] = []
    errors: list[str] = []
    controller = SessionController(session, emit=messages.append, emit_error=errors.append)

    controller.move("east")
    assert messages[-1] == f"[bitquest.viewer] saved path={gateway.path} save_hash={gateway.last_save_hash}"
    controller.take()
    assert messages[-1].startswith("[bitquest.viewer] saved path=")
    controller.click(5, 5)
    assert messages[-1] == "[bitquest.viewer] too far to interact cell=(5,5)"
    assert errors == []


def test_controller_reports_failed_save_as_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    session = GameSession.fresh(
        WorldConfig(cell_size=1.0, view_radius=1, origin=(0.5, 0.5)),
        gateway=PersistenceGateway(blocker / "save.json"),
    )
    messages: list[str] = []
    errors: list[str] = []
    controller = SessionController(session, emit=messages.append, emit_error=errors.append)

    assert controller.move("north") == Cell(1, 0)
    assert len(errors) == 1
    assert errors[0].startswith(f"[bitquest.viewer] save failed path={blocker / 'save.json'}: ")
    assert messages == []


def test_run_terminal_prints_save_hash(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    save_path = tmp_path / "terminal.json"
    commands = iter(["e", "quit"])
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(commands))

    assert run_terminal(["--radius", "1", "--save-path", str(save_path)]) == 0

    stored_hash = json.loads(save_path.read_text(encoding="utf-8"))["save_hash"]
    assert f"[bitquest.viewer] saved path={save_path} save_hash={stored_hash}" in capsys.readouterr().out


def test_run_terminal_survives_unwritable_save(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    save_path = tmp_path / "blocker" / "terminal.json"
    (tmp_path / "blocker").write_text("not a directory", encoding="utf-8")
    commands = iter(["n", "s", "quit"])
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(commands))

    assert run_terminal(["--radius", "1", "--save-path", str(save_path)]) == 0
    assert capsys.readouterr().err.count("[bitquest.viewer] save failed path=") == 2


def test_run_terminal_warns_when_save_was_made_with_another_seed(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    save_path = tmp_path / "terminal.json"
    commands = iter(["n", "quit", "quit"])
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(commands))

    run_terminal(["--seed", "3", "--radius", "1", "--save-path", str(save_path)])
    capsys.readouterr()
    run_terminal(["--seed", "4", "--radius", "1", "--save-path", str(save_path)])

    assert "[bitquest.viewer] warning: save was made with seed=3, running with seed=4" in capsys.readouterr().err
