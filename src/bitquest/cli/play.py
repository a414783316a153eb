from __future__ import annotations

import argparse
from typing import Sequence

from bitquest.cli.pygame_viewer import run_pygame_viewer
from bitquest.content.io import DEFAULT_SAVE_PATH, PersistenceGateway
from bitquest.sim.cells import WorldConfig
from bitquest.sim.session import default_snapshot

DEFAULT_SEED = 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bitquest-play", description="Canonical BitQuest launcher.")
    parser.add_argument("--seed", type=int, default=DEFAULT_SEED, help="World seed for procedural cells.")
    parser.add_argument("--save-path", default=DEFAULT_SAVE_PATH, help="Session save JSON loaded at startup.")
    parser.add_argument("--headless", action="store_true", help="Run startup path in headless mode.")
    parser.add_argument("--reset", action="store_true", help="Erase the save and start a fresh world.")
    return parser


def _ensure_save_exists(*, save_path: str, seed: int) -> None:
    gateway = PersistenceGateway(save_path)
    if gateway.exists():
        return
    gateway.save(default_snapshot(WorldConfig(seed=seed)))


def main(argv: Sequence[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    if args.reset:
        PersistenceGateway(args.save_path).clear()
    _ensure_save_exists(save_path=args.save_path, seed=args.seed)
    return run_pygame_viewer(
        seed=args.seed,
        headless=args.headless,
        save_path=args.save_path,
    )


if __name__ == "__main__":
    raise SystemExit(main())
