from __future__ import annotations

import json
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from bitquest.content.schema import parse_legacy_cell_key, validate_legacy_payload, validate_session_payload
from bitquest.sim.cells import Cell
from bitquest.sim.hash import save_hash
from bitquest.sim.overrides import OverrideStore
from bitquest.sim.player import PlayerState
from bitquest.sim.session import SessionSnapshot

SCHEMA_VERSION = 1
CANONICAL_JSON_INDENT = 2
CANONICAL_JSON_SEPARATORS = (",", ": ")
DEFAULT_SAVE_PATH = "saves/bitquest_state.json"


def _build_session_payload(snapshot: SessionSnapshot) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "inventory": snapshot.player.inventory,
        "position": snapshot.player.position.to_dict(),
        "overrides": snapshot.overrides.to_triples(),
        "metadata": dict(snapshot.metadata),
    }
    payload["save_hash"] = save_hash(payload)
    return payload


def _canonical_json(payload: dict[str, Any]) -> str:
    return json.dumps(
        payload,
        indent=CANONICAL_JSON_INDENT,
        separators=CANONICAL_JSON_SEPARATORS,
        sort_keys=True,
    )


def _write_atomic_json(path: str | Path, payload: dict[str, Any]) -> None:
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)
    serialized = _canonical_json(payload)

    temp_path: Path | None = None
    try:
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=destination.parent,
            delete=False,
            suffix=".tmp",
        ) as temp_file:
            temp_file.write(serialized)
            temp_file.flush()
            os.fsync(temp_file.fileno())
            temp_path = Path(temp_file.name)
        os.replace(temp_path, destination)
    except Exception:
        if temp_path is not None:
            temp_path.unlink(missing_ok=True)
        raise


def _load_canonical_session_payload(payload: dict[str, Any]) -> SessionSnapshot:
    validate_session_payload(payload)

    expected_hash = payload["save_hash"]
    actual_hash = save_hash(payload)
    if expected_hash != actual_hash:
        raise ValueError(
            f"save_hash mismatch while loading save (stored={expected_hash}, recomputed={actual_hash})"
        )

    return SessionSnapshot(
        player=PlayerState.from_dict(payload),
        overrides=OverrideStore.from_triples(payload["overrides"]),
        metadata=dict(payload.get("metadata", {})),
    )


def _load_legacy_session_payload(payload: dict[str, Any]) -> SessionSnapshot:
    validate_legacy_payload(payload)
    entries = []
    for index, (key, value) in enumerate(payload["savedCells"]):
        i, j = parse_legacy_cell_key(key, field_name=f"legacy payload.savedCells[{index}]")
        entries.append((Cell(i, j), value))
    return SessionSnapshot(
        player=PlayerState.from_dict({"position": payload["gridPos"], "inventory": payload["inventory"]}),
        overrides=OverrideStore(entries),
        metadata={"migrated_from": "legacy"},
    )


def session_payload(snapshot: SessionSnapshot) -> dict[str, Any]:
    return _build_session_payload(snapshot)


def save_session_json(path: str | Path, snapshot: SessionSnapshot) -> str:
    payload = _build_session_payload(snapshot)
    validate_session_payload(payload)
    _write_atomic_json(path, payload)
    return payload["save_hash"]


def load_session_json(path: str | Path) -> SessionSnapshot:
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"save is not valid JSON: {exc}") from exc
    if isinstance(payload, dict) and "savedCells" in payload and "save_hash" not in payload:
        return _load_legacy_session_payload(payload)
    return _load_canonical_session_payload(payload)


class PersistenceGateway:
    """Durable JSON store for one session save.

    ``load`` never raises for a missing or corrupt save; it answers ``None`` and
    keeps the reason in ``last_error`` so callers can report a fresh start.
    ``save`` likewise absorbs write failures into ``last_error``; ``saves_attempted``
    lets callers tell whether a command wrote at all.
    """

    def __init__(self, path: str | Path = DEFAULT_SAVE_PATH) -> None:
        self.path = Path(path)
        self.last_error: str | None = None
        self.last_save_hash: str | None = None
        self.saves_attempted = 0

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, snapshot: SessionSnapshot) -> bool:
        self.saves_attempted += 1
        try:
            self.last_save_hash = save_session_json(self.path, snapshot)
        except OSError as exc:
            self.last_error = f"{type(exc).__name__}: {exc}"
            return False
        self.last_error = None
        return True

    def load(self) -> SessionSnapshot | None:
        self.last_error = None
        if not self.path.exists():
            return None
        try:
            return load_session_json(self.path)
        except (OSError, ValueError, KeyError, TypeError, RecursionError) as exc:
            self.last_error = f"{type(exc).__name__}: {exc}"
            return None

    def clear(self) -> bool:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            self.last_error = f"{type(exc).__name__}: {exc}"
            return False
        self.last_error = None
        return True
