from __future__ import annotations

import hashlib
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from bitquest.sim.session import GameSession

SAVE_HASH_FIELDS = ("schema_version", "inventory", "position", "overrides")


def _canonical_digest(payload: Any) -> str:
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def save_hash(payload: dict[str, Any]) -> str:
    return _canonical_digest({key: payload[key] for key in SAVE_HASH_FIELDS})


def session_hash(session: GameSession) -> str:
    payload = {
        "world_config": session.config.to_dict(),
        "player": session.player.to_dict(),
        "overrides": session.overrides.to_triples(),
        "active_cells": [cell.to_dict() for cell in sorted(session.viewport.active_cells)],
    }
    return _canonical_digest(payload)
