from __future__ import annotations

from typing import Any

SUPPORTED_SCHEMA_VERSIONS = {1}
REQUIRED_SESSION_FIELDS = {"schema_version", "inventory", "position", "overrides", "save_hash"}
REQUIRED_LEGACY_FIELDS = {"inventory", "gridPos", "savedCells"}


def _is_json_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (bool, int, float, str))


def _validate_json_value(value: Any, *, field_name: str) -> None:
    if _is_json_primitive(value):
        return
    if isinstance(value, list):
        for item in value:
            _validate_json_value(item, field_name=field_name)
        return
    if isinstance(value, dict):
        for key, nested_value in value.items():
            if not isinstance(key, str):
                raise ValueError(f"{field_name} keys must be strings")
            _validate_json_value(nested_value, field_name=field_name)
        return
    raise ValueError(f"{field_name} must contain only canonical JSON primitives")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_non_negative_int(value: Any, *, field_name: str) -> None:
    if not _is_int(value):
        raise ValueError(f"{field_name} must be an integer")
    if value < 0:
        raise ValueError(f"{field_name} must be >= 0")


def _validate_position(position: Any, *, field_name: str) -> None:
    if not isinstance(position, dict):
        raise ValueError(f"{field_name} must be an object")
    for axis in ("i", "j"):
        if not _is_int(position.get(axis)):
            raise ValueError(f"{field_name}.{axis} must be an integer")


def validate_session_payload(payload: Any) -> None:
    if not isinstance(payload, dict):
        raise ValueError("session payload must be an object")

    missing = REQUIRED_SESSION_FIELDS - set(payload.keys())
    if missing:
        raise ValueError(f"session payload missing fields: {sorted(missing)}")

    schema_version = payload["schema_version"]
    if not _is_int(schema_version):
        raise ValueError("session payload must contain integer field: schema_version")
    if schema_version not in SUPPORTED_SCHEMA_VERSIONS:
        raise ValueError(f"unsupported schema_version: {schema_version}")

    _validate_non_negative_int(payload["inventory"], field_name="session payload.inventory")
    _validate_position(payload["position"], field_name="session payload.position")

    overrides = payload["overrides"]
    if not isinstance(overrides, list):
        raise ValueError("session payload.overrides must be a list")
    seen: set[tuple[int, int]] = set()
    for index, row in enumerate(overrides):
        if not isinstance(row, list) or len(row) != 3 or not all(_is_int(item) for item in row):
            raise ValueError(f"session payload.overrides[{index}] must be a list of three integers")
        if row[2] < 0:
            raise ValueError(f"session payload.overrides[{index}] value must be >= 0")
        key = (row[0], row[1])
        if key in seen:
            raise ValueError(f"session payload.overrides[{index}] duplicates cell {key}")
        seen.add(key)

    digest = payload["save_hash"]
    if not isinstance(digest, str) or not digest:
        raise ValueError("session payload must contain string field: save_hash")

    metadata = payload.get("metadata", {})
    if not isinstance(metadata, dict):
        raise ValueError("session payload.metadata must be an object when present")
    _validate_json_value(metadata, field_name="session payload.metadata")


def validate_legacy_payload(payload: Any) -> None:
    """Browser-era save: ``{"inventory", "gridPos": {i, j}, "savedCells": [["i,j", v], ...]}``."""
    if not isinstance(payload, dict):
        raise ValueError("legacy payload must be an object")

    missing = REQUIRED_LEGACY_FIELDS - set(payload.keys())
    if missing:
        raise ValueError(f"legacy payload missing fields: {sorted(missing)}")

    _validate_non_negative_int(payload["inventory"], field_name="legacy payload.inventory")
    _validate_position(payload["gridPos"], field_name="legacy payload.gridPos")

    saved_cells = payload["savedCells"]
    if not isinstance(saved_cells, list):
        raise ValueError("legacy payload.savedCells must be a list")
    for index, row in enumerate(saved_cells):
        if not isinstance(row, list) or len(row) != 2:
            raise ValueError(f"legacy payload.savedCells[{index}] must be a [key, value] pair")
        key, value = row
        parse_legacy_cell_key(key, field_name=f"legacy payload.savedCells[{index}]")
        _validate_non_negative_int(value, field_name=f"legacy payload.savedCells[{index}] value")


def parse_legacy_cell_key(key: Any, *, field_name: str) -> tuple[int, int]:
    if not isinstance(key, str):
        raise ValueError(f"{field_name} key must be a string")
    parts = key.split(",")
    if len(parts) != 2:
        raise ValueError(f"{field_name} key must look like 'i,j'")
    try:
        return (int(parts[0]), int(parts[1]))
    except ValueError as exc:
        raise ValueError(f"{field_name} key must look like 'i,j'") from exc
