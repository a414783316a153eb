from __future__ import annotations

from typing import Iterable, Iterator

from bitquest.sim.cells import Cell

OverrideEntry = tuple[Cell, int]


def _require_cell_value(value: object, *, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    if value < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return value


class OverrideStore:
    """Sparse memento of every cell whose value diverged from its generated default.

    A stored 0 means "collected" and is distinct from an absent entry.
    Entries are never evicted.
    """

    def __init__(self, entries: Iterable[OverrideEntry] = ()) -> None:
        self._values: dict[Cell, int] = {}
        self.restore(entries)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, cell: object) -> bool:
        return cell in self._values

    def __iter__(self) -> Iterator[Cell]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OverrideStore):
            return NotImplemented
        return self._values == other._values

    def get(self, cell: Cell) -> int | None:
        return self._values.get(cell)

    def set(self, cell: Cell, value: int) -> None:
        self._values[cell] = _require_cell_value(value, field_name=f"override({cell.i},{cell.j})")

    def snapshot(self) -> list[OverrideEntry]:
        return sorted(self._values.items())

    def restore(self, entries: Iterable[OverrideEntry]) -> None:
        restored: dict[Cell, int] = {}
        for cell, value in entries:
            restored[cell] = _require_cell_value(value, field_name=f"override({cell.i},{cell.j})")
        self._values = restored

    def to_triples(self) -> list[list[int]]:
        return [[cell.i, cell.j, value] for cell, value in self.snapshot()]

    @classmethod
    def from_triples(cls, triples: Iterable[Iterable[int]]) -> "OverrideStore":
        entries: list[OverrideEntry] = []
        for i, j, value in triples:
            entries.append((Cell(int(i), int(j)), value))
        return cls(entries)
