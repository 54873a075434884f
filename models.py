from __future__ import annotations
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterable, List, Optional, Tuple

from logic.parser import BOARD_SIZE, Coord, format_coord


class CellState(IntEnum):
    WATER = 0
    SHIP_ALIVE = 1
    MISS = 2
    SHIP_HIT = 3  # damaged segment of a ship that is still afloat
    SHIP_SUNK = 4


# cell states that can still be fired at
TARGETABLE = (CellState.WATER, CellState.SHIP_ALIVE)


def neighbors(coord: Coord, size: int = BOARD_SIZE) -> Iterable[Coord]:
    """Yield the in-bounds 8-connected neighbours of ``coord``."""
    r, c = coord
    for dr in (-1, 0, 1):
        for dc in (-1, 0, 1):
            if dr == 0 and dc == 0:
                continue
            nr, nc = r + dr, c + dc
            if 0 <= nr < size and 0 <= nc < size:
                yield nr, nc


def _empty_cells(size: int = BOARD_SIZE) -> List[List[CellState]]:
    return [[CellState.WATER] * size for _ in range(size)]


@dataclass
class Ship:
    cells: List[Coord]
    # per-segment damage, aligned with ``cells``
    hits: List[bool] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.cells = [tuple(cell) for cell in self.cells]
        if not self.hits:
            self.hits = [False] * len(self.cells)

    @property
    def size(self) -> int:
        return len(self.cells)

    @property
    def alive_cells(self) -> int:
        return self.hits.count(False)

    @property
    def alive(self) -> bool:
        return not all(self.hits)

    @property
    def horizontal(self) -> bool:
        return all(r == self.cells[0][0] for r, _ in self.cells)

    def contains(self, coord: Coord) -> bool:
        return tuple(coord) in self.cells

    def hit(self, coord: Coord) -> bool:
        """Damage the segment at ``coord``.

        Returns ``True`` when this hit sank the ship.
        """
        index = self.cells.index(tuple(coord))
        if self.hits[index]:
            raise ValueError(f"Segment {coord} is already hit")
        self.hits[index] = True
        return not self.alive


@dataclass
class Grid:
    cells: List[List[CellState]] = field(default_factory=_empty_cells)
    ships: List[Ship] = field(default_factory=list)

    @property
    def size(self) -> int:
        return len(self.cells)

    def in_bounds(self, coord: Coord) -> bool:
        r, c = coord
        return 0 <= r < self.size and 0 <= c < self.size

    def state_at(self, coord: Coord) -> CellState:
        r, c = coord
        return self.cells[r][c]

    def set_state(self, coord: Coord, state: CellState) -> None:
        r, c = coord
        self.cells[r][c] = state

    def add_ship(self, ship: Ship) -> None:
        self.ships.append(ship)
        for cell in ship.cells:
            self.set_state(cell, CellState.SHIP_ALIVE)

    def ship_at(self, coord: Coord) -> Optional[Ship]:
        for ship in self.ships:
            if ship.contains(coord):
                return ship
        return None

    def alive_unit_count(self) -> int:
        return sum(ship.alive_cells for ship in self.ships)

    def available_targets(self) -> List[str]:
        """Labels of cells that can still be fired at, A1..A10, B1..J10."""
        coords = [
            (r, c)
            for r in range(self.size)
            for c in range(self.size)
            if self.cells[r][c] in TARGETABLE
        ]
        coords.sort(key=lambda coord: (coord[1], coord[0]))
        return [format_coord(coord) for coord in coords]

    def snapshot(self, reveal_ships: bool = True) -> Tuple[Tuple[CellState, ...], ...]:
        """Return a read-only copy of the cells.

        With ``reveal_ships=False`` intact ship segments are reported as water,
        which is the view the opponent is allowed to see.
        """
        def _visible(state: CellState) -> CellState:
            if not reveal_ships and state == CellState.SHIP_ALIVE:
                return CellState.WATER
            return state

        return tuple(tuple(_visible(state) for state in row) for row in self.cells)


@dataclass(frozen=True)
class PlayerRef:
    """Stable identity of a chat user."""

    id: int
    name: str = ""

    @staticmethod
    def from_user(user: Any) -> 'PlayerRef':
        first = getattr(user, "first_name", "") or ""
        last = getattr(user, "last_name", "") or ""
        return PlayerRef(id=int(user.id), name=f"{first} {last}".strip())

    @property
    def label(self) -> str:
        return self.name or str(self.id)


@dataclass
class PlayerState:
    ref: PlayerRef
    grid: Grid
    streak: int = 0
    units_destroyed: int = 0
    # opaque transport handles of the last messages shown to the player
    board_message: Any = None
    text_message: Any = None

    @property
    def player_id(self) -> int:
        return self.ref.id

    @property
    def name(self) -> str:
        return self.ref.label
