from __future__ import annotations
from typing import List

from logic.errors import AlreadyResolved, InvalidCoordinate
from logic.parser import Coord
from models import CellState, Grid, Ship, neighbors


MISS, HIT, SUNK = 'miss', 'hit', 'sunk'


def mark_contour(grid: Grid, ship: Ship) -> List[Coord]:
    """Mark every water cell around a sunk ``ship`` as a miss.

    The contour is collected first and applied afterwards so that cells which
    border several segments are visited once.  Only ``WATER`` cells change,
    segments of other ships are never touched.  Returns the cells that were
    changed, so a second call returns an empty list.
    """
    contour = set()
    for cell in ship.cells:
        contour.update(neighbors(cell, grid.size))

    changed: List[Coord] = []
    for coord in sorted(contour.difference(ship.cells)):
        if grid.state_at(coord) == CellState.WATER:
            grid.set_state(coord, CellState.MISS)
            changed.append(coord)
    return changed


def resolve(grid: Grid, coord: Coord) -> str:
    """Fire at ``coord`` and return ``MISS``, ``HIT`` or ``SUNK``."""
    if not grid.in_bounds(coord):
        raise InvalidCoordinate()
    state = grid.state_at(coord)
    if state == CellState.WATER:
        grid.set_state(coord, CellState.MISS)
        return MISS
    if state != CellState.SHIP_ALIVE:
        raise AlreadyResolved()

    ship = grid.ship_at(coord)
    if ship is None:
        # a ship cell without a ship record; count it as a plain hit
        grid.set_state(coord, CellState.SHIP_HIT)
        return HIT
    if ship.hit(coord):
        for cell in ship.cells:
            grid.set_state(cell, CellState.SHIP_SUNK)
        mark_contour(grid, ship)
        return SUNK
    grid.set_state(coord, CellState.SHIP_HIT)
    return HIT
