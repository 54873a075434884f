from __future__ import annotations
import logging
import random
from typing import List, Optional, Sequence

from logic.errors import PlacementError
from logic.parser import BOARD_SIZE, Coord
from models import CellState, Grid, Ship, neighbors


logger = logging.getLogger(__name__)

# one carrier, two battleships, three destroyers, four patrol boats
FLEET_SIZES = (5, 4, 4, 3, 3, 3, 2, 2, 2, 2)

# draws per ship before the whole fleet is started over
MAX_ATTEMPTS = 500
MAX_FLEET_ATTEMPTS = 100


def can_place(grid: Grid, ship_cells: List[Coord]) -> bool:
    for cell in ship_cells:
        if not grid.in_bounds(cell):
            return False
        if grid.state_at(cell) != CellState.WATER:
            return False
        for neighbor in neighbors(cell, grid.size):
            if grid.state_at(neighbor) != CellState.WATER:
                return False
    return True


def place_ship(grid: Grid, size: int, rng=random) -> Ship:
    """Place one ship of ``size`` cells at a random valid spot.

    Raises :class:`PlacementError` after ``MAX_ATTEMPTS`` rejected draws.
    """
    board = grid.size
    for _ in range(MAX_ATTEMPTS):
        orient = rng.choice(['h', 'v'])
        if orient == 'h':
            r = rng.randint(0, board - 1)
            c = rng.randint(0, board - size)
        else:
            r = rng.randint(0, board - size)
            c = rng.randint(0, board - 1)
        cells = []
        for i in range(size):
            rr = r + (i if orient == 'v' else 0)
            cc = c + (i if orient == 'h' else 0)
            cells.append((rr, cc))
        if can_place(grid, cells):
            ship = Ship(cells=cells)
            grid.add_ship(ship)
            return ship
    raise PlacementError(f"Could not place a ship of size {size}")


def random_grid(sizes: Optional[Sequence[int]] = None, rng=random) -> Grid:
    """Generate a grid with the whole fleet placed.

    Ships are placed largest first.  When a ship does not fit the fleet is
    started over on a fresh grid, so a failed attempt never leaks out.
    """
    fleet = sorted(sizes or FLEET_SIZES, reverse=True)
    if any(size < 1 or size > BOARD_SIZE for size in fleet):
        raise PlacementError(f"Ship sizes must be between 1 and {BOARD_SIZE}: {fleet}")

    for attempt in range(1, MAX_FLEET_ATTEMPTS + 1):
        grid = Grid()
        try:
            for size in fleet:
                place_ship(grid, size, rng)
        except PlacementError:
            logger.debug("Fleet placement attempt %s failed, retrying", attempt)
            continue
        return grid
    raise PlacementError(
        f"Could not place fleet {fleet} in {MAX_FLEET_ATTEMPTS} attempts"
    )
