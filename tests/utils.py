import itertools
from types import SimpleNamespace
from unittest.mock import AsyncMock

from models import Grid, Ship


def make_grid(*ships):
    """Build a grid holding ships given as lists of ``(row, col)`` cells."""
    grid = Grid()
    for cells in ships:
        grid.add_ship(Ship(cells=list(cells)))
    return grid


def make_transport():
    """Transport double whose sends return increasing message ids."""
    counter = itertools.count(1)

    async def _send(*args, **kwargs):
        return next(counter)

    return SimpleNamespace(
        notify=AsyncMock(side_effect=_send),
        notify_with_board_view=AsyncMock(side_effect=_send),
        delete=AsyncMock(),
    )


def texts_for(transport, player_id):
    return [
        c.args[1]
        for c in transport.notify.await_args_list
        if c.args[0].id == player_id
    ]


def boards_for(transport, player_id):
    return [
        c.args
        for c in transport.notify_with_board_view.await_args_list
        if c.args[0].id == player_id
    ]


def grid_factory(*grids):
    """Return a ``random_grid`` replacement handing out ``grids`` in order."""
    queue = list(grids)

    def _random_grid(sizes=None, rng=None):
        return queue.pop(0)

    return _random_grid
