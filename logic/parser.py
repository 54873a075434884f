from __future__ import annotations
import re
from typing import Optional, Tuple

from logic.errors import MalformedCoordinate

Coord = Tuple[int, int]  # row, col indexes

BOARD_SIZE = 10
# Columns are lettered, rows are numbered from 1.
COLUMNS = "ABCDEFGHIJ"

# ASCII letter glued to a row 1-10 written without a leading zero
_COORD_RE = re.compile(r"^\s*([a-j])(10|[1-9])\s*$", re.IGNORECASE | re.ASCII)

START_SESSION = "start-session"
HIT = "hit"
LEADERBOARD = "leaderboard"
MY_STATISTICS = "my-statistics"

# Telegram command names cannot contain "-", so "/start_session" and
# "start-session" are the same command after normalisation.
COMMAND_ALIASES = {
    "start-session": START_SESSION,
    "startseabattle": START_SESSION,
    "hit": HIT,
    "leaderboard": LEADERBOARD,
    "my-statistics": MY_STATISTICS,
    "my-stats": MY_STATISTICS,
    "mystats": MY_STATISTICS,
}


def normalize(cell: str) -> str:
    return cell.strip().lower()


def parse_coord(cell: str) -> Coord:
    """Parse user coordinate like 'C3' or ' e10 ' into ``(row, col)``."""
    match = _COORD_RE.match(cell or "")
    if not match:
        raise MalformedCoordinate()
    letter, digits = match.groups()
    return int(digits) - 1, COLUMNS.index(letter.upper())


def format_coord(coord: Coord) -> str:
    """Convert internal (row, col) into the user-facing label."""
    r, c = coord
    return f"{COLUMNS[c]}{r + 1}"


def parse_command(text: str) -> Optional[Tuple[str, str]]:
    """Split raw chat text into ``(verb, argument)``.

    Returns ``None`` for text that is not one of the game commands.  A leading
    ``/`` and a trailing ``@botname`` on the verb are ignored.
    """
    parts = (text or "").strip().split(None, 1)
    if not parts:
        return None
    head = normalize(parts[0]).lstrip("/")
    head = head.split("@", 1)[0].replace("_", "-")
    verb = COMMAND_ALIASES.get(head)
    if verb is None:
        return None
    argument = parts[1].strip() if len(parts) > 1 else ""
    return verb, argument


__all__ = [
    "BOARD_SIZE",
    "COLUMNS",
    "Coord",
    "HIT",
    "LEADERBOARD",
    "MY_STATISTICS",
    "START_SESSION",
    "format_coord",
    "parse_command",
    "parse_coord",
]
