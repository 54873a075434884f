import pytest

from logic.errors import MalformedCoordinate
from logic.parser import (
    HIT,
    LEADERBOARD,
    MY_STATISTICS,
    START_SESSION,
    format_coord,
    parse_command,
    parse_coord,
)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("A1", (0, 0)),
        ("a1", (0, 0)),
        ("  c3 ", (2, 2)),
        ("J10", (9, 9)),
        ("e7", (6, 4)),
    ],
)
def test_parse_coord_valid(text, expected):
    assert parse_coord(text) == expected


@pytest.mark.parametrize(
    "text",
    ["K1", "a0", "d11", "", "1A", "AA1", "а1", "A-1", "A05", "A٣", "B 4", "A010"],
)
def test_parse_coord_invalid(text):
    with pytest.raises(MalformedCoordinate):
        parse_coord(text)


def test_format_coord_is_inverse_of_parse():
    assert format_coord((2, 1)) == "B3"
    assert format_coord(parse_coord("j10")) == "J10"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("start-session", (START_SESSION, "")),
        ("/start_session", (START_SESSION, "")),
        ("/startseabattle@SeaBattleBot", (START_SESSION, "")),
        ("/hit C3", (HIT, "C3")),
        ("HIT   e5 ", (HIT, "e5")),
        ("/hit", (HIT, "")),
        ("Leaderboard", (LEADERBOARD, "")),
        ("/my_statistics", (MY_STATISTICS, "")),
        ("my-statistics", (MY_STATISTICS, "")),
    ],
)
def test_parse_command_recognises_verbs(text, expected):
    assert parse_command(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "hello", "/try a", "hits A1"])
def test_parse_command_ignores_other_text(text):
    assert parse_command(text) is None
