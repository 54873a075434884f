"""Errors raised by the game core.

Every :class:`GameError` is recoverable: the dispatcher catches it and sends
``str(exc)`` back to the player without touching any game state.
"""
from __future__ import annotations

from typing import Optional


class GameError(Exception):
    """Base class for recoverable game errors with a user-facing message."""

    message = "Something went wrong."

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.message)


class MalformedCoordinate(GameError, ValueError):
    message = "Could not read the cell. Example: /hit E5"


class InvalidCoordinate(GameError):
    message = "That cell is outside the board."


class AlreadyResolved(GameError):
    message = "That cell has already been fired at."


class NotYourTurn(GameError):
    message = "It is not your turn!"


class GameAlreadyFinished(GameError):
    message = "The game is already over!"


class AlreadyFull(GameError):
    message = "This game already has two players."


class NoActiveGame(GameError):
    message = "You don't have a game in progress! Send /start_session to begin."


class OpponentMissing(GameError):
    message = "Your opponent has not joined yet. Please wait."


class PlacementError(RuntimeError):
    """Raised when the fleet cannot be placed after the retry caps are exhausted."""


__all__ = [
    "GameError",
    "MalformedCoordinate",
    "InvalidCoordinate",
    "AlreadyResolved",
    "NotYourTurn",
    "GameAlreadyFinished",
    "AlreadyFull",
    "NoActiveGame",
    "OpponentMissing",
    "PlacementError",
]
