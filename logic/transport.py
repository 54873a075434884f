"""Contract of the chat transport used by the game core."""
from __future__ import annotations

from typing import Any, Protocol, Sequence, Tuple

from models import CellState, PlayerRef

GridSnapshot = Tuple[Tuple[CellState, ...], ...]


class Transport(Protocol):
    """Outbound side of the chat.

    Every call returns an opaque handle for the sent message, or ``None``.
    The core only hands these handles back to :meth:`delete`.  Rendering of
    ``snapshot`` is entirely up to the implementation.
    """

    async def notify(self, player: PlayerRef, text: str) -> Any:
        ...

    async def notify_with_board_view(
        self,
        player: PlayerRef,
        snapshot: GridSnapshot,
        caption: str,
        available_targets: Sequence[str],
    ) -> Any:
        ...

    async def delete(self, player: PlayerRef, handle: Any) -> None:
        ...
