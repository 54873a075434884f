"""Matchmaking and routing of player commands to sessions."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from app.config import GameSettings
from logic import phrases
from logic.errors import GameError, NoActiveGame, PlacementError
from logic.parser import HIT, LEADERBOARD, MY_STATISTICS, START_SESSION, parse_command
from logic.session import FinishReason, Session, SessionStatus
from logic.transport import Transport
from models import PlayerRef


logger = logging.getLogger(__name__)


class Dispatcher:
    """Pairs waiting players and keeps at most one live session per player.

    Sessions live in an arena keyed by session id; ``_index`` maps a player id
    to the id of the session they play in.  Every change of either mapping
    happens under ``_lock``.
    """

    def __init__(
        self,
        transport: Transport,
        stats: Any,
        settings: Optional[GameSettings] = None,
    ) -> None:
        self.transport = transport
        self.stats = stats
        self.settings = settings or GameSettings()
        self._sessions: Dict[str, Session] = {}
        self._index: Dict[int, str] = {}
        self._lock = asyncio.Lock()

    def session_for(self, player_id: int) -> Optional[Session]:
        session_id = self._index.get(player_id)
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def active_players(self) -> List[PlayerRef]:
        players: List[PlayerRef] = []
        for session in self._sessions.values():
            players.extend(player.ref for player in session.players)
        return players

    async def handle_command(self, player: PlayerRef, raw_text: str) -> bool:
        """Run one command; return ``False`` if the text is not a game command."""
        parsed = parse_command(raw_text)
        if parsed is None:
            return False
        verb, argument = parsed
        logger.info("Command %s %r from %s", verb, argument, player.id)
        try:
            if verb == START_SESSION:
                await self._start_session(player)
            elif verb == HIT:
                await self._hit(player, argument)
            elif verb == LEADERBOARD:
                await self._leaderboard(player)
            elif verb == MY_STATISTICS:
                await self._my_statistics(player)
        except GameError as exc:
            logger.info("Rejected %s from %s: %s", verb, player.id, exc.__class__.__name__)
            await self._notify(player, str(exc))
        except PlacementError:
            logger.exception("Fleet placement failed for %s", player.id)
            await self._notify(player, phrases.PLACEMENT_FAILED)
        return True

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _start_session(self, player: PlayerRef) -> None:
        busy_text: Optional[str] = None
        waiting: Optional[Session] = None
        created: Optional[Session] = None
        async with self._lock:
            current = self.session_for(player.id)
            if current is not None and (current.is_finished or current.disposed):
                self._forget(player.id)
                current = None
            if current is not None:
                busy_text = (
                    phrases.ALREADY_WAITING
                    if current.status is SessionStatus.AWAITING_OPPONENT
                    else phrases.ALREADY_PLAYING
                )
            else:
                waiting = self._waiting_session()
                if waiting is not None:
                    # the seat is taken now, so nobody else is matched into it
                    self._index[player.id] = waiting.session_id
                else:
                    created = Session(
                        player,
                        self.transport,
                        settings=self.settings,
                        stats=self.stats,
                        on_finished=self._on_session_finished,
                    )
                    self._sessions[created.session_id] = created
                    self._index[player.id] = created.session_id

        if busy_text is not None:
            await self._notify(player, busy_text)
        elif waiting is not None:
            try:
                await waiting.join(player)
            except (GameError, PlacementError):
                async with self._lock:
                    if self._index.get(player.id) == waiting.session_id:
                        del self._index[player.id]
                raise
            await self._notify(
                waiting.active.ref, phrases.OPPONENT_JOINED.format(name=player.label)
            )
        else:
            logger.info("Session %s created by %s", created.session_id, player.id)
            await created.open()

    async def _hit(self, player: PlayerRef, argument: str) -> None:
        async with self._lock:
            session = self.session_for(player.id)
        if session is None:
            raise NoActiveGame()
        await session.hit(player.id, argument)

    async def _leaderboard(self, player: PlayerRef) -> None:
        try:
            entries = await asyncio.to_thread(
                self.stats.query_leaderboard, self.settings.leaderboard_size
            )
        except Exception:
            logger.exception("Failed to query leaderboard")
            await self._notify(player, phrases.STATISTICS_UNAVAILABLE)
            return
        if not entries:
            await self._notify(player, phrases.LEADERBOARD_EMPTY)
            return
        lines = [phrases.LEADERBOARD_TITLE]
        for rank, entry in enumerate(entries, start=1):
            lines.append(
                phrases.LEADERBOARD_LINE.format(
                    rank=rank,
                    name=entry.name or entry.player_id,
                    wins=entry.total_wins,
                    surrender_wins=entry.surrender_wins,
                    units=entry.units_destroyed,
                )
            )
        await self._notify(player, "\n".join(lines))

    async def _my_statistics(self, player: PlayerRef) -> None:
        try:
            record = await asyncio.to_thread(self.stats.get_statistics, player.id)
            rank, total = await asyncio.to_thread(self.stats.query_rank, player.id)
        except Exception:
            logger.exception("Failed to query statistics of %s", player.id)
            await self._notify(player, phrases.STATISTICS_UNAVAILABLE)
            return
        if record is None or rank is None:
            await self._notify(player, phrases.NO_STATISTICS)
            return
        await self._notify(
            player,
            phrases.MY_STATISTICS.format(
                wins=record.games_won,
                surrender_wins=record.surrender_wins,
                units=record.units_destroyed,
                rank=rank,
                total=total,
            ),
        )

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _waiting_session(self) -> Optional[Session]:
        for session in self._sessions.values():
            if session.disposed or not session.is_waiting:
                continue
            occupants = [pid for pid, sid in self._index.items() if sid == session.session_id]
            if len(occupants) == 1:
                return session
        return None

    def _forget(self, player_id: int) -> None:
        session_id = self._index.pop(player_id, None)
        if session_id is None:
            return
        if session_id not in self._index.values():
            self._sessions.pop(session_id, None)

    async def _on_session_finished(self, session: Session) -> None:
        async with self._lock:
            for player in session.players:
                if self._index.get(player.player_id) == session.session_id:
                    del self._index[player.player_id]
            self._sessions.pop(session.session_id, None)
        await session.dispose()

        outcome = session.outcome()
        if outcome is None:
            return
        logger.info(
            "Session %s finished by %s, winner %s",
            outcome.session_id,
            outcome.reason.value,
            outcome.winner.id,
        )
        method = (
            "increment_win"
            if outcome.reason is FinishReason.VICTORY
            else "increment_surrender_win"
        )
        try:
            await asyncio.to_thread(getattr(self.stats, method), outcome.winner)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Failed to record %s for %s", method, outcome.winner.id)

    async def _notify(self, player: PlayerRef, text: str) -> None:
        try:
            await self.transport.notify(player, text)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Failed to notify %s", player.id, exc_info=True)

    async def dispose(self, notify: bool = False) -> None:
        """Dispose every live session and clear the registry."""
        async with self._lock:
            sessions = list(self._sessions.values())
            players = self.active_players()
            self._sessions.clear()
            self._index.clear()
        for session in sessions:
            try:
                await session.dispose()
            except Exception:
                logger.exception("Failed to dispose session %s", session.session_id)
        if notify:
            for player in players:
                await self._notify(player, phrases.SHUTDOWN.format(name=player.label))
