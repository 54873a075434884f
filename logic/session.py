"""Turn state machine of one two-player match."""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from app.config import GameSettings
from logic import phrases
from logic.battle import MISS, SUNK, resolve
from logic.errors import (
    AlreadyFull,
    GameAlreadyFinished,
    GameError,
    NotYourTurn,
    OpponentMissing,
)
from logic.parser import Coord, format_coord, parse_coord
from logic.placement import random_grid
from logic.transport import GridSnapshot, Transport
from models import PlayerRef, PlayerState


logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    AWAITING_OPPONENT = "awaiting_opponent"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"


class FinishReason(str, Enum):
    VICTORY = "victory"
    SURRENDER = "surrender"


@dataclass(frozen=True)
class SessionOutcome:
    session_id: str
    reason: FinishReason
    winner: PlayerRef
    loser: PlayerRef


@dataclass(frozen=True)
class HitReport:
    """What a successful shot did."""

    attacker: PlayerRef
    defender: PlayerRef
    coord: Coord
    result: str
    streak: int
    finished: bool


FinishedCallback = Callable[["Session"], Awaitable[None]]


class Session:
    """One match between two players.

    Every transition (``join``, ``hit``, ``tick``, ``dispose``) runs under the
    session lock, so a timer forfeit and a concurrent shot are strictly
    ordered.  ``on_finished`` is awaited once, after the lock is released,
    when the session reaches ``FINISHED``.
    """

    def __init__(
        self,
        creator: PlayerRef,
        transport: Transport,
        *,
        settings: Optional[GameSettings] = None,
        stats: Any = None,
        on_finished: Optional[FinishedCallback] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.settings = settings or GameSettings()
        self.session_id = session_id or uuid.uuid4().hex
        self.transport = transport
        self.stats = stats
        self.on_finished = on_finished
        self.status = SessionStatus.AWAITING_OPPONENT
        self.reason: Optional[FinishReason] = None
        self.winner: Optional[PlayerState] = None
        self.loser: Optional[PlayerState] = None
        self.elapsed = 0.0
        self.players: List[PlayerState] = [self._new_player(creator)]
        self._active_index = 0
        self._timer: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._disposed = False

    # ------------------------------------------------------------------
    # Roles
    # ------------------------------------------------------------------

    @property
    def active(self) -> PlayerState:
        return self.players[self._active_index]

    @property
    def passive(self) -> Optional[PlayerState]:
        if len(self.players) < 2:
            return None
        return self.players[1 - self._active_index]

    @property
    def is_waiting(self) -> bool:
        return self.status is SessionStatus.AWAITING_OPPONENT and len(self.players) == 1

    @property
    def is_finished(self) -> bool:
        return self.status is SessionStatus.FINISHED

    @property
    def disposed(self) -> bool:
        return self._disposed

    def player_for(self, player_id: int) -> Optional[PlayerState]:
        for player in self.players:
            if player.player_id == player_id:
                return player
        return None

    def outcome(self) -> Optional[SessionOutcome]:
        if not self.is_finished or self.winner is None or self.loser is None:
            return None
        return SessionOutcome(
            session_id=self.session_id,
            reason=self.reason,
            winner=self.winner.ref,
            loser=self.loser.ref,
        )

    def _new_player(self, ref: PlayerRef) -> PlayerState:
        return PlayerState(ref=ref, grid=random_grid(self.settings.fleet_sizes))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def open(self) -> None:
        """Show the creator their fleet while they wait for an opponent."""
        creator = self.players[0]
        async with self._lock:
            # an opponent may have joined before the creator was shown the board
            if self._disposed or self.status is not SessionStatus.AWAITING_OPPONENT:
                return
            await self._send_board(creator, creator.grid.snapshot(), phrases.YOUR_FLEET)
            await self._send_text(creator, phrases.WAITING_FOR_OPPONENT)

    async def join(self, ref: PlayerRef) -> None:
        async with self._lock:
            if self._disposed or self.status is not SessionStatus.AWAITING_OPPONENT:
                raise AlreadyFull()
            # the fleet is placed before any state changes
            joiner = self._new_player(ref)
            self.players.append(joiner)
            self._active_index = 0
            self.status = SessionStatus.IN_PROGRESS
            self.elapsed = 0.0
            self._restart_timer()
            logger.info(
                "Session %s started: %s vs %s",
                self.session_id,
                self.active.player_id,
                joiner.player_id,
            )
            await self._refresh_boards(
                phrases.JOINED_ACTIVE_CAPTION.format(name=self.passive.name),
                phrases.JOINED_PASSIVE_CAPTION.format(name=self.active.name),
            )

    async def hit(self, player_id: int, cell: str) -> HitReport:
        """Fire at ``cell`` on behalf of ``player_id``.

        Raises a :class:`GameError` without changing any state when the shot
        is not allowed.
        """
        async with self._lock:
            try:
                report = self._apply_hit(player_id, cell)
            except GameError:
                if (
                    self.settings.reset_timer_on_rejected_hit
                    and self.status is SessionStatus.IN_PROGRESS
                    and self.player_for(player_id) is not None
                ):
                    self.elapsed = 0.0
                raise
            await self._announce_hit(report)
        if report.result != MISS:
            await self._record("increment_units_destroyed", report.attacker)
        if report.finished:
            await self._notify_finished()
        return report

    def _apply_hit(self, player_id: int, cell: str) -> HitReport:
        if self._disposed or self.status is SessionStatus.FINISHED:
            raise GameAlreadyFinished()
        if self.status is SessionStatus.AWAITING_OPPONENT:
            raise OpponentMissing()
        if player_id != self.active.player_id:
            raise NotYourTurn()

        coord = parse_coord(cell)
        attacker, defender = self.active, self.passive
        result = resolve(defender.grid, coord)
        self.elapsed = 0.0

        finished = False
        if result == MISS:
            attacker.streak = 0
            self._active_index = 1 - self._active_index
            self._restart_timer()
        else:
            attacker.streak += 1
            attacker.units_destroyed += 1
            if result == SUNK and defender.grid.alive_unit_count() == 0:
                self._finish(FinishReason.VICTORY, winner=attacker, loser=defender)
                finished = True
            else:
                self._restart_timer()

        logger.info(
            "Session %s: %s fired at %s -> %s",
            self.session_id,
            attacker.player_id,
            format_coord(coord),
            result,
        )
        return HitReport(
            attacker=attacker.ref,
            defender=defender.ref,
            coord=coord,
            result=result,
            streak=attacker.streak,
            finished=finished,
        )

    async def tick(self, elapsed: Optional[float] = None) -> None:
        """Advance the inactivity timer by ``elapsed`` (one interval by default)."""
        step = self.settings.timer_interval if elapsed is None else elapsed
        expired = False
        async with self._lock:
            if self._disposed or self.status is not SessionStatus.IN_PROGRESS:
                return
            self.elapsed += step
            if self.elapsed >= self.settings.turn_timeout:
                idle, waiting = self.active, self.passive
                logger.info(
                    "Session %s: %s timed out, %s wins by surrender",
                    self.session_id,
                    idle.player_id,
                    waiting.player_id,
                )
                self._finish(FinishReason.SURRENDER, winner=waiting, loser=idle)
                await self._send_final_boards()
                await self._send_text(idle, phrases.SURRENDER_LOSER.format(name=waiting.name))
                await self._send_text(waiting, phrases.SURRENDER_WINNER.format(name=idle.name))
                self._release_messages()
                expired = True
            else:
                seconds = int(self.settings.turn_timeout - self.elapsed)
                await self._send_text(
                    self.active,
                    phrases.REMINDER_ACTIVE.format(name=self.passive.name, seconds=seconds),
                )
                await self._send_text(
                    self.passive,
                    phrases.REMINDER_PASSIVE.format(name=self.active.name, seconds=seconds),
                )
        if expired:
            await self._notify_finished()

    async def dispose(self) -> None:
        """Stop the timer and remove the messages still on screen.

        Safe to call in any state and more than once.
        """
        async with self._lock:
            if self._disposed:
                return
            self._disposed = True
            self._stop_timer()
            for player in self.players:
                await self._delete_messages(player, with_board=True)
        logger.info("Session %s disposed", self.session_id)

    def _finish(self, reason: FinishReason, *, winner: PlayerState, loser: PlayerState) -> None:
        self.status = SessionStatus.FINISHED
        self.reason = reason
        self.winner = winner
        self.loser = loser
        self._stop_timer()

    async def _notify_finished(self) -> None:
        if self.on_finished is None:
            return
        try:
            await self.on_finished(self)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Finish callback failed for session %s", self.session_id)

    # ------------------------------------------------------------------
    # Inactivity timer
    # ------------------------------------------------------------------

    def _restart_timer(self) -> None:
        self._stop_timer()
        self._timer = asyncio.get_running_loop().create_task(self._run_timer())

    def _stop_timer(self) -> None:
        timer, self._timer = self._timer, None
        # the timer task finishing the game must not cancel itself
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

    async def _run_timer(self) -> None:
        interval = self.settings.timer_interval
        while self.status is SessionStatus.IN_PROGRESS and not self._disposed:
            await asyncio.sleep(interval)
            await self.tick(interval)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def _announce_hit(self, report: HitReport) -> None:
        attacker = self.player_for(report.attacker.id)
        defender = self.player_for(report.defender.id)

        if report.finished:
            await self._send_final_boards()
            await self._send_text(
                attacker,
                phrases.VICTORY_SELF.format(name=attacker.name, enemy=defender.name),
            )
            await self._send_text(defender, phrases.VICTORY_ENEMY.format(name=attacker.name))
            self._release_messages()
            return

        if report.result == MISS:
            attacker_text = phrases.SELF_MISS
            defender_text = phrases.ENEMY_MISS.format(name=attacker.name)
        else:
            own = phrases.SELF_SUNK if report.result == SUNK else phrases.SELF_HIT
            attacker_text = own.format(name=attacker.name)
            if report.streak > 1:
                attacker_text += phrases.STREAK.format(streak=report.streak)
            attacker_text += phrases.FIRE_AGAIN
            enemy = phrases.ENEMY_SUNK if report.result == SUNK else phrases.ENEMY_HIT
            defender_text = enemy.format(name=attacker.name)

        await self._refresh_boards()
        await self._send_text(attacker, attacker_text)
        await self._send_text(defender, defender_text)

    async def _refresh_boards(
        self,
        active_caption: Optional[str] = None,
        passive_caption: Optional[str] = None,
    ) -> None:
        """Show the active player the target grid and the passive player their own."""
        active, passive = self.active, self.passive
        target = passive.grid
        await self._send_board(
            active,
            target.snapshot(reveal_ships=False),
            active_caption or phrases.ACTIVE_CAPTION.format(name=passive.name),
            target.available_targets(),
        )
        await self._send_board(
            passive,
            target.snapshot(),
            passive_caption or phrases.PASSIVE_CAPTION.format(name=active.name),
        )

    async def _send_final_boards(self) -> None:
        """Reveal each player's fleet to the opponent."""
        for player in self.players:
            opponent = self._opponent_of(player)
            if opponent is None:
                continue
            await self._send_board(
                player,
                opponent.grid.snapshot(),
                phrases.FINAL_CAPTION.format(name=opponent.name),
            )

    def _opponent_of(self, player: PlayerState) -> Optional[PlayerState]:
        for other in self.players:
            if other is not player:
                return other
        return None

    def _release_messages(self) -> None:
        # final messages stay in the chat as the record of the game
        for player in self.players:
            player.board_message = None
            player.text_message = None

    async def _send_text(self, player: PlayerState, text: str) -> None:
        await self._delete_messages(player)
        try:
            player.text_message = await self.transport.notify(player.ref, text)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Failed to send text to %s", player.player_id, exc_info=True)

    async def _send_board(
        self,
        player: PlayerState,
        snapshot: GridSnapshot,
        caption: str,
        targets: Sequence[str] = (),
    ) -> None:
        await self._delete_messages(player, with_board=True)
        try:
            player.board_message = await self.transport.notify_with_board_view(
                player.ref, snapshot, caption, list(targets)
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Failed to send board to %s", player.player_id, exc_info=True)

    async def _delete_messages(self, player: PlayerState, with_board: bool = False) -> None:
        handles = [("text_message", player.text_message)]
        if with_board:
            handles.append(("board_message", player.board_message))
        for attr, handle in handles:
            if handle is None:
                continue
            try:
                await self.transport.delete(player.ref, handle)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.debug("Failed to delete message %s of %s", handle, player.player_id)
            finally:
                setattr(player, attr, None)

    async def _record(self, method: str, ref: PlayerRef) -> None:
        if self.stats is None:
            return
        try:
            await asyncio.to_thread(getattr(self.stats, method), ref)
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Failed to record %s for %s", method, ref.id)
