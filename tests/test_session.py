import asyncio
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from app.config import GameSettings
from logic import session as session_mod
from logic.battle import HIT, MISS, SUNK
from logic.errors import (
    AlreadyFull,
    AlreadyResolved,
    GameAlreadyFinished,
    MalformedCoordinate,
    NotYourTurn,
    OpponentMissing,
)
from logic.session import FinishReason, Session, SessionStatus
from models import CellState, PlayerRef
from tests.utils import boards_for, grid_factory, make_grid, make_transport, texts_for


X = PlayerRef(1, "Xena")
Y = PlayerRef(2, "Yuri")


def _new_session(monkeypatch, transport=None, **kwargs):
    # X defends J9-J10, Y defends A1-B1 and F6
    monkeypatch.setattr(
        session_mod,
        "random_grid",
        grid_factory(
            make_grid([(9, 8), (9, 9)]),
            make_grid([(0, 0), (0, 1)], [(5, 5)]),
        ),
    )
    return Session(X, transport or make_transport(), **kwargs)


def test_join_starts_game_with_creator_active(monkeypatch):
    async def run_test():
        transport = make_transport()
        session = _new_session(monkeypatch, transport)
        assert session.status is SessionStatus.AWAITING_OPPONENT
        assert session.passive is None

        await session.open()
        assert texts_for(transport, 1) == ["Waiting for another player..."]

        await session.join(Y)
        assert session.status is SessionStatus.IN_PROGRESS
        assert session.active.ref == X
        assert session.passive.ref == Y

        _, snapshot, caption, targets = boards_for(transport, 1)[-1]
        assert "Yuri" in caption
        assert len(targets) == 100
        assert snapshot[0][0] == CellState.WATER
        _, own_snapshot, own_caption, own_targets = boards_for(transport, 2)[-1]
        assert own_snapshot[0][0] == CellState.SHIP_ALIVE
        assert "Xena" in own_caption
        assert own_targets == []

        with pytest.raises(AlreadyFull):
            await session.join(PlayerRef(3, "Zed"))
        assert len(session.players) == 2
        await session.dispose()

    asyncio.run(run_test())


def test_hit_before_opponent_joins(monkeypatch):
    async def run_test():
        session = _new_session(monkeypatch)
        with pytest.raises(OpponentMissing):
            await session.hit(1, "A1")

    asyncio.run(run_test())


def test_passive_player_cannot_fire(monkeypatch):
    async def run_test():
        session = _new_session(monkeypatch)
        await session.join(Y)
        before = session.players[0].grid.snapshot()

        with pytest.raises(NotYourTurn):
            await session.hit(2, "J10")

        assert session.players[0].grid.snapshot() == before
        assert session.active.ref == X
        await session.dispose()

    asyncio.run(run_test())


def test_miss_swaps_roles_and_resets_streak(monkeypatch):
    async def run_test():
        transport = make_transport()
        session = _new_session(monkeypatch, transport)
        await session.join(Y)

        report = await session.hit(1, "A1")
        assert report.result == HIT
        assert session.active.streak == 1

        report = await session.hit(1, "J10")
        assert report.result == MISS
        assert report.streak == 0
        assert session.players[0].streak == 0
        assert session.active.ref == Y
        assert session.passive.ref == X
        assert texts_for(transport, 1)[-1] == "No hit."
        assert texts_for(transport, 2)[-1] == "Luckily, player Xena missed.\nYour turn."

        with pytest.raises(NotYourTurn):
            await session.hit(1, "B1")
        await session.dispose()

    asyncio.run(run_test())


def test_hits_keep_turn_and_count_streak(monkeypatch):
    async def run_test():
        transport = make_transport()
        session = _new_session(monkeypatch, transport)
        await session.join(Y)

        assert (await session.hit(1, "A1")).result == HIT
        report = await session.hit(1, " b1 ")
        assert report.result == SUNK
        assert report.streak == 2
        assert session.active.ref == X
        assert session.status is SessionStatus.IN_PROGRESS
        assert session.players[0].units_destroyed == 2
        assert "2 hits in a row" in texts_for(transport, 1)[-1]
        assert texts_for(transport, 2)[-1] == "Player Xena sank your ship!"

        # the splash made A2 unavailable
        with pytest.raises(AlreadyResolved):
            await session.hit(1, "A2")
        with pytest.raises(MalformedCoordinate):
            await session.hit(1, "Z99")
        assert session.active.ref == X
        await session.dispose()

    asyncio.run(run_test())


def test_victory_exactly_when_last_unit_destroyed(monkeypatch):
    async def run_test():
        transport = make_transport()
        on_finished = AsyncMock()
        session = _new_session(monkeypatch, transport, on_finished=on_finished)
        await session.join(Y)

        await session.hit(1, "A1")
        await session.hit(1, "B1")
        assert session.status is SessionStatus.IN_PROGRESS
        assert session.passive.grid.alive_unit_count() == 1
        on_finished.assert_not_awaited()

        report = await session.hit(1, "F6")
        assert report.finished
        assert session.status is SessionStatus.FINISHED
        assert session.reason is FinishReason.VICTORY
        outcome = session.outcome()
        assert outcome.winner == X and outcome.loser == Y
        on_finished.assert_awaited_once_with(session)
        assert texts_for(transport, 1)[-1].startswith("Congratulations on the victory, Xena!")
        assert texts_for(transport, 2)[-1] == "Unfortunately, player Xena destroyed your fleet. Defeat."

        with pytest.raises(GameAlreadyFinished):
            await session.hit(1, "J10")

    asyncio.run(run_test())


def test_inactivity_reminders_then_surrender(monkeypatch):
    async def run_test():
        transport = make_transport()
        on_finished = AsyncMock()
        session = _new_session(monkeypatch, transport, on_finished=on_finished)
        await session.join(Y)

        for _ in range(3):
            await session.tick(15)
        assert session.status is SessionStatus.IN_PROGRESS
        assert session.elapsed == 45
        reminders = [t for t in texts_for(transport, 1) if "hurry up" in t]
        assert [r.rsplit(" ", 2)[-2] for r in reminders] == ["45", "30", "15"]
        assert any("They have 15 seconds left" in t for t in texts_for(transport, 2))

        await session.tick(15)
        assert session.status is SessionStatus.FINISHED
        assert session.reason is FinishReason.SURRENDER
        assert session.outcome().winner == Y
        assert session.outcome().loser == X
        assert texts_for(transport, 1)[-1] == "Unfortunately, you surrendered and lost! Player Yuri wins"
        assert texts_for(transport, 2)[-1] == "Congratulations, player Xena surrendered, so you win!"
        on_finished.assert_awaited_once_with(session)

        # a late shot after the forfeit is rejected
        with pytest.raises(GameAlreadyFinished):
            await session.hit(1, "A1")
        await session.tick(15)
        on_finished.assert_awaited_once()

    asyncio.run(run_test())


def test_timer_resets_on_every_successful_hit(monkeypatch):
    """Policy: any successful shot restarts the inactivity countdown."""

    async def run_test():
        session = _new_session(monkeypatch)
        await session.join(Y)
        for _ in range(3):
            await session.tick(15)

        await session.hit(1, "J10")  # miss, Y is active now
        assert session.elapsed == 0
        for _ in range(3):
            await session.tick(15)
        assert session.status is SessionStatus.IN_PROGRESS

        await session.tick(15)
        assert session.reason is FinishReason.SURRENDER
        assert session.outcome().winner == X

    asyncio.run(run_test())


def test_rejected_hit_does_not_reset_timer(monkeypatch):
    """Policy: a refused shot is not activity."""

    async def run_test():
        session = _new_session(monkeypatch)
        await session.join(Y)
        for _ in range(3):
            await session.tick(15)
        with pytest.raises(NotYourTurn):
            await session.hit(2, "A1")
        assert session.elapsed == 45
        await session.tick(15)
        assert session.status is SessionStatus.FINISHED

    asyncio.run(run_test())


def test_rejected_hit_resets_timer_when_configured(monkeypatch):
    async def run_test():
        settings = GameSettings(reset_timer_on_rejected_hit=True)
        session = _new_session(monkeypatch, settings=settings)
        await session.join(Y)
        await session.tick(45)
        with pytest.raises(NotYourTurn):
            await session.hit(2, "A1")
        assert session.elapsed == 0
        await session.dispose()

    asyncio.run(run_test())


def test_timer_task_forfeits_idle_game(monkeypatch):
    async def run_test():
        settings = GameSettings(timer_interval=0.01, turn_timeout=0.03)
        on_finished = AsyncMock()
        session = _new_session(monkeypatch, settings=settings, on_finished=on_finished)
        await session.join(Y)
        for _ in range(100):
            if session.is_finished:
                break
            await asyncio.sleep(0.01)
        assert session.reason is FinishReason.SURRENDER
        assert session.outcome().winner == Y
        on_finished.assert_awaited_once_with(session)

    asyncio.run(run_test())


def test_dispose_stops_timer_and_is_idempotent(monkeypatch):
    async def run_test():
        transport = make_transport()
        session = _new_session(monkeypatch, transport)
        await session.join(Y)
        timer = session._timer
        assert timer is not None

        await session.dispose()
        await asyncio.sleep(0)
        assert timer.cancelled() or timer.done()
        deleted = transport.delete.await_count
        assert deleted >= 2
        assert all(p.board_message is None for p in session.players)

        await session.dispose()
        assert transport.delete.await_count == deleted
        with pytest.raises(GameAlreadyFinished):
            await session.hit(1, "A1")
        await session.tick(60)
        assert session.status is SessionStatus.IN_PROGRESS

    asyncio.run(run_test())


def test_previous_text_is_replaced(monkeypatch):
    async def run_test():
        transport = make_transport()
        session = _new_session(monkeypatch, transport)
        await session.join(Y)
        await session.hit(1, "A1")
        first_text = session.players[0].text_message
        await session.hit(1, "J10")
        deleted = [c.args[1] for c in transport.delete.await_args_list if c.args[0] == X]
        assert first_text in deleted
        await session.dispose()

    asyncio.run(run_test())


def test_transport_failures_do_not_break_the_game(monkeypatch):
    async def run_test():
        transport = SimpleNamespace(
            notify=AsyncMock(side_effect=RuntimeError("network down")),
            notify_with_board_view=AsyncMock(side_effect=RuntimeError("network down")),
            delete=AsyncMock(side_effect=RuntimeError("gone")),
        )
        session = _new_session(monkeypatch, transport)
        await session.open()
        await session.join(Y)
        assert (await session.hit(1, "A1")).result == HIT
        assert (await session.hit(1, "J10")).result == MISS
        assert session.active.ref == Y
        await session.dispose()

    asyncio.run(run_test())


def test_units_destroyed_are_recorded_best_effort(monkeypatch):
    async def run_test():
        stats = SimpleNamespace(increment_units_destroyed=Mock(side_effect=[None, OSError("disk")]))
        session = _new_session(monkeypatch, stats=stats)
        await session.join(Y)
        await session.hit(1, "A1")
        await session.hit(1, "B1")
        await session.hit(1, "J10")
        assert stats.increment_units_destroyed.call_count == 2
        stats.increment_units_destroyed.assert_called_with(X)
        assert session.active.ref == Y
        await session.dispose()

    asyncio.run(run_test())


def test_slow_statistics_store_does_not_block_the_loop(monkeypatch):
    def _slow_increment(ref):
        time.sleep(0.3)

    stats = SimpleNamespace(increment_units_destroyed=Mock(side_effect=_slow_increment))

    async def run_test():
        session = _new_session(monkeypatch, stats=stats)
        await session.join(Y)

        async def lag():
            started = time.monotonic()
            await asyncio.sleep(0.01)
            return time.monotonic() - started

        report, delay = await asyncio.gather(session.hit(1, "A1"), lag())
        assert report.result == HIT
        assert delay < 0.2
        stats.increment_units_destroyed.assert_called_once_with(X)
        await session.dispose()

    asyncio.run(run_test())


def test_open_after_join_keeps_game_boards(monkeypatch):
    async def run_test():
        transport = make_transport()
        session = _new_session(monkeypatch, transport)
        await session.join(Y)
        sent = transport.notify_with_board_view.await_count
        await session.open()
        assert transport.notify_with_board_view.await_count == sent
        assert texts_for(transport, 1) == []
        await session.dispose()

    asyncio.run(run_test())
