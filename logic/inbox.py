"""Bounded command queue drained by a pool of worker tasks."""
from __future__ import annotations

import asyncio
import logging
from typing import List, Tuple

from models import PlayerRef


logger = logging.getLogger(__name__)


class CommandInbox:
    """Feed ``(player, text)`` pairs into a dispatcher.

    ``submit`` waits while the queue is full.  Workers run commands
    concurrently; the dispatcher serializes what must be serialized.
    """

    def __init__(self, dispatcher, maxsize: int = 100) -> None:
        self.dispatcher = dispatcher
        self._queue: asyncio.Queue[Tuple[PlayerRef, str]] = asyncio.Queue(maxsize=maxsize)
        self._workers: List[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._workers)

    def start(self, workers: int = 4) -> None:
        if self._workers:
            return
        loop = asyncio.get_running_loop()
        self._workers = [
            loop.create_task(self._work(number)) for number in range(max(1, workers))
        ]
        logger.info("Command inbox started with %s workers", len(self._workers))

    async def submit(self, player: PlayerRef, text: str) -> None:
        await self._queue.put((player, text))

    async def join(self) -> None:
        """Wait until every submitted command has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        workers, self._workers = self._workers, []
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        logger.info("Command inbox stopped")

    async def _work(self, number: int) -> None:
        while True:
            player, text = await self._queue.get()
            try:
                await self.dispatcher.handle_command(player, text)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Worker %s failed on command from %s", number, player.id)
            finally:
                self._queue.task_done()
