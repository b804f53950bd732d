"""Interval polling of the focused conversation."""

import asyncio
from typing import Awaitable, Callable, Optional

from ..utils.logger import get_app_logger

RefreshCallback = Callable[[int], Awaitable[None]]


class PollScheduler:
    """Runs at most one repeating refresh timer."""

    def __init__(self, on_tick: RefreshCallback, interval: float = 2.0):
        self.on_tick = on_tick
        self.interval = interval
        self.logger = get_app_logger(__name__)

        self.conversation_id: Optional[int] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start_polling(self, conversation_id: int) -> None:
        """Replace any running timer with one for ``conversation_id``."""
        self.stop_polling()
        self.conversation_id = conversation_id
        self._task = asyncio.create_task(self._poll_loop(conversation_id))
        self.logger.info(f"Started polling conversation {conversation_id} every {self.interval}s")

    def stop_polling(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
            self.logger.info(f"Stopped polling conversation {self.conversation_id}")
        self.conversation_id = None

    async def _poll_loop(self, conversation_id: int) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.on_tick(conversation_id)
            except Exception:
                self.logger.exception(f"Poll tick for conversation {conversation_id} failed")
