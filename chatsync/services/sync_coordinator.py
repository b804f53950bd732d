"""Sync coordinator: one queue, one consumer.

Poll ticks and push events are producers. A single consumer task applies
them to the conversation store in arrival order, so the store is never
updated from two places at once.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, Optional, Set, Tuple

from ..models.push import ReceivedMessage
from ..push.listener import PushListener
from ..utils.logger import get_app_logger
from .conversation_store import ConversationStore
from .poll_scheduler import PollScheduler


class EventKind(str, Enum):
    REFRESH = "refresh"
    PUSH = "push"


class SyncCoordinator:
    """Feeds the conversation store from polling and the push channel."""

    def __init__(self, store: ConversationStore, poll_interval: float = 2.0):
        self.store = store
        self.poller = PollScheduler(self._on_poll_tick, interval=poll_interval)
        self.logger = get_app_logger(__name__)

        self.listener: Optional[PushListener] = None
        self.active_id: Optional[int] = None

        self._queue: "asyncio.Queue[Tuple[EventKind, Any]]" = asyncio.Queue()
        self._queued_refreshes: Set[int] = set()
        self._consumer: Optional[asyncio.Task] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    # === Lifecycle ===

    def start(self) -> None:
        if self._consumer is not None and not self._consumer.done():
            return
        self._consumer = asyncio.create_task(self._consume())
        self.logger.info("Sync coordinator started")

    async def stop(self) -> None:
        self.poller.stop_polling()
        if self._consumer is not None:
            self._consumer.cancel()
            try:
                await self._consumer
            except asyncio.CancelledError:
                pass
            self._consumer = None
            self.logger.info("Sync coordinator stopped")

    async def wait_idle(self) -> None:
        """Wait until every queued event has been applied."""
        await self._queue.join()

    def attach_listener(self, listener: Optional[PushListener]) -> None:
        """Route a (new) listener's messages into the queue."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.listener = listener
        if listener is not None:
            self._unsubscribe = listener.subscribe(self.on_push_message)

    # === Producers ===

    def request_refresh(self, conversation_id: int) -> None:
        """Queue a refresh unless one for the same conversation is already waiting."""
        if conversation_id in self._queued_refreshes:
            return
        self._queued_refreshes.add(conversation_id)
        self._queue.put_nowait((EventKind.REFRESH, conversation_id))

    def on_push_message(self, message: ReceivedMessage) -> None:
        self._queue.put_nowait((EventKind.PUSH, message))

    async def _on_poll_tick(self, conversation_id: int) -> None:
        self.request_refresh(conversation_id)

    # === Consumer ===

    async def _consume(self) -> None:
        while True:
            kind, payload = await self._queue.get()
            try:
                if kind == EventKind.REFRESH:
                    self._queued_refreshes.discard(payload)
                    await self.store.refresh_conversation(payload)
                else:
                    await self._apply_push(payload)
            except Exception:
                self.logger.exception(f"Failed to apply {kind.value} event")
            finally:
                self._queue.task_done()

    async def _apply_push(self, message: ReceivedMessage) -> None:
        focused = self.store.focused_id
        if focused is None:
            self.logger.debug(f"No focused conversation, ignoring pushed message {message.id}")
            return

        if message.chat_id is None:
            # Target unknown: refetch the focused conversation instead of guessing
            await self.store.refresh_conversation(focused)
            return

        if message.chat_id != focused:
            self.logger.debug(f"Pushed message {message.id} is for conversation {message.chat_id}, ignoring")
            return

        self.store.apply_received_message(message.to_message(), focused)

    # === View scope ===

    async def open_conversation(self, conversation_id: int) -> None:
        """Focus, load, poll, and join the push group of a conversation."""
        if self.active_id is not None:
            await self.close_conversation()

        self.active_id = conversation_id
        self.store.focus(conversation_id)
        await self.store.load_conversation(conversation_id)
        self.poller.start_polling(conversation_id)
        if self.listener is not None:
            await self.listener.join_chat(conversation_id)

    async def close_conversation(self) -> None:
        """Release everything open_conversation acquired."""
        self.poller.stop_polling()
        if self.active_id is not None and self.listener is not None:
            await self.listener.leave_chat(self.active_id)
        self.active_id = None
        self.store.unfocus()
