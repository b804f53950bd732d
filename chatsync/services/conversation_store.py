"""Conversation store.

Holds the ordered conversation list for the current user, reconciles it with
server snapshots, and persists it to the user's cache partition.

Cache layout (kv_store):
  chats_{user_name} -> JSON array of conversations in the server's shape
"""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional

import duckdb
from pydantic import ValidationError

from ..db.repositories.kv import KeyValueRepository
from ..errors import GatewayError
from ..gateway.chat import ChatClient
from ..models.chat import Conversation, ConversationList, Message
from ..models.session import Session
from ..utils.logger import get_app_logger

PARTITION_PREFIX = "chats_"


class ConversationStore:
    """Ordered, deduplicated conversation list backed by a cache partition."""

    def __init__(self, session: Session, chat_client: ChatClient, kv_repository: KeyValueRepository):
        self.session = session
        self.chat_client = chat_client
        self.kv = kv_repository
        self.logger = get_app_logger(__name__)

        self.conversations: List[Conversation] = []
        self.current_conversation: Optional[Conversation] = None
        self.focused_id: Optional[int] = None
        self.partition_key: Optional[str] = None
        self.is_loading = False
        self.error_message: Optional[str] = None

        self._index: Dict[str, int] = {}
        self._focus_generation = 0
        self._pending_creates: Dict[str, asyncio.Future] = {}

    @staticmethod
    def partition_key_for(user_name: Optional[str]) -> str:
        return f"{PARTITION_PREFIX}{user_name or 'anonymous'}"

    # === Cache ===

    def load_for_user(self, user_name: Optional[str]) -> None:
        self.load_from_cache(self.partition_key_for(user_name))

    def load_from_cache(self, partition_key: str) -> List[Conversation]:
        """
        Replace the in-memory list with the contents of a partition.

        Missing or unreadable partitions give an empty list. Conversations
        are ordered by their last message, newest first.
        """
        self.partition_key = partition_key
        conversations: List[Conversation] = []

        try:
            raw = self.kv.get(partition_key)
        except duckdb.Error as e:
            self.logger.error(f"Failed to read partition {partition_key}: {e}")
            raw = None

        if raw is not None:
            try:
                conversations = ConversationList.validate_json(raw)
            except ValidationError as e:
                self.logger.warning(f"Discarding unreadable partition {partition_key}: {e.error_count()} errors")
                conversations = []

        now = datetime.now()
        conversations.sort(key=lambda c: c.last_message_date(now), reverse=True)

        self.conversations = conversations
        self._rebuild_index()
        self.logger.info(f"Loaded {len(conversations)} conversations from {partition_key}")
        return list(conversations)

    def _persist(self) -> None:
        key = self.partition_key or self.partition_key_for(self.session.user_name)
        try:
            payload = ConversationList.dump_json(self.conversations, by_alias=True)
            self.kv.set(key, payload)
        except duckdb.Error as e:
            self.logger.error(f"Failed to persist conversations to {key}: {e}")

    # === Index ===

    def _rebuild_index(self) -> None:
        own_id = self.session.user_id
        index: Dict[str, int] = {}
        # Front of the list wins when a member shows up in several conversations
        for conversation in reversed(self.conversations):
            if not conversation.is_private:
                continue
            for member_id in conversation.member_ids:
                if own_id and member_id == own_id:
                    continue
                index[member_id] = conversation.id
        self._index = index

    def find_private_conversation(self, member_id: str) -> Optional[Conversation]:
        conversation_id = self._index.get(member_id)
        if conversation_id is None:
            return None
        return self.get(conversation_id)

    def get(self, conversation_id: int) -> Optional[Conversation]:
        position = self._position(conversation_id)
        if position is None:
            return None
        return self.conversations[position]

    def _position(self, conversation_id: int) -> Optional[int]:
        for i, conversation in enumerate(self.conversations):
            if conversation.id == conversation_id:
                return i
        return None

    # === Focus ===

    def focus(self, conversation_id: int) -> None:
        """Make a conversation the one on screen."""
        self.focused_id = conversation_id
        self._focus_generation += 1
        self.current_conversation = self.get(conversation_id)

    def unfocus(self) -> None:
        self.focused_id = None
        self._focus_generation += 1
        self.current_conversation = None

    # === Mutations ===

    async def create_private_conversation(self, member_id: str) -> Optional[Conversation]:
        """
        Open the private conversation with a member, creating it if needed.

        Concurrent calls for the same member share one gateway request.

        Returns:
            The conversation, or None if creation failed
        """
        existing = self.find_private_conversation(member_id)
        if existing is not None:
            self.logger.info(f"Conversation with {member_id} already exists: {existing.id}")
            self.focus(existing.id)
            return existing

        pending = self._pending_creates.get(member_id)
        if pending is None:
            pending = asyncio.ensure_future(self._create_remote(member_id))
            self._pending_creates[member_id] = pending
            pending.add_done_callback(lambda _: self._pending_creates.pop(member_id, None))

        return await asyncio.shield(pending)

    async def _create_remote(self, member_id: str) -> Optional[Conversation]:
        self.is_loading = True
        self.error_message = None
        try:
            response = await self.chat_client.create_private_chat(member_id)
        except GatewayError as e:
            self.error_message = f"Failed to create chat: {e}"
            self.logger.error(self.error_message)
            return None
        finally:
            self.is_loading = False

        conversation = response.chat_data
        self.logger.info(f"New conversation created: {conversation.name} ({conversation.id})")

        self._insert_front(conversation)
        self._rebuild_index()
        self._persist()
        self.focus(conversation.id)
        return conversation

    def _insert_front(self, conversation: Conversation) -> None:
        position = self._position(conversation.id)
        if position is not None:
            del self.conversations[position]
        self.conversations.insert(0, conversation)

    def _move_to_front(self, conversation_id: int) -> None:
        position = self._position(conversation_id)
        if position is None or position == 0:
            return
        self.conversations.insert(0, self.conversations.pop(position))

    async def send_message(self, text: str, conversation_id: int) -> bool:
        """
        Send a message, then move the conversation up and refetch it.

        The message is not appended locally; it shows up with the refresh.
        """
        text = text.strip()
        if not text:
            return False

        try:
            await self.chat_client.send_message(text, conversation_id)
        except GatewayError as e:
            self.error_message = f"Failed to send message: {e}"
            self.logger.error(self.error_message)
            return False

        self._move_to_front(conversation_id)
        self._persist()
        await self.refresh_conversation(conversation_id)
        return True

    async def refresh_conversation(self, conversation_id: int) -> Optional[Conversation]:
        """
        Fetch a snapshot and replace the cached entry with it.

        Failures are logged only. When two refreshes overlap, whichever
        completes last decides the cached state.
        """
        generation = self._focus_generation
        try:
            conversation = await self.chat_client.get_chat(conversation_id)
        except GatewayError as e:
            self.logger.warning(f"Refresh of conversation {conversation_id} failed: {e}")
            return None

        self._apply_snapshot(conversation, generation)
        return conversation

    async def load_conversation(self, conversation_id: int) -> Optional[Conversation]:
        """Like refresh_conversation, but with loading state and a visible error."""
        generation = self._focus_generation
        self.is_loading = True
        self.error_message = None
        try:
            conversation = await self.chat_client.get_chat(conversation_id)
        except GatewayError as e:
            self.error_message = f"Failed to load chat: {e}"
            self.logger.error(self.error_message)
            return None
        finally:
            self.is_loading = False

        self._apply_snapshot(conversation, generation)
        return conversation

    def _apply_snapshot(self, conversation: Conversation, generation: int) -> None:
        position = self._position(conversation.id)
        if position is not None:
            self.conversations[position] = conversation
            self._rebuild_index()
            self._persist()

        if generation != self._focus_generation:
            self.logger.debug(f"Skipping stale update of conversation {conversation.id}")
            return
        if self.focused_id == conversation.id:
            self.current_conversation = conversation

    def apply_received_message(self, message: Message, chat_id: int) -> bool:
        """
        Merge a pushed message into one cached conversation.

        Returns:
            True if the timeline changed
        """
        position = self._position(chat_id)
        if position is None:
            return False

        conversation = self.conversations[position]
        if any(existing.id == message.id for existing in conversation.messages):
            return False

        updated = conversation.with_message(message)
        self.conversations[position] = updated
        if self.current_conversation is not None and self.current_conversation.id == chat_id:
            self.current_conversation = updated
        self._persist()
        return True

    def delete_conversation(self, conversation_id: int) -> None:
        """Remove a conversation locally. The server copy is untouched."""
        position = self._position(conversation_id)
        if position is None:
            return
        del self.conversations[position]
        if self.current_conversation is not None and self.current_conversation.id == conversation_id:
            self.current_conversation = None
        self._rebuild_index()
        self._persist()

    def release(self) -> None:
        """Drop in-memory state. The partition stays on disk."""
        self.conversations = []
        self._index = {}
        self.current_conversation = None
        self.focused_id = None
        self._focus_generation += 1
        self.partition_key = None
        self.error_message = None
