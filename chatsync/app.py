"""Application composition root."""

from typing import Any, Callable, Optional

import httpx

from .config import Settings, settings as default_settings
from .db.connection import DatabaseConnection
from .db.repositories.kv import KeyValueRepository
from .db.repositories.secret import SecretStore
from .gateway.auth import AuthClient
from .gateway.chat import ChatClient
from .gateway.rooms import RoomClient
from .models.session import Session
from .models.user import RegisterRequest
from .push.connection import HubConnection
from .push.listener import PushListener
from .services.conversation_store import ConversationStore
from .services.group_room_store import GroupRoomStore
from .services.session_manager import SessionManager
from .services.sync_coordinator import SyncCoordinator
from .services.user_directory import UserDirectory
from .utils.logger import init_app_logger, mask_secret


class ChatApplication:
    """
    Builds every component once and wires them together.

    Args:
        settings: Client settings, defaults to the environment
        transport: Optional httpx transport, used by tests
        connection_factory: Hub connection class for the push listener
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        connection_factory: Callable[..., Any] = HubConnection
    ):
        self.settings = settings or default_settings
        self.logger = init_app_logger(self.settings)
        self.connection_factory = connection_factory

        self.db = DatabaseConnection(self.settings.database_path)
        self.secret_store = SecretStore(self.db.conn)
        self.kv = KeyValueRepository(self.db.conn)

        self.session = Session()
        self.http = httpx.AsyncClient(base_url=self.settings.base_url, transport=transport)
        self.auth_client = AuthClient(self.http, self.session, self.secret_store)
        self.chat_client = ChatClient(self.http, self.session, self.secret_store)
        self.room_client = RoomClient(self.http, self.session, self.secret_store)

        self.session_manager = SessionManager(self.session, self.secret_store, self.auth_client)
        self.user_directory = UserDirectory(self.session, self.chat_client)
        self.conversations = ConversationStore(self.session, self.chat_client, self.kv)
        self.group_rooms = GroupRoomStore(self.room_client, self.kv, self.user_directory)
        self.session_manager.attach(self.conversations)
        self.session_manager.attach(self.group_rooms)

        self.coordinator = SyncCoordinator(self.conversations, poll_interval=self.settings.poll_interval)
        self.listener: Optional[PushListener] = None

    async def start(self) -> bool:
        """
        Restore a saved session and start background work.

        Returns:
            True if a saved session was restored
        """
        self.logger.info("=" * 70)
        self.logger.info("Starting chatsync...")
        self.logger.info("=" * 70)
        self.logger.info(f"  Gateway: {self.settings.base_url}")
        self.logger.info(f"  Database: {self.settings.database_path}")
        self.logger.info(f"  Poll Interval: {self.settings.poll_interval}s")
        self.logger.info(f"  Log Level: {self.settings.log_level}")

        self.coordinator.start()
        restored = self.session_manager.restore()
        if restored:
            await self.ensure_listener()
        return restored

    async def ensure_listener(self) -> PushListener:
        """Connect a push listener built for the current token."""
        if self.listener is not None and self.listener.matches_session(self.session):
            await self.listener.connect()
            return self.listener

        if self.listener is not None:
            self.logger.info("Auth token changed, rebuilding push listener")
            await self.listener.disconnect()

        self.listener = PushListener(self.settings, self.session, self.connection_factory)
        self.coordinator.attach_listener(self.listener)
        self.logger.info(f"Push listener built for token {mask_secret(self.session.auth_token)}")
        await self.listener.connect()
        return self.listener

    async def login(self, user_name: str, password: str) -> bool:
        if not await self.session_manager.login(user_name, password):
            return False
        await self.ensure_listener()
        return True

    async def register(self, request: RegisterRequest) -> bool:
        if not await self.session_manager.register(request):
            return False
        await self.ensure_listener()
        return True

    async def logout(self) -> None:
        await self.coordinator.close_conversation()
        await self._drop_listener()
        self.session_manager.logout()
        self.user_directory.release()

    async def _drop_listener(self) -> None:
        if self.listener is not None:
            await self.listener.disconnect()
            self.listener = None
        self.coordinator.attach_listener(None)

    async def shutdown(self) -> None:
        self.logger.info("Shutting down chatsync...")
        await self.coordinator.close_conversation()
        await self.coordinator.stop()
        await self._drop_listener()
        await self.http.aclose()
        self.db.close()
        self.logger.info("Shutdown complete")

    async def __aenter__(self) -> "ChatApplication":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.shutdown()
