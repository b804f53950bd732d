"""Push listener: hub events in, listener state out."""

from enum import Enum
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from ..config import Settings
from ..models.push import ReceivedMessage, TypingInfo
from ..models.session import Session
from ..utils.logger import get_app_logger, mask_secret
from .connection import HubConnection

MessageSubscriber = Callable[[ReceivedMessage], None]


class ListenerState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"


class PushListener:
    """
    Keeps the push channel open and exposes what it hears.

    The access token is captured once, when the listener is built. After a
    re-login the application builds a new listener instead of reconnecting
    this one (see ``matches_session``). Received messages are only exposed
    and fanned out to subscribers; the listener never touches the
    conversation store.
    """

    def __init__(
        self,
        settings: Settings,
        session: Session,
        connection_factory: Callable[..., Any] = HubConnection
    ):
        self.logger = get_app_logger(__name__)
        self.token = session.auth_token or ""
        self.url = settings.hub_url(self.token)

        self.state = ListenerState.DISCONNECTED
        self.latest_message: Optional[ReceivedMessage] = None
        self.typing_users: List[str] = []
        self.active_chat_id: Optional[int] = None
        self._subscribers: List[MessageSubscriber] = []

        self.connection = connection_factory(
            self.url,
            reconnect_delay=settings.push_reconnect_initial_delay,
            reconnect_multiplier=settings.push_reconnect_multiplier,
            reconnect_attempts=settings.push_reconnect_attempts,
        )
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        self.connection.on("ReceiveMessage", self._on_receive_message)
        self.connection.on("UserTyping", self._on_user_typing)
        self.connection.on("UserStoppedTyping", self._on_user_stopped_typing)

        self.connection.did_open = self._on_open
        self.connection.will_reconnect = self._on_will_reconnect
        self.connection.did_reconnect = self._on_reconnected
        self.connection.did_close = self._on_close

    def matches_session(self, session: Session) -> bool:
        """True while the captured token is still the session's token."""
        return self.token == (session.auth_token or "")

    def subscribe(self, callback: MessageSubscriber) -> Callable[[], None]:
        """
        Register a callback for received messages.

        Returns:
            A function that removes the callback again
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # === Lifecycle ===

    async def connect(self) -> None:
        if self.state in (ListenerState.CONNECTED, ListenerState.CONNECTING):
            return
        self.state = ListenerState.CONNECTING
        self.logger.info(f"Connecting to push hub with token {mask_secret(self.token)}")
        await self.connection.start()

    async def disconnect(self) -> None:
        await self.connection.stop()
        self.state = ListenerState.DISCONNECTED
        self.logger.info("Disconnected from push hub")

    def _on_open(self) -> None:
        self.state = ListenerState.CONNECTED
        self.logger.info("Push hub connected")

    def _on_will_reconnect(self, error: Optional[BaseException]) -> None:
        self.state = ListenerState.RECONNECTING
        self.logger.warning(f"Push hub will reconnect: {error}")

    def _on_reconnected(self) -> None:
        self.state = ListenerState.CONNECTED
        self.logger.info("Push hub reconnected")

    def _on_close(self, error: Optional[BaseException]) -> None:
        self.state = ListenerState.DISCONNECTED
        if error is not None:
            self.logger.warning(f"Push hub closed: {error}")

    # === Server events ===

    def _on_receive_message(self, payload: Any) -> None:
        try:
            message = ReceivedMessage.model_validate(payload)
        except ValidationError as e:
            self.logger.warning(f"Dropping malformed ReceiveMessage payload: {e}")
            return

        self.logger.info(f"Received message {message.id} from {message.name}")
        self.latest_message = message
        for callback in list(self._subscribers):
            try:
                callback(message)
            except Exception:
                self.logger.exception("Message subscriber failed")

    def _on_user_typing(self, payload: Any) -> None:
        try:
            info = TypingInfo.model_validate(payload)
        except ValidationError as e:
            self.logger.warning(f"Dropping malformed UserTyping payload: {e}")
            return

        if self.active_chat_id is not None and info.chat_id is not None and info.chat_id != self.active_chat_id:
            return
        if info.user_name not in self.typing_users:
            self.typing_users.append(info.user_name)

    def _on_user_stopped_typing(self, user_id: Any) -> None:
        user_id = str(user_id)
        if user_id in self.typing_users:
            self.typing_users.remove(user_id)

    # === Client invocations ===

    async def _invoke(self, target: str, *arguments: Any) -> bool:
        if self.state != ListenerState.CONNECTED:
            self.logger.warning(f"Skipping {target}: push hub not connected")
            return False
        try:
            await self.connection.invoke(target, *arguments)
        except ConnectionError as e:
            self.logger.error(f"Error invoking {target}: {e}")
            return False
        return True

    async def send_message(self, text: str, chat_id: int) -> bool:
        return await self._invoke("SendMessage", text, chat_id)

    async def join_chat(self, chat_id: int) -> bool:
        """Make ``chat_id`` the active chat and join its push group."""
        self.active_chat_id = chat_id
        self.typing_users = []
        return await self._invoke("JoinChat", chat_id)

    async def leave_chat(self, chat_id: int) -> bool:
        if self.active_chat_id == chat_id:
            self.active_chat_id = None
            self.typing_users = []
        return await self._invoke("LeaveChat", chat_id)

    async def send_typing(self, chat_id: int) -> bool:
        return await self._invoke("Typing", chat_id)

    async def send_stop_typing(self, chat_id: int) -> bool:
        return await self._invoke("StopTyping", chat_id)
