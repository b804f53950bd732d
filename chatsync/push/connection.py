"""Hub connection on top of the pysignalr client."""

import asyncio
from typing import Any, Callable, Dict, List, Optional

from pysignalr.client import SignalRClient
from pysignalr.messages import CompletionMessage
from websockets.exceptions import ConnectionClosed

from ..utils.logger import get_app_logger

Handler = Callable[..., None]


class HubConnection:
    """
    Adapter from a pysignalr ``SignalRClient`` to the hub delegate callbacks.

    Framing, handshake, pings and reconnect backoff belong to pysignalr.
    This class only tracks whether the socket is open and reports the
    lifecycle as ``did_open``, ``will_reconnect(error)``, ``did_reconnect()``
    and ``did_close(error)``.
    """

    def __init__(
        self,
        url: str,
        reconnect_delay: float = 0.5,
        reconnect_multiplier: float = 2.0,
        reconnect_attempts: int = 5,
        client_factory: Callable[..., Any] = SignalRClient
    ):
        self.url = url
        self.logger = get_app_logger(__name__)

        self.did_open: Optional[Callable[[], None]] = None
        self.will_reconnect: Optional[Callable[[Optional[BaseException]], None]] = None
        self.did_reconnect: Optional[Callable[[], None]] = None
        self.did_close: Optional[Callable[[Optional[BaseException]], None]] = None

        self.client = client_factory(
            url,
            retry_sleep=reconnect_delay,
            retry_multiplier=reconnect_multiplier,
            retry_count=reconnect_attempts,
        )
        self.client.on_open(self._on_open)
        self.client.on_close(self._on_close)
        self.client.on_error(self._on_error)

        self._handlers: Dict[str, List[Handler]] = {}
        self._task: Optional[asyncio.Task] = None
        self._open = False
        self._opened_once = False
        self._stopping = False

    @property
    def is_open(self) -> bool:
        return self._open

    def on(self, target: str, handler: Handler) -> None:
        """Register a handler for a server-to-client method."""
        if target not in self._handlers:
            self._handlers[target] = []
            self.client.on(target, self._dispatcher(target))
        self._handlers[target].append(handler)

    def _dispatcher(self, target: str) -> Callable[[List[Any]], Any]:
        async def dispatch(arguments: List[Any]) -> None:
            for handler in self._handlers.get(target, []):
                try:
                    handler(*arguments)
                except Exception:
                    self.logger.exception(f"Handler for {target} failed")

        return dispatch

    async def start(self) -> None:
        """Run the client in the background. No-op if already running."""
        if self._task is not None and not self._task.done():
            return
        self._stopping = False
        self._opened_once = False
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Cancel the client and wait for it to finish."""
        self._stopping = True
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def invoke(self, target: str, *arguments: Any) -> None:
        """
        Send a fire-and-forget invocation.

        Raises:
            ConnectionError: If the socket is not open or closes while sending
        """
        if not self._open:
            raise ConnectionError("Hub connection is not open")
        try:
            await self.client.send(target, list(arguments))
        except ConnectionClosed as e:
            raise ConnectionError(f"Hub connection closed while sending {target}") from e

    async def _run(self) -> None:
        error: Optional[BaseException] = None
        try:
            await self.client.run()
        except Exception as e:
            # Raised once pysignalr has used up its retries
            error = e
            self.logger.error(f"Hub connection gave up: {e}")
        finally:
            self._open = False
            self._notify(self.did_close, None if self._stopping else error)

    async def _on_open(self) -> None:
        self._open = True
        reconnected = self._opened_once
        self._opened_once = True
        self.logger.info("Hub connection reopened" if reconnected else "Hub connection open")
        self._notify(self.did_reconnect if reconnected else self.did_open)

    async def _on_close(self) -> None:
        was_open = self._open
        self._open = False
        if self._stopping or not was_open:
            return
        self.logger.warning("Hub connection lost, waiting for reconnect")
        self._notify(self.will_reconnect, ConnectionError("Hub connection lost"))

    async def _on_error(self, message: CompletionMessage) -> None:
        self.logger.error(f"Hub invocation failed: {message.error}")

    def _notify(self, callback: Optional[Callable], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            self.logger.exception("Hub connection callback failed")
