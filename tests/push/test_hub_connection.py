"""Tests for HubConnection with an in-process pysignalr client double."""

import asyncio
from types import SimpleNamespace

import pytest

from chatsync.push.connection import HubConnection
from conftest import eventually


class FakeSignalRClient:
    """Stands in for pysignalr's SignalRClient; tests drive its callbacks."""

    def __init__(self, url, **options):
        self.url = url
        self.options = options
        self.handlers = {}
        self.sent = []
        self.runs = 0
        self.open_callback = self.close_callback = self.error_callback = None
        self.failure = None
        self._finished = asyncio.Event()

    def on(self, event, callback):
        self.handlers.setdefault(event, []).append(callback)

    def on_open(self, callback):
        self.open_callback = callback

    def on_close(self, callback):
        self.close_callback = callback

    def on_error(self, callback):
        self.error_callback = callback

    async def run(self):
        self.runs += 1
        await self._finished.wait()
        if self.failure is not None:
            raise self.failure

    async def send(self, method, arguments, on_invocation=None):
        self.sent.append((method, arguments))

    async def deliver(self, event, arguments):
        for callback in self.handlers.get(event, []):
            await callback(arguments)

    def give_up(self, error):
        self.failure = error
        self._finished.set()


class RecordedEvents:
    def __init__(self, connection):
        self.events = []
        connection.did_open = lambda: self.events.append(("open",))
        connection.will_reconnect = lambda error: self.events.append(("will_reconnect", error))
        connection.did_reconnect = lambda: self.events.append(("reconnected",))
        connection.did_close = lambda error: self.events.append(("close", error))

    def names(self):
        return [e[0] for e in self.events]


@pytest.fixture
async def connection():
    connection = HubConnection(
        "http://test/ChatHub?access_token=tok-1",
        reconnect_delay=0.25,
        reconnect_multiplier=3.0,
        reconnect_attempts=4,
        client_factory=FakeSignalRClient,
    )
    yield connection
    await connection.stop()


class TestClientSetup:
    """SUT: HubConnection.__init__"""

    def test_retry_options_passed_to_client(self, connection):
        assert connection.client.url == "http://test/ChatHub?access_token=tok-1"
        assert connection.client.options == {"retry_sleep": 0.25, "retry_multiplier": 3.0, "retry_count": 4}
        assert connection.client.open_callback is not None
        assert connection.client.close_callback is not None

    async def test_start_runs_client_once(self, connection):
        await connection.start()
        await connection.start()
        await eventually(lambda: connection.client.runs == 1)
        assert connection.client.runs == 1


class TestLifecycle:
    """SUT: HubConnection lifecycle callbacks"""

    async def test_open_drop_reopen(self, connection):
        events = RecordedEvents(connection)
        await connection.start()

        await connection.client.open_callback()
        assert connection.is_open
        await connection.client.close_callback()
        assert not connection.is_open
        await connection.client.open_callback()

        assert events.names() == ["open", "will_reconnect", "reconnected"]
        assert isinstance(events.events[1][1], ConnectionError)

    async def test_close_before_open_is_not_a_reconnect(self, connection):
        events = RecordedEvents(connection)
        await connection.start()
        await connection.client.close_callback()
        assert events.names() == []

    async def test_stop_reports_clean_close(self, connection):
        events = RecordedEvents(connection)
        await connection.start()
        await connection.client.open_callback()

        await connection.stop()
        await connection.client.close_callback()

        assert events.names() == ["open", "close"]
        assert events.events[-1][1] is None
        assert not connection.is_open

    async def test_gave_up_reports_error(self, connection):
        events = RecordedEvents(connection)
        await connection.start()
        await connection.client.open_callback()

        failure = ConnectionError("retries exhausted")
        connection.client.give_up(failure)
        await eventually(lambda: "close" in events.names())

        assert events.events[-1] == ("close", failure)
        assert not connection.is_open

    async def test_callback_error_is_contained(self, connection):
        connection.did_open = lambda: 1 / 0
        await connection.start()
        await connection.client.open_callback()
        assert connection.is_open

    async def test_invocation_error_keeps_connection(self, connection):
        await connection.start()
        await connection.client.open_callback()
        await connection.client.error_callback(SimpleNamespace(error="Method not found"))
        assert connection.is_open


class TestHandlers:
    """SUT: HubConnection.on"""

    async def test_arguments_are_unpacked(self, connection):
        received = []
        connection.on("UserTyping", lambda payload: received.append(("first", payload)))
        connection.on("UserTyping", lambda payload: received.append(("second", payload)))

        await connection.client.deliver("UserTyping", [{"userName": "bob"}])

        assert received == [("first", {"userName": "bob"}), ("second", {"userName": "bob"})]
        assert len(connection.client.handlers["UserTyping"]) == 1

    async def test_failing_handler_does_not_stop_others(self, connection):
        received = []

        def broken(payload):
            raise ValueError("bad payload")

        connection.on("ReceiveMessage", broken)
        connection.on("ReceiveMessage", received.append)
        await connection.client.deliver("ReceiveMessage", [{"id": 1}])

        assert received == [{"id": 1}]


class TestInvoke:
    """SUT: HubConnection.invoke"""

    async def test_requires_open_socket(self, connection):
        with pytest.raises(ConnectionError):
            await connection.invoke("JoinChat", 5)
        assert connection.client.sent == []

    async def test_sends_arguments_as_list(self, connection):
        await connection.start()
        await connection.client.open_callback()

        await connection.invoke("SendMessage", "hello", 5)
        assert connection.client.sent == [("SendMessage", ["hello", 5])]
