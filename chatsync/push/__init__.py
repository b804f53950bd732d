"""Push package - real-time hub connection and listener."""

from .connection import HubConnection
from .listener import ListenerState, PushListener

__all__ = [
    "HubConnection",
    "ListenerState",
    "PushListener",
]
