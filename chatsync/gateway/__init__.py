"""Gateway package - REST clients for the chat backend."""

from .base import BaseGatewayClient
from .auth import AuthClient
from .chat import ChatClient
from .rooms import RoomClient

__all__ = ["BaseGatewayClient", "AuthClient", "ChatClient", "RoomClient"]
