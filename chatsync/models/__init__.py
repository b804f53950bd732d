"""Pydantic models for gateway payloads, cache records and session state."""

from .chat import (
    ChatKind,
    Message,
    ChatMember,
    Conversation,
    ConversationList,
    ChatResponse,
    SendMessageRequest,
    normalize_messages,
)
from .user import APIUser, UsersResponse, LoginRequest, LoginResponse, RegisterRequest, decode_users
from .room import (
    GroupRoom,
    GroupRoomList,
    RoomMember,
    CreateRoomRequest,
    CreateRoomResponse,
    JoinRoomResponse,
)
from .push import ReceivedMessage, TypingInfo
from .session import Session, SessionState

__all__ = [
    "ChatKind",
    "Message",
    "ChatMember",
    "Conversation",
    "ConversationList",
    "ChatResponse",
    "SendMessageRequest",
    "normalize_messages",
    "APIUser",
    "UsersResponse",
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "decode_users",
    "GroupRoom",
    "GroupRoomList",
    "RoomMember",
    "CreateRoomRequest",
    "CreateRoomResponse",
    "JoinRoomResponse",
    "ReceivedMessage",
    "TypingInfo",
    "Session",
    "SessionState",
]
