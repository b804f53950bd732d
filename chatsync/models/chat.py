"""Conversation and message models."""

from datetime import datetime
from enum import IntEnum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from ..utils.timestamps import timestamp_or_now


class ChatKind(IntEnum):
    """Conversation type as the gateway encodes it."""

    PRIVATE = 0
    GROUP = 1


class Message(BaseModel):
    """A single chat message. Never mutated after creation."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int = Field(description="Server-assigned message ID")
    text: str = Field(default="", description="Message body")
    sender_display_name: str = Field(default="", alias="name", description="Sender display name")
    timestamp: str = Field(default="", description="yyyy-MM-dd'T'HH:mm:ss.SSSSSS")

    def date(self, now: Optional[datetime] = None) -> datetime:
        """Parsed timestamp, or ``now`` when the string is malformed."""
        return timestamp_or_now(self.timestamp, now)


def normalize_messages(messages: List[Message], now: Optional[datetime] = None) -> List[Message]:
    """
    Enforce the timeline invariant: unique IDs, ascending timestamps.

    The first occurrence of a duplicated ID wins and the sort is stable,
    so a snapshot that is already ordered comes back unchanged.
    """
    now = now or datetime.now()
    seen = set()
    unique = []
    for message in messages:
        if message.id in seen:
            continue
        seen.add(message.id)
        unique.append(message)
    return sorted(unique, key=lambda m: m.date(now))


class ChatMember(BaseModel):
    """Membership entry of a conversation."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(alias="userId", description="Member user ID")
    role: int = Field(default=0, description="Member role")

    @field_validator("user_id", mode="before")
    @classmethod
    def coerce_user_id(cls, v):
        return str(v)


class Conversation(BaseModel):
    """A private or group chat thread with its message history."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(description="Server-assigned conversation ID")
    name: str = Field(default="", description="Conversation name")
    picture_url: str = Field(default="", alias="pictureUrl", description="Picture URL, may be server-relative")
    kind: ChatKind = Field(default=ChatKind.PRIVATE, alias="type", description="Private or group")
    members: List[ChatMember] = Field(default_factory=list, alias="users", description="Members and roles")
    messages: List[Message] = Field(default_factory=list, description="Messages, oldest first")

    @field_validator("picture_url", mode="before")
    @classmethod
    def empty_picture(cls, v):
        return v or ""

    @field_validator("kind", mode="before")
    @classmethod
    def coerce_kind(cls, v):
        if v == ChatKind.PRIVATE:
            return ChatKind.PRIVATE
        return ChatKind.GROUP

    @model_validator(mode="after")
    def order_messages(self):
        self.messages = normalize_messages(self.messages)
        return self

    @property
    def is_private(self) -> bool:
        return self.kind == ChatKind.PRIVATE

    @property
    def member_ids(self) -> List[str]:
        return [member.user_id for member in self.members]

    def last_message_date(self, now: Optional[datetime] = None) -> datetime:
        """Date of the final message; conversations without messages count as ``now``."""
        now = now or datetime.now()
        if self.messages:
            return self.messages[-1].date(now)
        return now

    def with_message(self, message: Message) -> "Conversation":
        """Copy of this conversation with ``message`` merged into the timeline."""
        return self.model_copy(update={"messages": normalize_messages(self.messages + [message])})

    def full_picture_url(self, base_url: str) -> str:
        if self.picture_url.startswith("http"):
            return self.picture_url
        return f"{base_url.rstrip('/')}{self.picture_url}"


ConversationList = TypeAdapter(List[Conversation])


class ChatResponse(BaseModel):
    """Response of the create-private-chat endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    chat_data: Conversation = Field(alias="chatData", description="Created or existing conversation")
    chat_status: str = Field(default="", alias="chatStatus", description="Server status text")


class SendMessageRequest(BaseModel):
    """Body of the send-message endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(alias="Message", description="Message text")
    chat_id: int = Field(alias="chatId", description="Target conversation ID")
