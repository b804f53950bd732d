"""Push channel event payloads."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from .chat import Message


class ReceivedMessage(BaseModel):
    """Payload of the ReceiveMessage hub event."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(default="", description="Sender display name")
    text: str = Field(default="", description="Message body")
    id: int = Field(description="Server-assigned message ID")
    time_stamp: str = Field(default="", alias="timeStamp")
    chat_id: Optional[int] = Field(None, alias="chatId", description="Target conversation, when the hub sends it")

    def to_message(self) -> Message:
        return Message(
            id=self.id,
            text=self.text,
            sender_display_name=self.name,
            timestamp=self.time_stamp,
        )


class TypingInfo(BaseModel):
    """Payload of the UserTyping hub event."""

    model_config = ConfigDict(populate_by_name=True)

    user_name: str = Field(alias="userName")
    chat_id: Optional[int] = Field(None, alias="chatId")
