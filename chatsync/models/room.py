"""Group room models."""

from typing import List, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

DEFAULT_GROUP_PICTURE = "/images/default-group.png"
DEFAULT_AVATAR = "/images/default-avatar.png"


def _resolve(picture: Optional[str], default: str, base_url: str) -> str:
    base = base_url.rstrip("/")
    if picture:
        if picture.startswith("http"):
            return picture
        return f"{base}{picture}"
    return f"{base}{default}"


class RoomMember(BaseModel):
    """Member of a group room."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="User ID")
    username: str = Field(default="", description="User name")
    profile_picture: Optional[str] = Field(None, alias="profilePicture")
    joined_at: str = Field(default="", alias="joinedAt")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return str(v)

    def display_profile_picture(self, base_url: str) -> str:
        return _resolve(self.profile_picture, DEFAULT_AVATAR, base_url)


class GroupRoom(BaseModel):
    """Group room record."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(description="Room ID")
    name: str = Field(default="", description="Room name")
    picture_url: Optional[str] = Field(None, alias="pictureUrl")
    member_count: int = Field(default=0, alias="memberCount")
    created_by: str = Field(default="", alias="createdBy")
    created_at: str = Field(default="", alias="createdAt")
    members: List[RoomMember] = Field(default_factory=list)

    def display_picture_url(self, base_url: str) -> str:
        return _resolve(self.picture_url, DEFAULT_GROUP_PICTURE, base_url)


GroupRoomList = TypeAdapter(List[GroupRoom])


class CreateRoomRequest(BaseModel):
    """Create-room form."""

    name: str
    chat_picture: Optional[str] = Field(None, description="Base64 encoded picture")
    member_ids: List[str] = Field(default_factory=list)

    def multipart_parts(self) -> List[Tuple[str, Tuple[None, str]]]:
        """Form parts in wire order; ``memberIds`` repeats once per member."""
        parts = [("Name", (None, self.name))]
        if self.chat_picture is not None:
            parts.append(("chatPicture", (None, self.chat_picture)))
        for member_id in self.member_ids:
            parts.append(("memberIds", (None, member_id)))
        return parts


class CreateRoomResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = None
    picture: Optional[str] = None
    room_id: Optional[int] = Field(None, alias="roomId")
    success: Optional[bool] = None

    @property
    def is_success(self) -> bool:
        return self.success is True or "success" in (self.message or "").lower()


class JoinRoomResponse(BaseModel):
    result: Optional[str] = None
    success: Optional[bool] = None
    message: Optional[str] = None
    error: Optional[str] = None

    @property
    def joined(self) -> bool:
        return self.success is True or self.result == "Joined room successfully"
