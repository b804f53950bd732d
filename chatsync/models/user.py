"""User and authentication models."""

from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator


class APIUser(BaseModel):
    """Directory entry returned by GetAllUsers."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="User ID")
    name: str = Field(default="", description="Display name")
    picture_url: str = Field(default="", alias="pictureUrl", description="Picture URL, may be server-relative")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        return str(v)

    @field_validator("picture_url", mode="before")
    @classmethod
    def empty_picture(cls, v):
        return v or ""

    def full_picture_url(self, base_url: str) -> str:
        if self.picture_url.startswith("http"):
            return self.picture_url
        return f"{base_url.rstrip('/')}{self.picture_url}"


class UsersResponse(BaseModel):
    """Wrapped shape of the GetAllUsers response."""

    result: List[APIUser]


_user_list = TypeAdapter(List[APIUser])


def decode_users(content: bytes) -> List[APIUser]:
    """
    Decode a GetAllUsers body.

    The gateway answers either ``{"result": [...]}`` or a bare array.

    Raises:
        ValidationError: If neither shape matches
    """
    try:
        return UsersResponse.model_validate_json(content).result
    except ValidationError:
        return _user_list.validate_json(content)


class LoginRequest(BaseModel):
    """Body of the login endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    user_name: str = Field(alias="userName")
    password: str
    remember_me: bool = Field(default=True, alias="rememberMe")


class LoginResponse(BaseModel):
    """Login result. Every field is optional on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    token: Optional[str] = Field(None, description="Bearer token")
    user_name: Optional[str] = Field(None, alias="userName", description="Canonical user name")
    email: Optional[str] = Field(None, description="Email address")
    display_name: Optional[str] = Field(None, alias="displayName", description="Display name")


class RegisterRequest(BaseModel):
    """Registration form."""

    user_name: str = Field(min_length=1)
    email: str
    display_name: str
    phone_number: str
    password: str = Field(min_length=1)
    profile_picture: Optional[bytes] = Field(None, description="JPEG bytes")

    def form_fields(self) -> Dict[str, str]:
        """Multipart text fields in the gateway's naming."""
        return {
            "UserName": self.user_name,
            "Email": self.email,
            "DisplayName": self.display_name,
            "PhoneNumber": self.phone_number,
            "Password": self.password,
        }
