"""Session state."""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class SessionState(str, Enum):
    """Authentication state machine."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class Session(BaseModel):
    """
    The process-wide session.

    One instance is created at start-up and handed by reference to every
    component that needs the token or the user name. Only SessionManager
    changes ``state``; gateway clients may drop ``auth_token`` on a 401.
    """

    state: SessionState = Field(default=SessionState.UNAUTHENTICATED)
    user_id: Optional[str] = Field(None, description="Current user ID, when known")
    user_name: Optional[str] = Field(None, description="Current user name")
    auth_token: Optional[str] = Field(None, description="Bearer token")

    @property
    def is_authenticated(self) -> bool:
        return (
            self.state == SessionState.AUTHENTICATED
            and bool(self.auth_token)
            and bool(self.user_name)
        )

    def clear(self) -> None:
        self.state = SessionState.UNAUTHENTICATED
        self.user_id = None
        self.user_name = None
        self.auth_token = None
