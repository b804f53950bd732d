"""User directory for picking chat partners and room members."""

from typing import List, Optional

from ..errors import GatewayError
from ..gateway.chat import ChatClient
from ..models.session import Session
from ..models.user import APIUser
from ..utils.logger import get_app_logger


class UserDirectory:
    """Available users minus the current one, plus a selection."""

    def __init__(self, session: Session, chat_client: ChatClient):
        self.session = session
        self.chat_client = chat_client
        self.logger = get_app_logger(__name__)

        self.users: List[APIUser] = []
        self.selected: List[APIUser] = []
        self.is_loading = False
        self.error_message: Optional[str] = None

    async def load_all_users(self) -> List[APIUser]:
        self.is_loading = True
        self.error_message = None
        try:
            users = await self.chat_client.get_all_users()
        except GatewayError as e:
            self.error_message = f"Failed to load users: {e}"
            self.logger.error(self.error_message)
            return []
        finally:
            self.is_loading = False

        own_id = self.session.user_id or ""
        self.users = [user for user in users if user.id != own_id]
        self.logger.info(f"Loaded {len(self.users)} available users")
        return list(self.users)

    def select_user(self, user: APIUser) -> None:
        if not self.is_selected(user.id):
            self.selected.append(user)

    def deselect_user(self, user: APIUser) -> None:
        self.selected = [u for u in self.selected if u.id != user.id]

    def toggle_user(self, user: APIUser) -> None:
        if self.is_selected(user.id):
            self.deselect_user(user)
        else:
            self.select_user(user)

    def is_selected(self, user_id: str) -> bool:
        return any(u.id == user_id for u in self.selected)

    def selected_ids(self) -> List[str]:
        return [u.id for u in self.selected]

    def clear_selection(self) -> None:
        self.selected = []

    def release(self) -> None:
        self.users = []
        self.selected = []
        self.error_message = None
