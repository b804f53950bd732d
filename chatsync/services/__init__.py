"""Services package."""

from .session_manager import SessionManager
from .conversation_store import ConversationStore
from .group_room_store import GroupRoomStore
from .user_directory import UserDirectory
from .poll_scheduler import PollScheduler
from .sync_coordinator import SyncCoordinator

__all__ = [
    "SessionManager",
    "ConversationStore",
    "GroupRoomStore",
    "UserDirectory",
    "PollScheduler",
    "SyncCoordinator",
]
