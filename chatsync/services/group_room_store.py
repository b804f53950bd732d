"""Group room store.

Cache layout (kv_store):
  group_rooms_{user_name} -> JSON array of group rooms
"""

import base64
from typing import List, Optional

import duckdb
from pydantic import ValidationError

from ..db.repositories.kv import KeyValueRepository
from ..errors import GatewayError
from ..gateway.rooms import RoomClient
from ..models.room import CreateRoomRequest, GroupRoom, GroupRoomList
from ..utils.logger import get_app_logger
from .user_directory import UserDirectory

PARTITION_PREFIX = "group_rooms_"


class GroupRoomStore:
    """Group rooms the user belongs to, cached per user."""

    def __init__(
        self,
        room_client: RoomClient,
        kv_repository: KeyValueRepository,
        user_directory: Optional[UserDirectory] = None
    ):
        self.room_client = room_client
        self.kv = kv_repository
        self.user_directory = user_directory
        self.logger = get_app_logger(__name__)

        self.rooms: List[GroupRoom] = []
        self.current_room: Optional[GroupRoom] = None
        self.partition_key: Optional[str] = None
        self.is_loading = False
        self.error_message: Optional[str] = None
        self.success_message: Optional[str] = None

    @staticmethod
    def partition_key_for(user_name: Optional[str]) -> str:
        return f"{PARTITION_PREFIX}{user_name or 'anonymous'}"

    def load_for_user(self, user_name: Optional[str]) -> None:
        self.load_from_cache(self.partition_key_for(user_name))

    def load_from_cache(self, partition_key: str) -> List[GroupRoom]:
        self.partition_key = partition_key
        rooms: List[GroupRoom] = []
        try:
            raw = self.kv.get(partition_key)
            if raw is not None:
                rooms = GroupRoomList.validate_json(raw)
        except (duckdb.Error, ValidationError) as e:
            self.logger.warning(f"Discarding unreadable partition {partition_key}: {e}")
            rooms = []

        self.rooms = rooms
        self.logger.info(f"Loaded {len(rooms)} group rooms from {partition_key}")
        return list(rooms)

    def _persist(self) -> None:
        key = self.partition_key or self.partition_key_for(None)
        try:
            self.kv.set(key, GroupRoomList.dump_json(self.rooms, by_alias=True))
        except duckdb.Error as e:
            self.logger.error(f"Failed to persist group rooms to {key}: {e}")

    async def load_group_rooms(self) -> List[GroupRoom]:
        self.is_loading = True
        self.error_message = None
        try:
            rooms = await self.room_client.list_groups()
        except GatewayError as e:
            self.error_message = f"Failed to load group rooms: {e}"
            self.logger.error(self.error_message)
            return list(self.rooms)
        finally:
            self.is_loading = False

        self.rooms = rooms
        self._persist()
        self.logger.info(f"Loaded {len(rooms)} group rooms")
        return list(rooms)

    async def load_room_details(self, room_id: int) -> Optional[GroupRoom]:
        self.is_loading = True
        try:
            room = await self.room_client.get_room(room_id)
        except GatewayError as e:
            self.error_message = f"Failed to load room details: {e}"
            self.logger.error(self.error_message)
            return None
        finally:
            self.is_loading = False

        self.current_room = room
        for i, existing in enumerate(self.rooms):
            if existing.id == room.id:
                self.rooms[i] = room
                break
        else:
            self.rooms.insert(0, room)

        self._persist()
        self.logger.info(f"Loaded room details: {room.name} with {len(room.members)} members")
        return room

    async def join_room(self, room_id: int) -> bool:
        self.is_loading = True
        self.error_message = None
        try:
            response = await self.room_client.join_room(room_id)
        except GatewayError as e:
            self.error_message = f"Failed to join room: {e}"
            self.logger.error(self.error_message)
            return False
        finally:
            self.is_loading = False

        if not response.joined:
            self.error_message = response.error or response.message or "Failed to join room"
            self.logger.error(f"Join room failed: {self.error_message}")
            return False

        self.success_message = "Successfully joined the room!"
        await self.load_room_details(room_id)
        return True

    async def create_room(
        self,
        name: str,
        member_ids: List[str],
        picture: Optional[bytes] = None
    ) -> bool:
        """
        Create a group room.

        Args:
            name: Room name, must not be blank
            member_ids: At least one member
            picture: Optional JPEG bytes, sent base64 encoded
        """
        if not name.strip():
            self.error_message = "Room name cannot be empty"
            return False
        if not member_ids:
            self.error_message = "Please select at least one member"
            return False

        self.is_loading = True
        self.error_message = None
        self.success_message = None

        chat_picture = base64.b64encode(picture).decode("ascii") if picture else None
        request = CreateRoomRequest(name=name, chat_picture=chat_picture, member_ids=member_ids)

        try:
            response = await self.room_client.create_room(request)
        except GatewayError as e:
            self.error_message = f"Failed to create room: {e}"
            self.logger.error(self.error_message)
            return False
        finally:
            self.is_loading = False

        if not response.is_success:
            self.error_message = response.message or "Failed to create room"
            self.logger.error(f"Room creation failed: {self.error_message}")
            return False

        self.success_message = response.message or "Room created successfully!"
        if self.user_directory is not None:
            self.user_directory.clear_selection()
        self.logger.info(f"Room created: {self.success_message}")
        return True

    def delete_room(self, room_id: int) -> None:
        """Remove a room locally."""
        self.rooms = [room for room in self.rooms if room.id != room_id]
        self._persist()

    def clear_rooms(self) -> None:
        """Forget all rooms, including the cached partition."""
        key = self.partition_key
        self.rooms = []
        self.current_room = None
        if key is not None:
            try:
                self.kv.delete(key)
            except duckdb.Error as e:
                self.logger.error(f"Failed to remove partition {key}: {e}")

    def release(self) -> None:
        self.rooms = []
        self.current_room = None
        self.partition_key = None
        self.error_message = None
        self.success_message = None
