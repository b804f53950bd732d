"""Group room endpoints."""

from typing import List

import httpx

from ..errors import HTTPStatusError, UnauthorizedError
from ..models.room import CreateRoomRequest, CreateRoomResponse, GroupRoom, GroupRoomList, JoinRoomResponse
from .base import BaseGatewayClient


class RoomClient(BaseGatewayClient):
    """Client for the group room part of /api/Chat."""

    @staticmethod
    def _check_status(response: httpx.Response) -> None:
        # Room endpoints raise on 401 but leave the token alone
        if 200 <= response.status_code <= 299:
            return
        if response.status_code == 401:
            raise UnauthorizedError()
        raise HTTPStatusError(response.status_code)

    async def create_room(self, request: CreateRoomRequest) -> CreateRoomResponse:
        parts = [(key, (None, value.encode("utf-8"))) for key, (_, value) in request.multipart_parts()]

        self.logger.info(
            f"Creating room {request.name!r} with {len(request.member_ids)} members "
            f"(picture: {request.chat_picture is not None})"
        )
        response = await self._request("POST", "/api/Chat/CreateRoom", files=parts)
        self._check_status(response)
        return self._decode(CreateRoomResponse, response)

    async def join_room(self, room_id: int) -> JoinRoomResponse:
        response = await self._request(
            "POST", f"/api/Chat/join/{room_id}", headers={"Content-Type": "application/json"}
        )
        self._check_status(response)
        return self._decode(JoinRoomResponse, response)

    async def get_room(self, room_id: int) -> GroupRoom:
        response = await self._request("GET", f"/api/Chat/room/{room_id}")
        self._check_status(response)
        return self._decode(GroupRoom, response)

    async def list_groups(self) -> List[GroupRoom]:
        response = await self._request("GET", "/api/Chat/groups")
        self._check_status(response)
        return self._decode(GroupRoomList, response)
