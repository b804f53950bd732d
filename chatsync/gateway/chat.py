"""Chat endpoints: users, conversations, messages."""

import json
from typing import List

from pydantic import ValidationError

from ..errors import DecodingError, ServerError
from ..models.chat import ChatResponse, Conversation, SendMessageRequest
from ..models.user import APIUser, decode_users
from .base import BaseGatewayClient


class ChatClient(BaseGatewayClient):
    """
    Client for /api/Chat and /api/SignalR.

    401 handling differs per endpoint. Users, private-chat and send-message
    drop the token and then fail with the generic status error; get-chat
    only fails.
    """

    async def get_all_users(self) -> List[APIUser]:
        response = await self._request("GET", "/api/Chat/GetAllUsers")

        if response.status_code == 401:
            self._invalidate_token()
        if response.status_code != 200:
            raise ServerError(f"Failed to fetch users: {response.status_code}")

        try:
            users = decode_users(response.content)
        except ValidationError as e:
            raise DecodingError(str(e)) from e
        self.logger.info(f"Decoded {len(users)} users")
        return users

    async def get_chat(self, chat_id: int) -> Conversation:
        response = await self._request("GET", f"/api/Chat/GetChat/{chat_id}")

        if response.status_code != 200:
            raise ServerError(f"Failed to fetch chat: {response.status_code}")
        return self._decode(Conversation, response)

    async def create_private_chat(self, user_id: str) -> ChatResponse:
        """
        Create (or fetch) the private chat with a user.

        The body is the JSON-encoded user ID string, not an object.
        """
        self.logger.info(f"Creating private chat with user: {user_id}")
        response = await self._request(
            "POST",
            "/api/Chat/PrivateChat",
            content=json.dumps(user_id),
            headers={"Content-Type": "application/json"},
        )

        if response.status_code == 401:
            self._invalidate_token()
        if response.status_code != 200:
            raise ServerError(f"Failed to create chat: {response.status_code}")
        return self._decode(ChatResponse, response)

    async def send_message(self, text: str, chat_id: int) -> str:
        body = SendMessageRequest(message=text, chat_id=chat_id).model_dump(by_alias=True)
        response = await self._request("POST", "/api/SignalR/SendMessage", json=body)

        if response.status_code == 401:
            self._invalidate_token()
        if response.status_code == 200:
            return "Message sent successfully"
        raise ServerError(
            self._error_message(response)
            or f"Failed to send message: {response.status_code}"
        )
