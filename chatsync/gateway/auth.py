"""Account endpoints: register and login."""

from ..errors import ServerError
from ..models.user import LoginRequest, LoginResponse, RegisterRequest
from .base import BaseGatewayClient


class AuthClient(BaseGatewayClient):
    """Client for /api/Account."""

    async def register(self, request: RegisterRequest) -> str:
        """
        Register a new account with a multipart form.

        Args:
            request: Registration form, optionally with a profile picture

        Returns:
            Success text

        Raises:
            ServerError: On any non-200 status
        """
        parts = [(key, (None, value.encode("utf-8"))) for key, value in request.form_fields().items()]
        if request.profile_picture is not None:
            parts.append(("ProfilePicture", ("profile.jpg", request.profile_picture, "image/jpeg")))

        self.logger.info(f"Registering user: {request.user_name}")
        response = await self._request(
            "POST", "/api/Account/Register", authenticated=False, files=parts
        )

        if response.status_code == 200:
            return "Registration successful"
        if 400 <= response.status_code <= 499:
            raise ServerError(
                self._error_message(response)
                or f"Registration failed with status: {response.status_code}"
            )
        raise ServerError(f"Server error: {response.status_code}")

    async def login(self, user_name: str, password: str) -> LoginResponse:
        """
        Exchange credentials for a token.

        Raises:
            ServerError: On any non-200 status
            DecodingError: If the body is not a login response
        """
        body = LoginRequest(user_name=user_name, password=password).model_dump(by_alias=True)

        self.logger.info(f"Sending login request for: {user_name}")
        response = await self._request(
            "POST", "/api/Account/Login", authenticated=False, json=body
        )

        if response.status_code != 200:
            raise ServerError(
                self._error_message(response)
                or f"Login failed with status: {response.status_code}"
            )
        return self._decode(LoginResponse, response)
