"""Shared HTTP plumbing for the gateway clients."""

import json
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..db.repositories.secret import SecretStore
from ..errors import DecodingError, InvalidResponseError, InvalidURLError
from ..models.session import Session
from ..utils.logger import get_app_logger, mask_secret


class BaseGatewayClient:
    """
    Base class for the REST clients.

    All clients share one ``httpx.AsyncClient`` and read the bearer token
    from the session at request time, so a re-login is picked up without
    rebuilding them.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        session: Session,
        secret_store: Optional[SecretStore] = None
    ):
        """
        Args:
            http: Client configured with the gateway base URL
            session: Process-wide session
            secret_store: Store to clear when a 401 invalidates the token
        """
        self.http = http
        self.session = session
        self.secret_store = secret_store
        self.logger = get_app_logger(__name__)

    def _auth_headers(self) -> Dict[str, str]:
        token = self.session.auth_token
        if token:
            return {"Authorization": f"Bearer {token}"}
        # Sent unauthenticated; the gateway decides
        self.logger.warning("No auth token available, sending request without Authorization")
        return {}

    async def _request(
        self,
        method: str,
        path: str,
        authenticated: bool = True,
        **kwargs: Any
    ) -> httpx.Response:
        """
        Send a request and translate transport failures.

        Raises:
            InvalidURLError: If the URL cannot be built
            InvalidResponseError: If no HTTP response was received
        """
        headers = dict(kwargs.pop("headers", None) or {})
        if authenticated:
            headers.update(self._auth_headers())

        try:
            response = await self.http.request(method, path, headers=headers, **kwargs)
        except httpx.InvalidURL as e:
            raise InvalidURLError() from e
        except httpx.HTTPError as e:
            self.logger.error(f"{method} {path} failed: {e}")
            raise InvalidResponseError(str(e) or None) from e

        self.logger.debug(f"{method} {path} -> {response.status_code}")
        return response

    def _invalidate_token(self) -> None:
        """Drop the stored token after a 401. The session is not logged out."""
        self.logger.warning(f"Gateway rejected token {mask_secret(self.session.auth_token)}, clearing it")
        self.session.auth_token = None
        if self.secret_store is not None:
            self.secret_store.clear_token()

    @staticmethod
    def _error_message(response: httpx.Response) -> Optional[str]:
        """Extract ``{"message": ...}`` from an error body, if present."""
        try:
            payload = json.loads(response.content)
        except ValueError:
            return None
        if isinstance(payload, dict) and isinstance(payload.get("message"), str):
            return payload["message"]
        return None

    @staticmethod
    def _decode(model, response: httpx.Response):
        """Validate a JSON body against a pydantic model or TypeAdapter."""
        try:
            if hasattr(model, "model_validate_json"):
                return model.model_validate_json(response.content)
            return model.validate_json(response.content)
        except ValidationError as e:
            raise DecodingError(str(e)) from e
