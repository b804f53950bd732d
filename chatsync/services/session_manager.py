"""Session manager: restore, login, register, logout."""

from typing import List, Optional, Protocol

from ..db.repositories.secret import SecretStore
from ..errors import GatewayError, ServerError, SessionBusyError
from ..gateway.auth import AuthClient
from ..models.session import Session, SessionState
from ..models.user import RegisterRequest
from ..utils.logger import get_app_logger, mask_secret


class UserScopedStore(Protocol):
    """A store that keeps per-user data and follows the session."""

    def load_for_user(self, user_name: Optional[str]) -> None: ...

    def release(self) -> None: ...


class SessionManager:
    """
    Owns the session state machine.

    UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED, and back to
    UNAUTHENTICATED on logout or a failed attempt. Attached stores load their
    partitions when a login succeeds and drop in-memory state on logout.
    """

    def __init__(self, session: Session, secret_store: SecretStore, auth_client: AuthClient):
        self.session = session
        self.secret_store = secret_store
        self.auth_client = auth_client
        self.logger = get_app_logger(__name__)

        self.is_loading = False
        self.error_message: Optional[str] = None
        self._stores: List[UserScopedStore] = []

    def attach(self, store: UserScopedStore) -> None:
        self._stores.append(store)

    def _ensure_idle(self) -> None:
        if self.session.state == SessionState.AUTHENTICATING:
            raise SessionBusyError()

    def restore(self) -> bool:
        """
        Rebuild the session from the secret store.

        Both a token and a user name are required. A token without a user
        name leaves the session unauthenticated and is not cleared.

        Returns:
            True if the session is now authenticated
        """
        token = self.secret_store.get_token()
        user_name = self.secret_store.get_user_name()

        if token and user_name:
            self.session.auth_token = token
            self.session.user_name = user_name
            self.session.user_id = self.secret_store.get_user_id()
            self.session.state = SessionState.AUTHENTICATED
            self.logger.info(f"Restored session for {user_name} (token {mask_secret(token)})")
            self._load_stores(user_name)
            return True

        self.session.state = SessionState.UNAUTHENTICATED
        if token:
            self.logger.warning("Found token without user name, session stays unauthenticated")
        else:
            self.logger.info("No stored token, user needs to login")
        return False

    async def login(self, user_name: str, password: str) -> bool:
        """
        Log in and persist the credentials.

        Raises:
            SessionBusyError: If another auth operation is running
        """
        self._ensure_idle()
        self.session.state = SessionState.AUTHENTICATING
        self.is_loading = True
        self.error_message = None
        self.logger.info(f"Logging in as {user_name}")

        try:
            response = await self.auth_client.login(user_name, password)
            if not response.token:
                raise ServerError("No token received")
        except GatewayError as e:
            self.session.state = SessionState.UNAUTHENTICATED
            self.error_message = f"Login failed: {e}"
            self.logger.error(self.error_message)
            return False
        finally:
            self.is_loading = False

        resolved_name = response.user_name or user_name
        self.secret_store.set_token(response.token)
        self.secret_store.set_user_name(resolved_name)

        self.session.auth_token = response.token
        self.session.user_name = resolved_name
        self.session.user_id = self.secret_store.get_user_id()
        self.session.state = SessionState.AUTHENTICATED
        self.logger.info(f"Login successful for {resolved_name} (token {mask_secret(response.token)})")

        self._load_stores(resolved_name)
        return True

    async def register(self, request: RegisterRequest) -> bool:
        """
        Register an account, then log in with the same credentials.

        Raises:
            SessionBusyError: If another auth operation is running
        """
        self._ensure_idle()
        previous_state = self.session.state
        self.session.state = SessionState.AUTHENTICATING
        self.is_loading = True
        self.error_message = None

        try:
            message = await self.auth_client.register(request)
        except GatewayError as e:
            # A failed registration leaves any existing login untouched
            self.session.state = previous_state
            self.error_message = str(e)
            self.logger.error(f"Registration error: {e}")
            return False
        finally:
            self.is_loading = False

        self.session.state = SessionState.UNAUTHENTICATED
        self.logger.info(f"Registration successful: {message}")
        return await self.login(request.user_name, request.password)

    def logout(self) -> None:
        """
        Forget the credentials and release per-user memory.

        Cached partitions stay on disk for the next login.

        Raises:
            SessionBusyError: If another auth operation is running
        """
        self._ensure_idle()
        self.secret_store.clear_credentials()
        self.session.clear()
        self.error_message = None
        for store in self._stores:
            store.release()
        self.logger.info("User logged out")

    def _load_stores(self, user_name: str) -> None:
        for store in self._stores:
            store.load_for_user(user_name)
