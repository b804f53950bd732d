"""Secret store for authentication state that survives restarts."""

from typing import Optional
from .base import BaseRepository

AUTH_TOKEN_KEY = "authToken"
USER_NAME_KEY = "currentUsername"
USER_ID_KEY = "currentUserId"


class SecretStore(BaseRepository):
    """Small string key-value store for credentials."""

    def get(self, key: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT value FROM secrets WHERE key = ?", [key]
        ).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self.conn.execute(
            """
            INSERT INTO secrets (key, value) VALUES (?, ?)
            ON CONFLICT (key) DO UPDATE SET value = excluded.value
            """,
            [key, value]
        )

    def remove(self, key: str) -> None:
        self.conn.execute("DELETE FROM secrets WHERE key = ?", [key])

    # === Typed accessors ===
    def get_token(self) -> Optional[str]:
        return self.get(AUTH_TOKEN_KEY)

    def set_token(self, token: str) -> None:
        self.set(AUTH_TOKEN_KEY, token)

    def clear_token(self) -> None:
        self.remove(AUTH_TOKEN_KEY)
        self.logger.info("Auth token removed from secret store")

    def get_user_name(self) -> Optional[str]:
        return self.get(USER_NAME_KEY)

    def set_user_name(self, user_name: str) -> None:
        self.set(USER_NAME_KEY, user_name)

    def get_user_id(self) -> Optional[str]:
        return self.get(USER_ID_KEY)

    def clear_credentials(self) -> None:
        """Drop token and user name; the user id stays like the other cached data."""
        self.remove(AUTH_TOKEN_KEY)
        self.remove(USER_NAME_KEY)
