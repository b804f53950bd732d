"""Key-value repository backing the per-user cache partitions."""

from datetime import datetime
from typing import List, Optional
from .base import BaseRepository


class KeyValueRepository(BaseRepository):
    """Stores opaque byte payloads under string keys."""

    def get(self, key: str) -> Optional[bytes]:
        """
        Read the payload stored under a key.

        Args:
            key: Storage key, e.g. "chats_alice"

        Returns:
            Raw bytes, or None if the key is absent
        """
        row = self.conn.execute(
            "SELECT value FROM kv_store WHERE key = ?", [key]
        ).fetchone()
        if row is None:
            return None
        return bytes(row[0])

    def set(self, key: str, value: bytes) -> None:
        """Insert or overwrite the payload stored under a key."""
        self.conn.execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT (key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
            """,
            [key, value, datetime.utcnow()]
        )
        self.logger.debug(f"Stored {len(value)} bytes under {key}")

    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if something was deleted, False if the key was absent
        """
        if self.get(key) is None:
            return False
        self.conn.execute("DELETE FROM kv_store WHERE key = ?", [key])
        return True

    def keys(self, prefix: str = "") -> List[str]:
        """List stored keys, optionally filtered by prefix."""
        rows = self.conn.execute(
            "SELECT key FROM kv_store WHERE starts_with(key, ?) ORDER BY key", [prefix]
        ).fetchall()
        return [row[0] for row in rows]
