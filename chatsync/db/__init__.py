"""Database package - connection and repositories."""

from .connection import DatabaseConnection
from .repositories.kv import KeyValueRepository
from .repositories.secret import SecretStore

__all__ = [
    "DatabaseConnection",
    "KeyValueRepository",
    "SecretStore",
]
