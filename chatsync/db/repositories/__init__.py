"""Repositories package."""

from .base import BaseRepository
from .kv import KeyValueRepository
from .secret import SecretStore

__all__ = ["BaseRepository", "KeyValueRepository", "SecretStore"]
