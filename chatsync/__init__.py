"""Chat client synchronization core."""

from .app import ChatApplication
from .config import Settings

__version__ = "0.1.0"

__all__ = [
    "ChatApplication",
    "Settings",
]
