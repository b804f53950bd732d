"""Utilities package."""

from .logger import get_app_logger, setup_logger, init_app_logger, mask_secret, TokenRedactingFilter
from .timestamps import parse_timestamp, timestamp_or_now, format_timestamp

__all__ = [
    "get_app_logger",
    "setup_logger",
    "init_app_logger",
    "mask_secret",
    "TokenRedactingFilter",
    "parse_timestamp",
    "timestamp_or_now",
    "format_timestamp",
]
