"""Logging utility.

All chatsync loggers hang below the ``chatsync`` root logger, so handlers
configured once by ``init_app_logger`` serve every component. Bearer tokens
and hub ``access_token`` query values are masked before records reach a
handler.
"""

import logging
import os
import re
from typing import Optional

ROOT_LOGGER = "chatsync"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def mask_secret(value: Optional[str], visible: int = 8) -> str:
    """Shorten a token for log output."""
    if not value:
        return "Not set"
    if len(value) <= visible + 4:
        return "***"
    return value[:visible] + "..." + value[-4:]


class TokenRedactingFilter(logging.Filter):
    """Mask credentials that slipped into a log message."""

    pattern = re.compile(r"(access_token=|Bearer )([^\s&\"']+)")

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = self.pattern.sub(lambda m: m.group(1) + mask_secret(m.group(2)), message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _attach(logger: logging.Logger, handler: logging.Handler, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(TokenRedactingFilter())
    logger.addHandler(handler)


def setup_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Set up a logger with console and optional file output.

    Args:
        name: Logger name
        log_level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    _attach(logger, logging.StreamHandler(), level)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        _attach(logger, logging.FileHandler(log_file), level)

    return logger


# Client root logger
app_logger: Optional[logging.Logger] = None


def init_app_logger(settings) -> logging.Logger:
    """
    Configure the chatsync root logger from settings.

    Args:
        settings: Client settings instance

    Returns:
        The root logger
    """
    global app_logger

    app_logger = setup_logger(
        name=ROOT_LOGGER,
        log_level=settings.log_level,
        log_file=settings.log_file
    )

    return app_logger


def get_app_logger(component: Optional[str] = None) -> logging.Logger:
    """
    Get the chatsync logger, or a child of it for one component.

    Args:
        component: Module name such as ``__name__``; a leading
            ``chatsync.`` is dropped so children are not nested twice

    Returns:
        Logger instance, backed by default handlers if init_app_logger was
        never called
    """
    root = app_logger if app_logger is not None else setup_logger(ROOT_LOGGER)
    if not component:
        return root

    prefix = ROOT_LOGGER + "."
    if component.startswith(prefix):
        component = component[len(prefix):]
    return root.getChild(component)
