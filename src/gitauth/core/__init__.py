"""Core module exports."""

from gitauth.core.errors import ConfigError, ErrorCode, GitAuthError
from gitauth.core.logging import configure_logging, get_logger

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "GitAuthError",
    # Logging
    "configure_logging",
    "get_logger",
]
