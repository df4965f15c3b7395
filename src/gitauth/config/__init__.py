"""Config module exports."""

from gitauth.config.loader import GitAuthSettings, load_config
from gitauth.config.models import (
    AuthConfig,
    GitAuthConfig,
    LoggingConfig,
    LogOutputConfig,
    SshKeyConfig,
)

__all__ = [
    "load_config",
    "AuthConfig",
    "GitAuthConfig",
    "GitAuthSettings",
    "LoggingConfig",
    "LogOutputConfig",
    "SshKeyConfig",
]
