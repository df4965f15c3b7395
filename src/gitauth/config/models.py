"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (GITAUTH__SECTION__KEY)
3. Explicit YAML file passed to load_config()
4. Global YAML (~/.config/gitauth/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    GITAUTH__<SECTION>__<KEY>=<VALUE>

Examples:
    GITAUTH__LOGGING__LEVEL=DEBUG
    GITAUTH__AUTH__TRY_SSH_AGENT=false
    GITAUTH__AUTH__CREDENTIAL_HELPER_TIMEOUT_SEC=10

Plaintext passwords are deliberately not part of the configuration; add them
at runtime with GitAuthenticator.add_plaintext_credentials().
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        GITAUTH__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. DEBUG shows every credential attempt (never secrets).",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class SshKeyConfig(BaseModel):
    """A private key file to offer for public key authentication."""

    private_key: Path
    passphrase: SecretStr | None = None

    @field_validator("private_key")
    @classmethod
    def expand_private_key(cls, v: Path) -> Path:
        # The file itself is only checked when the key is tried.
        return v.expanduser()


class AuthConfig(BaseModel):
    """Which authentication mechanisms to enable.

    Env vars:
        GITAUTH__AUTH__TRY_SSH_AGENT: Offer the SSH agent for key auth
        GITAUTH__AUTH__TRY_DEFAULT_SSH_KEYS: Offer ~/.ssh/id_* key files
        GITAUTH__AUTH__PROMPT_SSH_KEY_PASSPHRASE: Ask for passphrases of encrypted keys
        GITAUTH__AUTH__TRY_CRED_HELPER: Query `git credential fill`
        GITAUTH__AUTH__TRY_PASSWORD_PROMPT: Ask the user for username/password
        GITAUTH__AUTH__DEFAULT_USERNAME: Use $USER / $USERNAME as fallback username
        GITAUTH__AUTH__ASKPASS: Askpass program overriding GIT_ASKPASS and core.askPass
    """

    try_ssh_agent: bool = True
    try_default_ssh_keys: bool = True
    ssh_keys: list[SshKeyConfig] = Field(
        default_factory=list,
        description="Extra key files, tried in order after the SSH agent "
        "and before the default ~/.ssh identities.",
    )
    prompt_ssh_key_passphrase: bool = True
    try_cred_helper: bool = True
    try_password_prompt: bool = True
    default_username: bool = True
    usernames: dict[str, str] = Field(
        default_factory=dict,
        description="Domain (or host pattern, or '*') to username for URLs without a user.",
    )
    askpass: str | None = Field(
        default=None,
        description="Askpass program. Falls back to GIT_ASKPASS, core.askPass, SSH_ASKPASS.",
    )
    credential_helper_timeout_sec: float = Field(
        default=30.0,
        description="Timeout for `git credential fill`. "
        "RISK: helpers that open a browser login may need longer.",
    )

    @field_validator("credential_helper_timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"Timeout must be positive, got {v}")
        return v


class GitAuthConfig(BaseModel):
    """Root configuration model."""

    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
