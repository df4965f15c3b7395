"""Authentication error types."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class AuthError(Exception):
    """Base error for credential negotiation."""

    pass


class AuthenticationExhaustedError(AuthError):
    """Every applicable authentication mechanism was tried or unavailable."""

    def __init__(self, url: str, attempts: int, errors: Sequence[AuthError] = ()) -> None:
        super().__init__(f"All authentication attempts failed for {url!r}")
        self.url = url
        self.attempts = attempts
        self.errors = tuple(errors)


# =============================================================================
# Prompt Errors
# =============================================================================


class PromptError(AuthError):
    """Talking to the user failed (as opposed to the user giving no answer)."""

    pass


class AskpassCommandError(PromptError):
    """The askpass program could not be run."""

    def __init__(self, program: str, error: OSError) -> None:
        super().__init__(f"Failed to run askpass command {program!r}: {error}")
        self.program = program
        self.error = error


class AskpassExitStatusError(PromptError):
    """The askpass program exited with a non-zero status.

    Standard output is dropped, it could contain a password.
    """

    def __init__(self, program: str, returncode: int, stderr: str | None) -> None:
        super().__init__(f"Askpass command {program!r} exited with status {returncode}")
        self.program = program
        self.returncode = returncode
        self.stderr = stderr

    @property
    def extra_message(self) -> str | None:
        """Standard error of the askpass program, if it was valid text."""
        return self.stderr


class AskpassOutputError(PromptError):
    """The askpass program answered with undecodable output."""

    def __init__(self, program: str) -> None:
        super().__init__(f"Askpass command {program!r} returned invalid UTF-8")
        self.program = program


class TerminalError(PromptError):
    """Reading from or writing to the terminal failed."""

    def __init__(self, error: OSError | UnicodeError) -> None:
        super().__init__(f"Failed to read/write to terminal: {error}")
        self.error = error


# =============================================================================
# Credential Helper Errors
# =============================================================================


class CredentialHelperError(AuthError):
    """`git credential fill` could not be run to completion."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Credential helper failed for {url!r}: {reason}")
        self.url = url
        self.reason = reason


# =============================================================================
# SSH Key Errors
# =============================================================================


class SshKeyError(AuthError):
    """Private key file could not be analyzed."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class SshKeyReadError(SshKeyError):
    """Private key file could not be opened or read."""

    def __init__(self, path: Path, error: OSError) -> None:
        super().__init__(path, f"Failed to read key file: {error}")
        self.error = error


class SshKeyFormatError(SshKeyError):
    """Private key file content is malformed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(path, reason)
        self.reason = reason


# =============================================================================
# Configuration Errors
# =============================================================================


class HostPatternError(ValueError):
    """Host pattern syntax error."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid host pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason
