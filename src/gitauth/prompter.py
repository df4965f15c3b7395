"""User prompts for credentials and key passphrases.

A prompter is any object with the three methods of the ``Prompter`` protocol.
Each method returns the answer, or None when there is no answer (the user
declined, or there is nobody to ask). Failing to talk to the user is
reported by raising ``PromptError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from gitauth._internal.askpass import askpass_command, askpass_prompt, open_terminal

if TYPE_CHECKING:
    import pygit2


@runtime_checkable
class Prompter(Protocol):
    """Strategy for asking the user for credentials."""

    def prompt_username_password(
        self, url: str, git_config: pygit2.Config | None
    ) -> tuple[str, str] | None:
        """Ask for a username and password for url."""
        ...

    def prompt_password(
        self, username: str, url: str, git_config: pygit2.Config | None
    ) -> str | None:
        """Ask for the password of a known username."""
        ...

    def prompt_ssh_key_passphrase(
        self, private_key_path: Path, git_config: pygit2.Config | None
    ) -> str | None:
        """Ask for the passphrase of an encrypted private key."""
        ...


class DefaultPrompter:
    """
    Askpass program if one is configured, else the terminal, else nothing.

    The askpass program is taken from the ``askpass`` argument, GIT_ASKPASS,
    the ``core.askPass`` git config value or SSH_ASKPASS, in that order.
    Without askpass and without a controlling terminal every prompt returns
    None immediately.
    """

    def __init__(self, askpass: str | None = None) -> None:
        self.askpass = askpass

    def __repr__(self) -> str:
        return f"DefaultPrompter(askpass={self.askpass!r})"

    def prompt_username_password(
        self, url: str, git_config: pygit2.Config | None
    ) -> tuple[str, str] | None:
        if askpass := askpass_command(git_config, self.askpass):
            username = askpass_prompt(askpass, f"Username for {url}")
            if not username:
                return None
            return username, askpass_prompt(askpass, f"Password for {url}")

        terminal = open_terminal()
        if terminal is None:
            return None
        with terminal:
            terminal.write_line(f"Authentication needed for {url}")
            username = terminal.prompt("Username")
            if not username:
                return None
            password = terminal.prompt_sensitive("Password")
        return None if password is None else (username, password)

    def prompt_password(
        self, username: str, url: str, git_config: pygit2.Config | None
    ) -> str | None:
        if askpass := askpass_command(git_config, self.askpass):
            return askpass_prompt(askpass, f"Password for {url}")

        terminal = open_terminal()
        if terminal is None:
            return None
        with terminal:
            terminal.write_line(f"Authentication needed for {url} (user {username})")
            return terminal.prompt_sensitive("Password")

    def prompt_ssh_key_passphrase(
        self, private_key_path: Path, git_config: pygit2.Config | None
    ) -> str | None:
        if askpass := askpass_command(git_config, self.askpass):
            return askpass_prompt(askpass, f"Password for {private_key_path}")

        terminal = open_terminal()
        if terminal is None:
            return None
        with terminal:
            terminal.write_line(f"Password needed for {private_key_path}")
            return terminal.prompt_sensitive("Password")
