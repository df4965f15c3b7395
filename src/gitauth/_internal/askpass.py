"""Low level prompt surfaces: askpass programs and the controlling terminal."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, TextIO

from rich.console import Console
from rich.prompt import Prompt

from gitauth.errors import (
    AskpassCommandError,
    AskpassExitStatusError,
    AskpassOutputError,
    TerminalError,
)

if TYPE_CHECKING:
    import pygit2

_TTY_PATH = "CON" if os.name == "nt" else "/dev/tty"


def askpass_command(git_config: pygit2.Config | None, override: str | None = None) -> str | None:
    """
    Get the askpass program to use, if any.

    Lookup order: explicit override, GIT_ASKPASS, core.askPass, SSH_ASKPASS.
    Empty values are ignored, like git does.
    """
    if override:
        return override
    if command := os.environ.get("GIT_ASKPASS"):
        return command
    if git_config is not None:
        try:
            command = git_config["core.askPass"]
        except KeyError:
            command = None
        if command:
            return str(Path(command).expanduser())
    if command := os.environ.get("SSH_ASKPASS"):
        return command
    return None


def askpass_prompt(program: str, prompt: str) -> str:
    """
    Run the askpass program with the prompt as its only argument.

    Returns stdout without the trailing newline.

    Raises:
        AskpassCommandError: The program could not be started.
        AskpassExitStatusError: The program exited with a non-zero status.
        AskpassOutputError: The answer was not valid UTF-8.
    """
    try:
        result = subprocess.run([program, prompt], capture_output=True, check=False)
    except OSError as e:
        raise AskpassCommandError(program, e) from e

    if result.returncode != 0:
        # Do not keep stdout, it could contain a password.
        try:
            stderr: str | None = result.stderr.decode("utf-8")
        except UnicodeDecodeError:
            stderr = None
        raise AskpassExitStatusError(program, result.returncode, stderr)

    try:
        answer = result.stdout.decode("utf-8")
    except UnicodeDecodeError as e:
        raise AskpassOutputError(program) from e
    return answer.rstrip("\r\n")


class Terminal:
    """The controlling terminal of the process, rendered through rich."""

    def __init__(self, reader: TextIO, writer: TextIO) -> None:
        self._reader = reader
        self._writer = writer
        self._console = Console(file=writer, highlight=False, soft_wrap=True)

    def write_line(self, text: str) -> None:
        try:
            self._console.print(text, markup=False)
        except OSError as e:
            raise TerminalError(e) from e

    def prompt(self, label: str) -> str | None:
        """Visible input. EOF gives an empty answer."""
        return self._ask(label, password=False)

    def prompt_sensitive(self, label: str) -> str | None:
        """Hidden input. Returns None on EOF."""
        return self._ask(label, password=True)

    def _ask(self, label: str, *, password: bool) -> str | None:
        try:
            if password:
                # Prompt.ask strips the answer; secrets keep their whitespace.
                # getpass reads the tty itself and only writes to the stream.
                return self._console.input(
                    f"{label}: ", markup=False, password=True, stream=self._writer
                )
            return Prompt.ask(label, console=self._console, stream=self._reader)
        except EOFError:
            return None
        except (OSError, UnicodeError) as e:
            raise TerminalError(e) from e

    def close(self) -> None:
        self._reader.close()
        self._writer.close()

    def __enter__(self) -> Terminal:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def open_terminal() -> Terminal | None:
    """Open the controlling terminal, or None if the process has none."""
    try:
        reader = open(_TTY_PATH, encoding="utf-8")  # noqa: SIM115
    except OSError:
        return None
    try:
        writer = open(_TTY_PATH, "w", encoding="utf-8")  # noqa: SIM115
    except OSError:
        reader.close()
        return None
    return Terminal(reader, writer)
