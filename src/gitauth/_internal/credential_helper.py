"""Query the git credential helper via `git credential fill`."""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlsplit

from gitauth.errors import CredentialHelperError


@dataclass(frozen=True, slots=True)
class HelperCredentials:
    """Username and password returned by a credential helper."""

    username: str
    password: str = field(repr=False)


def build_fill_request(url: str, username: str | None = None) -> str:
    """
    Build the stdin payload for `git credential fill`.

    See: https://git-scm.com/docs/git-credential#IOFMT
    """
    parsed = urlsplit(url)
    if parsed.scheme and parsed.netloc:
        lines = [f"protocol={parsed.scheme}"]
        host = parsed.hostname or parsed.netloc
        lines.append(f"host={host}")
        try:
            port = parsed.port
        except ValueError:
            port = None
        if port is not None:
            lines.append(f"port={port}")
        if parsed.path.lstrip("/"):
            lines.append(f"path={parsed.path.lstrip('/')}")
        username = username or parsed.username
    else:
        # No scheme: hand the whole thing to git and let it parse.
        lines = [f"url={url}"]
    if username:
        lines.append(f"username={username}")
    lines.append("")  # Empty line terminates input
    return "\n".join(lines) + "\n"


def parse_fill_response(output: str) -> HelperCredentials | None:
    values: dict[str, str] = {}
    for line in output.splitlines():
        if "=" in line:
            key, value = line.split("=", 1)
            values[key] = value
    if "username" in values and "password" in values:
        return HelperCredentials(values["username"], values["password"])
    return None


def query_credential_helper(
    url: str,
    username: str | None = None,
    *,
    cwd: Path | None = None,
    timeout: float = 30.0,
) -> HelperCredentials | None:
    """
    Ask the configured git credential helpers for credentials.

    Git is told never to prompt on its own (GIT_TERMINAL_PROMPT=0), so a
    non-zero exit simply means no helper had credentials for the URL.

    Raises:
        CredentialHelperError: git could not be run or did not answer in time.
    """
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    # An askpass program would be a prompt by another name.
    env.pop("GIT_ASKPASS", None)
    env.pop("SSH_ASKPASS", None)

    try:
        result = subprocess.run(
            ["git", "-c", "core.askPass=", "credential", "fill"],
            input=build_fill_request(url, username),
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
            env=env,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise CredentialHelperError(url, f"timed out after {timeout}s") from e
    except OSError as e:
        raise CredentialHelperError(url, str(e)) from e

    if result.returncode != 0:
        return None
    return parse_fill_response(result.stdout)
