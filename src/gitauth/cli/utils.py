"""Shared CLI helpers."""

from __future__ import annotations

from pathlib import Path

import click
import pygit2

from gitauth.authenticator import GitAuthenticator


def repo_name_from_url(url: str) -> str:
    """Last path component of a URL, without a trailing ``.git``."""
    name = url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    return name.removesuffix(".git") or name


def open_repository(path: Path) -> pygit2.Repository:
    """Open the repository at path, exiting with status 1 if there is none."""
    try:
        return pygit2.Repository(str(path))
    except pygit2.GitError as e:
        click.echo(f"Failed to open git repo at {path}: {e}", err=True)
        raise SystemExit(1) from e


def get_authenticator(ctx: click.Context) -> GitAuthenticator:
    auth: GitAuthenticator = ctx.obj["authenticator"]
    return auth
