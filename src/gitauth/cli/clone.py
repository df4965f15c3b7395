"""gitauth clone command."""

from __future__ import annotations

from pathlib import Path

import click
import pygit2

from gitauth.cli.utils import get_authenticator, repo_name_from_url
from gitauth.errors import AuthError


@click.command()
@click.argument("url")
@click.argument("path", required=False, type=click.Path(path_type=Path))
@click.pass_context
def clone_command(ctx: click.Context, url: str, path: Path | None) -> None:
    """Clone the repository at URL.

    PATH defaults to the last component of the URL.
    """
    local_path = path or Path(repo_name_from_url(url))
    click.echo(f"Cloning {url} into {local_path}")

    auth = get_authenticator(ctx)
    try:
        auth.clone_repo(url, local_path)
    except (AuthError, pygit2.GitError) as e:
        click.echo(f"Failed to clone {url}: {e}", err=True)
        raise SystemExit(1) from e
