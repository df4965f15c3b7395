"""gitauth fetch command."""

from __future__ import annotations

from pathlib import Path

import click
import pygit2

from gitauth.cli.utils import get_authenticator, open_repository
from gitauth.errors import AuthError


@click.command()
@click.option(
    "-C",
    "--repo",
    "repo_path",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Repository to operate on.",
)
@click.argument("remote")
@click.argument("refspecs", nargs=-1, required=True)
@click.pass_context
def fetch_command(ctx: click.Context, repo_path: Path, remote: str, refspecs: tuple[str, ...]) -> None:
    """Fetch REFSPECS from REMOTE."""
    repo = open_repository(repo_path)
    auth = get_authenticator(ctx)
    click.echo(f"Fetching {', '.join(refspecs)} from remote {remote!r}")
    try:
        auth.fetch(repo, remote, list(refspecs))
    except KeyError as e:
        click.echo(f"Failed to find remote {remote!r}", err=True)
        raise SystemExit(1) from e
    except (AuthError, pygit2.GitError) as e:
        click.echo(f"Failed to fetch from remote {remote!r}: {e}", err=True)
        raise SystemExit(1) from e
