"""gitauth CLI - clone, fetch and push with automatic credential negotiation."""

from __future__ import annotations

from pathlib import Path

import click

from gitauth.authenticator import GitAuthenticator
from gitauth.cli.clone import clone_command
from gitauth.cli.fetch import fetch_command
from gitauth.cli.push import push_command
from gitauth.config import load_config
from gitauth.core.errors import ConfigError
from gitauth.core.logging import configure_logging


def _log_level(verbose: int) -> str:
    return "INFO" if verbose == 0 else "DEBUG"


@click.group()
@click.version_option(version="0.1.0", prog_name="gitauth")
@click.option("-v", "--verbose", count=True, help="Show more output (repeatable).")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="YAML config file layered over ~/.config/gitauth/config.yaml.",
)
@click.pass_context
def cli(ctx: click.Context, verbose: int, config_path: Path | None) -> None:
    """gitauth - git network operations with automatic authentication."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        click.echo(str(e), err=True)
        raise SystemExit(1) from e

    config.logging.level = _log_level(verbose)  # type: ignore[assignment]
    configure_logging(config=config.logging)

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = config
    ctx.obj["authenticator"] = GitAuthenticator.from_config(config)


cli.add_command(clone_command, name="clone")
cli.add_command(fetch_command, name="fetch")
cli.add_command(push_command, name="push")


if __name__ == "__main__":
    cli()
