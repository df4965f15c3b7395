"""Remote operations with a fresh negotiation session per call.

Transport errors (``pygit2.GitError`` and friends) propagate unmodified.
When every credential has been tried, the ``AuthenticationExhaustedError``
raised inside the credentials callback propagates instead.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import pygit2

from gitauth.core.logging import get_logger

if TYPE_CHECKING:
    from pygit2.remotes import TransferProgress

    from gitauth.authenticator import GitAuthenticator

log = get_logger(__name__)


def default_git_config() -> pygit2.Config | None:
    """The global git config, or None if the user has none."""
    try:
        return pygit2.Config.get_global_config()
    except (OSError, KeyError, pygit2.GitError):
        return None


def _resolve_remote(repo: pygit2.Repository, remote: pygit2.Remote | str) -> pygit2.Remote:
    if isinstance(remote, str):
        return repo.remotes[remote]
    return remote


def _repo_dir(repo: pygit2.Repository) -> Path:
    return Path(repo.workdir or repo.path)


def strip_refspec_destination(refspec: str) -> str:
    """``+refs/heads/main:refs/remotes/origin/main`` -> ``+refs/heads/main``."""
    source, _, _destination = refspec.partition(":")
    return source


def clone_repo(
    auth: GitAuthenticator,
    url: str,
    path: Path | str,
    *,
    bare: bool = False,
    checkout_branch: str | None = None,
    git_config: pygit2.Config | None = None,
) -> pygit2.Repository:
    """
    Clone a repository.

    For more control over the clone, pass ``auth.credentials()`` as
    ``callbacks`` to ``pygit2.clone_repository`` yourself.
    """
    config = git_config if git_config is not None else default_git_config()
    callbacks = auth.credentials(config)
    log.info("ops.clone", url=url, path=str(path))
    return pygit2.clone_repository(
        url,
        str(path),
        bare=bare,
        checkout_branch=checkout_branch,
        callbacks=callbacks,
    )


def fetch(
    auth: GitAuthenticator,
    repo: pygit2.Repository,
    remote: pygit2.Remote | str,
    refspecs: Sequence[str] | None = None,
    message: str | None = None,
) -> TransferProgress:
    """Fetch from a remote, using its configured refspecs when none are given."""
    target = _resolve_remote(repo, remote)
    callbacks = auth.credentials(repo.config, _repo_dir(repo))
    log.info("ops.fetch", remote=target.name, refspecs=list(refspecs or []))
    return target.fetch(
        list(refspecs) if refspecs is not None else None,
        message=message,
        callbacks=callbacks,
    )


def download(
    auth: GitAuthenticator,
    repo: pygit2.Repository,
    remote: pygit2.Remote | str,
    refspecs: Sequence[str],
) -> TransferProgress:
    """
    Download objects for refspecs without updating remote-tracking branches.

    Destinations are stripped from the refspecs and the fetch goes through an
    anonymous remote with the same URL, so only the object database and
    FETCH_HEAD change. Use ``fetch`` to update remote-tracking branches.
    """
    target = _resolve_remote(repo, remote)
    # A named remote would still update tracking refs matching its
    # configured refspecs.
    anonymous = repo.remotes.create_anonymous(target.url)
    sources = [strip_refspec_destination(r) for r in refspecs]
    callbacks = auth.credentials(repo.config, _repo_dir(repo))
    log.info("ops.download", remote=target.name, url=target.url, refspecs=sources)
    return anonymous.fetch(sources, callbacks=callbacks)


def push(
    auth: GitAuthenticator,
    repo: pygit2.Repository,
    remote: pygit2.Remote | str,
    refspecs: Sequence[str],
) -> None:
    """Push refspecs to a remote."""
    target = _resolve_remote(repo, remote)
    callbacks = auth.credentials(repo.config, _repo_dir(repo))
    log.info("ops.push", remote=target.name, refspecs=list(refspecs))
    target.push(list(refspecs), callbacks=callbacks)
