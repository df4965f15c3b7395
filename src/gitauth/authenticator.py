"""Configurable set of credential sources for pygit2 remote operations."""

from __future__ import annotations

import copy
import os
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Generic, TypeVar

from gitauth import ops as _ops
from gitauth._internal.host_pattern import HostPattern, is_host_pattern
from gitauth._internal.ssh_key import default_key_paths, public_key_path
from gitauth._internal.urls import domain_from_url
from gitauth.core.errors import ConfigError
from gitauth.errors import HostPatternError
from gitauth.negotiation import AuthCallbacks
from gitauth.prompter import DefaultPrompter, Prompter

if TYPE_CHECKING:
    import pygit2

    from gitauth.config.models import AuthConfig, GitAuthConfig

T = TypeVar("T")

# Domain key matching every host.
FALLBACK_DOMAIN = "*"


@dataclass(frozen=True, slots=True)
class PlaintextCredentials:
    """Username and password for one domain."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class PrivateKeyFile:
    """
    A private key to offer for public key authentication.

    The file is read by libgit2 at the time of use, so it does not have to
    exist yet when it is registered.
    """

    private_key: Path
    passphrase: str | None = field(default=None, repr=False)

    @property
    def public_key(self) -> Path | None:
        """``<private_key>.pub`` if it exists right now."""
        return public_key_path(self.private_key)


class DomainTable(Generic[T]):
    """
    Values keyed by domain, host pattern or ``*``.

    Lookup order: exact domain, host patterns in insertion order, ``*``.
    Setting an existing key replaces its value.
    """

    def __init__(self) -> None:
        self._entries: dict[str, T] = {}
        self._patterns: dict[str, HostPattern] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __repr__(self) -> str:
        return f"DomainTable({list(self._entries)!r})"

    def set(self, domain: str, value: T) -> None:
        if domain != FALLBACK_DOMAIN and is_host_pattern(domain):
            try:
                self._patterns[domain] = HostPattern(domain)
            except HostPatternError as e:
                raise ConfigError.invalid_pattern(domain, e.reason) from e
        self._entries[domain] = value

    def get(self, domain: str) -> T | None:
        return self._entries.get(domain)

    def lookup(self, domain: str | None) -> tuple[str, T] | None:
        """Best entry for a domain as ``(key, value)``."""
        if domain is not None:
            if domain in self._entries and domain not in self._patterns:
                return domain, self._entries[domain]
            for key, pattern in self._patterns.items():
                if pattern.matches(domain):
                    return key, self._entries[key]
        if FALLBACK_DOMAIN in self._entries:
            return FALLBACK_DOMAIN, self._entries[FALLBACK_DOMAIN]
        return None

    def copy(self) -> DomainTable[T]:
        other: DomainTable[T] = DomainTable()
        other._entries = dict(self._entries)
        other._patterns = dict(self._patterns)
        return other


class GitAuthenticator:
    """
    Registry of credential sources, tried in a fixed order.

    Order: SSH agent, SSH key files (insertion order), default SSH identities
    from ``~/.ssh``, plaintext credentials, git credential helper, interactive
    prompt. Each mechanism is offered at most once per username per operation.

    ``GitAuthenticator()`` starts with everything disabled,
    ``GitAuthenticator.default()`` enables every mechanism. All configuration
    methods return ``self`` so they can be chained::

        auth = (
            GitAuthenticator()
            .try_ssh_agent(True)
            .add_ssh_key_from_file("~/.ssh/deploy_key")
            .try_cred_helper(True)
        )
        repo = auth.clone_repo("git@example.com:team/repo.git", "/tmp/repo")
    """

    def __init__(self) -> None:
        self._plaintext: DomainTable[PlaintextCredentials] = DomainTable()
        self._usernames: DomainTable[str] = DomainTable()
        self._ssh_keys: list[PrivateKeyFile] = []
        self._try_ssh_agent = False
        self._try_default_ssh_keys = False
        self._prompt_ssh_key_passphrase = False
        self._try_cred_helper = False
        self._try_password_prompt = False
        self._credential_helper_timeout = 30.0
        self._prompter: Prompter = DefaultPrompter()

    @classmethod
    def default(cls) -> GitAuthenticator:
        """Authenticator with every supported mechanism enabled."""
        return (
            cls()
            .try_cred_helper(True)
            .try_password_prompt(True)
            .add_default_username()
            .try_ssh_agent(True)
            .try_default_ssh_keys(True)
            .prompt_ssh_key_passphrase(True)
        )

    @classmethod
    def from_config(cls, config: AuthConfig | GitAuthConfig) -> GitAuthenticator:
        """Build an authenticator from the ``auth`` configuration section."""
        auth_config: AuthConfig = getattr(config, "auth", config)  # type: ignore[assignment]
        auth = (
            cls()
            .try_ssh_agent(auth_config.try_ssh_agent)
            .try_default_ssh_keys(auth_config.try_default_ssh_keys)
            .prompt_ssh_key_passphrase(auth_config.prompt_ssh_key_passphrase)
            .try_cred_helper(auth_config.try_cred_helper)
            .try_password_prompt(auth_config.try_password_prompt)
            .set_prompter(DefaultPrompter(askpass=auth_config.askpass))
        )
        auth._credential_helper_timeout = auth_config.credential_helper_timeout_sec
        for key in auth_config.ssh_keys:
            passphrase = key.passphrase.get_secret_value() if key.passphrase else None
            auth.add_ssh_key_from_file(key.private_key, passphrase)
        if auth_config.default_username:
            auth.add_default_username()
        for domain, username in auth_config.usernames.items():
            auth.add_username(domain, username)
        return auth

    def __repr__(self) -> str:
        # Never include passwords or passphrases.
        return (
            "GitAuthenticator("
            f"plaintext_credentials={list(self._plaintext)!r}, "
            f"usernames={list(self._usernames)!r}, "
            f"ssh_keys={[str(k.private_key) for k in self._ssh_keys]!r}, "
            f"try_ssh_agent={self._try_ssh_agent}, "
            f"try_default_ssh_keys={self._try_default_ssh_keys}, "
            f"prompt_ssh_key_passphrase={self._prompt_ssh_key_passphrase}, "
            f"try_cred_helper={self._try_cred_helper}, "
            f"try_password_prompt={self._try_password_prompt})"
        )

    # =========================================================================
    # Configuration
    # =========================================================================

    def add_plaintext_credentials(self, domain: str, username: str, password: str) -> GitAuthenticator:
        """
        Set the username and password to use for a domain.

        ``domain`` is a host name (with port, if the URL has one), a host
        pattern such as ``*.example.com``, or ``*`` for every domain without a
        more specific entry. Replaces earlier credentials for the same domain.
        """
        self._plaintext.set(domain, PlaintextCredentials(username, password))
        return self

    def add_username(self, domain: str, username: str) -> GitAuthenticator:
        """
        Set the username to use for a domain when the URL does not name one.

        SSH URLs like ``example.com:repo.git`` carry no user; libgit2 then asks
        for a username before any key can be tried.
        """
        self._usernames.set(domain, username)
        return self

    def add_default_username(self) -> GitAuthenticator:
        """Use ``$USER`` (or ``$USERNAME``) as fallback username for every domain."""
        username = os.environ.get("USER") or os.environ.get("USERNAME")
        if username:
            self.add_username(FALLBACK_DOMAIN, username)
        return self

    def try_ssh_agent(self, enable: bool) -> GitAuthenticator:
        self._try_ssh_agent = enable
        return self

    def add_ssh_key_from_file(
        self, private_key: Path | str, passphrase: str | None = None
    ) -> GitAuthenticator:
        """
        Add a private key file for public key authentication.

        Without a passphrase, and with passphrase prompts enabled, the user is
        asked for the passphrase of encrypted OpenSSH keys when the key is
        tried. A matching ``.pub`` file is used if it exists at that time.
        Adding the same path again replaces the earlier entry.
        """
        key = PrivateKeyFile(Path(private_key).expanduser(), passphrase)
        for i, existing in enumerate(self._ssh_keys):
            if existing.private_key == key.private_key:
                self._ssh_keys[i] = key
                break
        else:
            self._ssh_keys.append(key)
        return self

    def try_default_ssh_keys(self, enable: bool) -> GitAuthenticator:
        """
        Offer the default identities ``~/.ssh/id_*`` after the added key files.

        The files are looked up when an operation starts.
        """
        self._try_default_ssh_keys = enable
        return self

    def prompt_ssh_key_passphrase(self, enable: bool) -> GitAuthenticator:
        self._prompt_ssh_key_passphrase = enable
        return self

    def try_cred_helper(self, enable: bool) -> GitAuthenticator:
        """Query the configured git credential helpers (``credential.helper``)."""
        self._try_cred_helper = enable
        return self

    def try_password_prompt(self, enable: bool) -> GitAuthenticator:
        """
        Ask the user for a username and password as a last resort.

        By default an askpass program is used if configured (GIT_ASKPASS,
        ``core.askPass``, SSH_ASKPASS), otherwise the terminal. Without either
        the prompt is skipped.
        """
        self._try_password_prompt = enable
        return self

    def set_prompter(self, prompter: Prompter) -> GitAuthenticator:
        """
        Replace the way users are prompted.

        Prompts still have to be enabled with ``try_password_prompt`` and
        ``prompt_ssh_key_passphrase``.
        """
        if not isinstance(prompter, Prompter):
            raise TypeError(f"{prompter!r} does not implement the Prompter protocol")
        self._prompter = prompter
        return self

    def copy(self) -> GitAuthenticator:
        """Independent snapshot. The prompter instance is shared."""
        other = copy.copy(self)
        other._plaintext = self._plaintext.copy()
        other._usernames = self._usernames.copy()
        other._ssh_keys = list(self._ssh_keys)
        return other

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def ssh_keys(self) -> tuple[PrivateKeyFile, ...]:
        return tuple(self._ssh_keys)

    @property
    def ssh_agent_enabled(self) -> bool:
        return self._try_ssh_agent

    @property
    def default_ssh_keys_enabled(self) -> bool:
        return self._try_default_ssh_keys

    @property
    def ssh_key_passphrase_prompt_enabled(self) -> bool:
        return self._prompt_ssh_key_passphrase

    @property
    def cred_helper_enabled(self) -> bool:
        return self._try_cred_helper

    @property
    def password_prompt_enabled(self) -> bool:
        return self._try_password_prompt

    @property
    def credential_helper_timeout(self) -> float:
        return self._credential_helper_timeout

    @property
    def prompter(self) -> Prompter:
        return self._prompter

    def default_ssh_keys(self, home: Path | None = None) -> list[PrivateKeyFile]:
        """Existing default identities that were not added explicitly."""
        registered = {k.private_key for k in self._ssh_keys}
        return [PrivateKeyFile(p) for p in default_key_paths(home) if p not in registered]

    def username_for(self, url: str) -> str | None:
        """Configured username for the domain of url."""
        entry = self._usernames.lookup(domain_from_url(url))
        return entry[1] if entry else None

    def plaintext_entry_for(
        self, url: str, username: str | None = None
    ) -> tuple[str, PlaintextCredentials] | None:
        """Plaintext credentials for url as ``(domain_key, credentials)``.

        When the URL names a username, only credentials for that user match.
        """
        entry = self._plaintext.lookup(domain_from_url(url))
        if entry is None:
            return None
        if username is not None and entry[1].username != username:
            return None
        return entry

    def plaintext_credentials_for(
        self, url: str, username: str | None = None
    ) -> PlaintextCredentials | None:
        entry = self.plaintext_entry_for(url, username)
        return entry[1] if entry else None

    # =========================================================================
    # Callbacks and operations
    # =========================================================================

    def credentials(
        self,
        git_config: pygit2.Config | None = None,
        repo_path: Path | str | None = None,
    ) -> AuthCallbacks:
        """
        Remote callbacks carrying a fresh negotiation session.

        Use one per git operation::

            callbacks = auth.credentials(repo.config, repo.workdir)
            repo.remotes["origin"].fetch(callbacks=callbacks)

        ``git_config`` is used to look up ``core.askPass``; ``repo_path`` is
        the working directory for the credential helper so repository level
        ``credential.*`` settings apply.
        """
        return AuthCallbacks(self, git_config=git_config, repo_path=repo_path)

    def clone_repo(
        self,
        url: str,
        path: Path | str,
        *,
        bare: bool = False,
        checkout_branch: str | None = None,
        git_config: pygit2.Config | None = None,
    ) -> pygit2.Repository:
        """Clone url into path. See ``gitauth.ops.clone_repo``."""
        return _ops.clone_repo(
            self, url, path, bare=bare, checkout_branch=checkout_branch, git_config=git_config
        )

    def fetch(
        self,
        repo: pygit2.Repository,
        remote: pygit2.Remote | str,
        refspecs: Sequence[str] | None = None,
        message: str | None = None,
    ) -> pygit2.remotes.TransferProgress:
        """Fetch from a remote. See ``gitauth.ops.fetch``."""
        return _ops.fetch(self, repo, remote, refspecs, message)

    def download(
        self,
        repo: pygit2.Repository,
        remote: pygit2.Remote | str,
        refspecs: Sequence[str],
    ) -> pygit2.remotes.TransferProgress:
        """Download objects without updating remote-tracking branches. See ``gitauth.ops.download``."""
        return _ops.download(self, repo, remote, refspecs)

    def push(
        self,
        repo: pygit2.Repository,
        remote: pygit2.Remote | str,
        refspecs: Sequence[str],
    ) -> None:
        """Push to a remote. See ``gitauth.ops.push``."""
        _ops.push(self, repo, remote, refspecs)
