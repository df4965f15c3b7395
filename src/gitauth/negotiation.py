"""Credential negotiation with the pygit2 transport.

libgit2 calls the credentials callback again after every failed attempt. A
``NegotiationSession`` answers each call with the next untried credential,
walking an ordered list of strategies:

1. username for SSH URLs that do not name one
2. SSH agent
3. SSH key files, in the order they were added
4. default SSH identities (``~/.ssh/id_*``)
5. plaintext credentials for the domain
6. git credential helper
7. interactive prompt

Every strategy claims a marker before it offers anything, so the same
mechanism is never offered twice for the same username within a session.
When no strategy has anything left, ``AuthenticationExhaustedError`` is
raised; pygit2 re-raises it from the enclosing clone/fetch/push call.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import pygit2
from pygit2.enums import CredentialType

from gitauth._internal.credential_helper import query_credential_helper
from gitauth._internal.ssh_key import analyze_ssh_key_file
from gitauth.core.logging import get_logger
from gitauth.errors import (
    AskpassExitStatusError,
    AuthenticationExhaustedError,
    AuthError,
    CredentialHelperError,
    PromptError,
    SshKeyError,
)

if TYPE_CHECKING:
    from gitauth.authenticator import GitAuthenticator, PrivateKeyFile

log = get_logger(__name__)

Credential = pygit2.Username | pygit2.UserPass | pygit2.Keypair | pygit2.KeypairFromAgent


class Mechanism(Enum):
    """Credential sources, in the order they are tried."""

    USERNAME = "username"
    SSH_AGENT = "ssh_agent"
    SSH_KEY = "ssh_key"
    DEFAULT_SSH_KEY = "default_ssh_key"
    PLAINTEXT = "plaintext"
    CRED_HELPER = "cred_helper"
    PASSWORD_PROMPT = "password_prompt"


@dataclass(frozen=True, slots=True)
class Marker:
    """One mechanism (or one entry of a mechanism) already offered."""

    mechanism: Mechanism
    key: str = ""
    username: str | None = None


@dataclass(frozen=True, slots=True)
class CredentialRequest:
    """Arguments of one credentials callback invocation."""

    url: str
    username_from_url: str | None
    allowed_types: CredentialType

    def allows(self, credential_type: CredentialType) -> bool:
        return bool(self.allowed_types & credential_type)


@dataclass(slots=True)
class SessionState:
    """Attempt tracking for one git operation."""

    calls: int = 0
    tried: set[Marker] = field(default_factory=set)
    history: list[Marker] = field(default_factory=list)
    # Prompted passphrases by key path; None means the user declined.
    passphrases: dict[Path, str | None] = field(default_factory=dict, repr=False)
    errors: list[AuthError] = field(default_factory=list)
    _userpass: set[tuple[str, str]] = field(default_factory=set, repr=False)

    def claim(self, marker: Marker) -> bool:
        """Mark as tried. False if it was tried before."""
        if marker in self.tried:
            return False
        self.tried.add(marker)
        self.history.append(marker)
        return True

    def claim_userpass(self, username: str, password: str) -> bool:
        """False if this exact username/password pair was already offered."""
        pair = (username, password)
        if pair in self._userpass:
            return False
        self._userpass.add(pair)
        return True


Strategy = Callable[[CredentialRequest], Credential | None]


class NegotiationSession:
    """
    Picks the next credential for one git operation.

    Works on a snapshot of the authenticator, so changing the authenticator
    while an operation runs has no effect on it. Sessions never share state;
    use one per operation.
    """

    def __init__(
        self,
        authenticator: GitAuthenticator,
        git_config: pygit2.Config | None = None,
        repo_path: Path | str | None = None,
    ) -> None:
        self._auth = authenticator.copy()
        self._git_config = git_config
        self._repo_path = Path(repo_path) if repo_path is not None else None
        self._default_keys: list[PrivateKeyFile] | None = None
        self.state = SessionState()
        self.strategies: tuple[Strategy, ...] = (
            self._offer_username,
            self._offer_ssh_agent,
            self._offer_ssh_key_files,
            self._offer_default_ssh_keys,
            self._offer_plaintext,
            self._offer_cred_helper,
            self._offer_password_prompt,
        )

    def next_credential(
        self,
        url: str,
        username_from_url: str | None,
        allowed_types: CredentialType | int,
    ) -> Credential:
        """
        Next credential to try.

        Raises:
            AuthenticationExhaustedError: Nothing left to try. Chained to the
                last recoverable error seen during the session, if any.
        """
        self.state.calls += 1
        request = CredentialRequest(url, username_from_url, CredentialType(int(allowed_types)))
        log.debug(
            "negotiation.request",
            url=url,
            username=username_from_url,
            allowed=int(request.allowed_types),
            call=self.state.calls,
        )

        for strategy in self.strategies:
            credential = strategy(request)
            if credential is not None:
                return credential

        log.info("negotiation.exhausted", url=url, calls=self.state.calls)
        error = AuthenticationExhaustedError(url, self.state.calls, self.state.errors)
        if self.state.errors:
            raise error from self.state.errors[-1]
        raise error

    # =========================================================================
    # Strategies
    # =========================================================================

    def _offer_username(self, request: CredentialRequest) -> Credential | None:
        # libgit2 asks for a username first for SSH URLs without one. The
        # username can not change later in the same connection.
        if not request.allows(CredentialType.USERNAME):
            return None
        username = self._auth.username_for(request.url)
        if username is None:
            return None
        if not self.state.claim(Marker(Mechanism.USERNAME, request.url)):
            return None
        log.debug("negotiation.username", username=username)
        return pygit2.Username(username)

    def _offer_ssh_agent(self, request: CredentialRequest) -> Credential | None:
        if not self._auth.ssh_agent_enabled or not request.allows(CredentialType.SSH_KEY):
            return None
        username = self._ssh_username(request)
        if username is None:
            return None
        if not self.state.claim(Marker(Mechanism.SSH_AGENT, username=username)):
            return None
        log.debug("negotiation.ssh_agent", username=username)
        return pygit2.KeypairFromAgent(username)

    def _offer_ssh_key_files(self, request: CredentialRequest) -> Credential | None:
        if not request.allows(CredentialType.SSH_KEY):
            return None
        username = self._ssh_username(request)
        if username is None:
            return None
        for key in self._auth.ssh_keys:
            credential = self._offer_key(key, Mechanism.SSH_KEY, username)
            if credential is not None:
                return credential
        return None

    def _offer_default_ssh_keys(self, request: CredentialRequest) -> Credential | None:
        if not self._auth.default_ssh_keys_enabled or not request.allows(CredentialType.SSH_KEY):
            return None
        username = self._ssh_username(request)
        if username is None:
            return None
        if self._default_keys is None:
            self._default_keys = self._auth.default_ssh_keys()
        for key in self._default_keys:
            credential = self._offer_key(key, Mechanism.DEFAULT_SSH_KEY, username)
            if credential is not None:
                return credential
        return None

    def _offer_plaintext(self, request: CredentialRequest) -> Credential | None:
        if not request.allows(CredentialType.USERPASS_PLAINTEXT):
            return None
        entry = self._auth.plaintext_entry_for(request.url, request.username_from_url)
        if entry is None:
            return None
        domain, credentials = entry
        if not self.state.claim(Marker(Mechanism.PLAINTEXT, domain, credentials.username)):
            return None
        log.debug("negotiation.plaintext", domain=domain, username=credentials.username)
        return self._userpass(credentials.username, credentials.password)

    def _offer_cred_helper(self, request: CredentialRequest) -> Credential | None:
        if not self._auth.cred_helper_enabled or not request.allows(CredentialType.USERPASS_PLAINTEXT):
            return None
        # Queried at most once per URL, whatever the outcome.
        if not self.state.claim(Marker(Mechanism.CRED_HELPER, request.url)):
            return None
        log.debug("negotiation.cred_helper", url=request.url)
        try:
            credentials = query_credential_helper(
                request.url,
                request.username_from_url,
                cwd=self._repo_path,
                timeout=self._auth.credential_helper_timeout,
            )
        except CredentialHelperError as e:
            log.warning("negotiation.cred_helper_failed", url=request.url, error=str(e))
            self.state.errors.append(e)
            return None
        if credentials is None:
            log.debug("negotiation.cred_helper_empty", url=request.url)
            return None
        return self._userpass(credentials.username, credentials.password)

    def _offer_password_prompt(self, request: CredentialRequest) -> Credential | None:
        if not self._auth.password_prompt_enabled or not request.allows(
            CredentialType.USERPASS_PLAINTEXT
        ):
            return None
        if not self.state.claim(Marker(Mechanism.PASSWORD_PROMPT, request.url)):
            return None

        prompter = self._auth.prompter
        username = request.username_from_url
        log.debug("negotiation.password_prompt", url=request.url, username=username)
        try:
            if username is not None:
                password = prompter.prompt_password(username, request.url, self._git_config)
                answer = None if password is None else (username, password)
            else:
                answer = prompter.prompt_username_password(request.url, self._git_config)
        except PromptError as e:
            self._record_prompt_error("username and password", e)
            return None

        if answer is None:
            log.info("negotiation.password_prompt_declined", url=request.url)
            return None
        return self._userpass(*answer)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _ssh_username(self, request: CredentialRequest) -> str | None:
        return request.username_from_url or self._auth.username_for(request.url)

    def _userpass(self, username: str, password: str) -> Credential | None:
        if not self.state.claim_userpass(username, password):
            log.debug("negotiation.userpass_repeated", username=username)
            return None
        return pygit2.UserPass(username, password)

    def _offer_key(self, key: PrivateKeyFile, mechanism: Mechanism, username: str) -> Credential | None:
        path = key.private_key
        if not self.state.claim(Marker(mechanism, str(path), username)):
            return None
        if not path.is_file():
            log.warning("negotiation.ssh_key_missing", private_key=str(path))
            return None

        passphrase = key.passphrase
        if passphrase is None and self._auth.ssh_key_passphrase_prompt_enabled:
            if path in self.state.passphrases:
                passphrase = self.state.passphrases[path]
                if passphrase is None:
                    log.debug("negotiation.ssh_key_declined", private_key=str(path))
                    return None
            elif self._is_encrypted(path):
                passphrase = self._prompt_passphrase(path)
                if passphrase is None:
                    return None

        public_key = key.public_key
        log.debug(
            "negotiation.ssh_key",
            username=username,
            private_key=str(path),
            public_key=str(public_key) if public_key else None,
            source=mechanism.value,
        )
        return pygit2.Keypair(
            username,
            str(public_key) if public_key else None,
            str(path),
            passphrase,
        )

    def _is_encrypted(self, path: Path) -> bool:
        try:
            return analyze_ssh_key_file(path).encrypted
        except SshKeyError as e:
            # Let libgit2 have a go at it anyway.
            log.warning("negotiation.ssh_key_unreadable", private_key=str(path), error=str(e))
            self.state.errors.append(e)
            return False

    def _prompt_passphrase(self, path: Path) -> str | None:
        passphrase: str | None
        try:
            passphrase = self._auth.prompter.prompt_ssh_key_passphrase(path, self._git_config)
        except PromptError as e:
            self._record_prompt_error("SSH key passphrase", e)
            passphrase = None
        if passphrase is None:
            log.info("negotiation.ssh_key_passphrase_declined", private_key=str(path))
        self.state.passphrases[path] = passphrase
        return passphrase

    def _record_prompt_error(self, kind: str, error: PromptError) -> None:
        log.warning("negotiation.prompt_failed", kind=kind, error=str(error))
        if isinstance(error, AskpassExitStatusError) and error.extra_message:
            for line in error.extra_message.splitlines():
                log.warning("negotiation.askpass_stderr", line=line)
        self.state.errors.append(error)


class AuthCallbacks(pygit2.RemoteCallbacks):
    """RemoteCallbacks answering credential requests from a NegotiationSession."""

    def __init__(
        self,
        authenticator: GitAuthenticator,
        git_config: pygit2.Config | None = None,
        repo_path: Path | str | None = None,
    ) -> None:
        super().__init__()
        self.session = NegotiationSession(authenticator, git_config=git_config, repo_path=repo_path)

    def credentials(  # type: ignore[override]
        self,
        url: str,
        username_from_url: str | None,
        allowed_types: CredentialType,
    ) -> Credential:
        """Provide the next credential for a remote operation."""
        return self.session.next_credential(url, username_from_url, allowed_types)
