"""Credential negotiation for pygit2 remote operations.

Tries, in order and each at most once per operation: the SSH agent, SSH key
files, default SSH identities, plaintext credentials, the git credential
helper and finally an interactive prompt.

    from gitauth import GitAuthenticator

    auth = GitAuthenticator.default()
    repo = auth.clone_repo("https://example.com/team/repo.git", "/tmp/repo")
"""

from gitauth.authenticator import GitAuthenticator, PlaintextCredentials, PrivateKeyFile
from gitauth.errors import (
    AskpassCommandError,
    AskpassExitStatusError,
    AskpassOutputError,
    AuthenticationExhaustedError,
    AuthError,
    CredentialHelperError,
    PromptError,
    SshKeyError,
    SshKeyFormatError,
    SshKeyReadError,
    TerminalError,
)
from gitauth.negotiation import AuthCallbacks, Mechanism, NegotiationSession
from gitauth.ops import clone_repo, download, fetch, push
from gitauth.prompter import DefaultPrompter, Prompter

__version__ = "0.1.0"

__all__ = [
    # Registry
    "GitAuthenticator",
    "PlaintextCredentials",
    "PrivateKeyFile",
    # Negotiation
    "AuthCallbacks",
    "Mechanism",
    "NegotiationSession",
    # Prompts
    "DefaultPrompter",
    "Prompter",
    # Operations
    "clone_repo",
    "download",
    "fetch",
    "push",
    # Errors
    "AuthError",
    "AuthenticationExhaustedError",
    "PromptError",
    "AskpassCommandError",
    "AskpassExitStatusError",
    "AskpassOutputError",
    "TerminalError",
    "CredentialHelperError",
    "SshKeyError",
    "SshKeyFormatError",
    "SshKeyReadError",
]
