"""Domain extraction from git remote URLs."""

from __future__ import annotations


def domain_from_url(url: str) -> str | None:
    """
    Get the host part of a git URL.

    Supported forms:
    - Real URLs: ``scheme://[user[:pass]@]host[:port]/path`` -> ``host[:port]``
    - SCP-like SSH: ``[user@]host:path`` -> ``host``
    - Relative paths (no colon) -> None
    """
    head, sep, tail = url.partition(":")
    if not sep:
        return None

    if tail.startswith("//"):
        rest = tail[2:]
        if "@" in rest:
            _credentials, _, rest = rest.partition("@")
        host, _, _path = rest.partition("/")
        return host

    if "@" in head:
        _user, _, head = head.partition("@")
    return head
