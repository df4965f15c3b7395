"""Internal helpers for gitauth. Not part of the public API."""

from gitauth._internal.credential_helper import HelperCredentials, query_credential_helper
from gitauth._internal.host_pattern import HostPattern, is_host_pattern
from gitauth._internal.ssh_key import (
    KeyFormat,
    KeyInfo,
    analyze_ssh_key_file,
    default_key_paths,
    public_key_path,
)
from gitauth._internal.urls import domain_from_url

__all__ = [
    "HelperCredentials",
    "HostPattern",
    "KeyFormat",
    "KeyInfo",
    "analyze_ssh_key_file",
    "default_key_paths",
    "domain_from_url",
    "is_host_pattern",
    "public_key_path",
    "query_credential_helper",
]
