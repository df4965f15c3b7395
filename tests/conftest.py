"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import pygit2
import pytest

_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

from tests.helpers import ENCRYPTED_OPENSSH_KEY, PLAIN_OPENSSH_KEY  # noqa: E402

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty home directory, so no real ~/.ssh keys leak into tests."""
    home = tmp_path / "home"
    (home / ".ssh").mkdir(parents=True)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    return home


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove askpass and user variables from the environment."""
    for name in ("GIT_ASKPASS", "SSH_ASKPASS", "USER", "USERNAME"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def plain_key(tmp_path: Path) -> Path:
    path = tmp_path / "keys" / "deploy_plain"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(PLAIN_OPENSSH_KEY)
    return path


@pytest.fixture
def encrypted_key(tmp_path: Path) -> Path:
    path = tmp_path / "keys" / "deploy_encrypted"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(ENCRYPTED_OPENSSH_KEY)
    return path


@pytest.fixture
def temp_repo(tmp_path: Path) -> Generator[pygit2.Repository, None, None]:
    """Create a temporary git repository with initial commit."""
    repo_path = tmp_path / "repo"
    repo_path.mkdir()

    repo = pygit2.init_repository(str(repo_path), initial_head="main")
    repo.config["user.name"] = "Test User"
    repo.config["user.email"] = "test@example.com"

    (repo_path / "README.md").write_text("# Test Repo\n")
    repo.index.add("README.md")
    repo.index.write()
    tree = repo.index.write_tree()
    sig = pygit2.Signature("Test User", "test@example.com")
    repo.create_commit("refs/heads/main", sig, sig, "Initial commit", tree, [])
    repo.set_head("refs/heads/main")

    yield repo


@pytest.fixture
def bare_repo(tmp_path: Path) -> Generator[pygit2.Repository, None, None]:
    """Create a bare repository for remote testing."""
    bare_path = tmp_path / "bare.git"
    yield pygit2.init_repository(str(bare_path), bare=True, initial_head="main")


@pytest.fixture
def repo_with_remote(
    temp_repo: pygit2.Repository,
    bare_repo: pygit2.Repository,
) -> pygit2.Repository:
    """Repository with an ``origin`` remote that already has main."""
    temp_repo.remotes.create("origin", str(Path(bare_repo.path).resolve()))
    temp_repo.remotes["origin"].push(["refs/heads/main:refs/heads/main"])
    return temp_repo
