"""Tests for prompter.py and the askpass/terminal prompt surfaces."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import MagicMock, call, patch

import pygit2
import pytest

from gitauth._internal.askpass import Terminal, askpass_command, askpass_prompt
from gitauth.errors import (
    AskpassCommandError,
    AskpassExitStatusError,
    AskpassOutputError,
)
from gitauth.prompter import DefaultPrompter, Prompter
from tests.helpers import FakePrompter

URL = "https://example.com/r.git"
_RUN = "gitauth._internal.askpass.subprocess.run"


def _completed(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestAskpassCommand:
    """Lookup order: override, GIT_ASKPASS, core.askPass, SSH_ASKPASS."""

    def test_override_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GIT_ASKPASS", "/env/git-askpass")

        assert askpass_command(None, "/explicit") == "/explicit"

    def test_git_askpass_env(self, monkeypatch: pytest.MonkeyPatch, clean_env: None) -> None:
        monkeypatch.setenv("GIT_ASKPASS", "/env/git-askpass")
        monkeypatch.setenv("SSH_ASKPASS", "/env/ssh-askpass")

        assert askpass_command({"core.askPass": "/config/askpass"}) == "/env/git-askpass"  # type: ignore[arg-type]

    def test_git_config(self, monkeypatch: pytest.MonkeyPatch, clean_env: None) -> None:
        monkeypatch.setenv("SSH_ASKPASS", "/env/ssh-askpass")

        assert askpass_command({"core.askPass": "/config/askpass"}) == "/config/askpass"  # type: ignore[arg-type]

    def test_ssh_askpass_env(self, monkeypatch: pytest.MonkeyPatch, clean_env: None) -> None:
        monkeypatch.setenv("SSH_ASKPASS", "/env/ssh-askpass")

        assert askpass_command({}) == "/env/ssh-askpass"  # type: ignore[arg-type]

    def test_empty_values_ignored(self, monkeypatch: pytest.MonkeyPatch, clean_env: None) -> None:
        monkeypatch.setenv("GIT_ASKPASS", "")

        assert askpass_command({"core.askPass": ""}, "") is None  # type: ignore[arg-type]

    def test_nothing_configured(self, clean_env: None) -> None:
        assert askpass_command(None) is None

    def test_with_repo_config(self, temp_repo: pygit2.Repository, clean_env: None) -> None:
        temp_repo.config["core.askPass"] = "/repo/askpass"

        assert askpass_command(temp_repo.config) == "/repo/askpass"


class TestAskpassPrompt:
    @patch(_RUN)
    def test_returns_stdout_without_newline(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(stdout=b"hunter2\r\n")

        assert askpass_prompt("/bin/askpass", "Password for x") == "hunter2"
        mock_run.assert_called_once_with(
            ["/bin/askpass", "Password for x"], capture_output=True, check=False
        )

    @patch(_RUN)
    def test_start_failure(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = FileNotFoundError("no such file")

        with pytest.raises(AskpassCommandError) as exc_info:
            askpass_prompt("/missing", "Password")

        assert exc_info.value.program == "/missing"
        assert isinstance(exc_info.value.error, FileNotFoundError)

    @patch(_RUN)
    def test_non_zero_exit_keeps_stderr_not_stdout(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(returncode=1, stdout=b"secret", stderr=b"cancelled\n")

        with pytest.raises(AskpassExitStatusError) as exc_info:
            askpass_prompt("/bin/askpass", "Password")

        assert exc_info.value.returncode == 1
        assert exc_info.value.extra_message == "cancelled\n"
        assert "secret" not in str(exc_info.value)

    @patch(_RUN)
    def test_non_zero_exit_with_binary_stderr(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(returncode=3, stderr=b"\xff\xfe")

        with pytest.raises(AskpassExitStatusError) as exc_info:
            askpass_prompt("/bin/askpass", "Password")

        assert exc_info.value.extra_message is None

    @patch(_RUN)
    def test_invalid_utf8_answer(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(stdout=b"\xff\xfe")

        with pytest.raises(AskpassOutputError):
            askpass_prompt("/bin/askpass", "Password")


class TestTerminal:
    def test_write_line(self) -> None:
        writer = io.StringIO()
        terminal = Terminal(io.StringIO(), writer)

        terminal.write_line("Authentication needed for [bold]x[/bold]")

        assert writer.getvalue() == "Authentication needed for [bold]x[/bold]\n"

    def test_prompt_reads_line(self) -> None:
        writer = io.StringIO()
        terminal = Terminal(io.StringIO("alice\n"), writer)

        assert terminal.prompt("Username") == "alice"
        assert "Username" in writer.getvalue()

    @patch("rich.console.getpass", return_value="  secret pass  ")
    def test_prompt_sensitive_keeps_whitespace(self, mock_getpass: MagicMock) -> None:
        writer = io.StringIO()
        terminal = Terminal(io.StringIO(), writer)

        assert terminal.prompt_sensitive("Password") == "  secret pass  "
        assert "Password: " in writer.getvalue()
        mock_getpass.assert_called_once_with("", stream=writer)

    @patch("rich.console.getpass", side_effect=EOFError)
    def test_prompt_sensitive_eof_is_no_answer(self, mock_getpass: MagicMock) -> None:
        assert Terminal(io.StringIO(), io.StringIO()).prompt_sensitive("Password") is None

    def test_context_manager_closes_streams(self) -> None:
        reader, writer = io.StringIO(), io.StringIO()

        with Terminal(reader, writer):
            pass

        assert reader.closed
        assert writer.closed


class TestDefaultPrompterAskpass:
    """Askpass program takes precedence over the terminal."""

    @patch("gitauth.prompter.open_terminal")
    @patch(_RUN)
    def test_username_password(self, mock_run: MagicMock, mock_terminal: MagicMock) -> None:
        mock_run.side_effect = [_completed(stdout=b"alice\n"), _completed(stdout=b"pw\n")]

        answer = DefaultPrompter(askpass="/bin/askpass").prompt_username_password(URL, None)

        assert answer == ("alice", "pw")
        assert mock_run.call_args_list == [
            call(["/bin/askpass", f"Username for {URL}"], capture_output=True, check=False),
            call(["/bin/askpass", f"Password for {URL}"], capture_output=True, check=False),
        ]
        mock_terminal.assert_not_called()

    @patch(_RUN)
    def test_empty_username_is_no_answer(self, mock_run: MagicMock) -> None:
        mock_run.side_effect = [_completed(stdout=b"\n"), _completed(stdout=b"pw\n")]

        assert DefaultPrompter(askpass="/bin/askpass").prompt_username_password(URL, None) is None
        mock_run.assert_called_once_with(
            ["/bin/askpass", f"Username for {URL}"], capture_output=True, check=False
        )

    @patch(_RUN)
    def test_password(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(stdout=b"pw\n")

        answer = DefaultPrompter(askpass="/bin/askpass").prompt_password("bob", URL, None)

        assert answer == "pw"
        mock_run.assert_called_once_with(
            ["/bin/askpass", f"Password for {URL}"], capture_output=True, check=False
        )

    @patch(_RUN)
    def test_ssh_key_passphrase(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(stdout=b"pp\n")
        key = Path("/home/alice/.ssh/id_ed25519")

        answer = DefaultPrompter(askpass="/bin/askpass").prompt_ssh_key_passphrase(key, None)

        assert answer == "pp"
        mock_run.assert_called_once_with(
            ["/bin/askpass", f"Password for {key}"], capture_output=True, check=False
        )

    @patch(_RUN)
    def test_errors_propagate(self, mock_run: MagicMock) -> None:
        mock_run.return_value = _completed(returncode=1)

        with pytest.raises(AskpassExitStatusError):
            DefaultPrompter(askpass="/bin/askpass").prompt_password("bob", URL, None)


class TestDefaultPrompterTerminal:
    """Terminal fallback when no askpass program is configured."""

    @patch("gitauth.prompter.open_terminal", return_value=None)
    def test_no_terminal_means_no_answer(self, _mock: MagicMock, clean_env: None) -> None:
        prompter = DefaultPrompter()

        assert prompter.prompt_username_password(URL, None) is None
        assert prompter.prompt_password("bob", URL, None) is None
        assert prompter.prompt_ssh_key_passphrase(Path("/k"), None) is None

    @patch("gitauth.prompter.open_terminal")
    def test_username_password(self, mock_open: MagicMock, clean_env: None) -> None:
        terminal = MagicMock()
        terminal.__enter__.return_value = terminal
        terminal.prompt.return_value = "alice"
        terminal.prompt_sensitive.return_value = "pw"
        mock_open.return_value = terminal

        answer = DefaultPrompter().prompt_username_password(URL, None)

        assert answer == ("alice", "pw")
        terminal.write_line.assert_called_once_with(f"Authentication needed for {URL}")
        terminal.prompt.assert_called_once_with("Username")
        terminal.prompt_sensitive.assert_called_once_with("Password")

    @patch("gitauth.prompter.open_terminal")
    def test_empty_username_skips_password(self, mock_open: MagicMock, clean_env: None) -> None:
        terminal = MagicMock()
        terminal.__enter__.return_value = terminal
        terminal.prompt.return_value = ""
        mock_open.return_value = terminal

        assert DefaultPrompter().prompt_username_password(URL, None) is None
        terminal.prompt_sensitive.assert_not_called()

    @patch("gitauth.prompter.open_terminal")
    def test_password_header_names_user(self, mock_open: MagicMock, clean_env: None) -> None:
        terminal = MagicMock()
        terminal.__enter__.return_value = terminal
        terminal.prompt_sensitive.return_value = "pw"
        mock_open.return_value = terminal

        assert DefaultPrompter().prompt_password("bob", URL, None) == "pw"
        terminal.write_line.assert_called_once_with(f"Authentication needed for {URL} (user bob)")

    @patch("gitauth.prompter.open_terminal")
    def test_passphrase_header_names_key(self, mock_open: MagicMock, clean_env: None) -> None:
        terminal = MagicMock()
        terminal.__enter__.return_value = terminal
        terminal.prompt_sensitive.return_value = None
        mock_open.return_value = terminal

        assert DefaultPrompter().prompt_ssh_key_passphrase(Path("/k"), None) is None
        terminal.write_line.assert_called_once_with("Password needed for /k")


class TestPrompterProtocol:
    def test_default_prompter_is_prompter(self) -> None:
        assert isinstance(DefaultPrompter(), Prompter)

    def test_duck_typed_prompter(self) -> None:
        assert isinstance(FakePrompter(), Prompter)

    def test_partial_object_is_not_prompter(self) -> None:
        class OnlyPassword:
            def prompt_password(self, username: str, url: str, git_config: object) -> str:
                return "pw"

        assert not isinstance(OnlyPassword(), Prompter)
