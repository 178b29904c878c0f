# tests/test_cli.py
"""Test the command-line interface"""

import base64
import json
import time
from unittest.mock import Mock

import pytest
from click.testing import CliRunner

from yoto_sync.cli import _print_result, cli
from yoto_sync.core.exceptions import YotoApiError
from yoto_sync.sync.models import Container, ResolvedTarget, SyncOutcome, SyncPlan, SyncResult


def make_token(expires_in=3600):
    payload = base64.urlsafe_b64encode(
        json.dumps({"exp": int(time.time()) + expires_in}).encode("utf-8")
    ).decode("ascii").rstrip("=")
    return f"header.{payload}.signature"


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "config.yaml"
    path.write_text(f"storage:\n  directory: {temp_dir / 'store'}\n", encoding="utf-8")
    return path


@pytest.fixture
def run(config_file):
    runner = CliRunner()

    def _run(*args, **kwargs):
        return runner.invoke(cli, ["--config", str(config_file), *args], **kwargs)
    return _run


class TestAccountCommands:
    """Test login, logout and status"""

    def test_status_not_logged_in(self, run):
        """status reports a missing token"""
        result = run("status")

        assert result.exit_code == 0
        assert "Not logged in" in result.output

    def test_login_then_status(self, run, temp_dir):
        """A pasted token is stored and reported"""
        result = run("login", input=f"Bearer {make_token(7200)}\n")

        assert result.exit_code == 0
        assert "Logged in" in result.output
        assert (temp_dir / "store" / "auth.json").exists()

        result = run("status")
        assert "Logged in" in result.output
        assert "Token expires in" in result.output

    def test_login_invalid_token(self, run):
        """A malformed token exits with the auth error code"""
        result = run("login", input="garbage\n")

        assert result.exit_code == 2
        assert "not a valid JWT" in result.output

    def test_logout(self, run, temp_dir):
        """logout removes the stored token"""
        run("login", input=f"{make_token()}\n")

        result = run("logout")

        assert result.exit_code == 0
        assert not (temp_dir / "store" / "auth.json").exists()


class TestCardCommands:
    """Test commands that talk to Yoto"""

    def test_list_requires_login(self, run):
        """Listing cards without a token exits with code 2"""
        result = run("list")

        assert result.exit_code == 2
        assert "yoto login" in result.output

    def test_list_cards(self, run, monkeypatch):
        """Cards are listed with a count"""
        client = Mock()
        client.list_containers.return_value = [Container(id="c1", name="Bedtime Songs")]
        monkeypatch.setattr("yoto_sync.cli.YotoClient", Mock(return_value=client))
        run("login", input=f"{make_token()}\n")

        result = run("list")

        assert result.exit_code == 0
        assert "Bedtime Songs" in result.output
        assert "1 playlist" in result.output

    def test_list_names_with_brackets(self, run, monkeypatch):
        """Card names are printed literally, brackets included"""
        client = Mock()
        client.list_containers.return_value = [Container(id="c1", name="Songs [/b] for [bold]kids")]
        monkeypatch.setattr("yoto_sync.cli.YotoClient", Mock(return_value=client))
        run("login", input=f"{make_token()}\n")

        result = run("list")

        assert result.exit_code == 0
        assert "Songs [/b] for [bold]kids" in result.output

    def test_rejected_token(self, run, monkeypatch):
        """A 401 from Yoto suggests logging in again"""
        client = Mock()
        client.list_containers.side_effect = YotoApiError("Yoto API error (401): Unauthorized", status_code=401)
        monkeypatch.setattr("yoto_sync.cli.YotoClient", Mock(return_value=client))
        run("login", input=f"{make_token()}\n")

        result = run("list")

        assert result.exit_code == 3
        assert "Run: yoto login" in result.output

    def test_links_empty(self, run):
        """links reports when nothing was synced yet"""
        result = run("links")

        assert result.exit_code == 0
        assert "No playlists synced yet" in result.output


class TestSyncCommand:
    """Test the sync command's preconditions"""

    def test_requires_ffmpeg(self, run, monkeypatch):
        """sync refuses to start without ffmpeg"""
        monkeypatch.setattr("yoto_sync.cli.shutil.which", lambda name: None)

        result = run("sync", "PLroadtrip")

        assert result.exit_code == 1
        assert "ffmpeg" in result.output

    def test_requires_login(self, run, monkeypatch):
        """sync refuses to start without a token"""
        monkeypatch.setattr("yoto_sync.cli.shutil.which", lambda name: "/usr/bin/ffmpeg")

        result = run("sync", "PLroadtrip")

        assert result.exit_code == 2
        assert "Not logged in" in result.output

    def test_missing_config_file(self, temp_dir):
        """An explicit config path must exist"""
        result = CliRunner().invoke(cli, ["--config", str(temp_dir / "nope.yaml"), "status"])

        assert result.exit_code == 1
        assert "Configuration file not found" in result.output


class TestResultSummary:
    """Test the summary printed after a run"""

    def test_summary_after_changes(self, caplog):
        """A run that wrote the card prints the counts"""
        result = SyncResult(
            outcome=SyncOutcome.SYNCED,
            target=ResolvedTarget(target_id="c1", target_name="Bedtime Songs"),
            plan=SyncPlan(items=(), keep_count=2, add_count=1, remove_count=0),
            association_saved=True,
        )

        with caplog.at_level("INFO"):
            _print_result(result)

        assert "SYNC COMPLETE" in caplog.text
        assert "Bedtime Songs" in caplog.text

    def test_no_summary_without_changes(self, caplog):
        """Runs that left the card alone print no summary"""
        with caplog.at_level("INFO"):
            _print_result(SyncResult(outcome=SyncOutcome.ALREADY_IN_SYNC))

        assert "SYNC COMPLETE" not in caplog.text
