"""Tests for the Command Line Interface (CLI) module."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from vault_sync import cli
from vault_sync.config import Config
from vault_sync.git_ops import GitResult, SyncOutcome


@pytest.fixture
def vault(tmp_path: Path, isolated_config: Path) -> Path:
    """A vault repository registered in the global config."""
    path = tmp_path / "vault"
    (path / ".git").mkdir(parents=True)
    isolated_config.parent.mkdir(parents=True)
    isolated_config.write_text(f'[sync]\nrepositories = "{path}"\n')
    return path


def test_show_status_lists_candidates(
    tmp_path: Path,
    vault: Path,
    isolated_config: Path,
    capsys: pytest.CaptureFixture,
    mocker: MagicMock,
) -> None:
    """Verifies that `show_status` marks the active and missing repositories.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        vault (Path): The configured vault repository.
        isolated_config (Path): The patched global config file location.
        capsys (pytest.CaptureFixture): Pytest fixture for capturing stdout.
        mocker (MagicMock): Pytest fixture for mocking.
    """
    missing = tmp_path / "missing"
    isolated_config.write_text(f'[sync]\nrepositories = "{missing};{vault}"\n')
    mocker.patch("vault_sync.cli.PID_FILE", tmp_path / "none.pid")
    mocker.patch("vault_sync.cli.console", Console(width=200))

    cli.show_status()

    captured = capsys.readouterr()
    assert "Stopped" in captured.out
    assert "every 10 min" in captured.out
    assert "Active" in captured.out
    assert "No .git" in captured.out


def test_run_push_reports_nothing_to_commit(
    vault: Path, capsys: pytest.CaptureFixture, mocker: MagicMock
) -> None:
    push = mocker.patch(
        "vault_sync.cli.git_ops.push",
        new=mocker.AsyncMock(
            return_value=GitResult(SyncOutcome.NOTHING_TO_SYNC, "git ...")
        ),
    )

    cli.run_push()

    options = push.call_args.args[0]
    assert options.root_path == vault
    assert "nothing to commit" in capsys.readouterr().out


def test_run_pull_failure_exits_non_zero(vault: Path, mocker: MagicMock) -> None:
    mocker.patch(
        "vault_sync.cli.git_ops.pull",
        new=mocker.AsyncMock(
            return_value=GitResult(SyncOutcome.FAILED, "git pull", error="exit 1")
        ),
    )

    with pytest.raises(SystemExit) as exc:
        cli.run_pull()
    assert exc.value.code == 1


def test_run_pull_unconfigured_exits(
    capsys: pytest.CaptureFixture, mocker: MagicMock
) -> None:
    pull = mocker.patch("vault_sync.cli.git_ops.pull")

    with pytest.raises(SystemExit):
        cli.run_pull()

    pull.assert_not_called()
    assert "Not configured" in capsys.readouterr().out


def test_set_config_value_persists(isolated_config: Path) -> None:
    """Verifies that `config --set` updates and saves a single key."""
    cli.set_config_value("git.branch=main")
    cli.set_config_value("sync.auto_sync_interval=5m")
    cli.set_config_value("sync.auto_sync_enabled=false")

    conf = Config.load()
    assert conf.git.branch == "main"
    assert conf.sync.auto_sync_interval == 300
    assert conf.sync.auto_sync_enabled is False


def test_set_config_value_accepts_plain_seconds() -> None:
    """Verifies that bare numbers are stored as seconds, even after a first save."""
    cli.set_config_value("sync.auto_sync_interval=5m")
    cli.set_config_value("sync.auto_sync_interval=900")
    cli.set_config_value("sync.progress_grace=1.5")
    cli.set_config_value("sync.periodic_debounce=300")

    conf = Config.load()
    assert conf.sync.auto_sync_interval == 900
    assert conf.sync.progress_grace == 1.5
    assert conf.sync.periodic_debounce == 300


def test_set_config_value_rejects_malformed_time(
    capsys: pytest.CaptureFixture,
) -> None:
    cli.set_config_value("sync.auto_sync_interval=5m")

    with pytest.raises(SystemExit) as exc:
        cli.set_config_value("sync.auto_sync_interval=soon")

    assert exc.value.code == 1
    assert "Invalid value" in capsys.readouterr().out
    assert Config.load().sync.auto_sync_interval == 300


def test_set_config_value_rejects_unknown_key() -> None:
    with pytest.raises(SystemExit):
        cli.set_config_value("git.colour=blue")


def test_add_repository_appends(tmp_path: Path, vault: Path) -> None:
    second = tmp_path / "second"
    second.mkdir()

    cli.add_repository(str(second))
    cli.add_repository(str(second))  # Duplicate is ignored.

    conf = Config.load()
    assert conf.sync.repositories == f"{vault};{second.resolve()}"


def test_main_dispatches_subcommands(mocker: MagicMock) -> None:
    mock_now = mocker.patch("vault_sync.cli.run_now")
    mocker.patch.object(sys, "argv", ["git-vault-sync", "now"])

    cli.main()

    mock_now.assert_called_once()
