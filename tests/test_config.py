"""Tests for the configuration management subsystem."""

import logging
from pathlib import Path

import pytest

from vault_sync.config import Config, GitSettings, SyncSettings, parse_size, parse_time


def test_config_defaults() -> None:
    """Verifies that the configuration initializes with the documented defaults."""
    conf = Config()
    assert conf.sync.auto_sync_enabled is True
    assert conf.sync.auto_sync_interval == 600  # 10 minutes
    assert conf.sync.time_format == "YYYY-MM-DD HH:mm:ss"
    assert conf.sync.repositories == ""
    assert conf.git.remote == "origin"
    assert conf.git.branch == "master"
    assert conf.git.force is True
    assert conf.git.commit_message == "fix: auto sync"


def test_periodic_threshold_follows_interval() -> None:
    """Verifies that the timer debounce defaults to half the auto-sync interval."""
    settings = SyncSettings(auto_sync_interval=300)
    assert settings.periodic_threshold == 150

    settings = SyncSettings(auto_sync_interval=300, periodic_debounce=120)
    assert settings.periodic_threshold == 120


def test_config_load_merges_layers(tmp_path: Path, isolated_config: Path) -> None:
    """Verifies the cascading merge logic (Defaults -> Global -> Local).

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        isolated_config (Path): The patched global config file location.
    """
    isolated_config.parent.mkdir(parents=True)
    isolated_config.write_text(
        '[sync]\nrepositories = "/vault"\nauto_sync_interval = "30m"\n'
        '[git]\nremote = "upstream"\nbranch = "main"\n'
    )

    vault = tmp_path / "vault"
    vault.mkdir()
    (vault / "vault-sync.toml").write_text('[git]\nbranch = "notes"\n')

    conf = Config.load(local_dir=vault)

    assert conf.sync.repositories == "/vault"  # From Global
    assert conf.sync.auto_sync_interval == 1800  # Parsed from "30m"
    assert conf.git.remote == "upstream"  # From Global
    assert conf.git.branch == "notes"  # Local overrides Global


def test_config_load_does_not_leak_into_cache(isolated_config: Path) -> None:
    """Verifies that mutating a loaded config leaves the cached global untouched."""
    conf = Config.load()
    conf.git.branch = "scratch"

    assert Config.load().git.branch == "master"


def test_interval_minutes_alias(isolated_config: Path) -> None:
    """Verifies that the interval can be given in minutes."""
    isolated_config.parent.mkdir(parents=True)
    isolated_config.write_text("[sync]\nauto_sync_interval_minutes = 5\n")

    conf = Config.load()

    assert conf.sync.auto_sync_interval == 300


def test_parse_size() -> None:
    """Verifies that human-readable sizes are correctly converted to bytes."""
    assert parse_size(100) == 100
    assert parse_size("100kb") == 102400
    assert parse_size("10 MB") == 10485760
    assert parse_size("1.5gb") == int(1.5 * 1024**3)

    with pytest.raises(ValueError, match=r"Invalid size format '100 bits'"):
        parse_size("100 bits")


def test_parse_time() -> None:
    """Verifies that human-readable times are correctly converted to seconds."""
    assert parse_time(50) == 50
    assert parse_time("30s") == 30
    assert parse_time("10 min") == 600
    assert parse_time("2 hrs") == 7200
    assert parse_time("1.5h") == 5400
    assert parse_time("500ms") == pytest.approx(0.5)
    assert parse_time("900") == 900  # Bare numbers are seconds.
    assert parse_time("1.5") == 1.5

    with pytest.raises(ValueError, match=r"Invalid time format '10 lightyears'"):
        parse_time("10 lightyears")


def test_config_invalid_keys_and_values(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that unknown keys are ignored and invalid values fallback to defaults.

    Args:
        tmp_path (Path): Pytest fixture for a temporary directory.
        caplog (pytest.LogCaptureFixture): Pytest fixture for capturing logs.
    """
    caplog.set_level(logging.WARNING)

    (tmp_path / "vault-sync.toml").write_text(
        "[sync]\n"
        'modify_debounce = "soon"\n'
        'fake_setting = "ignored"\n'
        "[limits]\n"
        'max_log_size = "10 gallons"\n'
    )

    conf = Config.load(local_dir=tmp_path)

    assert conf.sync.modify_debounce == 60
    assert conf.limits.max_log_size == 5242880

    assert "Unknown config keys in [sync]: fake_setting" in caplog.text
    assert "Config error in [sync].modify_debounce: Invalid time format" in caplog.text
    assert "Config error in [limits].max_log_size: Invalid size format" in caplog.text


def test_config_syntax_error_is_logged(
    isolated_config: Path, caplog: pytest.LogCaptureFixture
) -> None:
    """Verifies that a broken TOML file falls back to defaults with an error."""
    caplog.set_level(logging.ERROR)
    isolated_config.parent.mkdir(parents=True)
    isolated_config.write_text("[sync\nrepositories = ")

    conf = Config.load()

    assert conf.sync.repositories == ""
    assert "Config syntax error" in caplog.text


def test_save_round_trips_through_load(isolated_config: Path) -> None:
    """Verifies that saved settings are read back by the next load."""
    conf = Config()
    conf.sync.repositories = "/a;/b"
    conf.sync.auto_sync_enabled = False
    conf.git = GitSettings(branch="main", commit_message='say "hi"')

    written = conf.save()

    assert written == isolated_config
    loaded = Config.load()
    assert loaded.sync.repositories == "/a;/b"
    assert loaded.sync.auto_sync_enabled is False
    assert loaded.git.branch == "main"
    assert loaded.git.commit_message == 'say "hi"'
    assert loaded.sync.periodic_debounce is None
