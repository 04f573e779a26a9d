"""Shared fixtures for the git-vault-sync test suite."""

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from vault_sync.config import Config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, mocker: MagicMock) -> Any:
    """Points the global config file at a temporary path and clears the cache."""
    config_file = tmp_path / "config" / "config.toml"
    mocker.patch("vault_sync.config.CONFIG_FILE", config_file)
    mocker.patch("vault_sync.cli.CONFIG_FILE", config_file)
    Config._global_cache = None
    yield config_file
    Config._global_cache = None
