import os
from pathlib import Path

"""Global constants and configuration path definitions for git-vault-sync.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the default sync and git values used across the
application.
"""

# --- Identity ---
APP_NAME = "git-vault-sync"
"""str: The human-readable application name, also used as the logger name."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "git-vault-sync"
"""Path: The directory for runtime state data (logs, pid file)."""

LOG_FILE = STATE_DIR / "daemon.log"
"""Path: The file path for the daemon process logs."""

PID_FILE = STATE_DIR / "daemon.pid"
"""Path: The file path storing the daemon's process ID."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/git-vault-sync"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

LOCAL_CONFIG_NAME = "vault-sync.toml"
"""str: Name of the optional per-vault override file."""

# --- Git / Sync Defaults ---
DEFAULT_REMOTE = "origin"
DEFAULT_BRANCH = "master"
DEFAULT_COMMIT_MESSAGE = "fix: auto sync"
DEFAULT_TIME_FORMAT = "YYYY-MM-DD HH:mm:ss"

REPOSITORY_DELIMITER = ";"
"""str: Separator between candidate vault directories in the repository list."""

NOTHING_TO_COMMIT_MARKERS = [
    "nothing to commit",
    "nothing added to commit",
    "no changes added to commit",
]
"""
list[str]: Fragments of git output that mean the commit step
failed only because the working tree is clean.
"""
