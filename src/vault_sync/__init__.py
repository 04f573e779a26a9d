"""git-vault-sync: Keep a note vault in sync with a remote git repository.

This package provides the sync scheduler, the git command layer it drives, a
filesystem watcher and daemon that feed it events, and a command-line interface.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    git_ops,
    repos,
    runner,
    scheduler,
    status,
    system,
    watcher,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "git_ops",
    "repos",
    "runner",
    "scheduler",
    "status",
    "system",
    "watcher",
]
