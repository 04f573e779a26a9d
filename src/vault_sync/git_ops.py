"""Composition and execution of the git command lines used for syncing.

Callers never build shell strings themselves: every platform difference
(directory switching, quoting) is handled here, once.
"""

import enum
import logging
import shlex
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from pathlib import Path

from .constants import (
    APP_NAME,
    DEFAULT_BRANCH,
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_REMOTE,
    NOTHING_TO_COMMIT_MARKERS,
)
from .runner import CommandResult, run_command
from .system import is_windows

logger = logging.getLogger(APP_NAME)

Runner = Callable[[str, str | Path | None], Awaitable[CommandResult]]


@dataclass(frozen=True)
class SyncOptions:
    """Options for a single pull or push invocation.

    Attributes:
        root_path (Path | None): Working directory override. None runs in the
            current process directory.
        remote (str): The remote name.
        branch (str): The branch name.
        force (bool): Whether the push is forced. Ignored by pull.
        commit_message (str): The commit message used by push. Ignored by pull.
    """

    root_path: Path | None = None
    remote: str = DEFAULT_REMOTE
    branch: str = DEFAULT_BRANCH
    force: bool = True
    commit_message: str = DEFAULT_COMMIT_MESSAGE

    def merged(self, **overrides: object) -> "SyncOptions":
        """Returns a copy with the non-None overrides applied."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        if "root_path" in updates:
            updates["root_path"] = Path(updates["root_path"])  # type: ignore[arg-type]
        return replace(self, **updates)  # type: ignore[arg-type]


class SyncOutcome(enum.Enum):
    SUCCESS = "success"
    NOTHING_TO_SYNC = "nothing_to_sync"
    FAILED = "failed"


@dataclass
class GitResult:
    """The settled result of a pull or push.

    Attributes:
        outcome (SyncOutcome): How the operation ended.
        command (str): The command line that was executed.
        output (str): Combined output of the command.
        error (str | None): Failure description for FAILED outcomes.
    """

    outcome: SyncOutcome
    command: str
    output: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        """True unless the operation failed."""
        return self.outcome is not SyncOutcome.FAILED


def _quote_path(path: Path, windows: bool) -> str:
    if windows:
        return f'"{path}"'
    return shlex.quote(str(path))


def change_directory_prefix(root_path: Path | None, windows: bool | None = None) -> str:
    """Builds the `cd ... && ` segment that precedes every git command.

    Args:
        root_path (Path | None): The directory to switch into.
        windows (bool | None, optional): Force the Windows form. Defaults to
                                         detecting the current platform.

    Returns:
        str: The prefix, or an empty string when no root path is set.
    """
    if not root_path:
        return ""
    if windows is None:
        windows = is_windows()
    # `cd` on cmd.exe only switches drives with /d.
    cd = "cd /d" if windows else "cd"
    return f"{cd} {_quote_path(root_path, windows)} && "


def build_pull_command(options: SyncOptions, windows: bool | None = None) -> str:
    """Composes `git pull {remote} {branch}` with the directory prefix."""
    prefix = change_directory_prefix(options.root_path, windows)
    return f"{prefix}git pull {options.remote} {options.branch}"


def build_push_command(options: SyncOptions, windows: bool | None = None) -> str:
    """Composes the stage, commit and push chain.

    `--force` is always the final flag when the options request a forced push.
    """
    prefix = change_directory_prefix(options.root_path, windows)
    message = options.commit_message.replace("\\", "\\\\").replace('"', '\\"')
    command = (
        f'{prefix}git add . && git commit -m "{message}" '
        f"&& git push {options.remote} {options.branch}"
    )
    if options.force:
        command += " --force"
    return command


def is_nothing_to_commit(result: CommandResult) -> bool:
    """Detects a commit step that failed only because the working tree is clean."""
    text = f"{result.stdout}\n{result.stderr}".lower()
    return any(marker in text for marker in NOTHING_TO_COMMIT_MARKERS)


def _resolve(options: SyncOptions | None, overrides: dict) -> SyncOptions:
    return (options or SyncOptions()).merged(**overrides)


async def pull(
    options: SyncOptions | None = None,
    runner: Runner = run_command,
    **overrides: object,
) -> GitResult:
    """Pulls the configured branch from the remote.

    Args:
        options (SyncOptions | None, optional): Base options. Defaults to SyncOptions().
        runner (Runner, optional): Command runner. Defaults to `run_command`.
        **overrides: Individual option overrides (None values are ignored).

    Returns:
        GitResult: SUCCESS or FAILED. Never raises.
    """
    opts = _resolve(options, overrides)
    command = build_pull_command(opts)
    logger.info(f"PULL: {command}")

    # The `cd` prefix does the directory switch, not the runner.
    result = await runner(command, None)
    if result.success:
        return GitResult(SyncOutcome.SUCCESS, command, result.output)

    logger.error(f"PULL ERROR: {result.error}: {result.output}")
    return GitResult(SyncOutcome.FAILED, command, result.output, result.error)


async def push(
    options: SyncOptions | None = None,
    runner: Runner = run_command,
    **overrides: object,
) -> GitResult:
    """Stages everything, commits and pushes to the remote.

    A clean working tree makes the commit step fail; that case is reported as
    NOTHING_TO_SYNC rather than FAILED.

    Args:
        options (SyncOptions | None, optional): Base options. Defaults to SyncOptions().
        runner (Runner, optional): Command runner. Defaults to `run_command`.
        **overrides: Individual option overrides (None values are ignored).

    Returns:
        GitResult: SUCCESS, NOTHING_TO_SYNC or FAILED. Never raises.
    """
    opts = _resolve(options, overrides)
    command = build_push_command(opts)
    logger.info(f"PUSH: {command}")

    result = await runner(command, None)
    if result.success:
        return GitResult(SyncOutcome.SUCCESS, command, result.output)

    if is_nothing_to_commit(result):
        logger.info("PUSH: Nothing to commit, working tree clean.")
        return GitResult(SyncOutcome.NOTHING_TO_SYNC, command, result.output)

    logger.error(f"PUSH ERROR: {result.error}: {result.output}")
    return GitResult(SyncOutcome.FAILED, command, result.output, result.error)
