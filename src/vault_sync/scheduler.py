"""Decides when the vault is synchronized and reports the outcome.

The scheduler is driven by plain hook calls (`on_start`, `on_file_event`,
`on_timer_tick`, `on_shutdown`, `sync_now`) and runs every cycle on the
current asyncio event loop. Cycles are not serialized: a manual sync may
overlap a timer-triggered one. Both record their settle times into the same
`SyncState`, so the last cycle to settle wins.
"""

import asyncio
import enum
import logging
import os
import time
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from . import git_ops
from .config import GitSettings, SyncSettings
from .constants import APP_NAME
from .git_ops import GitResult, SyncOptions, SyncOutcome
from .repos import select_active
from .status import (
    NOT_CONFIGURED,
    PULL_FAILED,
    PUSH_FAILED,
    SYNC_SUCCEEDED,
    UP_TO_DATE,
    RecordingStatus,
    StatusSurface,
    status_line,
)

logger = logging.getLogger(APP_NAME)

GitOperation = Callable[[SyncOptions], Awaitable[GitResult]]


class FileEventKind(enum.Enum):
    CREATED = "created"
    MODIFIED = "modified"
    RENAMED = "renamed"
    DELETED = "deleted"


class Trigger(enum.Enum):
    START = "start"
    TIMER = "timer"
    MODIFY = "modify"
    CREATE = "create"
    RENAME = "rename"
    DELETE = "delete"
    MANUAL = "manual"
    SHUTDOWN = "shutdown"


_EVENT_TRIGGERS = {
    FileEventKind.CREATED: Trigger.CREATE,
    FileEventKind.MODIFIED: Trigger.MODIFY,
    FileEventKind.RENAMED: Trigger.RENAME,
    FileEventKind.DELETED: Trigger.DELETE,
}


@dataclass
class SyncState:
    """Mutable bookkeeping owned by the scheduler.

    Attributes:
        last_pull (float | None): Epoch seconds when the last pull settled.
        last_push (float | None): Epoch seconds when the last push settled.
        in_progress_token (int | None): Generation of the cycle currently
            holding the progress indicator.
    """

    last_pull: float | None = None
    last_push: float | None = None
    in_progress_token: int | None = None


@dataclass
class CycleReport:
    """What a single sync cycle did."""

    trigger: Trigger
    repository: Path
    pull: GitResult
    push: GitResult
    status: str


class SyncScheduler:
    """Coordinates pull/push cycles for the active vault repository.

    Attributes:
        settings (SyncSettings): Scheduling settings.
        git (GitSettings): Remote, branch, force and message for every cycle.
        status (StatusSurface): Receives status text and progress changes.
        state (SyncState): Last pull/push times and the progress token.
        active_repository (Path | None): The resolved vault repository.
    """

    def __init__(
        self,
        settings: SyncSettings,
        git: GitSettings | None = None,
        status: StatusSurface | None = None,
        *,
        clock: Callable[[], float] = time.time,
        exists: Callable[[str], bool] = os.path.exists,
        pull: GitOperation = git_ops.pull,
        push: GitOperation = git_ops.push,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.git = git or GitSettings()
        self.status = status if status is not None else RecordingStatus()
        self.state = SyncState()
        self._clock = clock
        self._exists = exists
        self._pull = pull
        self._push = push
        self._sleep = sleep
        self._generation = 0
        self._tasks: set[asyncio.Task] = set()
        self._timer: asyncio.Task | None = None
        self._started = False
        self._unconfigured_noticed = False
        self.active_repository = select_active(settings.repositories, exists)

    # --- Configuration ---

    def update_config(
        self, settings: SyncSettings, git: GitSettings | None = None
    ) -> None:
        """Replaces the settings and re-resolves the active repository.

        Args:
            settings (SyncSettings): The new scheduling settings.
            git (GitSettings | None, optional): New git options. Defaults to
                                                keeping the current ones.
        """
        self.settings = replace(settings)
        if git is not None:
            self.git = replace(git)

        self.active_repository = select_active(settings.repositories, self._exists)
        self._unconfigured_noticed = False

        if not settings.auto_sync_enabled:
            self._stop_timer()
        elif self._started:
            self._start_timer()

        logger.info("Configuration updated.")

    def options(self) -> SyncOptions:
        """Builds the git options for the active repository."""
        return SyncOptions(
            root_path=self.active_repository,
            remote=self.git.remote,
            branch=self.git.branch,
            force=self.git.force,
            commit_message=self.git.commit_message,
        )

    # --- Hooks ---

    def on_start(self) -> asyncio.Task:
        """Starts the periodic timer and syncs once."""
        self._started = True
        self._start_timer()
        return self._spawn(self.run_cycle(Trigger.START))

    def on_file_event(self, kind: FileEventKind, path: str = "") -> asyncio.Task | None:
        """Reacts to a change inside the vault.

        Modifications are debounced against the last push; creations, renames
        and deletions always sync.

        Args:
            kind (FileEventKind): What happened to the file.
            path (str, optional): The affected path, used for logging only.

        Returns:
            asyncio.Task | None: The spawned cycle, or None if it was skipped.
        """
        if not self.settings.auto_sync_enabled:
            return None

        trigger = _EVENT_TRIGGERS[kind]
        if kind is FileEventKind.MODIFIED and not self._debounce_elapsed(
            self.settings.modify_debounce
        ):
            logger.debug(f"DEBOUNCED {trigger.value}: {path}")
            return None

        logger.info(f"EVENT {trigger.value}: {path}")
        return self._spawn(self.run_cycle(trigger))

    def on_timer_tick(self) -> asyncio.Task | None:
        """Handles a periodic timer tick, debounced against the last push."""
        if not self.settings.auto_sync_enabled:
            return None
        if not self._debounce_elapsed(self.settings.periodic_threshold):
            logger.debug("DEBOUNCED timer tick.")
            return None
        return self._spawn(self.run_cycle(Trigger.TIMER))

    async def sync_now(self) -> CycleReport | None:
        """Runs a manual cycle and waits for it to settle."""
        return await self.run_cycle(Trigger.MANUAL)

    async def on_shutdown(self) -> CycleReport | None:
        """Stops the timer, runs a final cycle and waits for in-flight work."""
        self._started = False
        self._stop_timer()
        report = await self.run_cycle(Trigger.SHUTDOWN)
        await self.drain()
        return report

    async def drain(self) -> None:
        """Waits until every spawned cycle and progress timer has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # --- Timer ---

    async def run_periodic(self) -> None:
        """Ticks every `auto_sync_interval` seconds until cancelled."""
        while True:
            await self._sleep(self.settings.auto_sync_interval)
            self.on_timer_tick()

    def _start_timer(self) -> None:
        if self._timer is not None or not self.settings.auto_sync_enabled:
            return
        self._timer = asyncio.get_running_loop().create_task(self.run_periodic())
        logger.info(
            f"Auto sync every {self.settings.auto_sync_interval:g}s enabled."
        )

    def _stop_timer(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        logger.info("Auto sync timer stopped.")

    # --- Cycle ---

    def _debounce_elapsed(self, threshold: float) -> bool:
        if self.state.last_push is None:
            return True
        return self._clock() - self.state.last_push > threshold

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(self._guarded(coro))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _guarded(self, coro: Coroutine[Any, Any, Any]) -> Any:
        try:
            return await coro
        except Exception:
            logger.exception("SYNC ERROR: unexpected failure in sync cycle")
            return None

    async def run_cycle(self, trigger: Trigger) -> CycleReport | None:
        """Pulls, then commits and pushes, then reports the outcome.

        Args:
            trigger (Trigger): What started the cycle.

        Returns:
            CycleReport | None: The cycle's results, or None when no repository
                                is configured.
        """
        repository = self.active_repository
        if repository is None:
            logger.warning(f"ABORTED {trigger.value}: {NOT_CONFIGURED}")
            self.status.set_text(NOT_CONFIGURED)
            # One notification per configuration, not one per timer tick.
            if not self._unconfigured_noticed:
                self._unconfigured_noticed = True
                self.status.notice(NOT_CONFIGURED)
            return None

        logger.info(f"SYNC {repository.name}: triggered by {trigger.value}")
        token = self._begin_progress()
        options = self.options()

        try:
            pull_result = await self._pull(options)
            self.state.last_pull = self._clock()

            push_result = await self._push(options)
            self.state.last_push = self._clock()
        finally:
            self._spawn(self._end_progress(token))

        text = self._describe(pull_result, push_result, self.state.last_push)
        self.status.set_text(text)
        if pull_result.ok and push_result.ok:
            logger.info(f"SUCCESS {repository.name}: {text}")
        else:
            logger.error(f"FAILED {repository.name}: {text}")

        return CycleReport(trigger, repository, pull_result, push_result, text)

    def _describe(self, pull: GitResult, push: GitResult, settled_at: float) -> str:
        if pull.outcome is SyncOutcome.FAILED:
            label = PULL_FAILED
        elif push.outcome is SyncOutcome.FAILED:
            label = PUSH_FAILED
        elif push.outcome is SyncOutcome.NOTHING_TO_SYNC:
            label = UP_TO_DATE
        else:
            label = SYNC_SUCCEEDED
        return status_line(label, settled_at, self.settings.time_format)

    # --- Progress indicator ---

    def _begin_progress(self) -> int:
        self._generation += 1
        self.state.in_progress_token = self._generation
        self.status.set_in_progress(True)
        return self._generation

    async def _end_progress(self, token: int) -> None:
        await self._sleep(self.settings.progress_grace)
        # A newer cycle owns the indicator now.
        if self.state.in_progress_token != token:
            return
        self.state.in_progress_token = None
        self.status.set_in_progress(False)
