"""Filesystem watcher that feeds vault changes into the sync scheduler."""

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .constants import APP_NAME
from .scheduler import FileEventKind

logger = logging.getLogger(APP_NAME)

_IGNORE_PARTS = {".git"}

_KINDS = {
    EVENT_TYPE_CREATED: FileEventKind.CREATED,
    EVENT_TYPE_MODIFIED: FileEventKind.MODIFIED,
    EVENT_TYPE_MOVED: FileEventKind.RENAMED,
    EVENT_TYPE_DELETED: FileEventKind.DELETED,
}

EventCallback = Callable[[FileEventKind, str], object]


def _should_ignore(path: str) -> bool:
    """Return True if the path lies inside the repository's git directory."""
    return any(part in _IGNORE_PARTS for part in Path(path).parts)


def classify(event: FileSystemEvent) -> FileEventKind | None:
    """Maps a watchdog event onto a vault change kind.

    Returns:
        FileEventKind | None: The kind, or None for events that never sync
        (git internals, directory modifications, opened/closed notifications).
    """
    kind = _KINDS.get(event.event_type)
    if kind is None:
        return None
    if event.is_directory and kind is FileEventKind.MODIFIED:
        return None
    paths = [event.src_path, getattr(event, "dest_path", "") or ""]
    if all(_should_ignore(str(p)) for p in paths if p):
        return None
    return kind


class _LoopHandler(FileSystemEventHandler):
    """Forwards classified events from the observer thread onto the event loop."""

    def __init__(
        self, loop: asyncio.AbstractEventLoop, callback: EventCallback
    ) -> None:
        super().__init__()
        self._loop = loop
        self._callback = callback

    def on_any_event(self, event: FileSystemEvent) -> None:
        kind = classify(event)
        if kind is None:
            return
        path = str(getattr(event, "dest_path", "") or event.src_path)
        self._loop.call_soon_threadsafe(self._callback, kind, path)


class VaultWatcher:
    """Watches a vault directory recursively and reports changes to a callback.

    The callback always runs on the event loop given at construction, never on
    watchdog's observer thread.
    """

    def __init__(
        self,
        vault_path: Path,
        callback: EventCallback,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._vault_path = Path(vault_path).resolve()
        self._loop = loop or asyncio.get_running_loop()
        self._handler = _LoopHandler(self._loop, callback)
        self._observer: Observer | None = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        """Begin watching the vault directory."""
        if self._observer is not None:
            return
        self._observer = Observer()
        self._observer.schedule(self._handler, str(self._vault_path), recursive=True)
        self._observer.start()
        logger.info(f"Watching {self._vault_path} for changes")

    def stop(self) -> None:
        """Stop watching and join the observer thread."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5)
        self._observer = None
        logger.info(f"Stopped watching {self._vault_path}")
