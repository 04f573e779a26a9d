import asyncio
import atexit
import logging
import os
import signal
import sys
from dataclasses import replace
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import Config
from .constants import APP_NAME, LOG_FILE, PID_FILE
from .scheduler import CycleReport, SyncScheduler
from .status import ConsoleStatus, StatusSurface
from .system import get_system
from .watcher import VaultWatcher

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)


def setup_logging(interactive: bool, max_log_size: int = 5 * 1024 * 1024) -> None:
    """Configures the logging subsystem.

    Args:
        interactive (bool): If True, logs to stdout. If False, logs to file/stderr
                            with rotation enabled.
        max_log_size (int, optional): Bytes before the log file rotates.
    """
    if logger.handlers:
        return

    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )

    # Always log to a stream (captured by systemd/launchd in daemon mode).
    stream_handler = logging.StreamHandler(
        sys.stderr if not interactive else sys.stdout
    )
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if not interactive:
        # In daemon mode, rotate logs to file.
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            LOG_FILE,
            maxBytes=max_log_size,
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


class VaultDaemon:
    """Wires the scheduler to the filesystem watcher, the timer and OS signals.

    Attributes:
        config (Config): The loaded configuration.
        scheduler (SyncScheduler): The sync core.
        watcher (VaultWatcher | None): Watches the active repository, if any.
    """

    def __init__(self, config: Config, status: StatusSurface) -> None:
        self.config = config
        self.scheduler = SyncScheduler(config.sync, config.git, status)
        self.watcher: VaultWatcher | None = None
        self._stop = asyncio.Event()

    def _watch(self, repository: Path | None) -> None:
        if self.watcher is not None:
            self.watcher.stop()
            self.watcher = None
        if repository is None:
            return
        self.watcher = VaultWatcher(repository, self.scheduler.on_file_event)
        self.watcher.start()

    def reload(self) -> None:
        """Re-reads the configuration files and applies them to the scheduler."""
        logger.info("RELOAD: Re-reading configuration.")
        previous = self.scheduler.active_repository
        self.config = Config.reload(Path.cwd())
        self.scheduler.update_config(self.config.sync, self.config.git)
        if self.scheduler.active_repository != previous:
            self._watch(self.scheduler.active_repository)

    def stop(self) -> None:
        """Requests a graceful shutdown."""
        self._stop.set()

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        handlers = {signal.SIGINT: self.stop, signal.SIGTERM: self.stop}
        if hasattr(signal, "SIGHUP"):
            handlers[signal.SIGHUP] = self.reload
        for sig, handler in handlers.items():
            try:
                loop.add_signal_handler(sig, handler)
            except NotImplementedError:
                # Windows event loops don't support signal handlers.
                logger.debug(f"Signal handler for {sig!r} unavailable.")

    async def serve(self) -> None:
        """Runs until stopped, then performs the final shutdown sync."""
        self._install_signal_handlers()
        self._watch(self.scheduler.active_repository)
        self.scheduler.on_start()
        try:
            await self._stop.wait()
        finally:
            logger.info("Shutting down, running final sync...")
            if self.watcher is not None:
                self.watcher.stop()
                self.watcher = None
            await self.scheduler.on_shutdown()


def _write_pid_file() -> None:
    try:
        PID_FILE.parent.mkdir(parents=True, exist_ok=True)
        with open(PID_FILE, "w") as f:
            f.write(str(os.getpid()))

        # Ensure cleanup on exit.
        atexit.register(lambda: PID_FILE.unlink(missing_ok=True))
    except OSError as e:
        logger.warning(f"Could not write PID file: {e}")


def run_once(config: Config | None = None) -> CycleReport | None:
    """Runs a single manual sync cycle and waits for it to settle.

    Args:
        config (Config | None, optional): Configuration to use. Defaults to
                                          loading it from disk.

    Returns:
        CycleReport | None: The cycle's results, or None if not configured.
    """
    config = config or Config.load(Path.cwd())
    # A one-off run has no indicator to keep alive.
    settings = replace(config.sync, progress_grace=0)
    status = ConsoleStatus(notifier=get_system())

    async def _run() -> CycleReport | None:
        scheduler = SyncScheduler(settings, config.git, status)
        report = await scheduler.sync_now()
        await scheduler.drain()
        return report

    return asyncio.run(_run())


def main(interactive: bool = False) -> None:
    """The daemon entry point.

    Args:
        interactive (bool, optional): Log to stdout instead of the rotating log file.
                                      Defaults to False.
    """
    config = Config.load(Path.cwd())
    setup_logging(interactive, config.limits.max_log_size)

    if not interactive:
        _write_pid_file()

    status = ConsoleStatus(notifier=get_system())
    daemon = VaultDaemon(config, status)
    try:
        asyncio.run(daemon.serve())
    except KeyboardInterrupt:
        logger.info("Interrupted.")


if __name__ == "__main__":
    main()
