import datetime
import re
from typing import Protocol

from rich.console import Console

from .constants import APP_NAME, DEFAULT_TIME_FORMAT

# Longest tokens first so "YYYY" wins over "YY".
_TOKENS = {
    "YYYY": "%Y",
    "YY": "%y",
    "MM": "%m",
    "DD": "%d",
    "HH": "%H",
    "hh": "%I",
    "mm": "%M",
    "ss": "%S",
    "A": "%p",
}
_TOKEN_RE = re.compile("|".join(sorted(_TOKENS, key=len, reverse=True)))

SYNC_SUCCEEDED = "Sync succeeded"
UP_TO_DATE = "Up to date"
PULL_FAILED = "Pull failed"
PUSH_FAILED = "Push failed"
NOT_CONFIGURED = "Not configured: no git repository found"


def to_strftime(pattern: str) -> str:
    """Translates a `YYYY-MM-DD HH:mm:ss` style pattern into strftime syntax."""
    escaped = pattern.replace("%", "%%")
    return _TOKEN_RE.sub(lambda m: _TOKENS[m.group(0)], escaped)


def format_timestamp(ts: float, pattern: str = DEFAULT_TIME_FORMAT) -> str:
    """Formats an epoch timestamp with a `YYYY-MM-DD HH:mm:ss` style pattern.

    Args:
        ts (float): Seconds since the epoch.
        pattern (str, optional): The display pattern. Defaults to DEFAULT_TIME_FORMAT.

    Returns:
        str: The formatted local time.
    """
    return datetime.datetime.fromtimestamp(ts).strftime(to_strftime(pattern))


def status_line(label: str, ts: float, pattern: str = DEFAULT_TIME_FORMAT) -> str:
    """Builds a status text such as `Sync succeeded: 2024-01-01 10:00:00`."""
    return f"{label}: {format_timestamp(ts, pattern)}"


class StatusSurface(Protocol):
    """Where the scheduler reports progress and results."""

    def set_text(self, text: str) -> None: ...

    def set_in_progress(self, in_progress: bool) -> None: ...

    def notice(self, text: str) -> None: ...


class RecordingStatus:
    """A status surface that only remembers what it was told."""

    def __init__(self) -> None:
        self.text = ""
        self.in_progress = False
        self.history: list[str] = []
        self.notices: list[str] = []

    def set_text(self, text: str) -> None:
        self.text = text
        self.history.append(text)

    def set_in_progress(self, in_progress: bool) -> None:
        self.in_progress = in_progress

    def notice(self, text: str) -> None:
        self.notices.append(text)


class ConsoleStatus(RecordingStatus):
    """Renders status changes to the terminal with rich.

    Notices are also forwarded to the desktop notifier when one is given.
    """

    def __init__(self, console: Console | None = None, notifier=None) -> None:
        super().__init__()
        self.console = console or Console()
        self.notifier = notifier

    def set_text(self, text: str) -> None:
        super().set_text(text)
        style = "red" if "failed" in text.lower() else "green"
        self.console.print(f"[{style}]{text}[/{style}]")

    def set_in_progress(self, in_progress: bool) -> None:
        if in_progress and not self.in_progress:
            self.console.print("[dim]Syncing...[/dim]")
        super().set_in_progress(in_progress)

    def notice(self, text: str) -> None:
        super().notice(text)
        self.console.print(f"[bold yellow]NOTICE:[/bold yellow] {text}")
        if self.notifier is not None:
            self.notifier.notify(APP_NAME, text)
