import argparse
import asyncio
import logging
import os
import subprocess
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import daemon, git_ops
from .config import CONFIG_FILE, Config
from .constants import APP_NAME, PID_FILE, REPOSITORY_DELIMITER
from .git_ops import GitResult, SyncOptions, SyncOutcome
from .repos import parse_repository_list, select_active

logger = logging.getLogger(APP_NAME)
console = Console()


def _options(conf: Config) -> SyncOptions | None:
    """Builds git options for the active repository, or reports that none exists."""
    repository = select_active(conf.sync.repositories)
    if repository is None:
        console.print(
            "[bold red]Not configured:[/bold red] no git repository found.\n"
            "Run [cyan]git-vault-sync config --set "
            'sync.repositories="/path/to/vault"[/cyan] to add one.'
        )
        return None
    return SyncOptions(
        root_path=repository,
        remote=conf.git.remote,
        branch=conf.git.branch,
        force=conf.git.force,
        commit_message=conf.git.commit_message,
    )


def _print_result(action: str, result: GitResult) -> None:
    if result.outcome is SyncOutcome.SUCCESS:
        console.print(f"[bold green]SUCCESS:[/bold green] {action} complete.")
    elif result.outcome is SyncOutcome.NOTHING_TO_SYNC:
        console.print(f"[green]{action}: nothing to commit.[/green]")
    else:
        console.print(f"[bold red]{action.upper()} ERROR:[/bold red] {result.error}")
    if result.output:
        console.print(f"[dim]{result.output}[/dim]")


def run_pull() -> None:
    """Pulls the active repository once."""
    conf = Config.load(Path.cwd())
    if (options := _options(conf)) is None:
        sys.exit(1)
    with console.status(f"Pulling {options.root_path}...", spinner="dots"):
        result = asyncio.run(git_ops.pull(options))
    _print_result("Pull", result)
    if not result.ok:
        sys.exit(1)


def run_push() -> None:
    """Commits and pushes the active repository once."""
    conf = Config.load(Path.cwd())
    if (options := _options(conf)) is None:
        sys.exit(1)
    with console.status(f"Pushing {options.root_path}...", spinner="dots"):
        result = asyncio.run(git_ops.push(options))
    _print_result("Push", result)
    if not result.ok:
        sys.exit(1)


def run_now() -> None:
    """Runs one full pull and push cycle."""
    daemon.setup_logging(interactive=True)
    report = daemon.run_once()
    if report is None or not (report.pull.ok and report.push.ok):
        sys.exit(1)


def show_status() -> None:
    """Displays daemon state, the settings and the candidate repositories."""
    pid_running = False
    if PID_FILE.exists():
        try:
            with open(PID_FILE) as f:
                pid = int(f.read().strip())
            os.kill(pid, 0)
            pid_running = True
        except (ValueError, OSError):
            pid_running = False

    conf = Config.load(Path.cwd())

    content = Text()
    content.append("Daemon:    ", style="bold")
    if pid_running:
        content.append("Active (Running)\n", style="bold green")
    else:
        content.append("Stopped\n", style="bold red")
    content.append("Auto sync: ", style="bold")
    if conf.sync.auto_sync_enabled:
        content.append(f"every {conf.sync.auto_sync_interval / 60:g} min\n", style="green")
    else:
        content.append("Disabled\n", style="yellow")
    content.append(f"Remote:    {conf.git.remote}/{conf.git.branch}")
    if conf.git.force:
        content.append(" (force)", style="dim")
    console.print(Panel(content, title="Sync Status", expand=False))

    candidates = parse_repository_list(conf.sync.repositories)
    if not candidates:
        console.print("[yellow]No repositories configured.[/yellow]")
        return

    active = select_active(conf.sync.repositories)
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Status")
    for candidate in candidates:
        display_path = candidate.replace(str(Path.home()), "~")
        if active is not None and Path(os.path.abspath(candidate)) == active:
            state = "[green]Active[/green]"
        elif (Path(candidate) / ".git").exists():
            state = "[dim]Standby[/dim]"
        else:
            state = "[red]No .git[/red]"
        table.add_row(display_path, state)
    console.print(table)


def open_config() -> None:
    """Opens the global configuration file in the system default editor."""
    if not CONFIG_FILE.exists():
        Config().save(CONFIG_FILE)

    editor = os.environ.get("EDITOR")
    if not editor:
        if sys.platform == "darwin":
            editor = "open"
        elif sys.platform.startswith("win"):
            editor = "notepad"
        else:
            editor = "nano"

    console.print(f"Opening [cyan]{CONFIG_FILE}[/cyan]...")

    try:
        subprocess.run([editor, str(CONFIG_FILE)])
    except OSError as e:
        console.print(f"[red]Could not open editor: {e}[/red]")


def set_config_value(assignment: str) -> None:
    """Updates a single `section.key=value` setting and saves the global file."""
    key, sep, raw = assignment.partition("=")
    section_name, dot, field_name = key.strip().partition(".")
    if not sep or not dot:
        console.print("[red]Expected section.key=value[/red]")
        sys.exit(1)

    conf = Config.load()
    section = getattr(conf, section_name, None)
    if section is None or field_name not in section.__dataclass_fields__:
        console.print(f"[red]Unknown setting: {key.strip()}[/red]")
        sys.exit(1)

    value = _coerce(raw.strip(), type(getattr(section, field_name)))
    try:
        value = Config.parse_value(field_name, value)
    except ValueError as e:
        console.print(f"[red]Invalid value for {key.strip()}: {e}[/red]")
        sys.exit(1)

    setattr(
        conf,
        section_name,
        Config._update_dataclass(section_name, section, {field_name: value}),
    )
    path = conf.save()
    console.print(f"[bold green]SUCCESS:[/bold green] {key.strip()} saved to {path}")


def _coerce(raw: str, current_type: type) -> object:
    if current_type is bool:
        return raw.lower() in ("1", "true", "yes", "on")
    if current_type in (int, float):
        try:
            return current_type(raw)
        except ValueError:
            return raw
    return raw.strip('"')


def add_repository(path: str) -> None:
    """Appends a vault directory to the configured repository list."""
    conf = Config.load()
    target = str(Path(path).expanduser().resolve())
    candidates = parse_repository_list(conf.sync.repositories)
    if target in candidates:
        console.print(f"Already configured: [cyan]{target}[/cyan]", style="yellow")
        return
    if not (Path(target) / ".git").exists():
        console.print(f"[yellow]WARNING:[/yellow] {target} has no .git directory yet.")
    candidates.append(target)
    conf.sync.repositories = REPOSITORY_DELIMITER.join(candidates)
    conf.save()
    console.print(f"✔ Added: [cyan]{target}[/cyan]", style="green")


def show_config_reference() -> None:
    """Displays a formatted table of all available configuration options."""
    table = Table(title="git-vault-sync Configuration Schema", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Type", style="dim")
    table.add_column("Default", style="yellow")
    table.add_column("Description")

    table.add_row(
        "sync",
        "auto_sync_enabled",
        "bool",
        "true",
        "Sync on a timer and on file changes.",
    )
    table.add_row(
        "",
        "auto_sync_interval",
        "int | str",
        '"10m"',
        "Time between periodic syncs (e.g., '10m', '1hr', 600).",
    )
    table.add_row(
        "",
        "repositories",
        "str",
        '""',
        "Candidate vault directories separated by ';'. The first with a .git wins.",
    )
    table.add_row(
        "",
        "time_format",
        "str",
        '"YYYY-MM-DD HH:mm:ss"',
        "Timestamp format used in status messages.",
    )
    table.add_row(
        "",
        "modify_debounce",
        "int | str",
        '"1m"',
        "Minimum time since the last push before an edit triggers a sync.",
    )
    table.add_row(
        "",
        "periodic_debounce",
        "int | str",
        "interval / 2",
        "Minimum time since the last push before a timer tick syncs.",
    )
    table.add_row("git", "remote", "str", '"origin"', "Remote to pull from and push to.")
    table.add_row("", "branch", "str", '"master"', "Branch to pull and push.")
    table.add_row("", "force", "bool", "true", "Append --force to every push.")
    table.add_row(
        "", "commit_message", "str", '"fix: auto sync"', "Automatic commit message."
    )
    table.add_row(
        "limits",
        "max_log_size",
        "int | str",
        '"5mb"',
        "Max size for log files before rotation (e.g., '5mb', '1gb').",
    )

    console.print(table)


def main() -> None:
    """Main entry point for the git-vault-sync CLI."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Keep a note vault in sync with a remote git repository.",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Run the sync daemon in the foreground")
    subparsers.add_parser("daemon", help="Run the sync daemon with file logging")
    subparsers.add_parser("now", help="Pull, commit and push once")
    subparsers.add_parser("pull", help="Pull remote changes")
    subparsers.add_parser("push", help="Commit and push local changes")
    subparsers.add_parser("status", help="Show daemon and repository status")

    add_parser = subparsers.add_parser("add", help="Add a vault directory")
    add_parser.add_argument("path", help="Path to the vault repository")

    config_parser = subparsers.add_parser(
        "config", help="Open global config file or view options"
    )
    config_parser.add_argument(
        "--list",
        "-l",
        action="store_true",
        help="List all available configuration options and their descriptions",
    )
    config_parser.add_argument(
        "--set",
        metavar="SECTION.KEY=VALUE",
        help="Update a single setting (e.g. git.branch=main)",
    )

    args = parser.parse_args()

    if args.command == "run":
        daemon.main(interactive=True)
    elif args.command == "daemon":
        daemon.main(interactive=False)
    elif args.command == "now":
        run_now()
    elif args.command == "pull":
        run_pull()
    elif args.command == "push":
        run_push()
    elif args.command == "status":
        show_status()
    elif args.command == "add":
        add_repository(args.path)
    elif args.command == "config":
        if args.set:
            set_config_value(args.set)
        elif args.list:
            show_config_reference()
        else:
            open_config()
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
