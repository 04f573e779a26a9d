import logging
import re
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_BRANCH,
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_REMOTE,
    DEFAULT_TIME_FORMAT,
    LOCAL_CONFIG_NAME,
)

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '5MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | float | str) -> float:
    """Converts human-readable time strings (e.g., '1hr', '30m', '500ms') to seconds.

    A bare number, such as '900', is taken as seconds.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(ms|s|sec|m|min|h|hr)?s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2) or "s"
    multiplier = {
        "ms": 0.001,
        "s": 1,
        "sec": 1,
        "m": 60,
        "min": 60,
        "h": 3600,
        "hr": 3600,
    }
    return num * multiplier[unit]


@dataclass
class SyncSettings:
    """Sync scheduling settings.

    Attributes:
        auto_sync_enabled (bool): Whether timer ticks and file events trigger syncs.
        auto_sync_interval (float): Seconds between periodic timer ticks.
        repositories (str): Semicolon-separated candidate vault directories.
        time_format (str): Display format for status timestamps (YYYY-MM-DD style).
        modify_debounce (float): Seconds since the last push before a file
            modification may trigger a new sync.
        periodic_debounce (float | None): Seconds since the last push before a
            timer tick may trigger a new sync. Defaults to half the interval.
        progress_grace (float): Seconds the progress indicator stays on after a
            cycle settles.
    """

    auto_sync_enabled: bool = True
    auto_sync_interval: float = 600
    repositories: str = ""
    time_format: str = DEFAULT_TIME_FORMAT
    modify_debounce: float = 60
    periodic_debounce: float | None = None
    progress_grace: float = 2.0

    @property
    def periodic_threshold(self) -> float:
        """The effective debounce applied to periodic timer ticks."""
        if self.periodic_debounce is None:
            # Must stay below the interval: a push settles after its own tick.
            return self.auto_sync_interval / 2
        return self.periodic_debounce


@dataclass
class GitSettings:
    """Options forwarded to every pull and push.

    Attributes:
        remote (str): The git remote to sync with.
        branch (str): The branch pulled from and pushed to.
        force (bool): Whether pushes are forced.
        commit_message (str): Message used for automatic commits.
    """

    remote: str = DEFAULT_REMOTE
    branch: str = DEFAULT_BRANCH
    force: bool = True
    commit_message: str = DEFAULT_COMMIT_MESSAGE


@dataclass
class LimitsSettings:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for log files before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


_TIME_KEYS = {
    "auto_sync_interval",
    "modify_debounce",
    "periodic_debounce",
    "progress_grace",
}


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        sync (SyncSettings): Scheduling settings.
        git (GitSettings): Pull/push options.
        limits (LimitsSettings): Resource limits.
    """

    sync: SyncSettings = field(default_factory=SyncSettings)
    git: GitSettings = field(default_factory=GitSettings)
    limits: LimitsSettings = field(default_factory=LimitsSettings)

    # Cache for the base global configuration
    _global_cache: "Config | None" = None

    @classmethod
    def load(cls, local_dir: Path | None = None) -> "Config":
        """Loads and merges configuration from defaults, global, and local sources.

        Args:
            local_dir (Path | None): Directory to search for a `vault-sync.toml`
                override file.

        Returns:
            Config: The fully merged configuration object.
        """
        # 1. Load or Retrieve Global Config
        if cls._global_cache is None:
            instance = cls()
            if CONFIG_FILE.exists():
                instance._merge_from_file(CONFIG_FILE)
            cls._global_cache = instance

        # Sections are copied so callers can't mutate the cache.
        cached = cls._global_cache
        instance = cls(
            sync=replace(cached.sync),
            git=replace(cached.git),
            limits=replace(cached.limits),
        )

        # 2. Load Local Config (if applicable)
        if local_dir:
            local_toml = local_dir / LOCAL_CONFIG_NAME
            if local_toml.exists():
                instance._merge_from_file(local_toml)

        return instance

    @classmethod
    def reload(cls, local_dir: Path | None = None) -> "Config":
        """Drops the cached global configuration and loads it again."""
        cls._global_cache = None
        return cls.load(local_dir)

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if not data:
                return

            if "sync" in data:
                sync_data = dict(data["sync"])
                # Minutes are accepted for parity with the interval setting UI.
                if "auto_sync_interval_minutes" in sync_data:
                    minutes = sync_data.pop("auto_sync_interval_minutes")
                    sync_data.setdefault("auto_sync_interval", f"{minutes}m")
                self.sync = self._update_dataclass("sync", self.sync, sync_data)
            if "git" in data:
                self.git = self._update_dataclass("git", self.git, data["git"])
            if "limits" in data:
                self.limits = self._update_dataclass(
                    "limits", self.limits, data["limits"]
                )

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    @staticmethod
    def parse_value(key: str, value: Any) -> Any:
        """Parses a raw setting, raising ValueError for malformed sizes and times."""
        if key == "max_log_size":
            return parse_size(value)
        if key in _TIME_KEYS:
            return parse_time(value)
        return value

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                filtered_updates[k] = Config.parse_value(k, v)
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)

    def save(self, path: Path | None = None) -> Path:
        """Persists the current settings as TOML.

        Args:
            path (Path | None): Target file. Defaults to the global config file.

        Returns:
            Path: The file that was written.
        """
        target = path or CONFIG_FILE
        target.parent.mkdir(parents=True, exist_ok=True)

        lines = ["# git-vault-sync configuration", ""]
        for section_name in ("sync", "git", "limits"):
            section = getattr(self, section_name)
            lines.append(f"[{section_name}]")
            for f in fields(section):
                value = getattr(section, f.name)
                if value is None:
                    continue
                lines.append(f"{f.name} = {_toml_value(value)}")
            lines.append("")

        target.write_text("\n".join(lines))
        logger.info(f"Saved configuration to {target}")

        if target == CONFIG_FILE:
            type(self)._global_cache = None
        return target


def _toml_value(value: Any) -> str:
    """Renders a scalar setting as a TOML literal."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
