"""
User preferences consumed (read-only) by the parser, the movers and the runner.

Preferences are a plain dataclass. ``UserPreferences.from_env()`` builds one
from ``TVMOVE_*`` environment variables (a ``.env`` file is loaded by
:mod:`tvmove.utils.constants`); the CLI then overrides individual fields from
its flags with :func:`dataclasses.replace`.

Recognized variables:

- ``TVMOVE_DESTINATION``: destination root directory
- ``TVMOVE_MOVE`` / ``TVMOVE_RENAME``: whether moving / renaming is selected
- ``TVMOVE_PRESERVE_MTIME``: keep the original modification time (else "now")
- ``TVMOVE_OVERWRITE``: always overwrite an existing destination
- ``TVMOVE_REMOVE_EMPTY_DIRS``: prune source directories emptied by a move
- ``TVMOVE_CLEANUP_DUPLICATES``: look for duplicate videos after each move
- ``TVMOVE_DUPLICATES_DIR``: name of the reserved duplicates subdirectory
- ``TVMOVE_SEASON_PREFIX`` / ``TVMOVE_SEASON_LEADING_ZERO``: season folder naming
- ``TVMOVE_TIMEOUT``: seconds each move may take before it is cancelled
- ``TVMOVE_SHOW_OVERRIDES``: ``from=to`` pairs separated by ``;``
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from tvmove.utils import logger
from tvmove.utils.constants import (
    DEFAULT_MOVE_TIMEOUT,
    DEFAULT_SEASON_PREFIX,
    DUPLICATES_DIRECTORY,
    ENV_PREFIX,
)
from tvmove.utils.logger import LogLevel

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.log("settings.invalid", LogLevel.WARN, name=ENV_PREFIX + name, value=raw, using=default)
    return default


def _env_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.log("settings.invalid", LogLevel.WARN, name=ENV_PREFIX + name, value=raw, using=default)
        return default


def parse_overrides(text: str) -> Dict[str, str]:
    """Parse ``"from=to;from2=to2"`` into a mapping, skipping malformed pairs."""
    overrides = {}
    for pair in text.split(";"):
        if "=" not in pair:
            continue
        source, target = pair.split("=", 1)
        if source.strip() and target.strip():
            overrides[source.strip()] = target.strip()
    return overrides


@dataclass
class UserPreferences:
    destination_directory: Optional[Path] = None
    move_selected: bool = True
    rename_selected: bool = True
    preserve_modification_time: bool = True
    always_overwrite_destination: bool = False
    remove_emptied_directories: bool = False
    cleanup_duplicate_video_files: bool = False
    duplicates_directory: str = DUPLICATES_DIRECTORY
    season_prefix: str = DEFAULT_SEASON_PREFIX
    season_prefix_leading_zero: bool = True
    move_timeout: int = DEFAULT_MOVE_TIMEOUT
    show_name_overrides: Dict[str, str] = field(default_factory=dict)

    @property
    def is_move_enabled(self) -> bool:
        """Moving happens only when it is selected and there is somewhere to move to."""
        return self.move_selected and self.destination_directory is not None

    def resolve_show_name(self, name: str) -> str:
        """Apply a show-name override (case-insensitive); unknown names pass through."""
        if not name:
            return name
        wanted = name.strip().lower()
        for source, target in self.show_name_overrides.items():
            if source.strip().lower() == wanted:
                return target
        return name

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "UserPreferences":
        """Build preferences from ``TVMOVE_*`` variables, falling back to defaults."""
        env = os.environ if env is None else env
        destination = env.get(ENV_PREFIX + "DESTINATION")
        return cls(
            destination_directory=Path(destination).expanduser() if destination else None,
            move_selected=_env_bool(env, "MOVE", True),
            rename_selected=_env_bool(env, "RENAME", True),
            preserve_modification_time=_env_bool(env, "PRESERVE_MTIME", True),
            always_overwrite_destination=_env_bool(env, "OVERWRITE", False),
            remove_emptied_directories=_env_bool(env, "REMOVE_EMPTY_DIRS", False),
            cleanup_duplicate_video_files=_env_bool(env, "CLEANUP_DUPLICATES", False),
            duplicates_directory=env.get(ENV_PREFIX + "DUPLICATES_DIR") or DUPLICATES_DIRECTORY,
            season_prefix=env.get(ENV_PREFIX + "SEASON_PREFIX", DEFAULT_SEASON_PREFIX),
            season_prefix_leading_zero=_env_bool(env, "SEASON_LEADING_ZERO", True),
            move_timeout=_env_int(env, "TIMEOUT", DEFAULT_MOVE_TIMEOUT),
            show_name_overrides=parse_overrides(env.get(ENV_PREFIX + "SHOW_OVERRIDES", "")),
        )
