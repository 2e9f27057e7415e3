"""
Shared constants, structured logging, preferences and filesystem helpers
for the parse and move stages.
"""

from .constants import (
    DEBUG,
    DEFAULT_MOVE_TIMEOUT,
    DUPLICATES_DIRECTORY,
    STATUS_DRY_RUN,
    STATUS_FAIL,
    STATUS_OK,
    STATUS_SKIP,
    VIDEO_EXTENSIONS,
)
from .logger import LogLevel

__all__ = [
    "DEBUG",
    "DEFAULT_MOVE_TIMEOUT",
    "DUPLICATES_DIRECTORY",
    "VIDEO_EXTENSIONS",
    "STATUS_OK",
    "STATUS_SKIP",
    "STATUS_FAIL",
    "STATUS_DRY_RUN",
    "LogLevel",
]
