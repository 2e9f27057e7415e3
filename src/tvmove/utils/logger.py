"""
Structured, thread-safe event logging for the parse and move stages.

Each entry is a single line::

    2024-05-01 12:00:00 | [WARN] | move.failed | source="/in/a.mkv" | dest=null | worker="w1"

Entries carry a UTC timestamp, a level, a dotted event name and key=value
fields. The worker field names the thread that produced the line (``main``
for the main thread, ``w1``, ``w2``... for the move worker and the monitor),
which is what makes a batch of concurrent moves readable after the fact.

Lines are written through ``tqdm.write`` so they never tear a progress bar
that is being drawn for a copy. An optional log file receives the same lines.
"""
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from tqdm import tqdm

_print_lock = threading.Lock()
_worker_lock = threading.Lock()
_worker_ids: Dict[int, str] = {}
_worker_counter = 0
_log_file: Optional[TextIO] = None
_separator = " | "


class LogLevel(Enum):
    """Log level enumeration."""
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4


_current_level = LogLevel.INFO


def set_log_level(level: LogLevel) -> None:
    """Set the minimum level that will be written."""
    global _current_level
    _current_level = level


def get_log_level() -> LogLevel:
    return _current_level


def set_log_file(path: Optional[Path]) -> Optional[Path]:
    """
    Mirror every log line into ``path`` (appending). Passing None closes the
    current file. Returns the resolved path that is now in use.
    """
    global _log_file
    with _print_lock:
        if _log_file is not None:
            _log_file.close()
            _log_file = None
        if path is None:
            return None
        resolved = Path(path).expanduser().resolve()
        resolved.parent.mkdir(parents=True, exist_ok=True)
        _log_file = open(resolved, "a", encoding="utf-8", buffering=1)
        return resolved


def _format_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    # Paths, enums and strings are quoted; escape so an entry stays on one line.
    text = value.name if isinstance(value, Enum) else str(value)
    text = text.replace("\r", "\\r").replace("\n", "\\n").replace('"', '\\"')
    return f'"{text}"'


def _format_kv(data: Dict[str, Any]) -> str:
    return _separator.join(f"{key}={_format_value(value)}" for key, value in data.items())


def _write_line(text: str) -> None:
    tqdm.write(text)
    if _log_file is not None:
        _log_file.write(text + "\n")


def is_enabled(level: LogLevel) -> bool:
    """Whether a message at ``level`` would be written."""
    return level.value >= _current_level.value


def log(event: str, level: LogLevel = LogLevel.INFO, **kwargs) -> None:
    """
    Write one structured log entry.

    Args:
        event: Dotted event name (e.g. 'move.renamed', 'runner.timeout')
        level: Log level; entries below the current level are dropped
        **kwargs: Fields appended as key=value pairs
    """
    if not is_enabled(level):
        return

    if "worker" not in kwargs:
        kwargs["worker"] = get_worker_id()

    with _print_lock:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        header = f"{timestamp}{_separator}[{level.name}]{_separator}{event}"
        if kwargs:
            _write_line(f"{header}{_separator}{_format_kv(kwargs)}")
        else:
            _write_line(header)


def log_exception(event: str, exc: BaseException, level: LogLevel = LogLevel.WARN, **kwargs) -> None:
    """Log an entry describing ``exc`` (type and message) alongside ``kwargs``."""
    log(event, level, error_type=type(exc).__name__, error=str(exc), **kwargs)


def safe_print(*args, **kwargs) -> None:
    """
    Thread-safe print for plain console output (plans, summaries).
    Use log() for anything a user might want to grep later.
    """
    with _print_lock:
        tqdm.write(" ".join(str(a) for a in args), file=kwargs.get("file"))


def get_worker_id() -> str:
    """Short identifier for the current thread: 'main', 'w1', 'w2', ..."""
    global _worker_counter
    thread = threading.current_thread()

    if thread is threading.main_thread():
        return "main"

    worker_id = _worker_ids.get(thread.ident)
    if worker_id is not None:
        return worker_id

    with _worker_lock:
        _worker_counter += 1
        worker_id = f"w{_worker_counter}"
        _worker_ids[thread.ident] = worker_id
        return worker_id
