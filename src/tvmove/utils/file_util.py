"""
Filesystem and filename utilities used by the movers and the batch runner.

Everything here is a thin, logged wrapper around an ``os``/``pathlib``
primitive. The wrappers report failure through their return value (False or
None) instead of raising, so callers can turn any problem into a per-file
status without try/except at every step:

- renaming with result introspection (``rename_file``)
- buffered copying with throttled progress and cooperative interruption
  (``copy_with_updates``)
- destination directory probing and creation (``ensure_writable_directory``)
- same-filesystem detection (``are_same_disk``)
- pruning of emptied directories (``remove_while_empty``, ``prune_empty_parents``)
- filename text helpers (base name, extension, sanitising for the destination)
"""
import os
import re
import threading
from pathlib import Path
from typing import Iterable, Optional

from tqdm import tqdm

from tvmove.utils import logger
from tvmove.utils.constants import COPY_BUFFER_SIZE, PROGRESS_NOTIFY_BYTES, VIDEO_EXTENSIONS
from tvmove.utils.logger import LogLevel

# Characters that may not appear in a filename on at least one supported platform,
# mapped to their replacement ("" removes the character).
_ILLEGAL_CHARACTER_MAP = {
    "\\": "-",
    "/": "-",
    ":": "-",
    "*": "-",
    "|": "-",
    '"': "'",
    "`": "'",
    "?": "",
    "<": "",
    ">": "",
}
_ILLEGAL_TRANSLATION = str.maketrans(_ILLEGAL_CHARACTER_MAP)


def normalize_text(text: str) -> str:
    """Normalize text by replacing separators with spaces and collapsing whitespace."""
    text = text.replace("_", " ").replace(".", " ")
    return re.sub(r"\s+", " ", text).strip()


def is_legal_filename_character(ch: str) -> bool:
    return ch not in _ILLEGAL_CHARACTER_MAP


def replace_illegal_characters(name: str) -> str:
    """Replace or drop characters that are illegal in filenames; whitespace is left alone."""
    return name.translate(_ILLEGAL_TRANSLATION)


def sanitise_title(title: str) -> str:
    """
    Make a show or episode title safe to use as part of a filename.

    Surrounding whitespace is trimmed first, then illegal characters are
    replaced, so ``"? (2021)"`` becomes ``" (2021)"``.
    """
    return replace_illegal_characters(title.strip())


def get_extension(filename: str) -> str:
    """The suffix of ``filename`` including the dot, or "" when there is none."""
    dot = filename.rfind(".")
    if dot <= 0:
        return ""
    return filename[dot:]


def get_base_name(filename: str) -> str:
    """``filename`` without its extension."""
    if not filename:
        return ""
    dot = filename.rfind(".")
    if dot <= 0:
        return filename
    return filename[:dot]


def remove_last(text: str, match: str) -> str:
    """
    Remove the last case-insensitive occurrence of ``match`` from ``text``.
    An occurrence at the very start of ``text`` is left in place.
    """
    if not text or not match:
        return text
    idx = text.lower().rfind(match.lower())
    if idx > 0:
        return text[:idx] + text[idx + len(match):]
    return text


def format_file_size(num_bytes: int) -> str:
    return tqdm.format_sizeof(num_bytes, "B", 1024)


def has_video_extension(filename: str) -> bool:
    if not filename:
        return False
    return get_extension(filename).lower() in VIDEO_EXTENSIONS


def safe_path(p: Optional[Path]) -> str:
    return "<null>" if p is None else str(p)


def delete_file(file: Optional[Path]) -> bool:
    """Delete a regular file. True only if it existed and is now gone."""
    if file is None:
        logger.log("fs.delete.skipped", LogLevel.WARN, reason="path is null")
        return False
    if not file.exists():
        logger.log("fs.delete.skipped", LogLevel.WARN, path=file, reason="does not exist")
        return False
    try:
        file.unlink()
        return True
    except PermissionError:
        logger.log("fs.delete.failed", LogLevel.WARN, path=file, reason="access denied")
    except OSError as e:
        logger.log_exception("fs.delete.failed", e, path=file)
    return False


def delete_files(files: Iterable[Path]) -> int:
    """Delete each file in ``files``; returns how many were actually deleted."""
    files = list(files)
    deleted = 0
    for file in files:
        if not file.exists():
            logger.log("fs.delete.missing", LogLevel.DEBUG, path=file)
            continue
        try:
            file.unlink()
            logger.log("fs.delete", LogLevel.DEBUG, path=file)
            deleted += 1
        except OSError as e:
            logger.log_exception("fs.delete.failed", e, path=file)
    if deleted < len(files):
        logger.log("fs.delete.partial", LogLevel.WARN, deleted=deleted, requested=len(files))
    return deleted


def _unexpected_move_result(src_file: Path, dest_file: Path, actual_dest: Optional[Path]) -> Optional[Path]:
    """
    Make sense of a rename that neither cleanly succeeded nor cleanly did nothing.
    Returns a path only when the file demonstrably went somewhere other than
    ``dest_file``.
    """
    if src_file.exists():
        # The original is untouched; anything at the destination is a partial copy.
        for candidate in (dest_file, actual_dest):
            if candidate is not None and candidate.exists():
                logger.log("fs.rename.partial", LogLevel.WARN, source=src_file, dest=candidate)
        return None
    if dest_file.exists():
        logger.log("fs.rename.inconsistent", LogLevel.WARN, source=src_file, dest=dest_file,
                   msg="source gone and destination present, but the rename reported failure")
        return None
    if actual_dest is None:
        logger.log("fs.rename.lost", LogLevel.ERROR, source=src_file, dest=dest_file)
        return None
    if actual_dest.exists():
        logger.log("fs.rename.elsewhere", LogLevel.WARN, source=src_file, actual=actual_dest)
    return actual_dest


def rename_file(src_file: Optional[Path], dest_file: Optional[Path], overwrite: bool = False) -> Optional[Path]:
    """
    Rename ``src_file`` to ``dest_file`` and return where the file actually ended up.

    Returns None when nothing was moved. The caller compares the returned path
    with the one it asked for; a mismatch means the platform did something
    unexpected and must not be silently accepted.
    """
    if src_file is None or dest_file is None:
        logger.log("fs.rename.skipped", LogLevel.WARN, source=safe_path(src_file), dest=safe_path(dest_file),
                   reason="src/dest is null")
        return None
    if not src_file.exists():
        logger.log("fs.rename.skipped", LogLevel.WARN, source=src_file, reason="does not exist")
        return None
    if dest_file.exists():
        if dest_file.is_dir():
            logger.log("fs.rename.skipped", LogLevel.WARN, dest=dest_file, reason="destination is a directory")
            return None
        if not overwrite:
            logger.log("fs.rename.skipped", LogLevel.WARN, dest=dest_file, reason="will not overwrite existing file")
            return None
        logger.log("fs.rename.overwrite", LogLevel.INFO, dest=dest_file)

    actual_dest = None
    try:
        if overwrite:
            os.replace(src_file, dest_file)
        else:
            os.rename(src_file, dest_file)
        actual_dest = dest_file
        if actual_dest.exists():
            return actual_dest
    except PermissionError:
        logger.log("fs.rename.failed", LogLevel.WARN, source=src_file, reason="access denied")
    except OSError as e:
        logger.log_exception("fs.rename.failed", e, source=src_file, dest=dest_file)

    if src_file.exists() and not dest_file.exists():
        # Nothing happened.
        return None
    return _unexpected_move_result(src_file, dest_file, actual_dest)


def are_same_disk(path_a: Path, path_b: Path) -> bool:
    """True when both (existing) paths live on the same filesystem/device."""
    if not path_a.exists():
        logger.log("fs.same_disk.missing", LogLevel.WARN, path=path_a)
        return False
    if not path_b.exists():
        logger.log("fs.same_disk.missing", LogLevel.WARN, path=path_b)
        return False
    try:
        return os.stat(path_a).st_dev == os.stat(path_b).st_dev
    except OSError as e:
        logger.log_exception("fs.same_disk.failed", e, path_a=path_a, path_b=path_b)
        return False


def is_same_file(path1: Path, path2: Path) -> bool:
    try:
        if not path2.exists():
            return False
        return os.path.samefile(path1, path2)
    except OSError as e:
        logger.log_exception("fs.same_file.failed", e, path1=path1, path2=path2)
        return False


def mkdirs(directory: Path) -> bool:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.log_exception("fs.mkdirs.failed", e, path=directory)
        return False
    return directory.exists()


def copy_with_updates(source: Path, dest: Path, observer=None,
                      interrupted: Optional[threading.Event] = None) -> bool:
    """
    Stream ``source`` into ``dest`` with a large buffer, reporting progress.

    The observer (if any) is told about progress roughly every
    ``PROGRESS_NOTIFY_BYTES`` and once more at the end. If ``interrupted`` is
    set between two buffer reads, copying stops and False is returned; the
    partial destination is left for the caller's failure path to clean up.
    """
    ok = False
    try:
        with open(dest, "wb") as fos, open(source, "rb") as fis:
            copied = 0
            next_notify_at = PROGRESS_NOTIFY_BYTES
            finished = False
            while True:
                chunk = fis.read(COPY_BUFFER_SIZE)
                if not chunk:
                    finished = True
                    break
                fos.write(chunk)
                copied += len(chunk)

                if observer is not None and copied >= next_notify_at:
                    observer.set_progress_status(format_file_size(copied))
                    observer.set_progress_value(copied)
                    next_notify_at = copied + PROGRESS_NOTIFY_BYTES

                if interrupted is not None and interrupted.is_set():
                    logger.log("fs.copy.interrupted", LogLevel.DEBUG, source=source, copied=copied)
                    break

            # Final notification so the observer reaches 100%.
            if observer is not None:
                observer.set_progress_status(format_file_size(copied))
                observer.set_progress_value(copied)
            ok = finished
    except OSError as e:
        logger.log_exception("fs.copy.failed", e, source=source, dest=dest)
        ok = False

    if not ok:
        logger.log("fs.copy.incomplete", LogLevel.WARN, source=source, dest=dest)
    return ok


def existing_ancestor(check_path: Optional[Path]) -> Optional[Path]:
    """The nearest ancestor of ``check_path`` (itself included) that exists."""
    if check_path is None:
        return None
    existent = check_path
    while not existent.exists():
        parent = existent.parent
        if parent == existent:
            return None
        existent = parent
    return existent


def is_writable_directory(path: Optional[Path]) -> bool:
    return path is not None and path.is_dir() and os.access(path, os.W_OK)


def check_for_creatable_directory(path: Path) -> bool:
    """Whether ``path`` exists as a directory or could be created under an existing one."""
    ancestor = existing_ancestor(path)
    if ancestor is None:
        return False
    return ancestor.is_dir()


def ensure_writable_directory(dest_dir: Path) -> bool:
    """Create ``dest_dir`` if needed and confirm it is a writable directory."""
    if not dest_dir.exists():
        try:
            dest_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.log_exception("fs.mkdirs.failed", e, LogLevel.ERROR, path=dest_dir)
            return False
    if not dest_dir.exists():
        logger.log("fs.dest.missing", LogLevel.WARN, path=dest_dir, msg="could not create destination directory")
        return False
    if not dest_dir.is_dir():
        logger.log("fs.dest.not_directory", LogLevel.WARN, path=dest_dir)
        return False
    if not os.access(dest_dir, os.W_OK):
        logger.log("fs.dest.not_writable", LogLevel.WARN, path=dest_dir)
        return False
    return True


def is_dir_empty(directory: Path) -> bool:
    try:
        with os.scandir(directory) as entries:
            return next(entries, None) is None
    except OSError as e:
        logger.log_exception("fs.scan.failed", e, path=directory)
        return False


def rmdir(directory: Path) -> bool:
    if not directory.is_dir():
        return False
    try:
        directory.rmdir()
    except OSError as e:
        logger.log_exception("fs.rmdir.failed", e, path=directory)
        return False
    return not directory.exists()


def _is_stop_dir(directory: Path, stop_at: Optional[Path]) -> bool:
    if stop_at is None:
        return False
    if directory == stop_at:
        return True
    return stop_at.exists() and is_same_file(directory, stop_at)


def remove_while_empty(directory: Optional[Path], stop_at: Optional[Path] = None) -> bool:
    """
    Remove ``directory`` if empty, then its parent if that is now empty, and so on.

    Climbing stops at the first non-empty directory, at ``stop_at`` (which is
    never removed), or at the filesystem root. Returns False only when an
    empty directory could not be removed.
    """
    while directory is not None and directory.exists() and directory.is_dir():
        if _is_stop_dir(directory, stop_at):
            return True
        if not is_dir_empty(directory):
            # Not empty: leaving it is the correct outcome.
            return True
        parent = directory.parent
        if not rmdir(directory):
            return False
        logger.log("fs.rmdir", LogLevel.INFO, path=directory)
        if parent == directory:
            break
        directory = parent
    return True


def prune_empty_parents(file_path: Path, stop_at: Optional[Path]) -> None:
    """
    After a failed move, remove directories created for ``file_path`` that are
    still empty, walking upward until ``stop_at``. Without ``stop_at`` nothing
    is removed, since there is no known boundary for what this run created.
    """
    if stop_at is None or file_path.exists():
        return
    parent = file_path.parent
    while parent != parent.parent and not _is_stop_dir(parent, stop_at):
        if not parent.is_dir() or not is_dir_empty(parent) or not rmdir(parent):
            break
        logger.log("fs.rmdir", LogLevel.INFO, path=parent, reason="cleanup after failed move")
        parent = parent.parent
