"""
FileMover: moves one parsed episode to its destination.

A mover is a single-shot unit of work. ``call()`` validates the source and the
destination, renames the file when both are on the same filesystem and
otherwise copies it and deletes the original, then applies the
modification-time policy and (optionally) scans for duplicates of the file
it just placed. The outcome is returned as a MoveResult and folded into the
mover's FileEpisode. ``call()`` does not raise.
"""
import os
import threading
from dataclasses import replace
from pathlib import Path
from typing import Optional, Tuple

from tvmove.models import EpisodeStatus, FileEpisode, MoveResult
from tvmove.move.duplicates import find_duplicate_video_files
from tvmove.move.progress import MoveObserver
from tvmove.utils import file_util, logger, time_util
from tvmove.utils.logger import LogLevel
from tvmove.utils.settings import UserPreferences


class FileMover:
    def __init__(self, episode: FileEpisode, prefs: UserPreferences, observer: Optional[MoveObserver] = None):
        self.episode = episode
        self.prefs = prefs
        self.observer = observer
        self.dest_root = episode.move_to_directory or episode.path.parent
        self.dest_basename = episode.destination_basename or episode.original_basename
        self.dest_suffix = episode.suffix
        # Assigned by the runner when the desired name collides with another file.
        self.dest_index: Optional[int] = None
        # Set by the runner once it has verified dest_root for the whole batch.
        self.directory_pre_verified = False
        self.will_use_copy_and_delete = False
        self.result: Optional[MoveResult] = None
        self._found_duplicates = []
        self._interrupted = threading.Event()

    def __repr__(self):
        return f"FileMover({self.current_path} -> {self.dest_root / self.desired_dest_name})"

    @property
    def current_path(self) -> Path:
        return self.episode.path

    @property
    def file_size(self) -> int:
        return self.episode.file_size

    @property
    def desired_dest_name(self) -> str:
        """The name we want; a conflict may add an index and route the file into the duplicates folder."""
        return self.dest_basename + self.dest_suffix

    @property
    def move_to_directory(self) -> Path:
        return self.dest_root

    @property
    def version_string(self) -> str:
        return "" if self.dest_index is None else f" ({self.dest_index})"

    @property
    def found_duplicates(self) -> Tuple[Path, ...]:
        return tuple(self._found_duplicates)

    @property
    def is_interrupted(self) -> bool:
        return self._interrupted.is_set()

    def interrupt(self) -> None:
        """Ask a running copy to stop at the next buffer boundary."""
        self._interrupted.set()

    def _destination_parts(self) -> Tuple[Path, str, bool]:
        """(directory, filename, whether the directory is the duplicates folder)."""
        if self.dest_index is None:
            return self.dest_root, self.desired_dest_name, False
        filename = self.dest_basename + self.version_string + self.dest_suffix
        if self.prefs.is_move_enabled:
            return self.dest_root / self.prefs.duplicates_directory, filename, True
        return self.dest_root, filename, False

    def planned_destination(self) -> Path:
        """Where the file will go, given the index assigned so far. Touches nothing."""
        dest_dir, filename, _ = self._destination_parts()
        return dest_dir / filename

    def mark_cancelled(self, message: str) -> MoveResult:
        """Record that this move was cancelled before it ever ran."""
        result = MoveResult(EpisodeStatus.FAILED_TO_MOVE, self.current_path, None, message)
        self.result = result
        self.episode.apply_move(result)
        return result

    def get_actual_destination_if_success(self) -> Optional[Path]:
        if self.result is not None and self.result.succeeded:
            return self.result.destination
        return None

    def _failed(self, source: Optional[Path], dest: Optional[Path], message: str,
                exc: Optional[BaseException] = None) -> MoveResult:
        if exc is None:
            logger.log("move.failed", LogLevel.WARN, source=source, dest=dest, msg=message)
        else:
            logger.log_exception("move.failed", exc, source=source, dest=dest, msg=message)
        return MoveResult(EpisodeStatus.FAILED_TO_MOVE, source or self.current_path, None, message)

    def _fail_to_copy(self, source: Path, dest: Path, message: str, remove_partial: bool) -> MoveResult:
        """
        Clean up after a move attempt that failed part way: remove the partial
        destination file (copies only), then any directories created for it
        that are still empty, up to the destination root.
        """
        result = self._failed(source, dest, message)
        if remove_partial and dest.exists():
            file_util.delete_file(dest)
            if dest.exists():
                logger.log("move.cleanup_failed", LogLevel.WARN, source=source, dest=dest,
                           msg="incomplete copy could not be removed")
                return replace(result, message=f"{message}; incomplete copy left at destination")
        file_util.prune_empty_parents(dest, self.prefs.destination_directory)
        return result

    def _copy_and_delete(self, source: Path, dest: Path) -> Optional[MoveResult]:
        """Copy then delete the original; returns a failure result, or None on success."""
        if self.observer is not None:
            self.observer.initialize_progress(self.file_size)

        if self.prefs.always_overwrite_destination and dest.exists():
            logger.log("move.overwrite", LogLevel.INFO, dest=dest, mode="copy")
            if not file_util.delete_file(dest):
                return self._fail_to_copy(source, dest, "failed to delete existing destination for overwrite",
                                          remove_partial=False)

        if not file_util.copy_with_updates(source, dest, self.observer, self._interrupted):
            message = "copy interrupted" if self.is_interrupted else "copy failed"
            return self._fail_to_copy(source, dest, message, remove_partial=True)

        if not file_util.delete_file(source):
            # The copy is complete; keep both rather than risk losing the file.
            return self._failed(source, dest, "failed to delete original after copy")
        return None

    def _finish_move(self, source: Path, dest: Path, status: EpisodeStatus,
                     original_times: Optional[Tuple[int, int]]) -> MoveResult:
        message = ""
        try:
            if self.prefs.preserve_modification_time:
                if original_times is not None:
                    os.utime(dest, ns=original_times)
                    logger.log("move.mtime", LogLevel.DEBUG, dest=dest,
                               mtime=time_util.format_mtime(original_times[1] / 1e9))
            else:
                os.utime(dest)
        except OSError as e:
            logger.log_exception("move.failed", e, source=source, dest=dest, msg="unable to set modification time")
            status = EpisodeStatus.FAILED_TO_MOVE
            message = "moved, but unable to set modification time"

        if self.prefs.cleanup_duplicate_video_files:
            placement = self.episode.placement
            season_episode = (placement.season, placement.episode) if placement is not None else None
            dups = find_duplicate_video_files(dest, dest.parent, self.episode.show_name, season_episode)
            if dups:
                self._found_duplicates.extend(dups)
                logger.log("move.duplicates_found", LogLevel.INFO, dest=dest, count=len(dups))

        return MoveResult(status, source, dest, message)

    def _do_actual_move(self, source: Path, dest: Path, try_rename: bool) -> MoveResult:
        logger.log("move.start", LogLevel.DEBUG, source=source, dest=dest, rename=try_rename)
        self.episode.status = EpisodeStatus.MOVING

        original_times = None
        try:
            st = source.stat()
            original_times = (st.st_atime_ns, st.st_mtime_ns)
        except OSError as e:
            logger.log("move.mtime_unreadable", LogLevel.DEBUG, source=source, error=str(e))

        self.will_use_copy_and_delete = not try_rename

        if try_rename:
            actual_dest = file_util.rename_file(source, dest, self.prefs.always_overwrite_destination)
            if actual_dest is None:
                return self._fail_to_copy(source, dest, "unable to rename/move file", remove_partial=False)
            if actual_dest != dest:
                logger.log("move.misnamed", LogLevel.WARN, source=source, dest=dest, actual=actual_dest)
                return MoveResult(EpisodeStatus.MISNAMED, source, actual_dest,
                                  "actual destination did not match intended")
            status = EpisodeStatus.RENAMED
        else:
            logger.log("move.cross_device", LogLevel.INFO, source=source, dest=dest)
            failure = self._copy_and_delete(source, dest)
            if failure is not None:
                return failure
            status = EpisodeStatus.COPIED

        return self._finish_move(source, dest, status, original_times)

    def _move_real_paths(self, real_src: Path, dest_path: Path, dest_dir: Path) -> MoveResult:
        try_rename = file_util.are_same_disk(real_src, dest_dir)
        src_dir = real_src.parent

        result = self._do_actual_move(real_src, dest_path, try_rename)
        if not result.succeeded:
            return result

        logger.log("move.ok", LogLevel.INFO, source=real_src, dest=dest_path, status=result.status)
        if self.prefs.remove_emptied_directories:
            file_util.remove_while_empty(src_dir, stop_at=self.prefs.destination_directory)
        return result

    def _try_to_move_file(self) -> MoveResult:
        src_path = self.current_path
        if not src_path.exists():
            logger.log("move.no_file", LogLevel.INFO, source=src_path)
            return MoveResult(EpisodeStatus.NO_FILE, src_path, None, "file no longer exists")

        try:
            real_src = src_path.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            return self._failed(src_path, None, "could not get real path of source", e)

        self.episode.status = EpisodeStatus.VERIFYING

        dest_dir, filename, using_duplicates_dir = self._destination_parts()

        # Duplicates folders are never covered by the runner's pre-verification.
        if not self.directory_pre_verified or using_duplicates_dir:
            if not file_util.ensure_writable_directory(dest_dir):
                return self._failed(src_path, dest_dir, "not attempting to move; destination directory not writable")

        try:
            resolved_dest_dir = dest_dir.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            # Some network shares refuse real-path resolution but are usable.
            logger.log("move.dest_unresolved", LogLevel.INFO, dest=dest_dir, source=src_path, error=str(e))
            resolved_dest_dir = Path(os.path.normpath(dest_dir.absolute()))

        dest_path = resolved_dest_dir / filename
        if dest_path.exists():
            if dest_path == real_src:
                logger.log("move.already_in_place", LogLevel.INFO, source=src_path)
                return MoveResult(EpisodeStatus.ALREADY_IN_PLACE, src_path, dest_path, "nothing to be done")
            if not self.prefs.always_overwrite_destination:
                return self._failed(src_path, dest_path, "cannot move; destination exists")
            logger.log("move.overwrite", LogLevel.INFO, dest=dest_path, mode="rename-or-copy")

        return self._move_real_paths(real_src, dest_path, resolved_dest_dir)

    def call(self) -> MoveResult:
        """Attempt the move, fold the outcome into the episode, and return it."""
        try:
            try:
                result = self._try_to_move_file()
            except Exception as e:
                result = self._failed(self.current_path, self.dest_root,
                                      "unexpected error during file move", e)
            result = replace(result, duplicates=self.found_duplicates)
            self.result = result
            self.episode.apply_move(result)
            return result
        finally:
            if self.observer is not None:
                self.observer.finish_progress(self.episode)
