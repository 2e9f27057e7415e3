"""
MoveRunner: executes a batch of FileMovers.

Construction does all the synchronous work: movers are grouped by
destination directory, naming conflicts get disambiguation indices (unless
overwriting is enabled), each destination directory is verified once, and
every mover is submitted in the caller's order to a shared single-worker
executor. ``run_thread()`` then starts a monitor thread that waits on each
move in turn, cancels moves that exceed the timeout, reports progress, and
finally collects the duplicate files the movers found.

Moves run one at a time, in submission order.
"""
import atexit
import threading
import time
from collections import deque
from concurrent.futures import CancelledError, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Deque, List, Optional, Sequence, Tuple

from tvmove.move import conflicts
from tvmove.move.progress import ProgressUpdater
from tvmove.utils import file_util, logger, time_util
from tvmove.utils.constants import FILE_MOVE_THREAD_LABEL, MONITOR_POLL_INTERVAL
from tvmove.utils.logger import LogLevel
from tvmove.utils.settings import UserPreferences

# Shared by every runner in the process
_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def _get_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=FILE_MOVE_THREAD_LABEL)
        return _executor


def shut_down() -> None:
    """Stop the shared move worker, dropping anything still queued."""
    global _executor
    with _executor_lock:
        if _executor is not None:
            _executor.shutdown(wait=False, cancel_futures=True)
            _executor = None


atexit.register(shut_down)


class MoveRunner:
    def __init__(self, movers: Sequence, prefs: Optional[UserPreferences] = None,
                 updater: Optional[ProgressUpdater] = None, timeout: Optional[float] = None):
        self.prefs = prefs if prefs is not None else UserPreferences()
        self.updater = updater if updater is not None else ProgressUpdater()
        self.timeout = timeout if timeout is not None else self.prefs.move_timeout
        self.movers: List = list(movers)
        self.num_moves = len(self.movers)

        self._futures: Deque[Tuple] = deque()
        self._duplicates: List[Path] = []
        self._shutdown_requested = threading.Event()
        self._done = threading.Event()
        self._thread = threading.Thread(target=self.run, name=f"{FILE_MOVE_THREAD_LABEL}-monitor", daemon=True)

        mappings = conflicts.map_by_dest_dir(self.movers)
        if not self.prefs.always_overwrite_destination:
            for dest_dir, moves in mappings.items():
                conflicts.resolve_conflicts(moves, dest_dir)

        verified = {dest_dir for dest_dir in mappings if file_util.ensure_writable_directory(Path(dest_dir))}

        executor = _get_executor()
        for mover in self.movers:
            if str(mover.move_to_directory) in verified:
                mover.directory_pre_verified = True
            self._futures.append((mover, executor.submit(mover.call)))

        logger.log("runner.submitted", LogLevel.DEBUG, moves=self.num_moves, directories=len(mappings),
                   verified=len(verified), timeout=self.timeout)

    @property
    def found_duplicates(self) -> Tuple[Path, ...]:
        """Duplicates gathered from every mover; complete once the runner has finished."""
        return tuple(self._duplicates)

    @property
    def is_finished(self) -> bool:
        return self._done.is_set()

    def run_thread(self) -> None:
        """Start the monitor thread (once)."""
        if not self._thread.is_alive() and not self._done.is_set():
            self._thread.start()

    def request_shutdown(self) -> None:
        """Stop waiting on further moves and cancel what has not finished."""
        logger.log("runner.shutdown_requested", LogLevel.INFO, remaining=len(self._futures))
        self._shutdown_requested.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the monitor has finished; False if ``timeout`` elapsed first."""
        return self._done.wait(timeout)

    def _cancel(self, mover, future, reason: str) -> None:
        mover.interrupt()
        if future.cancel():
            mover.mark_cancelled(reason)

    def _await_move(self, mover, future) -> None:
        deadline = time.monotonic() + self.timeout
        while True:
            if self._shutdown_requested.is_set():
                self._cancel(mover, future, "cancelled")
                logger.log("runner.cancelled", LogLevel.INFO, source=mover.current_path)
                return
            wait = min(MONITOR_POLL_INTERVAL, deadline - time.monotonic())
            if wait <= 0:
                self._cancel(mover, future, f"timed out after {self.timeout} seconds")
                logger.log("runner.timeout", LogLevel.WARN, source=mover.current_path, timeout=self.timeout)
                return
            try:
                result = future.result(timeout=wait)
            except FutureTimeoutError:
                continue
            except CancelledError:
                logger.log("runner.cancelled", LogLevel.DEBUG, source=mover.current_path)
                return
            except Exception as e:
                logger.log_exception("runner.task_failed", e, source=mover.current_path)
                return
            logger.log("runner.completed", LogLevel.DEBUG, source=mover.current_path, status=result.status)
            return

    def _aggregate_duplicates(self) -> None:
        # A file this batch just placed is never offered for deletion.
        placed = set()
        for mover in self.movers:
            dest = mover.get_actual_destination_if_success()
            if dest is not None:
                placed.add(dest)

        self._duplicates = []
        for mover in self.movers:
            for dup in mover.found_duplicates:
                if dup not in placed and dup not in self._duplicates:
                    self._duplicates.append(dup)

        if self._duplicates:
            logger.log("runner.duplicates", LogLevel.INFO, count=len(self._duplicates))

    def run(self) -> None:
        """Monitor loop; runs on the thread started by run_thread()."""
        start = time.monotonic()
        try:
            while not self._shutdown_requested.is_set():
                remaining = len(self._futures)
                self.updater.set_progress(self.num_moves, remaining)
                completed = self.num_moves - remaining
                if completed and remaining:
                    logger.log("runner.progress", LogLevel.DEBUG, completed=completed, total=self.num_moves,
                               eta=time_util.get_eta_for_batch(completed, self.num_moves, time.monotonic() - start))
                if remaining == 0:
                    self._aggregate_duplicates()
                    self.updater.finish()
                    return
                mover, future = self._futures.popleft()
                self._await_move(mover, future)
        finally:
            if self._shutdown_requested.is_set():
                while self._futures:
                    mover, future = self._futures.popleft()
                    self._cancel(mover, future, "cancelled")
                self.updater.finish()
            logger.log("runner.finished", LogLevel.DEBUG, moves=self.num_moves,
                       shutdown=self._shutdown_requested.is_set())
            self._done.set()
