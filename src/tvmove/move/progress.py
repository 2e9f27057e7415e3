"""
Progress reporting hooks for the move stage.

``ProgressUpdater`` receives batch-level progress from the MoveRunner's
monitor thread; ``MoveObserver`` receives byte-level progress from a single
FileMover while it copies across filesystems. Both base classes do nothing,
so callers override only what they display. The tqdm implementations are
what the command line uses.
"""
from typing import Optional

from tqdm import tqdm


class ProgressUpdater:
    def set_progress(self, total_files: int, remaining: int) -> None:
        pass

    def finish(self) -> None:
        pass


class MoveObserver:
    def initialize_progress(self, max_bytes: int) -> None:
        pass

    def set_progress_value(self, value: int) -> None:
        pass

    def set_progress_status(self, status: str) -> None:
        pass

    def finish_progress(self, episode) -> None:
        pass


class TqdmProgressUpdater(ProgressUpdater):
    """One bar counting finished files for the whole batch."""

    def __init__(self, total_files: int, desc: str = "Moving"):
        self._bar = tqdm(total=total_files, desc=desc, unit="file", dynamic_ncols=True)
        self._closed = False

    def set_progress(self, total_files: int, remaining: int) -> None:
        if self._closed:
            return
        self._bar.total = total_files
        self._bar.n = total_files - remaining
        self._bar.refresh()

    def finish(self) -> None:
        if not self._closed:
            self._closed = True
            self._bar.close()


class TqdmMoveObserver(MoveObserver):
    """Byte progress for a single copy; the bar only appears once a copy starts."""

    def __init__(self, label: str):
        self.label = label
        self.status = ""
        self._bar: Optional[tqdm] = None

    def initialize_progress(self, max_bytes: int) -> None:
        self._bar = tqdm(total=max_bytes, desc=self.label, unit="B", unit_scale=True,
                         unit_divisor=1024, leave=False, dynamic_ncols=True)

    def set_progress_value(self, value: int) -> None:
        if self._bar is not None:
            self._bar.n = value
            self._bar.refresh()

    def set_progress_status(self, status: str) -> None:
        self.status = status
        if self._bar is not None:
            self._bar.set_postfix_str(status, refresh=False)

    def finish_progress(self, episode) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
