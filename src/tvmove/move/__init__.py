"""
Moving parsed episodes to their destinations.

Package organization:
- core: FileMover, the single-move state machine (rename on the same
  filesystem, copy-then-delete across filesystems, mtime policy).
- conflicts: grouping by destination and disambiguation indices.
- batch: MoveRunner, the single-worker executor plus monitor thread.
- duplicates: post-move scan for other copies of an episode.
- progress: ProgressUpdater / MoveObserver hooks and their tqdm versions.

Public API (top-level exports)
- `FileMover`, `MoveRunner`, `shut_down`
- `ProgressUpdater`, `MoveObserver`, `TqdmProgressUpdater`, `TqdmMoveObserver`
- `find_duplicate_video_files`
"""
from .core import FileMover
from .batch import MoveRunner, shut_down
from .duplicates import find_duplicate_video_files
from .progress import MoveObserver, ProgressUpdater, TqdmMoveObserver, TqdmProgressUpdater

__all__ = [
    "FileMover",
    "MoveRunner",
    "shut_down",
    "find_duplicate_video_files",
    "ProgressUpdater",
    "MoveObserver",
    "TqdmProgressUpdater",
    "TqdmMoveObserver",
]
