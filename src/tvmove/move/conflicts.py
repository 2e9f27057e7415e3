"""
Conflict detection and disambiguation indices for a batch of moves.

Moves headed for the same directory are grouped by the base name of the file
they want to create, so ``Show - S01E02.mkv`` and ``Show - S01E02.avi`` land
in one group. Each group is then compared against files already in the
directory, both by base name and by parsed season/episode (``S01E02`` and
``1x02`` are the same episode). When a group plus its existing conflicts has
more than one member, movers get an index and are later routed into the
duplicates folder as ``Name (2).ext``.

All of this runs before any move starts, so every mover's destination name
is fixed by the time the worker picks it up.
"""
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, Tuple

from tvmove.parse.parser import extract_season_episode
from tvmove.utils import logger
from tvmove.utils.file_util import get_base_name
from tvmove.utils.logger import LogLevel


def map_by_dest_dir(movers: Iterable) -> Dict[str, List]:
    """Group movers by the string form of their move-to directory, keeping input order."""
    to_move: Dict[str, List] = {}
    for mover in movers:
        to_move.setdefault(str(mover.move_to_directory), []).append(mover)
    return to_move


def _list_dir(dest_dir: Path) -> List[os.DirEntry]:
    if not dest_dir.is_dir():
        return []
    try:
        with os.scandir(dest_dir) as entries:
            return list(entries)
    except OSError as e:
        logger.log_exception("fs.scan.failed", e, LogLevel.DEBUG, path=dest_dir)
        return []


def existing_conflicts_by_base_name(dest_dir: Path, desired_base_name: str) -> Set[Path]:
    """Entries of ``dest_dir`` whose name minus extension equals ``desired_base_name``."""
    if not desired_base_name or not desired_base_name.strip():
        return set()
    return {Path(entry.path) for entry in _list_dir(dest_dir) if get_base_name(entry.name) == desired_base_name}


def existing_conflicts_by_episode_identity(dest_dir: Path, season_episode: Optional[Tuple[int, int]]) -> Set[Path]:
    """Files in ``dest_dir`` that parse to the same (season, episode)."""
    if season_episode is None:
        return set()
    hits = set()
    for entry in _list_dir(dest_dir):
        if entry.is_dir():
            continue
        if extract_season_episode(entry.name) == tuple(season_episode):
            hits.add(Path(entry.path))
    return hits


def add_indices(moves: List, existing: Set[Path]) -> None:
    """
    Number the moves in a conflict group, largest file first.

    Numbering continues after the existing conflicts, and index 1 is never
    written: with nothing in the way the largest file keeps the plain name
    and the rest get (2), (3)...; with M files already there every move gets
    an index from M + 1 on. Equal sizes keep their submission order.
    """
    index = len(existing)
    for move in sorted(moves, key=lambda m: m.file_size, reverse=True):
        index += 1
        if index > 1:
            move.dest_index = index


def _real_path(path: Path) -> Path:
    try:
        return path.resolve()
    except (OSError, RuntimeError):
        return path


def _own_sources(moves: Iterable) -> Set[Path]:
    return {_real_path(move.current_path) for move in moves}


def _is_in_place(move, directory: Path) -> bool:
    """Whether the mover's file already sits at its desired name in ``directory``."""
    return _real_path(move.current_path) == _real_path(directory / move.desired_dest_name)


def resolve_conflicts(moves: List, dest_dir: str) -> None:
    """Assign disambiguation indices to the movers headed for ``dest_dir``."""
    directory = Path(dest_dir)
    by_base_name: Dict[str, List] = {}
    for move in moves:
        by_base_name.setdefault(get_base_name(move.desired_dest_name), []).append(move)

    # A file that is itself being moved (or renamed in place) is not in the way.
    own_sources = _own_sources(moves)

    for base, group in by_base_name.items():
        existing = existing_conflicts_by_base_name(directory, base)
        season_episode = extract_season_episode(group[0].desired_dest_name)
        existing |= existing_conflicts_by_episode_identity(directory, season_episode)
        existing = {p for p in existing if p.resolve() not in own_sources}

        if len(existing) + len(group) > 1:
            # A file already at the plain name keeps it; the rest are numbered after it.
            in_place = [m for m in group if _is_in_place(m, directory)]
            to_index = [m for m in group if not _is_in_place(m, directory)]
            add_indices(to_index, existing | {m.current_path for m in in_place})
            logger.log("runner.conflict", LogLevel.INFO, dest=directory, name=base,
                       moving=len(group), existing=len(existing),
                       indices=",".join(str(m.dest_index) for m in group if m.dest_index is not None))
