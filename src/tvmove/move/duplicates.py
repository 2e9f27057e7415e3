"""
Post-move scan for other copies of an episode sitting in the destination folder.

A candidate counts as a duplicate of the file just placed when it is a video
file and either shares the base name under a different extension, or parses
to the same season and episode with a similar show name. Nothing is deleted
here; the list goes back to the caller for confirmation.
"""
import os
from difflib import SequenceMatcher
from pathlib import Path
from typing import List, Optional, Tuple

from tvmove.parse.parser import extract_show_and_season_episode
from tvmove.utils import logger
from tvmove.utils.constants import SHOW_NAME_SIMILARITY_THRESHOLD
from tvmove.utils.file_util import get_base_name, get_extension, has_video_extension, normalize_text
from tvmove.utils.logger import LogLevel


def show_name_similarity(a: str, b: str) -> float:
    """Similarity ratio (0..1) of two show names, ignoring case and separators."""
    left = normalize_text(a or "").lower()
    right = normalize_text(b or "").lower()
    if not left or not right:
        return 0.0
    return SequenceMatcher(None, left, right).ratio()


def _is_duplicate(candidate_name: str, moved_name: str, moved_show: Optional[str],
                  season_episode: Optional[Tuple[int, int]]) -> bool:
    moved_base = get_base_name(moved_name).lower() if get_extension(moved_name) else None
    if moved_base is not None and get_extension(candidate_name):
        if (get_base_name(candidate_name).lower() == moved_base
                and get_extension(candidate_name).lower() != get_extension(moved_name).lower()):
            return True

    if season_episode is None:
        return False
    identity = extract_show_and_season_episode(candidate_name)
    if identity is None or (identity[1], identity[2]) != tuple(season_episode):
        return False
    if moved_show and moved_show.strip():
        return show_name_similarity(moved_show, identity[0]) >= SHOW_NAME_SIMILARITY_THRESHOLD
    return True


def find_duplicate_video_files(moved_file: Optional[Path], dest_dir: Optional[Path],
                               moved_show: Optional[str] = None,
                               season_episode: Optional[Tuple[int, int]] = None) -> List[Path]:
    """
    Video files in ``dest_dir`` that look like other copies of ``moved_file``.

    Args:
        moved_file: The file that was just placed
        dest_dir: Directory to scan (not recursive)
        moved_show: Show name of the moved file; without one, a season/episode
            match alone is enough
        season_episode: (season, episode) of the moved file, enabling the
            identity comparison
    """
    if moved_file is None or dest_dir is None:
        return []
    moved_name = moved_file.name
    duplicates = []
    try:
        with os.scandir(dest_dir) as entries:
            for entry in entries:
                if entry.is_dir() or entry.name == moved_name:
                    continue
                if not has_video_extension(entry.name):
                    continue
                if _is_duplicate(entry.name, moved_name, moved_show, season_episode):
                    duplicates.append(Path(entry.path))
    except OSError as e:
        logger.log_exception("fs.duplicates.scan_failed", e, path=dest_dir)
    return sorted(duplicates)
