"""
Destination naming for parsed episodes.

Builds the folder an episode moves to and the basename it is given:

- "<destination>/<Show Name>/Season 01"
- "Show Name - S01E02"
- "Show Name - S01E04-E05" for a file holding an episode span

When no destination directory is configured (or moving is turned off) the
file stays in the directory it is already in. When renaming is turned off
the original basename is kept.

Example:
    build_destination_basename("Show Name", EpisodePlacement(1, 2)) -> "Show Name - S01E02"
"""
from pathlib import Path

from tvmove.models import EpisodePlacement, FileEpisode
from tvmove.utils.file_util import sanitise_title
from tvmove.utils.settings import UserPreferences


def build_season_folder_name(season: int, prefs: UserPreferences) -> str:
    """``Season 01`` with the leading zero, ``Season 1`` without."""
    number = f"{season:02d}" if prefs.season_prefix_leading_zero else str(season)
    return f"{prefs.season_prefix}{number}"


def build_move_to_directory(episode: FileEpisode, prefs: UserPreferences) -> Path:
    if not prefs.is_move_enabled or episode.placement is None:
        return episode.path.parent
    show_folder = sanitise_title(episode.show_name or episode.extracted_show)
    return prefs.destination_directory / show_folder / build_season_folder_name(episode.placement.season, prefs)


def build_destination_basename(show_name: str, placement: EpisodePlacement) -> str:
    return sanitise_title(f"{show_name} - {placement}")


def plan_destination(episode: FileEpisode, prefs: UserPreferences) -> FileEpisode:
    """Fill in ``move_to_directory`` and ``destination_basename`` on a parsed episode."""
    episode.move_to_directory = build_move_to_directory(episode, prefs)
    if prefs.rename_selected and episode.placement is not None:
        episode.destination_basename = build_destination_basename(
            episode.show_name or episode.extracted_show, episode.placement)
    else:
        episode.destination_basename = episode.original_basename
    return episode
