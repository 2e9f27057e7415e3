"""
Filename parsing and destination naming for TV episode files.

Package organization:
- patterns: the ordered table of filename patterns, compiled once on import.
- parser: extracts show name, season/episode (or span) and resolution from a
  path, climbing into parent folders when the filename carries no show name,
  and explains failures with a ParseFailureReason.
- formatter: builds the destination folder and basename for a parsed episode.

Public API (top-level exports)
- `parse_filename`: Parse a path into a Parsed or Failed result.
- `parse_episode`: Parse a FileEpisode in place, applying show-name overrides.
- `extract_season_episode`: (season, episode) of a bare filename, or None.
- `plan_destination`: Fill in an episode's move-to folder and new basename.

Example:
    from pathlib import Path
    import tvmove.parse as parse
    result = parse.parse_filename(Path("/tv/Show.Name.S01E02.720p.mkv"))
"""
from .parser import (
    extract_season_episode,
    extract_show_and_season_episode,
    parse_episode,
    parse_filename,
)
from .formatter import plan_destination

__all__ = [
    "parse_filename",
    "parse_episode",
    "extract_season_episode",
    "extract_show_and_season_episode",
    "plan_destination",
]
