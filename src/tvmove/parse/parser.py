"""
Filename parsing: turn a media path into show name, season, episode (or
episode span) and resolution.

``parse_filename`` never raises. Anything it cannot make sense of becomes a
``Failed`` result whose reason explains what was missing.
"""
import re
from pathlib import Path
from typing import Optional, Tuple

from tvmove.models import EpisodePlacement, Failed, FileEpisode, ParseFailureReason, Parsed, ParseResult
from tvmove.parse.patterns import (
    BASIC_EPISODE_PATTERN,
    COMPILED_PATTERNS,
    DIR_LOOKS_LIKE_SEASON,
    EXCESS_SEASON,
    FILENAME_BEGINS_WITH_SEASON,
)
from tvmove.utils import logger
from tvmove.utils.constants import DUPLICATES_DIRECTORY, JUNK_TOKENS
from tvmove.utils.file_util import normalize_text, remove_last
from tvmove.utils.logger import LogLevel
from tvmove.utils.settings import UserPreferences

_LEADING_JUNK = re.compile(r"^[\W_]+")
_TRAILING_JUNK = re.compile(r"(?:[^\w)]|_)+$")

MIN_PARSEABLE_LENGTH = 4


def trim_found_show(text: str) -> str:
    """Strip separators around a captured show name, keeping a closing ``)`` (``Show (2010)``)."""
    return _TRAILING_JUNK.sub("", _LEADING_JUNK.sub("", text or ""))


def strip_junk(text: str) -> str:
    for token in JUNK_TOKENS:
        text = remove_last(text, token)
    return text


def contains_alphanumeric(text: Optional[str]) -> bool:
    return bool(text) and any(ch.isalnum() for ch in text)


def extract_parent_name(parent: Optional[Path]) -> str:
    """Name of ``parent`` with a trailing ``.Season02``-style suffix removed."""
    if parent is None:
        return ""
    return EXCESS_SEASON.sub("", parent.name, count=1)


def _is_season_like(name: str, duplicates_directory: str) -> bool:
    return (name.lower().startswith("season")
            or DIR_LOOKS_LIKE_SEASON.fullmatch(name) is not None
            or name == duplicates_directory)


def insert_show_name_if_needed(file_path: Path, duplicates_directory: str = DUPLICATES_DIRECTORY) -> str:
    """
    Return the filename, prefixed with the show directory's name when the
    filename itself begins with the episode token (``S01E02.mkv``).

    Season folders (``Season 1``, ``S01``) and the duplicates folder are
    skipped on the way up. The filesystem root has an empty name, which ends
    the climb.
    """
    name = file_path.name
    if not FILENAME_BEGINS_WITH_SEASON.fullmatch(name):
        return name

    parent = file_path.parent
    parent_name = extract_parent_name(parent)
    while _is_season_like(parent_name, duplicates_directory):
        parent = parent.parent
        parent_name = extract_parent_name(parent)
    logger.log("parse.parent_name", LogLevel.DEBUG, parent=parent_name, filename=name)
    return f"{parent_name} {name}"


def diagnose_failure(stripped_name: str) -> ParseFailureReason:
    """Tell "no episode numbering at all" apart from "numbering found, show name not"."""
    if not stripped_name or not BASIC_EPISODE_PATTERN.search(stripped_name):
        return ParseFailureReason.NO_SEASON_EPISODE
    return ParseFailureReason.NO_SHOW_NAME


def _to_int(text: Optional[str]) -> Optional[int]:
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def match_patterns(name: str) -> Optional[Parsed]:
    """Run the pattern table over ``name``; first usable match wins."""
    for compiled in COMPILED_PATTERNS:
        match = compiled.pattern.fullmatch(name)
        if match is None:
            continue
        groups = compiled.pattern.groups
        found_name = trim_found_show(match.group(1))
        season = _to_int(match.group(2))
        episode = _to_int(match.group(3))
        if season is None or episode is None:
            continue

        if groups >= 4:
            end = _to_int(match.group(4))
            if end is not None and end >= episode:
                resolution = match.group(5) if groups >= 5 else ""
                return Parsed(found_name, EpisodePlacement(season, episode, end), resolution or "")

        # Not a valid span: a fourth group is read as the resolution.
        if groups == 4:
            resolution = match.group(4) or ""
        elif groups == 3:
            resolution = ""
        else:
            continue
        return Parsed(found_name, EpisodePlacement(season, episode), resolution)
    return None


def parse_filename(file_path: Optional[Path], duplicates_directory: str = DUPLICATES_DIRECTORY) -> ParseResult:
    """
    Parse show, placement and resolution out of ``file_path``.

    Args:
        file_path: Path of the media file; parent directories are consulted
            when the filename carries no show name
        duplicates_directory: Folder name skipped like a season folder

    Returns:
        Parsed on success, otherwise Failed with the reason
    """
    if file_path is None:
        return _fail(None, ParseFailureReason.NO_SHOW_NAME)

    with_show_name = insert_show_name_if_needed(Path(file_path), duplicates_directory)
    if len(with_show_name) < MIN_PARSEABLE_LENGTH:
        return _fail(file_path, ParseFailureReason.FILENAME_TOO_SHORT)

    stripped = strip_junk(with_show_name)
    if not contains_alphanumeric(stripped):
        return _fail(file_path, ParseFailureReason.NO_ALPHANUMERIC)

    parsed = match_patterns(stripped)
    if parsed is None:
        return _fail(file_path, diagnose_failure(stripped))

    logger.log("parse.ok", LogLevel.DEBUG, path=file_path, show=parsed.extracted_show,
               placement=str(parsed.placement), resolution=parsed.resolution)
    return parsed


def _fail(file_path: Optional[Path], reason: ParseFailureReason) -> Failed:
    logger.log("parse.failed", LogLevel.DEBUG, path=file_path, reason=reason, msg=reason.user_message)
    return Failed(reason)


def parse_episode(episode: FileEpisode, prefs: Optional[UserPreferences] = None) -> ParseResult:
    """
    Parse ``episode.path`` and fold the result into ``episode``.

    The effective show name is the extracted name with separators turned into
    spaces and any configured override applied.
    """
    duplicates_directory = prefs.duplicates_directory if prefs is not None else DUPLICATES_DIRECTORY
    result = parse_filename(episode.path, duplicates_directory)
    if isinstance(result, Parsed):
        show_name = normalize_text(result.extracted_show)
        if prefs is not None:
            show_name = prefs.resolve_show_name(show_name)
        episode.apply_parse(result, show_name)
    else:
        episode.apply_parse(result)
    return result


def extract_season_episode(filename: Optional[str]) -> Optional[Tuple[int, int]]:
    """
    (season, episode) of a bare filename, or None.

    No directory climbing and no junk stripping; meant for quick identity
    comparisons between files in one directory.
    """
    found = extract_show_and_season_episode(filename)
    if found is None:
        return None
    return found[1], found[2]


def extract_show_and_season_episode(filename: Optional[str]) -> Optional[Tuple[str, int, int]]:
    """(show name, season, episode) of a bare filename, or None."""
    if filename is None or not filename.strip():
        return None
    for compiled in COMPILED_PATTERNS:
        match = compiled.pattern.fullmatch(filename)
        if match is None:
            continue
        season = _to_int(match.group(2))
        episode = _to_int(match.group(3))
        if season is not None and episode is not None:
            return trim_found_show(match.group(1)), season, episode
    return None
