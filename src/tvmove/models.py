"""
Data types passed between the parse stage, the move stage and the caller.

Parsing produces a ``ParseResult`` (``Parsed`` or ``Failed``), moving produces a
``MoveResult``. Neither stage writes into shared state directly: the caller
owns a ``FileEpisode`` and folds each result into it with
``FileEpisode.apply_parse`` / ``FileEpisode.apply_move``.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union


@dataclass(frozen=True)
class EpisodePlacement:
    """Season and episode (or episode span) of one file."""
    season: int
    episode: int
    end_episode: Optional[int] = None

    def __post_init__(self):
        if self.season < 0 or self.episode < 0:
            raise ValueError(f"negative placement: S{self.season}E{self.episode}")
        if self.end_episode is not None and self.end_episode < self.episode:
            raise ValueError(f"episode span ends before it starts: {self.episode}-{self.end_episode}")

    @property
    def is_multi_episode(self) -> bool:
        return self.end_episode is not None and self.end_episode != self.episode

    def __str__(self):
        text = f"S{self.season:02d}E{self.episode:02d}"
        if self.is_multi_episode:
            text += f"-E{self.end_episode:02d}"
        return text


class ParseFailureReason(Enum):
    NO_SHOW_NAME = "Could not extract show name from filename"
    NO_SEASON_EPISODE = "Could not find season/episode pattern (e.g., S01E02, 1x03)"
    FILENAME_TOO_SHORT = "Filename too short to parse"
    NO_ALPHANUMERIC = "Filename contains no recognizable text"

    @property
    def user_message(self) -> str:
        return self.value


@dataclass(frozen=True)
class Parsed:
    extracted_show: str
    placement: EpisodePlacement
    resolution: str = ""


@dataclass(frozen=True)
class Failed:
    reason: ParseFailureReason


ParseResult = Union[Parsed, Failed]


class EpisodeStatus(Enum):
    UNPARSED = "unparsed"
    PARSED = "parsed"
    FAILED_TO_PARSE = "failed to parse"
    VERIFYING = "verifying"
    MOVING = "moving"
    RENAMED = "renamed"
    COPIED = "copied"
    ALREADY_IN_PLACE = "already in place"
    MISNAMED = "misnamed"
    NO_FILE = "no file found"
    FAILED_TO_MOVE = "failed to move"

    @property
    def is_success(self) -> bool:
        return self in _SUCCESS_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self not in (EpisodeStatus.UNPARSED, EpisodeStatus.PARSED,
                            EpisodeStatus.VERIFYING, EpisodeStatus.MOVING)


_SUCCESS_STATUSES = frozenset({EpisodeStatus.RENAMED, EpisodeStatus.COPIED, EpisodeStatus.ALREADY_IN_PLACE})


@dataclass(frozen=True)
class MoveResult:
    """Outcome of one FileMover run."""
    status: EpisodeStatus
    source: Path
    destination: Optional[Path] = None
    message: str = ""
    duplicates: Tuple[Path, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.status.is_success


@dataclass
class FileEpisode:
    """
    Everything known about one source file, from discovery to its final move.

    ``extracted_show`` is the name found in the filename; ``show_name`` is the
    effective name after overrides (or after an external lookup).
    """
    path: Path
    file_size: int = 0
    extracted_show: str = ""
    show_name: str = ""
    placement: Optional[EpisodePlacement] = None
    resolution: str = ""
    failure_reason: Optional[ParseFailureReason] = None
    status: EpisodeStatus = EpisodeStatus.UNPARSED
    move_to_directory: Optional[Path] = None
    destination_basename: str = ""
    message: str = ""

    @classmethod
    def from_path(cls, path: Path) -> "FileEpisode":
        path = Path(path)
        try:
            size = path.stat().st_size
        except OSError:
            size = 0
        return cls(path=path, file_size=size)

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def suffix(self) -> str:
        """Extension of the current path, including the dot."""
        name = self.path.name
        dot = name.rfind(".")
        return name[dot:] if dot > 0 else ""

    @property
    def original_basename(self) -> str:
        name = self.path.name
        dot = name.rfind(".")
        return name[:dot] if dot > 0 else name

    def apply_parse(self, result: ParseResult, show_name: Optional[str] = None) -> None:
        """Fold a parse result into this record. ``show_name`` is the post-override name."""
        if isinstance(result, Parsed):
            self.extracted_show = result.extracted_show
            self.show_name = show_name if show_name is not None else result.extracted_show
            self.placement = result.placement
            self.resolution = result.resolution
            self.failure_reason = None
            self.status = EpisodeStatus.PARSED
        else:
            self.placement = None
            self.failure_reason = result.reason
            self.message = result.reason.user_message
            self.status = EpisodeStatus.FAILED_TO_PARSE

    def apply_move(self, result: MoveResult) -> None:
        """Fold a move result into this record; the path follows the file on success."""
        self.status = result.status
        self.message = result.message
        if result.destination is None:
            return
        if result.status.is_success or result.status is EpisodeStatus.MISNAMED:
            self.path = result.destination
        elif result.status is EpisodeStatus.FAILED_TO_MOVE:
            # e.g. the file moved but its modification time could not be set
            if result.destination.exists() and not self.path.exists():
                self.path = result.destination
