import os
from pathlib import Path

import pytest

from tvmove.models import FileEpisode
from tvmove.parse import parse_episode, plan_destination
from tvmove.utils import logger
from tvmove.utils.logger import LogLevel
from tvmove.utils.settings import UserPreferences


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep TVMOVE_* variables from the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.startswith("TVMOVE_"):
            monkeypatch.delenv(name, raising=False)
    logger.set_log_level(LogLevel.INFO)
    yield
    logger.set_log_file(None)
    logger.set_log_level(LogLevel.INFO)


@pytest.fixture
def dest_root(tmp_path: Path) -> Path:
    return tmp_path / "tv"


@pytest.fixture
def prefs(dest_root: Path) -> UserPreferences:
    return UserPreferences(destination_directory=dest_root)


def make_file(path: Path, size: int = 100, fill: bytes = b"x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(fill * size)
    return path


def planned_episode(path: Path, prefs: UserPreferences) -> FileEpisode:
    """Parse ``path`` and plan its destination, the way the command line does."""
    episode = FileEpisode.from_path(path)
    parse_episode(episode, prefs)
    plan_destination(episode, prefs)
    return episode


class RecordingObserver:
    def __init__(self):
        self.max_bytes = None
        self.values = []
        self.statuses = []
        self.finished = []

    def initialize_progress(self, max_bytes):
        self.max_bytes = max_bytes

    def set_progress_value(self, value):
        self.values.append(value)

    def set_progress_status(self, status):
        self.statuses.append(status)

    def finish_progress(self, episode):
        self.finished.append(episode)


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()
