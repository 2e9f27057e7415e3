import dataclasses
import os

import pytest

from conftest import make_file, planned_episode
from tvmove.models import EpisodeStatus
from tvmove.move import core
from tvmove.move.core import FileMover
from tvmove.utils import file_util
from tvmove.utils.settings import UserPreferences

OLD_MTIME_NS = 1_000_000_000 * 10 ** 9


@pytest.fixture
def source(tmp_path):
    path = make_file(tmp_path / "in" / "Show.Name.S01E02.mkv")
    os.utime(path, ns=(OLD_MTIME_NS, OLD_MTIME_NS))
    return path


def expected_dest(dest_root, name="Show Name - S01E02.mkv"):
    return (dest_root / "Show Name" / "Season 01").resolve() / name


def cross_device(monkeypatch):
    monkeypatch.setattr(file_util, "are_same_disk", lambda a, b: False)


def test_rename_into_library(source, prefs, dest_root, monkeypatch):
    def no_copy(*args, **kwargs):
        raise AssertionError("same-filesystem move must not copy")

    monkeypatch.setattr(file_util, "copy_with_updates", no_copy)
    episode = planned_episode(source, prefs)
    mover = FileMover(episode, prefs)

    result = mover.call()

    dest = expected_dest(dest_root)
    assert result.status is EpisodeStatus.RENAMED
    assert result.succeeded
    assert result.destination == dest
    assert dest.exists()
    assert not source.exists()
    assert episode.path == dest
    assert episode.status is EpisodeStatus.RENAMED
    assert dest.stat().st_mtime_ns == OLD_MTIME_NS
    assert not mover.will_use_copy_and_delete
    assert mover.get_actual_destination_if_success() == dest


def test_copy_and_delete_across_filesystems(source, prefs, dest_root, observer, monkeypatch):
    cross_device(monkeypatch)
    episode = planned_episode(source, prefs)
    mover = FileMover(episode, prefs, observer)

    result = mover.call()

    dest = expected_dest(dest_root)
    assert result.status is EpisodeStatus.COPIED
    assert mover.will_use_copy_and_delete
    assert dest.read_bytes() == b"x" * 100
    assert not source.exists()
    assert dest.stat().st_mtime_ns == OLD_MTIME_NS
    assert observer.max_bytes == 100
    assert observer.values[-1] == 100
    assert observer.finished == [episode]


def test_modification_time_set_to_now(source, prefs, dest_root, monkeypatch):
    cross_device(monkeypatch)
    prefs = dataclasses.replace(prefs, preserve_modification_time=False)
    result = FileMover(planned_episode(source, prefs), prefs).call()
    assert result.status is EpisodeStatus.COPIED
    assert result.destination.stat().st_mtime_ns > OLD_MTIME_NS


def test_already_in_place(tmp_path):
    prefs = UserPreferences()
    src = make_file(tmp_path / "Show Name - S01E02.mkv", fill=b"k")
    os.utime(src, ns=(OLD_MTIME_NS, OLD_MTIME_NS))
    episode = planned_episode(src, prefs)

    result = FileMover(episode, prefs).call()

    assert result.status is EpisodeStatus.ALREADY_IN_PLACE
    assert result.succeeded
    assert src.read_bytes() == b"k" * 100
    assert src.stat().st_mtime_ns == OLD_MTIME_NS
    assert episode.path == src.resolve()


def test_rename_in_place_without_destination(tmp_path):
    prefs = UserPreferences()
    src = make_file(tmp_path / "show.name.1x02.avi")

    result = FileMover(planned_episode(src, prefs), prefs).call()

    assert result.status is EpisodeStatus.RENAMED
    assert result.destination == tmp_path.resolve() / "show name - S01E02.avi"


def test_destination_exists(source, prefs, dest_root):
    existing = make_file(dest_root / "Show Name" / "Season 01" / "Show Name - S01E02.mkv", fill=b"e")
    episode = planned_episode(source, prefs)

    result = FileMover(episode, prefs).call()

    assert result.status is EpisodeStatus.FAILED_TO_MOVE
    assert result.message == "cannot move; destination exists"
    assert source.exists()
    assert existing.read_bytes() == b"e" * 100
    assert episode.path == source


def test_overwrite_replaces_destination(source, prefs, dest_root):
    make_file(dest_root / "Show Name" / "Season 01" / "Show Name - S01E02.mkv", fill=b"e")
    prefs = dataclasses.replace(prefs, always_overwrite_destination=True)

    result = FileMover(planned_episode(source, prefs), prefs).call()

    assert result.status is EpisodeStatus.RENAMED
    assert result.destination.read_bytes() == b"x" * 100


def test_overwrite_with_copy(source, prefs, dest_root, monkeypatch):
    cross_device(monkeypatch)
    make_file(dest_root / "Show Name" / "Season 01" / "Show Name - S01E02.mkv", size=500, fill=b"e")
    prefs = dataclasses.replace(prefs, always_overwrite_destination=True)

    result = FileMover(planned_episode(source, prefs), prefs).call()

    assert result.status is EpisodeStatus.COPIED
    assert result.destination.read_bytes() == b"x" * 100


def test_source_vanished(source, prefs):
    episode = planned_episode(source, prefs)
    source.unlink()

    result = FileMover(episode, prefs).call()

    assert result.status is EpisodeStatus.NO_FILE
    assert not result.succeeded


def test_indexed_move_goes_to_duplicates_folder(source, prefs, dest_root):
    mover = FileMover(planned_episode(source, prefs), prefs)
    mover.dest_index = 2

    expected = dest_root / "Show Name" / "Season 01" / "duplicates" / "Show Name - S01E02 (2).mkv"
    assert mover.planned_destination() == expected
    assert mover.version_string == " (2)"

    # the duplicates folder is created on demand even for a pre-verified directory
    mover.directory_pre_verified = True
    result = mover.call()
    assert result.status is EpisodeStatus.RENAMED
    assert result.destination == expected.resolve()


def test_indexed_rename_in_place_stays_in_folder(tmp_path):
    prefs = UserPreferences()
    mover = FileMover(planned_episode(make_file(tmp_path / "show.s01e02.mkv"), prefs), prefs)
    mover.dest_index = 3
    assert mover.planned_destination() == tmp_path / "show - S01E02 (3).mkv"


def test_failed_copy_is_cleaned_up(source, prefs, dest_root, monkeypatch):
    cross_device(monkeypatch)

    def broken_copy(src, dest, observer=None, interrupted=None):
        dest.write_bytes(b"partial")
        return False

    monkeypatch.setattr(file_util, "copy_with_updates", broken_copy)
    episode = planned_episode(source, prefs)

    result = FileMover(episode, prefs).call()

    assert result.status is EpisodeStatus.FAILED_TO_MOVE
    assert result.message == "copy failed"
    assert source.exists()
    assert not (dest_root / "Show Name").exists()
    assert dest_root.exists()
    assert episode.path == source


def test_interrupted_copy(source, prefs, dest_root, monkeypatch):
    cross_device(monkeypatch)
    monkeypatch.setattr(file_util, "COPY_BUFFER_SIZE", 4)
    mover = FileMover(planned_episode(source, prefs), prefs)
    mover.interrupt()

    result = mover.call()

    assert mover.is_interrupted
    assert result.status is EpisodeStatus.FAILED_TO_MOVE
    assert result.message == "copy interrupted"
    assert source.exists()
    assert not expected_dest(dest_root).exists()


def test_failed_rename_keeps_existing_destination_dirs(source, prefs, dest_root, monkeypatch):
    keep = make_file(dest_root / "Show Name" / "Season 01" / "other.txt")
    monkeypatch.setattr(file_util, "rename_file", lambda src, dest, overwrite=False: None)

    result = FileMover(planned_episode(source, prefs), prefs).call()

    assert result.status is EpisodeStatus.FAILED_TO_MOVE
    assert result.message == "unable to rename/move file"
    assert keep.exists()
    assert source.exists()


def test_removes_emptied_source_directories(tmp_path, prefs, dest_root):
    src = make_file(tmp_path / "in" / "sub" / "Show.Name.S01E02.mkv")
    prefs = dataclasses.replace(prefs, remove_emptied_directories=True)

    result = FileMover(planned_episode(src, prefs), prefs).call()

    assert result.succeeded
    assert not (tmp_path / "in").exists()
    assert dest_root.exists()


def test_modification_time_failure(source, prefs, dest_root, monkeypatch):
    def broken_utime(*args, **kwargs):
        raise OSError("read-only filesystem")

    monkeypatch.setattr(core.os, "utime", broken_utime)
    episode = planned_episode(source, prefs)

    result = FileMover(episode, prefs).call()

    assert result.status is EpisodeStatus.FAILED_TO_MOVE
    assert result.message == "moved, but unable to set modification time"
    assert expected_dest(dest_root).exists()
    assert episode.path == expected_dest(dest_root)


def test_unexpected_error_becomes_failure(source, prefs, observer, monkeypatch):
    def explode(a, b):
        raise RuntimeError("boom")

    monkeypatch.setattr(file_util, "are_same_disk", explode)
    episode = planned_episode(source, prefs)

    result = FileMover(episode, prefs, observer).call()

    assert result.status is EpisodeStatus.FAILED_TO_MOVE
    assert result.message == "unexpected error during file move"
    assert observer.finished == [episode]
    assert source.exists()


def test_misnamed_destination(source, prefs, monkeypatch):
    def misdirected(src, dest, overwrite=False):
        other = dest.with_name("somewhere else.mkv")
        os.rename(src, other)
        return other

    monkeypatch.setattr(file_util, "rename_file", misdirected)
    episode = planned_episode(source, prefs)

    result = FileMover(episode, prefs).call()

    assert result.status is EpisodeStatus.MISNAMED
    assert not result.succeeded
    assert episode.path.name == "somewhere else.mkv"
    assert episode.path.exists()


def test_finds_duplicates_after_move(source, prefs, dest_root):
    season = dest_root / "Show Name" / "Season 01"
    other = make_file(season / "Show Name - S01E02.avi")
    prefs = dataclasses.replace(prefs, cleanup_duplicate_video_files=True)
    mover = FileMover(planned_episode(source, prefs), prefs)

    result = mover.call()

    assert result.status is EpisodeStatus.RENAMED
    assert result.duplicates == (other.resolve(),)
    assert mover.found_duplicates == (other.resolve(),)
    assert other.exists()


def test_cancelled_before_running(source, prefs):
    episode = planned_episode(source, prefs)
    mover = FileMover(episode, prefs)

    result = mover.mark_cancelled("cancelled")

    assert result.status is EpisodeStatus.FAILED_TO_MOVE
    assert episode.status is EpisodeStatus.FAILED_TO_MOVE
    assert episode.message == "cancelled"
    assert mover.get_actual_destination_if_success() is None
