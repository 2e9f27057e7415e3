from pathlib import Path

from conftest import make_file
from tvmove import cli
from tvmove.utils.settings import UserPreferences


def test_dry_run_moves_nothing(tmp_path, dest_root, capsys):
    src = make_file(tmp_path / "in" / "Show.Name.S01E02.mkv")

    code = cli.main([str(tmp_path / "in"), "--dest", str(dest_root), "--dry-run"])

    out = capsys.readouterr().out
    assert code == 0
    assert src.exists()
    assert not dest_root.exists()
    assert "DRY-RUN" in out
    assert "Show Name - S01E02.mkv" in out


def test_dry_run_shows_conflict_index(tmp_path, dest_root, capsys):
    make_file(tmp_path / "in" / "Show.Name.S01E02.mkv", size=200)
    make_file(tmp_path / "in" / "Show.Name.S01E02.avi", size=100)

    cli.main([str(tmp_path / "in"), "--dest", str(dest_root), "--dry-run"])

    assert "Show Name - S01E02 (2).avi" in capsys.readouterr().out


def test_moves_files(tmp_path, dest_root, capsys):
    make_file(tmp_path / "in" / "Show.Name.S01E02.mkv")
    make_file(tmp_path / "in" / "notes.txt")

    code = cli.main([str(tmp_path / "in"), "--dest", str(dest_root)])

    assert code == 0
    assert (dest_root / "Show Name" / "Season 01" / "Show Name - S01E02.mkv").exists()
    assert (tmp_path / "in" / "notes.txt").exists()
    assert "OK" in capsys.readouterr().out


def test_destination_from_environment(tmp_path, dest_root, monkeypatch):
    monkeypatch.setenv("TVMOVE_DESTINATION", str(dest_root))
    make_file(tmp_path / "in" / "Show.Name.S01E02.mkv")

    assert cli.main([str(tmp_path / "in")]) == 0
    assert (dest_root / "Show Name" / "Season 01" / "Show Name - S01E02.mkv").exists()


def test_no_move_renames_in_place(tmp_path, dest_root):
    make_file(tmp_path / "in" / "Show.Name.S01E02.mkv")

    code = cli.main([str(tmp_path / "in"), "--dest", str(dest_root), "--no-move"])

    assert code == 0
    assert (tmp_path / "in" / "Show Name - S01E02.mkv").exists()
    assert not dest_root.exists()


def test_missing_path(tmp_path):
    assert cli.main([str(tmp_path / "missing")]) == 2


def test_nothing_to_do(tmp_path):
    (tmp_path / "empty").mkdir()
    assert cli.main([str(tmp_path / "empty")]) == 0


def test_parse_failure_sets_exit_code(tmp_path, dest_root, capsys):
    make_file(tmp_path / "in" / "Just A Movie.mkv")
    make_file(tmp_path / "in" / "Show.Name.S01E02.mkv")

    code = cli.main([str(tmp_path / "in"), "--dest", str(dest_root)])

    out = capsys.readouterr().out
    assert code == 1
    assert "FAIL" in out
    assert "Could not find season/episode pattern" in out
    assert (dest_root / "Show Name" / "Season 01" / "Show Name - S01E02.mkv").exists()


def test_existing_library_file_sends_new_copy_to_duplicates(tmp_path, dest_root):
    make_file(dest_root / "Show Name" / "Season 01" / "Show Name - S01E02.mkv")
    make_file(tmp_path / "in" / "Show.Name.S01E02.mkv")

    assert cli.main([str(tmp_path / "in"), "--dest", str(dest_root)]) == 0
    assert (dest_root / "Show Name" / "Season 01" / "duplicates" / "Show Name - S01E02 (2).mkv").exists()


def test_find_duplicates_deletes_with_yes(tmp_path, dest_root):
    # with --overwrite the leftover is not treated as a naming conflict
    leftover = make_file(dest_root / "Show Name" / "Season 01" / "show.name.s01e02.avi")
    make_file(tmp_path / "in" / "Show.Name.S01E02.mkv")

    code = cli.main([str(tmp_path / "in"), "--dest", str(dest_root), "--overwrite",
                     "--find-duplicates", "--yes"])

    assert code == 0
    assert not leftover.exists()
    assert (dest_root / "Show Name" / "Season 01" / "Show Name - S01E02.mkv").exists()


def test_log_file(tmp_path, dest_root):
    log_path = tmp_path / "logs" / "tvmove.log"
    make_file(tmp_path / "in" / "Show.Name.S01E02.mkv")

    cli.main([str(tmp_path / "in"), "--dest", str(dest_root), "--log-file", str(log_path)])

    text = log_path.read_text(encoding="utf-8")
    assert "cli.start" in text
    assert "move.ok" in text


def test_collect_video_files(tmp_path):
    top = make_file(tmp_path / "a.mkv")
    nested = make_file(tmp_path / "sub" / "b.avi")
    make_file(tmp_path / "c.srt")

    assert cli.collect_video_files([tmp_path]) == [top]
    assert cli.collect_video_files([tmp_path], recursive=True) == sorted([top, nested])
    assert cli.collect_video_files([tmp_path, top]) == [top]


def test_preferences_from_args():
    args = cli.build_arg_parser().parse_args(
        ["x", "--no-rename", "--mtime-now", "--remove-empty-dirs", "--timeout", "5"])
    prefs = cli.preferences_from_args(args, UserPreferences(destination_directory=Path("/tv")))
    assert not prefs.rename_selected
    assert not prefs.preserve_modification_time
    assert prefs.remove_emptied_directories
    assert prefs.move_timeout == 5
    assert prefs.destination_directory == Path("/tv")
