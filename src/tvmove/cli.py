"""
tvmove: parse TV episode filenames and move the files into a library layout.

    tvmove ~/Downloads --recursive --dest ~/TV

Each video file is parsed for show, season and episode; the extracted show
name (after any TVMOVE_SHOW_OVERRIDES) is used as the show folder. Files are
then moved by a MoveRunner to ``<dest>/<Show>/Season NN/<Show> - SxxEyy.ext``.
Without ``--dest`` (or with ``--no-move``) files are only renamed in place.
"""
import argparse
import dataclasses
import signal
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import tvmove as tvmove_module
from tvmove.models import EpisodeStatus, FileEpisode
from tvmove.move import FileMover, MoveRunner, TqdmMoveObserver, TqdmProgressUpdater
from tvmove.move import conflicts
from tvmove.parse import parse_episode, plan_destination
from tvmove.utils import LogLevel, file_util, logger, time_util
from tvmove.utils.constants import STATUS_DRY_RUN, STATUS_FAIL, STATUS_OK, STATUS_SKIP
from tvmove.utils.settings import UserPreferences

# Runner currently executing, for the signal handler
_runner: Optional[MoveRunner] = None


def _signal_handler(signum, frame):
    """Turn Ctrl-C / SIGTERM into a cooperative shutdown of the running batch."""
    try:
        sig_name = signal.Signals(signum).name
    except ValueError:
        sig_name = str(signum)
    logger.log("cli.signal", LogLevel.WARN, signal=sig_name)
    if _runner is not None:
        logger.safe_print("\nShutdown signal received. Cancelling remaining moves...")
        _runner.request_shutdown()
    else:
        raise KeyboardInterrupt


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tvmove",
        description="Identify TV episodes from their filenames, then rename them and move them "
                    "into <dest>/<Show>/Season NN folders.",
        epilog="Example: tvmove ~/Downloads --recursive --dest ~/TV",
    )
    parser.add_argument("paths", nargs="+", metavar="PATH", help="Video files or directories to process")
    parser.add_argument("--dest", help="Destination root directory (default: $TVMOVE_DESTINATION)")
    parser.add_argument("--recursive", "-r", action="store_true", help="Descend into subdirectories")
    parser.add_argument("--no-move", action="store_true", help="Rename in place; do not move to the destination")
    parser.add_argument("--no-rename", action="store_true", help="Keep the original file names")
    parser.add_argument("--overwrite", action="store_true", help="Replace existing destination files")
    parser.add_argument("--mtime-now", action="store_true",
                        help="Set the modification time to now instead of preserving it")
    parser.add_argument("--remove-empty-dirs", action="store_true",
                        help="Remove source directories left empty by a move")
    parser.add_argument("--find-duplicates", action="store_true",
                        help="Look for other copies of each moved episode and offer to delete them")
    parser.add_argument("--timeout", type=int, help="Seconds each move may take before it is cancelled")
    parser.add_argument("--dry-run", action="store_true", help="Show what would happen without moving anything")
    parser.add_argument("--yes", "-y", action="store_true", help="Delete found duplicates without asking")
    parser.add_argument("--debug", action="store_true", help="Enable debug output")
    parser.add_argument("--log-file", help="Also write log entries to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {tvmove_module.__version__}")
    return parser


def preferences_from_args(args, base: Optional[UserPreferences] = None) -> UserPreferences:
    """Environment-derived preferences with command-line flags applied on top."""
    prefs = base if base is not None else UserPreferences.from_env()
    changes = {}
    if args.dest:
        changes["destination_directory"] = Path(args.dest).expanduser().resolve()
    if args.no_move:
        changes["move_selected"] = False
    if args.no_rename:
        changes["rename_selected"] = False
    if args.overwrite:
        changes["always_overwrite_destination"] = True
    if args.mtime_now:
        changes["preserve_modification_time"] = False
    if args.remove_empty_dirs:
        changes["remove_emptied_directories"] = True
    if args.find_duplicates:
        changes["cleanup_duplicate_video_files"] = True
    if args.timeout is not None:
        changes["move_timeout"] = args.timeout
    return dataclasses.replace(prefs, **changes)


def collect_video_files(paths: Sequence[Path], recursive: bool = False) -> List[Path]:
    """Video files named directly or found in the given directories, without repeats."""
    files = []
    seen = set()
    for path in paths:
        if path.is_dir():
            candidates = path.rglob("*") if recursive else path.iterdir()
            found = sorted(p for p in candidates if p.is_file() and file_util.has_video_extension(p.name))
        elif path.is_file() and file_util.has_video_extension(path.name):
            found = [path]
        else:
            logger.log("cli.skipped", LogLevel.DEBUG, path=path, reason="not a video file")
            found = []
        for f in found:
            key = f.resolve()
            if key not in seen:
                seen.add(key)
                files.append(f)
    return files


def parse_files(files: Sequence[Path], prefs: UserPreferences) -> Tuple[List[FileEpisode], List[FileEpisode]]:
    """Parse every file and plan its destination; returns (parsed, failed)."""
    parsed, failed = [], []
    for f in files:
        episode = FileEpisode.from_path(f)
        parse_episode(episode, prefs)
        if episode.status is EpisodeStatus.PARSED:
            plan_destination(episode, prefs)
            parsed.append(episode)
        else:
            failed.append(episode)
    return parsed, failed


def confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _print_plan(movers: Sequence[FileMover]) -> None:
    for mover in movers:
        target = mover.planned_destination()
        logger.safe_print(f"{STATUS_DRY_RUN} {mover.current_path} -> {target}")


def _print_results(episodes: Sequence[FileEpisode]) -> None:
    for episode in episodes:
        label = STATUS_OK if episode.status.is_success else STATUS_FAIL
        if episode.status is EpisodeStatus.ALREADY_IN_PLACE:
            label = STATUS_SKIP
        detail = f" ({episode.message})" if episode.message else ""
        logger.safe_print(f"{label} [{episode.status.value}] {episode.path}{detail}")


def _handle_duplicates(duplicates: Sequence[Path], args) -> None:
    if not duplicates:
        return
    logger.safe_print(f"\nPossible duplicates ({len(duplicates)}):")
    for dup in duplicates:
        logger.safe_print(f"  {dup}")
    if not args.find_duplicates:
        return
    if args.yes or confirm(f"Delete {len(duplicates)} duplicate file(s)?"):
        deleted = file_util.delete_files(duplicates)
        logger.log("cli.duplicates_deleted", LogLevel.INFO, deleted=deleted, found=len(duplicates))
    else:
        logger.safe_print("Duplicates left in place.")


def run_moves(movers: Sequence[FileMover], prefs: UserPreferences, show_progress: bool = True) -> MoveRunner:
    """Run the batch to completion, treating SIGINT/SIGTERM as a shutdown request."""
    global _runner
    updater = TqdmProgressUpdater(len(movers)) if show_progress else None
    runner = MoveRunner(movers, prefs=prefs, updater=updater)
    _runner = runner
    previous = {}
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            previous[sig] = signal.signal(sig, _signal_handler)
    except ValueError:
        # Not on the main thread; signals stay as they are.
        previous = {}
    try:
        runner.run_thread()
        while not runner.wait(0.5):
            pass
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        _runner = None
    return runner


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    tvmove_module.DEBUG = args.debug
    logger.set_log_level(LogLevel.DEBUG if args.debug else LogLevel.INFO)
    if args.log_file:
        log_path = logger.set_log_file(Path(args.log_file))
        logger.safe_print(f"Logging to: {log_path}")

    paths = [Path(p).expanduser() for p in args.paths]
    missing = [p for p in paths if not p.exists()]
    if missing:
        for p in missing:
            logger.log("cli.error", LogLevel.ERROR, msg="Path does not exist", path=p)
        return 2

    prefs = preferences_from_args(args)
    start_time = time.time()

    files = collect_video_files(paths, args.recursive)
    if not files:
        logger.log("cli.complete", LogLevel.INFO, msg="No video files found", paths=len(paths))
        return 0

    logger.log("cli.start", LogLevel.INFO, files=len(files), dest=prefs.destination_directory,
               move=prefs.is_move_enabled, rename=prefs.rename_selected, overwrite=prefs.always_overwrite_destination,
               dry_run=args.dry_run)

    parsed, failed = parse_files(files, prefs)
    for episode in failed:
        logger.safe_print(f"{STATUS_FAIL} {episode.path}: {episode.failure_reason.user_message}")

    if args.dry_run:
        movers = [FileMover(e, prefs) for e in parsed]
        if not prefs.always_overwrite_destination:
            for dest_dir, moves in conflicts.map_by_dest_dir(movers).items():
                conflicts.resolve_conflicts(moves, dest_dir)
        _print_plan(movers)
        return 1 if failed else 0

    duplicates = ()
    if parsed:
        movers = [FileMover(e, prefs, TqdmMoveObserver(e.filename)) for e in parsed]
        runner = run_moves(movers, prefs)
        duplicates = runner.found_duplicates
        _print_results(parsed)

    _handle_duplicates(duplicates, args)

    moved = sum(1 for e in parsed if e.status.is_success)
    move_failed = len(parsed) - moved
    logger.log("cli.end", LogLevel.INFO, runtime=time_util.format_runtime(time.time() - start_time),
               moved=moved, failed_to_move=move_failed, failed_to_parse=len(failed), duplicates=len(duplicates))
    return 1 if failed or move_failed else 0


if __name__ == "__main__":
    sys.exit(main())
