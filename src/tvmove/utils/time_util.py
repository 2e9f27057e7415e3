"""Elapsed-time, ETA and modification-time helpers for move batches."""
from datetime import datetime, timedelta, timezone


def get_eta_for_batch(completed_count, total_count, elapsed_seconds):
    """ETA for the rest of a batch, assuming the remaining moves take as long as the finished ones."""
    if completed_count <= 0:
        return "unknown"
    avg_time_per_move = elapsed_seconds / completed_count
    remaining_seconds = avg_time_per_move * max(0, total_count - completed_count)
    return _get_eta_string(remaining_seconds)


def format_duration(time_in_seconds):
    """Compact duration such as '1h2m3s', '4m5s' or '6s'."""
    hours = int(time_in_seconds // 3600)
    mins = int((time_in_seconds % 3600) // 60)
    secs = int(time_in_seconds % 60)
    if hours > 0:
        return f"{hours}h{mins}m{secs}s"
    if mins > 0:
        return f"{mins}m{secs}s"
    return f"{secs}s"


def format_runtime(time_in_seconds):
    """Runtime as HH:MM:SS for end-of-batch summaries."""
    total = int(time_in_seconds)
    return f"{total // 3600:02d}:{(total % 3600) // 60:02d}:{total % 60:02d}"


def format_mtime(timestamp):
    """Render a POSIX modification time (seconds) as a UTC string for log entries."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _get_eta_string(time_in_seconds):
    completion_time = (datetime.now(timezone.utc) + timedelta(
        seconds=time_in_seconds)).strftime("%Y-%m-%d %H:%M:%S")
    return f"{completion_time} ({format_duration(time_in_seconds)})"
