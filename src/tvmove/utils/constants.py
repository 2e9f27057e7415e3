"""
Constants and default settings for episode parsing and file moving.

This module contains the fixed values shared by the parser, the single-move
state machine and the batch runner: recognized video extensions, the name of
the reserved duplicates directory, copy buffer sizes and progress cadence,
the per-move timeout, and the environment variable prefix used to build
user preferences. A ``.env`` file in the working directory is loaded on import
so that preference defaults can be set without exporting variables.
"""

from dotenv import load_dotenv

load_dotenv()

# Environment variable prefix for preferences (e.g. TVMOVE_DESTINATION)
ENV_PREFIX = "TVMOVE_"

# Folder name constants
DUPLICATES_DIRECTORY = "duplicates"
DEFAULT_SEASON_PREFIX = "Season "

# Run settings
DEBUG = False
FILE_MOVE_THREAD_LABEL = "file-mover"
DEFAULT_MOVE_TIMEOUT = 120  # seconds each move may run before it is cancelled
MONITOR_POLL_INTERVAL = 0.1  # seconds between shutdown checks while waiting on a move

# Copy settings
COPY_BUFFER_SIZE = 0x800000  # 8 MiB
PROGRESS_NOTIFY_BYTES = 4 * 1024 * 1024

# Duplicate detection
SHOW_NAME_SIMILARITY_THRESHOLD = 0.5

# Accepted video file extensions
VIDEO_EXTENSIONS = {
    ".mkv", ".mp4", ".avi", ".m4v", ".mov", ".wmv", ".flv", ".webm",
    ".mpg", ".mpeg", ".ts", ".m2ts", ".vob", ".divx", ".xvid",
}

# Scene-release tags stripped from the end of a filename before matching
JUNK_TOKENS = ("hdtv", "dvdrip")

# Outcome labels used in CLI summaries
STATUS_OK = "OK"
STATUS_SKIP = "SKIP"
STATUS_FAIL = "FAIL"
STATUS_DRY_RUN = "DRY-RUN"
