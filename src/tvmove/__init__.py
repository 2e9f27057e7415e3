"""
Identify TV episodes from their filenames and move them into a tidy library.

The package is split into two stages plus shared utilities:
- parse: pull show name, season/episode (or span) and resolution out of a
  filename, consulting parent folders when the filename alone is not enough,
  and build the destination folder and name.
- move: move each file with a rename or a cross-filesystem copy, resolving
  naming conflicts for the whole batch up front and reporting duplicates.
- utils: constants, structured logging, preferences, filesystem helpers.
"""

__version__ = "1.0.0"

# Debug flag for controlling verbose output
DEBUG: bool = False

__all__ = ["__version__", "DEBUG"]
