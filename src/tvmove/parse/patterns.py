"""
The ordered table of filename patterns used to find show, season and episode.

Each template captures the show name as group 1, the season as group 2 and
the (first) episode as group 3. Multi-episode templates capture the last
episode of the span as group 4.

Every template is compiled twice: once followed by a resolution marker
(``720p``, ``2160p``, ``4k``...) captured as the final group, and once bare.
All resolution variants come first. The bare templates tolerate arbitrary
trailing text, so tried first they would swallow the resolution as junk.

Order matters: the first template that matches wins. The table runs from the
most specific forms (explicit multi-episode lists and ranges, ``S01E02``) down
to two fallbacks that accept almost any pair of digit runs. The relative order
of the year-anchored template and those fallbacks is kept as-is; they are
known to misfire on names carrying unrelated numbers.
"""
import re
from typing import NamedTuple, Pattern, Tuple

# A bare filename that starts with an episode token (no show name before it).
FILENAME_BEGINS_WITH_SEASON = re.compile(r"(([sS]\d\d?[eE]\d\d?)|([sS]?\d\d?[x.]?\d\d\d?)).*", re.ASCII)

# Directory names like "S01" that are season folders rather than show folders.
DIR_LOOKS_LIKE_SEASON = re.compile(r"[sS][0-3]\d", re.ASCII)

# "MyShow.Season02" -> "MyShow"
EXCESS_SEASON = re.compile(r"[^A-Za-z]Season[ _-]?\d\d?", re.ASCII)

# Display resolutions 480p..4320p and compact 4k/8k. Narrow enough that
# programme ids such as "p032kjnx" are not read as a resolution.
RESOLUTION_REGEX = r"\D(\d{3,4}p|\d[kK]).*"

# Loose check used only to explain a failed parse.
BASIC_EPISODE_PATTERN = re.compile(r"[sS]\d+[eE]\d+|\d+[xX]\d+|\d{1,2}\d{2}", re.ASCII)


class PatternTemplate(NamedTuple):
    name: str
    regex: str
    multi_episode: bool = False


class CompiledPattern(NamedTuple):
    template: PatternTemplate
    with_resolution: bool
    pattern: Pattern


TEMPLATES: Tuple[PatternTemplate, ...] = (
    # S01E04E05, S01E04E05E06
    PatternTemplate("episode-list", r"(.+?[^a-zA-Z0-9]\D*?)[sS](\d\d*)[eE](\d\d*)[eE](\d\d*)(?:[eE]\d\d*)*.*",
                    multi_episode=True),
    # S02E04-E06, S02E04-06
    PatternTemplate("episode-range", r"(.+?[^a-zA-Z0-9]\D*?)[sS](\d\d*)[eE](\d\d*)-(?:[eE])?(\d\d*).*",
                    multi_episode=True),
    # S01E02
    PatternTemplate("sxxexx", r"(.+?[^a-zA-Z0-9]\D*?)[sS](\d\d*)[eE](\d\d*).*"),
    # Season-01-Episode-02
    PatternTemplate("season-episode-words", r"(.+?[^a-zA-Z0-9]\D*?)Season[- ](\d\d*)[- ]?Episode[- ](\d\d*).*"),
    # Show_Series_1_-_02.Title
    PatternTemplate("series-underscore", r"(.+)_Series_(\d\d*)_-_(\d\d*)\..*"),
    # s01.e02
    PatternTemplate("loose-sxxexx", r"(.+[^a-zA-Z0-9]\D*?)[sS](\d\d*)\D*?[eE](\d\d*).*"),
    # S1x02
    PatternTemplate("sxee", r"(.+[^a-zA-Z0-9]\D*?)[Ss](\d\d?)x(\d\d\d?).*"),
    # Show 2010 1x02; misfires when the year is an air date
    PatternTemplate("year-anchored", r"(.+?\d{4}[^a-zA-Z0-9]\D*?)[sS]?(\d\d?)\D*?(\d\d).*"),
    # S0102, exactly four digits
    PatternTemplate("sxxyy", r"(.+?[^a-zA-Z0-9]\D*?)[sS](\d\d)(\d\d)\D.*"),
    # anything with two digit runs
    PatternTemplate("fallback", r"(.+[^a-zA-Z0-9]\D*?)(\d\d?)\D+(\d\d).*"),
    # 102, 1002
    PatternTemplate("last-resort", r"(.+[^a-zA-Z0-9]+)(\d\d?)(\d\d).*"),
)


def compile_patterns(templates: Tuple[PatternTemplate, ...] = TEMPLATES) -> Tuple[CompiledPattern, ...]:
    """All resolution variants in table order, then all bare variants in table order."""
    with_resolution = tuple(
        CompiledPattern(t, True, re.compile(t.regex + RESOLUTION_REGEX, re.ASCII)) for t in templates
    )
    bare = tuple(CompiledPattern(t, False, re.compile(t.regex, re.ASCII)) for t in templates)
    return with_resolution + bare


COMPILED_PATTERNS: Tuple[CompiledPattern, ...] = compile_patterns()
