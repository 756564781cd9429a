"""Filename metadata extraction, episode grouping and relevance scoring."""
import logging
import re
from dataclasses import dataclass

from resolver.models import DirectoryListing, FileEntry, MatchResult

logger = logging.getLogger(__name__)

OTHER_EPISODES = 0

# Score tiers. Higher tier always means a better match.
SCORE_EXACT_EPISODE = 100  # SxxEyy with the selected season and episode
SCORE_EPISODE_ANY_SEASON = 95  # SxxEyy with the episode, season not selected
SCORE_EPISODE = 90  # episode number found by a weaker pattern
SCORE_QUERY_EXACT = 85  # query appears verbatim in the name
SCORE_QUERY_TOKENS = 75  # every query word appears somewhere
SCORE_QUERY_PARTIAL = 50  # base for some query words present (50-69)

# ── Metadata extraction ─────────────────────────────────────────────────

_QUALITY_RE = re.compile(r"(?<![A-Za-z0-9])(720p|1080p|2160p|4K)(?![A-Za-z0-9])", re.IGNORECASE)
_SOURCE_RE = re.compile(
    r"(?<![A-Za-z0-9])(BluRay|WEBDL|WEB-DL|WEBRip|HDRip|BRRip|DVDRip)(?![A-Za-z0-9])", re.IGNORECASE
)
_SOURCE_NAMES = {
    "bluray": "BluRay",
    "webdl": "WEB-DL",
    "web-dl": "WEB-DL",
    "webrip": "WEBRip",
    "hdrip": "HDRip",
    "brrip": "BRRip",
    "dvdrip": "DVDRip",
}

# Episode patterns, tried in order:
#   Show.S01E02.mkv / Show S1 E2     season + episode tag
#   Show 1x02.mkv                    season x episode
#   Show Episode 2 / Ep02 / E02      episode marker
#   Show - 02.mkv / [Group] Show 02v2  standalone number between separators
_SEASON_EPISODE_RE = re.compile(
    r"(?<![A-Za-z0-9])S(\d{1,2})[\s._-]?E(\d{1,3})"
    r"|(?<![A-Za-z0-9])(\d{1,2})x(\d{2,3})(?!\d)",
    re.IGNORECASE,
)
_EPISODE_MARKER_RE = re.compile(
    r"(?<![A-Za-z0-9])(?:episode|ep|e)[\s._-]*(\d{1,3})(?!\d)", re.IGNORECASE
)
_STANDALONE_RE = re.compile(r"(?:^|[\s_\-\[(])(\d{1,2})(?:v\d+)?(?=[\s_\-\])]|$)")


def extract_quality(name: str) -> str | None:
    """e.g. 'Show.S01E02.1080p.mkv' → '1080P'"""
    m = _QUALITY_RE.search(name)
    return m.group(1).upper() if m else None


def extract_source(name: str) -> str | None:
    """e.g. 'Movie.2020.WEBDL.mkv' → 'WEB-DL'"""
    m = _SOURCE_RE.search(name)
    return _SOURCE_NAMES[m.group(1).lower()] if m else None


def extract_extension(name: str) -> str | None:
    """e.g. 'movie.mkv' → 'MKV'"""
    if "." in name:
        ext = name.rsplit(".", 1)[-1]
        return ext.upper() if ext else None
    return None


def _stem(name: str) -> str:
    return name.rsplit(".", 1)[0] if extract_extension(name) else name


def _season_episode(name: str) -> tuple[int, int] | None:
    m = _SEASON_EPISODE_RE.search(name)
    if not m:
        return None
    if m.group(1) is not None:
        return int(m.group(1)), int(m.group(2))
    return int(m.group(3)), int(m.group(4))


def extract_episode_number(name: str) -> int | None:
    """Episode number parsed out of a filename, or None."""
    tagged = _season_episode(name)
    if tagged:
        return tagged[1]
    stem = _stem(name)
    m = _EPISODE_MARKER_RE.search(stem)
    if m:
        return int(m.group(1))
    m = _STANDALONE_RE.search(stem)
    if m:
        return int(m.group(1))
    return None


# ── Matching ────────────────────────────────────────────────────────────

@dataclass
class MatchTarget:
    """What the caller wants out of a listing."""

    query: str = ""
    episode: int | None = None
    season: int | None = None
    group_episodes: bool = False

    @property
    def is_scored(self) -> bool:
        return self.episode is not None or bool(self.query.strip())


def _words(text: str) -> list[str]:
    return [w for w in re.split(r"[\s._\-\[\]()]+", text.lower()) if w]


def _episode_score(name: str, episode: int, season: int | None) -> int:
    tagged = _season_episode(name)
    if tagged:
        tag_season, tag_episode = tagged
        if tag_episode != episode:
            return 0
        if season is None:
            return SCORE_EPISODE_ANY_SEASON
        return SCORE_EXACT_EPISODE if tag_season == season else 0
    return SCORE_EPISODE if extract_episode_number(name) == episode else 0


def _query_score(name: str, query: str) -> int:
    query = query.strip().lower()
    if not query:
        return 0
    if query in name.lower():
        return SCORE_QUERY_EXACT
    wanted = _words(query)
    if not wanted:
        return 0
    have = set(_words(name))
    found = sum(1 for w in wanted if w in have)
    if found == len(wanted):
        return SCORE_QUERY_TOKENS
    if found:
        return SCORE_QUERY_PARTIAL + int(20 * found / len(wanted))
    return 0


class RankedFileMatcher:
    """Filter, score and group listing entries against a MatchTarget.

    All operations are pure: input entries are never mutated, scored
    entries are copies.
    """

    def filter(self, entries: list[FileEntry], query: str) -> list[FileEntry]:
        """Case-insensitive substring filter on names; empty query keeps all."""
        needle = query.strip().lower()
        if not needle:
            return list(entries)
        return [e for e in entries if needle in e.name.lower()]

    def score(self, entry: FileEntry, target: MatchTarget) -> int:
        best = 0
        if target.episode is not None and entry.is_video:
            best = _episode_score(entry.name, target.episode, target.season)
        if target.query:
            best = max(best, _query_score(entry.name, target.query))
        return min(best, 100)

    def rank(self, entries: list[FileEntry], target: MatchTarget) -> list[FileEntry]:
        """Directories first, then videos by score; ties keep listing order."""
        if target.is_scored:
            entries = [e.model_copy(update={"match_score": self.score(e, target)})
                       for e in entries]
        return sorted(entries, key=lambda e: (not e.is_directory, -(e.match_score or 0)))

    def group_by_episode(self, entries: list[FileEntry]) -> dict[int, list[FileEntry]]:
        """Bucket every video by episode number; unattributed ones go to 0.

        Keys are ascending with the "other" bucket last.
        """
        groups: dict[int, list[FileEntry]] = {}
        for entry in entries:
            if not entry.is_video:
                continue
            episode = entry.episode_number
            groups.setdefault(episode if episode else OTHER_EPISODES, []).append(entry)
        return dict(sorted(groups.items(),
                           key=lambda item: (item[0] == OTHER_EPISODES, item[0])))

    def match(self, listing: DirectoryListing, target: MatchTarget) -> MatchResult:
        filtered = self.filter(listing.entries, target.query)
        ranked = self.rank(filtered, target)
        videos = [e for e in ranked if e.is_video]
        result = MatchResult(
            path=listing.path,
            query=target.query,
            directories=[e for e in ranked if e.is_directory],
            videos=videos,
            groups=self.group_by_episode(filtered) if target.group_episodes else {},
        )
        if result.is_empty:
            logger.info("No entries left in %s for query %r", listing.path, target.query)
        return result
