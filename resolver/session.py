"""One browsing session over the file index.

Control flow: PathResolver picks the start path → DirectoryFetcher loads it
(cache first) → RankedFileMatcher ranks it → NavigationHistory records it.
"""
import logging
from dataclasses import dataclass

from resolver.cache import ResultCache
from resolver.errors import FetchError, MANUAL_BROWSE_HINT
from resolver.fetcher import DirectoryFetcher
from resolver.history import NavigationHistory
from resolver.matcher import MatchTarget, RankedFileMatcher
from resolver.models import FileEntry, MatchResult, Movie, Show
from resolver.paths import PathResolver

logger = logging.getLogger(__name__)


@dataclass
class BrowseResult:
    path: str
    result: MatchResult
    is_manual_mode: bool = False
    # Set when auto-resolution failed and the session fell back to browsing
    error: str | None = None
    hint: str | None = None


class BrowseSession:
    def __init__(self, fetcher: DirectoryFetcher, cache: ResultCache,
                 paths: PathResolver | None = None,
                 matcher: RankedFileMatcher | None = None):
        self.fetcher = fetcher
        self.cache = cache
        self.paths = paths or PathResolver()
        self.matcher = matcher or RankedFileMatcher()
        self.navigation = NavigationHistory()
        self.target = MatchTarget()
        self.is_manual_mode = False
        self.is_show = False

    # ── Entry points ──

    async def open_title(self, media: Movie | Show, season: int | None = None,
                         episode: int | None = None) -> BrowseResult:
        """Auto-resolve ``media`` to a path; fall back to manual browsing."""
        self.is_show = media.kind == "show"
        self.is_manual_mode = False
        self.target = MatchTarget(episode=episode, season=season,
                                  group_episodes=self.is_show)
        if self.is_show:
            path = self.paths.tv_show_path(media.title, season)
        else:
            path = self.paths.movie_path(media.title, media.release_year)

        try:
            browse = await self._load(path, reset=True)
        except FetchError as e:
            logger.info("Auto-resolution failed for %r: %s", media.title, e.message)
            fallback = await self.open_manual(self.is_show)
            fallback.error = e.message
            fallback.hint = MANUAL_BROWSE_HINT
            return fallback

        if browse.result.is_empty:
            fallback = await self.open_manual(self.is_show)
            fallback.error = "No files found in this directory"
            fallback.hint = MANUAL_BROWSE_HINT
            return fallback
        return browse

    async def open_manual(self, is_show: bool) -> BrowseResult:
        """Browse from the movies or TV root."""
        self.is_show = is_show
        self.is_manual_mode = True
        self.target = MatchTarget(group_episodes=is_show)
        return await self._load(self.paths.search_root(is_show), reset=True)

    # ── Navigation ──

    async def enter(self, path: str) -> BrowseResult:
        return await self._load(path)

    async def enter_entry(self, entry: FileEntry) -> BrowseResult:
        if not entry.is_directory:
            raise ValueError(f"{entry.name!r} is not a directory")
        return await self._load(entry.url)

    async def back(self) -> BrowseResult | None:
        path = self.navigation.back()
        return await self._load(path, record=False) if path else None

    async def forward(self) -> BrowseResult | None:
        path = self.navigation.forward()
        return await self._load(path, record=False) if path else None

    async def refresh(self) -> BrowseResult | None:
        """Drop cached copies of the current path and fetch it again."""
        path = self.navigation.current
        if path is None:
            return None
        self.cache.invalidate(path)
        return await self._load(path, record=False, refresh=True)

    async def filter(self, query: str) -> BrowseResult | None:
        """Re-rank the current listing against ``query``."""
        path = self.navigation.current
        if path is None:
            return None
        self.target = MatchTarget(query=query, episode=self.target.episode,
                                  season=self.target.season,
                                  group_episodes=self.target.group_episodes)
        if query.strip():
            self.cache.add_search_term(query)
        browse = await self._load(path, record=False)
        if query.strip():
            entries = browse.result.directories + browse.result.videos
            self.cache.set(ResultCache.search_key(path, query), entries, path,
                           self.is_manual_mode)
        return browse

    def select_episode(self, episode: int | None, season: int | None = None):
        self.target = MatchTarget(query=self.target.query, episode=episode,
                                  season=season if season is not None else self.target.season,
                                  group_episodes=self.target.group_episodes)

    # ── State ──

    @property
    def current_path(self) -> str | None:
        return self.navigation.current

    @property
    def search_history(self) -> list[str]:
        return self.cache.get_metadata().search_history

    @property
    def last_visited_path(self) -> str:
        return self.cache.get_metadata().last_visited_path

    async def _load(self, path: str, *, reset: bool = False, record: bool = True,
                    refresh: bool = False) -> BrowseResult:
        listing = await self.fetcher.fetch(path, is_manual_mode=self.is_manual_mode,
                                           refresh=refresh)
        if reset:
            self.navigation.reset(listing.path)
        elif record:
            self.navigation.navigate_to(listing.path)
        self.cache.update_last_visited_path(listing.path)
        return BrowseResult(
            path=listing.path,
            result=self.matcher.match(listing, self.target),
            is_manual_mode=self.is_manual_mode,
        )
