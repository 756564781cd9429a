"""Read-only client for the TMDB metadata API."""
import logging
from urllib.parse import urlencode

from config import TMDB_API_KEY, TMDB_BASE_URL, TMDB_LOCALE
from resolver.errors import FetchError, NotFoundError
from resolver.fetcher import Relay
from resolver.models import Movie, SeasonInfo, Show

logger = logging.getLogger(__name__)

_PATH_KIND = {"movie": "movie", "show": "tv", "tv": "tv", "episode": "tv"}


def to_media(data: dict, kind: str | None = None) -> Movie | Show:
    """Build a Movie or Show from a TMDB record.

    The discriminant comes from ``media_type`` (search/trending results) or
    the caller's ``kind``; TMDB's title/name split is resolved here.
    """
    media_type = data.get("media_type") or kind
    if media_type in ("tv", "show"):
        return Show(
            id=data["id"],
            title=data.get("name") or data.get("original_name") or "",
            original_title=data.get("original_name"),
            first_air_date=data.get("first_air_date") or None,
            overview=data.get("overview"),
            poster_path=data.get("poster_path"),
            seasons=_seasons(data.get("seasons") or []),
        )
    return Movie(
        id=data["id"],
        title=data.get("title") or data.get("original_title") or "",
        original_title=data.get("original_title"),
        release_date=data.get("release_date") or None,
        overview=data.get("overview"),
        poster_path=data.get("poster_path"),
    )


def _seasons(raw: list[dict]) -> list[SeasonInfo]:
    # Season 0 holds specials, which the file index never carries
    return [
        SeasonInfo(
            season_number=s["season_number"],
            name=s.get("name") or "",
            episode_count=s.get("episode_count") or 0,
        )
        for s in raw
        if s.get("season_number", 0) > 0
    ]


class TMDBClient:
    def __init__(self, relay: Relay, api_key: str = TMDB_API_KEY,
                 base_url: str = TMDB_BASE_URL, locale: str = TMDB_LOCALE):
        self.relay = relay
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.locale = locale

    async def _get(self, endpoint: str, **params) -> dict:
        query = {"api_key": self.api_key, "language": self.locale}
        query.update({k: v for k, v in params.items() if v is not None})
        url = f"{self.base_url}/{endpoint}?{urlencode(query)}"
        try:
            return await self.relay.fetch_direct_json(url)
        except FetchError as e:
            if e.status == 404:
                raise NotFoundError(f"TMDB has no record for {endpoint}") from e
            raise

    async def get_details(self, kind: str, tmdb_id: int) -> Movie | Show:
        data = await self._get(f"{_PATH_KIND[kind]}/{tmdb_id}")
        return to_media(data, kind=_PATH_KIND[kind])

    async def get_title(self, kind: str, tmdb_id: int, locale: str | None = None) -> str:
        """Localized title, e.g. the Spanish title for the embed site."""
        data = await self._get(f"{_PATH_KIND[kind]}/{tmdb_id}", language=locale)
        title = data.get("title") or data.get("name")
        if not title:
            raise NotFoundError(f"TMDB returned no title for {kind} {tmdb_id}")
        return title

    async def search(self, query: str, page: int = 1) -> list[Movie | Show]:
        data = await self._get("search/multi", query=query, page=page)
        return [
            to_media(item)
            for item in data.get("results", [])
            if item.get("media_type") in ("movie", "tv")
        ]

    async def trending(self, kind: str = "all", window: str = "week") -> list[Movie | Show]:
        path_kind = "all" if kind == "all" else _PATH_KIND[kind]
        data = await self._get(f"trending/{path_kind}/{window}")
        return [
            to_media(item, kind=None if path_kind == "all" else path_kind)
            for item in data.get("results", [])
            if item.get("media_type", path_kind) in ("movie", "tv")
        ]

    async def get_seasons(self, tv_id: int) -> list[SeasonInfo]:
        show = await self.get_details("show", tv_id)
        return show.seasons
