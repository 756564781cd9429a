"""Locate playable embed URLs for a title on the embed source site.

Flow for one MediaRef:

    translate title → fetch page → parse embedded JSON → resolve stream URLs
        └─ nothing found → fallback title table → one more attempt → NotFound
"""
import asyncio
import json
import logging
import re
import unicodedata
from urllib.parse import urlsplit

from config import EMBED_SITE_URL, EMBED_TITLE_LOCALE, FALLBACK_TITLES_URL
from resolver.errors import FetchError, NotFoundError, ParseError
from resolver.fetcher import Relay
from resolver.models import EmbedCandidate, MediaRef

logger = logging.getLogger(__name__)

PAGE_DATA_MARKER = '{"props":{"pageProps":'
_STREAM_URL_RE = re.compile(r"var url = '([^']+)'")

EMBED_HOSTS = ("streamwish", "filemoon", "vidhide", "voe")
STREAMWISH_LANGUAGES = ("latino", "spanish", "english")


def normalize_title(title: str) -> str:
    """Slug used by the source site.

    e.g. "El Señor de los Anillos: El Retorno del Rey"
         → "el-senor-de-los-anillos-el-retorno-del-rey"
    """
    decomposed = unicodedata.normalize("NFD", title)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    slug = re.sub(r"[^a-z0-9\s-]", "", stripped.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    return re.sub(r"-+", "-", slug)


def is_allowed_stream(url: str) -> bool:
    """HTTPS and hosted by one of the known embed providers."""
    if not url.startswith("https://"):
        return False
    host = (urlsplit(url).hostname or "").lower()
    return any(name in host for name in EMBED_HOSTS)


def tag_embed(url: str, language: str) -> str | None:
    host = (urlsplit(url).hostname or "").lower()
    if "filemoon" in host:
        return "filemoon"
    if "streamwish" in host:
        lang = language if language in STREAMWISH_LANGUAGES else "latino"
        return f"streamwish-{lang}"
    if "vidhide" in host:
        return "vidhide"
    if "voe" in host:
        return "voe"
    return None


def extract_page_data(html: str) -> dict | None:
    """JSON blob from the inline script carrying the page props.

    Returns None when no script carries the marker; raises NotFoundError
    when the blob is there but is not valid JSON.
    """
    from selectolax.lexbor import LexborHTMLParser

    for script in LexborHTMLParser(html).css("script"):
        # Script bodies are raw text; read them from the serialized element
        content = script.html or ""
        start = content.find(PAGE_DATA_MARKER)
        if start == -1:
            continue
        end = content.rfind("</script>")
        try:
            return json.loads(content[start:end if end > start else None])
        except ValueError as e:
            raise NotFoundError(f"Failed to parse JSON: {e}") from ParseError(
                "Embedded page data is not valid JSON", e)
    return None


def select_videos(data: dict, media: MediaRef) -> dict:
    """Per-language video arrays for the movie or episode on the page."""
    props = (data.get("props") or {}).get("pageProps") or {}
    record = props.get("thisMovie") if media.kind == "movie" else props.get("episode")
    if not isinstance(record, dict):
        return {}
    videos = record.get("videos")
    return videos if isinstance(videos, dict) else {}


class EmbedResolver:
    def __init__(self, relay: Relay, metadata, site_url: str = EMBED_SITE_URL,
                 fallback_titles_url: str = FALLBACK_TITLES_URL,
                 locale: str = EMBED_TITLE_LOCALE):
        self.relay = relay
        self.metadata = metadata
        self.site_url = site_url.rstrip("/")
        self.fallback_titles_url = fallback_titles_url
        self.locale = locale

    def page_url(self, slug: str, media: MediaRef) -> str:
        if media.kind == "movie":
            return f"{self.site_url}/ver-pelicula/{slug}"
        return (f"{self.site_url}/episodio/{slug}"
                f"-temporada-{media.season}-episodio-{media.episode}")

    async def resolve(self, media: MediaRef) -> list[EmbedCandidate]:
        """Embed candidates for ``media``; NotFoundError when there are none."""
        if not media.tmdb_id:
            raise NotFoundError("TMDB ID is required to fetch the localized title")

        title = await self.metadata.get_title(media.kind, media.tmdb_id, self.locale)
        embeds = await self._attempt(title, media)
        if embeds:
            return embeds

        fallbacks = await self.fetch_title_substitutes()
        fallback_title = fallbacks.get(str(media.tmdb_id))
        if not fallback_title:
            raise NotFoundError("No embed data found and no fallback title available")

        logger.info("No embeds for %r, retrying with fallback title %r", title, fallback_title)
        embeds = await self._attempt(fallback_title, media)
        if not embeds:
            raise NotFoundError("No valid streams found")
        return embeds

    async def _attempt(self, title: str, media: MediaRef) -> list[EmbedCandidate]:
        url = self.page_url(normalize_title(title), media)
        logger.debug("Fetching embed page %s", url)
        html = await self.relay.fetch_text(url)
        data = extract_page_data(html)
        if data is None:
            logger.info("No page data found at %s", url)
            return []
        return await self.extract_videos(select_videos(data, media))

    async def extract_videos(self, videos: dict) -> list[EmbedCandidate]:
        """Resolve every video concurrently; failed ones are dropped.

        The gathered list holds one result per job (a candidate or the
        exception it raised), in language/array order.
        """
        jobs = []
        for language, items in videos.items():
            for video in items or []:
                if isinstance(video, dict) and video.get("result"):
                    jobs.append((language, video["result"]))

        results = await asyncio.gather(
            *(self.resolve_stream(language, url) for language, url in jobs),
            return_exceptions=True,
        )

        candidates = []
        for (language, url), result in zip(jobs, results):
            if isinstance(result, EmbedCandidate):
                candidates.append(result)
            elif isinstance(result, Exception):
                logger.debug("Dropping embed %s (%s): %s", url, language, result)
            else:
                raise result
        return candidates

    async def resolve_stream(self, language: str, embed_url: str) -> EmbedCandidate:
        html = await self.relay.fetch_text(embed_url)
        m = _STREAM_URL_RE.search(html)
        if not m:
            raise ParseError(f"No stream URL in {embed_url}")
        stream_url = m.group(1)
        embed_id = tag_embed(stream_url, language) if is_allowed_stream(stream_url) else None
        if embed_id is None:
            raise NotFoundError(f"Stream host not allowed: {stream_url}")
        return EmbedCandidate(embed_id=embed_id, url=stream_url)

    async def fetch_title_substitutes(self) -> dict:
        """Community table of TMDB id → alternate title; empty on failure."""
        try:
            table = await self.relay.fetch_direct_json(self.fallback_titles_url)
        except (FetchError, ParseError) as e:
            logger.warning("Failed to fetch fallback titles: %s", e)
            return {}
        return table if isinstance(table, dict) else {}
