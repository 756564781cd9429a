"""Resolution API endpoints."""
import logging

from fastapi import APIRouter, HTTPException, Query, Request

from backend.models import (
    BrowseResponse, CacheResult, EmbedsResponse, ErrorResponse, FilterRequest,
    NavigateRequest, OpenRequest, PathsResponse, SessionCreated, SessionState,
)
from config import CORS_RELAY_URL, EMBED_SITE_URL, FILE_SERVER_BASE_URL
from resolver.fetcher import DirectoryFetcher
from resolver.matcher import MatchTarget, RankedFileMatcher
from resolver.models import CacheStatus, MediaRef, Movie, SeasonInfo, Show
from resolver.paths import PathResolver
from resolver.session import BrowseResult, BrowseSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
_ERRORS = {404: {"model": ErrorResponse}, 502: {"model": ErrorResponse}}
paths = PathResolver()
matcher = RankedFileMatcher()


def _browse_response(browse: BrowseResult, session: BrowseSession | None = None) -> BrowseResponse:
    result = browse.result
    return BrowseResponse(
        path=browse.path,
        query=result.query,
        is_manual_mode=browse.is_manual_mode,
        is_empty=result.is_empty,
        directories=result.directories,
        videos=result.videos,
        groups=result.groups,
        can_go_back=session.navigation.can_go_back() if session else False,
        can_go_forward=session.navigation.can_go_forward() if session else False,
        error=browse.error,
        hint=browse.hint,
    )


def _session(request: Request, session_id: str) -> BrowseSession:
    session = request.app.state.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    return session


# ── Stateless helpers ───────────────────────────────────────────────────

@router.get("/paths", response_model=PathsResponse)
async def resolve_paths(
    title: str = Query(..., min_length=1, description="Display title"),
    kind: str = Query("movie", pattern="^(movie|show)$"),
    year: str | None = Query(None, description="Release year (movies)"),
    season: int | None = Query(None, ge=1, description="Season number (shows)"),
):
    """Candidate remote paths for a title, in priority order."""
    is_show = kind == "show"
    candidates = paths.candidates(title, is_show=is_show, year=year, season=season)
    return PathsResponse(path=candidates[0], candidates=candidates,
                         search_root=paths.search_root(is_show))


@router.get("/browse", response_model=BrowseResponse, responses=_ERRORS)
async def browse(
    request: Request,
    path: str = Query(..., min_length=1, description="Remote directory URL"),
    query: str = Query("", description="Case-insensitive name filter"),
    episode: int | None = Query(None, ge=0),
    season: int | None = Query(None, ge=0),
    group: bool = Query(False, description="Group videos by episode"),
    refresh: bool = Query(False, description="Bypass the cache"),
):
    """Fetch one listing and rank it, without session state."""
    fetcher = DirectoryFetcher(request.app.state.relay, request.app.state.cache)
    if refresh:
        request.app.state.cache.invalidate(path)
    listing = await fetcher.fetch(path, is_manual_mode=True, refresh=refresh)
    target = MatchTarget(query=query, episode=episode, season=season, group_episodes=group)
    result = matcher.match(listing, target)
    return _browse_response(BrowseResult(path=listing.path, result=result, is_manual_mode=True))


# ── Sessions ────────────────────────────────────────────────────────────

@router.post("/sessions", response_model=SessionCreated)
async def create_session(request: Request):
    fetcher = DirectoryFetcher(request.app.state.relay, request.app.state.cache)
    session_id = request.app.state.sessions.add(BrowseSession(fetcher, request.app.state.cache, paths))
    logger.info("Opened browse session %s", session_id)
    return SessionCreated(session_id=session_id)


@router.get("/sessions/{session_id}", response_model=SessionState)
async def session_state(request: Request, session_id: str):
    session = _session(request, session_id)
    metadata = request.app.state.cache.get_metadata()
    return SessionState(
        session_id=session_id,
        current_path=session.current_path,
        history=session.navigation.history,
        index=session.navigation.index,
        is_manual_mode=session.is_manual_mode,
        last_visited_path=metadata.last_visited_path,
        search_history=metadata.search_history,
    )


@router.delete("/sessions/{session_id}")
async def close_session(request: Request, session_id: str):
    if not request.app.state.sessions.remove(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session {session_id}")
    return {"closed": session_id}


@router.post("/sessions/{session_id}/open", response_model=BrowseResponse, responses=_ERRORS)
async def open_title(request: Request, session_id: str, body: OpenRequest):
    """Auto-resolve a title; falls back to manual browsing on failure."""
    session = _session(request, session_id)
    if body.tmdb_id is not None:
        media = await request.app.state.metadata.get_details(body.kind, body.tmdb_id)
    elif body.title:
        if body.kind == "show":
            media = Show(id=0, title=body.title)
        else:
            media = Movie(id=0, title=body.title,
                          release_date=f"{body.year}-01-01" if body.year else None)
    else:
        raise HTTPException(status_code=422, detail="Either tmdb_id or title is required")
    result = await session.open_title(media, season=body.season, episode=body.episode)
    return _browse_response(result, session)


@router.post("/sessions/{session_id}/manual", response_model=BrowseResponse)
async def open_manual(request: Request, session_id: str,
                      is_show: bool = Query(False, description="Browse TV instead of movies")):
    session = _session(request, session_id)
    return _browse_response(await session.open_manual(is_show), session)


@router.post("/sessions/{session_id}/navigate", response_model=BrowseResponse)
async def navigate(request: Request, session_id: str, body: NavigateRequest):
    session = _session(request, session_id)
    return _browse_response(await session.enter(body.path), session)


@router.post("/sessions/{session_id}/back", response_model=BrowseResponse)
async def back(request: Request, session_id: str):
    session = _session(request, session_id)
    result = await session.back()
    if result is None:
        raise HTTPException(status_code=409, detail="Nothing to go back to")
    return _browse_response(result, session)


@router.post("/sessions/{session_id}/forward", response_model=BrowseResponse)
async def forward(request: Request, session_id: str):
    session = _session(request, session_id)
    result = await session.forward()
    if result is None:
        raise HTTPException(status_code=409, detail="Nothing to go forward to")
    return _browse_response(result, session)


@router.post("/sessions/{session_id}/refresh", response_model=BrowseResponse)
async def refresh(request: Request, session_id: str):
    session = _session(request, session_id)
    result = await session.refresh()
    if result is None:
        raise HTTPException(status_code=409, detail="Session has no current path")
    return _browse_response(result, session)


@router.post("/sessions/{session_id}/filter", response_model=BrowseResponse)
async def filter_listing(request: Request, session_id: str, body: FilterRequest):
    session = _session(request, session_id)
    result = await session.filter(body.query)
    if result is None:
        raise HTTPException(status_code=409, detail="Session has no current path")
    return _browse_response(result, session)


# ── Embeds & metadata ───────────────────────────────────────────────────

@router.get("/embeds/{kind}/{tmdb_id}", response_model=EmbedsResponse, responses=_ERRORS)
async def embeds(
    request: Request,
    kind: str,
    tmdb_id: int,
    season: int | None = Query(None, ge=1),
    episode: int | None = Query(None, ge=1),
):
    """Playable embed candidates for a movie or an episode."""
    if kind not in ("movie", "episode"):
        raise HTTPException(status_code=422, detail="kind must be 'movie' or 'episode'")
    if kind == "episode" and (season is None or episode is None):
        raise HTTPException(status_code=422, detail="season and episode are required")
    media = MediaRef(kind=kind, tmdb_id=tmdb_id, season=season, episode=episode)
    candidates = await request.app.state.embeds.resolve(media)
    return EmbedsResponse(tmdb_id=tmdb_id, kind=kind, embeds=candidates)


@router.get("/media/search")
async def media_search(request: Request, q: str = Query(..., min_length=1)):
    return await request.app.state.metadata.search(q)


@router.get("/media/trending")
async def media_trending(request: Request, kind: str = Query("all", pattern="^(all|movie|show)$")):
    return await request.app.state.metadata.trending(kind)


@router.get("/media/show/{tmdb_id}/seasons", response_model=list[SeasonInfo], responses=_ERRORS)
async def media_seasons(request: Request, tmdb_id: int):
    """Numbered seasons of a show; specials are left out."""
    return await request.app.state.metadata.get_seasons(tmdb_id)


@router.get("/media/{kind}/{tmdb_id}")
async def media_details(request: Request, kind: str, tmdb_id: int):
    if kind not in ("movie", "show"):
        raise HTTPException(status_code=422, detail="kind must be 'movie' or 'show'")
    return await request.app.state.metadata.get_details(kind, tmdb_id)


# ── Cache ───────────────────────────────────────────────────────────────

@router.get("/search-history", response_model=list[str])
async def search_history(request: Request):
    return request.app.state.cache.get_metadata().search_history


@router.get("/cache/status", response_model=CacheStatus)
async def cache_status(request: Request, path: str = Query(..., min_length=1)):
    return request.app.state.cache.get_cache_status(path)


@router.post("/cache/invalidate", response_model=CacheResult)
async def cache_invalidate(request: Request, path: str = Query(..., min_length=1)):
    return CacheResult(removed=request.app.state.cache.invalidate(path))


@router.post("/cache/cleanup", response_model=CacheResult)
async def cache_cleanup(request: Request):
    """Evict expired and unreadable entries. Safe to run any time."""
    return CacheResult(removed=request.app.state.cache.cleanup_expired_entries())


@router.delete("/cache", response_model=CacheResult)
async def cache_clear(request: Request):
    return CacheResult(removed=request.app.state.cache.clear_all())


@router.get("/health")
async def health():
    """Lightweight health check. No network calls."""
    return {"status": "ok"}


@router.get("/config")
async def get_config():
    """Return public configuration."""
    return {
        "base_url": FILE_SERVER_BASE_URL,
        "movies_root": paths.movies_root,
        "tv_root": paths.tv_root,
        "relay_url": CORS_RELAY_URL,
        "embed_site": EMBED_SITE_URL,
    }
