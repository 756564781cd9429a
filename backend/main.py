"""FastAPI application entry point for the media source resolver."""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.api import router as api_router
from backend.sessions import SessionRegistry
from config import CACHE_CLEANUP_SCHEDULE, DB_PATH, HOST, PORT
from resolver.cache import ResultCache
from resolver.embed import EmbedResolver
from resolver.errors import FetchError, NotFoundError, ParseError, ResolverError
from resolver.fetcher import Relay
from resolver.store import SqliteStore
from resolver.tmdb import TMDBClient

# Logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

_STATUS_FOR_ERROR = {
    NotFoundError: 404,
    FetchError: 502,
    ParseError: 502,
}


def _setup_scheduler(cache: ResultCache, sessions: SessionRegistry) -> BackgroundScheduler | None:
    """Set up APScheduler for periodic cache cleanup and idle session expiry."""
    try:
        parts = CACHE_CLEANUP_SCHEDULE.split()
        if len(parts) != 5:
            logger.warning("Invalid CACHE_CLEANUP_SCHEDULE '%s', skipping", CACHE_CLEANUP_SCHEDULE)
            return None

        minute, hour, day, month, day_of_week = parts

        scheduler = BackgroundScheduler()
        scheduler.add_job(
            cache.cleanup_expired_entries,
            "cron",
            minute=minute,
            hour=hour,
            day=day if day != "*" else None,
            month=month if month != "*" else None,
            day_of_week=day_of_week if day_of_week != "*" else None,
            id="cache_cleanup",
            name="Expired cache cleanup",
            misfire_grace_time=3600,
        )
        scheduler.add_job(
            sessions.sweep,
            "interval",
            minutes=5,
            id="session_sweep",
            name="Idle session sweep",
        )
        scheduler.start()
        logger.info("Scheduled cache cleanup: %s", CACHE_CLEANUP_SCHEDULE)
        return scheduler
    except Exception as e:
        logger.error("Failed to set up scheduler: %s", e)
        return None


def create_app(cache: ResultCache | None = None, relay: Relay | None = None,
               metadata=None, embeds: EmbedResolver | None = None,
               schedule_cleanup: bool = True) -> FastAPI:
    """Build the app with its collaborators; defaults come from config."""
    app = FastAPI(
        title="Media Source Resolver",
        description="Resolve titles to file-index listings and embed sources",
        version="1.0.0",
    )
    app.include_router(api_router)

    app.state.cache = cache or ResultCache(SqliteStore(DB_PATH))
    app.state.relay = relay or Relay()
    app.state.metadata = metadata or TMDBClient(app.state.relay)
    app.state.embeds = embeds or EmbedResolver(app.state.relay, app.state.metadata)
    app.state.sessions = SessionRegistry()
    app.state.scheduler = None

    @app.exception_handler(ResolverError)
    async def resolver_error(request: Request, exc: ResolverError):
        status = next((code for cls, code in _STATUS_FOR_ERROR.items()
                       if isinstance(exc, cls)), 500)
        logger.warning("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(status_code=status,
                            content={"detail": str(exc), "hint": exc.hint})

    @app.on_event("startup")
    async def startup():
        """Run on application startup."""
        logger.info("Media Source Resolver starting up")
        if not app.state.cache.init():
            logger.warning("Cache unavailable, listings will always be fetched")
        if schedule_cleanup:
            app.state.scheduler = _setup_scheduler(app.state.cache, app.state.sessions)

    @app.on_event("shutdown")
    async def shutdown():
        if app.state.scheduler is not None:
            app.state.scheduler.shutdown(wait=False)
        await app.state.relay.close()

    return app


app = create_app()


# ── CLI entry point ─────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)
