"""Configuration for the media source resolver."""
import os
from pathlib import Path

# Remote file index
FILE_SERVER_BASE_URL = os.getenv("FILE_SERVER_BASE_URL", "https://a.datadiff.us.kg/")
MOVIES_ROOT = FILE_SERVER_BASE_URL + "movies/"
TV_ROOT = FILE_SERVER_BASE_URL + "tvs/"

# CORS relay: GET <relay>?url=<encoded target>
CORS_RELAY_URL = os.getenv("CORS_RELAY_URL", "https://api.allorigins.win/raw")

# Embed source site and the community fallback-title table
EMBED_SITE_URL = os.getenv("EMBED_SITE_URL", "https://www.cuevana3.eu")
FALLBACK_TITLES_URL = os.getenv(
    "FALLBACK_TITLES_URL",
    "https://raw.githubusercontent.com/moonpic/fixed-titles/refs/heads/main/main.json",
)
EMBED_TITLE_LOCALE = os.getenv("EMBED_TITLE_LOCALE", "es-ES")

# Metadata provider
TMDB_API_KEY = os.getenv("TMDB_API_KEY", "")
TMDB_BASE_URL = os.getenv("TMDB_BASE_URL", "https://api.themoviedb.org/3")
TMDB_LOCALE = os.getenv("TMDB_LOCALE", "en-US")

# Paths
DATA_DIR = Path(os.getenv("DATA_DIR", "/data"))
DB_PATH = DATA_DIR / "resolver.db"

# HTTP settings
FETCH_TIMEOUT = int(os.getenv("FETCH_TIMEOUT", "15"))
USER_AGENT = "MediaSourceResolver/1.0"

# Cache
CACHE_EXPIRY_HOURS = int(os.getenv("CACHE_EXPIRY_HOURS", "24"))
CACHE_EXPIRY_MS = CACHE_EXPIRY_HOURS * 60 * 60 * 1000
CACHE_VERSION = 1
CACHE_COMPRESSION = os.getenv("CACHE_COMPRESSION", "1") not in ("0", "false", "no")
SEARCH_HISTORY_LIMIT = int(os.getenv("SEARCH_HISTORY_LIMIT", "10"))

# Browse sessions: idle expiry and how many are kept in memory
SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", "60"))
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "500"))

# Cache cleanup schedule (cron expression: default = every hour)
CACHE_CLEANUP_SCHEDULE = os.getenv("CACHE_CLEANUP_SCHEDULE", "0 * * * *")

# Server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8080"))
