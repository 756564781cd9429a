"""Versioned, expiring cache of directory listings plus browse metadata."""
import base64
import binascii
import json
import logging
import time
import zlib
from typing import Callable

from config import CACHE_COMPRESSION, CACHE_EXPIRY_MS, CACHE_VERSION, MOVIES_ROOT, TV_ROOT
from resolver.history import SearchHistory
from resolver.models import CacheEntry, CacheMetadata, CacheStatus, FileEntry
from resolver.paths import PathResolver
from resolver.store import SqliteStore

logger = logging.getLogger(__name__)

KEY_PREFIX = "drive_cache_"
BASE_MOVIES_KEY = "drive_cache_movies"
BASE_TV_KEY = "drive_cache_tv"
METADATA_KEY = "drive_cache_metadata"
MANUAL_PREFIX = "drive_cache_manual_"
SEARCH_PREFIX = "drive_cache_search_"


def _now_ms() -> int:
    return int(time.time() * 1000)


# ── Serialization ───────────────────────────────────────────────────────

def encode_payload(payload: dict, compress: bool = CACHE_COMPRESSION) -> str:
    """JSON → zlib → URL-safe base64 without padding.

    Falls back to plain JSON when compression is off or fails.
    """
    raw = json.dumps(payload)
    if not compress:
        return raw
    try:
        packed = zlib.compress(raw.encode("utf-8"))
        return base64.urlsafe_b64encode(packed).decode("ascii").rstrip("=")
    except (zlib.error, UnicodeEncodeError) as e:
        logger.warning("Cache compression failed, storing plain JSON: %s", e)
        return raw


def decode_payload(stored: str) -> dict | None:
    """Inverse of encode_payload; plain JSON is accepted as a fallback.

    Returns None for anything unparseable.
    """
    try:
        padded = stored + "=" * (-len(stored) % 4)
        packed = base64.b64decode(padded, altchars=b"-_", validate=True)
        return json.loads(zlib.decompress(packed).decode("utf-8"))
    except (binascii.Error, zlib.error, ValueError):
        pass
    try:
        return json.loads(stored)
    except ValueError:
        logger.warning("Discarding unparseable cache value (%d chars)", len(stored))
        return None


class ResultCache:
    """Durable cache fronting the directory fetcher.

    Expired, version-mismatched and corrupt entries are misses and are
    deleted when read.
    """

    def __init__(self, store: SqliteStore, *, expiry_ms: int = CACHE_EXPIRY_MS,
                 version: int = CACHE_VERSION, compress: bool = CACHE_COMPRESSION,
                 movies_root: str = MOVIES_ROOT, tv_root: str = TV_ROOT,
                 clock: Callable[[], int] = _now_ms):
        self.store = store
        self.expiry_ms = expiry_ms
        self.version = version
        self.compress = compress
        self.paths = PathResolver(movies_root, tv_root)
        self.movies_root = self.paths.movies_root
        self.tv_root = self.paths.tv_root
        self.clock = clock

    def init(self) -> bool:
        """Prepare the store, sweep expired entries, seed metadata."""
        try:
            self.store.initialize()
            self.cleanup_expired_entries()
            if self.store.get(METADATA_KEY) is None:
                self.set_metadata(CacheMetadata())
            return True
        except Exception as e:
            logger.error("Cache initialization failed: %s", e)
            return False

    # ── Keys ──

    def key_for(self, path: str) -> str:
        """Root listings share a scope key; every other path gets its own."""
        if path == self.movies_root:
            return BASE_MOVIES_KEY
        if path == self.tv_root:
            return BASE_TV_KEY
        return MANUAL_PREFIX + path

    @staticmethod
    def search_key(path: str, query: str) -> str:
        return f"{SEARCH_PREFIX}{path}::{query.strip().lower()}"

    # ── Entries ──

    def get(self, key: str) -> CacheEntry | None:
        stored = self.store.get(key)
        if stored is None:
            return None

        payload = decode_payload(stored)
        entry = None
        if isinstance(payload, dict) and payload.get("version") == self.version:
            try:
                entry = CacheEntry.model_validate(payload)
            except ValueError as e:
                logger.warning("Invalid cache entry %s: %s", key, e)

        if entry is None:
            logger.debug("Evicting stale or corrupt cache entry %s", key)
            self.store.delete(key)
            return None

        if self.clock() - entry.timestamp > self.expiry_ms:
            logger.debug("Cache entry expired: %s", key)
            self.store.delete(key)
            return None
        return entry

    def set(self, key: str, entries: list[FileEntry], path: str,
            is_manual_mode: bool = False) -> CacheEntry:
        entry = CacheEntry(
            version=self.version,
            timestamp=self.clock(),
            data=entries,
            path=path,
            is_manual_mode=is_manual_mode,
        )
        self.store.set(key, encode_payload(entry.model_dump(mode="json"), self.compress))
        return entry

    def get_listing(self, path: str) -> CacheEntry | None:
        return self.get(self.key_for(path))

    def set_listing(self, path: str, entries: list[FileEntry],
                    is_manual_mode: bool = False) -> CacheEntry:
        return self.set(self.key_for(path), entries, path, is_manual_mode)

    def invalidate(self, path: str) -> int:
        """Drop the root scope holding ``path``, its own entry and its searches."""
        removed = 0
        keys = []
        root = self.paths.root_for(path)
        if root is not None:
            keys.append(self.key_for(root))
        keys.append(MANUAL_PREFIX + path)
        for key in keys:
            if self.store.get(key) is not None:
                self.store.delete(key)
                removed += 1
        removed += self.store.delete_prefix(SEARCH_PREFIX + path)
        logger.info("Invalidated %d cache entries for %s", removed, path)
        return removed

    def clear_all(self) -> int:
        removed = self.store.delete_prefix(KEY_PREFIX)
        logger.info("Cleared %d cache entries", removed)
        return removed

    def cleanup_expired_entries(self) -> int:
        """Idempotent sweep: every unreadable entry is evicted by ``get``."""
        removed = 0
        for key in self.store.keys(KEY_PREFIX):
            if key == METADATA_KEY:
                continue
            if self.get(key) is None:
                removed += 1
        if removed:
            logger.info("Cache cleanup removed %d entries", removed)
        return removed

    def get_cache_status(self, path: str) -> CacheStatus:
        """Report on the stored listing for ``path`` without evicting it."""
        stored = self.store.get(self.key_for(path))
        payload = decode_payload(stored) if stored is not None else None
        timestamp = payload.get("timestamp") if isinstance(payload, dict) else None
        if not isinstance(timestamp, int) or payload.get("version") != self.version:
            return CacheStatus(is_cached=False, is_expired=False, last_updated=None)
        return CacheStatus(
            is_cached=True,
            is_expired=self.clock() - timestamp > self.expiry_ms,
            last_updated=timestamp,
        )

    # ── Metadata ──

    def get_metadata(self) -> CacheMetadata:
        stored = self.store.get(METADATA_KEY)
        if stored is None:
            return CacheMetadata()
        try:
            return CacheMetadata.model_validate_json(stored)
        except ValueError as e:
            logger.warning("Metadata unreadable, resetting: %s", e)
            return CacheMetadata()

    def set_metadata(self, metadata: CacheMetadata):
        self.store.set(METADATA_KEY, metadata.model_dump_json())

    def update_last_visited_path(self, path: str):
        metadata = self.get_metadata()
        self.set_metadata(metadata.model_copy(update={"last_visited_path": path}))

    def add_search_term(self, term: str) -> list[str]:
        metadata = self.get_metadata()
        terms = SearchHistory(metadata.search_history).add(term)
        self.set_metadata(metadata.model_copy(update={"search_history": terms}))
        return terms
