"""In-memory registry of browse sessions with idle expiry and a size cap."""
import logging
import threading
import time
import uuid
from collections import OrderedDict

from config import MAX_SESSIONS, SESSION_TTL_MINUTES
from resolver.session import BrowseSession

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Sessions keyed by id, kept in least-recently-used order.

    A session idle for longer than ``ttl_seconds`` is dropped on the next
    lookup or sweep; opening one past ``max_sessions`` evicts the least
    recently used.
    """

    def __init__(self, ttl_seconds: float = SESSION_TTL_MINUTES * 60,
                 max_sessions: int = MAX_SESSIONS, clock=time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.max_sessions = max(1, max_sessions)
        self.clock = clock
        self._sessions: OrderedDict[str, tuple[BrowseSession, float]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def _expired(self, last_used: float, now: float) -> bool:
        return now - last_used > self.ttl_seconds

    def add(self, session: BrowseSession) -> str:
        session_id = uuid.uuid4().hex
        with self._lock:
            now = self.clock()
            self._sweep(now)
            while len(self._sessions) >= self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.info("Evicted browse session %s (limit %d)", evicted, self.max_sessions)
            self._sessions[session_id] = (session, now)
        return session_id

    def get(self, session_id: str) -> BrowseSession | None:
        with self._lock:
            item = self._sessions.get(session_id)
            if item is None:
                return None
            session, last_used = item
            now = self.clock()
            if self._expired(last_used, now):
                del self._sessions[session_id]
                logger.info("Browse session %s expired", session_id)
                return None
            self._sessions[session_id] = (session, now)
            self._sessions.move_to_end(session_id)
            return session

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def sweep(self) -> int:
        """Drop idle sessions. Safe to run any time."""
        with self._lock:
            removed = self._sweep(self.clock())
        if removed:
            logger.info("Session sweep removed %d idle sessions", removed)
        return removed

    def _sweep(self, now: float) -> int:
        stale = [sid for sid, (_, last_used) in self._sessions.items()
                 if self._expired(last_used, now)]
        for sid in stale:
            del self._sessions[sid]
        return len(stale)
