import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from stockroom.config import settings
from stockroom.services.fulfilment_service import FulfilmentSession

log = logging.getLogger(__name__)


class ScanSessionRegistry:
    """
    In-process home for open FulfilmentSessions, keyed by an opaque id.
    Sessions idle for longer than `ttl_seconds` are dropped by evict_idle(),
    which the app runs on a schedule.
    """

    def __init__(self, ttl_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, Tuple[FulfilmentSession, float]] = {}

    def open(self, session: FulfilmentSession) -> str:
        session_id = uuid4().hex
        with self._lock:
            self._sessions[session_id] = (session, self.clock())
        return session_id

    def get(self, session_id: str) -> Optional[FulfilmentSession]:
        with self._lock:
            found = self._sessions.get(session_id)
            if not found:
                return None
            session = found[0]
            self._sessions[session_id] = (session, self.clock())
            return session

    def close(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def evict_idle(self) -> List[str]:
        cutoff = self.clock() - self.ttl_seconds
        with self._lock:
            stale = [sid for sid, (_, seen) in self._sessions.items() if seen < cutoff]
            for sid in stale:
                del self._sessions[sid]
        if stale:
            log.info("Evicted %s idle scan sessions", len(stale))
        return stale

    def __len__(self):
        with self._lock:
            return len(self._sessions)


registry = ScanSessionRegistry(settings.SCAN_SESSION_TTL_SECONDS)
