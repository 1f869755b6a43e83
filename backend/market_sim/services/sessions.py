import logging
import threading
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from market_sim.core.errors import UnknownSession

logger = logging.getLogger(__name__)

class SessionRegistry:
    """
    Active news sessions and the instant each was first activated.
    There is no deactivation; `clear()` is only used by engine reset.
    """

    def __init__(self, known_sessions: Iterable[int]):
        self._known = frozenset(known_sessions)
        self._starts: Dict[int, datetime] = {}
        self._lock = threading.Lock()

    def activate(self, session_id: int, now: datetime) -> bool:
        """Returns True if this call activated the session, False if it was already active."""
        if session_id not in self._known:
            raise UnknownSession(session_id)
        with self._lock:
            if session_id in self._starts:
                return False
            self._starts[session_id] = now
        logger.info("Session %s activated at %s", session_id, now.isoformat())
        return True

    def active(self) -> Tuple[int, ...]:
        with self._lock:
            return tuple(sorted(self._starts))

    def start_time(self, session_id: int) -> Optional[datetime]:
        with self._lock:
            return self._starts.get(session_id)

    def starts(self) -> Dict[int, datetime]:
        # copy, so callers can iterate without holding the lock
        with self._lock:
            return dict(self._starts)

    def clear(self) -> None:
        with self._lock:
            self._starts.clear()
