"""
In-process registry of live drill and feedback sessions.

Each entry has its own lock so events for one session are applied one at a
time even when endpoints run in FastAPI's threadpool.

Sessions the client walks away from are never DELETEd, so entries idle for
longer than `ttl_seconds` are dropped whenever a new session is created.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

S = TypeVar("S")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionEntry(Generic[S]):
    id: str
    athlete_id: Optional[str]
    session: S
    created_at: datetime = field(default_factory=_utcnow)
    last_seen_at: datetime = field(default_factory=_utcnow)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class SessionRegistry(Generic[S]):
    def __init__(
        self,
        factory: Callable[[], S],
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._factory = factory
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, SessionEntry[S]] = {}
        self._lock = threading.Lock()

    def create(self, athlete_id: Optional[str] = None) -> SessionEntry[S]:
        if self._ttl_seconds is not None:
            self.prune(self._ttl_seconds)
        now = self._clock()
        entry = SessionEntry(
            id=uuid.uuid4().hex,
            athlete_id=athlete_id,
            session=self._factory(),
            created_at=now,
            last_seen_at=now,
        )
        with self._lock:
            self._entries[entry.id] = entry
        return entry

    def get(self, session_id: str) -> Optional[SessionEntry[S]]:
        """Look up a session and mark it as seen."""
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is not None:
                entry.last_seen_at = self._clock()
            return entry

    def remove(self, session_id: str) -> bool:
        with self._lock:
            return self._entries.pop(session_id, None) is not None

    def prune(self, max_age_seconds: float) -> int:
        """
        Drop sessions not seen for more than `max_age_seconds`.

        Returns the number of sessions removed.
        """
        cutoff = self._clock() - timedelta(seconds=max_age_seconds)
        with self._lock:
            stale = [sid for sid, e in self._entries.items() if e.last_seen_at < cutoff]
            for sid in stale:
                del self._entries[sid]
        if stale:
            logger.info(
                f"Evicted {len(stale)} idle sessions",
                extra={"extra_fields": {"evicted": len(stale), "max_age_seconds": max_age_seconds}},
            )
        return len(stale)

    def list_for(self, athlete_id: str) -> List[SessionEntry[S]]:
        with self._lock:
            return [e for e in self._entries.values() if e.athlete_id == athlete_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
