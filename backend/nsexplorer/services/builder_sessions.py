"""In-memory store of query builder sessions.

Each browser tab owns one session holding a ``FilterModel``; the builder
endpoints mutate it one edit at a time.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from threading import Lock

from nsexplorer.services.filter_model import FilterModel

logger = logging.getLogger(__name__)


@dataclass
class BuilderSession:
    id: str
    namespace_id: str
    model: FilterModel
    last_used: float = field(default_factory=time.monotonic)

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "namespace": self.namespace_id,
            **self.model.snapshot(),
        }


class BuilderSessionStore:
    """Thread-safe session registry, evicting least recently used sessions."""

    def __init__(self, max_sessions: int = 500) -> None:
        self.max_sessions = max_sessions
        self._sessions: dict[str, BuilderSession] = {}
        self._lock = Lock()

    def create(self, namespace_id: str, model: FilterModel) -> BuilderSession:
        session = BuilderSession(id=uuid.uuid4().hex, namespace_id=namespace_id, model=model)
        with self._lock:
            self._sessions[session.id] = session
            self._evict()
        return session

    def get(self, session_id: str, namespace_id: str) -> BuilderSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.namespace_id != namespace_id:
                return None
            session.last_used = time.monotonic()
            return session

    def delete(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _evict(self) -> None:
        overflow = len(self._sessions) - self.max_sessions
        if overflow <= 0:
            return
        stale = sorted(self._sessions.values(), key=lambda s: s.last_used)[:overflow]
        for session in stale:
            del self._sessions[session.id]
        logger.info("Evicted %d idle builder session(s)", len(stale))
