"""Session store - in-memory registry of generation sessions (DI-friendly, no global singleton)."""

import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass

from src.application.generation.orchestrator import GenerationOrchestrator
from src.domain.ports.gateway import SchemaGatewayPort

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    orchestrator: GenerationOrchestrator
    last_access: float


class SessionStore:
    """Holds one orchestrator per session. Nothing is persisted.

    Sessions idle for longer than ``idle_ttl_seconds`` are closed on the next
    access; above ``max_sessions`` the least recently used session is closed.
    Closing invalidates any in-flight generation of that session.
    """

    def __init__(
        self,
        gateway: SchemaGatewayPort,
        idle_ttl_seconds: int = 3600,
        max_sessions: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._gateway = gateway
        self._ttl = idle_ttl_seconds
        self._max_sessions = max(1, max_sessions)
        self._clock = clock
        self._sessions: dict[str, _Entry] = {}
        self._lock = threading.Lock()

    def create(self) -> tuple[str, GenerationOrchestrator]:
        """Create a session with a fresh idle state."""
        session_id = uuid.uuid4().hex
        orchestrator = GenerationOrchestrator(self._gateway, session_id=session_id)
        evicted: list[GenerationOrchestrator] = []
        with self._lock:
            evicted.extend(self._pop_expired())
            while len(self._sessions) >= self._max_sessions:
                oldest_id = min(self._sessions, key=lambda k: self._sessions[k].last_access)
                evicted.append(self._sessions.pop(oldest_id).orchestrator)
                logger.info("Session %s evicted (store full)", oldest_id)
            self._sessions[session_id] = _Entry(orchestrator, self._clock())
        for o in evicted:
            o.close()
        return session_id, orchestrator

    def get(self, session_id: str) -> GenerationOrchestrator | None:
        """Return the session's orchestrator and refresh its idle timer."""
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                return None
            if self._is_expired(entry):
                del self._sessions[session_id]
                expired = entry.orchestrator
            else:
                entry.last_access = self._clock()
                return entry.orchestrator
        expired.close()
        logger.info("Session %s expired", session_id)
        return None

    def delete(self, session_id: str) -> bool:
        with self._lock:
            entry = self._sessions.pop(session_id, None)
        if entry is None:
            return False
        entry.orchestrator.close()
        return True

    def purge_expired(self) -> int:
        """Close all expired sessions. Returns how many were closed."""
        with self._lock:
            expired = self._pop_expired()
        for o in expired:
            o.close()
        return len(expired)

    def close_all(self) -> None:
        with self._lock:
            entries = list(self._sessions.values())
            self._sessions.clear()
        for entry in entries:
            entry.orchestrator.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _is_expired(self, entry: _Entry) -> bool:
        # A session is never expired while its generation is running
        if entry.orchestrator.state.is_generating:
            return False
        return self._clock() - entry.last_access > self._ttl

    def _pop_expired(self) -> list[GenerationOrchestrator]:
        expired_ids = [k for k, e in self._sessions.items() if self._is_expired(e)]
        return [self._sessions.pop(k).orchestrator for k in expired_ids]
