"""In-memory registry of builder sessions.

Nothing is persisted. Sessions idle for longer than SESSION_IDLE_TTL_SECS
are dropped, and once SESSION_MAX_COUNT is reached the least recently used
idle session is evicted to make room. A session with a run in flight is
never evicted.

Each session's status transitions are forwarded to the EventBus so
clients can follow them over SSE.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from figma_builder import settings
from figma_builder.pipeline.session import BuilderSession, new_session_id

from .event_bus import get_event_bus, push_event

logger = logging.getLogger("figma_builder.app.sessions")


class SessionRegistry:
    """Holds BuilderSession objects by id, least recently used first."""

    def __init__(
        self,
        max_sessions: int = settings.SESSION_MAX_COUNT,
        idle_ttl_secs: float = settings.SESSION_IDLE_TTL_SECS,
    ):
        self._sessions: "OrderedDict[str, BuilderSession]" = OrderedDict()
        self._last_seen: Dict[str, float] = {}
        self._max_sessions = max_sessions
        self._idle_ttl_secs = idle_ttl_secs

    def create(
        self,
        project_name: Optional[str] = None,
        model: Optional[str] = None,
    ) -> BuilderSession:
        self._evict()
        session_id = new_session_id()

        def listener(event_type: str, data: Dict[str, Any]) -> None:
            # A new run starts a fresh event stream for late subscribers
            if event_type == "run_started":
                get_event_bus().reset_buffer(session_id)
            push_event(session_id, event_type, data)

        kwargs: Dict[str, Any] = {"session_id": session_id, "model": model, "listener": listener}
        if project_name:
            kwargs["project_name"] = project_name
        session = BuilderSession(**kwargs)
        self._sessions[session_id] = session
        self._touch(session_id)
        logger.info(f"Session created: {session_id} ({len(self._sessions)} live)")
        return session

    def get(self, session_id: str) -> Optional[BuilderSession]:
        session = self._sessions.get(session_id)
        if session is not None:
            self._touch(session_id)
        return session

    def delete(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        if session is None:
            return False
        session.cancel()
        get_event_bus().close(session_id)
        logger.info(f"Session deleted: {session_id}")
        return True

    def ids(self) -> List[str]:
        return list(self._sessions)

    def clear(self) -> None:
        for session_id in self.ids():
            self.delete(session_id)

    def _touch(self, session_id: str) -> None:
        self._sessions.move_to_end(session_id)
        self._last_seen[session_id] = time.monotonic()

    def _evict(self) -> None:
        """Drop expired idle sessions, then LRU idle ones until one slot is free."""
        now = time.monotonic()
        idle = [sid for sid, s in self._sessions.items() if not s.loading]

        for sid in idle:
            if now - self._last_seen.get(sid, now) > self._idle_ttl_secs:
                logger.info(f"Session expired: {sid}")
                self.delete(sid)

        for sid in idle:
            if len(self._sessions) < self._max_sessions:
                break
            if sid in self._sessions:
                logger.warning(
                    f"Session limit ({self._max_sessions}) reached, evicting {sid}"
                )
                self.delete(sid)


# --- Singleton ---

_registry: Optional[SessionRegistry] = None


def get_session_registry() -> SessionRegistry:
    """Get the global SessionRegistry singleton."""
    global _registry
    if _registry is None:
        _registry = SessionRegistry()
    return _registry
