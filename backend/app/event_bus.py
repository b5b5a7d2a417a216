"""SSE Event Bus for real-time builder status updates.

Sessions push their status transitions here; clients subscribe per session
via GET /api/builder/sessions/{session_id}/stream.

Event Envelope:
  {
    "event": "<event_type>",
    "data": {
      "session_id": "<session_id>",
      "timestamp": "<ISO 8601>",
      ...payload
    }
  }
"""

from __future__ import annotations

import asyncio
import json
import time
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from figma_builder.logging_config import get_events_logger

logger = get_events_logger()

# Buffer limits: prevent unbounded memory growth from sessions nobody watches
BUFFER_MAX_EVENTS = 200
BUFFER_MAX_AGE_SECS = 600  # 10 minutes

# Stop signals: events that tell the SSE generator to close the connection
STOP_EVENTS = frozenset({"run_done"})


class EventBus:
    """Central event bus for SSE event management.

    Manages active SSE connections (queues), pre-connection event buffering,
    and provides push/subscribe interfaces.
    """

    def __init__(
        self,
        buffer_max_events: int = BUFFER_MAX_EVENTS,
        buffer_max_age_secs: int = BUFFER_MAX_AGE_SECS,
    ):
        self._streams: dict[str, list[asyncio.Queue]] = {}
        self._buffers: dict[str, dict] = {}
        self._buffer_max_events = buffer_max_events
        self._buffer_max_age_secs = buffer_max_age_secs
        self._lock = asyncio.Lock()

    def push(self, session_id: str, event_type: str, data: dict) -> None:
        """Push an event to every connected client, or buffer it.

        Synchronous: in the single-threaded asyncio context dict reads/writes
        have no yield points, so the lock is not needed here. The lock
        protects subscribe/cleanup which have await points.
        """
        payload = {"session_id": session_id, **data}
        if "timestamp" not in payload:
            payload["timestamp"] = datetime.now(timezone.utc).isoformat()

        event = {"event": event_type, "data": payload}
        queues = self._streams.get(session_id)
        if queues:
            for queue in queues:
                queue.put_nowait(event)
            logger.info(f"Event sent: {event_type} for {session_id} ({len(queues)} clients)")
        else:
            self._buffer_event(session_id, event, event_type)

    async def subscribe(
        self,
        session_id: str,
        stop_events: Optional[frozenset] = None,
        keepalive_interval: float = 30.0,
    ) -> AsyncGenerator[str, None]:
        """Subscribe to events for a session, yielding SSE-formatted strings.

        Flushes any buffered events first, then yields events as they arrive
        until a stop event is seen.
        """
        if stop_events is None:
            stop_events = STOP_EVENTS

        logger.info(f"Client subscribed: {session_id}")
        queue: asyncio.Queue = asyncio.Queue()

        # Atomically register stream and flush buffered events
        async with self._lock:
            self._streams.setdefault(session_id, []).append(queue)
            buf = self._buffers.pop(session_id, None)

        buffered = buf["events"] if buf else []
        if buffered:
            logger.info(f"Flushing {len(buffered)} buffered events for {session_id}")

        try:
            for event in buffered:
                yield format_sse(event)
                if event.get("event") in stop_events:
                    return

            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=keepalive_interval)
                    if event is None:  # Sentinel to stop
                        break
                    yield format_sse(event)

                    if event.get("event") in stop_events:
                        break
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
        finally:
            async with self._lock:
                queues = self._streams.get(session_id, [])
                if queue in queues:
                    queues.remove(queue)
                if not queues:
                    self._streams.pop(session_id, None)
                    self._buffers.pop(session_id, None)

    def reset_buffer(self, session_id: str) -> None:
        """Drop events buffered for a session (e.g. from an earlier run)."""
        self._buffers.pop(session_id, None)

    def close(self, session_id: str) -> None:
        """End every stream of a session and drop its buffer."""
        for queue in self._streams.get(session_id, []):
            queue.put_nowait(None)
        self._buffers.pop(session_id, None)

    def _buffer_event(self, session_id: str, event: dict, event_type: str) -> None:
        """Buffer an event for a session that has no active subscriber yet."""
        if session_id not in self._buffers:
            self._cleanup_stale_buffers()
            self._buffers[session_id] = {
                "events": [],
                "created_at": time.monotonic(),
            }

        buf = self._buffers[session_id]
        if len(buf["events"]) < self._buffer_max_events:
            buf["events"].append(event)
        else:
            logger.warning(
                f"Buffer full ({self._buffer_max_events}), "
                f"dropping: {event_type} for {session_id}"
            )

    def _cleanup_stale_buffers(self) -> None:
        """Remove event buffers that are too old."""
        now = time.monotonic()
        stale = [
            sid
            for sid, buf in self._buffers.items()
            if now - buf["created_at"] > self._buffer_max_age_secs
        ]
        for sid in stale:
            removed = self._buffers.pop(sid, None)
            if removed:
                logger.info(
                    f"Cleaned up stale buffer for {sid} ({len(removed['events'])} events)"
                )


def format_sse(event: dict) -> str:
    """Format an event dict as an SSE string."""
    return f"event: {event['event']}\ndata: {json.dumps(event['data'])}\n\n"


# --- Singleton ---

_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the global EventBus singleton."""
    global _bus
    if _bus is None:
        _bus = EventBus()
    return _bus


def push_event(session_id: str, event_type: str, data: dict) -> None:
    """Push an SSE event (convenience wrapper around EventBus.push)."""
    get_event_bus().push(session_id, event_type, data)


async def subscribe_events(
    session_id: str,
    stop_events: Optional[frozenset] = None,
) -> AsyncGenerator[str, None]:
    """Subscribe to SSE events (convenience wrapper)."""
    async for event_str in get_event_bus().subscribe(session_id, stop_events=stop_events):
        yield event_str
