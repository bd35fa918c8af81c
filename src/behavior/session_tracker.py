# ABOUTME: Brackets study sessions between focus-gained and focus-lost signals.
# ABOUTME: Writes session_start and session_end events with whole-second durations.

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Mapping, Optional

from .event_store import Clock, EventStore, utc_now
from .schemas import SESSION_END, SESSION_START, Event

logger = logging.getLogger(__name__)

IDLE = "idle"
ACTIVE = "active"


class SessionTracker:
    """
    Two-state machine (idle / active) for one user's session brackets.

    ``begin`` opens a bracket and ``suspend`` closes it. Repeated signals in
    the same state are no-ops, so duplicate unload or visibility callbacks
    never produce a second session_start or a negative-duration session_end.
    The hosting application wires its platform events to ``focus_gained``,
    ``focus_lost`` and ``shutdown``.
    """

    def __init__(self, store: EventStore, user_id: str, clock: Optional[Clock] = None):
        self.store = store
        self.user_id = user_id
        self._clock = clock or utc_now
        self._started_at: Optional[datetime] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return ACTIVE if self._started_at is not None else IDLE

    @property
    def started_at(self) -> Optional[datetime]:
        return self._started_at

    def begin(self, now: Optional[datetime] = None, metadata: Optional[Mapping[str, Any]] = None) -> Optional[Event]:
        with self._lock:
            if self._started_at is not None:
                logger.debug("Session already open for user %s; ignoring begin", self.user_id)
                return None
            ts = self._clock() if now is None else now
            event = self.store.append(self.user_id, SESSION_START, timestamp=ts, metadata=metadata)
            self._started_at = event.timestamp
            return event

    def suspend(self, now: Optional[datetime] = None) -> Optional[Event]:
        with self._lock:
            if self._started_at is None:
                logger.debug("No open session for user %s; ignoring suspend", self.user_id)
                return None
            ts = self._clock() if now is None else now
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=self._started_at.tzinfo)
            duration = max(0, round((ts - self._started_at).total_seconds()))
            event = self.store.append(self.user_id, SESSION_END, timestamp=ts, duration=duration)
            self._started_at = None
            return event

    def focus_gained(self, now: Optional[datetime] = None) -> Optional[Event]:
        return self.begin(now)

    def focus_lost(self, now: Optional[datetime] = None) -> Optional[Event]:
        return self.suspend(now)

    def shutdown(self, now: Optional[datetime] = None) -> Optional[Event]:
        return self.suspend(now)
