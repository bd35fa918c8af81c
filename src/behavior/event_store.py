# ABOUTME: Keeps the ordered, retention-bounded behavioral event log for each user.
# ABOUTME: Persists logs and the last computed insights through a key-value storage port.

from __future__ import annotations

import itertools
import json
import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .config import TrackingConfig
from .errors import InvalidEventError, StorageError
from .schemas import EVENT_TYPES, SESSION_END, Event, Insight
from .storage import EVENTS_KEY_PREFIX, InMemoryStorage, KeyValueStorage, events_key, insights_key

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _order_key(event: Event):
    return (event.timestamp, event.sequence)


class EventStore:
    """
    Append-only event log per user with bounded retention.

    Two bounds are enforced: every append trims the user's log to the most
    recent ``config.max_events`` events, and ``prune`` removes events older
    than the retention window. In-memory state is authoritative; persistence
    is best effort and a failed write only logs a warning.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        config: Optional[TrackingConfig] = None,
        clock: Optional[Clock] = None,
    ):
        self.storage = storage if storage is not None else InMemoryStorage()
        self.config = config or TrackingConfig()
        self._clock = clock or utc_now
        self._tz = self.config.tzinfo
        self._lock = threading.RLock()
        self._logs: Dict[str, List[Event]] = {}
        self._versions: Dict[str, int] = {}
        self._persisted_versions: Dict[str, int] = {}
        self._write_locks: Dict[str, threading.Lock] = {}
        self._sequence = itertools.count()
        self._load_persisted()

    # -- loading -----------------------------------------------------------

    def _load_persisted(self) -> None:
        try:
            keys = [key for key in self.storage.keys() if key.startswith(EVENTS_KEY_PREFIX)]
        except StorageError as exc:
            logger.warning("Could not list persisted event logs, starting empty: %s", exc)
            return
        for key in keys:
            user_id = key[len(EVENTS_KEY_PREFIX):]
            self._logs[user_id] = self._load_user_log(key)
            self._versions[user_id] = 0
            self._persisted_versions[user_id] = 0

    def _load_user_log(self, key: str) -> List[Event]:
        try:
            raw = self.storage.get(key)
            if raw is None:
                return []
            records = json.loads(raw)
            if not isinstance(records, list):
                raise TypeError("persisted event log is not a list")
            events = [Event.from_record(record, sequence=next(self._sequence)) for record in records]
            events = [self._normalize_loaded(event) for event in events]
        except (StorageError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding unreadable event log under %s: %s", key, exc)
            return []
        events.sort(key=_order_key)
        return events

    def _normalize_loaded(self, event: Event) -> Event:
        return Event(
            event_id=event.event_id,
            user_id=event.user_id,
            event_type=event.event_type,
            timestamp=self._localize(event.timestamp),
            metadata=MappingProxyType(dict(event.metadata)),
            duration=event.duration,
            sequence=event.sequence,
        )

    def _localize(self, ts: datetime) -> datetime:
        if ts.tzinfo is None:
            return ts.replace(tzinfo=self._tz)
        return ts

    # -- writes ------------------------------------------------------------

    def append(
        self,
        user_id: str,
        event_type: str,
        timestamp: Optional[datetime] = None,
        metadata: Optional[Mapping[str, Any]] = None,
        duration: Optional[int] = None,
    ) -> Event:
        """Create an event with a fresh id, add it to the user's log and persist the log."""

        if event_type not in EVENT_TYPES:
            raise InvalidEventError(f"Unsupported event type '{event_type}'. Expected one of: {', '.join(EVENT_TYPES)}.")
        if duration is not None:
            if event_type != SESSION_END:
                raise InvalidEventError("Only session_end events carry a duration.")
            if duration < 0:
                raise InvalidEventError(f"Session duration must be >= 0, got {duration}.")

        ts = self._localize(self._clock() if timestamp is None else timestamp)
        with self._lock:
            sequence = next(self._sequence)
            event = Event(
                event_id=f"{int(ts.timestamp() * 1000)}_{sequence}_{uuid.uuid4().hex[:8]}",
                user_id=user_id,
                event_type=event_type,
                timestamp=ts,
                metadata=MappingProxyType(dict(metadata or {})),
                duration=None if duration is None else int(duration),
                sequence=sequence,
            )
            log = self._logs.setdefault(user_id, [])
            log.append(event)
            if len(log) > 1 and _order_key(log[-2]) > _order_key(event):
                log.sort(key=_order_key)
            if len(log) > self.config.max_events:
                del log[: len(log) - self.config.max_events]
            version = self._bump_version(user_id)
            log_copy = list(log)

        logger.debug("Appended %s for user %s (%d events)", event_type, user_id, len(log_copy))
        self._persist(user_id, log_copy, version)
        return event

    def prune(self, retention_days: Optional[int] = None, now: Optional[datetime] = None) -> int:
        """Drop every event older than ``now - retention_days``; returns the number removed."""

        days = self.config.retention_days if retention_days is None else retention_days
        cutoff = self._localize(self._clock() if now is None else now) - timedelta(days=days)
        removed = 0
        pending = []
        with self._lock:
            for user_id, log in self._logs.items():
                kept = [event for event in log if event.timestamp >= cutoff]
                if len(kept) == len(log):
                    continue
                removed += len(log) - len(kept)
                self._logs[user_id] = kept
                pending.append((user_id, list(kept), self._bump_version(user_id)))

        for user_id, log_copy, version in pending:
            self._persist(user_id, log_copy, version)
        if removed:
            logger.info("Pruned %d events older than %s", removed, cutoff.isoformat())
        return removed

    def clear(self, user_id: str) -> None:
        with self._write_lock(user_id):
            with self._lock:
                self._logs.pop(user_id, None)
                version = self._bump_version(user_id)
            # Writes of copies taken before the clear are now stale.
            self._persisted_versions[user_id] = version
            for key in (events_key(user_id), insights_key(user_id)):
                try:
                    self.storage.delete(key)
                except StorageError as exc:
                    logger.warning("Failed to delete %s: %s", key, exc)

    def _bump_version(self, user_id: str) -> int:
        version = self._versions.get(user_id, 0) + 1
        self._versions[user_id] = version
        return version

    def _write_lock(self, user_id: str) -> threading.Lock:
        with self._lock:
            return self._write_locks.setdefault(user_id, threading.Lock())

    def _persist(self, user_id: str, log_copy: List[Event], version: int) -> None:
        with self._write_lock(user_id):
            if version <= self._persisted_versions.get(user_id, 0):
                return
            payload = json.dumps([event.to_record() for event in log_copy], default=str)
            try:
                self.storage.set(events_key(user_id), payload)
            except StorageError as exc:
                logger.warning("Failed to persist event log for user %s: %s", user_id, exc)
                return
            self._persisted_versions[user_id] = version

    # -- reads -------------------------------------------------------------

    def snapshot(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> List[Event]:
        """Return a copy of the user's events in (timestamp, insertion) order."""

        with self._lock:
            events = list(self._logs.get(user_id, ()))
        if since is not None:
            lower = self._localize(since)
            events = [event for event in events if event.timestamp >= lower]
        if until is not None:
            upper = self._localize(until)
            events = [event for event in events if event.timestamp <= upper]
        return events

    def users(self) -> List[str]:
        with self._lock:
            return sorted(user_id for user_id, log in self._logs.items() if log)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(log) for log in self._logs.values())

    # -- insight cache -----------------------------------------------------

    def cache_insights(self, user_id: str, insights: Iterable[Insight]) -> None:
        payload = json.dumps([insight.to_record() for insight in insights])
        try:
            self.storage.set(insights_key(user_id), payload)
        except StorageError as exc:
            logger.warning("Failed to cache insights for user %s: %s", user_id, exc)

    def cached_insights(self, user_id: str) -> List[Insight]:
        try:
            raw = self.storage.get(insights_key(user_id))
            if raw is None:
                return []
            return [Insight.from_record(record) for record in json.loads(raw)]
        except (StorageError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Discarding unreadable insight cache for user %s: %s", user_id, exc)
            return []
