# ABOUTME: Exposes the tracking and analysis operations UI collaborators call.
# ABOUTME: Records events, brackets sessions, and refreshes the cached insights after key events.

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .config import TrackingConfig
from .errors import ConfigError
from .event_store import Clock, EventStore, utc_now
from .insights import LoggingNotifier, Notifier, generate_insights
from .mood import analyze_mood
from .patterns import analyze_consistency, analyze_engagement
from .reports import ProgressReport, build_progress_report
from .schemas import (
    ACHIEVEMENT_EARNED,
    MOOD_LOG,
    PAGE_VIEW,
    QUIZ_ATTEMPT,
    ConsistencyAnalysis,
    EngagementPattern,
    Event,
    Insight,
    MoodAnalytics,
    MoodEntry,
)
from .session_tracker import SessionTracker

logger = logging.getLogger(__name__)


class BehaviorTracker:
    """
    Per-process entry point tying the event store to the analyzers.

    Construct one explicitly and pass it to whatever needs it; tests build
    their own instance over an in-memory store.
    """

    def __init__(
        self,
        store: Optional[EventStore] = None,
        config: Optional[TrackingConfig] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
    ):
        if store is not None and config is not None and config != store.config:
            raise ConfigError("The tracker config must match the config of the event store it wraps.")
        self.config = config or (store.config if store is not None else TrackingConfig())
        self._clock = clock or utc_now
        self.store = store if store is not None else EventStore(config=self.config, clock=self._clock)
        self.notifier = notifier if notifier is not None else LoggingNotifier()
        self._sessions: Dict[str, SessionTracker] = {}

    def _now(self, now: Optional[datetime]) -> datetime:
        return self._clock() if now is None else now

    # -- recording ---------------------------------------------------------

    def track_event(
        self,
        user_id: str,
        event_type: str,
        metadata: Optional[Mapping[str, Any]] = None,
        duration: Optional[int] = None,
        timestamp: Optional[datetime] = None,
    ) -> Event:
        event = self.store.append(user_id, event_type, timestamp=self._now(timestamp), metadata=metadata, duration=duration)
        if event_type in self.config.insight_triggers:
            self.refresh_insights(user_id)
        return event

    def track_page_view(self, user_id: str, page: str, timestamp: Optional[datetime] = None) -> Event:
        return self.track_event(user_id, PAGE_VIEW, {"page": page}, timestamp=timestamp)

    def track_quiz_attempt(
        self,
        user_id: str,
        score: float,
        subject: str,
        difficulty: str,
        timestamp: Optional[datetime] = None,
    ) -> Event:
        metadata = {"score": score, "subject": subject, "difficulty": difficulty}
        return self.track_event(user_id, QUIZ_ATTEMPT, metadata, timestamp=timestamp)

    def track_mood(self, user_id: str, entry: MoodEntry, timestamp: Optional[datetime] = None) -> Event:
        return self.track_event(user_id, MOOD_LOG, entry.to_metadata(), timestamp=timestamp)

    def track_achievement(
        self,
        user_id: str,
        achievement_type: str,
        points: int,
        timestamp: Optional[datetime] = None,
    ) -> Event:
        metadata = {"achievement_type": achievement_type, "points": points}
        return self.track_event(user_id, ACHIEVEMENT_EARNED, metadata, timestamp=timestamp)

    def session(self, user_id: str) -> SessionTracker:
        """The session bracket tracker for ``user_id``; one per user for the tracker's lifetime."""
        tracker = self._sessions.get(user_id)
        if tracker is None:
            tracker = self._sessions.setdefault(user_id, SessionTracker(self.store, user_id, clock=self._clock))
        return tracker

    def begin_session(self, user_id: str, now: Optional[datetime] = None) -> Optional[Event]:
        return self.session(user_id).begin(now)

    def suspend_session(self, user_id: str, now: Optional[datetime] = None) -> Optional[Event]:
        event = self.session(user_id).suspend(now)
        if event is not None and event.event_type in self.config.insight_triggers:
            self.refresh_insights(user_id)
        return event

    # -- derived state -----------------------------------------------------

    def snapshot(self, user_id: str, since: Optional[datetime] = None) -> List[Event]:
        return self.store.snapshot(user_id, since=since)

    def engagement_pattern(self, user_id: str, now: Optional[datetime] = None) -> EngagementPattern:
        return analyze_engagement(self.store.snapshot(user_id), self._now(now), self.config)

    def consistency_analysis(self, user_id: str, now: Optional[datetime] = None) -> ConsistencyAnalysis:
        return analyze_consistency(self.store.snapshot(user_id), self._now(now), self.config)

    def mood_analytics(self, user_id: str) -> MoodAnalytics:
        return analyze_mood(self.store.snapshot(user_id), self.config)

    def generate_insights(self, user_id: str, now: Optional[datetime] = None) -> List[Insight]:
        return generate_insights(user_id, self.store.snapshot(user_id), self._now(now), self.config)

    def refresh_insights(self, user_id: str, now: Optional[datetime] = None) -> List[Insight]:
        """Recompute insights, overwrite the cached copy, and notify on high-priority ones."""
        insights = generate_insights(
            user_id,
            self.store.snapshot(user_id),
            self._now(now),
            self.config,
            notifier=self.notifier,
        )
        self.store.cache_insights(user_id, insights)
        logger.debug("Refreshed %d insights for user %s", len(insights), user_id)
        return insights

    def stored_insights(self, user_id: str) -> List[Insight]:
        return self.store.cached_insights(user_id)

    def progress_report(self, user_id: str, period: str = "weekly", now: Optional[datetime] = None) -> ProgressReport:
        return build_progress_report(self.store.snapshot(user_id), self._now(now), period, self.config)

    # -- maintenance -------------------------------------------------------

    def cleanup_old_data(self, retention_days: Optional[int] = None, now: Optional[datetime] = None) -> int:
        return self.store.prune(retention_days, now=self._now(now))
