# ABOUTME: Defines canonical data structures for behavioral events and derived metrics.
# ABOUTME: Centralizes event, mood, engagement, consistency, and insight schema definitions.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .errors import InvalidEventError

PAGE_VIEW = "page_view"
SESSION_START = "session_start"
SESSION_END = "session_end"
CLICK = "click"
SCROLL = "scroll"
QUIZ_ATTEMPT = "quiz_attempt"
MOOD_LOG = "mood_log"
ACHIEVEMENT_EARNED = "achievement_earned"

EVENT_TYPES = (
    PAGE_VIEW,
    SESSION_START,
    SESSION_END,
    CLICK,
    SCROLL,
    QUIZ_ATTEMPT,
    MOOD_LOG,
    ACHIEVEMENT_EARNED,
)

# Documented metadata keys per event type. Unknown keys are kept as-is.
RECOGNIZED_METADATA: Mapping[str, tuple] = {
    PAGE_VIEW: ("page",),
    SESSION_START: ("session_type",),
    SESSION_END: ("session_type",),
    CLICK: ("page", "target"),
    SCROLL: ("page", "depth"),
    QUIZ_ATTEMPT: ("score", "subject", "difficulty", "quiz_id", "total_questions"),
    MOOD_LOG: ("mood", "energy", "confidence", "notes"),
    ACHIEVEMENT_EARNED: ("achievement_type", "points"),
}

MOOD_SCORES: Mapping[str, int] = {
    "excited": 5,
    "happy": 4,
    "okay": 3,
    "tired": 2,
    "frustrated": 1,
    "confused": 1,
}
NEUTRAL_MOOD = 3

PRIORITY_RANK: Mapping[str, int] = {"high": 3, "medium": 2, "low": 1}
INSIGHT_TYPES = ("motivation", "warning", "celebration", "suggestion")
INSIGHT_CATEGORIES = ("engagement", "performance", "consistency", "mood")


@dataclass(frozen=True)
class Event:
    """Immutable behavioral event as held by the event store."""

    event_id: str
    user_id: str
    event_type: str
    timestamp: datetime
    metadata: Mapping[str, Any] = field(default_factory=dict)
    duration: Optional[int] = None
    sequence: int = 0

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.event_id,
            "user_id": self.user_id,
            "event_type": self.event_type,
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
            "duration": self.duration,
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any], sequence: int = 0) -> "Event":
        """Rebuild an event from its persisted form; raises on malformed records."""
        event_type = record["event_type"]
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type '{event_type}'.")
        metadata = record.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise TypeError("Event metadata must be a mapping.")
        duration = record.get("duration")
        return cls(
            event_id=str(record["id"]),
            user_id=str(record["user_id"]),
            event_type=event_type,
            timestamp=datetime.fromisoformat(record["timestamp"]),
            metadata=metadata,
            duration=None if duration is None else int(duration),
            sequence=sequence,
        )


@dataclass(frozen=True)
class MoodEntry:
    """A self-reported mood check-in, stored as a mood_log event."""

    mood: str
    energy: int = 3
    confidence: int = 3
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.mood not in MOOD_SCORES:
            raise InvalidEventError(f"Unsupported mood '{self.mood}'. Expected one of: {', '.join(MOOD_SCORES)}.")
        for name in ("energy", "confidence"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 1 <= value <= 5:
                raise InvalidEventError(f"{name} must be an integer between 1 and 5, got {value!r}.")

    @property
    def score(self) -> int:
        return MOOD_SCORES[self.mood]

    def to_metadata(self) -> Dict[str, Any]:
        metadata: Dict[str, Any] = {"mood": self.mood, "energy": self.energy, "confidence": self.confidence}
        if self.notes:
            metadata["notes"] = self.notes
        return metadata


@dataclass(frozen=True)
class EngagementPattern:
    """Session-driven engagement metrics over the trailing analysis window."""

    login_frequency: float
    average_session_duration: float
    daily_engagement: Mapping[str, int]
    weekly_trend: str
    most_active_time_of_day: str


@dataclass(frozen=True)
class ConsistencyAnalysis:
    """Study consistency metrics derived from qualifying study events."""

    consistency_score: int
    current_streak: int
    longest_streak: int
    weekly_pattern: Mapping[str, bool]
    subject_consistency: Mapping[str, int]
    recommendations: List[str]


@dataclass(frozen=True)
class MoodAnalytics:
    """Aggregates over a user's mood_log history."""

    average_mood: float
    mood_trend: str
    energy_levels: List[int]
    confidence_levels: List[int]
    mood_distribution: Mapping[str, int]


@dataclass(frozen=True)
class Insight:
    """Prioritized, human-readable observation produced by an insight rule."""

    id: str
    type: str
    priority: str
    title: str
    message: str
    actionable: bool
    category: str
    timestamp: datetime
    suggested_action: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "priority": self.priority,
            "title": self.title,
            "message": self.message,
            "actionable": self.actionable,
            "suggested_action": self.suggested_action,
            "category": self.category,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Insight":
        if record["priority"] not in PRIORITY_RANK:
            raise ValueError(f"Unknown insight priority '{record['priority']}'.")
        return cls(
            id=str(record["id"]),
            type=str(record["type"]),
            priority=record["priority"],
            title=str(record["title"]),
            message=str(record["message"]),
            actionable=bool(record["actionable"]),
            category=str(record["category"]),
            timestamp=datetime.fromisoformat(record["timestamp"]),
            suggested_action=record.get("suggested_action"),
        )
