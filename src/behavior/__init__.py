# ABOUTME: Groups behavioral telemetry tracking, analysis, and insight generation.
# ABOUTME: Re-exports the store, analyzers, insight engine, and tracking facade.

from .config import TrackingConfig, load_config
from .event_store import EventStore
from .insights import CollectingNotifier, LoggingNotifier, generate_insights
from .mood import analyze_mood
from .patterns import analyze_consistency, analyze_engagement
from .reports import ProgressReport, build_progress_report
from .schemas import ConsistencyAnalysis, EngagementPattern, Event, Insight, MoodAnalytics, MoodEntry
from .service import BehaviorTracker
from .session_tracker import SessionTracker
from .storage import InMemoryStorage, JsonFileStorage, KeyValueStorage

__all__ = [
    "BehaviorTracker",
    "CollectingNotifier",
    "ConsistencyAnalysis",
    "EngagementPattern",
    "Event",
    "EventStore",
    "InMemoryStorage",
    "Insight",
    "JsonFileStorage",
    "KeyValueStorage",
    "LoggingNotifier",
    "MoodAnalytics",
    "MoodEntry",
    "ProgressReport",
    "SessionTracker",
    "TrackingConfig",
    "analyze_consistency",
    "analyze_engagement",
    "analyze_mood",
    "build_progress_report",
    "generate_insights",
    "load_config",
]
