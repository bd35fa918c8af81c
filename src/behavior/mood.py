# ABOUTME: Aggregates mood check-ins into average mood, trend, and distribution.
# ABOUTME: Unknown or missing mood labels count as the neutral midpoint rather than failing.

from __future__ import annotations

from typing import Optional, Sequence

from .config import TrackingConfig
from .features import build_event_frame
from .patterns import classify_trend
from .schemas import MOOD_LOG, MOOD_SCORES, NEUTRAL_MOOD, Event, MoodAnalytics


def mood_score(label) -> int:
    if not isinstance(label, str):
        return NEUTRAL_MOOD
    return MOOD_SCORES.get(label, NEUTRAL_MOOD)


def analyze_mood(events: Sequence[Event], config: Optional[TrackingConfig] = None) -> MoodAnalytics:
    """
    Summarize mood_log events.

    The trend compares the mean of the most recent ``mood_trend_window``
    entries with the mean of the window before it. Until that earlier window
    holds at least one entry there is no baseline, and the trend is stable.
    """

    config = config or TrackingConfig()
    frame = build_event_frame(events, config.tzinfo)
    moods = frame[frame["event_type"] == MOOD_LOG]
    if moods.empty:
        return MoodAnalytics(
            average_mood=float(NEUTRAL_MOOD),
            mood_trend="stable",
            energy_levels=[],
            confidence_levels=[],
            mood_distribution={},
        )

    scores = moods["mood"].map(mood_score).astype(float)
    average_mood = float(scores.mean())

    size = config.mood_trend_window
    recent = scores.iloc[-size:]
    older = scores.iloc[-2 * size : -size]
    if older.empty:
        mood_trend = "stable"
    else:
        mood_trend = classify_trend(
            float(recent.mean()),
            float(older.mean()),
            config.trend_deadband,
            rising="improving",
            falling="declining",
        )

    energy_levels = [int(v) for v in moods["energy"].fillna(NEUTRAL_MOOD)]
    confidence_levels = [int(v) for v in moods["confidence"].fillna(NEUTRAL_MOOD)]

    labels = moods["mood"][moods["mood"].map(lambda m: isinstance(m, str) and m != "")]
    mood_distribution = {str(label): int(count) for label, count in sorted(labels.value_counts().items())}

    return MoodAnalytics(
        average_mood=average_mood,
        mood_trend=mood_trend,
        energy_levels=energy_levels,
        confidence_levels=confidence_levels,
        mood_distribution=mood_distribution,
    )
