# ABOUTME: Derives engagement patterns and study-consistency metrics from an event history.
# ABOUTME: Pure functions of (events, now); sessions drive engagement, quiz attempts drive consistency.

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from .config import TrackingConfig
from .features import between, build_event_frame, to_local
from .schemas import SESSION_END, SESSION_START, ConsistencyAnalysis, EngagementPattern, Event

TIME_OF_DAY_BUCKETS = ("morning", "afternoon", "evening", "night")
WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

RECOMMEND_DAILY_PRACTICE = "Try to study a little bit every day, even just for 10 minutes!"
RECOMMEND_NEW_STREAK = "Start a new learning streak today - you can do it!"
RECOMMEND_MORE_SUBJECTS = "Explore different subjects to make learning more exciting!"


def time_of_day(hour: int) -> str:
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


def classify_trend(
    current: float,
    prior: float,
    deadband: float = 0.10,
    rising: str = "increasing",
    falling: str = "decreasing",
) -> str:
    """Compare two magnitudes with a relative deadband; a zero baseline is stable."""
    if prior <= 0:
        return "stable"
    if current > prior * (1 + deadband):
        return rising
    if current < prior * (1 - deadband):
        return falling
    return "stable"


def longest_run(days: Iterable[date]) -> int:
    """Length of the longest run of calendar-consecutive days."""
    best = 0
    run = 0
    previous: Optional[date] = None
    for day in sorted(set(days)):
        run = run + 1 if previous is not None and (day - previous).days == 1 else 1
        best = max(best, run)
        previous = day
    return best


def streak_ending_on(today: date, active_days: Iterable[date], max_days: int) -> int:
    """Count consecutive active days walking backward from ``today``, capped at ``max_days``."""
    active = set(active_days)
    streak = 0
    day = today
    while streak < max_days and day in active:
        streak += 1
        day -= timedelta(days=1)
    return streak


def analyze_engagement(
    events: Sequence[Event],
    now: datetime,
    config: Optional[TrackingConfig] = None,
) -> EngagementPattern:
    """
    Session-based engagement over the trailing analysis window.

    The window is ``[now - analysis_window_days, now]`` inclusive, so it can
    touch one more calendar date than ``analysis_window_days``. A user active
    on every one of those dates gets a ``login_frequency`` slightly above 1.0
    (31 / 30 with the defaults); the value is not clamped.
    """

    config = config or TrackingConfig()
    tz = config.tzinfo
    now = to_local(now, tz)
    frame = build_event_frame(events, tz)

    window = between(frame, now - timedelta(days=config.analysis_window_days), now)
    starts = window[window["event_type"] == SESSION_START]
    ends = window[window["event_type"] == SESSION_END]

    login_frequency = starts["day"].nunique() / config.analysis_window_days
    average_duration = float(ends["duration"].fillna(0).mean()) if not ends.empty else 0.0

    daily_counts = starts["day"].value_counts()
    daily_engagement = {day.isoformat(): int(count) for day, count in sorted(daily_counts.items())}

    start_times = frame.loc[frame["event_type"] == SESSION_START, "timestamp"]
    week = timedelta(days=config.trend_window_days)
    current_week = int(((start_times >= now - week) & (start_times <= now)).sum())
    prior_week = int(((start_times >= now - 2 * week) & (start_times < now - week)).sum())
    weekly_trend = classify_trend(current_week, prior_week, config.trend_deadband)

    return EngagementPattern(
        login_frequency=login_frequency,
        average_session_duration=average_duration,
        daily_engagement=daily_engagement,
        weekly_trend=weekly_trend,
        most_active_time_of_day=_most_active_bucket(starts["hour"]),
    )


def _most_active_bucket(hours: pd.Series) -> str:
    counts: Dict[str, int] = {bucket: 0 for bucket in TIME_OF_DAY_BUCKETS}
    for hour in hours:
        counts[time_of_day(int(hour))] += 1
    best = TIME_OF_DAY_BUCKETS[0]
    for bucket in TIME_OF_DAY_BUCKETS[1:]:
        if counts[bucket] > counts[best]:
            best = bucket
    return best


def analyze_consistency(
    events: Sequence[Event],
    now: datetime,
    config: Optional[TrackingConfig] = None,
) -> ConsistencyAnalysis:
    """
    Study-consistency metrics over the trailing analysis window.

    Active days are days with at least one event whose type is listed in
    ``config.qualifying_event_types`` (quiz attempts by default), which is a
    narrower signal than the session events used for engagement.
    """

    config = config or TrackingConfig()
    tz = config.tzinfo
    now = to_local(now, tz)
    today = now.date()
    frame = build_event_frame(events, tz)

    qualifying = frame[frame["event_type"].isin(config.qualifying_event_types)]
    window = between(qualifying, now - timedelta(days=config.analysis_window_days), now)

    active_days = set(window["day"])
    score = round(100 * len(active_days) / config.analysis_window_days)
    consistency_score = max(0, min(100, score))

    past = qualifying[qualifying["timestamp"] <= now] if not qualifying.empty else qualifying
    current_streak = streak_ending_on(today, past["day"], config.streak_lookback_days)
    longest_streak = longest_run(past["day"])

    active_weekdays = set(int(w) for w in window["weekday"])
    weekly_pattern: Dict[str, bool] = {}
    for offset in range(7):
        weekday = (today - timedelta(days=offset)).weekday()
        weekly_pattern[WEEKDAY_NAMES[weekday]] = weekday in active_weekdays

    subject_counts = window["subject"].value_counts()
    subject_consistency = {str(subject): int(count) for subject, count in sorted(subject_counts.items())}

    recommendations: List[str] = []
    if consistency_score < 50:
        recommendations.append(RECOMMEND_DAILY_PRACTICE)
    if current_streak == 0:
        recommendations.append(RECOMMEND_NEW_STREAK)
    if len(subject_consistency) == 1:
        recommendations.append(RECOMMEND_MORE_SUBJECTS)

    return ConsistencyAnalysis(
        consistency_score=consistency_score,
        current_streak=current_streak,
        longest_streak=longest_streak,
        weekly_pattern=weekly_pattern,
        subject_consistency=subject_consistency,
        recommendations=recommendations,
    )
