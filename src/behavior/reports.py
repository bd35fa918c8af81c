# ABOUTME: Summarizes a trailing week or month of activity into a progress report.
# ABOUTME: Combines session time, quiz results, streaks, and mood into highlights and advice.

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Mapping, Optional, Sequence

from .config import TrackingConfig
from .features import between, build_event_frame, to_local
from .mood import analyze_mood
from .patterns import analyze_consistency
from .schemas import ACHIEVEMENT_EARNED, QUIZ_ATTEMPT, SESSION_END, SESSION_START, Event

REPORT_PERIODS = {"weekly": 7, "monthly": 30}


@dataclass(frozen=True)
class ProgressReport:
    period: str
    start: datetime
    end: datetime
    total_sessions: int
    total_learning_minutes: float
    average_session_minutes: float
    streak_days: int
    quiz_attempts: int
    average_quiz_score: Optional[float]
    subject_breakdown: Mapping[str, int]
    achievements: int
    average_mood: float
    mood_trend: str
    highlights: List[str]
    recommendations: List[str]


def build_progress_report(
    events: Sequence[Event],
    now: datetime,
    period: str = "weekly",
    config: Optional[TrackingConfig] = None,
) -> ProgressReport:
    if period not in REPORT_PERIODS:
        raise ValueError(f"Unsupported report period '{period}'. Expected one of: {', '.join(REPORT_PERIODS)}.")

    config = config or TrackingConfig()
    tz = config.tzinfo
    end = to_local(now, tz)
    start = end - timedelta(days=REPORT_PERIODS[period])

    frame = between(build_event_frame(events, tz), start, end)
    sessions = frame[frame["event_type"] == SESSION_START]
    ends = frame[frame["event_type"] == SESSION_END]
    quizzes = frame[frame["event_type"] == QUIZ_ATTEMPT]

    total_minutes = round(float(ends["duration"].fillna(0).sum()) / 60, 1) if not ends.empty else 0.0
    average_minutes = round(total_minutes / len(ends), 1) if len(ends) else 0.0

    scores = quizzes["score"].dropna()
    average_score = round(float(scores.mean()), 1) if not scores.empty else None
    subject_breakdown = {str(s): int(n) for s, n in sorted(quizzes["subject"].value_counts().items())}
    achievements = int((frame["event_type"] == ACHIEVEMENT_EARNED).sum())

    in_period = [event for event in events if start <= to_local(event.timestamp, tz) <= end]
    mood = analyze_mood(in_period, config)
    consistency = analyze_consistency(events, end, config)

    highlights: List[str] = []
    if consistency.current_streak >= 7:
        highlights.append(f"{consistency.current_streak}-day learning streak")
    if average_score is not None and average_score >= 80:
        highlights.append(f"Averaging {average_score:.0f}% on quizzes")
    if achievements:
        highlights.append(f"Earned {achievements} achievement{'s' if achievements != 1 else ''}")
    if subject_breakdown:
        top_subject = sorted(subject_breakdown.items(), key=lambda kv: (-kv[1], kv[0]))[0][0]
        highlights.append(f"Most practised subject: {top_subject}")

    return ProgressReport(
        period=period,
        start=start,
        end=end,
        total_sessions=len(sessions),
        total_learning_minutes=total_minutes,
        average_session_minutes=average_minutes,
        streak_days=consistency.current_streak,
        quiz_attempts=len(quizzes),
        average_quiz_score=average_score,
        subject_breakdown=subject_breakdown,
        achievements=achievements,
        average_mood=round(mood.average_mood, 2),
        mood_trend=mood.mood_trend,
        highlights=highlights,
        recommendations=list(consistency.recommendations),
    )
