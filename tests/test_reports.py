# ABOUTME: Tests weekly and monthly progress report aggregation.
# ABOUTME: Checks totals, highlights, and the empty-history report.

from datetime import datetime, timedelta, timezone

import pytest

from src.behavior.event_store import EventStore
from src.behavior.reports import build_progress_report

NOW = datetime(2024, 3, 15, 14, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    store = EventStore(clock=lambda: NOW)
    store.append("u1", "session_start", timestamp=NOW - timedelta(days=2, minutes=10))
    store.append("u1", "session_end", timestamp=NOW - timedelta(days=2), duration=600)
    store.append("u1", "session_start", timestamp=NOW - timedelta(days=1, minutes=20))
    store.append("u1", "session_end", timestamp=NOW - timedelta(days=1), duration=1200)
    store.append("u1", "quiz_attempt", timestamp=NOW - timedelta(days=2), metadata={"subject": "math", "score": 80})
    store.append("u1", "quiz_attempt", timestamp=NOW - timedelta(days=1), metadata={"subject": "math", "score": 90})
    store.append("u1", "quiz_attempt", timestamp=NOW - timedelta(hours=2), metadata={"subject": "science"})
    store.append("u1", "achievement_earned", timestamp=NOW - timedelta(days=1), metadata={"achievement_type": "first_quiz", "points": 10})
    store.append("u1", "mood_log", timestamp=NOW - timedelta(hours=1), metadata={"mood": "happy", "energy": 4, "confidence": 4})
    # Outside the weekly window.
    store.append("u1", "session_end", timestamp=NOW - timedelta(days=20), duration=6000)
    return store


def test_weekly_report_totals(store):
    report = build_progress_report(store.snapshot("u1"), NOW, "weekly")
    assert report.start == NOW - timedelta(days=7)
    assert report.total_sessions == 2
    assert report.total_learning_minutes == 30.0
    assert report.average_session_minutes == 15.0
    assert report.quiz_attempts == 3
    assert report.average_quiz_score == 85.0
    assert report.subject_breakdown == {"math": 2, "science": 1}
    assert report.achievements == 1
    assert report.streak_days == 3
    assert report.average_mood == 4.0


def test_weekly_report_highlights(store):
    report = build_progress_report(store.snapshot("u1"), NOW, "weekly")
    assert report.highlights == [
        "Averaging 85% on quizzes",
        "Earned 1 achievement",
        "Most practised subject: math",
    ]


def test_monthly_report_covers_thirty_days(store):
    report = build_progress_report(store.snapshot("u1"), NOW, "monthly")
    assert report.start == NOW - timedelta(days=30)
    assert report.total_learning_minutes == 130.0


def test_empty_history_report():
    report = build_progress_report([], NOW)
    assert report.total_sessions == 0
    assert report.total_learning_minutes == 0.0
    assert report.average_session_minutes == 0.0
    assert report.average_quiz_score is None
    assert report.subject_breakdown == {}
    assert report.highlights == []
    assert report.average_mood == 3.0
    assert report.mood_trend == "stable"


def test_unknown_period_is_rejected():
    with pytest.raises(ValueError):
        build_progress_report([], NOW, "daily")
