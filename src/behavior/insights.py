# ABOUTME: Turns engagement, consistency, and mood metrics into ranked behavioral insights.
# ABOUTME: Each rule emits at most one insight with a stable id; high-priority ones reach a notifier.

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Protocol, Sequence

from .config import TrackingConfig
from .features import to_local
from .mood import analyze_mood
from .patterns import analyze_consistency, analyze_engagement
from .schemas import (
    MOOD_LOG,
    PRIORITY_RANK,
    ConsistencyAnalysis,
    EngagementPattern,
    Event,
    Insight,
    MoodAnalytics,
)

logger = logging.getLogger(__name__)

LOW_MOODS = frozenset({"sad", "frustrated", "tired", "confused"})


@dataclass(frozen=True)
class InsightContext:
    """Everything a rule may look at for one user at one instant."""

    now: datetime
    pattern: EngagementPattern
    consistency: ConsistencyAnalysis
    mood: MoodAnalytics
    event_count: int
    recent_low_moods: int


InsightRule = Callable[[InsightContext], Optional[Insight]]


class Notifier(Protocol):
    def notify(self, user_id: str, insight: Insight) -> None:
        ...


class LoggingNotifier:
    """Reports high-priority insights through the module logger."""

    def notify(self, user_id: str, insight: Insight) -> None:
        logger.info("High priority insight for %s: %s (%s)", user_id, insight.title, insight.id)


class CollectingNotifier:
    """Keeps every notification in memory, in delivery order."""

    def __init__(self) -> None:
        self.delivered: List[tuple] = []

    def notify(self, user_id: str, insight: Insight) -> None:
        self.delivered.append((user_id, insight))


def build_context(
    events: Sequence[Event],
    now: datetime,
    config: Optional[TrackingConfig] = None,
) -> InsightContext:
    config = config or TrackingConfig()
    tz = config.tzinfo
    now = to_local(now, tz)
    day_ago = now - timedelta(hours=24)
    recent_low_moods = sum(
        1
        for event in events
        if event.event_type == MOOD_LOG
        and day_ago <= to_local(event.timestamp, tz) <= now
        and event.metadata.get("mood") in LOW_MOODS
    )
    return InsightContext(
        now=now,
        pattern=analyze_engagement(events, now, config),
        consistency=analyze_consistency(events, now, config),
        mood=analyze_mood(events, config),
        event_count=len(events),
        recent_low_moods=recent_low_moods,
    )


def engagement_decrease(ctx: InsightContext) -> Optional[Insight]:
    if ctx.pattern.weekly_trend != "decreasing":
        return None
    return Insight(
        id="engagement_decrease",
        type="warning",
        priority="medium",
        title="Let's Get Back on Track!",
        message="You've been less active lately. Remember, every small step counts!",
        actionable=True,
        suggested_action="Start with a 10-minute fun quiz today",
        category="engagement",
        timestamp=ctx.now,
    )


def engagement_increase(ctx: InsightContext) -> Optional[Insight]:
    if ctx.pattern.weekly_trend != "increasing":
        return None
    return Insight(
        id="engagement_increase",
        type="celebration",
        priority="high",
        title="You're On Fire!",
        message="Your learning activity is increasing! You're doing amazing!",
        actionable=False,
        category="engagement",
        timestamp=ctx.now,
    )


def streak_celebration(ctx: InsightContext) -> Optional[Insight]:
    streak = ctx.consistency.current_streak
    if streak < 7:
        return None
    return Insight(
        id="streak_celebration",
        type="celebration",
        priority="high",
        title=f"{streak} Day Streak Champion!",
        message="You've been learning consistently! You're building incredible knowledge!",
        actionable=False,
        category="consistency",
        timestamp=ctx.now,
    )


def consistency_low(ctx: InsightContext) -> Optional[Insight]:
    # No history means no basis for a consistency judgement.
    if ctx.event_count == 0 or ctx.consistency.consistency_score >= 30:
        return None
    return Insight(
        id="consistency_low",
        type="motivation",
        priority="medium",
        title="Small Steps, Big Dreams!",
        message="Consistent learning is like building a castle brick by brick. Let's start today!",
        actionable=True,
        suggested_action="Set a daily 15-minute learning reminder",
        category="consistency",
        timestamp=ctx.now,
    )


def optimal_time(ctx: InsightContext) -> Optional[Insight]:
    period = ctx.pattern.most_active_time_of_day
    if not period:
        return None
    return Insight(
        id="optimal_time",
        type="suggestion",
        priority="low",
        title=f"You Learn Best in the {period.capitalize()}!",
        message=f"You're most engaged during {period} sessions.",
        actionable=True,
        suggested_action=f"Schedule more learning activities in the {period}",
        category="engagement",
        timestamp=ctx.now,
    )


def consistency_praise(ctx: InsightContext) -> Optional[Insight]:
    score = ctx.consistency.consistency_score
    if score < 80:
        return None
    return Insight(
        id="consistency_praise",
        type="celebration",
        priority="medium",
        title="Super Consistent Learner!",
        message=f"Your consistency score is {score}%! You're building amazing learning habits!",
        actionable=False,
        category="consistency",
        timestamp=ctx.now,
    )


def mood_declining(ctx: InsightContext) -> Optional[Insight]:
    if ctx.mood.mood_trend != "declining":
        return None
    return Insight(
        id="mood_declining",
        type="warning",
        priority="medium",
        title="How Are You Feeling?",
        message="Your recent check-ins are lower than before. Shorter, lighter sessions can help.",
        actionable=True,
        suggested_action="Try a short review of a favourite subject",
        category="mood",
        timestamp=ctx.now,
    )


def mood_support(ctx: InsightContext) -> Optional[Insight]:
    if ctx.recent_low_moods == 0:
        return None
    return Insight(
        id="mood_support",
        type="motivation",
        priority="high",
        title="Sending You Encouragement!",
        message="It's okay to have tough days. Taking a break and coming back is part of learning.",
        actionable=True,
        suggested_action="Pick a relaxed reading activity",
        category="mood",
        timestamp=ctx.now,
    )


def explore_subjects(ctx: InsightContext) -> Optional[Insight]:
    subjects = ctx.consistency.subject_consistency
    if len(subjects) != 1:
        return None
    (subject,) = subjects
    return Insight(
        id="explore_subjects",
        type="suggestion",
        priority="low",
        title="Branch Out!",
        message=f"All of your recent quizzes were in {subject}. New subjects keep learning fresh.",
        actionable=True,
        suggested_action="Try a quiz in a different subject",
        category="performance",
        timestamp=ctx.now,
    )


DEFAULT_RULES: Sequence[InsightRule] = (
    engagement_decrease,
    engagement_increase,
    streak_celebration,
    consistency_low,
    optimal_time,
    consistency_praise,
    mood_declining,
    mood_support,
    explore_subjects,
)


def rank_insights(insights: Sequence[Insight]) -> List[Insight]:
    """Stable sort by priority, high first; equal priorities keep rule order."""
    return sorted(insights, key=lambda insight: -PRIORITY_RANK[insight.priority])


def evaluate_rules(context: InsightContext, rules: Sequence[InsightRule] = DEFAULT_RULES) -> List[Insight]:
    insights: List[Insight] = []
    for rule in rules:
        insight = rule(context)
        if insight is not None:
            insights.append(insight)
    return rank_insights(insights)


def generate_insights(
    user_id: str,
    events: Sequence[Event],
    now: datetime,
    config: Optional[TrackingConfig] = None,
    notifier: Optional[Notifier] = None,
    rules: Sequence[InsightRule] = DEFAULT_RULES,
) -> List[Insight]:
    """
    Evaluate ``rules`` against one user's events as of ``now``.

    The result depends only on the arguments, so identical inputs give
    identical output. High-priority insights are also passed to ``notifier``.
    """

    insights = evaluate_rules(build_context(events, now, config), rules)
    if notifier is not None:
        for insight in insights:
            if insight.priority == "high":
                try:
                    notifier.notify(user_id, insight)
                except Exception:
                    logger.exception("Notifier failed for insight %s", insight.id)
    return insights
