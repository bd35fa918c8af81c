# ABOUTME: Flattens behavioral events into a pandas frame with calendar-local columns.
# ABOUTME: Shared by the pattern, mood, and report builders so they bucket days identically.

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Iterable

import pandas as pd

from .schemas import Event

FRAME_COLUMNS = [
    "event_id",
    "event_type",
    "timestamp",
    "day",
    "hour",
    "weekday",
    "duration",
    "subject",
    "score",
    "mood",
    "energy",
    "confidence",
]


def to_local(ts: datetime, tz: tzinfo) -> datetime:
    """Express ``ts`` in ``tz``; naive values are taken to already be local."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=tz)
    return ts.astimezone(tz)


def build_event_frame(events: Iterable[Event], tz: tzinfo) -> pd.DataFrame:
    """
    Convert events into one row per event, ordered by (timestamp, insertion).

    Metadata values are read leniently: missing or non-numeric values become
    NaN (or "unknown" for subjects) instead of raising.
    """

    ordered = sorted(events, key=lambda e: (to_local(e.timestamp, tz), e.sequence))
    rows = []
    for event in ordered:
        local_ts = to_local(event.timestamp, tz)
        metadata = event.metadata or {}
        subject = metadata.get("subject")
        rows.append(
            {
                "event_id": event.event_id,
                "event_type": event.event_type,
                "timestamp": local_ts,
                "day": local_ts.date(),
                "hour": local_ts.hour,
                "weekday": local_ts.weekday(),
                "duration": event.duration,
                "subject": str(subject) if subject not in (None, "") else "unknown",
                "score": metadata.get("score"),
                "mood": metadata.get("mood"),
                "energy": metadata.get("energy"),
                "confidence": metadata.get("confidence"),
            }
        )

    if not rows:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    df = pd.DataFrame(rows, columns=FRAME_COLUMNS)
    for column in ("duration", "score", "energy", "confidence"):
        df[column] = pd.to_numeric(df[column], errors="coerce")
    return df


def between(frame: pd.DataFrame, start: datetime, end: datetime) -> pd.DataFrame:
    """Rows with ``start <= timestamp <= end``."""
    if frame.empty:
        return frame
    return frame[(frame["timestamp"] >= start) & (frame["timestamp"] <= end)]
