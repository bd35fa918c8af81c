# ABOUTME: Tests session bracketing between focus signals.
# ABOUTME: Duplicate signals must not create extra or negative-duration session events.

import unittest
from datetime import datetime, timedelta, timezone

from src.behavior.event_store import EventStore
from src.behavior.session_tracker import ACTIVE, IDLE, SessionTracker

NOW = datetime(2024, 3, 15, 14, 0, tzinfo=timezone.utc)


class SessionTrackerTests(unittest.TestCase):
    def setUp(self):
        self.store = EventStore()
        self.tracker = SessionTracker(self.store, "u1")

    def _types(self):
        return [e.event_type for e in self.store.snapshot("u1")]

    def test_begin_and_suspend_write_one_bracket(self):
        start = self.tracker.begin(NOW)
        self.assertEqual(self.tracker.state, ACTIVE)
        self.assertEqual(self.tracker.started_at, NOW)

        end = self.tracker.suspend(NOW + timedelta(seconds=90))
        self.assertEqual(self.tracker.state, IDLE)
        self.assertEqual(start.event_type, "session_start")
        self.assertEqual(end.event_type, "session_end")
        self.assertEqual(end.duration, 90)
        self.assertEqual(self._types(), ["session_start", "session_end"])

    def test_duplicate_suspend_is_ignored(self):
        self.tracker.begin(NOW)
        self.tracker.suspend(NOW + timedelta(minutes=1))
        self.assertIsNone(self.tracker.suspend(NOW + timedelta(minutes=2)))
        self.assertIsNone(self.tracker.shutdown(NOW + timedelta(minutes=3)))
        self.assertEqual(self._types(), ["session_start", "session_end"])

    def test_duplicate_begin_is_ignored(self):
        self.tracker.begin(NOW)
        self.assertIsNone(self.tracker.begin(NOW + timedelta(minutes=1)))
        self.assertEqual(self.tracker.started_at, NOW)
        self.assertEqual(self._types(), ["session_start"])

    def test_suspend_without_begin_is_ignored(self):
        self.assertIsNone(self.tracker.suspend(NOW))
        self.assertEqual(self._types(), [])

    def test_duration_is_rounded_and_never_negative(self):
        self.tracker.begin(NOW)
        end = self.tracker.suspend(NOW + timedelta(seconds=89.6))
        self.assertEqual(end.duration, 90)

        self.tracker.begin(NOW + timedelta(minutes=5))
        skewed = self.tracker.suspend(NOW + timedelta(minutes=4))
        self.assertEqual(skewed.duration, 0)

    def test_resume_opens_a_new_bracket(self):
        self.tracker.focus_gained(NOW)
        self.tracker.focus_lost(NOW + timedelta(minutes=10))
        self.tracker.focus_gained(NOW + timedelta(minutes=30))
        self.tracker.shutdown(NOW + timedelta(minutes=45))
        self.assertEqual(self._types(), ["session_start", "session_end", "session_start", "session_end"])
        durations = [e.duration for e in self.store.snapshot("u1") if e.event_type == "session_end"]
        self.assertEqual(durations, [600, 900])


def test_clock_drives_default_timestamps():
    ticks = iter([NOW, NOW + timedelta(seconds=42)])
    store = EventStore()
    tracker = SessionTracker(store, "u1", clock=lambda: next(ticks))
    tracker.begin()
    end = tracker.suspend()
    assert end.duration == 42
    assert end.timestamp == NOW + timedelta(seconds=42)


def test_begin_metadata_is_recorded():
    store = EventStore()
    tracker = SessionTracker(store, "u1")
    start = tracker.begin(NOW, metadata={"page": "dashboard"})
    assert dict(start.metadata) == {"page": "dashboard"}
