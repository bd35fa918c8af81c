# ABOUTME: Tests event and insight records plus mood entry validation.
# ABOUTME: Malformed records must raise so the store can discard them.

from datetime import datetime, timezone

import pytest

from src.behavior.errors import InvalidEventError
from src.behavior.schemas import EVENT_TYPES, MOOD_SCORES, RECOGNIZED_METADATA, Event, MoodEntry

NOW = datetime(2024, 3, 15, 14, 0, tzinfo=timezone.utc)


def test_every_event_type_documents_its_metadata():
    assert set(RECOGNIZED_METADATA) == set(EVENT_TYPES)


def test_event_record_keeps_unknown_metadata():
    event = Event(
        event_id="1_0_abc",
        user_id="u1",
        event_type="quiz_attempt",
        timestamp=NOW,
        metadata={"score": 75, "subject": "math", "custom_flag": True},
    )
    record = event.to_record()
    assert record["id"] == "1_0_abc"
    assert record["timestamp"] == "2024-03-15T14:00:00+00:00"
    restored = Event.from_record(record, sequence=4)
    assert restored.metadata["custom_flag"] is True
    assert restored.sequence == 4
    assert restored.timestamp == NOW


@pytest.mark.parametrize(
    "record",
    [
        {"id": "x", "user_id": "u1", "event_type": "teleport", "timestamp": NOW.isoformat()},
        {"id": "x", "user_id": "u1", "event_type": "click", "timestamp": "yesterday"},
        {"id": "x", "user_id": "u1", "event_type": "click", "timestamp": NOW.isoformat(), "metadata": [1]},
        {"user_id": "u1", "event_type": "click", "timestamp": NOW.isoformat()},
    ],
)
def test_malformed_event_records_raise(record):
    with pytest.raises((ValueError, KeyError, TypeError)):
        Event.from_record(record)


def test_mood_entry_scores_and_metadata():
    entry = MoodEntry(mood="tired", energy=1, confidence=5)
    assert entry.score == MOOD_SCORES["tired"] == 2
    assert entry.to_metadata() == {"mood": "tired", "energy": 1, "confidence": 5}


@pytest.mark.parametrize("kwargs", [{"mood": "sad"}, {"mood": "okay", "energy": 0}, {"mood": "okay", "confidence": 6}])
def test_mood_entry_validation(kwargs):
    with pytest.raises(InvalidEventError):
        MoodEntry(**kwargs)
