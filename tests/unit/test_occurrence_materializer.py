"""Unit tests for selfie_calendar.domain.occurrence_materializer."""

from datetime import date, datetime

import pytest

from selfie_calendar.domain.occurrence_materializer import (
    DEFAULT_EVENT_COLOR,
    ColorScheme,
    OccurrenceMaterializer,
    activity_key,
    event_key,
)
from selfie_calendar.models import Event, OccurrenceKind

pytestmark = pytest.mark.unit


class TestMaterialize:
    """Tests for OccurrenceMaterializer.materialize."""

    def test_timed_event(self):
        event = Event(
            id=5,
            title="Lecture",
            place="Room B1",
            start_date="2025-06-02",
            start_time="09:00:00",
            end_time="11:00",
        )

        occurrence = OccurrenceMaterializer().materialize(event, date(2025, 6, 9))

        assert occurrence.key == "E:5:2025-06-09T09:00:00"
        assert occurrence.kind is OccurrenceKind.EVENT
        assert occurrence.source_id == 5
        assert occurrence.title == "Lecture"
        assert occurrence.place == "Room B1"
        assert occurrence.start == datetime(2025, 6, 9, 9, 0)
        assert occurrence.end == datetime(2025, 6, 9, 11, 0)
        assert occurrence.all_day is False
        assert occurrence.color_hint == DEFAULT_EVENT_COLOR

    def test_all_day_event_starts_at_midnight(self):
        event = Event(id=5, start_date="2025-06-02")

        occurrence = OccurrenceMaterializer().materialize(event, date(2025, 6, 2))

        assert occurrence.start == datetime(2025, 6, 2)
        assert occurrence.end is None
        assert occurrence.all_day is True
        assert occurrence.key == "E:5:2025-06-02T00:00:00"

    def test_multi_day_event_without_end_time_ends_on_end_date(self):
        event = Event(id=5, start_date="2025-05-30", end_date="2025-06-02", start_time="10:00")

        occurrence = OccurrenceMaterializer().materialize(event, date(2025, 5, 30))

        assert occurrence.end == datetime(2025, 6, 2)
        assert occurrence.all_day is False

    def test_end_date_equal_to_occurrence_date_gives_no_end(self):
        event = Event(id=5, start_date="2025-06-02", end_date="2025-06-02", start_time="10:00")
        assert OccurrenceMaterializer().materialize(event, date(2025, 6, 2)).end is None

    def test_recurring_event_ignores_end_date(self):
        event = Event(
            id=5,
            start_date="2025-06-02",
            end_date="2025-06-03",
            recurrence_type="weeklyDays",
            days_of_week="Monday",
        )

        occurrence = OccurrenceMaterializer().materialize(event, date(2025, 7, 7))

        assert occurrence.start == datetime(2025, 7, 7)
        assert occurrence.end is None

    def test_start_time_without_seconds_matches_key_of_full_time(self):
        materializer = OccurrenceMaterializer()
        short = Event(id=5, start_date="2025-06-02", start_time="09:00")
        full = Event(id=5, start_date="2025-06-02", start_time="09:00:00")

        assert (
            materializer.materialize(short, date(2025, 6, 2)).key
            == materializer.materialize(full, date(2025, 6, 2)).key
        )

    def test_custom_color(self):
        materializer = OccurrenceMaterializer(ColorScheme(event="#123456"))
        occurrence = materializer.materialize(Event(id=1, start_date="2025-06-02"), date(2025, 6, 2))
        assert occurrence.color_hint == "#123456"


class TestKeys:
    """Tests for deduplication keys."""

    def test_event_key(self):
        assert event_key(3, "2025-06-02T09:00:00") == "E:3:2025-06-02T09:00:00"

    def test_activity_key(self):
        assert activity_key("abc") == "A:abc"
