"""Turns a resolved occurrence date into a renderable Occurrence - selfie_calendar."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..calendar.date_utils import combine, parse_date_only, to_iso_timestamp
from ..models import Event, Occurrence, OccurrenceKind

logger = logging.getLogger(__name__)

DEFAULT_EVENT_COLOR = "#2ecc70"
DEFAULT_ACTIVITY_DONE_COLOR = "#91ff00"
DEFAULT_ACTIVITY_PENDING_COLOR = "#ff6df3"


@dataclass(frozen=True)
class ColorScheme:
    """Minimal color hints attached to occurrences.

    The render boundary is free to restyle entries; these only distinguish
    events from activities and done from pending activities.
    """

    event: str = DEFAULT_EVENT_COLOR
    activity_done: str = DEFAULT_ACTIVITY_DONE_COLOR
    activity_pending: str = DEFAULT_ACTIVITY_PENDING_COLOR


def event_key(event_id: object, start_iso: str) -> str:
    """Build the deduplication key of an event occurrence."""
    return f"E:{event_id}:{start_iso}"


def activity_key(activity_id: object) -> str:
    """Build the deduplication key of an activity entry."""
    return f"A:{activity_id}"


class OccurrenceMaterializer:
    """Builds Occurrence records from an event and one of its dates.

    Pure and total: it never looks at the window and never fails for a date the
    resolver produced.
    """

    def __init__(self, colors: Optional[ColorScheme] = None):
        self.colors = colors or ColorScheme()

    def materialize(self, event: Event, occurrence_date: date) -> Occurrence:
        """Create the renderable entry for ``event`` on ``occurrence_date``.

        Args:
            event: Source event
            occurrence_date: Date returned by the recurrence resolver

        Returns:
            Occurrence with start/end timestamps, all-day flag and color hint
        """
        start = combine(occurrence_date, event.start_time)

        end = None
        if event.end_time:
            end = combine(occurrence_date, event.end_time)
        elif not event.is_recurring:
            # end_date spans a single multi-day event; a series repeats start_date only
            end_date = parse_date_only(event.end_date)
            if end_date is not None and end_date != occurrence_date:
                end = combine(end_date, event.end_time)

        return Occurrence(
            key=event_key(event.id, to_iso_timestamp(start)),
            kind=OccurrenceKind.EVENT,
            source_id=event.id,
            title=event.title,
            place=event.place,
            start=start,
            end=end,
            all_day=event.is_all_day,
            color_hint=self.colors.event,
        )
