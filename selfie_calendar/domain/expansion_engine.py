"""Window expansion for selfie_calendar.

Combines the recurrence resolver and the occurrence materializer over a whole
collection of events, maps activities onto all-day entries, and merges both
streams into one deduplicated list for a single display window.

The engine is a pure function of its inputs. It never reads a clock, performs
no I/O and keeps no state between calls, so it is safe to call repeatedly and
from independent call sites.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any, Optional, Union

from pydantic import ValidationError

from ..calendar.date_utils import combine, parse_date_only
from ..models import Activity, Event, Occurrence, OccurrenceKind, Window
from .occurrence_materializer import ColorScheme, OccurrenceMaterializer, activity_key
from .recurrence_resolver import RecurrenceResolver

logger = logging.getLogger(__name__)

EventInput = Union[Event, Mapping[str, Any]]
ActivityInput = Union[Activity, Mapping[str, Any]]


class WindowExpansionEngine:
    """Expands events and activities into the occurrences of one window."""

    def __init__(
        self,
        resolver: Optional[RecurrenceResolver] = None,
        materializer: Optional[OccurrenceMaterializer] = None,
        colors: Optional[ColorScheme] = None,
    ):
        """Initialize the engine.

        Args:
            resolver: Recurrence resolver (a default one is created if omitted)
            materializer: Occurrence materializer (built from ``colors`` if omitted)
            colors: Color hints for events and activities
        """
        self.colors = colors or (materializer.colors if materializer else ColorScheme())
        self.resolver = resolver or RecurrenceResolver()
        self.materializer = materializer or OccurrenceMaterializer(self.colors)

    def expand(
        self,
        events: Iterable[EventInput],
        activities: Iterable[ActivityInput],
        window_start: Union[date, datetime],
        window_end: Union[date, datetime],
    ) -> list[Occurrence]:
        """Expand all events and activities visible in ``[window_start, window_end)``.

        Activities are processed before events. The result is deduplicated by
        occurrence key with the first entry winning; no other ordering is
        guaranteed, so callers should sort by ``start`` if display order matters.

        Items that cannot be read (bad dates, rows failing validation) contribute
        nothing and do not affect the others.

        Args:
            events: Events or raw event rows
            activities: Activities or raw activity rows
            window_start: First visible day (inclusive)
            window_end: First day after the window (exclusive)

        Returns:
            Deduplicated occurrences for this window only
        """
        window = Window(start=window_start, end=window_end)
        if window.is_empty:
            logger.debug("Empty window [%s, %s); nothing to expand", window.start, window.end)
            return []

        activity_entries = self.map_activities(activities, window)
        event_entries = self.expand_events(events, window)

        merged = self.deduplicate(activity_entries + event_entries)
        logger.debug(
            "Expanded window [%s, %s): %d activities + %d event occurrences = %d entries",
            window.start,
            window.end,
            len(activity_entries),
            len(event_entries),
            len(merged),
        )
        return merged

    def expand_events(self, events: Iterable[EventInput], window: Window) -> list[Occurrence]:
        """Resolve and materialize every event for ``window``."""
        occurrences: list[Occurrence] = []
        for raw in events:
            event = _coerce(Event, raw)
            if event is None:
                continue
            try:
                for day in self.resolver.iter_dates(event, window.start, window.end):
                    occurrences.append(self.materializer.materialize(event, day))
            except Exception:
                logger.exception("Failed to expand event %s; skipping it", event.id)
                continue
        return occurrences

    def map_activities(
        self, activities: Iterable[ActivityInput], window: Window
    ) -> list[Occurrence]:
        """Map activities due inside ``window`` onto all-day occurrences."""
        entries: list[Occurrence] = []
        for raw in activities:
            activity = _coerce(Activity, raw)
            if activity is None:
                continue

            due = parse_date_only(activity.due_date)
            if due is None:
                logger.warning(
                    "Skipping activity %s: unparsable due date %r", activity.id, activity.due_date
                )
                continue
            if not window.contains(due):
                continue

            entries.append(
                Occurrence(
                    key=activity_key(activity.id),
                    kind=OccurrenceKind.ACTIVITY,
                    source_id=activity.id,
                    title=activity.title,
                    start=combine(due, None),
                    end=None,
                    all_day=True,
                    color_hint=(
                        self.colors.activity_done if activity.is_done else self.colors.activity_pending
                    ),
                )
            )
        return entries

    @staticmethod
    def deduplicate(occurrences: Iterable[Occurrence]) -> list[Occurrence]:
        """Drop occurrences whose key was already seen (first one wins)."""
        candidates = list(occurrences)
        seen: set[str] = set()
        unique: list[Occurrence] = []
        for occurrence in candidates:
            if occurrence.key in seen:
                continue
            seen.add(occurrence.key)
            unique.append(occurrence)

        if len(candidates) != len(unique):
            logger.debug("Removed %d duplicate occurrences", len(candidates) - len(unique))
        return unique


def _coerce(model: type, raw: Any) -> Any:
    """Return ``raw`` as ``model``, or None (logged) when it cannot be read."""
    if isinstance(raw, model):
        return raw
    if isinstance(raw, Mapping):
        try:
            return model.model_validate(dict(raw))
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid %s row %r: %d validation errors",
                model.__name__,
                raw.get("id"),
                exc.error_count(),
            )
            return None
    logger.warning("Skipping unsupported %s input of type %s", model.__name__, type(raw).__name__)
    return None


_default_engine = WindowExpansionEngine()


def expand(
    events: Iterable[EventInput],
    activities: Iterable[ActivityInput],
    window_start: Union[date, datetime],
    window_end: Union[date, datetime],
) -> list[Occurrence]:
    """Expand with the shared default engine (convenience function)."""
    return _default_engine.expand(events, activities, window_start, window_end)
