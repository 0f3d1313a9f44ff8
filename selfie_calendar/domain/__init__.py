"""Expansion domain: recurrence resolution, materialization and rendering."""

from .expansion_engine import WindowExpansionEngine, expand
from .occurrence_materializer import ColorScheme, OccurrenceMaterializer
from .recurrence_resolver import RecurrenceResolver
from .render_coordinator import CalendarRenderCoordinator, CalendarView, window_for

__all__ = [
    "CalendarRenderCoordinator",
    "CalendarView",
    "ColorScheme",
    "OccurrenceMaterializer",
    "RecurrenceResolver",
    "WindowExpansionEngine",
    "expand",
    "window_for",
]
