"""Render coordination between the stores, the clock and the expansion engine.

The coordinator owns the calendar view state (view kind and anchor date),
fetches the raw collections for the visible window and hands them to the
expansion engine in a single call.
"""

from __future__ import annotations

import asyncio
import calendar
import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Optional, Union

from ..calendar.date_utils import week_start
from ..exceptions import StoreError
from ..models import Occurrence, Window, as_date
from ..protocols import ActivityFilter, ActivityStore, ClockSource, EventStore
from .expansion_engine import WindowExpansionEngine

logger = logging.getLogger(__name__)

RenderCallback = Callable[[Window, list[Occurrence]], None]

# Upper bound of activities fetched for one window
ACTIVITY_FETCH_LIMIT = 1000


class CalendarView(str, Enum):
    """Calendar view kinds, each with its own window size."""

    MONTH = "month"
    WEEK = "week"
    DAY = "day"


def window_for(view: Union[CalendarView, str], anchor: Union[date, datetime]) -> Window:
    """Return the window visible in ``view`` around ``anchor``.

    Month windows run from the first of the month to the first of the next one,
    week windows are Sunday-aligned and day windows cover the anchor only.
    """
    view = CalendarView(view)
    day = as_date(anchor)
    if view is CalendarView.MONTH:
        start = day.replace(day=1)
        days_in_month = calendar.monthrange(start.year, start.month)[1]
        return Window(start=start, end=start + timedelta(days=days_in_month))
    if view is CalendarView.WEEK:
        start = week_start(day)
        return Window(start=start, end=start + timedelta(days=7))
    return Window(start=day, end=day + timedelta(days=1))


def _step(view: CalendarView, anchor: date, direction: int) -> date:
    if view is CalendarView.MONTH:
        month_index = anchor.year * 12 + anchor.month - 1 + direction
        return date(month_index // 12, month_index % 12 + 1, 1)
    if view is CalendarView.WEEK:
        return anchor + timedelta(days=7 * direction)
    return anchor + timedelta(days=direction)


class CalendarRenderCoordinator:
    """Keeps one calendar view rendered from the event and activity stores.

    ``render`` never raises store errors: on failure it keeps the previous
    occurrences when they belong to the same window and returns an empty list
    otherwise. The failure is kept in ``last_error`` until the next successful
    render.
    """

    def __init__(
        self,
        event_store: EventStore,
        activity_store: ActivityStore,
        clock: ClockSource,
        engine: Optional[WindowExpansionEngine] = None,
        view: Union[CalendarView, str] = CalendarView.MONTH,
        on_render: Optional[RenderCallback] = None,
    ):
        """Initialize the coordinator.

        Args:
            event_store: Source of events
            activity_store: Source of activities
            clock: Clock used to anchor the view (a VirtualClock enables the time machine)
            engine: Expansion engine (a default one is created if omitted)
            view: Initial calendar view
            on_render: Optional callback receiving each rendered window and its occurrences
        """
        self.event_store = event_store
        self.activity_store = activity_store
        self.clock = clock
        self.engine = engine or WindowExpansionEngine()
        self.view = CalendarView(view)
        self.on_render = on_render

        self._anchor: Optional[date] = None
        self._stale = True
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.last_window: Optional[Window] = None
        self.last_render: list[Occurrence] = []
        self.last_error: Optional[StoreError] = None

    @property
    def anchor(self) -> date:
        """Date the view is centred on; follows the clock until navigated."""
        if self._anchor is None:
            return self.clock.now().date()
        return self._anchor

    @property
    def is_stale(self) -> bool:
        return self._stale

    def current_window(self) -> Window:
        return window_for(self.view, self.anchor)

    async def render(self, window: Optional[Window] = None) -> list[Occurrence]:
        """Fetch both collections and expand them for ``window`` (default: current window).

        Returns:
            Occurrences sorted by start for display
        """
        window = window or self.current_window()
        activity_filter = ActivityFilter(
            from_date=window.start,
            to_date=window.end - timedelta(days=1),
            limit=ACTIVITY_FETCH_LIMIT,
        )

        try:
            events, activities = await asyncio.gather(
                self.event_store.list(),
                self.activity_store.list(activity_filter),
            )
        except StoreError as exc:
            logger.error("Failed to load calendar data for [%s, %s): %s", window.start, window.end, exc)
            self.last_error = exc
            if self.last_window != window:
                self.last_window = window
                self.last_render = []
            self._stale = False
            return list(self.last_render)

        occurrences = self.engine.expand(events, activities, window.start, window.end)
        occurrences.sort(key=lambda o: o.start)

        self.last_window = window
        self.last_render = occurrences
        self.last_error = None
        self._stale = False
        logger.debug(
            "Rendered %s view [%s, %s): %d occurrences",
            self.view.value,
            window.start,
            window.end,
            len(occurrences),
        )

        if self.on_render is not None:
            try:
                self.on_render(window, list(occurrences))
            except Exception:
                logger.exception("Render callback failed")
        return list(occurrences)

    async def render_if_stale(self) -> Optional[list[Occurrence]]:
        """Re-render only when navigation or a clock change invalidated the view."""
        if not self._stale:
            return None
        return await self.render()

    def next(self) -> Window:
        return self._move(1)

    def previous(self) -> Window:
        return self._move(-1)

    def today(self) -> Window:
        """Jump back to the clock's current date."""
        self._anchor = None
        self._stale = True
        return self.current_window()

    def set_view(self, view: Union[CalendarView, str]) -> Window:
        self.view = CalendarView(view)
        self._stale = True
        return self.current_window()

    def _move(self, direction: int) -> Window:
        self._anchor = _step(self.view, self.anchor, direction)
        self._stale = True
        return self.current_window()

    def attach_clock(self) -> None:
        """Follow changes of a VirtualClock: re-anchor on "now" and mark the view stale."""
        subscribe = getattr(self.clock, "subscribe", None)
        if subscribe is None:
            logger.debug("Clock %r does not publish changes; nothing to attach", self.clock)
            return
        if self._unsubscribe is None:
            self._unsubscribe = subscribe(self._on_clock_change)

    def detach_clock(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_clock_change(self, virtual_now: Any) -> None:
        self._anchor = None
        self._stale = True
        logger.info("Clock changed (%s); calendar re-anchored to %s", virtual_now, self.anchor)
