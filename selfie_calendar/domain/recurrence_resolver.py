"""Recurrence resolution for selfie_calendar.

Projects an event's recurrence rule onto a display window and yields the
occurrence dates that fall inside it. Only dates are produced here; turning a
date into a renderable entry is the materializer's job.
"""

import logging
from collections.abc import Iterator
from datetime import date, datetime, timedelta
from typing import Optional, Union

from ..calendar.date_utils import parse_date_only, parse_weekdays, week_start, weekday_of
from ..models import Event, RecurrenceType, as_date

logger = logging.getLogger(__name__)

_ONE_WEEK = timedelta(days=7)


class RecurrenceResolver:
    """Resolves the dates of an event that intersect a window.

    Window bounds are inclusive at the start and exclusive at the end. The only
    exception is a non-recurring multi-day event that is already in progress
    when the window opens: it is reported on its (earlier) start date.

    The resolver is stateless and never raises on bad event data: an event whose
    dates cannot be parsed resolves to no dates at all.
    """

    def resolve(
        self,
        event: Event,
        window_start: Union[date, datetime],
        window_end: Union[date, datetime],
    ) -> list[date]:
        """Return the ordered occurrence dates of ``event`` inside the window.

        Args:
            event: Event to expand
            window_start: First visible day (inclusive)
            window_end: First day after the window (exclusive)

        Returns:
            Occurrence dates; empty when nothing intersects or the event is malformed
        """
        return list(self.iter_dates(event, window_start, window_end))

    def iter_dates(
        self,
        event: Event,
        window_start: Union[date, datetime],
        window_end: Union[date, datetime],
    ) -> Iterator[date]:
        """Lazily yield the occurrence dates of ``event`` inside the window."""
        win_start = as_date(window_start)
        win_end = as_date(window_end)
        if win_end <= win_start:
            return

        start_date = parse_date_only(event.start_date)
        if start_date is None:
            logger.warning(
                "Skipping event %s: unparsable start date %r", event.id, event.start_date
            )
            return

        if not event.is_recurring:
            end_date: Optional[date] = None
            if event.end_date is not None:
                end_date = parse_date_only(event.end_date)
                if end_date is None:
                    logger.warning(
                        "Skipping event %s: unparsable end date %r", event.id, event.end_date
                    )
                    return
            yield from self._single(start_date, end_date, win_start, win_end)
            return

        hard_end: Optional[date] = None
        if event.recurrence_type is RecurrenceType.DEADLINE and event.series_deadline is not None:
            hard_end = parse_date_only(event.series_deadline)
            if hard_end is None:
                logger.warning(
                    "Skipping event %s: unparsable series deadline %r",
                    event.id,
                    event.series_deadline,
                )
                return

        yield from self._sweep(event, start_date, hard_end, win_start, win_end)

    def _single(
        self,
        start_date: date,
        end_date: Optional[date],
        win_start: date,
        win_end: date,
    ) -> Iterator[date]:
        # The end is compared against the window start and the start against the
        # window end, so an event that began before the window is still shown.
        event_end = end_date if end_date is not None else start_date
        if event_end >= win_start and start_date < win_end:
            yield start_date

    def _sweep(
        self,
        event: Event,
        start_date: date,
        hard_end: Optional[date],
        win_start: date,
        win_end: date,
    ) -> Iterator[date]:
        active_days = parse_weekdays(event.days_of_week)
        if not active_days:
            active_days = [weekday_of(start_date)]

        remaining = self._occurrence_budget(event)

        if remaining is None:
            series_start = max(start_date, win_start)
        else:
            # A counted series consumes its budget from the very first date, so
            # the sweep starts there even when the window opens later.
            series_start = start_date

        cursor = week_start(series_start)
        emitted = 0
        while cursor < win_end and (hard_end is None or cursor <= hard_end):
            # Days are taken in declaration order, which decides what a limited
            # budget spends; each week's dates are yielded chronologically.
            accepted: list[date] = []
            exhausted = False
            for index in active_days:
                candidate = cursor + timedelta(days=index)
                if candidate < series_start:
                    continue
                if hard_end is not None and candidate > hard_end:
                    continue
                if candidate >= win_end:
                    continue

                accepted.append(candidate)
                if remaining is not None:
                    remaining -= 1
                    if remaining <= 0:
                        exhausted = True
                        break

            for candidate in sorted(accepted):
                if candidate >= win_start:
                    emitted += 1
                    yield candidate
            if exhausted:
                logger.debug(
                    "Event %s reached its occurrence limit of %d",
                    event.id,
                    event.occurrence_limit,
                )
                return
            cursor += _ONE_WEEK

        logger.debug(
            "Event %s (%s) resolved %d dates in [%s, %s)",
            event.id,
            event.recurrence_type.value,
            emitted,
            win_start,
            win_end,
        )

    @staticmethod
    def _occurrence_budget(event: Event) -> Optional[int]:
        """Return the series length for fixedCount events, None when unbounded."""
        if event.recurrence_type is not RecurrenceType.FIXED_COUNT:
            return None
        limit = event.occurrence_limit
        if limit is None or limit <= 0:
            logger.debug(
                "Event %s is fixedCount without a usable limit (%r); bounding by window only",
                event.id,
                limit,
            )
            return None
        return limit


_default_resolver = RecurrenceResolver()


def resolve(
    event: Event,
    window_start: Union[date, datetime],
    window_end: Union[date, datetime],
) -> list[date]:
    """Resolve with the shared stateless resolver (convenience function)."""
    return _default_resolver.resolve(event, window_start, window_end)
