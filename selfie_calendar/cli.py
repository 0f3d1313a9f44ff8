"""Command implementation behind ``python -m selfie_calendar``.

Loads configuration, builds the stores and the clock, renders one calendar
window through the render coordinator and prints it as text or JSON.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import date, datetime, time
from typing import Any, Optional, TextIO

from .core.clock import FixedClock, VirtualClock
from .core.config_manager import Config, ConfigManager
from .core.http_client import close_all_clients
from .domain.expansion_engine import WindowExpansionEngine
from .domain.occurrence_materializer import ColorScheme
from .domain.render_coordinator import CalendarRenderCoordinator
from .exceptions import ConfigError, StoreError
from .logging_config import configure_logging
from .models import Occurrence, Window
from .protocols import ActivityStore, ClockSource, EventStore
from .stores.http_stores import HttpActivityStore, HttpEventStore
from .stores.memory_stores import InMemoryActivityStore, InMemoryEventStore, load_snapshot

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LOAD_ERROR = 2


def _build_stores(args: Any, cfg: Config) -> tuple[EventStore, ActivityStore]:
    """Pick the data source: a local snapshot file or the REST backend.

    Raises:
        ConfigError: If neither a snapshot nor an API URL is available
        StoreError: If the snapshot cannot be read
    """
    data_path = getattr(args, "data", None)
    if data_path:
        events, activities = load_snapshot(data_path)
        return InMemoryEventStore(events), InMemoryActivityStore(activities)

    api_url = getattr(args, "api_url", None) or cfg.api_base_url
    if api_url:
        logger.info("Using REST backend at %s", api_url)
        return (
            HttpEventStore(api_url, timeout=cfg.request_timeout),
            HttpActivityStore(api_url, timeout=cfg.request_timeout),
        )

    raise ConfigError("No data source: pass --data FILE or --api-url URL (or set api_base_url)")


def _build_clock(args: Any, cfg: Config) -> ClockSource:
    anchor: Optional[date] = getattr(args, "at", None)
    if anchor is not None:
        return FixedClock(datetime.combine(anchor, time()))
    return VirtualClock(state_path=cfg.virtual_clock_path)


def _explicit_window(args: Any) -> Optional[Window]:
    start = getattr(args, "from_date", None)
    end = getattr(args, "to_date", None)
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise ConfigError("--from and --to must be given together")
    return Window(start=start, end=end)


def format_occurrence(occurrence: Occurrence) -> str:
    """Render one occurrence as a single text line."""
    day = occurrence.start.date().isoformat()
    if occurrence.all_day:
        when = f"{day} all-day    "
    elif occurrence.end is not None and occurrence.end.date() == occurrence.start.date():
        when = f"{day} {occurrence.start:%H:%M}-{occurrence.end:%H:%M}"
    elif occurrence.end is not None:
        when = f"{day} {occurrence.start:%H:%M}-{occurrence.end:%Y-%m-%d %H:%M}"
    else:
        when = f"{day} {occurrence.start:%H:%M}      "

    line = f"{when}  [{occurrence.kind.value}] {occurrence.title or '(untitled)'}"
    if occurrence.place:
        line += f" @ {occurrence.place}"
    return line


def write_output(
    window: Window, occurrences: list[Occurrence], as_json: bool, stream: TextIO
) -> None:
    if as_json:
        payload = {
            "window": {"start": window.start.isoformat(), "end": window.end.isoformat()},
            "count": len(occurrences),
            "occurrences": [o.model_dump(mode="json") for o in occurrences],
        }
        stream.write(json.dumps(payload, indent=2) + "\n")
        return

    stream.write(f"Calendar {window.start.isoformat()} .. {window.end.isoformat()} (end exclusive)\n")
    if not occurrences:
        stream.write("No entries.\n")
    for occurrence in occurrences:
        stream.write(format_occurrence(occurrence) + "\n")


async def _render(coordinator: CalendarRenderCoordinator, window: Optional[Window]) -> list[Occurrence]:
    try:
        return await coordinator.render(window)
    finally:
        await close_all_clients()


def run(args: Any, stream: Optional[TextIO] = None) -> int:
    """Execute the CLI for parsed ``args`` and return the exit code."""
    stream = stream or sys.stdout
    debug = bool(getattr(args, "debug", False))

    try:
        cfg = ConfigManager().load_full_config(getattr(args, "config", None))
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_LOAD_ERROR

    configure_logging(debug_mode=debug or cfg.log_level == "DEBUG")
    if not debug and cfg.log_level in ("WARNING", "ERROR"):
        logging.getLogger().setLevel(cfg.log_level)

    try:
        event_store, activity_store = _build_stores(args, cfg)
        window = _explicit_window(args)
    except (ConfigError, StoreError) as exc:
        logger.error("Unable to load calendar data: %s", exc)
        return EXIT_LOAD_ERROR

    engine = WindowExpansionEngine(
        colors=ColorScheme(
            event=cfg.event_color,
            activity_done=cfg.activity_done_color,
            activity_pending=cfg.activity_pending_color,
        )
    )
    coordinator = CalendarRenderCoordinator(
        event_store,
        activity_store,
        _build_clock(args, cfg),
        engine=engine,
        view=getattr(args, "view", None) or cfg.default_view,
    )

    window = window or coordinator.current_window()
    occurrences = asyncio.run(_render(coordinator, window))
    if coordinator.last_error is not None:
        return EXIT_LOAD_ERROR
    write_output(window, occurrences, bool(getattr(args, "json", False)), stream)
    return EXIT_OK
