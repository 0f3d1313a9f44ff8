"""Clock sources for selfie_calendar, including the "time machine".

The expansion engine never reads a clock. Callers pick the visible window from
``ClockSource.now()``; swapping in a ``VirtualClock`` lets users (and tests)
look at the calendar as of another moment.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Optional

from dateutil import parser as date_parser

from ..exceptions import ClockError
from ..protocols import ClockSource

logger = logging.getLogger(__name__)

VIRTUAL_NOW_ENV = "SELFIE_VIRTUAL_NOW"
_STATE_KEY = "virtual_now"

ClockListener = Callable[[Optional[datetime]], None]


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp into a naive local wall-clock datetime.

    Offsets are dropped after conversion to local time.

    Raises:
        ClockError: If the value cannot be parsed
    """
    try:
        parsed = date_parser.isoparse(value.strip())
    except (ValueError, OverflowError, AttributeError) as exc:
        raise ClockError(f"Invalid timestamp {value!r}: {exc}") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


class SystemClock:
    """Real wall clock (naive local time)."""

    def now(self) -> datetime:
        return datetime.now()


class FixedClock:
    """Clock frozen at a given moment."""

    def __init__(self, moment: datetime):
        self.moment = moment

    def now(self) -> datetime:
        return self.moment


class VirtualClock:
    """Time machine: an optional virtual "now" layered over a base clock.

    When a virtual value is set, ``now()`` returns it; otherwise it delegates to
    the base clock. Every change notifies subscribers so views can re-render.
    The value can be persisted to a small JSON file (written atomically) and is
    restored on construction. ``SELFIE_VIRTUAL_NOW`` seeds the value when set.
    """

    def __init__(self, base: ClockSource | None = None, state_path: str | Path | None = None):
        """Create a VirtualClock.

        Args:
            base: Clock used when no virtual value is set (defaults to SystemClock)
            state_path: Optional JSON file used to persist the virtual value
        """
        self._base = base or SystemClock()
        self._path = Path(state_path) if state_path else None
        self._lock = threading.Lock()
        self._virtual_now: datetime | None = None
        self._listeners: list[ClockListener] = []

        self.load()

        env_value = os.environ.get(VIRTUAL_NOW_ENV)
        if env_value:
            try:
                self._virtual_now = parse_timestamp(env_value)
                logger.debug("Virtual clock seeded from %s=%s", VIRTUAL_NOW_ENV, env_value)
            except ClockError as exc:
                logger.warning("Ignoring %s: %s", VIRTUAL_NOW_ENV, exc)

    def now(self) -> datetime:
        """Return the virtual value if active, else the base clock's time."""
        virtual = self._virtual_now
        return virtual if virtual is not None else self._base.now()

    @property
    def virtual_now(self) -> datetime | None:
        """The active virtual value, or None when the real clock is used."""
        return self._virtual_now

    @property
    def is_active(self) -> bool:
        return self._virtual_now is not None

    def set_virtual_now(self, moment: datetime | str) -> datetime:
        """Travel to ``moment`` (a datetime or ISO string), persist it, notify subscribers."""
        if isinstance(moment, str):
            moment = parse_timestamp(moment)
        elif moment.tzinfo is not None:
            moment = moment.astimezone().replace(tzinfo=None)

        with self._lock:
            previous = self._virtual_now
            self._virtual_now = moment
            try:
                self._persist()
            except ClockError:
                self._virtual_now = previous
                raise

        logger.info("Virtual clock set to %s", moment.isoformat())
        self._notify(moment)
        return moment

    def reset(self) -> None:
        """Return to the real clock, clear persisted state, notify subscribers."""
        with self._lock:
            previous = self._virtual_now
            self._virtual_now = None
            try:
                self._persist()
            except ClockError:
                self._virtual_now = previous
                raise

        logger.info("Virtual clock reset to real time")
        self._notify(None)

    def subscribe(self, listener: ClockListener) -> Callable[[], None]:
        """Register ``listener(virtual_now)``; returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock, contextlib.suppress(ValueError):
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, value: datetime | None) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(value)
            except Exception:
                logger.exception("Virtual clock listener %r failed", listener)

    def load(self) -> None:
        """Restore the virtual value from the state file, if any."""
        if self._path is None or not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            stored = data.get(_STATE_KEY) if isinstance(data, dict) else None
            self._virtual_now = parse_timestamp(stored) if stored else None
        except (OSError, ValueError, ClockError) as exc:
            logger.warning("Failed to read virtual clock state %s: %s", self._path, exc)
            self._virtual_now = None
            return
        logger.debug("Loaded virtual clock state from %s: %s", self._path, self._virtual_now)

    def _persist(self) -> None:
        """Write the current value to the state file atomically. Called with lock held."""
        if self._path is None:
            return

        payload = {_STATE_KEY: self._virtual_now.isoformat() if self._virtual_now else None}
        tmp_path = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(payload, tf)
                tf.flush()
                with contextlib.suppress(OSError):
                    os.fsync(tf.fileno())
            tmp_path.replace(self._path)
        except OSError as exc:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            raise ClockError(f"Failed to persist virtual clock to {self._path}: {exc}") from exc
