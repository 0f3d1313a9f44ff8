"""Protocol definitions for the collaborators around the expansion engine.

The engine itself only consumes in-memory collections; these protocols describe
the stores the render coordinator fetches them from and the clock it reads.
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union

from .models import Activity, Event

RowId = Union[int, str]


class ClockSource(Protocol):
    """Source of the current wall-clock time."""

    def now(self) -> datetime.datetime:
        """Return the current naive local time."""
        ...


@dataclass(frozen=True)
class ActivityFilter:
    """Filters accepted by ``ActivityStore.list``.

    ``from_date`` and ``to_date`` are inclusive bounds on ``due_date``.
    """

    from_date: Optional[datetime.date] = None
    to_date: Optional[datetime.date] = None
    status: Optional[str] = None
    search: Optional[str] = None
    limit: int = 50
    offset: int = 0

    def to_params(self) -> dict[str, str]:
        """Render the filter as backend query parameters."""
        params: dict[str, str] = {"limit": str(self.limit), "offset": str(self.offset)}
        if self.from_date is not None:
            params["from"] = self.from_date.isoformat()
        if self.to_date is not None:
            params["to"] = self.to_date.isoformat()
        if self.status:
            params["status"] = self.status
        if self.search:
            params["search"] = self.search
        return params


class EventStore(Protocol):
    """Store owning the user's events."""

    async def list(self) -> list[Event]:
        """Return every event visible to the user (no date filtering)."""
        ...

    async def get(self, event_id: RowId) -> Optional[Event]:
        """Return one event or None when it does not exist."""
        ...

    async def create(self, payload: dict[str, Any]) -> Event:
        """Create an event from a store row and return it."""
        ...

    async def update(self, event_id: RowId, patch: dict[str, Any]) -> Event:
        """Apply a partial update and return the new event."""
        ...

    async def delete(self, event_id: RowId) -> None:
        """Delete an event."""
        ...


class ActivityStore(Protocol):
    """Store owning the user's activities."""

    async def list(self, filters: Optional[ActivityFilter] = None) -> list[Activity]:
        """Return activities, optionally filtered."""
        ...

    async def get(self, activity_id: RowId) -> Optional[Activity]:
        """Return one activity or None when it does not exist."""
        ...

    async def create(self, payload: dict[str, Any]) -> Activity:
        """Create an activity from a store row and return it."""
        ...

    async def update(self, activity_id: RowId, patch: dict[str, Any]) -> Activity:
        """Apply a partial update and return the new activity."""
        ...

    async def delete(self, activity_id: RowId) -> None:
        """Delete an activity."""
        ...
