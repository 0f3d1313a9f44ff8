"""In-memory event and activity stores plus snapshot loading.

Used by the CLI (``--data`` snapshots) and by tests. They honour the same
contract as the HTTP stores, including the activity list filters of the
backend.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from ..calendar.date_utils import parse_date_only
from ..exceptions import StoreError, StoreNotFoundError
from ..models import Activity, Event
from ..protocols import ActivityFilter, RowId

logger = logging.getLogger(__name__)


def normalize_time(value: Optional[str]) -> Optional[str]:
    """Normalize ``HH:MM`` to ``HH:MM:SS`` as the backend stores it."""
    if not value:
        return None
    text = str(value).strip()
    if len(text.split(":")) == 2:
        return f"{text}:00"
    return text


class _MemoryTable:
    """Id-keyed rows guarded by an asyncio lock."""

    def __init__(self, model: type, rows: Iterable[Union[Mapping[str, Any], Any]] = ()):
        self._model = model
        self._rows: dict[str, Any] = {}
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)

        for row in rows:
            if isinstance(row, model):
                item = row
            else:
                try:
                    item = model.model_validate(dict(row))
                except ValidationError as exc:
                    logger.warning(
                        "Dropping invalid %s row %r: %d validation errors",
                        model.__name__,
                        dict(row).get("id"),
                        exc.error_count(),
                    )
                    continue
            self._rows[str(item.id)] = item

        numeric = [int(k) for k in self._rows if k.isdigit()]
        if numeric:
            self._ids = itertools.count(max(numeric) + 1)

    def all(self) -> list[Any]:
        return list(self._rows.values())

    def find(self, row_id: RowId) -> Optional[Any]:
        return self._rows.get(str(row_id))

    async def insert(self, payload: Mapping[str, Any]) -> Any:
        async with self._lock:
            data = dict(payload)
            if data.get("id") is None:
                data["id"] = next(self._ids)
            item = self._validate(data)
            if str(item.id) in self._rows:
                raise StoreError(f"{self._model.__name__} {item.id} already exists", status_code=409)
            self._rows[str(item.id)] = item
            return item

    async def patch(self, row_id: RowId, changes: Mapping[str, Any]) -> Any:
        async with self._lock:
            current = self._rows.get(str(row_id))
            if current is None:
                raise StoreNotFoundError(f"{self._model.__name__} {row_id} not found", status_code=404)
            data = current.model_dump()
            data.update({k: v for k, v in changes.items() if k != "id"})
            item = self._validate(data)
            self._rows[str(row_id)] = item
            return item

    async def remove(self, row_id: RowId) -> None:
        async with self._lock:
            if self._rows.pop(str(row_id), None) is None:
                raise StoreNotFoundError(f"{self._model.__name__} {row_id} not found", status_code=404)

    def _validate(self, data: dict[str, Any]) -> Any:
        try:
            return self._model.model_validate(data)
        except ValidationError as exc:
            raise StoreError(f"Invalid {self._model.__name__} payload: {exc}", status_code=400) from exc


def _event_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    data = dict(payload)
    for key in ("start_time", "end_time"):
        if key in data:
            data[key] = normalize_time(data[key])
    return data


class InMemoryEventStore:
    """Event store kept in process memory."""

    def __init__(self, events: Iterable[Union[Event, Mapping[str, Any]]] = ()):
        self._table = _MemoryTable(Event, events)

    async def list(self) -> list[Event]:
        return self._table.all()

    async def get(self, event_id: RowId) -> Optional[Event]:
        return self._table.find(event_id)

    async def create(self, payload: dict[str, Any]) -> Event:
        event = await self._table.insert(_event_payload(payload))
        logger.debug("Created event %s", event.id)
        return event

    async def update(self, event_id: RowId, patch: dict[str, Any]) -> Event:
        return await self._table.patch(event_id, _event_payload(patch))

    async def delete(self, event_id: RowId) -> None:
        await self._table.remove(event_id)


class InMemoryActivityStore:
    """Activity store kept in process memory.

    ``list`` applies the backend's filters: inclusive ``from``/``to`` bounds on
    the due date, exact status, case-insensitive title search, then
    ``limit``/``offset`` over rows ordered by due date and id.
    """

    def __init__(self, activities: Iterable[Union[Activity, Mapping[str, Any]]] = ()):
        self._table = _MemoryTable(Activity, activities)

    async def list(self, filters: Optional[ActivityFilter] = None) -> list[Activity]:
        rows = self._table.all()
        if filters is None:
            return rows

        selected = []
        for activity in rows:
            due = parse_date_only(activity.due_date)
            if filters.from_date is not None and (due is None or due < filters.from_date):
                continue
            if filters.to_date is not None and (due is None or due > filters.to_date):
                continue
            if filters.status and activity.status != filters.status:
                continue
            if filters.search and filters.search.lower() not in activity.title.lower():
                continue
            selected.append(activity)

        selected.sort(key=lambda a: (a.due_date or "", str(a.id)))
        return selected[filters.offset : filters.offset + filters.limit]

    async def get(self, activity_id: RowId) -> Optional[Activity]:
        return self._table.find(activity_id)

    async def create(self, payload: dict[str, Any]) -> Activity:
        activity = await self._table.insert(payload)
        logger.debug("Created activity %s", activity.id)
        return activity

    async def update(self, activity_id: RowId, patch: dict[str, Any]) -> Activity:
        return await self._table.patch(activity_id, patch)

    async def delete(self, activity_id: RowId) -> None:
        await self._table.remove(activity_id)


def load_snapshot(path: Union[str, Path]) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Read ``events`` and ``activities`` rows from a JSON or YAML snapshot file.

    Rows are returned raw so that malformed entries reach the engine, which skips
    them individually.

    Raises:
        StoreError: If the file cannot be read or is not a mapping of lists
    """
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
        data = json.loads(text) if p.suffix.lower() == ".json" else yaml.safe_load(text)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise StoreError(f"Unable to read snapshot {p}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise StoreError(f"Snapshot {p} must contain a mapping with 'events' and 'activities'")

    events = data.get("events") or []
    activities = data.get("activities") or []
    if not isinstance(events, list) or not isinstance(activities, list):
        raise StoreError(f"Snapshot {p}: 'events' and 'activities' must be lists")

    logger.info("Loaded snapshot %s: %d events, %d activities", p, len(events), len(activities))
    return [dict(e) for e in events if isinstance(e, Mapping)], [
        dict(a) for a in activities if isinstance(a, Mapping)
    ]
