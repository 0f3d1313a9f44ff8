"""REST event and activity stores backed by the hosted backend.

Both stores share a pooled ``httpx.AsyncClient`` from ``core.http_client``.
Events are listed as a bare JSON array; activities come wrapped in an
``{items, count, limit, offset}`` envelope.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from ..core.http_client import (
    build_timeout,
    get_shared_client,
    record_client_error,
    record_client_success,
)
from ..exceptions import StoreError, StoreNotFoundError, StoreUnavailableError
from ..models import Activity, Event
from ..protocols import ActivityFilter, RowId
from .memory_stores import normalize_time

logger = logging.getLogger(__name__)

EVENTS_PATH = "/api/events"
ACTIVITIES_PATH = "/api/activities"
STORE_CLIENT_ID = "stores"


def shared_client_id(timeout: Optional[float], headers: Optional[dict[str, str]]) -> str:
    """Return the pool id for stores built with these client options.

    The shared pool applies timeout and headers only when a client is created,
    so stores with different options must not share an id. Header values are
    hashed to keep credentials out of the logs.
    """
    if not timeout and not headers:
        return STORE_CLIENT_ID
    fingerprint = repr((timeout, sorted((headers or {}).items())))
    return f"{STORE_CLIENT_ID}:{hashlib.sha256(fingerprint.encode()).hexdigest()[:12]}"


class _RestResource:
    """Thin JSON-over-HTTP wrapper for one backend collection."""

    def __init__(
        self,
        base_url: str,
        path: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self.url = base_url.rstrip("/") + path
        self._client = client
        self._timeout = timeout
        self._headers = headers or {}
        self._client_id = shared_client_id(timeout, headers)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_shared_client(
            self._client_id, timeout=build_timeout(self._timeout), headers=self._headers
        )

    async def request(
        self,
        method: str,
        suffix: str = "",
        params: Optional[dict[str, str]] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty).

        Raises:
            StoreUnavailableError: On connection errors and timeouts
            StoreNotFoundError: On HTTP 404
            StoreError: On any other non-2xx status or an undecodable body
        """
        url = self.url + suffix
        client = await self._get_client()
        try:
            response = await client.request(method, url, params=params, json=payload)
        except httpx.HTTPError as exc:
            if self._client is None:
                await record_client_error(self._client_id)
            logger.warning("%s %s failed: %s", method, url, exc)
            raise StoreUnavailableError(f"{method} {url} failed: {exc}") from exc

        if self._client is None:
            await record_client_success(self._client_id)

        if response.status_code == 404:
            raise StoreNotFoundError(f"{method} {url}: not found", status_code=404)
        if response.is_error:
            logger.warning("%s %s returned HTTP %d", method, url, response.status_code)
            raise StoreError(
                f"{method} {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StoreError(f"{method} {url}: response is not JSON", status_code=response.status_code) from exc


def _validate_rows(model: type, rows: Any, source: str) -> list[Any]:
    """Validate a list of rows, dropping the invalid ones with a warning."""
    if not isinstance(rows, list):
        raise StoreError(f"{source}: expected a JSON array, got {type(rows).__name__}")

    items = []
    for row in rows:
        try:
            items.append(model.model_validate(row))
        except ValidationError as exc:
            row_id = row.get("id") if isinstance(row, dict) else None
            logger.warning(
                "Skipping invalid %s row %r from %s: %d validation errors",
                model.__name__,
                row_id,
                source,
                exc.error_count(),
            )
    return items


def _validate_one(model: type, row: Any, source: str) -> Any:
    try:
        return model.model_validate(row)
    except ValidationError as exc:
        raise StoreError(f"{source}: invalid {model.__name__} payload: {exc}") from exc


class HttpEventStore:
    """Event store talking to ``/api/events``."""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self._resource = _RestResource(base_url, EVENTS_PATH, client, timeout, headers)

    async def list(self) -> list[Event]:
        rows = await self._resource.request("GET")
        events = _validate_rows(Event, rows, self._resource.url)
        logger.debug("Fetched %d events", len(events))
        return events

    async def get(self, event_id: RowId) -> Optional[Event]:
        try:
            row = await self._resource.request("GET", f"/{event_id}")
        except StoreNotFoundError:
            return None
        return _validate_one(Event, row, self._resource.url)

    async def create(self, payload: dict[str, Any]) -> Event:
        row = await self._resource.request("POST", payload=_time_normalized(payload))
        return _validate_one(Event, row, self._resource.url)

    async def update(self, event_id: RowId, patch: dict[str, Any]) -> Event:
        row = await self._resource.request("PATCH", f"/{event_id}", payload=_time_normalized(patch))
        return _validate_one(Event, row, self._resource.url)

    async def delete(self, event_id: RowId) -> None:
        await self._resource.request("DELETE", f"/{event_id}")


def _time_normalized(payload: dict[str, Any]) -> dict[str, Any]:
    data = dict(payload)
    for key in ("start_time", "end_time"):
        if key in data:
            data[key] = normalize_time(data[key])
    return data


class HttpActivityStore:
    """Activity store talking to ``/api/activities``.

    ``list`` sends the filter as query parameters and unwraps the ``items``
    array of the response envelope.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        headers: Optional[dict[str, str]] = None,
    ):
        self._resource = _RestResource(base_url, ACTIVITIES_PATH, client, timeout, headers)

    async def list(self, filters: Optional[ActivityFilter] = None) -> list[Activity]:
        params = (filters or ActivityFilter()).to_params()
        body = await self._resource.request("GET", params=params)
        if not isinstance(body, dict) or "items" not in body:
            raise StoreError(f"{self._resource.url}: expected an object with 'items'")

        activities = _validate_rows(Activity, body["items"], self._resource.url)
        count = body.get("count")
        if isinstance(count, int) and count > len(body["items"]):
            logger.debug(
                "Activity list truncated: %d of %d (limit=%s offset=%s)",
                len(body["items"]),
                count,
                params["limit"],
                params["offset"],
            )
        return activities

    async def get(self, activity_id: RowId) -> Optional[Activity]:
        try:
            row = await self._resource.request("GET", f"/{activity_id}")
        except StoreNotFoundError:
            return None
        return _validate_one(Activity, row, self._resource.url)

    async def create(self, payload: dict[str, Any]) -> Activity:
        row = await self._resource.request("POST", payload=dict(payload))
        return _validate_one(Activity, row, self._resource.url)

    async def update(self, activity_id: RowId, patch: dict[str, Any]) -> Activity:
        row = await self._resource.request("PUT", f"/{activity_id}", payload=dict(patch))
        return _validate_one(Activity, row, self._resource.url)

    async def delete(self, activity_id: RowId) -> None:
        await self._resource.request("DELETE", f"/{activity_id}")
