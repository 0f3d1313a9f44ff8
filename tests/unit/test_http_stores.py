"""Unit tests for selfie_calendar.stores.http_stores using httpx.MockTransport."""

import json
from datetime import date

import httpx
import pytest

from selfie_calendar.exceptions import StoreError, StoreNotFoundError, StoreUnavailableError
from selfie_calendar.protocols import ActivityFilter
from selfie_calendar.stores.http_stores import (
    STORE_CLIENT_ID,
    HttpActivityStore,
    HttpEventStore,
    shared_client_id,
)

pytestmark = pytest.mark.unit

BASE_URL = "http://backend.test/"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestHttpEventStore:
    """Tests for HttpEventStore."""

    @pytest.mark.asyncio
    async def test_list_parses_rows_and_skips_invalid(self, sample_event_rows, caplog):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=sample_event_rows + [{"title": "no id"}])

        async with _client(handler) as client:
            events = await HttpEventStore(BASE_URL, client=client).list()

        assert [e.id for e in events] == [1, 2, 3, 4]
        assert str(seen[0].url) == "http://backend.test/api/events"
        assert "Skipping invalid Event row" in caplog.text

    @pytest.mark.asyncio
    async def test_list_rejects_non_array(self):
        async with _client(lambda request: httpx.Response(200, json={"items": []})) as client:
            with pytest.raises(StoreError):
                await HttpEventStore(BASE_URL, client=client).list()

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self):
        async with _client(lambda request: httpx.Response(404, json={"error": "not found"})) as client:
            assert await HttpEventStore(BASE_URL, client=client).get(42) is None

    @pytest.mark.asyncio
    async def test_create_sends_normalized_payload(self):
        captured = {}

        def handler(request):
            captured["method"] = request.method
            captured["body"] = json.loads(request.content)
            return httpx.Response(201, json={"id": 9, **captured["body"]})

        async with _client(handler) as client:
            event = await HttpEventStore(BASE_URL, client=client).create(
                {"title": "Lab", "start_date": "2025-06-03", "start_time": "10:00"}
            )

        assert captured["method"] == "POST"
        assert captured["body"]["start_time"] == "10:00:00"
        assert event.id == 9

    @pytest.mark.asyncio
    async def test_update_uses_patch_and_delete(self):
        calls = []

        def handler(request):
            calls.append((request.method, request.url.path))
            if request.method == "DELETE":
                return httpx.Response(204)
            return httpx.Response(200, json={"id": 3, "title": "Renamed"})

        async with _client(handler) as client:
            store = HttpEventStore(BASE_URL, client=client)
            updated = await store.update(3, {"title": "Renamed"})
            await store.delete(3)

        assert updated.title == "Renamed"
        assert calls == [("PATCH", "/api/events/3"), ("DELETE", "/api/events/3")]

    @pytest.mark.asyncio
    async def test_server_error_raises_store_error(self):
        async with _client(lambda request: httpx.Response(500)) as client:
            with pytest.raises(StoreError) as exc_info:
                await HttpEventStore(BASE_URL, client=client).list()
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_delete_missing_raises_not_found(self):
        async with _client(lambda request: httpx.Response(404)) as client:
            with pytest.raises(StoreNotFoundError):
                await HttpEventStore(BASE_URL, client=client).delete(3)

    @pytest.mark.asyncio
    async def test_connection_error_raises_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(StoreUnavailableError):
                await HttpEventStore(BASE_URL, client=client).list()

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        async with _client(lambda request: httpx.Response(200, text="<html>")) as client:
            with pytest.raises(StoreError):
                await HttpEventStore(BASE_URL, client=client).list()


class TestHttpActivityStore:
    """Tests for HttpActivityStore."""

    @pytest.mark.asyncio
    async def test_list_sends_filters_and_unwraps_items(self, sample_activity_rows):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200,
                json={"items": sample_activity_rows, "count": 3, "limit": 50, "offset": 0},
            )

        filters = ActivityFilter(from_date=date(2025, 6, 1), to_date=date(2025, 6, 30), status="pending")
        async with _client(handler) as client:
            activities = await HttpActivityStore(BASE_URL, client=client).list(filters)

        assert [a.id for a in activities] == [10, 11, 12]
        params = dict(seen[0].url.params)
        assert params == {
            "from": "2025-06-01",
            "to": "2025-06-30",
            "status": "pending",
            "limit": "50",
            "offset": "0",
        }

    @pytest.mark.asyncio
    async def test_list_without_envelope_fails(self, sample_activity_rows):
        async with _client(lambda request: httpx.Response(200, json=sample_activity_rows)) as client:
            with pytest.raises(StoreError):
                await HttpActivityStore(BASE_URL, client=client).list()

    @pytest.mark.asyncio
    async def test_update_uses_put(self):
        calls = []

        def handler(request):
            calls.append(request.method)
            return httpx.Response(200, json={"id": 1, "status": "done"})

        async with _client(handler) as client:
            activity = await HttpActivityStore(BASE_URL, client=client).update(1, {"status": "done"})

        assert calls == ["PUT"]
        assert activity.is_done is True

    @pytest.mark.asyncio
    async def test_get(self):
        async with _client(lambda request: httpx.Response(200, json={"id": 5, "title": "Quiz"})) as client:
            activity = await HttpActivityStore(BASE_URL, client=client).get(5)
        assert activity.title == "Quiz"


class TestSharedClientUsage:
    """Stores without an injected client use the shared pooled client."""

    @pytest.mark.asyncio
    async def test_shared_client_is_used(self, monkeypatch, sample_event_rows):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=sample_event_rows))
        shared = httpx.AsyncClient(transport=transport)

        async def fake_get_shared_client(client_id, **kwargs):
            assert client_id == shared_client_id(5, None)
            return shared

        monkeypatch.setattr(
            "selfie_calendar.stores.http_stores.get_shared_client", fake_get_shared_client
        )

        events = await HttpEventStore(BASE_URL, timeout=5).list()

        assert len(events) == 4
        await shared.aclose()

    def test_default_options_use_base_client_id(self):
        assert shared_client_id(None, None) == STORE_CLIENT_ID

    def test_different_headers_get_different_clients(self):
        first = shared_client_id(30.0, {"Authorization": "Bearer a"})
        second = shared_client_id(30.0, {"Authorization": "Bearer b"})

        assert first != second
        assert first == shared_client_id(30.0, {"Authorization": "Bearer a"})
        assert "Bearer" not in first

    def test_different_timeouts_get_different_clients(self):
        assert shared_client_id(5, None) != shared_client_id(30, None)

    @pytest.mark.asyncio
    async def test_stores_with_different_headers_do_not_share_a_client(self, monkeypatch):
        requested = []

        async def fake_get_shared_client(client_id, **kwargs):
            requested.append((client_id, kwargs["headers"]))
            return httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])))

        monkeypatch.setattr(
            "selfie_calendar.stores.http_stores.get_shared_client", fake_get_shared_client
        )

        await HttpEventStore(BASE_URL, headers={"Authorization": "Bearer a"}).list()
        await HttpEventStore(BASE_URL, headers={"Authorization": "Bearer b"}).list()

        assert requested[0][0] != requested[1][0]
        assert requested[1][1] == {"Authorization": "Bearer b"}
