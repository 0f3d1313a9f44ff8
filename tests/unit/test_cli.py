"""Unit tests for the selfie_calendar command line."""

from __future__ import annotations

import io
import json
import logging
from datetime import date, datetime

import httpx
import pytest

from selfie_calendar.__main__ import _create_parser, main
from selfie_calendar.cli import EXIT_LOAD_ERROR, EXIT_OK, _build_stores, format_occurrence, run
from selfie_calendar.core.config_manager import Config
from selfie_calendar.logging_config import NOISY_LOGGERS, PACKAGE_LOGGER
from selfie_calendar.models import Occurrence, OccurrenceKind
from selfie_calendar.stores.http_stores import HttpActivityStore, HttpEventStore

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every CLI test from an empty directory (no config or .env picked up)."""
    monkeypatch.chdir(tmp_path)
    names = ["", PACKAGE_LOGGER, *NOISY_LOGGERS]
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


@pytest.fixture
def snapshot(tmp_path, sample_event_rows, sample_activity_rows):
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps({"events": sample_event_rows, "activities": sample_activity_rows}))
    return path


def _run(argv):
    out = io.StringIO()
    code = run(_create_parser().parse_args(argv), stream=out)
    return code, out.getvalue()


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = _create_parser().parse_args([])

        assert args.data is None
        assert args.api_url is None
        assert args.view is None
        assert args.json is False

    def test_dates_are_parsed(self):
        args = _create_parser().parse_args(["--at", "2025-06-11", "--from", "2025-06-01", "--to", "2025-06-08"])

        assert args.at == date(2025, 6, 11)
        assert args.from_date == date(2025, 6, 1)
        assert args.to_date == date(2025, 6, 8)

    def test_invalid_date_is_rejected(self):
        with pytest.raises(SystemExit):
            _create_parser().parse_args(["--at", "next tuesday"])

    def test_data_and_api_url_are_exclusive(self):
        with pytest.raises(SystemExit):
            _create_parser().parse_args(["--data", "a.json", "--api-url", "http://x"])


class TestRun:
    """Tests for the CLI command."""

    def test_month_view_text_output(self, snapshot):
        code, output = _run(["--data", str(snapshot), "--at", "2025-06-11"])

        assert code == EXIT_OK
        lines = output.splitlines()
        assert lines[0].startswith("Calendar 2025-06-01 .. 2025-07-01")
        assert len(lines) == 19
        assert any("[activity] Hand in report" in line for line in lines)
        assert any("09:00-11:00  [event] Algorithms lecture @ Room B1" in line for line in lines)

    def test_json_output(self, snapshot):
        code, output = _run(["--data", str(snapshot), "--at", "2025-06-11", "--view", "week", "--json"])

        payload = json.loads(output)
        assert code == EXIT_OK
        assert payload["window"] == {"start": "2025-06-08", "end": "2025-06-15"}
        assert payload["count"] == len(payload["occurrences"])
        assert {o["key"] for o in payload["occurrences"]} >= {"A:11", "E:1:2025-06-09T09:00:00"}

    def test_explicit_window(self, snapshot):
        code, output = _run(["--data", str(snapshot), "--from", "2025-06-18", "--to", "2025-06-19", "--json"])

        payload = json.loads(output)
        assert code == EXIT_OK
        assert sorted(o["source_id"] for o in payload["occurrences"]) == [1, 2]

    def test_virtual_now_anchors_the_view(self, snapshot, monkeypatch):
        monkeypatch.setenv("SELFIE_VIRTUAL_NOW", "2025-06-20T08:00:00")

        code, output = _run(["--data", str(snapshot), "--view", "day", "--json"])

        payload = json.loads(output)
        assert code == EXIT_OK
        assert payload["window"] == {"start": "2025-06-20", "end": "2025-06-21"}
        assert [o["source_id"] for o in payload["occurrences"]] == [4]

    def test_empty_window_prints_placeholder(self, snapshot):
        code, output = _run(["--data", str(snapshot), "--from", "2025-08-01", "--to", "2025-08-02"])

        assert code == EXIT_OK
        assert "No entries." in output

    def test_from_without_to(self, snapshot):
        code, _ = _run(["--data", str(snapshot), "--from", "2025-06-01"])
        assert code == EXIT_LOAD_ERROR

    def test_no_data_source(self):
        code, _ = _run([])
        assert code == EXIT_LOAD_ERROR

    def test_missing_snapshot(self, tmp_path):
        code, _ = _run(["--data", str(tmp_path / "missing.json")])
        assert code == EXIT_LOAD_ERROR

    def test_missing_config_file(self, snapshot, tmp_path):
        code, _ = _run(["--data", str(snapshot), "--config", str(tmp_path / "nope.yaml")])
        assert code == EXIT_LOAD_ERROR

    def test_unreachable_backend_is_a_load_error(self, monkeypatch):
        def refuse(request):
            raise httpx.ConnectError("All connection attempts failed", request=request)

        async def unreachable_client(client_id, **kwargs):
            return httpx.AsyncClient(transport=httpx.MockTransport(refuse))

        monkeypatch.setattr("selfie_calendar.stores.http_stores.get_shared_client", unreachable_client)

        code, output = _run(["--api-url", "http://backend.test", "--at", "2025-06-11"])

        assert code == EXIT_LOAD_ERROR
        assert output == ""

    def test_colors_from_config(self, snapshot, tmp_path):
        config = tmp_path / "selfie.yaml"
        config.write_text("event_color: '#111111'\n")

        code, output = _run(["--data", str(snapshot), "--at", "2025-06-11", "--config", str(config), "--json"])

        payload = json.loads(output)
        assert code == EXIT_OK
        assert {o["color_hint"] for o in payload["occurrences"] if o["kind"] == "event"} == {"#111111"}


class TestBuildStores:
    """Tests for data source selection."""

    def test_api_url_from_config(self):
        args = _create_parser().parse_args([])

        event_store, activity_store = _build_stores(args, Config(api_base_url="http://api.test"))

        assert isinstance(event_store, HttpEventStore)
        assert isinstance(activity_store, HttpActivityStore)


class TestMain:
    """Tests for the console entry point."""

    def test_main_exits_with_run_code(self, snapshot, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["--data", str(snapshot), "--at", "2025-06-11"])

        assert exc_info.value.code == EXIT_OK
        assert "Algorithms lecture" in capsys.readouterr().out


class TestFormatOccurrence:
    """Tests for text formatting."""

    def test_all_day(self):
        occurrence = Occurrence(
            key="A:1", kind=OccurrenceKind.ACTIVITY, source_id=1, title="", start=datetime(2025, 6, 1), all_day=True
        )
        assert format_occurrence(occurrence).startswith("2025-06-01 all-day")
        assert "(untitled)" in format_occurrence(occurrence)

    def test_multi_day(self):
        occurrence = Occurrence(
            key="E:1",
            kind=OccurrenceKind.EVENT,
            source_id=1,
            title="Trip",
            start=datetime(2025, 5, 30, 10, 0),
            end=datetime(2025, 6, 2),
        )
        assert "10:00-2025-06-02 00:00" in format_occurrence(occurrence)
