from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import pytest

from pybevvy.client import BevvyClient
from pybevvy.config import BevvyConfig, FeedbackTiming
from pybevvy.dashboard import Dashboard, ValuesView, ViewReconciler
from pybevvy.exceptions import BevvyTransportError
from pybevvy.poller import CancelToken, PollErrorKind
from pybevvy.view import FillControl

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)

HLT_VALUES: dict[str, Any] = {
    "temp1": 21.456,
    "int": 30.0,
    "intHumidity": 44.44,
    "targetTemp": 65,
    "enabled": True,
    "top_full": 0,
    "bottom_safe": 1,
    "tank": "30 L",
}


class FakeTransport:
    def __init__(self) -> None:
        self.values: dict[str, Any] | Exception = dict(HLT_VALUES)
        self.info: dict[str, Any] = {"name": "hlt-1", "product": "HLT", "board": "B2", "min": 10, "max": 80}
        self.modules: dict[str, Any] = {"wifi": True}
        self.posts: list[tuple[str, Any]] = []
        self.file_error: Exception | None = None

    async def get_json(self, endpoint: str, *, token: CancelToken | None = None) -> Any:
        if endpoint == "/values":
            if isinstance(self.values, Exception):
                raise self.values
            return dict(self.values)
        if endpoint == "/info":
            return self.info
        if endpoint == "/modules":
            return self.modules
        if endpoint == "/files":
            if self.file_error is not None:
                raise self.file_error
            return [{"name": "log.txt", "storage": "flash", "size": 10}]
        raise AssertionError(endpoint)

    async def get_bytes(self, endpoint: str) -> bytes:
        if self.file_error is not None:
            raise self.file_error
        return "température\n".encode()

    async def post_form(self, endpoint: str, form: Mapping[str, str] | None = None) -> str:
        self.posts.append((endpoint, dict(form) if form else None))
        return '{"success": true, "target": 70}'

    async def post_binary(self, endpoint: str, data: bytes, headers: Mapping[str, str]) -> str:
        self.posts.append((endpoint, dict(headers)))
        return ""

    async def delete(self, endpoint: str) -> str:
        return "{}"


def _dashboard(transport: FakeTransport, changes: list[dict[str, Any]] | None = None) -> Dashboard:
    config = BevvyConfig(
        title_prefix="Brewery",
        poll_interval=60.0,
        feedback=FeedbackTiming(success_revert=0.01, error_revert=0.01, feedback_hide=0.01),
    )
    client = BevvyClient(config)
    client._transport = transport  # type: ignore[assignment]
    return Dashboard(
        client,
        on_change=changes.append if changes is not None else None,
        clock=lambda: FIXED_NOW,
    )


class TestValuesView:
    def test_from_snapshot(self) -> None:
        view = ValuesView.from_snapshot(HLT_VALUES, title_prefix="Brewery")

        assert view.temperature == "21.46"
        assert view.internal_temperature == "30.00˚C"
        assert view.internal_humidity == "44.4%"
        assert view.target_temperature == "65.00˚C"
        assert view.tank_content == "30 L"
        assert view.status.text == "Idle"
        assert view.fill_control is FillControl.START
        assert view.title == "Brewery - 21.46˚C"

    def test_missing_values_use_placeholder(self) -> None:
        view = ValuesView.from_snapshot({}, title_prefix="Brewery")

        assert view.temperature == "n/a"
        assert view.internal_humidity is None
        assert view.title == "Brewery - n/a˚C"


class TestViewReconciler:
    def test_same_view_twice_yields_no_changes(self) -> None:
        reconciler = ViewReconciler()
        view = ValuesView.from_snapshot(HLT_VALUES, title_prefix="Bevvy")

        first = reconciler.apply(view)
        second = reconciler.apply(ValuesView.from_snapshot(dict(HLT_VALUES), title_prefix="Bevvy"))

        assert first["temperature"] == "21.46"
        assert second == {}

    def test_only_changed_fields_reported(self) -> None:
        reconciler = ViewReconciler()
        reconciler.apply(ValuesView.from_snapshot(HLT_VALUES, title_prefix="Bevvy"))

        changes = reconciler.apply(ValuesView.from_snapshot({**HLT_VALUES, "temp1": 22.0}, title_prefix="Bevvy"))

        assert changes == {"temperature": "22.00", "title": "Bevvy - 22.00˚C"}

    def test_missing_humidity_keeps_previous_text(self) -> None:
        reconciler = ViewReconciler()
        reconciler.apply(ValuesView.from_snapshot(HLT_VALUES, title_prefix="Bevvy"))
        without = {k: v for k, v in HLT_VALUES.items() if k != "intHumidity"}

        changes = reconciler.apply(ValuesView.from_snapshot(without, title_prefix="Bevvy"))

        assert "internal_humidity" not in changes


@pytest.mark.asyncio
async def test_load_renders_page() -> None:
    transport = FakeTransport()
    dashboard = _dashboard(transport)

    page = await dashboard.load()

    assert '<span id="temperature">21.46</span>' in page
    assert dashboard.info is not None and dashboard.info.board == "B2"
    assert dashboard.modules == {"wifi": True}
    assert dashboard.last_update == FIXED_NOW
    assert dashboard.view is not None and dashboard.view.title == "Brewery - 21.46˚C"


@pytest.mark.asyncio
async def test_load_with_missing_temperature() -> None:
    transport = FakeTransport()
    transport.values = {"enabled": True}

    page = await _dashboard(transport).load()

    assert '<span id="temperature">n/a</span>' in page


@pytest.mark.asyncio
async def test_load_failure_renders_error_page() -> None:
    transport = FakeTransport()
    transport.values = BevvyTransportError("HTTP 500 from /values", status_code=500, endpoint="/values")

    page = await _dashboard(transport).load()

    assert page == '<p style="color:red;">Error loading data. Please try again later.</p>'


@pytest.mark.asyncio
async def test_poll_error_shows_indicator_until_next_success() -> None:
    transport = FakeTransport()
    changes: list[dict[str, Any]] = []
    dashboard = _dashboard(transport, changes)
    await dashboard.load()
    changes.clear()

    transport.values = BevvyTransportError("Request to /values failed", endpoint="/values")
    await dashboard.poller.refresh()
    assert dashboard.error_message == "Error loading data. Please try again later."
    assert changes == [{"error": "Error loading data. Please try again later."}]

    transport.values = {**HLT_VALUES, "temp1": 23.0}
    await dashboard.poller.refresh()
    assert dashboard.error_message is None
    assert changes[-1]["error"] is None
    assert changes[-1]["temperature"] == "23.00"


def test_timeout_does_not_show_indicator() -> None:
    changes: list[dict[str, Any]] = []
    dashboard = _dashboard(FakeTransport(), changes)

    dashboard._handle_error(PollErrorKind.TIMEOUT, TimeoutError())

    assert dashboard.error_message is None
    assert changes == []


@pytest.mark.asyncio
async def test_unchanged_snapshot_only_updates_timestamp() -> None:
    transport = FakeTransport()
    changes: list[dict[str, Any]] = []
    dashboard = _dashboard(transport, changes)
    await dashboard.load()
    changes.clear()

    await dashboard.poller.refresh()

    assert changes == [{"last_update": FIXED_NOW}]


@pytest.mark.asyncio
async def test_start_fill_refused_when_full() -> None:
    transport = FakeTransport()
    transport.values = {**HLT_VALUES, "top_full": 1, "bottom_safe": 1}
    dashboard = _dashboard(transport)
    await dashboard.load()

    assert await dashboard.start_fill() is False
    assert transport.posts == []


@pytest.mark.asyncio
async def test_start_and_stop_fill() -> None:
    transport = FakeTransport()
    dashboard = _dashboard(transport)
    await dashboard.load()

    assert await dashboard.start_fill()
    assert await dashboard.stop_fill()
    assert transport.posts == [("/fill", {"fill": "true"}), ("/fill", {"fill": "false"})]


@pytest.mark.asyncio
async def test_target_form_prefill_and_submit() -> None:
    transport = FakeTransport()
    dashboard = _dashboard(transport)
    await dashboard.load()

    state = dashboard.open_target_form()
    accepted = await dashboard.target_form.submit("70")
    await dashboard.stop()

    assert state.section_open and state.input_value == "65.00"
    assert accepted
    assert dashboard.target_form.state.feedback_text == "Success: The new target temperature is 70˚C"
    assert transport.posts == [("/", {"target": "70"})]


@pytest.mark.asyncio
async def test_files_and_firmware() -> None:
    transport = FakeTransport()
    dashboard = _dashboard(transport)

    assert "Failed" not in await dashboard.list_files_html()
    assert await dashboard.read_file("log.txt") == "température\n"
    assert await dashboard.upload_firmware(b"\x01") == "Cannot determine board version from /info."

    await dashboard.load()
    assert await dashboard.upload_firmware(b"\x01", version_note="1.2.3") == "Upload OK. Rebooting…"
    assert transport.posts[-1][1]["x-board-ver"] == "B2"

    transport.file_error = BevvyTransportError("HTTP 404 from /files", status_code=404, endpoint="/files")
    assert await dashboard.list_files_html() == "Failed to load files."
    assert await dashboard.read_file("log.txt") == "Failed to load file."
