"""HTTP transport tests against a local aiohttp application."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import aiohttp
import pytest
from aiohttp import test_utils, web

from pybevvy.client import BevvyClient
from pybevvy.config import BevvyConfig
from pybevvy.exceptions import (
    BevvyCommandRejectedError,
    BevvyDecodeError,
    BevvyFirmwareError,
    BevvyTransportError,
)
from pybevvy.forms import FormController, InputValidity, target_success_text
from pybevvy.poller import CancelToken


def _device_app(seen: list[dict[str, Any]]) -> web.Application:
    async def values(request: web.Request) -> web.Response:
        seen.append({"path": request.path, "cache": request.headers.get("cache-control")})
        return web.json_response({"temp1": 21.456, "enabled": True})

    async def info(_request: web.Request) -> web.Response:
        return web.Response(text="{not json", content_type="application/json")

    async def modules(_request: web.Request) -> web.Response:
        return web.Response(status=500, text="boom")

    async def form(request: web.Request) -> web.Response:
        data = await request.post()
        seen.append(dict(data))
        if data.get("target") == "200":
            return web.json_response({"success": False, "message": "out of range"})
        if data.get("target") == "-5":
            return web.json_response({"success": False, "message": "below minimum"}, status=400)
        if data.get("name") == "broken":
            return web.Response(status=500, text="Internal error")
        return web.json_response({"success": True, "target": float(data.get("target", 0))})

    async def ota(request: web.Request) -> web.Response:
        body = await request.read()
        seen.append({"board": request.headers.get("x-board-ver"), "size": len(body)})
        return web.Response(status=400, text="wrong board\n")

    app = web.Application()
    app.router.add_get("/values", values)
    app.router.add_get("/info", info)
    app.router.add_get("/modules", modules)
    app.router.add_post("/", form)
    app.router.add_post("/ota", ota)
    return app


@asynccontextmanager
async def _running_client(seen: list[dict[str, Any]]) -> AsyncIterator[BevvyClient]:
    async with test_utils.TestServer(_device_app(seen)) as server:
        config = BevvyConfig(base_url=f"http://{server.host}:{server.port}/")
        async with BevvyClient(config) as client:
            yield client


@pytest.mark.asyncio
async def test_get_values_sends_no_cache_headers() -> None:
    seen: list[dict[str, Any]] = []
    async with _running_client(seen) as client:
        values = await client.get_values()

    assert values == {"temp1": 21.456, "enabled": True}
    assert seen == [{"path": "/values", "cache": "no-cache"}]


@pytest.mark.asyncio
async def test_invalid_json_is_decode_error() -> None:
    async with _running_client([]) as client:
        with pytest.raises(BevvyDecodeError):
            await client.get_info()


@pytest.mark.asyncio
async def test_http_error_is_transport_error() -> None:
    async with _running_client([]) as client:
        with pytest.raises(BevvyTransportError) as exc_info:
            await client.get_modules()

    assert exc_info.value.status_code == 500
    assert exc_info.value.endpoint == "/modules"
    assert exc_info.value.body == "boom"


@pytest.mark.asyncio
async def test_form_submission_round_trip() -> None:
    seen: list[dict[str, Any]] = []
    async with _running_client(seen) as client:
        result = await client.set_target("65")
        with pytest.raises(BevvyCommandRejectedError) as exc_info:
            await client.set_target("200")

    assert result.target == 65.0
    assert exc_info.value.message == "out of range"
    assert seen == [{"target": "65"}, {"target": "200"}]


@pytest.mark.asyncio
async def test_rejection_with_error_status_reaches_form() -> None:
    seen: list[dict[str, Any]] = []
    async with _running_client(seen) as client:
        form = FormController(client.set_target, success_text=target_success_text)
        accepted = await form.submit("-5")
        form.dispose()

    assert accepted is False
    assert form.state.feedback_text == "below minimum"
    assert form.state.validity is InputValidity.INVALID
    assert seen == [{"target": "-5"}]


@pytest.mark.asyncio
async def test_error_status_without_json_is_invalid_response() -> None:
    async with _running_client([]) as client:
        with pytest.raises(BevvyCommandRejectedError) as exc_info:
            await client.set_name("broken")

    assert exc_info.value.message == "Invalid response"


@pytest.mark.asyncio
async def test_ota_failure_uses_response_body() -> None:
    seen: list[dict[str, Any]] = []
    async with _running_client(seen) as client:
        with pytest.raises(BevvyFirmwareError, match="wrong board"):
            await client.upload_firmware(b"\x00" * 16, board="B2")

    assert seen == [{"board": "B2", "size": 16}]


@pytest.mark.asyncio
async def test_cancelled_token_short_circuits_request() -> None:
    seen: list[dict[str, Any]] = []
    token = CancelToken()
    token.cancel()
    async with _running_client(seen) as client:
        with pytest.raises(asyncio.CancelledError):
            await client.get_values(token)

    assert seen == []


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error() -> None:
    # Nothing listens on port 9 of the loopback interface.
    async with BevvyClient(BevvyConfig(base_url="http://127.0.0.1:9")) as client:
        with pytest.raises(BevvyTransportError) as exc_info:
            await client.get_values()

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_external_session_is_not_closed() -> None:
    async with aiohttp.ClientSession() as session:
        async with BevvyClient(BevvyConfig(), session=session):
            pass
        assert not session.closed
