"""HTTP transport for the device's JSON and form endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import aiohttp

from pybevvy.config import BevvyConfig
from pybevvy.exceptions import BevvyDecodeError, BevvyTransportError
from pybevvy.poller import CancelToken

_logger = logging.getLogger(__name__)

_NO_STORE_HEADERS: dict[str, str] = {"cache-control": "no-cache", "pragma": "no-cache"}


class Transport(Protocol):
    """Structural transport interface used by the client.

    Tests pass small fakes implementing these coroutines; production uses
    :class:`HttpTransport`.
    """

    async def get_json(self, endpoint: str, *, token: CancelToken | None = None) -> Any:
        ...

    async def get_bytes(self, endpoint: str) -> bytes:
        ...

    async def post_form(self, endpoint: str, form: Mapping[str, str] | None = None) -> str:
        ...

    async def post_binary(self, endpoint: str, data: bytes, headers: Mapping[str, str]) -> str:
        ...

    async def delete(self, endpoint: str) -> str:
        ...


class HttpTransport:
    """aiohttp-backed transport talking to one device."""

    def __init__(self, config: BevvyConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session

    def _url(self, endpoint: str) -> str:
        return f"{self._config.base_url}{endpoint}"

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        token: CancelToken | None = None,
        **kwargs: Any,
    ) -> tuple[int, bytes]:
        """Send one request and return ``(status, body)``; raise on non-2xx."""
        # The poller cancels the task running this request when the token fires.
        if token is not None:
            token.raise_if_cancelled()

        url = self._url(endpoint)
        headers = {**_NO_STORE_HEADERS, **kwargs.pop("headers", {})}
        _logger.debug("%s %s", method, url)

        try:
            async with self._http.request(method, url, headers=headers, **kwargs) as resp:
                body = await resp.read()
                if not 200 <= resp.status < 300:
                    text = body.decode("utf-8", errors="replace")
                    raise BevvyTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                        body=text,
                    )
                return resp.status, body
        except BevvyTransportError:
            raise
        except (aiohttp.ClientError, OSError) as exc:
            raise BevvyTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

    async def get_json(self, endpoint: str, *, token: CancelToken | None = None) -> Any:
        _, body = await self._request("GET", endpoint, token=token)
        return decode_json(endpoint, body)

    async def get_bytes(self, endpoint: str) -> bytes:
        _, body = await self._request("GET", endpoint)
        return body

    async def post_form(self, endpoint: str, form: Mapping[str, str] | None = None) -> str:
        # aiohttp sends a mapping as application/x-www-form-urlencoded.
        data = dict(form) if form else None
        _, body = await self._request("POST", endpoint, data=data)
        return body.decode("utf-8", errors="replace")

    async def post_binary(self, endpoint: str, data: bytes, headers: Mapping[str, str]) -> str:
        _, body = await self._request("POST", endpoint, data=data, headers=dict(headers))
        return body.decode("utf-8", errors="replace")

    async def delete(self, endpoint: str) -> str:
        _, body = await self._request("DELETE", endpoint)
        return body.decode("utf-8", errors="replace")


def decode_json(endpoint: str, body: bytes | str) -> Any:
    """Parse a response body as JSON, raising :class:`BevvyDecodeError`."""
    text = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise BevvyDecodeError(
            f"Invalid JSON from {endpoint}: {text[:200]}",
            endpoint=endpoint,
        ) from exc
