"""High-level async client for a Bevvy brewing controller."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp
from pydantic import ValidationError

from pybevvy._constants import (
    COMMAND_ERROR_TEXT,
    ENDPOINT_DISABLE,
    ENDPOINT_ENABLE,
    ENDPOINT_FILES,
    ENDPOINT_FILL,
    ENDPOINT_FORM,
    ENDPOINT_INFO,
    ENDPOINT_MODULES,
    ENDPOINT_OTA,
    ENDPOINT_VALUES,
    INVALID_RESPONSE_TEXT,
)
from pybevvy._transport import HttpTransport, Transport, decode_json
from pybevvy.config import BevvyConfig
from pybevvy.exceptions import (
    BevvyCommandRejectedError,
    BevvyDecodeError,
    BevvyError,
    BevvyFirmwareError,
    BevvyTransportError,
)
from pybevvy.models.command import CommandResult
from pybevvy.models.device_info import DeviceInfo
from pybevvy.models.files import FileEntry, build_file_path
from pybevvy.poller import CancelToken, ErrorCallback, SnapshotCallback, TelemetryPoller, TimeoutCallback

_logger = logging.getLogger(__name__)


def _require_object(endpoint: str, decoded: Any) -> dict[str, Any]:
    if not isinstance(decoded, dict):
        raise BevvyDecodeError(
            f"Expected a JSON object from {endpoint}, got {type(decoded).__name__}",
            endpoint=endpoint,
        )
    return decoded


class BevvyClient:
    """Async client for one Bevvy device.

    Usage::

        async with BevvyClient(BevvyConfig(base_url="http://hlt.local")) as client:
            info = await client.get_info()
            values = await client.get_values()
    """

    def __init__(
        self,
        config: BevvyConfig,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = None

    @property
    def config(self) -> BevvyConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> BevvyClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise BevvyError("Client not initialized. Use 'async with BevvyClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Read endpoints
    # ------------------------------------------------------------------

    async def get_values(self, token: CancelToken | None = None) -> dict[str, Any]:
        """Fetch the current telemetry snapshot."""
        decoded = await self._require_transport().get_json(ENDPOINT_VALUES, token=token)
        return _require_object(ENDPOINT_VALUES, decoded)

    async def get_info(self) -> DeviceInfo:
        """Fetch static device metadata."""
        decoded = await self._require_transport().get_json(ENDPOINT_INFO)
        return DeviceInfo.model_validate(_require_object(ENDPOINT_INFO, decoded))

    async def get_modules(self) -> dict[str, bool]:
        """Fetch the feature name -> enabled mapping."""
        decoded = _require_object(ENDPOINT_MODULES, await self._require_transport().get_json(ENDPOINT_MODULES))
        return {str(key): bool(value) for key, value in decoded.items()}

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _submit_form(self, field: str, value: str) -> CommandResult:
        try:
            text = await self._require_transport().post_form(ENDPOINT_FORM, {field: value})
        except BevvyTransportError as exc:
            # The device answers rejections with an error status and a JSON body.
            if exc.status_code is None:
                raise
            _logger.debug("Command %s=%s answered with HTTP %s", field, value, exc.status_code)
            text = exc.body
        try:
            decoded = decode_json(ENDPOINT_FORM, text)
            result = CommandResult.model_validate(decoded)
        except (BevvyDecodeError, ValidationError):
            _logger.debug("Unparsable command response: %s", text[:200])
            raise BevvyCommandRejectedError(INVALID_RESPONSE_TEXT, endpoint=ENDPOINT_FORM) from None

        if not result.success:
            raise BevvyCommandRejectedError(
                result.message or COMMAND_ERROR_TEXT,
                result=result,
                endpoint=ENDPOINT_FORM,
            )
        _logger.debug("Command %s=%s accepted", field, value)
        return result

    async def set_target(self, value: float | str) -> CommandResult:
        """Set the target temperature. The device validates the range."""
        return await self._submit_form("target", str(value).strip())

    async def set_name(self, name: str) -> CommandResult:
        """Rename the device. The device reboots after saving."""
        return await self._submit_form("name", name.strip())

    async def enable(self) -> None:
        await self._require_transport().post_form(ENDPOINT_ENABLE)

    async def disable(self) -> None:
        await self._require_transport().post_form(ENDPOINT_DISABLE)

    async def set_enabled(self, enabled: bool) -> None:
        if enabled:
            await self.enable()
        else:
            await self.disable()

    async def set_fill(self, start: bool) -> None:
        """Start or stop the tank fill relay."""
        await self._require_transport().post_form(ENDPOINT_FILL, {"fill": "true" if start else "false"})

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def list_files(self) -> list[FileEntry]:
        """List stored files in device order. Malformed entries are skipped."""
        decoded = await self._require_transport().get_json(ENDPOINT_FILES)
        if not isinstance(decoded, list):
            raise BevvyDecodeError(
                f"Expected a JSON array from {ENDPOINT_FILES}, got {type(decoded).__name__}",
                endpoint=ENDPOINT_FILES,
            )
        entries: list[FileEntry] = []
        for item in decoded:
            try:
                entries.append(FileEntry.model_validate(item))
            except ValidationError:
                _logger.debug("Skipping malformed file entry: %r", item)
        return entries

    async def get_file(self, name: str) -> bytes:
        return await self._require_transport().get_bytes(build_file_path(name))

    async def delete_file(self, name: str) -> Any:
        """Delete a stored file. This cannot be undone."""
        path = build_file_path(name)
        text = await self._require_transport().delete(path)
        _logger.debug("Deleted file %s", name)
        return decode_json(path, text)

    # ------------------------------------------------------------------
    # Firmware
    # ------------------------------------------------------------------

    async def upload_firmware(
        self,
        data: bytes,
        *,
        board: str | None,
        version_note: str | None = None,
    ) -> None:
        """Upload a firmware image. The device reboots on success."""
        if not data:
            raise BevvyFirmwareError("Please choose a firmware .bin file.")
        board_code = (board or "").strip()
        if not board_code:
            raise BevvyFirmwareError("Cannot determine board version from /info.")

        headers: dict[str, str] = {
            "content-type": "application/octet-stream",
            "x-board-ver": board_code,
        }
        note = (version_note or "").strip()
        if note:
            headers["x-ota-version"] = note

        try:
            await self._require_transport().post_binary(ENDPOINT_OTA, data, headers)
        except BevvyTransportError as exc:
            if exc.status_code is None:
                raise BevvyFirmwareError(str(exc)) from exc
            raise BevvyFirmwareError(exc.body.strip() or f"OTA failed: {exc.status_code}") from exc
        _logger.debug("Firmware uploaded board=%s bytes=%d", board_code, len(data))

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    def create_poller(
        self,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
        *,
        on_timeout: TimeoutCallback | None = None,
        interval: float | None = None,
        timeout: float | None = None,
    ) -> TelemetryPoller:
        """Build a :class:`TelemetryPoller` bound to :meth:`get_values`."""
        return TelemetryPoller(
            self.get_values,
            on_snapshot,
            on_error,
            interval=interval if interval is not None else self._config.poll_interval,
            timeout=timeout if timeout is not None else self._config.request_timeout,
            on_timeout=on_timeout,
        )
