"""Custom exception hierarchy for pybevvy."""

from __future__ import annotations

from typing import Any


class BevvyError(Exception):
    """Base exception for all pybevvy errors."""


class BevvyConfigError(BevvyError):
    """Invalid or missing configuration."""


class BevvyTransportError(BevvyError):
    """HTTP-level failure (connection error, non-2xx status)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
        body: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        self.body = body
        super().__init__(message)


class BevvyDecodeError(BevvyError):
    """Response body could not be parsed as the expected structure."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class BevvyCommandRejectedError(BevvyError):
    """Command sink answered with ``success: false``.

    ``message`` is the text the device supplied (or a generic fallback) and
    is what the originating form shows inline.
    """

    def __init__(self, message: str, *, result: Any = None, endpoint: str = "") -> None:
        self.message = message
        self.result = result
        self.endpoint = endpoint
        super().__init__(message)


class BevvyFirmwareError(BevvyError):
    """Firmware upload refused locally or by the device."""
