"""Single-flight telemetry poller.

A :class:`TelemetryPoller` repeatedly fetches one JSON resource and hands
the freshest snapshot to a render callback. At most one request is in
flight per poller; a poll requested while one is outstanding is coalesced
into a single follow-up poll instead of being queued.
"""

from __future__ import annotations

import asyncio
import contextlib
import copy
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pybevvy._constants import DEFAULT_POLL_INTERVAL, DEFAULT_REQUEST_TIMEOUT
from pybevvy.exceptions import BevvyDecodeError

_logger = logging.getLogger(__name__)

Snapshot = Mapping[str, Any]


class PollErrorKind(StrEnum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    DECODE = "decode"

    @property
    def user_visible(self) -> bool:
        """Timeouts are retried silently; everything else is shown."""
        return self is not PollErrorKind.TIMEOUT


class CancelToken:
    """Cooperative cancellation signal passed into a fetch.

    Fires at most once; callbacks registered before or after firing run
    exactly once.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], Any]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def add_callback(self, callback: Callable[[], Any]) -> None:
        if self._cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def cancel(self) -> bool:
        """Fire the token. Returns ``False`` if it had already fired."""
        if self._cancelled:
            return False
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()
        return True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise asyncio.CancelledError("cancel token fired")


@dataclass(slots=True)
class PollState:
    """Mutable per-poller state; only the poll cycle writes to it."""

    in_flight: bool = False
    pending: bool = False
    last_snapshot: dict[str, Any] | None = None
    polls: int = 0
    timeouts: int = 0
    errors: int = 0


FetchFn = Callable[[CancelToken], Awaitable[Snapshot]]
SnapshotCallback = Callable[[dict[str, Any]], Any]
ErrorCallback = Callable[[PollErrorKind, BaseException], Any]
TimeoutCallback = Callable[[], Any]


_CANCEL_GRACE = 1.0


def _discard_result(task: asyncio.Task[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        _logger.debug("Fetch failed while being cancelled", exc_info=exc)


def classify_error(exc: BaseException) -> PollErrorKind:
    """Map a fetch failure onto the poll error taxonomy."""
    if isinstance(exc, BevvyDecodeError):
        return PollErrorKind.DECODE
    return PollErrorKind.NETWORK


class TelemetryPoller:
    """Poll one resource on a fixed interval with a single-flight guard.

    Usage::

        poller = TelemetryPoller(client.get_values, render, show_error, interval=5.0)
        async with poller:
            ...
    """

    def __init__(
        self,
        fetch: FetchFn,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
        *,
        interval: float = DEFAULT_POLL_INTERVAL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        on_timeout: TimeoutCallback | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        self._fetch = fetch
        self._on_snapshot = on_snapshot
        self._on_error = on_error
        self._on_timeout = on_timeout
        self._interval = interval
        self._timeout = timeout
        self._state = PollState()
        self._timer_task: asyncio.Task[None] | None = None
        self._cycle_task: asyncio.Task[None] | None = None
        self._running = False
        self._stopped = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def running(self) -> bool:
        return self._running

    @property
    def last_snapshot(self) -> dict[str, Any] | None:
        snapshot = self._state.last_snapshot
        return copy.deepcopy(snapshot) if snapshot is not None else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TelemetryPoller:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    def start(self) -> None:
        """Begin polling on the running event loop (first poll is immediate)."""
        if self._running:
            return
        self._running = True
        self._stopped = False
        self._timer_task = asyncio.get_running_loop().create_task(self._tick_loop())

    async def stop(self) -> None:
        """Stop the timer and abort any in-flight cycle.

        No callback fires once this returns.
        """
        self._running = False
        self._stopped = True
        current = asyncio.current_task()
        tasks = [t for t in (self._timer_task, self._cycle_task) if t is not None and t is not current]
        self._timer_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._cycle_task = None
        self._state.in_flight = False
        self._state.pending = False

    async def _tick_loop(self) -> None:
        while self._running:
            self.request_poll()
            await asyncio.sleep(self._interval)

    # ------------------------------------------------------------------
    # Poll cycle
    # ------------------------------------------------------------------

    def request_poll(self) -> None:
        """Start a cycle, or mark one pending if a request is outstanding."""
        if self._stopped:
            return
        if self._state.in_flight:
            self._state.pending = True
            return
        self._state.in_flight = True
        self._cycle_task = asyncio.get_running_loop().create_task(self._cycle())

    async def refresh(self) -> dict[str, Any] | None:
        """Request a poll and wait until the resulting cycle has finished."""
        self.request_poll()
        task = self._cycle_task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await asyncio.shield(task)
        return self.last_snapshot

    async def _cycle(self) -> None:
        try:
            while True:
                await self._poll_once()
                if not self._state.pending or not self._can_deliver():
                    break
                self._state.pending = False
                _logger.debug("Coalesced poll request, polling again")
        finally:
            self._state.in_flight = False
            self._state.pending = False
            if self._cycle_task is asyncio.current_task():
                self._cycle_task = None

    def _can_deliver(self) -> bool:
        # refresh() works on a poller that was never started; a stopped one stays silent.
        return not self._stopped

    async def _poll_once(self) -> None:
        self._state.polls += 1
        token = CancelToken()
        fetch_task: asyncio.Task[Snapshot] = asyncio.ensure_future(self._fetch(token))
        token.add_callback(fetch_task.cancel)

        try:
            done, _ = await asyncio.wait({fetch_task}, timeout=self._timeout)
        except asyncio.CancelledError:
            token.cancel()
            raise

        if not done:
            token.cancel()
            await self._drain_cancelled(fetch_task)
            await self._handle_timeout()
            return

        exc = fetch_task.exception() if not fetch_task.cancelled() else asyncio.CancelledError()
        if exc is not None:
            await self._handle_error(classify_error(exc), exc)
            return

        result = fetch_task.result()
        if not isinstance(result, Mapping):
            err = BevvyDecodeError(f"Expected a JSON object, got {type(result).__name__}")
            await self._handle_error(PollErrorKind.DECODE, err)
            return

        snapshot = copy.deepcopy(dict(result))
        self._state.last_snapshot = snapshot
        if self._can_deliver():
            await self._invoke(self._on_snapshot, copy.deepcopy(snapshot))

    async def _drain_cancelled(self, fetch_task: asyncio.Task[Snapshot]) -> None:
        """Give a cancelled fetch a bounded grace period to unwind."""
        done, _ = await asyncio.wait({fetch_task}, timeout=min(self._timeout, _CANCEL_GRACE))
        if not done:
            _logger.warning("Fetch ignored cancellation; dropping it")
            fetch_task.add_done_callback(_discard_result)
            return
        _discard_result(fetch_task)

    async def _handle_timeout(self) -> None:
        self._state.timeouts += 1
        _logger.debug("Telemetry request timed out after %.1fs", self._timeout)
        if self._on_timeout is not None and self._can_deliver():
            await self._invoke(self._on_timeout)

    async def _handle_error(self, kind: PollErrorKind, exc: BaseException) -> None:
        self._state.errors += 1
        _logger.debug("Telemetry request failed kind=%s: %s", kind, exc)
        if self._on_error is not None and self._can_deliver():
            await self._invoke(self._on_error, kind, exc)

    async def _invoke(self, callback: Callable[..., Any], *args: Any) -> None:
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception:
            _logger.warning("Poller callback %r failed", callback, exc_info=True)
