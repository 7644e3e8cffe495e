"""Live dashboard: initial page render plus diff-based updates from polling."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pybevvy._constants import LOAD_ERROR_TEXT
from pybevvy.client import BevvyClient
from pybevvy.exceptions import BevvyError
from pybevvy.forms import FormController, FormState, name_success_text, target_success_text
from pybevvy.models.device_info import DeviceInfo
from pybevvy.poller import PollErrorKind, TelemetryPoller
from pybevvy.view import (
    FillControl,
    StatusBadge,
    TankState,
    fill_control,
    fmt_c2,
    fmt_pct1,
    page_title,
    render_error_page,
    render_file_list,
    render_page,
    status_badge,
    tank_content,
    tank_state,
)

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class ValuesView:
    """Everything the page shows that depends on a telemetry snapshot."""

    temperature: str
    internal_temperature: str
    internal_humidity: str | None
    target_temperature: str
    tank_content: str
    status: StatusBadge
    enabled: bool
    fill_control: FillControl
    title: str

    @classmethod
    def from_snapshot(cls, values: Mapping[str, Any], *, title_prefix: str) -> ValuesView:
        humidity = values.get("intHumidity")
        return cls(
            temperature=fmt_c2(values.get("temp1")),
            internal_temperature=f"{fmt_c2(values.get('int'))}˚C",
            # Firmware without a humidity sensor leaves the previous text alone.
            internal_humidity=f"{fmt_pct1(humidity)}%" if isinstance(humidity, (int, float)) else None,
            target_temperature=f"{fmt_c2(values.get('targetTemp'))}˚C",
            tank_content=tank_content(values),
            status=status_badge(values),
            enabled=bool(values.get("enabled")),
            fill_control=fill_control(values),
            title=page_title(title_prefix, values),
        )


class ViewReconciler:
    """Diff successive :class:`ValuesView` instances.

    ``apply`` returns only the fields whose value changed since the last
    applied view, so the same view applied twice yields an empty change set.
    """

    def __init__(self) -> None:
        self._current: ValuesView | None = None

    @property
    def current(self) -> ValuesView | None:
        return self._current

    def apply(self, view: ValuesView) -> dict[str, Any]:
        previous = self._current
        self._current = view
        changes: dict[str, Any] = {}
        for field in dataclasses.fields(view):
            value = getattr(view, field.name)
            if field.name == "internal_humidity" and value is None:
                continue
            if previous is None or getattr(previous, field.name) != value:
                changes[field.name] = value
        return changes

    def reset(self) -> None:
        self._current = None


class Dashboard:
    """Drive one device page: load, poll, reconcile and dispatch commands.

    ``on_change`` receives each non-empty change set (field name -> new value)
    plus ``last_update`` and ``error`` entries when those change.
    """

    def __init__(
        self,
        client: BevvyClient,
        *,
        on_change: Callable[[dict[str, Any]], None] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self._config = client.config
        self._on_change = on_change
        self._clock = clock
        self._reconciler = ViewReconciler()
        self._values: dict[str, Any] = {}
        self._info: DeviceInfo | None = None
        self._modules: dict[str, bool] = {}
        self.error_message: str | None = None
        self.last_update: datetime | None = None
        self.poller: TelemetryPoller = client.create_poller(self._handle_snapshot, self._handle_error)
        self.target_form = FormController(
            client.set_target,
            self.poller.refresh,
            success_text=target_success_text,
            timing=self._config.feedback,
            close_on_success=True,
        )
        self.name_form = FormController(
            client.set_name,
            self.poller.refresh,
            success_text=name_success_text,
            timing=self._config.feedback,
        )

    @property
    def info(self) -> DeviceInfo | None:
        return self._info

    @property
    def modules(self) -> dict[str, bool]:
        return dict(self._modules)

    @property
    def values(self) -> dict[str, Any]:
        return dict(self._values)

    @property
    def view(self) -> ValuesView | None:
        return self._reconciler.current

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> str:
        """Fetch values, info and modules together and render the full page.

        Returns the error page when any of the three requests fails.
        """
        try:
            values, info, modules = await asyncio.gather(
                self._client.get_values(),
                self._client.get_info(),
                self._client.get_modules(),
            )
        except BevvyError:
            _logger.warning("Error loading device data", exc_info=True)
            return render_error_page()

        self._info = info
        self._modules = modules
        self._apply_values(values)
        return render_page(values, info, modules)

    def start(self) -> None:
        self.poller.start()

    async def stop(self) -> None:
        await self.poller.stop()
        self.target_form.dispose()
        self.name_form.dispose()

    async def __aenter__(self) -> Dashboard:
        self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Poll callbacks
    # ------------------------------------------------------------------

    def _apply_values(self, values: Mapping[str, Any]) -> dict[str, Any]:
        self._values = dict(values)
        view = ValuesView.from_snapshot(values, title_prefix=self._config.title_prefix)
        changes = self._reconciler.apply(view)
        self.last_update = self._clock()
        changes["last_update"] = self.last_update
        if self.error_message is not None:
            self.error_message = None
            changes["error"] = None
        return changes

    def _handle_snapshot(self, values: dict[str, Any]) -> None:
        self._publish(self._apply_values(values))

    def _handle_error(self, kind: PollErrorKind, exc: BaseException) -> None:
        _logger.debug("Telemetry error kind=%s: %s", kind, exc)
        if not kind.user_visible:
            return
        if self.error_message != LOAD_ERROR_TEXT:
            self.error_message = LOAD_ERROR_TEXT
            self._publish({"error": LOAD_ERROR_TEXT})

    def _publish(self, changes: dict[str, Any]) -> None:
        if not changes or self._on_change is None:
            return
        try:
            self._on_change(changes)
        except Exception:
            _logger.warning("Dashboard change callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    async def set_enabled(self, enabled: bool) -> None:
        try:
            await self._client.set_enabled(enabled)
        except BevvyError:
            _logger.warning("Error toggling enabled", exc_info=True)

    async def start_fill(self) -> bool:
        """Start filling unless the top float already reports a full tank."""
        if tank_state(self._values) is TankState.FULL:
            _logger.debug("Refusing to fill: tank already full")
            return False
        try:
            await self._client.set_fill(True)
        except BevvyError:
            _logger.warning("Error starting fill", exc_info=True)
            return False
        await self.poller.refresh()
        return True

    async def stop_fill(self) -> bool:
        try:
            await self._client.set_fill(False)
        except BevvyError:
            _logger.warning("Error stopping fill", exc_info=True)
            return False
        await self.poller.refresh()
        return True

    def open_target_form(self) -> FormState:
        """Open the target form prefilled with the current target."""
        target = self._values.get("targetTemp")
        prefill = fmt_c2(target) if isinstance(target, (int, float)) and not isinstance(target, bool) else ""
        self.target_form.open(prefill)
        return self.target_form.state

    async def list_files_html(self) -> str:
        try:
            entries = await self._client.list_files()
        except BevvyError:
            _logger.warning("Error loading files", exc_info=True)
            return "Failed to load files."
        return render_file_list(entries)

    async def read_file(self, name: str) -> str:
        try:
            data = await self._client.get_file(name)
        except BevvyError:
            _logger.warning("Error loading file %s", name, exc_info=True)
            return "Failed to load file."
        return data.decode("utf-8", errors="replace")

    async def delete_file(self, name: str) -> bool:
        try:
            await self._client.delete_file(name)
        except BevvyError:
            _logger.warning("Error deleting file %s", name, exc_info=True)
            return False
        return True

    async def upload_firmware(self, data: bytes, *, version_note: str | None = None) -> str:
        """Upload firmware for the board reported by ``/info``; returns feedback text."""
        board = self._info.board if self._info is not None else None
        try:
            await self._client.upload_firmware(data, board=board, version_note=version_note)
        except BevvyError as exc:
            _logger.warning("OTA error", exc_info=True)
            return str(exc)
        return "Upload OK. Rebooting…"
