"""Presentation helpers: value formatting, status derivation and HTML fragments.

Everything here is a pure function of its inputs, so rendering the same
snapshot twice yields identical output. Telemetry is read defensively:
missing or wrong-typed fields render as :data:`PLACEHOLDER`.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from html import escape
from typing import Any

from pybevvy._constants import LABELS, LOAD_ERROR_TEXT, PLACEHOLDER
from pybevvy.models.device_info import DeviceInfo
from pybevvy.models.files import FileEntry

_TRUTHY_STRINGS = frozenset({"1", "true", "on"})

# ---------------------------------------------------------------------------
# Number formatting
# ---------------------------------------------------------------------------


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _finite_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def fmt_c2(value: Any) -> str:
    """Two decimals for numbers, placeholder otherwise (``21.456`` -> ``"21.46"``)."""
    return f"{value:.2f}" if _is_number(value) else PLACEHOLDER


def fmt_pct1(value: Any) -> str:
    return f"{value:.1f}" if _is_number(value) else PLACEHOLDER


def fmt_mib_kib(value: Any) -> str:
    """Flash sizes: ``"1.50 MB (1536.00 kB)"``."""
    size = _finite_number(value)
    if size is None:
        return PLACEHOLDER
    return f"{size / (1024 * 1024):.2f} MB ({size / 1024:.2f} kB)"


def fmt_size(value: Any) -> str:
    """Compact file size: bytes below 1 kB, one decimal kB, two decimal MB."""
    size = _finite_number(value)
    if size is None:
        return PLACEHOLDER
    if size < 1024:
        return f"{size:g} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} kB"
    return f"{size / (1024 * 1024):.2f} MB"


# ---------------------------------------------------------------------------
# Telemetry interpretation
# ---------------------------------------------------------------------------


def _truthy(value: Any) -> bool:
    if value is True:
        return True
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY_STRINGS
    return _is_number(value) and value == 1


def _is_one(value: Any) -> bool:
    """Numeric reading of a legacy float switch: ``1``, ``True`` or ``"1"``."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return float(value.strip() or 0) == 1
        except ValueError:
            return False
    return _is_number(value) and value == 1


class TankState(StrEnum):
    FULL = "full"
    PART = "part"
    EMPTY = "empty"
    ERROR = "error"
    UNKNOWN = "unknown"


class FillControl(StrEnum):
    NONE = "none"
    START = "start"
    STOP = "stop"


@dataclass(frozen=True, slots=True)
class StatusBadge:
    text: str
    css_class: str


def tank_state(values: Mapping[str, Any]) -> TankState:
    """Derive the tank level from the two float switches.

    ``top_full``/``bottom_safe`` are preferred over legacy ``top``/``bottom``.
    A wet top switch with a dry bottom switch is a sensor fault.
    """
    top_raw = values["top_full"] if "top_full" in values else values.get("top")
    bottom_raw = values["bottom_safe"] if "bottom_safe" in values else values.get("bottom")
    if top_raw is None or bottom_raw is None:
        return TankState.UNKNOWN
    top = _truthy(top_raw)
    bottom = _truthy(bottom_raw)
    if top and not bottom:
        return TankState.ERROR
    if not top and not bottom:
        return TankState.EMPTY
    if not top and bottom:
        return TankState.PART
    return TankState.FULL


def is_filling(values: Mapping[str, Any]) -> bool:
    """Only the fill relay counts: ``relays[0]`` when present, else ``relay1``."""
    relays = values.get("relays")
    if isinstance(relays, list) and relays:
        return _truthy(relays[0])
    if "relay1" in values:
        return _truthy(values["relay1"])
    return False


def is_heating(values: Mapping[str, Any]) -> bool:
    ssrs = values.get("ssrs")
    if isinstance(ssrs, list) and any(bool(ssr) for ssr in ssrs):
        return True
    return any(values.get(key) is True or values.get(key) == 1 for key in ("ssr1", "ssr2", "ssr3"))


def status_badge(values: Mapping[str, Any]) -> StatusBadge:
    if not values.get("enabled"):
        return StatusBadge("Off", "status-off")

    heating = is_heating(values)
    top = values.get("top")
    bottom = values.get("bottom")
    if top is not None and bottom is not None:
        top_wet = _is_one(top)
        bottom_wet = _is_one(bottom)
        if top_wet and not bottom_wet:
            return StatusBadge("Sensor error", "status-danger")
        if not top_wet and not bottom_wet:
            return StatusBadge("Empty", "status-danger")
        if heating:
            return StatusBadge("Heating", "status-warning")
        if top_wet and bottom_wet:
            return StatusBadge("Full", "status-info")
        return StatusBadge("Part full", "status-info")

    fallback = str(values.get("status") or ("Heating" if heating else "Idle"))
    if fallback in ("Error", "Empty", "Sensor error") or "fill" in fallback.lower():
        return StatusBadge(fallback, "status-danger")
    if heating:
        return StatusBadge("Heating", "status-warning")
    return StatusBadge(fallback, "status-info")


def fill_control(values: Mapping[str, Any]) -> FillControl:
    """Offer start while a non-full tank is idle, stop while it is filling."""
    if tank_state(values) not in (TankState.EMPTY, TankState.PART):
        return FillControl.NONE
    return FillControl.STOP if is_filling(values) else FillControl.START


def tank_content(values: Mapping[str, Any]) -> str:
    content = values.get("tank")
    if content is None:
        content = values.get("content")
    return "" if content is None else str(content)


def link_for(key: str, value: Any) -> str:
    if key == "localUrl":
        text = str(value or "")
        return text if text.startswith(("http://", "https://")) else f"http://{text}"
    if key == "ip":
        return f"http://{value}"
    return "#"


def page_title(prefix: str, values: Mapping[str, Any]) -> str:
    return f"{prefix} - {fmt_c2(values.get('temp1'))}˚C"


# ---------------------------------------------------------------------------
# HTML fragments
# ---------------------------------------------------------------------------


def _e(value: Any) -> str:
    return escape("" if value is None else str(value))


def _section_header(section_id: str, title: str, style: str) -> str:
    return (
        '<div class="text-center">'
        f'<h4 id="{section_id}-header" class="btn btn-{style} dropdown-toggle">{_e(title)} <span class="caret"></span></h4>'
        "</div>"
    )


def render_fill_controls(values: Mapping[str, Any]) -> str:
    control = fill_control(values)
    if control is FillControl.START:
        return '<button id="fillStart" class="btn btn-sm btn-success" type="button">Fill Tank</button>'
    if control is FillControl.STOP:
        return '<button id="fillStop" class="btn btn-sm btn-danger" type="button">Stop Fill</button>'
    return ""


def render_header(values: Mapping[str, Any], info: DeviceInfo) -> str:
    parts = [
        "<header>",
        f'<h1><b>{_e((info.name or PLACEHOLDER).upper())}</b><br>'
        f'<span id="temperature">{fmt_c2(values.get("temp1"))}</span>˚C</h1>',
        f"<p>{_e(info.product_name)}</p>",
    ]
    if info.shows_tank_features:
        parts.append(
            f'<p class="tankContent">Tank status: <b>{_e(tank_content(values))}</b> '
            f'<span id="fillControls">{render_fill_controls(values)}</span></p>'
        )
        parts.append(
            f'<h3>(Target temperature: <span id="targetTemperature">{fmt_c2(values.get("targetTemp"))}˚C</span>)</h3>'
        )
    parts.append("</header>")
    return "".join(parts)


def render_status(values: Mapping[str, Any]) -> str:
    badge = status_badge(values)
    checked = " checked" if values.get("enabled") else ""
    return (
        '<div class="section modules values"><div id="statusBox" class="form-check form-switch fs-2">'
        f'<input id="enabledToggle" class="form-check-input" type="checkbox"{checked}>'
        '<span id="statusLabel" class="status-label">'
        f'<span class="status-dot {badge.css_class}"></span>'
        f'<span class="status-text">{_e(badge.text)}</span>'
        "</span></div></div>"
    )


def _feedback_form(form_id: str, input_html: str, hint: str) -> str:
    return (
        f'<form id="{form_id}" class="card"><div class="mb-3">'
        f'<div id="{form_id}-feedback" class="alert" style="display:none"></div>'
        f'<div class="input-group">{input_html}<button class="btn btn-primary" type="submit">Submit</button></div>'
        f'<div class="text-center small-info">{hint}</div>'
        "</div></form>"
    )


def render_target_form(info: DeviceInfo) -> str:
    low = "" if info.min is None else f"{info.min:g}"
    high = "" if info.max is None else f"{info.max:g}"
    field = (
        '<input type="text" id="target" name="target" class="form-control" placeholder="Target temperature" />'
        '<span class="input-group-text">˚C</span>'
    )
    return (
        '<div class="section info">'
        + _section_header("set", "Set target temperature", "success")
        + _feedback_form("set", field, f"Values between {low}˚C and {high}˚C")
        + "</div>"
    )


def render_name_form(info: DeviceInfo) -> str:
    field = (
        f'<input type="text" id="nameInput" name="name" value="{_e(info.name or "")}" '
        'class="form-control" placeholder="Device name" />'
    )
    return (
        '<div class="section info">'
        + _section_header("name", "Device name", "success")
        + _feedback_form("name", field, "Device will reboot after saving")
        + "</div>"
    )


def render_firmware_form(info: DeviceInfo) -> str:
    return (
        '<div class="section info">'
        + _section_header("ota", "Firmware update", "warning")
        + '<form id="ota" class="card"><div class="mb-3">'
        f'<div class="small-info">Board version: <b id="otaBoard">{_e(info.board or "unknown")}</b></div>'
        '<input type="file" id="otaFile" accept=".bin,application/octet-stream" class="form-control" />'
        '<input type="text" id="otaVersion" class="form-control" placeholder="Optional version note (X-OTA-Version)" />'
        '<button class="btn btn-primary" type="submit">Upload and update</button>'
        '<div id="ota-feedback" class="alert" style="display:none"></div>'
        "</div></form></div>"
    )


def _info_entry(key: str, value: Any, info: DeviceInfo) -> str:
    label = LABELS.get(key, key)
    if key in ("localUrl", "ip"):
        return (
            f'<p class="key"><strong>{_e(label)}:</strong></p>'
            f'<p class="value">{_e(value)} <a href="{_e(link_for(key, value))}" class="btn btn-success">Go</a></p>'
        )
    if key == "version":
        return f'<p class="key"><strong>Version:</strong></p><p class="value" id="key-version">{_e(info.formatted_version)}</p>'
    if key in ("flashFree", "flashUsed", "flashTotal"):
        return f'<p class="key"><strong>{_e(label)}:</strong></p><p class="value" id="key-{key}">{fmt_mib_kib(value)}</p>'
    return f'<p class="key"><strong>{_e(label)}:</strong></p><p class="value" id="key-{_e(key)}">{_e(value)}</p>'


def render_info(values: Mapping[str, Any], info: DeviceInfo) -> str:
    product_keys = {"product", "productCode", "product_code", "productType", "type", "code", "desc"}
    entries: list[str] = []
    product_done = False
    for key, value in info.raw.items():
        if key in product_keys:
            # All product-ish keys collapse into one resolved "Product" row.
            if not product_done:
                entries.append(
                    f'<p class="key"><strong>Product:</strong></p><p class="value" id="key-product">{_e(info.product_name)}</p>'
                )
                product_done = True
            continue
        entries.append(_info_entry(key, value, info))

    return (
        '<div class="section info">'
        + _section_header("info", "System info", "warning")
        + '<div id="info" class="card">'
        f'<p class="key"><strong>Device temperature:</strong></p><p class="value" id="internalTemperature">{fmt_c2(values.get("int"))}˚C</p>'
        f'<p class="key"><strong>Device humidity:</strong></p><p class="value" id="internalHumidity">{fmt_pct1(values.get("intHumidity"))}%</p>'
        + "".join(entries)
        + "</div></div>"
    )


def render_modules(modules: Mapping[str, bool]) -> str:
    rows = []
    for key, enabled in modules.items():
        state = "enabled" if enabled else "disabled"
        rows.append(
            f'<p><span class="indicator {state}"><i>{state.capitalize()}</i></span>'
            f'<span class="name">{_e(LABELS.get(key, key))}</span></p>'
        )
    return (
        '<div class="section modules">'
        + _section_header("modules", "Available modules", "warning")
        + f'<div id="modules" class="card">{"".join(rows)}</div></div>'
    )


def render_file_list(entries: Iterable[FileEntry]) -> str:
    rows = []
    for entry in entries:
        delete = (
            f'<button type="button" class="btn btn-sm btn-outline-danger file-del" data-name="{_e(entry.name)}">Delete</button>'
            if entry.deletable
            else ""
        )
        rows.append(
            '<div class="file-row">'
            f'<a href="{_e(entry.path)}" class="btn btn-sm btn-outline-primary file-open" data-name="{_e(entry.name)}">{_e(entry.name)}</a>'
            f'<span class="file-meta">{_e(entry.storage)} • {fmt_size(entry.size)}</span>'
            f"{delete}</div>"
        )
    return "".join(rows) if rows else "No files available."


def render_page(values: Mapping[str, Any], info: DeviceInfo, modules: Mapping[str, bool]) -> str:
    sections = [render_header(values, info)]
    if info.shows_tank_features:
        sections.append(render_status(values))
        sections.append(render_target_form(info))
    sections.extend(
        [
            render_name_form(info),
            render_firmware_form(info),
            render_info(values, info),
            render_modules(modules),
            '<div class="section files">'
            + _section_header("files", "Files", "warning")
            + '<div id="files" class="card"><div id="filesList" class="file-list small-info">Open to load files…</div></div></div>',
            '<div class="footer section text-center"><p>Last update: <span id="lastUpdate"></span></p></div>',
        ]
    )
    return f'<div id="content">{"".join(sections)}</div><div id="error"></div>'


def render_error_page() -> str:
    return f'<p style="color:red;">{LOAD_ERROR_TEXT}</p>'
