"""Static device metadata from ``/info``."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pybevvy._constants import PRODUCT_KEYS, PRODUCT_KEYWORDS, PRODUCT_NAMES, TANK_PRODUCTS
from pybevvy.models._base import BevvyBaseModel, LenientFloat, LenientInt, LenientStr

_PRODUCT_CODE_RE = re.compile(r"^[A-Z0-9]{1,4}$")


def resolve_product_code(info: Mapping[str, Any] | None) -> str:
    """Return the three-letter product code for a device.

    The first non-empty product key is used when it looks like a code
    (up to four alphanumerics); otherwise the description is searched for
    known keywords, falling back to ``"UNK"``.
    """
    info = info or {}
    raw: Any = None
    for key in PRODUCT_KEYS:
        raw = info.get(key)
        if raw:
            break
    code = ("" if raw is None else str(raw)).strip().upper()
    if _PRODUCT_CODE_RE.match(code):
        return code

    desc = str(info.get("desc") or "").lower()
    for keywords, keyword_code in PRODUCT_KEYWORDS:
        if any(keyword in desc for keyword in keywords):
            return keyword_code
    return "UNK"


def product_name(code: str) -> str:
    return PRODUCT_NAMES.get(code, PRODUCT_NAMES["UNK"])


def format_version(value: Any) -> str:
    """Render a firmware version as ``a.b.c`` from its last three digits.

    ``"v1.2.3"`` -> ``"1.2.3"``, ``7`` -> ``"0.0.7"``, ``"1045"`` -> ``"0.4.5"``.
    """
    text = "" if value is None else str(value).strip()
    digits = re.sub(r"[^0-9]", "", text)
    if not digits:
        return "n/a"
    digits = digits[-3:] if len(digits) >= 3 else digits.rjust(3, "0")
    return f"{digits[0]}.{digits[1]}.{digits[2]}"


class DeviceInfo(BevvyBaseModel):
    """Device metadata.

    Keys the model does not know about are still available through
    ``raw`` and are listed by the info panel.
    """

    name: LenientStr = None
    desc: LenientStr = None
    version: LenientStr = None
    manufacturer: LenientStr = None
    id: LenientStr = None
    ip: LenientStr = None
    local_url: LenientStr = None
    board: LenientStr = None
    min: LenientFloat = None
    max: LenientFloat = None
    flash_free: LenientInt = None
    flash_used: LenientInt = None
    flash_total: LenientInt = None

    @property
    def product_code(self) -> str:
        return resolve_product_code(self.raw)

    @property
    def product_name(self) -> str:
        return product_name(self.product_code)

    @property
    def shows_tank_features(self) -> bool:
        """Tank status, enable toggle and target form apply to tank products only."""
        return self.product_code in TANK_PRODUCTS

    @property
    def formatted_version(self) -> str:
        return format_version(self.version)
