"""Base model for Bevvy device responses.

Every response model inherits from :class:`BevvyBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase device keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` values so the
  field default is used.
* A ``raw`` dict that captures the original payload.

Firmware builds differ in which keys they send and how they type them, so
numeric fields use lenient annotated types that degrade to ``None``
instead of failing validation.
"""

from __future__ import annotations

import math
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def _lenient_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(result) else result


def _lenient_int(value: Any) -> int | None:
    result = _lenient_float(value)
    return int(result) if result is not None and math.isfinite(result) else None


def _lenient_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value).strip()


LenientFloat = Annotated[float | None, BeforeValidator(_lenient_float)]
LenientInt = Annotated[int | None, BeforeValidator(_lenient_int)]
LenientStr = Annotated[str | None, BeforeValidator(_lenient_str)]


class BevvyBaseModel(BaseModel):
    """Base for Bevvy device response models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original device response dict."""

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Drop ``None`` values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned = {key: value for key, value in values.items() if value is not None}
        # Keep an explicit raw= from kwargs construction.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
