"""Client configuration for pybevvy."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pybevvy._constants import BASE_URL, DEFAULT_POLL_INTERVAL, DEFAULT_REQUEST_TIMEOUT
from pybevvy.exceptions import BevvyConfigError


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise BevvyConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class FeedbackTiming:
    """Delays (seconds) used by form feedback before reverting UI state.

    Parameters
    ----------
    success_revert : float
        How long an input stays marked valid after an accepted command.
    error_revert : float
        How long an input stays marked invalid after a rejected command.
    feedback_hide : float
        How long the inline feedback message stays visible.
    """

    success_revert: float = 1.5
    error_revert: float = 2.0
    feedback_hide: float = 2.0


@dataclasses.dataclass(frozen=True)
class BevvyConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Device root URL, e.g. ``"http://192.168.4.1"``.
    poll_interval : float
        Seconds between telemetry polls.
    request_timeout : float
        Seconds before a telemetry request is cancelled and counted as a
        timeout.
    title_prefix : str
        Prefix of the page title (``"<prefix> - 21.46˚C"``).
    feedback : FeedbackTiming
        Form feedback delays.
    """

    base_url: str = BASE_URL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    title_prefix: str = "Bevvy"
    feedback: FeedbackTiming = dataclasses.field(default_factory=FeedbackTiming)

    def __post_init__(self) -> None:
        if not self.base_url:
            raise BevvyConfigError("base_url must be non-empty")
        if self.poll_interval <= 0:
            raise BevvyConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.request_timeout <= 0:
            raise BevvyConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        # Normalise trailing slash so endpoint paths can be appended directly.
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> BevvyConfig:
        """Create configuration from environment variables.

        Reads ``BEVVY_BASE_URL``, ``BEVVY_POLL_INTERVAL``,
        ``BEVVY_REQUEST_TIMEOUT`` and ``BEVVY_TITLE_PREFIX``. Explicit
        keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        base_url = env.get("BEVVY_BASE_URL")
        if base_url is not None:
            config_kwargs["base_url"] = base_url

        title_prefix = env.get("BEVVY_TITLE_PREFIX")
        if title_prefix is not None:
            config_kwargs["title_prefix"] = title_prefix

        _ENV_FLOAT_MAP = {
            "BEVVY_POLL_INTERVAL": "poll_interval",
            "BEVVY_REQUEST_TIMEOUT": "request_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        feedback_overrides = overrides.pop("feedback", None)
        if isinstance(feedback_overrides, dict):
            config_kwargs["feedback"] = FeedbackTiming(**feedback_overrides)
        elif isinstance(feedback_overrides, FeedbackTiming):
            config_kwargs["feedback"] = feedback_overrides

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
