"""pybevvy - Async Python client and live dashboard for Bevvy brewing controllers."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pybevvy")
except PackageNotFoundError:
    __version__ = "0+local"
from pybevvy.client import BevvyClient
from pybevvy.config import BevvyConfig, FeedbackTiming
from pybevvy.dashboard import Dashboard, ValuesView, ViewReconciler
from pybevvy.exceptions import (
    BevvyCommandRejectedError,
    BevvyConfigError,
    BevvyDecodeError,
    BevvyError,
    BevvyFirmwareError,
    BevvyTransportError,
)
from pybevvy.forms import FeedbackLevel, FormController, FormState, InputValidity
from pybevvy.models import CommandResult, DeviceInfo, FileEntry
from pybevvy.poller import CancelToken, PollErrorKind, PollState, TelemetryPoller

__all__ = [
    "__version__",
    "BevvyClient",
    "BevvyCommandRejectedError",
    "BevvyConfig",
    "BevvyConfigError",
    "BevvyDecodeError",
    "BevvyError",
    "BevvyFirmwareError",
    "BevvyTransportError",
    "CancelToken",
    "CommandResult",
    "Dashboard",
    "DeviceInfo",
    "FeedbackLevel",
    "FeedbackTiming",
    "FileEntry",
    "FormController",
    "FormState",
    "InputValidity",
    "PollErrorKind",
    "PollState",
    "TelemetryPoller",
    "ValuesView",
    "ViewReconciler",
]
