"""Data models for Bevvy device responses."""

from pybevvy.models._base import BevvyBaseModel, LenientFloat, LenientInt, LenientStr
from pybevvy.models.command import CommandResult
from pybevvy.models.device_info import DeviceInfo, format_version, product_name, resolve_product_code
from pybevvy.models.files import FileEntry, build_file_path

__all__ = [
    "BevvyBaseModel",
    "CommandResult",
    "DeviceInfo",
    "FileEntry",
    "LenientFloat",
    "LenientInt",
    "LenientStr",
    "build_file_path",
    "format_version",
    "product_name",
    "resolve_product_code",
]
