"""Tests for Pydantic model parsing with BevvyBaseModel."""

from __future__ import annotations

import pytest

from pybevvy.models.command import CommandResult
from pybevvy.models.device_info import DeviceInfo, format_version, product_name, resolve_product_code
from pybevvy.models.files import FileEntry, build_file_path


class TestProductCode:
    @pytest.mark.parametrize(
        ("info", "expected"),
        [
            ({"product": "hlt"}, "HLT"),
            ({"productCode": " ktl "}, "KTL"),
            ({"type": "", "code": "CO2"}, "CO2"),
            ({"product": "Hot liquor tank", "desc": "HLT controller"}, "HLT"),
            ({"desc": "Fermenter with chiller"}, "FBT"),
            ({"desc": "Underback pump"}, "UBK"),
            ({"desc": "Something else"}, "UNK"),
            ({}, "UNK"),
        ],
    )
    def test_resolve(self, info: dict, expected: str) -> None:
        assert resolve_product_code(info) == expected

    def test_none_info(self) -> None:
        assert resolve_product_code(None) == "UNK"

    def test_names(self) -> None:
        assert product_name("KTL") == "Kettle"
        assert product_name("XYZ") == "Unknown"


class TestVersion:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("v1.2.3", "1.2.3"), (7, "0.0.7"), ("1045", "0.4.5"), ("", "n/a"), (None, "n/a")],
    )
    def test_format_version(self, value: object, expected: str) -> None:
        assert format_version(value) == expected


class TestDeviceInfo:
    def test_camel_case_keys_and_raw(self) -> None:
        info = DeviceInfo.model_validate(
            {
                "name": "kettle",
                "product": "KTL",
                "localUrl": "kettle.local",
                "flashFree": "1024",
                "flashTotal": True,
                "max": "100",
                "extra": "kept",
            }
        )

        assert info.local_url == "kettle.local"
        assert info.flash_free == 1024
        assert info.flash_total is None
        assert info.max == 100.0
        assert info.raw["extra"] == "kept"
        assert info.shows_tank_features

    def test_non_tank_product(self) -> None:
        info = DeviceInfo.model_validate({"desc": "Chiller unit"})
        assert info.product_code == "CHL"
        assert info.product_name == "Chiller"
        assert not info.shows_tank_features

    def test_none_values_use_defaults(self) -> None:
        info = DeviceInfo.model_validate({"name": None, "min": None})
        assert info.name is None
        assert info.raw == {"name": None, "min": None}


class TestCommandResult:
    def test_rejection_fields(self) -> None:
        result = CommandResult.model_validate({"success": False, "message": "out of range"})
        assert result.success is False
        assert result.message == "out of range"
        assert result.target is None

    def test_missing_success_means_rejected(self) -> None:
        assert CommandResult.model_validate({"target": "55"}).success is False


class TestFiles:
    def test_path_encoding(self) -> None:
        assert build_file_path("log.txt") == "/files/log.txt"
        assert build_file_path("dir/a b&c.txt") == "/files/dir/a%20b%26c.txt"
        assert build_file_path("it's(1).csv") == "/files/it's(1).csv"

    @pytest.mark.parametrize(
        ("name", "storage", "deletable"),
        [
            ("log.txt", "flash", True),
            ("HEATING.txt", "flash", True),
            ("log.txt", "sd", False),
            ("other.txt", "flash", False),
        ],
    )
    def test_deletable(self, name: str, storage: str, deletable: bool) -> None:
        assert FileEntry(name=name, storage=storage).deletable is deletable
