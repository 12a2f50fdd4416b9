"""Unit tests for the business name CSV reader."""

from __future__ import annotations

from pathlib import Path

import pytest

from vendor_check.config import CrawlerConfig
from vendor_check.csv_reader import BusinessCSVReader


@pytest.fixture()
def reader() -> BusinessCSVReader:
    return BusinessCSVReader(CrawlerConfig())


def write_csv(tmp_path: Path, content: str) -> str:
    path = tmp_path / "businesses.csv"
    path.write_text(content, encoding="utf-8")
    return str(path)


class TestReadBusinessNames:
    def test_reads_names_in_order(self, reader: BusinessCSVReader, tmp_path: Path) -> None:
        path = write_csv(tmp_path, "business_name,state\nAcme LLC,TX\nGlobex Corporation,CA\n")
        assert reader.read_business_names(path) == ["Acme LLC", "Globex Corporation"]

    def test_skips_blank_and_duplicate_names(self, reader: BusinessCSVReader, tmp_path: Path) -> None:
        path = write_csv(tmp_path, "business_name,state\nAcme LLC,TX\n  ,NY\nacme llc ,TX\nInitech,TX\n")
        assert reader.read_business_names(path) == ["Acme LLC", "Initech"]

    def test_semicolon_delimiter(self, reader: BusinessCSVReader, tmp_path: Path) -> None:
        path = write_csv(tmp_path, "business_name;state\n\"Smith, Jones & Co\";TX\n")
        assert reader.read_business_names(path) == ["Smith, Jones & Co"]

    def test_missing_file(self, reader: BusinessCSVReader, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            reader.read_business_names(str(tmp_path / "missing.csv"))


class TestValidateCsvFormat:
    def test_valid(self, reader: BusinessCSVReader, tmp_path: Path) -> None:
        assert reader.validate_csv_format(write_csv(tmp_path, "business_name\nAcme LLC\n"))

    def test_missing_column(self, reader: BusinessCSVReader, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="business_name"):
            reader.validate_csv_format(write_csv(tmp_path, "company,state\nAcme LLC,TX\n"))

    def test_empty_file(self, reader: BusinessCSVReader, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="header"):
            reader.validate_csv_format(write_csv(tmp_path, ""))
