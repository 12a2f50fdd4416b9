"""Unit tests for the command line entry point and utilities."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from vendor_check.main import USAGE, build_log_file, main, parse_args
from vendor_check.utils import print_summary, save_report_to_json, setup_logging


class TestParseArgs:
    def test_business_name_and_config(self) -> None:
        args = parse_args(["Acme LLC", "--config", "custom.yaml"])
        assert args["business_name"] == "Acme LLC"
        assert args["config"] == "custom.yaml"
        assert args["csv"] is None
        assert args["command"] is None

    def test_csv(self) -> None:
        assert parse_args(["--csv", "names.csv"])["csv"] == "names.csv"

    @pytest.mark.parametrize("argv", [["--config"], ["--bogus"], ["Acme", "Globex"]])
    def test_invalid(self, argv) -> None:
        with pytest.raises(ValueError):
            parse_args(argv)


class TestMain:
    def test_help(self, capsys: pytest.CaptureFixture) -> None:
        main(["--help"])
        assert USAGE.strip() in capsys.readouterr().out

    def test_sample_config(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        main(["--sample-config"])
        assert "targets:" in (tmp_path / "config.yaml").read_text(encoding="utf-8")

    def test_bad_arguments_exit(self) -> None:
        with pytest.raises(SystemExit) as excinfo:
            main(["--config"])
        assert excinfo.value.code == 2


class TestUtils:
    def test_build_log_file_default(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.chdir(tmp_path)
        assert build_log_file({}, "20240101_120000") == str(Path("logs") / "vendor_check_20240101_120000.log")
        assert (tmp_path / "logs").is_dir()

    def test_setup_logging_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "run.log"
        logger = setup_logging("DEBUG", str(log_file))
        try:
            assert logger.name == "vendor_check"
            assert logger.level == logging.DEBUG
            assert len(logger.handlers) == 2
        finally:
            for handler in logger.handlers[:]:
                handler.close()
                logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)

    @pytest.mark.anyio
    async def test_save_report_to_json(self, tmp_path: Path) -> None:
        report = {"businessName": "Acme LLC", "totalProcessed": 0, "successful": 0, "failed": 0, "outcomes": []}
        path = tmp_path / "report.json"

        await save_report_to_json(report, str(path))

        assert json.loads(path.read_text(encoding="utf-8")) == report

    def test_print_summary(self, capsys: pytest.CaptureFixture) -> None:
        print_summary({
            "businessName": "Acme LLC",
            "totalProcessed": 1,
            "successful": 0,
            "failed": 1,
            "outcomes": [{"targetName": "SAM", "url": "https://sam.example/", "success": False,
                          "matchFound": False, "screenshotPath": "shots/sam_ERROR.png", "error": "Timeout"}],
        })
        out = capsys.readouterr().out
        assert "Acme LLC" in out
        assert "error: Timeout" in out
