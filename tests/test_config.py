"""Unit tests for configuration loading and the data model helpers."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from vendor_check.config import CrawlerConfig
from vendor_check.config_loader import SAMPLE_CONFIG, ConfigLoader
from vendor_check.models import CrawlReport, TargetDefinition, TargetOutcome


class TestCrawlerConfig:
    """Defaults, YAML and environment layers."""

    def test_defaults(self) -> None:
        cfg = CrawlerConfig()
        assert cfg.page_load_timeout == 60
        assert cfg.locale == "en-US"
        assert cfg.timezone_id == "America/Chicago"
        assert cfg.viewport == {"width": 1200, "height": 1200}
        assert not cfg.has_proxy()

    def test_sample_config_applies(self) -> None:
        cfg = CrawlerConfig()
        cfg.update_from_yaml(yaml.safe_load(SAMPLE_CONFIG))

        assert cfg.result_wait_timeout == 10
        assert cfg.settle_wait == 1.5
        assert cfg.detect_blocks_per_target is True
        assert cfg.max_concurrent_runs == 2
        assert not cfg.has_proxy()

    def test_yaml_overrides(self) -> None:
        cfg = CrawlerConfig()
        cfg.update_from_yaml({
            "timeouts": {"page_load": 30},
            "browser": {"headless": False, "viewport": {"width": 1440}, "enable_stealth": True},
            "proxy": {"server": "http://proxy:8000", "username": "u", "password": "p"},
            "fallback": {"enabled": False},
        })

        assert cfg.page_load_timeout == 30
        assert cfg.browser_headless is False
        assert cfg.viewport == {"width": 1440, "height": 1200}
        assert cfg.enable_stealth is True
        assert cfg.has_proxy()
        assert cfg.enable_secondary_fallback is False

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VENDOR_CHECK_PAGE_TIMEOUT", "45")
        monkeypatch.setenv("VENDOR_CHECK_HEADLESS", "false")
        monkeypatch.setenv("VENDOR_CHECK_PROXY_SERVER", "http://proxy:8000")
        monkeypatch.setenv("VENDOR_CHECK_PROXY_USERNAME", "user")
        monkeypatch.setenv("VENDOR_CHECK_PROXY_PASSWORD", "pass")
        cfg = CrawlerConfig()
        cfg.update_from_env()

        assert cfg.page_load_timeout == 45
        assert cfg.browser_headless is False
        assert cfg.proxy.to_playwright() == {"server": "http://proxy:8000", "username": "user", "password": "pass"}

    def test_invalid_env_value_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VENDOR_CHECK_PAGE_TIMEOUT", "soon")
        cfg = CrawlerConfig()
        cfg.update_from_env()
        assert cfg.page_load_timeout == 60

    def test_validate_clamps(self) -> None:
        cfg = CrawlerConfig()
        cfg.jpeg_quality = 150
        cfg.page_load_timeout = 1
        cfg.max_concurrent_runs = 0

        assert cfg.validate() is True
        assert cfg.jpeg_quality == 100
        assert cfg.page_load_timeout == 5
        assert cfg.max_concurrent_runs == 1


class TestConfigLoader:
    def test_load_explicit_path(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.yaml"
        path.write_text("timeouts:\n  page_load: 20\n", encoding="utf-8")

        assert ConfigLoader.load_config(str(path)) == {"timeouts": {"page_load": 20}}

    def test_missing_explicit_path_returns_empty(self, tmp_path: Path) -> None:
        assert ConfigLoader.load_config(str(tmp_path / "nope.yaml")) == {}

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.yaml"
        path.write_text("targets: [unclosed\n", encoding="utf-8")

        with pytest.raises(ValueError):
            ConfigLoader.load_config(str(path))

    def test_sample_config_round_trip(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        ConfigLoader.create_sample_config(path)

        assert ConfigLoader.load_config(str(path)) == yaml.safe_load(SAMPLE_CONFIG)

    def test_load_targets_from_sample(self) -> None:
        targets = ConfigLoader.load_targets(yaml.safe_load(SAMPLE_CONFIG))

        assert [t.name for t in targets] == ["SAM.gov Exclusions", "OFAC Sanctions List", "OpenCorporates"]
        assert targets[0].requires_match
        assert targets[0].search is None
        ofac = targets[1].search
        assert ofac.input_candidates() == [
            "#ctl00_MainContent_txtLastName", "input[name*='LastName']", "input[type='text']"]
        assert ofac.submit_selectors[0] == "#ctl00_MainContent_btnSearch"
        assert not targets[2].requires_match

    def test_missing_keys_raise(self) -> None:
        with pytest.raises(ValueError, match="screenshot_file_name"):
            ConfigLoader.load_targets({"targets": [{"name": "x", "url_template": "https://x.example/"}]})

    def test_duplicate_names_raise(self) -> None:
        entry = {"name": "dup", "url_template": "https://x.example/", "screenshot_file_name": "x.png"}
        with pytest.raises(ValueError, match="unique"):
            ConfigLoader.load_targets({"targets": [entry, dict(entry)]})

    def test_search_without_input_raises(self) -> None:
        entry = {"name": "x", "url_template": "https://x.example/", "screenshot_file_name": "x.png",
                 "search": {"submit_selectors": ["button"]}}
        with pytest.raises(ValueError, match="input_selector"):
            ConfigLoader.load_targets({"targets": [entry]})

    def test_no_targets(self) -> None:
        assert ConfigLoader.load_targets({}) == []


class TestModels:
    def test_build_url_quotes_business_name(self) -> None:
        target = TargetDefinition("x", "https://x.example/search?q={business_name}", "x.png")
        assert target.build_url("  Acme & Sons LLC ") == "https://x.example/search?q=Acme+%26+Sons+LLC"

    def test_report_counts_follow_outcomes(self) -> None:
        report = CrawlReport("Acme LLC")
        report.add(TargetOutcome("a", "https://a.example/", True, match_found=True))
        report.add(TargetOutcome("b", "https://b.example/", False, error="Timeout"))

        assert report.total_processed == 2
        assert report.successful == 1
        assert report.failed == 1
        assert report.to_dict()["outcomes"][1]["error"] == "Timeout"
