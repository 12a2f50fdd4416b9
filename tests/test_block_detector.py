"""Unit tests for block detection."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeResponse
from vendor_check.block_detector import BlockDetector, classify_signals, has_waf_headers, normalize_headers

LONG_TEXT = "Company registry search results. " * 30


class TestClassifySignals:
    """Tiered classification from collected signals."""

    @pytest.mark.parametrize("status", [401, 403, 407, 429, 503])
    def test_block_status_alone_is_blocked(self, status: int) -> None:
        verdict = classify_signals(status, {}, LONG_TEXT, "Welcome", text_length=len(LONG_TEXT), rich_count=10)
        assert verdict.blocked
        assert verdict.matched_hard_signal

    def test_access_denied_text_is_blocked_regardless_of_status(self) -> None:
        verdict = classify_signals(200, {}, "Access Denied", "")
        assert verdict.blocked
        assert verdict.matched_hard_signal

    def test_akamai_reference_id_is_blocked(self) -> None:
        body = "You don't have permission to access this server. Reference #18.7a3e1002.1697040000.1f2a3b"
        assert classify_signals(200, {}, body, "").blocked

    def test_forbidden_title_is_blocked(self) -> None:
        assert classify_signals(200, {}, "", "403 Forbidden").blocked

    def test_long_plain_page_is_clear(self) -> None:
        verdict = classify_signals(200, {}, LONG_TEXT, "Results", text_length=len(LONG_TEXT.strip()))
        assert not verdict.blocked
        assert verdict.score == 0

    def test_waf_header_on_thin_page_is_blocked(self) -> None:
        verdict = classify_signals(200, {"cf-ray": "7d1f2a3b4c5d-DFW"}, "Just a moment...", "", text_length=16)
        assert verdict.blocked
        assert verdict.score == 1
        assert not verdict.matched_hard_signal

    def test_real_content_offsets_one_soft_signal(self) -> None:
        verdict = classify_signals(200, {"server": "cloudflare"}, LONG_TEXT, "Results",
                                   text_length=len(LONG_TEXT.strip()))
        assert not verdict.blocked

    def test_rich_media_counts_as_real_content(self) -> None:
        verdict = classify_signals(200, {"x-datadome": "protected"}, "Gallery", "Gallery", text_length=7, rich_count=4)
        assert not verdict.blocked

    def test_two_soft_signals_survive_offset(self) -> None:
        body = LONG_TEXT + " Please complete the captcha to continue."
        verdict = classify_signals(200, {"cf-ray": "abc"}, body, "", text_length=len(body))
        assert verdict.blocked
        assert verdict.score == 1


class TestHeaders:
    def test_normalize_lowercases_names(self) -> None:
        assert normalize_headers({"CF-Ray": "1", "Server": "x"}) == {"cf-ray": "1", "server": "x"}

    def test_normalize_tolerates_none(self) -> None:
        assert normalize_headers(None) == {}

    def test_cloudfront_error_value(self) -> None:
        assert has_waf_headers({"x-cache": "Error from cloudfront"})
        assert not has_waf_headers({"x-cache": "Hit from cloudfront"})


class TestBlockDetector:
    """Signal collection from a live page."""

    @pytest.mark.anyio
    async def test_block_status_skips_page_reads(self) -> None:
        page = MagicMock()
        page.evaluate = AsyncMock()
        page.title = AsyncMock()

        verdict = await BlockDetector().detect(page, FakeResponse(403))

        assert verdict.blocked
        page.evaluate.assert_not_awaited()
        page.title.assert_not_awaited()

    @pytest.mark.anyio
    async def test_reads_text_and_title(self) -> None:
        page = MagicMock()
        page.evaluate = AsyncMock(return_value={"text": "Request blocked.", "textLength": 16, "richCount": 0})
        page.title = AsyncMock(return_value="Error")

        verdict = await BlockDetector().detect(page, FakeResponse(200))

        assert verdict.blocked

    @pytest.mark.anyio
    async def test_page_read_errors_are_tolerated(self) -> None:
        page = MagicMock()
        page.evaluate = AsyncMock(side_effect=RuntimeError("Execution context was destroyed"))
        page.title = AsyncMock(side_effect=RuntimeError("Target closed"))

        verdict = await BlockDetector().detect(page, None)

        assert not verdict.blocked
