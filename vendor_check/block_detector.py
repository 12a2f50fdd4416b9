"""
Block detection module.
Decides whether a navigation landed on a page that refuses automated
access. Hard signals short-circuit; weaker hints are scored and offset
when the page clearly rendered real content.
"""

import logging
import re
from typing import Any, Dict, Optional

from playwright.async_api import Page, Response

from vendor_check.models import BlockVerdict

logger = logging.getLogger(__name__)


BLOCK_STATUS_CODES = frozenset({401, 403, 407, 429, 503})

HARD_TEXT_SIGNALS = [
    re.compile(r"access\s*denied", re.IGNORECASE),
    re.compile(r"access has been denied", re.IGNORECASE),
    re.compile(r"you\s*don'?t\s*have\s*permission\s*to\s*access", re.IGNORECASE),
    re.compile(r"request\s*blocked", re.IGNORECASE),
    re.compile(r"reference\s*#\s*[0-9a-f-]{6,}", re.IGNORECASE),  # Akamai/CloudFront reference id
    re.compile(r"attention\s*required", re.IGNORECASE),
    re.compile(r"unusual\s*traffic", re.IGNORECASE),
]

HARD_TITLE_SIGNAL = re.compile(r"access\s*denied|forbidden", re.IGNORECASE)

SOFT_TEXT_SIGNAL = re.compile(r"\bforbidden\b|not\s*authorized|captcha", re.IGNORECASE)

# WAF/CDN fingerprints: header present, or header value matching a pattern
WAF_HEADER_NAMES = frozenset({
    'cf-ray',
    'x-akamai-session-info',
    'x-distil',
    'x-perimeterx',
    'x-datadome',
    'x-sucuri-id',
})
WAF_HEADER_VALUES = {
    'server': re.compile(r"cloudflare", re.IGNORECASE),
    'x-cache': re.compile(r"error from cloudfront", re.IGNORECASE),
}

REAL_CONTENT_TEXT_LENGTH = 500
REAL_CONTENT_RICH_ELEMENTS = 4

PAGE_SIGNALS_SCRIPT = """
() => {
    const body = document.body;
    const text = body ? (body.innerText || '') : '';
    return {
        text: text,
        textLength: text.trim().length,
        richCount: document.querySelectorAll('img, video, canvas, svg').length,
    };
}
"""


def normalize_headers(headers: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Lower-case header names so lookups are case-insensitive."""
    try:
        return {str(k).lower(): str(v) for k, v in (headers or {}).items()}
    except (AttributeError, TypeError):
        return {}


def has_waf_headers(headers: Dict[str, str]) -> bool:
    if any(name in headers for name in WAF_HEADER_NAMES):
        return True
    return any(pattern.search(headers.get(name, '')) for name, pattern in WAF_HEADER_VALUES.items())


def classify_signals(status: int, headers: Dict[str, str], body_text: str, title: str,
                     text_length: int = 0, rich_count: int = 0) -> BlockVerdict:
    """
    Classify one navigation from already-collected signals.

    Args:
        status: HTTP status of the main navigation response (0 if unknown)
        headers: Lower-cased response headers
        body_text: Visible text of the rendered page
        title: Document title
        text_length: Length of the trimmed visible text
        rich_count: Number of img/video/canvas/svg elements

    Returns:
        BlockVerdict
    """
    if status in BLOCK_STATUS_CODES:
        return BlockVerdict(True, 0, True, f"status {status}")

    for pattern in HARD_TEXT_SIGNALS:
        if pattern.search(body_text or ''):
            return BlockVerdict(True, 0, True, f"page text matches '{pattern.pattern}'")

    if HARD_TITLE_SIGNAL.search(title or ''):
        return BlockVerdict(True, 0, True, f"title '{title}'")

    score = 0
    reasons = []
    if SOFT_TEXT_SIGNAL.search(body_text or ''):
        score += 1
        reasons.append("forbidden/captcha text")
    if has_waf_headers(headers):
        score += 1
        reasons.append("WAF/CDN headers")

    if text_length > REAL_CONTENT_TEXT_LENGTH or rich_count >= REAL_CONTENT_RICH_ELEMENTS:
        score = max(0, score - 1)
        reasons.append("real content rendered")

    return BlockVerdict(score >= 1, score, False, ", ".join(reasons))


class BlockDetector:
    """Collects block signals from a live page and classifies them."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    async def detect(self, page: Page, response: Optional[Response]) -> BlockVerdict:
        """
        Classify the current page state.

        Args:
            page: Page after navigation
            response: Main navigation response, or None if Playwright gave none

        Returns:
            BlockVerdict
        """
        status = 0
        headers = {}
        if response is not None:
            status = response.status or 0
            headers = normalize_headers(response.headers)

        # Status alone decides; skip reading the page
        if status in BLOCK_STATUS_CODES:
            verdict = classify_signals(status, headers, '', '')
            self.logger.info(f"🔍 Block detection: blocked ({verdict.reason})")
            return verdict

        signals = {'text': '', 'textLength': 0, 'richCount': 0}
        try:
            signals = await page.evaluate(PAGE_SIGNALS_SCRIPT) or signals
        except Exception as e:
            self.logger.debug(f"Could not read page text for block detection: {e}")

        title = ''
        try:
            title = await page.title() or ''
        except Exception as e:
            self.logger.debug(f"Could not read page title for block detection: {e}")

        verdict = classify_signals(
            status,
            headers,
            signals.get('text', ''),
            title,
            text_length=signals.get('textLength', 0),
            rich_count=signals.get('richCount', 0),
        )
        if verdict.blocked:
            self.logger.info(f"🔍 Block detection: blocked (score={verdict.score}, {verdict.reason})")
        else:
            self.logger.info(f"🔍 Block detection: clear (score={verdict.score})")
        return verdict
