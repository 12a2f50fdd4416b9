"""Vendor check test configuration: shared fixtures and fake browser objects."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from vendor_check.config import CrawlerConfig


# ---------------------------------------------------------------------------
# Async backend
# ---------------------------------------------------------------------------


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------


@pytest.fixture()
def config(tmp_path: Path) -> CrawlerConfig:
    """A ``CrawlerConfig`` with every wait set to zero and output under tmp_path."""
    cfg = CrawlerConfig()
    cfg.wait_after_load = 0
    cfg.settle_wait = 0
    cfg.proxy_settle_wait = 0
    cfg.click_settle_wait = 0
    cfg.fallback_settle_wait = 0
    cfg.output_base_dir = str(tmp_path / "output")
    return cfg


# ---------------------------------------------------------------------------
# Fake Playwright objects
# ---------------------------------------------------------------------------


class FakeResponse:
    def __init__(self, status: int = 200, headers: Optional[Dict[str, str]] = None):
        self.status = status
        self.headers = headers or {}


class FakeElement:
    """Element handle with text, visibility and scoped children."""

    def __init__(self, text: str = "", visible: bool = True, children: Optional[Dict[str, "FakeElement"]] = None):
        self.text = text
        self.visible = visible
        self.children = children or {}
        self.clicks = 0
        self.filled: Optional[str] = None
        self.pressed: List[str] = []

    async def inner_text(self) -> str:
        return self.text

    async def is_visible(self) -> bool:
        return self.visible

    async def click(self, **kwargs: Any) -> None:
        self.clicks += 1

    async def fill(self, value: str) -> None:
        self.filled = value

    async def press(self, key: str) -> None:
        self.pressed.append(key)

    async def query_selector(self, selector: str) -> Optional["FakeElement"]:
        return self.children.get(selector)


class FakePage:
    """
    Page double for the orchestrator and capture wrapper.

    ``rows`` maps a URL to ``{selector: [FakeElement, ...]}`` so each target
    can render different result rows; ``no_results`` lists URLs on which
    no result container ever appears.
    """

    def __init__(self, status: int = 200, headers: Optional[Dict[str, str]] = None,
                 elements: Optional[Dict[str, FakeElement]] = None,
                 rows: Optional[Dict[str, Dict[str, List[FakeElement]]]] = None,
                 no_results: Optional[List[str]] = None, goto_error: Optional[Exception] = None,
                 html: str = "<html><body>ok</body></html>", signals: Optional[Dict[str, Any]] = None,
                 title: str = "Search"):
        self.url = "about:blank"
        self.status = status
        self.headers = headers or {}
        self.elements = elements or {}
        self.rows = rows or {}
        self.no_results = set(no_results or [])
        self.goto_error = goto_error
        self.html = html
        self.signals = signals or {"text": "x" * 800, "textLength": 800, "richCount": 0}
        self.title_text = title
        self.visited: List[str] = []
        self.screenshots: List[Optional[str]] = []
        self.viewport: Optional[Dict[str, int]] = None

    async def goto(self, url: str, **kwargs: Any) -> FakeResponse:
        self.visited.append(url)
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url
        return FakeResponse(self.status, self.headers)

    async def wait_for_load_state(self, state: str = "load", **kwargs: Any) -> None:
        return None

    async def wait_for_url(self, url: Any, **kwargs: Any) -> None:
        raise PlaywrightTimeoutError("url did not change")

    async def wait_for_selector(self, selector: str, **kwargs: Any) -> FakeElement:
        if self.url in self.no_results:
            raise PlaywrightTimeoutError(f"Timeout waiting for {selector}")
        return FakeElement()

    async def query_selector(self, selector: str) -> Optional[FakeElement]:
        return self.elements.get(selector)

    async def query_selector_all(self, selector: str) -> List[FakeElement]:
        return list(self.rows.get(self.url, {}).get(selector, []))

    async def screenshot(self, path: Optional[str] = None, **kwargs: Any) -> bytes:
        self.screenshots.append(path)
        return b"\xff\xd8fake-jpeg"

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return self.signals

    async def eval_on_selector_all(self, selector: str, script: str) -> List[str]:
        if selector.startswith("link"):
            return ["https://cdn.example/site.css"]
        return ["body { margin: 0 }"]

    async def title(self) -> str:
        return self.title_text

    async def content(self) -> str:
        return self.html

    async def set_viewport_size(self, size: Dict[str, int]) -> None:
        self.viewport = size


class FakeSession:
    """Session double that counts ``close`` calls instead of ignoring repeats."""

    def __init__(self, page: FakePage, use_proxy: bool = False):
        self.page = page
        self.use_proxy = use_proxy
        self.close_count = 0

    async def close(self) -> None:
        self.close_count += 1

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class FakeSessionFactory:
    """Hands out one FakeSession per call, using ``pages`` in order."""

    def __init__(self, pages: Optional[List[FakePage]] = None, error: Optional[Exception] = None):
        self.pages = list(pages or [])
        self.error = error
        self.calls: List[Dict[str, Any]] = []
        self.sessions: List[FakeSession] = []

    async def create_session(self, use_proxy: bool = False, headless: Optional[bool] = None) -> FakeSession:
        self.calls.append({"use_proxy": use_proxy, "headless": headless})
        if self.error is not None:
            raise self.error
        session = FakeSession(self.pages.pop(0), use_proxy=use_proxy)
        self.sessions.append(session)
        return session
