"""
Core capture module using Playwright.
Runs one full navigation attempt in its own session (navigate, settle,
clear popups, detect blocking, probe the UI, capture), retries once through
the upstream proxy when the direct attempt fails or is blocked, and falls
back to the secondary engine when no Playwright browser can be started.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
from playwright.async_api import Page, Response
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from vendor_check.block_detector import BLOCK_STATUS_CODES, BlockDetector, normalize_headers
from vendor_check.config import CrawlerConfig
from vendor_check.exceptions import BlockedError, FatalSessionError, NavigationError, VendorCheckError
from vendor_check.fallback import SeleniumFallback
from vendor_check.models import BlockVerdict, EngineTag, NavigationResult, StyleArtifacts
from vendor_check.popup_handler import PopupHandler
from vendor_check.session import SessionFactory
from vendor_check.ui_prober import UIProber

logger = logging.getLogger(__name__)


# CDN block pages often redirect to one of these hosts
BLOCK_REDIRECT_PATTERN = re.compile(r"edgesuite\.net|access", re.IGNORECASE)


async def wait_for_network_idle(page: Page, timeout_ms: int) -> bool:
    """Best-effort network quiescence; a timeout just means it was not observed."""
    try:
        await page.wait_for_load_state('networkidle', timeout=timeout_ms)
        return True
    except PlaywrightTimeoutError:
        logger.debug("Network idle not reached within timeout, continuing")
        return False
    except PlaywrightError as e:
        logger.debug(f"Network idle wait failed: {e}")
        return False


async def save_capture(result: NavigationResult, directory: Path, stem: str) -> Dict[str, str]:
    """
    Write a navigation result's HTML and screenshot to disk.

    Args:
        result: Captured navigation result
        directory: Output directory (created if missing)
        stem: File name without extension

    Returns:
        Dictionary with 'html_path' and, when a screenshot exists, 'screenshot_path'
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    paths = {}

    html_path = directory / f"{stem}.html"
    async with aiofiles.open(html_path, 'w', encoding='utf-8') as f:
        await f.write(result.html)
    paths['html_path'] = str(html_path)

    if result.screenshot:
        suffix = '.jpg' if result.engine_tag == EngineTag.PRIMARY else '.png'
        screenshot_path = directory / f"{stem}{suffix}"
        async with aiofiles.open(screenshot_path, 'wb') as f:
            await f.write(result.screenshot)
        paths['screenshot_path'] = str(screenshot_path)

    logger.debug(f"Saved capture for {result.url} to {directory}")
    return paths


class PageCapture:
    """Capture-and-retry wrapper around single navigation attempts."""

    def __init__(self, config: CrawlerConfig, session_factory: Optional[SessionFactory] = None,
                 popup_handler: Optional[PopupHandler] = None, block_detector: Optional[BlockDetector] = None,
                 ui_prober: Optional[UIProber] = None, fallback: Optional[SeleniumFallback] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.session_factory = session_factory or SessionFactory(config)
        self.popup_handler = popup_handler or PopupHandler(click_settle_wait=config.click_settle_wait)
        self.block_detector = block_detector or BlockDetector()
        self.ui_prober = ui_prober or UIProber(change_timeout=config.change_wait_timeout)
        self.fallback = fallback or SeleniumFallback(config)

    async def open_url(self, url: str, headless: Optional[bool] = None) -> NavigationResult:
        """
        Capture a URL: direct attempt first, one proxied retry if needed.

        Args:
            url: Page to capture
            headless: Override the configured headless mode

        Returns:
            NavigationResult of the first acceptable attempt

        Raises:
            BlockedError: If the proxied retry is still blocked
            NavigationError: If the proxied retry cannot reach the page
            FatalSessionError: If neither engine can be started
        """
        try:
            result = await self.open_url_once(url, use_proxy=False, headless=headless)
            if not result.blocked and result.status_code not in BLOCK_STATUS_CODES:
                return result
            self.logger.warning(f"🔁 Direct attempt looks blocked (status {result.status_code}). Retrying with proxy...")
        except FatalSessionError:
            return await self._open_with_fallback(url)
        except Exception as e:
            self.logger.warning(f"⚠️ Direct attempt error: {e}. Retrying with proxy...")

        try:
            result = await self.open_url_once(url, use_proxy=True, headless=headless)
        except FatalSessionError:
            return await self._open_with_fallback(url)
        except VendorCheckError:
            raise
        except Exception as e:
            raise NavigationError(f"Proxied attempt failed for {url}: {e}", url) from e

        if result.blocked or result.status_code in BLOCK_STATUS_CODES:
            self.logger.error(f"❌ Still blocked after proxy retry: {url} (status {result.status_code})")
            raise BlockedError(f"Blocked after proxy retry (status {result.status_code})", url, result)

        return result

    async def save(self, result: NavigationResult, stem: str) -> Dict[str, str]:
        """Write a capture under ``<output_base_dir>/<html_dir>``."""
        return await save_capture(result, Path(self.config.output_base_dir) / self.config.html_dir, stem)

    async def _open_with_fallback(self, url: str) -> NavigationResult:
        if not self.config.enable_secondary_fallback:
            raise FatalSessionError("Primary browser unavailable and secondary engine disabled")

        self.logger.warning("⚠️ Primary browser unavailable, switching to secondary engine")
        capture = await self.fallback.open_url_alternate(url)
        return NavigationResult(
            url=url,
            status_code=0,
            headers={},
            blocked=False,
            html=capture.html,
            screenshot=capture.screenshot,
            style_artifacts=StyleArtifacts(),
            engine_tag=EngineTag.SECONDARY_FALLBACK,
        )

    async def open_url_once(self, url: str, use_proxy: bool = False, headless: Optional[bool] = None) -> NavigationResult:
        """
        Run one full navigation attempt in a fresh session.

        Raises:
            FatalSessionError: If the session cannot be created
            NavigationError: If navigation fails or times out
        """
        session = await self.session_factory.create_session(use_proxy=use_proxy, headless=headless)
        try:
            page = session.page
            self.logger.info(f"🌐 Navigating to {url} (proxy={'on' if use_proxy else 'off'})")
            try:
                response = await page.goto(url, wait_until='domcontentloaded',
                                           timeout=self.config.page_load_timeout * 1000)
            except PlaywrightError as e:
                raise NavigationError(f"Navigation to {url} failed: {e}", url) from e

            await wait_for_network_idle(page, int(self.config.network_idle_timeout * 1000))
            if use_proxy and self.config.proxy_settle_wait > 0:
                await asyncio.sleep(self.config.proxy_settle_wait)
            await self._settle(page)

            await self.popup_handler.clear_obstructions(page)
            try:
                await page.set_viewport_size(self.config.viewport)
            except PlaywrightError as e:
                self.logger.debug(f"Could not set viewport size: {e}")

            verdict = await self.block_detector.detect(page, response)
            if not verdict.blocked:
                await self._probe(page)

            return await self._capture(page, url, response, verdict, use_proxy)
        finally:
            await session.close()

    async def _settle(self, page: Page) -> None:
        """Short settle wait that ends early if the page redirects to a block host."""
        settle_ms = int(self.config.settle_wait * 1000)
        if settle_ms <= 0:
            return
        try:
            await page.wait_for_url(BLOCK_REDIRECT_PATTERN, timeout=settle_ms)
            self.logger.debug(f"URL matches block redirect pattern: {page.url}")
        except PlaywrightTimeoutError:
            pass
        except PlaywrightError as e:
            self.logger.debug(f"Settle wait interrupted: {e}")

    async def _probe(self, page: Page) -> None:
        if self.config.auto_select_option:
            try:
                await self.ui_prober.auto_select_option(page)
            except Exception as e:
                self.logger.warning(f"⚠️ Auto-select failed (non-critical): {e}")
        if self.config.hoist_overlays:
            await self.ui_prober.hoist_open_overlays(page)

    async def _capture(self, page: Page, url: str, response: Optional[Response],
                       verdict: BlockVerdict, use_proxy: bool) -> NavigationResult:
        """Capture HTML, stylesheet references and a viewport-bounded screenshot."""
        html = await page.content()

        css_links = []
        inline_styles = []
        try:
            css_links = await page.eval_on_selector_all(
                'link[rel="stylesheet"]', 'links => links.map(l => l.href)')
            inline_styles = await page.eval_on_selector_all(
                'style', 'styles => styles.map(s => s.textContent || s.innerHTML || "")')
        except PlaywrightError as e:
            self.logger.debug(f"Could not collect style artifacts: {e}")

        screenshot = None
        try:
            screenshot = await page.screenshot(
                type='jpeg',
                quality=self.config.jpeg_quality,
                full_page=False,
                clip={'x': 0, 'y': 0, 'width': self.config.viewport_width, 'height': self.config.viewport_height},
            )
        except PlaywrightError as e:
            self.logger.warning(f"⚠️ Screenshot failed for {url}: {e}")

        status = 0
        headers: Dict[str, Any] = {}
        if response is not None:
            status = response.status or 0
            headers = normalize_headers(response.headers)

        self.logger.info(f"📸 Captured {url} (status {status}, blocked={verdict.blocked}, {len(html)} chars)")
        return NavigationResult(
            url=url,
            status_code=status,
            headers=headers,
            blocked=verdict.blocked,
            html=html,
            screenshot=screenshot,
            style_artifacts=StyleArtifacts(css_links=list(css_links or []), inline_styles=list(inline_styles or [])),
            engine_tag=EngineTag.PRIMARY,
            used_proxy=use_proxy,
        )
