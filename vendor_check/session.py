"""
Session factory module.
Launches one disguised Playwright browser per session: randomized user
agent, fixed locale and timezone, optional upstream proxy, and an init
script that hides the automation flag before any page script runs.
"""

import logging
from typing import Any, Dict, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright
from playwright_stealth import Stealth

from vendor_check.config import CrawlerConfig
from vendor_check.exceptions import FatalSessionError
from vendor_check.fingerprint import FingerprintGenerator

logger = logging.getLogger(__name__)


# Runs before any page script in every document of the session
AUTOMATION_FLAG_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
"""


class CrawlSession:
    """
    One browser process, one isolated context and its active page.

    ``close`` releases everything exactly once; later calls are no-ops.
    """

    def __init__(self, playwright: Playwright, browser: Browser, context: BrowserContext,
                 page: Page, use_proxy: bool = False):
        self.playwright = playwright
        self.browser = browser
        self.context = context
        self.page = page
        self.use_proxy = use_proxy
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Close page, context, browser and the Playwright driver, in that order."""
        if self._closed:
            return
        self._closed = True

        for name, resource in (('page', self.page), ('context', self.context), ('browser', self.browser)):
            try:
                if resource:
                    await resource.close()
            except Exception as e:
                logger.debug(f"Error closing {name} (ignored): {e}")

        try:
            if self.playwright:
                await self.playwright.stop()
        except Exception as e:
            logger.debug(f"Error stopping Playwright (ignored): {e}")

        logger.debug("Session closed")

    async def __aenter__(self) -> "CrawlSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class SessionFactory:
    """Builds disguised browser sessions from a crawler configuration."""

    def __init__(self, config: CrawlerConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.fingerprints = FingerprintGenerator(config.locale, config.timezone_id)

    def _launch_options(self, use_proxy: bool, headless: bool) -> Dict[str, Any]:
        options = {
            'headless': headless,
            'args': list(self.config.browser_args),
        }
        if use_proxy:
            if self.config.has_proxy():
                options['proxy'] = self.config.proxy.to_playwright()
            else:
                self.logger.warning("⚠️ Proxy requested but no complete proxy settings configured - launching without proxy")
        return options

    async def create_session(self, use_proxy: bool = False, headless: Optional[bool] = None) -> CrawlSession:
        """
        Create one disguised browser session.

        Args:
            use_proxy: Attach the configured upstream proxy at launch
            headless: Override the configured headless mode

        Returns:
            An open CrawlSession; the caller owns it and must close it

        Raises:
            FatalSessionError: If the browser cannot be started
        """
        if headless is None:
            headless = self.config.browser_headless

        playwright = None
        browser = None
        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.launch(**self._launch_options(use_proxy, headless))
        except Exception as e:
            self.logger.error(f"❌ Browser launch failed: {e}")
            if playwright:
                try:
                    await playwright.stop()
                except Exception as stop_error:
                    self.logger.debug(f"Error stopping Playwright after failed launch: {stop_error}")
            raise FatalSessionError(f"Browser launch failed: {e}") from e

        session = CrawlSession(playwright, browser, None, None, use_proxy=use_proxy)
        try:
            fingerprint = self.fingerprints.generate_fingerprint(self.config.viewport)
            session.context = await browser.new_context(**fingerprint)
            session.page = await session.context.new_page()

            await session.page.add_init_script(AUTOMATION_FLAG_SCRIPT)
            if self.config.enable_stealth:
                await self._apply_stealth(session.page)
            if self.config.extra_http_headers:
                await session.page.set_extra_http_headers(self.config.extra_http_headers)
        except Exception as e:
            await session.close()
            raise FatalSessionError(f"Browser context setup failed: {e}") from e

        self.logger.info(f"✅ Session created (proxy={'on' if use_proxy else 'off'}, headless={headless})")
        return session

    async def _apply_stealth(self, page: Page) -> None:
        """Apply the stealth plugin on top of the init script."""
        try:
            await Stealth().apply_stealth_async(page)
            self.logger.debug("Applied stealth plugin to page")
        except Exception as e:
            self.logger.warning(f"Failed to apply stealth plugin (non-critical): {e}")

    async def check_browser(self, url: str = "https://example.com") -> Dict[str, Any]:
        """
        Launch a session, load a known page and report whether it worked.

        Returns:
            {'success': True, 'title': ...} or {'success': False, 'error': ...}
        """
        session = None
        try:
            session = await self.create_session(use_proxy=False, headless=True)
            await session.page.goto(url, wait_until='domcontentloaded', timeout=15000)
            title = await session.page.title()
            self.logger.info(f"✅ Browser test successful: {title}")
            return {'success': True, 'title': title}
        except Exception as e:
            self.logger.error(f"❌ Browser test failed: {e}")
            return {'success': False, 'error': str(e)}
        finally:
            if session:
                await session.close()
