"""
Secondary automation engine.
Selenium/Chromedriver capture used only when Playwright cannot start a
browser at all. Uses a fixed settle delay instead of event-based waits
and always quits the driver.
"""

import asyncio
import logging
import time
from typing import Optional

from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options

from vendor_check.config import CrawlerConfig
from vendor_check.exceptions import FatalSessionError, NavigationError
from vendor_check.models import AlternateCapture

logger = logging.getLogger(__name__)


FALLBACK_CHROME_ARGS = [
    '--disable-gpu',
    '--no-sandbox',
    '--disable-software-rasterizer',
    '--disable-dev-shm-usage',
]

PAGE_SIZE_SCRIPT = "return [document.documentElement.scrollWidth, document.documentElement.scrollHeight];"


class SeleniumFallback:
    """Captures pages through Selenium WebDriver."""

    def __init__(self, config: CrawlerConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def _build_options(self) -> Options:
        options = Options()
        for arg in FALLBACK_CHROME_ARGS:
            options.add_argument(arg)
        if self.config.browser_headless:
            options.add_argument('--headless=new')
        options.add_argument(f'--window-size={self.config.viewport_width},{self.config.viewport_height}')
        options.add_argument(f'--lang={self.config.locale}')
        return options

    def _build_driver(self) -> webdriver.Chrome:
        try:
            return webdriver.Chrome(options=self._build_options())
        except WebDriverException as e:
            self.logger.error(f"❌ Secondary engine could not start Chrome: {e}")
            raise FatalSessionError(f"Secondary engine unavailable: {e}") from e

    def _full_page_screenshot(self, driver: webdriver.Chrome) -> Optional[bytes]:
        """Resize the window to the document size, then screenshot it."""
        try:
            width, height = driver.execute_script(PAGE_SIZE_SCRIPT)
            driver.set_window_size(max(width, self.config.viewport_width), max(height, self.config.viewport_height))
        except Exception as e:
            self.logger.debug(f"Could not resize window for full-page screenshot: {e}")

        try:
            return driver.get_screenshot_as_png()
        except WebDriverException as e:
            self.logger.warning(f"⚠️ Secondary engine screenshot failed: {e}")
            return None

    def capture(self, url: str) -> AlternateCapture:
        """
        Load a URL and return its source and a full-page screenshot.

        Args:
            url: Page to load

        Returns:
            AlternateCapture

        Raises:
            FatalSessionError: If Chrome/Chromedriver cannot be started
            NavigationError: If the page cannot be loaded
        """
        driver = self._build_driver()
        try:
            driver.set_page_load_timeout(self.config.page_load_timeout)
            try:
                driver.get(url)
            except WebDriverException as e:
                raise NavigationError(f"Secondary engine failed to load {url}: {e.msg or e}", url) from e

            time.sleep(self.config.fallback_settle_wait)
            html = driver.page_source
            screenshot = self._full_page_screenshot(driver)
            self.logger.info(f"✅ Secondary engine captured {url} ({len(html)} chars)")
            return AlternateCapture(url=url, html=html, screenshot=screenshot)
        finally:
            try:
                driver.quit()
            except Exception as e:
                self.logger.debug(f"Error quitting driver (ignored): {e}")

    async def open_url_alternate(self, url: str) -> AlternateCapture:
        """Async wrapper; the blocking driver runs in a worker thread."""
        self.logger.info(f"🔁 Using secondary engine for {url}")
        return await asyncio.to_thread(self.capture, url)
