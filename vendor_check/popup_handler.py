"""
Popup and overlay handler module.
Clears cookie banners, modals and overlays after navigation using
independent passes: close-button selectors, close-button text,
accept-all/close-icon buttons and finally direct DOM removal.
"""

import asyncio
import logging
import os
import re
from pathlib import Path
from typing import Optional, List

from playwright.async_api import Page


# Known close-button patterns, tried in order
CLOSE_BUTTON_SELECTORS = [
    '[aria-label="Close"]',
    '.popup-close',
    '.modal-close',
    '[data-close-modal]',
    '[id*="close"]',
    '.overlay-close',
    '.cookie-close',
    '[aria-label="dismiss"]',
]

# Exact (trimmed, case-insensitive) close-button texts
CLOSE_BUTTON_TEXTS = ['×', 'close', 'dismiss', 'got it', 'no thanks']

# Elements removed outright so no overlay survives into the capture
OVERLAY_REMOVAL_SELECTORS = [
    '.modal', '.popup', '.overlay', '.cookie', '.consent', '.newsletter', '.lightbox',
    '[class*="modal"]', '[class*="popup"]', '[class*="overlay"]', '[class*="cookie"]',
    '[id*="modal"]', '[id*="popup"]', '[id*="overlay"]', '[id*="cookie"]',
    '[aria-modal="true"]',
]

REMOVE_OVERLAYS_SCRIPT = """
(selectors) => {
    let removed = 0;
    selectors.forEach(selector => {
        try {
            document.querySelectorAll(selector).forEach(el => {
                el.remove();
                removed++;
            });
        } catch (e) {}
    });
    return removed;
}
"""


class PopupHandler:
    """Dismisses popups and overlays. Every pass is best-effort and never raises."""

    def __init__(self, logger: Optional[logging.Logger] = None, click_settle_wait: float = 1.0,
                 selectors: Optional[List[str]] = None, texts: Optional[List[str]] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.click_settle_wait = click_settle_wait
        self.selectors = list(selectors) if selectors is not None else list(CLOSE_BUTTON_SELECTORS)
        self.texts = list(texts) if texts is not None else list(CLOSE_BUTTON_TEXTS)
        self.debug_mode = os.getenv('POPUP_DEBUG', 'false').lower() == 'true'
        self.debug_dir = Path('popup_debug_screenshots')
        if self.debug_mode:
            self.debug_dir.mkdir(exist_ok=True)
            self.logger.info(f"Popup debug mode enabled - screenshots will be saved to {self.debug_dir}")

    async def _take_debug_screenshot(self, page: Page, step_name: str) -> None:
        """Take a debug screenshot after each popup handling step."""
        if not self.debug_mode:
            return

        try:
            safe_name = step_name.replace(' ', '_').replace('/', '_').lower()
            screenshot_path = self.debug_dir / f"popup_debug_{safe_name}.png"
            await page.screenshot(path=str(screenshot_path), full_page=True)
            self.logger.info(f"📸 Debug screenshot taken: {screenshot_path}")
        except Exception as e:
            self.logger.error(f"Failed to take debug screenshot for {step_name}: {e}")

    async def clear_obstructions(self, page: Page) -> None:
        """
        Run every clearing pass against the page.

        Args:
            page: Playwright page object
        """
        self.logger.info("🎯 Clearing popups and overlays")
        await self._take_debug_screenshot(page, "popup_start")

        await self.click_close_selectors(page)
        await self._take_debug_screenshot(page, "after_close_selectors")

        await self.click_close_texts(page)
        await self._take_debug_screenshot(page, "after_close_texts")

        await self.click_accept_buttons(page)

        await self.remove_overlays(page)
        await self._take_debug_screenshot(page, "after_overlay_removal")

        self.logger.info("✅ Popup clearing completed")

    async def _pause(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)

    async def click_close_selectors(self, page: Page) -> bool:
        """
        Click the first visible element matching a known close-button selector.

        Returns:
            True if a click succeeded
        """
        for selector in self.selectors:
            try:
                close_buttons = await page.query_selector_all(selector)
            except Exception as e:
                self.logger.debug(f"❌ Error querying {selector}: {e}")
                continue

            for button in close_buttons:
                try:
                    if await button.is_visible():
                        await button.click(force=True)
                        self.logger.info(f"✅ Closed popup via selector: {selector}")
                        await self._pause(self.click_settle_wait)
                        return True
                except Exception as e:
                    self.logger.warning(f"⚠️ Failed to click popup with selector {selector}: {e}")
                    break

        self.logger.debug("No close-button selector matched a visible element")
        return False

    async def click_close_texts(self, page: Page) -> bool:
        """
        Click the first visible button whose whole text is a close phrase.

        Returns:
            True if a click succeeded
        """
        for text in self.texts:
            try:
                pattern = re.compile(rf"^\s*{re.escape(text)}\s*$", re.IGNORECASE)
                button = page.locator('button, div, span', has_text=pattern).locator('visible=true').first
                if await button.count():
                    await button.click(force=True)
                    self.logger.info(f"✅ Closed popup via text: \"{text}\"")
                    await self._pause(self.click_settle_wait)
                    return True
            except Exception as e:
                self.logger.warning(f"⚠️ Failed to click popup with text \"{text}\": {e}")

        return False

    async def click_accept_buttons(self, page: Page) -> None:
        """Click a visible close icon container and an "Accept All" consent button."""
        try:
            close_icon = page.locator('#closeIconContainer')
            if await close_icon.count() and await close_icon.is_visible():
                await close_icon.click(force=True, timeout=1200)
                self.logger.info("✅ Closed via close icon")
                await self._pause(self.click_settle_wait / 2)
        except Exception as e:
            self.logger.debug(f"Close icon pass failed: {e}")

        try:
            accept_all = page.locator('button:has-text("Accept All")').first
            if await accept_all.is_visible():
                await accept_all.click(force=True)
                self.logger.info("✅ Clicked Accept All")
                await self._pause(self.click_settle_wait)
        except Exception as e:
            self.logger.debug(f"Accept All pass failed: {e}")

    async def remove_overlays(self, page: Page) -> int:
        """
        Remove modal, popup, overlay and consent elements from the DOM.

        Returns:
            Number of elements removed
        """
        try:
            removed = await page.evaluate(REMOVE_OVERLAYS_SCRIPT, OVERLAY_REMOVAL_SELECTORS)
            if removed:
                self.logger.info(f"🗑️ Removed {removed} overlay elements")
            return removed or 0
        except Exception as e:
            self.logger.warning(f"⚠️ Overlay removal failed: {e}")
            return 0
