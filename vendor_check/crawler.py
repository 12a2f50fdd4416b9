"""
Multi-target crawl orchestrator.
Drives one shared browser session through an ordered list of targets for
a business name: navigate, settle, clear popups, run the in-page search,
match and open the business's result row, and capture a screenshot.
A failing target is recorded and the run moves on.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import List, Optional

import aiofiles
from playwright.async_api import ElementHandle, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from vendor_check.block_detector import BlockDetector
from vendor_check.config import CrawlerConfig
from vendor_check.exceptions import BlockedError, FatalSessionError, NavigationError, SearchWorkflowError
from vendor_check.fallback import SeleniumFallback
from vendor_check.models import CrawlOptions, CrawlReport, SearchWorkflow, TargetDefinition, TargetOutcome
from vendor_check.popup_handler import PopupHandler
from vendor_check.scraper import wait_for_network_idle
from vendor_check.session import SessionFactory

logger = logging.getLogger(__name__)


def error_screenshot_name(file_name: str) -> str:
    """``sam.png`` -> ``sam_ERROR.png``"""
    path = Path(file_name)
    return f"{path.stem}_ERROR{path.suffix or '.png'}"


class CrawlOrchestrator:
    """Runs every target for one business name in a single session."""

    def __init__(self, config: CrawlerConfig, session_factory: Optional[SessionFactory] = None,
                 popup_handler: Optional[PopupHandler] = None, block_detector: Optional[BlockDetector] = None,
                 fallback: Optional[SeleniumFallback] = None):
        self.config = config
        self.logger = logging.getLogger(__name__)
        self.session_factory = session_factory or SessionFactory(config)
        self.popup_handler = popup_handler or PopupHandler(click_settle_wait=config.click_settle_wait)
        self.block_detector = block_detector or BlockDetector()
        self.fallback = fallback or SeleniumFallback(config)

    def _screenshot_dir(self, options: CrawlOptions) -> Path:
        if options.screenshot_dir:
            return Path(options.screenshot_dir)
        return Path(self.config.output_base_dir) / self.config.screenshot_dir

    async def run_crawl(self, business_name: str, targets: List[TargetDefinition],
                        options: Optional[CrawlOptions] = None) -> CrawlReport:
        """
        Visit every target for a business name.

        Args:
            business_name: Name searched on every target
            targets: Ordered target definitions
            options: Per-run overrides

        Returns:
            CrawlReport with one outcome per target

        Raises:
            FatalSessionError: If neither the browser nor the secondary engine can start
        """
        options = options or CrawlOptions()
        start_time = time.time()
        report = CrawlReport(business_name)
        screenshot_dir = self._screenshot_dir(options)
        screenshot_dir.mkdir(parents=True, exist_ok=True)

        self.logger.info(f"📋 Processing: {business_name} ({len(targets)} targets)")

        try:
            session = await self.session_factory.create_session(use_proxy=options.use_proxy,
                                                                headless=options.headless)
        except FatalSessionError as e:
            self.logger.error(f"❌ Could not start browser session: {e}")
            await self._run_with_fallback(business_name, targets, screenshot_dir, report, e)
            return report

        async with session:
            for index, target in enumerate(targets, start=1):
                self.logger.info(f"[{index}/{len(targets)}] {target.name}")
                outcome = await self.process_target(session.page, business_name, target, screenshot_dir)
                report.add(outcome)

        self.logger.info(f"✅ Finished {business_name} in {time.time() - start_time:.1f}s: "
                         f"{report.successful} successful, {report.failed} failed")
        return report

    async def process_target(self, page: Page, business_name: str, target: TargetDefinition,
                             screenshot_dir: Path) -> TargetOutcome:
        """Run the per-target pipeline; any failure becomes a failed outcome."""
        url = ''
        try:
            url = target.build_url(business_name)
            await self.navigate(page, url)
            await self._pause(self.config.wait_after_load)
            await self.popup_handler.clear_obstructions(page)

            if target.search:
                await self.run_search(page, target.search, business_name)

            match_found = False
            if target.requires_match:
                match_found = await self.find_and_open_match(page, target, business_name)

            screenshot_path = screenshot_dir / target.screenshot_file_name
            await page.screenshot(path=str(screenshot_path), full_page=self.config.screenshot_full_page)
            self.logger.info(f"📸 Screenshot saved: {screenshot_path}")

            return TargetOutcome(
                target_name=target.name,
                url=url,
                success=True,
                match_found=match_found,
                screenshot_path=str(screenshot_path),
            )
        except Exception as e:
            self.logger.error(f"❌ {target.name} failed: {e}")
            error_path = await self._error_screenshot(page, target, screenshot_dir)
            return TargetOutcome(
                target_name=target.name,
                url=url,
                success=False,
                match_found=False,
                screenshot_path=error_path,
                error=str(e) or e.__class__.__name__,
            )

    async def _pause(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)

    async def navigate(self, page: Page, url: str) -> None:
        """
        Load a target URL in the shared page.

        Raises:
            NavigationError: On timeout or network failure
            BlockedError: If the landing page refuses automated access
        """
        self.logger.info(f"🌐 Navigating to {url}")
        try:
            response = await page.goto(url, wait_until='domcontentloaded',
                                       timeout=self.config.page_load_timeout * 1000)
        except PlaywrightError as e:
            raise NavigationError(f"Navigation to {url} failed: {e}", url) from e

        if self.config.detect_blocks_per_target:
            verdict = await self.block_detector.detect(page, response)
            if verdict.blocked:
                raise BlockedError(f"Access blocked ({verdict.reason})", url)

    async def run_search(self, page: Page, search: SearchWorkflow, business_name: str) -> bool:
        """
        Fill and submit the target's search form.

        Returns:
            True if a result container appeared, False for "no results"

        Raises:
            SearchWorkflowError: If no search input can be found
        """
        candidates = search.input_candidates()
        await self._wait_for_attached(page, candidates)
        search_input = await self._first_match(page, candidates)
        if search_input is None:
            raise SearchWorkflowError(f"Search input not found (tried {len(candidates)} selectors)")

        await search_input.fill(business_name)
        self.logger.debug(f"Filled search input with '{business_name}'")

        submitted = False
        for selector in search.submit_selectors:
            try:
                button = await page.query_selector(selector)
                if button and await button.is_visible():
                    await button.click()
                    self.logger.debug(f"Submitted search via {selector}")
                    submitted = True
                    break
            except PlaywrightError as e:
                self.logger.debug(f"Submit selector {selector} not usable: {e}")

        if not submitted:
            self.logger.debug("No submit control found, pressing Enter in the search input")
            await search_input.press('Enter')

        return await self.wait_for_results(page, search.result_selectors)

    async def _wait_for_attached(self, page: Page, selectors: List[str]) -> None:
        """Give late-rendered form controls up to ``element_wait_timeout`` to attach."""
        try:
            await page.wait_for_selector(', '.join(selectors), state='attached',
                                         timeout=self.config.element_wait_timeout * 1000)
        except PlaywrightError as e:
            self.logger.debug(f"None of {len(selectors)} selectors attached: {e}")

    async def _first_match(self, page: Page, selectors: List[str]) -> Optional[ElementHandle]:
        for selector in selectors:
            try:
                element = await page.query_selector(selector)
            except PlaywrightError as e:
                self.logger.debug(f"Selector {selector} failed: {e}")
                continue
            if element:
                return element
        return None

    async def wait_for_results(self, page: Page, selectors: List[str]) -> bool:
        """Wait for any result container; a timeout means "no results"."""
        try:
            await page.wait_for_selector(', '.join(selectors), state='visible',
                                         timeout=self.config.result_wait_timeout * 1000)
            self.logger.info("✅ Search results loaded")
            return True
        except PlaywrightTimeoutError:
            self.logger.info("No results container appeared - treating as no results")
            return False

    async def find_and_open_match(self, page: Page, target: TargetDefinition, business_name: str) -> bool:
        """
        Find the result row naming the business and open its view action.

        Returns:
            True if a row matched
        """
        needle = business_name.strip().lower()
        for selector in target.row_selectors:
            try:
                rows = await page.query_selector_all(selector)
            except PlaywrightError as e:
                self.logger.debug(f"Row selector {selector} failed: {e}")
                continue

            for row in rows:
                try:
                    text = await row.inner_text()
                except PlaywrightError:
                    continue
                if needle and needle in (text or '').lower():
                    self.logger.info(f"✅ Match found for '{business_name}' in {target.name}")
                    await self._open_row(page, row, target.view_selectors)
                    return True

        self.logger.info(f"No match for '{business_name}' in {target.name}")
        return False

    async def _open_row(self, page: Page, row: ElementHandle, view_selectors: List[str]) -> bool:
        for selector in view_selectors:
            try:
                view = await row.query_selector(selector)
                if not view:
                    continue
                await view.click()
                await wait_for_network_idle(page, int(self.config.network_idle_timeout * 1000))
                self.logger.info(f"✅ Opened result via {selector}")
                return True
            except PlaywrightError as e:
                self.logger.warning(f"⚠️ Could not open result via {selector}: {e}")
        return False

    async def _error_screenshot(self, page: Page, target: TargetDefinition, screenshot_dir: Path) -> Optional[str]:
        error_path = screenshot_dir / error_screenshot_name(target.screenshot_file_name)
        try:
            await page.screenshot(path=str(error_path), full_page=self.config.screenshot_full_page)
            self.logger.info(f"📸 Error screenshot saved: {error_path}")
            return str(error_path)
        except Exception as e:
            self.logger.warning(f"⚠️ Could not take error screenshot for {target.name}: {e}")
            return None

    async def _run_with_fallback(self, business_name: str, targets: List[TargetDefinition],
                                 screenshot_dir: Path, report: CrawlReport, cause: FatalSessionError) -> None:
        """
        Capture each target URL with the secondary engine (no in-page workflow).

        Raises:
            FatalSessionError: If the fallback is disabled, or the secondary
                engine cannot start before any target was captured
        """
        if not self.config.enable_secondary_fallback:
            raise cause

        self.logger.warning("⚠️ Switching to secondary engine for all targets")
        for index, target in enumerate(targets):
            url = target.build_url(business_name)
            try:
                capture = await self.fallback.open_url_alternate(url)
                screenshot_path = None
                if capture.screenshot:
                    screenshot_path = await self._write_screenshot(screenshot_dir / target.screenshot_file_name,
                                                                   capture.screenshot)
            except FatalSessionError as e:
                if not report.outcomes:
                    raise
                self.logger.error(f"❌ Secondary engine stopped at {target.name}: {e}")
                for remaining in targets[index:]:
                    report.add(TargetOutcome(remaining.name, remaining.build_url(business_name), False,
                                             error=str(e) or e.__class__.__name__))
                return
            except Exception as e:
                self.logger.error(f"❌ {target.name} failed on secondary engine: {e}")
                report.add(TargetOutcome(target.name, url, False, error=str(e) or e.__class__.__name__))
                continue

            report.add(TargetOutcome(target.name, url, True, match_found=False, screenshot_path=screenshot_path))

    async def _write_screenshot(self, path: Path, data: bytes) -> str:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, 'wb') as f:
            await f.write(data)
        self.logger.info(f"📸 Screenshot saved: {path}")
        return str(path)
