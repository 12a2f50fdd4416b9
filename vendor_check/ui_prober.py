"""
Adaptive UI probing module.
Best-effort interaction before a content capture: auto-selects the first
available option of a "choose a size" control, and hoists dropdown panels
rendered outside the normal document flow into the main document so a
static HTML snapshot contains them.
"""

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from playwright.async_api import Locator, Page

from vendor_check.exceptions import InteractionError

logger = logging.getLogger(__name__)


SIZE_PLACEHOLDER = re.compile(r"^\s*(select|choose)\s*size(s)?\s*$", re.IGNORECASE)
SIZE_PLACEHOLDER_ANYWHERE = re.compile(r"select\s*size|choose\s*size", re.IGNORECASE)
UNAVAILABLE_OPTION = re.compile(
    r"(sold\s*out|not\s*available|unavailable|out\s*of\s*stock|temporarily\s*unavailable)",
    re.IGNORECASE,
)

EXPANDED_LISTBOX_SELECTOR = '[role="listbox"], .dropdown-menu, [aria-expanded="true"]'
SIZE_HEURISTIC_SELECTOR = '[aria-label*="size" i][aria-haspopup="listbox"], [data-testid*="size" i]'

# Dropdown panels commonly rendered through a portal layer
OVERLAY_SELECTORS = [
    '[role="listbox"]',
    '[role="menu"]',
    '.dropdown-menu',
    '[data-dropdown]',
    '[data-radix-portal] *[role="listbox"]',
    '[id*="listbox"]',
    '[class*="listbox"]',
    '.ant-select-dropdown',
    '.MuiPopover-root [role="listbox"]',
    '.chakra-portal [role="listbox"]',
    '.Select-menu',
]

ADD_TO_PATTERN = r"add\s*to\s*(cart|bag|basket)?"

SELECT_META_SCRIPT = """
(s) => ({
    name: (s.getAttribute('name') || '').toLowerCase(),
    id: (s.id || '').toLowerCase(),
    aria: (s.getAttribute('aria-label') || '').toLowerCase(),
    selectedText: ((s.options[s.selectedIndex] || {}).textContent || '').trim(),
    options: Array.from(s.options || []).map(o => ({
        text: (o.textContent || '').trim(),
        value: o.value,
        disabled: !!o.disabled,
        aria: (o.getAttribute('aria-label') || '').trim(),
    })),
})
"""

APPLY_OPTION_SCRIPT = """
(s, value) => {
    s.value = value;
    s.dispatchEvent(new Event('input', { bubbles: true }));
    s.dispatchEvent(new Event('change', { bubbles: true }));
    return s.value === value;
}
"""

DOCUMENT_LENGTH_SCRIPT = "() => document.documentElement.outerHTML.length"
DOCUMENT_LENGTH_CHANGED = "prev => document.documentElement.outerHTML.length !== prev"

HOIST_OVERLAYS_SCRIPT = """
([overlaySelectors, anchorPattern]) => {
    const isVisible = el => {
        const s = window.getComputedStyle(el);
        if (!s || s.display === 'none' || s.visibility === 'hidden' || parseFloat(s.opacity || '1') === 0) return false;
        const r = el.getBoundingClientRect();
        return r.width > 0 && r.height > 0;
    };

    const anchorRe = new RegExp(anchorPattern, 'i');
    const anchor = Array.from(document.querySelectorAll('button, input[type="submit"], [role="button"]'))
        .find(el => anchorRe.test((el.textContent || el.value || '').toLowerCase()));
    if (!anchor || !anchor.parentNode) return 0;

    const overlays = Array.from(document.querySelectorAll(overlaySelectors.join(','))).filter(isVisible);
    let injected = 0;

    for (const el of overlays) {
        const clone = el.cloneNode(true);
        if (clone.id) clone.id = `${clone.id}__cloned__${injected}`;
        clone.querySelectorAll('[id]').forEach((n, idx) => n.id = `${n.id}__cloned__${injected}_${idx}`);
        clone.querySelectorAll('script').forEach(s => s.remove());
        clone.setAttribute('data-cloned', 'portal-hoist');
        anchor.parentNode.insertBefore(clone, anchor);
        injected++;
    }
    return injected;
}
"""


def is_size_like(meta: Dict[str, Any]) -> bool:
    """Decide whether a native select control chooses a size."""
    if any('size' in (meta.get(key) or '') for key in ('name', 'id', 'aria')):
        return True
    if SIZE_PLACEHOLDER.search(meta.get('selectedText') or ''):
        return True
    return any(SIZE_PLACEHOLDER_ANYWHERE.search(o.get('text') or '') for o in meta.get('options') or [])


def pick_option(options: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Pick the first selectable option.

    Skips disabled options, placeholders and anything marked unavailable
    or sold out in its text or aria-label.

    Args:
        options: Option dicts with text, value, disabled and aria keys

    Returns:
        The chosen option, or None if nothing is selectable
    """
    for option in options:
        text = (option.get('text') or '').strip()
        aria = (option.get('aria') or '').strip()
        if option.get('disabled'):
            continue
        if UNAVAILABLE_OPTION.search(f"{text} {aria}"):
            continue
        if SIZE_PLACEHOLDER_ANYWHERE.search(text):
            continue
        return option
    return None


class UIProber:
    """Best-effort UI interaction run on clear (non-blocked) pages."""

    def __init__(self, change_timeout: float = 3.0, overlay_selectors: Optional[List[str]] = None,
                 anchor_pattern: str = ADD_TO_PATTERN):
        self.logger = logging.getLogger(__name__)
        self.change_timeout = change_timeout
        self.overlay_selectors = list(overlay_selectors) if overlay_selectors is not None else list(OVERLAY_SELECTORS)
        self.anchor_pattern = anchor_pattern

    async def _content_length(self, page: Page) -> int:
        try:
            return await page.evaluate(DOCUMENT_LENGTH_SCRIPT)
        except Exception:
            return 0

    async def wait_for_any_change(self, page: Page, before_length: int, timeout: Optional[float] = None) -> Optional[str]:
        """
        Wait until the page reacts to an interaction.

        Completes on the first of: network idle, a change in serialized
        document length, or an expanded listbox becoming visible. A
        timeout only means no signal was observed.

        Returns:
            Name of the observed signal, or None
        """
        ms = int((timeout if timeout is not None else self.change_timeout) * 1000)

        async def observe(name: str, awaitable) -> Optional[str]:
            try:
                await awaitable
                return name
            except Exception:
                return None

        tasks = [
            asyncio.ensure_future(observe('networkidle', page.wait_for_load_state('networkidle', timeout=min(ms, 4000)))),
            asyncio.ensure_future(observe('dom-length', page.wait_for_function(DOCUMENT_LENGTH_CHANGED, arg=before_length, timeout=ms))),
            asyncio.ensure_future(observe('listbox', page.wait_for_selector(EXPANDED_LISTBOX_SELECTOR, state='visible', timeout=min(ms, 2000)))),
        ]
        pending = set(tasks)
        observed = None
        try:
            while pending and observed is None:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    if task.result():
                        observed = task.result()
                        break
        finally:
            for task in pending:
                task.cancel()

        self.logger.debug(f"Change signal after interaction: {observed or 'none'}")
        return observed

    async def auto_select_option(self, page: Page) -> bool:
        """
        Select the first available size on the page.

        Returns:
            True if any interaction happened
        """
        selects = page.locator('select')
        try:
            count = await selects.count()
        except Exception:
            count = 0

        for i in range(count):
            control = selects.nth(i)
            try:
                meta = await control.evaluate(SELECT_META_SCRIPT)
            except Exception as e:
                self.logger.debug(f"Could not inspect select #{i}: {e}")
                continue

            if not meta or not is_size_like(meta):
                continue

            before_length = await self._content_length(page)
            option = pick_option(meta.get('options') or [])
            if option:
                try:
                    applied = await control.evaluate(APPLY_OPTION_SCRIPT, option['value'])
                    if not applied:
                        raise InteractionError(f"value '{option['value']}' was not accepted by the control")
                    self.logger.info(f"✅ Auto-selected option '{option['text'] or option['value']}'")
                except Exception as e:
                    self.logger.warning(f"⚠️ Failed to apply option '{option['text']}': {e}")
                await self.wait_for_any_change(page, before_length)
                return True

            # Nothing selectable: open it so the page renders its own UI
            try:
                await control.click(force=True)
            except Exception as e:
                self.logger.debug(f"Could not open select #{i}: {e}")
            await self.wait_for_any_change(page, before_length, timeout=min(self.change_timeout, 2.0))
            return True

        for description, locator in self._custom_control_candidates(page):
            try:
                if not await locator.count():
                    continue
                before_length = await self._content_length(page)
                await locator.click(force=True)
                self.logger.info(f"✅ Opened size control via {description}")
            except Exception as e:
                self.logger.debug(f"Size control {description} not usable: {e}")
                continue
            await self.wait_for_any_change(page, before_length)
            return True

        self.logger.debug("No size control found")
        return False

    def _custom_control_candidates(self, page: Page) -> List[Tuple[str, Locator]]:
        return [
            ('button', page.get_by_role('button', name=SIZE_PLACEHOLDER_ANYWHERE).first),
            ('combobox', page.get_by_role('combobox', name=re.compile(r"size", re.IGNORECASE)).first),
            ('text', page.get_by_text(SIZE_PLACEHOLDER).first),
            ('heuristic', page.locator(SIZE_HEURISTIC_SELECTOR).first),
        ]

    async def hoist_open_overlays(self, page: Page) -> int:
        """
        Clone visible dropdown panels into the document before the "add to" control.

        Returns:
            Number of panels hoisted
        """
        try:
            hoisted = await page.evaluate(HOIST_OVERLAYS_SCRIPT, [self.overlay_selectors, self.anchor_pattern])
        except Exception as e:
            self.logger.debug(f"Overlay hoisting failed: {e}")
            return 0

        hoisted = hoisted or 0
        if hoisted:
            self.logger.info(f"📌 Hoisted {hoisted} dropdown overlays into the document")
        return hoisted
