"""
Fingerprint module for disguised browser sessions.
Randomizes the user agent per session while keeping locale and timezone
fixed, so every session looks like a different desktop in the same region.
"""

import random
import logging
from typing import Dict, Any

logger = logging.getLogger(__name__)


# Realistic Chrome user agents
CHROME_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/130.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0",
]

# Realistic Firefox user agents
FIREFOX_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) Gecko/20100101 Firefox/133.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:133.0) Gecko/20100101 Firefox/133.0",
    "Mozilla/5.0 (X11; Linux x86_64; rv:133.0) Gecko/20100101 Firefox/133.0",
]

# Realistic Safari user agents
SAFARI_USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/18.1 Safari/605.1.15",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.6 Safari/605.1.15",
]


class FingerprintGenerator:
    """Generates browser context fingerprints for disguised sessions."""

    def __init__(self, locale: str = "en-US", timezone_id: str = "America/Chicago"):
        """
        Initialize the fingerprint generator.

        Args:
            locale: Locale reported by every session
            timezone_id: IANA timezone reported by every session
        """
        self.locale = locale
        self.timezone_id = timezone_id
        self.all_user_agents = CHROME_USER_AGENTS + FIREFOX_USER_AGENTS + SAFARI_USER_AGENTS

    def generate_user_agent(self, browser_type: str = "random") -> str:
        """
        Generate a random realistic user agent string.

        Args:
            browser_type: "chrome", "firefox", "safari", or "random"

        Returns:
            User agent string
        """
        if browser_type == "chrome":
            return random.choice(CHROME_USER_AGENTS)
        elif browser_type == "firefox":
            return random.choice(FIREFOX_USER_AGENTS)
        elif browser_type == "safari":
            return random.choice(SAFARI_USER_AGENTS)
        else:
            return random.choice(self.all_user_agents)

    def generate_fingerprint(self, viewport: Dict[str, int], browser_type: str = "random") -> Dict[str, Any]:
        """
        Generate the context options for one session.

        Args:
            viewport: Dict with width and height
            browser_type: "chrome", "firefox", "safari", or "random"

        Returns:
            Keyword arguments for ``Browser.new_context``
        """
        fingerprint = {
            'user_agent': self.generate_user_agent(browser_type),
            'viewport': dict(viewport),
            'device_scale_factor': 1,
            'timezone_id': self.timezone_id,
            'locale': self.locale,
        }

        logger.debug(f"Generated fingerprint: UA={fingerprint['user_agent'][:50]}..., "
                     f"viewport={fingerprint['viewport']}, "
                     f"timezone={fingerprint['timezone_id']}, "
                     f"locale={fingerprint['locale']}")

        return fingerprint
