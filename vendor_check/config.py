"""
Configuration module for the vendor check crawler.
Holds timeouts, waits, browser, proxy and capture settings.
One instance is built per run and passed explicitly to every component.
"""

import logging
import os
import multiprocessing
from typing import Dict, Any, Optional

from vendor_check.models import ProxySettings

logger = logging.getLogger(__name__)


class CrawlerConfig:
    """Configuration class for the crawler with all settings."""

    def __init__(self):
        logger.debug("Initializing CrawlerConfig")

        # Timeout settings (in seconds)
        self.page_load_timeout = 60
        self.network_idle_timeout = 10
        self.element_wait_timeout = 5
        self.result_wait_timeout = 10
        self.change_wait_timeout = 3

        # Wait settings (in seconds)
        self.wait_after_load = 3  # Orchestrator settle interval after navigation
        self.settle_wait = 1.5  # Capture wrapper settle before popup clearing
        self.proxy_settle_wait = 0  # Extra wait for proxied attempts
        self.click_settle_wait = 1.0  # Pause after a successful popup click

        # Browser settings
        self.browser_headless = True
        self.browser_args = [
            '--disable-gpu',
            '--ignore-certificate-errors',
            '--no-sandbox',
            '--disable-dev-shm-usage',
        ]
        self.locale = 'en-US'
        self.timezone_id = 'America/Chicago'
        self.viewport_width = 1200
        self.viewport_height = 1200
        self.extra_http_headers = {
            'Accept-Language': 'en-US,en;q=0.9',
            'Referer': 'https://www.google.com/',
        }

        # Stealth plugin settings
        self.enable_stealth = False  # Init-script evasion is always applied

        # Proxy settings
        self.proxy: Optional[ProxySettings] = None

        # Capture settings
        self.screenshot_full_page = True
        self.jpeg_quality = 80
        self.auto_select_option = True
        self.hoist_overlays = True
        self.detect_blocks_per_target = True

        # Output settings
        self.output_base_dir = "output"
        self.screenshot_dir = "screenshots"
        self.html_dir = "html"

        # Secondary engine settings
        self.enable_secondary_fallback = True
        self.fallback_settle_wait = 5

        # Concurrent runs
        self.max_cpus = multiprocessing.cpu_count()
        self.max_concurrent_runs = self.max_cpus

        # CSV settings
        self.csv_delimiter = ','
        self.csv_business_column = 'business_name'
        self.csv_encoding = 'utf-8'

    @property
    def viewport(self) -> Dict[str, int]:
        return {'width': self.viewport_width, 'height': self.viewport_height}

    def has_proxy(self) -> bool:
        return self.proxy is not None and self.proxy.is_complete()

    def update_from_yaml(self, yaml_config: Dict[str, Any]) -> None:
        """
        Update configuration from YAML config dictionary.

        Handles nested YAML structure and maps to flat config attributes.

        Args:
            yaml_config: Dictionary loaded from YAML file
        """
        logger.debug(f"Updating configuration from YAML with {len(yaml_config)} top-level keys")

        # Timeout settings
        if 'timeouts' in yaml_config:
            timeouts = yaml_config['timeouts'] or {}
            if 'page_load' in timeouts:
                self.page_load_timeout = timeouts['page_load']
            if 'network_idle' in timeouts:
                self.network_idle_timeout = timeouts['network_idle']
            if 'element_wait' in timeouts:
                self.element_wait_timeout = timeouts['element_wait']
            if 'result_wait' in timeouts:
                self.result_wait_timeout = timeouts['result_wait']
            if 'change_wait' in timeouts:
                self.change_wait_timeout = timeouts['change_wait']

        # Wait settings
        if 'waits' in yaml_config:
            waits = yaml_config['waits'] or {}
            if 'after_load' in waits:
                self.wait_after_load = waits['after_load']
            if 'settle' in waits:
                self.settle_wait = waits['settle']
            if 'proxy_settle' in waits:
                self.proxy_settle_wait = waits['proxy_settle']
            if 'after_click' in waits:
                self.click_settle_wait = waits['after_click']

        # Browser settings
        if 'browser' in yaml_config:
            browser = yaml_config['browser'] or {}
            if 'headless' in browser:
                self.browser_headless = browser['headless']
            if 'viewport' in browser:
                viewport = browser['viewport']
                if 'width' in viewport:
                    self.viewport_width = viewport['width']
                if 'height' in viewport:
                    self.viewport_height = viewport['height']
            if 'args' in browser:
                self.browser_args = browser['args']
            if 'locale' in browser:
                self.locale = browser['locale']
            if 'timezone' in browser:
                self.timezone_id = browser['timezone']
            if 'extra_http_headers' in browser:
                self.extra_http_headers = dict(browser['extra_http_headers'] or {})
            if 'enable_stealth' in browser:
                self.enable_stealth = browser['enable_stealth']

        # Proxy settings
        if yaml_config.get('proxy'):
            proxy = yaml_config['proxy']
            self.proxy = ProxySettings(
                server=proxy.get('server') or '',
                username=proxy.get('username') or '',
                password=proxy.get('password') or '',
            )

        # Capture settings
        if 'capture' in yaml_config:
            capture = yaml_config['capture'] or {}
            if 'full_page' in capture:
                self.screenshot_full_page = capture['full_page']
            if 'jpeg_quality' in capture:
                self.jpeg_quality = capture['jpeg_quality']
            if 'auto_select_option' in capture:
                self.auto_select_option = capture['auto_select_option']
            if 'hoist_overlays' in capture:
                self.hoist_overlays = capture['hoist_overlays']
            if 'detect_blocks_per_target' in capture:
                self.detect_blocks_per_target = capture['detect_blocks_per_target']

        # Secondary engine settings
        if 'fallback' in yaml_config:
            fallback = yaml_config['fallback'] or {}
            if 'enabled' in fallback:
                self.enable_secondary_fallback = fallback['enabled']
            if 'settle_wait' in fallback:
                self.fallback_settle_wait = fallback['settle_wait']

        # Performance settings
        if 'performance' in yaml_config:
            perf = yaml_config['performance'] or {}
            if perf.get('max_concurrent_runs') is not None:
                self.max_concurrent_runs = perf['max_concurrent_runs']

        # Output settings
        if 'output' in yaml_config:
            output = yaml_config['output'] or {}
            if 'base_dir' in output:
                self.output_base_dir = output['base_dir']
            if 'screenshot_dir' in output:
                self.screenshot_dir = output['screenshot_dir']
            if 'html_dir' in output:
                self.html_dir = output['html_dir']

        # CSV settings
        if 'csv' in yaml_config:
            csv = yaml_config['csv'] or {}
            if 'delimiter' in csv:
                self.csv_delimiter = csv['delimiter']
            if 'business_column' in csv:
                self.csv_business_column = csv['business_column']
            if 'encoding' in csv:
                self.csv_encoding = csv['encoding']

        logger.info("Configuration updated from YAML")

    def update_from_env(self) -> None:
        """Update configuration from environment variables."""
        logger.debug("Updating configuration from environment variables")

        env_mappings = {
            'VENDOR_CHECK_PAGE_TIMEOUT': ('page_load_timeout', int),
            'VENDOR_CHECK_NETWORK_TIMEOUT': ('network_idle_timeout', int),
            'VENDOR_CHECK_HEADLESS': ('browser_headless', lambda x: x.lower() == 'true'),
            'VENDOR_CHECK_OUTPUT_DIR': ('output_base_dir', str),
            'VENDOR_CHECK_SCREENSHOT_DIR': ('screenshot_dir', str),
            'VENDOR_CHECK_MAX_RUNS': ('max_concurrent_runs', int),
        }

        updated_from_env = []
        for env_var, (attr, converter) in env_mappings.items():
            value = os.getenv(env_var)
            if value is not None:
                try:
                    setattr(self, attr, converter(value))
                    updated_from_env.append(env_var)
                    logger.debug(f"Set {attr} from {env_var}: {value}")
                except (ValueError, TypeError) as e:
                    logger.warning(f"Invalid value for {env_var}: {value} - {e}")

        proxy_server = os.getenv('VENDOR_CHECK_PROXY_SERVER')
        if proxy_server:
            self.proxy = ProxySettings(
                server=proxy_server,
                username=os.getenv('VENDOR_CHECK_PROXY_USERNAME', ''),
                password=os.getenv('VENDOR_CHECK_PROXY_PASSWORD', ''),
            )
            updated_from_env.append('VENDOR_CHECK_PROXY_SERVER')

        if updated_from_env:
            logger.info(f"Updated configuration from environment variables: {updated_from_env}")
        else:
            logger.debug("No environment variables found for configuration")

    def validate(self) -> bool:
        """Validate configuration values, clamping the ones out of range."""
        logger.debug("Validating configuration values")

        validation_warnings = []

        if self.page_load_timeout < 5:
            validation_warnings.append("page_load_timeout should be at least 5 seconds")
            self.page_load_timeout = 5

        if self.network_idle_timeout < 1:
            validation_warnings.append("network_idle_timeout should be at least 1 second")
            self.network_idle_timeout = 1

        if not 1 <= self.jpeg_quality <= 100:
            validation_warnings.append(f"jpeg_quality ({self.jpeg_quality}) should be between 1 and 100")
            self.jpeg_quality = min(max(self.jpeg_quality, 1), 100)

        if self.max_concurrent_runs < 1 or self.max_concurrent_runs > self.max_cpus:
            validation_warnings.append(
                f"max_concurrent_runs ({self.max_concurrent_runs}) should be between 1 and {self.max_cpus}"
            )
            self.max_concurrent_runs = min(max(self.max_concurrent_runs, 1), self.max_cpus)

        if self.proxy is not None and not self.proxy.is_complete():
            validation_warnings.append("proxy is missing server, username or password - proxy retry disabled")

        for warning in validation_warnings:
            logger.warning(f"Configuration validation warning: {warning}")

        if validation_warnings:
            logger.info(f"Configuration validation completed with {len(validation_warnings)} warnings")
        else:
            logger.debug("Configuration validation completed successfully")

        return True

    def __str__(self) -> str:
        """String representation of configuration."""
        return f"""Crawler Configuration:
- Timeouts: page={self.page_load_timeout}s, network idle={self.network_idle_timeout}s
- Headless: {self.browser_headless}
- Proxy: {'configured' if self.has_proxy() else 'none'}
- Output directory: {self.output_base_dir}
- Secondary fallback: {self.enable_secondary_fallback}
"""
