"""
YAML configuration loader for the vendor check crawler.
Loads settings and the ordered target list from config.yaml.
"""

import logging
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional

from vendor_check.models import SearchWorkflow, TargetDefinition

logger = logging.getLogger(__name__)


SAMPLE_CONFIG = """# Vendor Check Configuration
# All settings are optional - defaults will be used if not specified

# Timeout Settings (seconds)
timeouts:
  page_load: 60
  network_idle: 10
  element_wait: 5
  result_wait: 10
  change_wait: 3

# Wait Settings (seconds)
waits:
  after_load: 3
  settle: 1.5
  proxy_settle: 0
  after_click: 1

# Browser Settings
browser:
  headless: true
  locale: en-US
  timezone: America/Chicago
  enable_stealth: false
  viewport:
    width: 1200
    height: 1200
  args:
    - --disable-gpu
    - --ignore-certificate-errors
    - --no-sandbox
    - --disable-dev-shm-usage

# Upstream proxy used for the retry attempt (all three values required)
proxy:
  server: null
  username: null
  password: null

# Capture Settings
capture:
  full_page: true
  jpeg_quality: 80
  auto_select_option: true
  hoist_overlays: true
  detect_blocks_per_target: true

# Secondary automation backend (Selenium), used only when Playwright cannot start
fallback:
  enabled: true
  settle_wait: 5

# Concurrent runs (one browser session per business name)
performance:
  max_concurrent_runs: 2

# Output Settings
output:
  base_dir: output
  screenshot_dir: screenshots
  html_dir: html

# CSV Settings (batch mode)
csv:
  delimiter: ','
  business_column: business_name
  encoding: utf-8

# Logging Settings
logging:
  level: INFO  # DEBUG, INFO, WARNING, ERROR
  file: null  # Optional log file path

# Results Settings
results:
  save_json: null  # Optional path to save the report JSON

# Targets, visited in order for every business name
targets:
  - name: SAM.gov Exclusions
    url_template: "https://sam.gov/search/?index=ex&keywords={business_name}"
    screenshot_file_name: sam_exclusions.png
    requires_match: true
  - name: OFAC Sanctions List
    url_template: "https://sanctionssearch.ofac.treas.gov/"
    screenshot_file_name: ofac_sanctions.png
    requires_match: true
    search:
      input_selector: "#ctl00_MainContent_txtLastName"
      input_fallbacks:
        - "input[name*='LastName']"
        - "input[type='text']"
      submit_selectors:
        - "#ctl00_MainContent_btnSearch"
        - "input[type='submit']"
      result_selectors:
        - "#gvSearchResults tr"
        - "#scrollResults"
  - name: OpenCorporates
    url_template: "https://opencorporates.com/companies?q={business_name}"
    screenshot_file_name: opencorporates.png
"""


class ConfigLoader:
    """Handles loading and validation of YAML configuration files."""

    @staticmethod
    def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Load configuration from YAML file.

        Search order:
        1. Explicit config_path if provided
        2. config.yaml in current directory
        3. config.yaml in project root
        4. Returns empty dict (will use defaults)

        Args:
            config_path: Optional explicit path to config file

        Returns:
            Dictionary of configuration values
        """
        if config_path:
            config_file = Path(config_path)
            if not config_file.exists():
                logger.warning(f"Config file not found at explicit path: {config_path}")
                return {}
        else:
            config_file = Path("config.yaml")
            if not config_file.exists():
                config_file = Path(__file__).parent.parent / "config.yaml"
                if not config_file.exists():
                    logger.info("No config.yaml found, using defaults")
                    return {}

        try:
            logger.info(f"Loading configuration from: {config_file}")
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
            logger.info(f"Successfully loaded configuration from {config_file}")
            return config_data
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML config file: {e}")
            raise ValueError(f"Invalid YAML in config file: {e}")

    @staticmethod
    def load_targets(yaml_config: Dict[str, Any]) -> List[TargetDefinition]:
        """
        Build the ordered target list from the ``targets`` section.

        Args:
            yaml_config: Dictionary loaded from YAML file

        Returns:
            Target definitions in file order

        Raises:
            ValueError: If an entry is missing a required key
        """
        targets = []
        for index, entry in enumerate(yaml_config.get('targets') or [], start=1):
            missing = [key for key in ('name', 'url_template', 'screenshot_file_name') if not entry.get(key)]
            if missing:
                raise ValueError(f"Target #{index} is missing required keys: {missing}")

            search = None
            if entry.get('search'):
                search = ConfigLoader._load_search(entry['name'], entry['search'])

            optional = {}
            if entry.get('row_selectors'):
                optional['row_selectors'] = list(entry['row_selectors'])
            if entry.get('view_selectors'):
                optional['view_selectors'] = list(entry['view_selectors'])

            targets.append(TargetDefinition(
                name=entry['name'],
                url_template=entry['url_template'],
                screenshot_file_name=entry['screenshot_file_name'],
                requires_match=bool(entry.get('requires_match', False)),
                search=search,
                **optional,
            ))

        names = [t.name for t in targets]
        if len(set(names)) != len(names):
            raise ValueError(f"Target names must be unique: {names}")

        logger.info(f"Loaded {len(targets)} targets from configuration")
        return targets

    @staticmethod
    def _load_search(target_name: str, search: Dict[str, Any]) -> SearchWorkflow:
        if not search.get('input_selector'):
            raise ValueError(f"Target '{target_name}' search block needs an input_selector")

        kwargs = {'input_selector': search['input_selector']}
        for key in ('input_fallbacks', 'submit_selectors', 'result_selectors'):
            if search.get(key):
                kwargs[key] = list(search[key])
        return SearchWorkflow(**kwargs)

    @staticmethod
    def create_sample_config(output_path: Path = Path("config.yaml")) -> None:
        """
        Create a sample config.yaml file with all available options.

        Args:
            output_path: Path where to create the sample config file
        """
        try:
            with open(output_path, 'w', encoding='utf-8') as f:
                f.write(SAMPLE_CONFIG)
            logger.info(f"Sample config file created at: {output_path}")
        except OSError as e:
            logger.error(f"Error creating sample config file: {e}")
            raise
