"""
Data model for crawl runs.
Targets and proxy settings come from configuration; navigation results,
verdicts and outcomes are produced by the crawler and never mutated.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

logger = logging.getLogger(__name__)


class EngineTag(str, Enum):
    """Automation backend that produced a navigation result."""

    PRIMARY = "primary"
    SECONDARY_FALLBACK = "secondaryFallback"


@dataclass(frozen=True)
class ProxySettings:
    """Upstream proxy credentials attached at browser launch."""

    server: str
    username: str = ""
    password: str = ""

    def is_complete(self) -> bool:
        return bool(self.server and self.username and self.password)

    def to_playwright(self) -> Dict[str, str]:
        return {
            'server': self.server,
            'username': self.username,
            'password': self.password,
        }


@dataclass(frozen=True)
class SearchWorkflow:
    """
    In-page search performed after a target loads.

    Selectors are tried in order; the first one present on the page wins.
    """

    input_selector: str
    input_fallbacks: List[str] = field(default_factory=list)
    submit_selectors: List[str] = field(default_factory=lambda: [
        'button[type="submit"]',
        'input[type="submit"]',
        'button:has-text("Search")',
        '[aria-label*="search" i][role="button"]',
    ])
    result_selectors: List[str] = field(default_factory=lambda: [
        'table tbody tr',
        '[role="row"]',
        '.search-results',
        '.results',
        '#results',
    ])

    def input_candidates(self) -> List[str]:
        return [self.input_selector] + [s for s in self.input_fallbacks if s != self.input_selector]


DEFAULT_ROW_SELECTORS = [
    'table tbody tr',
    '[role="row"]',
    '.search-result',
    '.result-item',
    '.results li',
]

DEFAULT_VIEW_SELECTORS = [
    'a:has-text("View")',
    'button:has-text("View")',
    'a:has-text("Details")',
    'a[href*="view"]',
]


@dataclass(frozen=True)
class TargetDefinition:
    """One external page or workflow visited for every business name."""

    name: str
    url_template: str
    screenshot_file_name: str
    requires_match: bool = False
    search: Optional[SearchWorkflow] = None
    row_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_ROW_SELECTORS))
    view_selectors: List[str] = field(default_factory=lambda: list(DEFAULT_VIEW_SELECTORS))

    def build_url(self, business_name: str) -> str:
        """Render the URL template with the URL-quoted business name."""
        return self.url_template.format(business_name=quote_plus(business_name.strip()))


@dataclass(frozen=True)
class StyleArtifacts:
    css_links: List[str] = field(default_factory=list)
    inline_styles: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class BlockVerdict:
    blocked: bool
    score: int
    matched_hard_signal: bool
    reason: str = ""


@dataclass(frozen=True)
class NavigationResult:
    """Everything captured by one navigation attempt."""

    url: str
    status_code: int
    headers: Dict[str, str]
    blocked: bool
    html: str
    screenshot: Optional[bytes]
    style_artifacts: StyleArtifacts = field(default_factory=StyleArtifacts)
    engine_tag: EngineTag = EngineTag.PRIMARY
    used_proxy: bool = False


@dataclass(frozen=True)
class TargetOutcome:
    target_name: str
    url: str
    success: bool
    match_found: bool = False
    screenshot_path: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'targetName': self.target_name,
            'url': self.url,
            'success': self.success,
            'matchFound': self.match_found,
            'screenshotPath': self.screenshot_path,
            'error': self.error,
        }


class CrawlReport:
    """
    Aggregated report for one business name.

    Built incrementally by the orchestrator; counts are derived from the
    recorded outcomes so they can never drift apart.
    """

    def __init__(self, business_name: str):
        self.business_name = business_name
        self.outcomes: List[TargetOutcome] = []

    def add(self, outcome: TargetOutcome) -> None:
        self.outcomes.append(outcome)
        logger.debug(f"Recorded outcome for {outcome.target_name}: success={outcome.success}")

    @property
    def total_processed(self) -> int:
        return len(self.outcomes)

    @property
    def successful(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'businessName': self.business_name,
            'totalProcessed': self.total_processed,
            'successful': self.successful,
            'failed': self.failed,
            'outcomes': [o.to_dict() for o in self.outcomes],
        }


@dataclass(frozen=True)
class AlternateCapture:
    """Raw page source and full-page screenshot from the secondary engine."""

    url: str
    html: str
    screenshot: Optional[bytes]


@dataclass(frozen=True)
class CrawlOptions:
    """Per-run overrides for the orchestrator."""

    headless: Optional[bool] = None
    use_proxy: bool = False
    screenshot_dir: Optional[str] = None
