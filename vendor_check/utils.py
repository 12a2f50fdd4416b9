"""
Utility functions for the vendor check crawler.
Includes logging setup, report persistence and console summaries.
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

import aiofiles

logger = logging.getLogger(__name__)


def setup_logging(log_level: str = 'INFO', log_file: Optional[str] = None) -> logging.Logger:
    """
    Set up logging configuration for the crawler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional log file path

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger('vendor_check')
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Could not create log file {log_file}: {e}")

    return logger


async def save_report_to_json(report: Dict[str, Any], output_file: str) -> None:
    """
    Save a crawl report (or batch summary) to a JSON file.

    Args:
        report: Report dictionary to save
        output_file: Output file path
    """
    logger.info(f"Saving report to JSON file: {output_file}")
    async with aiofiles.open(output_file, 'w', encoding='utf-8') as f:
        await f.write(json.dumps(report, indent=2, ensure_ascii=False, default=str))
    logger.info(f"Report saved successfully to {output_file}")


def print_summary(report: Dict[str, Any]) -> None:
    """
    Print a formatted summary of one crawl report.

    Args:
        report: Dictionary from CrawlReport.to_dict()
    """
    print("\n" + "="*60)
    print(f"VENDOR CHECK SUMMARY: {report['businessName']}")
    print("="*60)

    print(f"Targets processed: {report['totalProcessed']}")
    print(f"Successful: {report['successful']}")
    print(f"Failed: {report['failed']}")

    print("\nTargets:")
    for outcome in report['outcomes']:
        status = '✅' if outcome['success'] else '❌'
        match = ' (match found)' if outcome['matchFound'] else ''
        print(f"  {status} {outcome['targetName']}{match}")
        if outcome['error']:
            print(f"      error: {outcome['error']}")
        if outcome['screenshotPath']:
            print(f"      screenshot: {outcome['screenshotPath']}")

    print("\n" + "="*60)


def print_batch_summary(summary: Dict[str, Any]) -> None:
    """
    Print a formatted summary of a batch of runs.

    Args:
        summary: Summary dictionary from BatchCrawler
    """
    print("\n" + "="*60)
    print("VENDOR CHECK BATCH SUMMARY")
    print("="*60)

    print(f"Total execution time: {summary['total_time']:.2f} seconds")
    print(f"Business names processed: {summary['total_runs']}")
    print(f"Runs completed: {summary['successful_runs']}")
    print(f"Runs failed: {summary['failed_runs']}")
    print(f"Targets: {summary['successful_targets']}/{summary['total_targets']} successful")
    print(f"Matches found: {summary['matches_found']}")

    perf = summary['performance']
    print("\nPerformance:")
    print(f"  Targets per minute: {perf['targets_per_minute']:.2f}")
    print(f"  Avg seconds per run: {perf['avg_seconds_per_run']:.1f}")

    print("\n" + "="*60)


def validate_dependencies() -> bool:
    """
    Validate that all required dependencies are installed.

    Returns:
        True if all dependencies are available
    """
    logger.debug("Validating required dependencies")
    missing_deps = []

    for module_name, package_name in (('playwright', 'playwright'), ('playwright_stealth', 'playwright-stealth'),
                                      ('selenium', 'selenium'), ('aiofiles', 'aiofiles'), ('yaml', 'PyYAML')):
        try:
            __import__(module_name)
            logger.debug(f"✓ {package_name} available")
        except ImportError:
            missing_deps.append(package_name)
            logger.debug(f"✗ {package_name} missing")

    if missing_deps:
        logger.error(f"Missing required dependencies: {missing_deps}")
        print("Missing required dependencies:")
        for dep in missing_deps:
            print(f"  - {dep}")
        print("\nInstall with: pip install " + " ".join(missing_deps))
        if 'playwright' in missing_deps:
            print("Also run: playwright install chromium")
        return False

    logger.info("All required dependencies are available")
    return True
