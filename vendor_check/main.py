#!/usr/bin/env python3
"""
Main entry point for the vendor check crawler.
Uses YAML configuration for settings and the target list.
"""

import asyncio
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from vendor_check.batch import BatchCrawler
from vendor_check.config import CrawlerConfig
from vendor_check.config_loader import ConfigLoader
from vendor_check.crawler import CrawlOrchestrator
from vendor_check.session import SessionFactory
from vendor_check.utils import (
    print_batch_summary,
    print_summary,
    save_report_to_json,
    setup_logging,
    validate_dependencies,
)

logger = logging.getLogger(__name__)


USAGE = """
Vendor Check - YAML Configuration Based

Usage:
  python -m vendor_check.main "Business Name"            # Check one business against every target
  python -m vendor_check.main --csv businesses.csv       # Check every business_name in a CSV file
  python -m vendor_check.main "Acme LLC" --config my.yaml
  python -m vendor_check.main --sample-config            # Create sample config.yaml
  python -m vendor_check.main --check-browser            # Verify the browser can start

Configuration:
  The crawler uses config.yaml in the current directory or project root.
  Targets are listed under the 'targets' key; see the sample config.
  Environment variables (VENDOR_CHECK_*) override YAML values.
"""


def parse_args(argv: List[str]) -> Dict[str, Any]:
    """
    Parse command line arguments.

    Raises:
        ValueError: If an option is missing its value or is unknown
    """
    args = {'business_name': None, 'config': None, 'csv': None, 'command': None}
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg in ('--help', '-h'):
            args['command'] = 'help'
        elif arg == '--sample-config':
            args['command'] = 'sample-config'
        elif arg == '--check-browser':
            args['command'] = 'check-browser'
        elif arg in ('--config', '--csv'):
            if i + 1 >= len(argv):
                raise ValueError(f"{arg} requires a value")
            args[arg[2:]] = argv[i + 1]
            i += 1
        elif arg.startswith('-'):
            raise ValueError(f"Unknown option: {arg}")
        elif args['business_name'] is None:
            args['business_name'] = arg
        else:
            raise ValueError(f"Unexpected argument: {arg}")
        i += 1
    return args


def build_log_file(yaml_config: Dict[str, Any], timestamp: str) -> str:
    """Per-run timestamped log file under logs/ (or next to the configured file)."""
    base_log_file = (yaml_config.get('logging') or {}).get('file')
    if base_log_file:
        base = Path(base_log_file)
        log_dir = base.parent if base.parent != Path('.') else Path('logs')
        log_dir.mkdir(parents=True, exist_ok=True)
        return str(log_dir / f"{base.stem}_{timestamp}{base.suffix or '.log'}")

    log_dir = Path('logs')
    log_dir.mkdir(exist_ok=True)
    return str(log_dir / f"vendor_check_{timestamp}.log")


def main(argv: Optional[List[str]] = None):
    """Main entry point for the vendor check crawler."""
    global logger

    try:
        args = parse_args(sys.argv[1:] if argv is None else argv)
    except ValueError as e:
        print(f"❌ Error: {e}")
        print("   Use --help for usage information")
        sys.exit(2)

    if args['command'] == 'help':
        print(USAGE)
        return

    if args['command'] == 'sample-config':
        ConfigLoader.create_sample_config()
        print("\n✅ Sample config.yaml created!")
        print("   Edit config.yaml to customize settings, then run: python -m vendor_check.main \"Business Name\"")
        return

    config = CrawlerConfig()
    try:
        yaml_config = ConfigLoader.load_config(args['config'])
        if yaml_config:
            config.update_from_yaml(yaml_config)
            logger.info("Configuration loaded from YAML")
    except ValueError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    config.update_from_env()

    if not validate_dependencies():
        print("❌ Dependency validation failed. Please install missing packages.")
        sys.exit(1)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    log_level = (yaml_config.get('logging') or {}).get('level', 'INFO')
    log_file = build_log_file(yaml_config, timestamp)
    logger = setup_logging(log_level, log_file)
    logger.info(f"Logging configured successfully - log file: {log_file}")

    config.validate()

    if args['command'] == 'check-browser':
        result = asyncio.run(SessionFactory(config).check_browser())
        if result['success']:
            print(f"✅ Browser OK: {result['title']}")
            return
        print(f"❌ Browser check failed: {result['error']}")
        sys.exit(1)

    try:
        targets = ConfigLoader.load_targets(yaml_config)
    except ValueError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    if not targets:
        print("❌ Error: No targets configured. Add a 'targets' list to config.yaml")
        print("   Create one with: python -m vendor_check.main --sample-config")
        sys.exit(1)

    if not args['business_name'] and not args['csv']:
        print("❌ Error: Provide a business name or --csv FILE")
        print(USAGE)
        sys.exit(2)

    print("=" * 60)
    print("Vendor Check Configuration")
    print("=" * 60)
    print(f"  Business:        {args['business_name'] or args['csv']}")
    print(f"  Targets:         {len(targets)}")
    print(f"  Output:          {config.output_base_dir}")
    print(f"  Page Timeout:    {config.page_load_timeout}s")
    print(f"  Browser Mode:    {'Headless' if config.browser_headless else 'Visible'}")
    print(f"  Proxy:           {'configured' if config.has_proxy() else 'none'}")
    print(f"  Log Level:       {log_level}")
    print("=" * 60)
    print()

    save_json = (yaml_config.get('results') or {}).get('save_json')

    try:
        if args['csv']:
            logger.info(f"Starting batch crawl from CSV file: {args['csv']}")
            summary = BatchCrawler(config, targets).crawl_from_csv(args['csv'])
            print_batch_summary(summary)
            if save_json:
                asyncio.run(save_report_to_json(summary, save_json))
                print(f"\n💾 Detailed results saved to: {save_json}")
        else:
            logger.info(f"Starting crawl for: {args['business_name']}")
            report = asyncio.run(CrawlOrchestrator(config).run_crawl(args['business_name'], targets))
            report_dict = report.to_dict()
            print_summary(report_dict)
            if save_json:
                asyncio.run(save_report_to_json(report_dict, save_json))
                print(f"\n💾 Report saved to: {save_json}")
    except KeyboardInterrupt:
        logger.warning("Crawling interrupted by user")
        print("\n⚠️  Crawling interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Crawling failed with error: {e}", exc_info=True)
        print(f"\n❌ Error: {e}")
        sys.exit(1)

    logger.info("Vendor check completed")
    print("\n✅ Crawling completed successfully!")


if __name__ == '__main__':
    main()
