"""
Batch module that runs several business names concurrently.
Each business name is crawled in its own process with its own event loop
and its own browser session; per-run reports are aggregated into a summary.
"""

import asyncio
import logging
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Optional

from vendor_check.config import CrawlerConfig
from vendor_check.crawler import CrawlOrchestrator
from vendor_check.csv_reader import BusinessCSVReader
from vendor_check.models import CrawlOptions, TargetDefinition

logger = logging.getLogger(__name__)


class BatchCrawler:
    """Handles multi-processing orchestration for several business names."""

    def __init__(self, config: CrawlerConfig, targets: List[TargetDefinition],
                 options: Optional[CrawlOptions] = None):
        self.config = config
        self.targets = list(targets)
        self.options = options or CrawlOptions()
        self.logger = logging.getLogger(__name__)
        self.csv_reader = BusinessCSVReader(config)
        self.logger.info(f"BatchCrawler initialized with {len(self.targets)} targets")

    def crawl_from_csv(self, csv_file_path: str) -> Dict[str, Any]:
        """
        Crawl every business name listed in a CSV file.

        Args:
            csv_file_path: Path to CSV file containing business names

        Returns:
            Dictionary with per-run reports and statistics
        """
        self.logger.info(f"Starting batch crawl from CSV: {csv_file_path}")
        self.csv_reader.validate_csv_format(csv_file_path)
        names = self.csv_reader.read_business_names(csv_file_path)

        if not names:
            self.logger.error("No business names found in CSV file")
            raise ValueError("No business names found in CSV file")

        return self.crawl_business_names(names)

    def crawl_business_names(self, names: List[str]) -> Dict[str, Any]:
        """
        Crawl a list of business names concurrently.

        Args:
            names: Business names, one independent run each

        Returns:
            Dictionary with per-run reports and statistics
        """
        start_time = time.time()
        self.logger.info(f"Starting crawl of {len(names)} business names using "
                         f"{self.config.max_concurrent_runs} concurrent runs")

        Path(self.config.output_base_dir).mkdir(parents=True, exist_ok=True)

        results = self._run_parallel_crawling(names)
        summary = self._generate_summary(results, start_time)

        self.logger.info(f"Batch completed in {summary['total_time']:.2f} seconds")
        self.logger.info(f"Results: {summary['successful_runs']} runs completed, {summary['failed_runs']} runs failed, "
                         f"{summary['successful_targets']}/{summary['total_targets']} targets successful")
        return summary

    def _run_parallel_crawling(self, names: List[str]) -> List[Dict[str, Any]]:
        """
        Run one crawl per business name using ProcessPoolExecutor.

        Args:
            names: Business names

        Returns:
            List of report dictionaries (or error dictionaries)
        """
        results = []

        with ProcessPoolExecutor(max_workers=self.config.max_concurrent_runs) as executor:
            future_to_name = {
                executor.submit(self._crawl_single_business, name): name
                for name in names
            }

            completed_count = 0
            total_count = len(names)

            for future in as_completed(future_to_name):
                name = future_to_name[future]
                try:
                    result = future.result()
                except Exception as e:
                    result = self._error_result(name, f"Failed to crawl: {e}")
                    self.logger.error(f"Failed to crawl {name}: {e}")

                results.append(result)
                completed_count += 1
                self.logger.info(f"Completed {completed_count}/{total_count}: {name} "
                                 f"({result.get('successful', 0)}/{result.get('totalProcessed', 0)} targets)")

        return results

    def _crawl_single_business(self, business_name: str) -> Dict[str, Any]:
        """
        Crawl one business name. This method runs in a separate process.

        Args:
            business_name: Name searched on every target

        Returns:
            Report dictionary for the run
        """
        logging.basicConfig(
            level=logging.INFO,
            format=f'%(asctime)s - %(name)s - {business_name} - %(levelname)s - %(message)s'
        )

        try:
            orchestrator = CrawlOrchestrator(self.config)
            report = asyncio.run(orchestrator.run_crawl(business_name, self.targets, self.options))
            return report.to_dict()
        except Exception as e:
            self.logger.error(f"Process error for {business_name}: {e}")
            return self._error_result(business_name, str(e))

    @staticmethod
    def _error_result(business_name: str, error: str) -> Dict[str, Any]:
        return {
            'businessName': business_name,
            'totalProcessed': 0,
            'successful': 0,
            'failed': 0,
            'outcomes': [],
            'error': error,
        }

    def _generate_summary(self, results: List[Dict[str, Any]], start_time: float) -> Dict[str, Any]:
        """
        Generate summary statistics across all runs.

        Args:
            results: List of per-run report dictionaries
            start_time: Start time of the batch

        Returns:
            Dictionary with summary statistics
        """
        total_time = time.time() - start_time

        summary = {
            'total_time': total_time,
            'total_runs': len(results),
            'successful_runs': 0,
            'failed_runs': 0,
            'total_targets': 0,
            'successful_targets': 0,
            'failed_targets': 0,
            'matches_found': 0,
            'results': results,
            'performance': {
                'targets_per_minute': 0,
                'avg_seconds_per_run': 0,
            }
        }

        for result in results:
            if result.get('error'):
                summary['failed_runs'] += 1
            else:
                summary['successful_runs'] += 1

            summary['total_targets'] += result.get('totalProcessed', 0)
            summary['successful_targets'] += result.get('successful', 0)
            summary['failed_targets'] += result.get('failed', 0)
            summary['matches_found'] += sum(1 for o in result.get('outcomes', []) if o.get('matchFound'))

        if total_time > 0:
            summary['performance']['targets_per_minute'] = (summary['total_targets'] / total_time) * 60

        if results:
            summary['performance']['avg_seconds_per_run'] = total_time / len(results)

        return summary
