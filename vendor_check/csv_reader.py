"""
CSV reader module for loading business names from CSV files.
"""

import csv
import logging
import os
from typing import List, Optional, Dict

logger = logging.getLogger(__name__)


class BusinessCSVReader:
    """Handles reading and validating business names from CSV files."""

    def __init__(self, config):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def read_business_names(self, csv_file_path: str) -> List[str]:
        """
        Read business names from CSV file.

        Blank names are skipped and duplicates (ignoring case and
        surrounding whitespace) are dropped, keeping the first occurrence.

        Args:
            csv_file_path: Path to the CSV file

        Returns:
            Business names in file order
        """
        self.logger.info(f"Reading business names from CSV file: {csv_file_path}")

        if not os.path.exists(csv_file_path):
            self.logger.error(f"CSV file not found: {csv_file_path}")
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

        names = []
        seen = set()
        processed_rows = 0

        try:
            with open(csv_file_path, 'r', encoding=self.config.csv_encoding, newline='') as file:
                sample = file.read(1024)
                file.seek(0)
                delimiter = self._detect_delimiter(sample)
                self.logger.debug(f"Detected CSV delimiter: '{delimiter}'")

                reader = csv.DictReader(file, delimiter=delimiter)
                for row_num, row in enumerate(reader, start=2):  # Start at 2 for header
                    processed_rows += 1
                    name = self._process_row(row, row_num)
                    if not name:
                        continue
                    key = name.lower()
                    if key in seen:
                        self.logger.debug(f"Row {row_num}: duplicate business name '{name}' skipped")
                        continue
                    seen.add(key)
                    names.append(name)
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            self.logger.error(f"Error reading CSV file: {e}")
            raise RuntimeError(f"Error reading CSV file: {e}")

        self.logger.info(f"Loaded {len(names)} business names from {csv_file_path} "
                         f"({processed_rows} rows processed)")
        return names

    def _detect_delimiter(self, sample: str) -> str:
        """Detect CSV delimiter from the header line of a sample."""
        header = sample.splitlines()[0] if sample else ''
        counts = {d: header.count(d) for d in (',', ';', '\t', '|') if header.count(d) > 0}
        if counts:
            return max(counts, key=counts.get)
        return self.config.csv_delimiter

    def _process_row(self, row: Dict[str, str], row_num: int) -> Optional[str]:
        name = (row.get(self.config.csv_business_column) or '').strip()
        if not name:
            self.logger.warning(f"Row {row_num}: Missing business name in column '{self.config.csv_business_column}'")
            return None
        return name

    def validate_csv_format(self, csv_file_path: str) -> bool:
        """
        Validate CSV file format and check for the business name column.

        Returns:
            True if valid, raises ValueError if invalid
        """
        self.logger.info(f"Validating CSV file format: {csv_file_path}")

        try:
            with open(csv_file_path, 'r', encoding=self.config.csv_encoding, newline='') as file:
                sample = file.read(1024)
                file.seek(0)
                reader = csv.DictReader(file, delimiter=self._detect_delimiter(sample))

                if not reader.fieldnames:
                    raise ValueError("CSV file must have a header row")

                if self.config.csv_business_column not in reader.fieldnames:
                    raise ValueError(
                        f"Required column '{self.config.csv_business_column}' not found. "
                        f"Available columns: {list(reader.fieldnames)}"
                    )
        except (OSError, ValueError) as e:
            self.logger.error(f"CSV validation failed: {e}")
            raise ValueError(f"CSV validation failed: {e}")

        self.logger.info("CSV validation passed")
        return True
