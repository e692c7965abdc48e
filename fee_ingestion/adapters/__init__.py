"""Source adapters for reference-data imports (file I/O only)."""

from fee_ingestion.adapters.base import SourceAdapter, SourceProbe
from fee_ingestion.adapters.csv_adapter import CsvSourceAdapter
from fee_ingestion.adapters.xlsx_adapter import XlsxSourceAdapter

__all__ = [
    "SourceAdapter",
    "SourceProbe",
    "CsvSourceAdapter",
    "XlsxSourceAdapter",
]
