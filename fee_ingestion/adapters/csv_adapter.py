"""
CSV source adapter.

Uses csv.DictReader. Configurable: delimiter, encoding, skip_rows. Handles
a BOM via utf-8-sig when encoding is utf-8 (spreadsheet exports commonly
carry one). Streams rows.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Iterator

from fee_ingestion.adapters.base import SourceProbe

_SAMPLE_SIZE = 5


def _get_encoding(options: dict[str, Any]) -> str:
    enc = options.get("encoding", "utf-8")
    if enc.lower() == "utf-8":
        return "utf-8-sig"
    return enc


def _is_blank(row: dict[str, Any]) -> bool:
    return not any((v or "").strip() for v in row.values() if isinstance(v, str))


class CsvSourceAdapter:
    """Read CSV files as one dict per row, keyed by the header row."""

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        skip_rows = int(options.get("skip_rows", 0))

        with Path(source_path).open("r", encoding=encoding, newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            reader = csv.DictReader(f, delimiter=delimiter)
            for row in reader:
                if _is_blank(row):
                    continue
                yield row

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        encoding = _get_encoding(options)
        delimiter = options.get("delimiter", ",")
        skip_rows = int(options.get("skip_rows", 0))

        with Path(source_path).open("r", encoding=encoding, newline="") as f:
            for _ in range(skip_rows):
                next(f, None)
            reader = csv.DictReader(f, delimiter=delimiter)
            columns = tuple(reader.fieldnames or ())
            sample: list[dict[str, Any]] = []
            count = 0
            for row in reader:
                if _is_blank(row):
                    continue
                if len(sample) < _SAMPLE_SIZE:
                    sample.append(dict(row))
                count += 1

        return SourceProbe(
            row_count=count,
            columns=columns,
            sample_rows=tuple(sample),
            encoding=encoding,
            detected_delimiter=delimiter,
        )
