"""
XLSX source adapter for fee-scale workbooks.

Supports flexible layout:
  - sheet by index (0-based) or name
  - header row by index or auto-detect (scans the first rows for fee-scale
    column names)
  - skip_rows before header
  - normalizes cell values (strip, blank -> empty string)

Auto-detect looks for a row containing at least 2 of: construction cost,
prime consultant rate, mechanical, plumbing, electrical, structural,
fraction (so varied export layouts match).
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Iterator

import openpyxl

from fee_ingestion.adapters.base import SourceProbe

_HEADER_KEYWORDS = frozenset({
    "construction cost", "construction_cost", "cost",
    "prime consultant rate", "prime_consultant_rate", "prime rate", "rate",
    "mechanical", "plumbing", "electrical", "structural", "fraction",
})

_MAX_SEARCH = 15
_MAX_COLUMNS = 50


def _normalize_header_cell(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def _cell_value(row: Any, col_idx: int) -> Any:
    """Cell value from an openpyxl row (0-based column index)."""
    try:
        cell = row[col_idx]
    except (IndexError, TypeError):
        return ""
    v = getattr(cell, "value", None)
    if v is None:
        return ""
    if isinstance(v, float):
        if v == int(v):
            return int(v)
        return v
    if isinstance(v, int):
        return v
    return str(v).strip()


def _row_keywords(row: Any) -> set[str]:
    keywords = set()
    for c in range(_MAX_COLUMNS):
        v = _cell_value(row, c)
        if not isinstance(v, str) or not v:
            continue
        lowered = v.lower()
        for kw in _HEADER_KEYWORDS:
            if kw in lowered:
                keywords.add(kw)
    return keywords


def _detect_header_row(rows: list, min_keywords: int = 2) -> int:
    """0-based index of the first row that looks like a fee-scale header."""
    for i, row in enumerate(rows[:_MAX_SEARCH]):
        if len(_row_keywords(row)) >= min_keywords:
            return i
    return 0


def _column_count(row: Any) -> int:
    n = 0
    for c in range(_MAX_COLUMNS):
        if _cell_value(row, c) != "":
            n = c + 1
    return max(n, 1)


def _headers(row: Any) -> list[str]:
    headers: list[str] = []
    for c in range(_column_count(row)):
        key = _normalize_header_cell(_cell_value(row, c)) or f"Column_{c + 1}"
        base = key
        cnt = 0
        while key in headers:
            cnt += 1
            key = f"{base}_{cnt}"
        headers.append(key)
    return headers


class XlsxSourceAdapter:
    """
    Read .xlsx files as one dict per row.

    source_options:
      sheet: 0-based sheet index (int) or sheet name (str). Default: active sheet.
      skip_rows: rows to skip at the top of the sheet. Default: 0.
      header_row: 0-based row index (after skip_rows) of the header; used
        when auto_detect_header is false.
      auto_detect_header: scan the first 15 rows for a header. Default: true.
    """

    def _get_sheet(self, wb: Any, options: dict[str, Any]) -> Any:
        sheet_ref = options.get("sheet")
        if sheet_ref is None:
            return wb.active
        if isinstance(sheet_ref, int):
            return wb.worksheets[sheet_ref]
        return wb[sheet_ref]

    def _header_index(self, rows: list, options: dict[str, Any]) -> int:
        header_row_idx = options.get("header_row")
        if not options.get("auto_detect_header", True):
            return int(header_row_idx or 0)
        return _detect_header_row(rows)

    def read(self, source_path: Path, options: dict[str, Any]) -> Iterator[dict[str, Any]]:
        wb = openpyxl.load_workbook(source_path, read_only=True, data_only=True)
        try:
            sheet = self._get_sheet(wb, options)
            skip_rows = int(options.get("skip_rows", 0))
            rows = list(sheet.iter_rows(min_row=1 + skip_rows))
            if not rows:
                return

            hi = self._header_index(rows, options)
            headers = _headers(rows[hi])
            for row in rows[hi + 1:]:
                vals = [_cell_value(row, c) for c in range(len(headers))]
                if not any(v != "" for v in vals):
                    continue
                yield dict(zip(headers, vals))
        finally:
            wb.close()

    def probe(self, source_path: Path, options: dict[str, Any]) -> SourceProbe:
        wb = openpyxl.load_workbook(source_path, read_only=True, data_only=True)
        try:
            sheet = self._get_sheet(wb, options)
            skip_rows = int(options.get("skip_rows", 0))
            rows = list(sheet.iter_rows(min_row=1 + skip_rows))
            if not rows:
                return SourceProbe(row_count=0, columns=(), sample_rows=())

            hi = self._header_index(rows, options)
            headers = _headers(rows[hi])
            records = []
            for row in rows[hi + 1:]:
                vals = [_cell_value(row, c) for c in range(len(headers))]
                if any(v != "" for v in vals):
                    records.append(dict(zip(headers, vals)))
            return SourceProbe(
                row_count=len(records),
                columns=tuple(headers),
                sample_rows=tuple(records[:5]),
            )
        finally:
            wb.close()
