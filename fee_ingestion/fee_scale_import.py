"""
fee_ingestion.fee_scale_import -- Fee-scale table import from spreadsheets.

Responsibility:
    Map tabular rows (from CSV or XLSX adapters, or any iterable of dicts)
    onto ``FeeScaleBracket`` records, validate them row by row, and build a
    ``FeeScaleTable``.

Architecture position:
    Ingestion -- sits beside ``fee_config``; consumes adapters for file I/O
    and ``fee_kernel.domain.reference`` for the resulting table.

Invariants enforced:
    - Column names are matched case-insensitively after normalizing
      spaces, hyphens and punctuation; ``fraction_of_prime_rate_<discipline>``,
      ``fraction_<discipline>`` and bare ``<discipline>`` are all accepted.
    - ``construction_cost`` and ``prime_consultant_rate`` are required;
      missing fractions default to 100.
    - Thresholds must be unique across the import; rows may arrive in any
      order and are sorted.

Failure modes:
    - ``FeeScaleImportError`` carrying every row-level ``ValidationError``
      when ``strict`` is true (the default).
    - ``IngestionError`` for an unsupported file type.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any

from fee_ingestion.adapters import CsvSourceAdapter, SourceAdapter, XlsxSourceAdapter
from fee_ingestion.domain.types import ImportRowResult, ValidationError
from fee_ingestion.domain.validators import (
    validate_batch_uniqueness,
    validate_decimal_fields,
    validate_required_fields,
)
from fee_kernel.domain.reference import FeeScaleBracket, FeeScaleTable
from fee_kernel.exceptions import FeeScaleImportError, IngestionError
from fee_kernel.logging_config import get_logger

logger = get_logger("ingestion.fee_scale")

REQUIRED_FIELDS = ("construction_cost", "prime_consultant_rate")
FRACTION_FIELDS = (
    "fraction_mechanical",
    "fraction_plumbing",
    "fraction_electrical",
    "fraction_structural",
)
DECIMAL_FIELDS = REQUIRED_FIELDS + FRACTION_FIELDS

_ALIASES: dict[str, str] = {
    "construction_cost": "construction_cost",
    "construction_cost_threshold": "construction_cost",
    "cost": "construction_cost",
    "threshold": "construction_cost",
    "prime_consultant_rate": "prime_consultant_rate",
    "prime_rate": "prime_consultant_rate",
    "rate": "prime_consultant_rate",
    "id": "id",
}
for _discipline in ("mechanical", "plumbing", "electrical", "structural"):
    for _alias in (
        f"fraction_of_prime_rate_{_discipline}",
        f"fraction_{_discipline}",
        _discipline,
    ):
        _ALIASES[_alias] = f"fraction_{_discipline}"

_ADAPTERS: dict[str, type] = {
    ".csv": CsvSourceAdapter,
    ".xlsx": XlsxSourceAdapter,
    ".xlsm": XlsxSourceAdapter,
}


@dataclass(frozen=True)
class FeeScaleImportResult:
    """Imported table plus the per-row outcomes that produced it."""

    table: FeeScaleTable
    rows: tuple[ImportRowResult, ...]
    errors: tuple[ValidationError, ...] = ()

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def valid_count(self) -> int:
        return sum(1 for r in self.rows if r.is_valid)


def normalize_column(name: Any) -> str:
    """``"Fraction of Prime Rate - Mechanical (%)"`` -> ``fraction_of_prime_rate_mechanical``."""
    text = re.sub(r"\(.*?\)|[%$#]", "", str(name or "")).strip().lower()
    return re.sub(r"[^a-z0-9]+", "_", text).strip("_")


def map_row(raw: dict[str, Any]) -> dict[str, Any]:
    """Rename recognised columns to bracket field names; others are dropped."""
    mapped: dict[str, Any] = {}
    for column, value in raw.items():
        target = _ALIASES.get(normalize_column(column))
        if target is not None and target not in mapped:
            mapped[target] = value
    return mapped


def _clean_number(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().replace(",", "").replace("$", "").rstrip("%").strip()
    return value


def _build_bracket(mapped: dict[str, Any]) -> FeeScaleBracket:
    values = {name: _clean_number(mapped.get(name)) for name in DECIMAL_FIELDS}
    for name in FRACTION_FIELDS:
        if values[name] is None or values[name] == "":
            values[name] = Decimal("100")
    raw_id = mapped.get("id")
    return FeeScaleBracket(
        id=int(raw_id) if raw_id not in (None, "") else None,
        **values,
    )


def import_fee_scale(
    rows: Iterable[dict[str, Any]],
    strict: bool = True,
) -> FeeScaleImportResult:
    """
    Build a fee-scale table from source rows.

    Args:
        rows: One dict per source row, keyed by column header.
        strict: Raise when any row fails validation.  When false, invalid
            rows are skipped and reported in the result.

    Returns:
        FeeScaleImportResult with the table built from valid rows.

    Raises:
        FeeScaleImportError: strict mode and at least one row is invalid.
    """
    results: list[ImportRowResult] = []
    mapped_rows: list[dict[str, Any]] = []

    for index, raw in enumerate(rows):
        source_row = index + 1
        mapped = map_row(raw)
        errors = validate_required_fields(mapped, REQUIRED_FIELDS, row=source_row)
        errors += validate_decimal_fields(
            {k: _clean_number(v) for k, v in mapped.items()},
            DECIMAL_FIELDS,
            row=source_row,
        )
        bracket = None
        if not errors:
            try:
                bracket = _build_bracket(mapped)
            except ValueError as e:
                errors.append(ValidationError(
                    code="INVALID_ROW",
                    message=str(e),
                    row=source_row,
                ))
        results.append(ImportRowResult(
            source_row=source_row,
            raw_data=dict(raw),
            bracket=bracket,
            errors=tuple(errors),
        ))
        mapped_rows.append(
            {"construction_cost": bracket.construction_cost} if bracket else {}
        )

    duplicates = validate_batch_uniqueness(mapped_rows, ("construction_cost",))
    for i, dup_errors in duplicates.items():
        r = results[i]
        results[i] = ImportRowResult(
            source_row=r.source_row,
            raw_data=r.raw_data,
            bracket=r.bracket,
            errors=r.errors + tuple(
                ValidationError(
                    code=e.code,
                    message=e.message,
                    field=e.field,
                    row=r.source_row,
                    details=e.details,
                )
                for e in dup_errors
            ),
        )

    all_errors = tuple(e for r in results for e in r.errors)
    if all_errors and strict:
        logger.warning("fee_scale_import_rejected", extra={
            "row_count": len(results),
            "error_count": len(all_errors),
        })
        raise FeeScaleImportError(list(all_errors))

    table = FeeScaleTable.from_rows(r.bracket for r in results if r.is_valid)

    logger.info("fee_scale_imported", extra={
        "row_count": len(results),
        "bracket_count": len(table),
        "error_count": len(all_errors),
    })

    return FeeScaleImportResult(table=table, rows=tuple(results), errors=all_errors)


def adapter_for(source_path: Path) -> SourceAdapter:
    """Source adapter for a file, chosen by extension."""
    adapter_cls = _ADAPTERS.get(Path(source_path).suffix.lower())
    if adapter_cls is None:
        raise IngestionError(f"Unsupported fee scale file type: {source_path}")
    return adapter_cls()


def load_fee_scale_file(
    source_path: Path,
    options: dict[str, Any] | None = None,
    strict: bool = True,
) -> FeeScaleImportResult:
    """Read a CSV or XLSX file and import it as a fee-scale table."""
    path = Path(source_path)
    adapter = adapter_for(path)
    logger.info("fee_scale_file_loading", extra={
        "source_path": str(path),
        "adapter": type(adapter).__name__,
    })
    return import_fee_scale(adapter.read(path, options or {}), strict=strict)
