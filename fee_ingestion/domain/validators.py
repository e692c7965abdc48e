"""
Pre-packaged validators for imported records.

Record-level validators look at one mapped record; the batch validator
looks across records.  ZERO I/O.
"""

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from fee_ingestion.domain.types import ValidationError


def validate_required_fields(
    record: dict[str, Any],
    required: tuple[str, ...],
    row: int | None = None,
) -> list[ValidationError]:
    """Every required field is present and not blank."""
    errors: list[ValidationError] = []
    for name in required:
        value = record.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors.append(ValidationError(
                code="MISSING_REQUIRED_FIELD",
                message=f"Missing required field: {name}",
                field=name,
                row=row,
            ))
    return errors


def validate_decimal_fields(
    record: dict[str, Any],
    decimal_fields: tuple[str, ...],
    row: int | None = None,
    allow_negative: bool = False,
) -> list[ValidationError]:
    """Present decimal fields parse as finite numbers (non-negative by default)."""
    errors: list[ValidationError] = []
    for name in decimal_fields:
        value = record.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            continue
        try:
            d = Decimal(str(value).strip().replace(",", "").replace("$", "").rstrip("%"))
        except (InvalidOperation, ValueError):
            errors.append(ValidationError(
                code="INVALID_DECIMAL",
                message=f"Value at {name} is not a number: {value!r}",
                field=name,
                row=row,
            ))
            continue
        if not d.is_finite():
            errors.append(ValidationError(
                code="INVALID_DECIMAL",
                message=f"Value at {name} is not finite: {value!r}",
                field=name,
                row=row,
            ))
        elif d < 0 and not allow_negative:
            errors.append(ValidationError(
                code="NEGATIVE_VALUE",
                message=f"Value at {name} must not be negative: {value!r}",
                field=name,
                row=row,
            ))
    return errors


def validate_batch_uniqueness(
    records: Sequence[dict[str, Any]],
    fields: tuple[str, ...],
) -> dict[int, list[ValidationError]]:
    """
    For each field, ensure values are unique across the batch.
    Returns record index -> list of errors (duplicate value).
    """
    result: dict[int, list[ValidationError]] = defaultdict(list)
    for name in fields:
        value_to_indices: dict[Any, list[int]] = defaultdict(list)
        for i, rec in enumerate(records):
            v = rec.get(name)
            if v is None:
                continue
            value_to_indices[v].append(i)
        for value, indices in value_to_indices.items():
            if len(indices) > 1:
                for i in indices:
                    result[i].append(ValidationError(
                        code="DUPLICATE_VALUE_IN_BATCH",
                        message=f"Duplicate value for {name!r} in batch",
                        field=name,
                        details={"value": str(value), "rows": [j + 1 for j in indices]},
                    ))
    return dict(result)
