"""Pure ingestion domain: validation error DTO and record validators."""

from fee_ingestion.domain.types import ImportRowResult, ValidationError
from fee_ingestion.domain.validators import (
    validate_batch_uniqueness,
    validate_decimal_fields,
    validate_required_fields,
)

__all__ = [
    "ImportRowResult",
    "ValidationError",
    "validate_batch_uniqueness",
    "validate_decimal_fields",
    "validate_required_fields",
]
