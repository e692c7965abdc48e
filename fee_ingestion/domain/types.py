"""
fee_ingestion.domain.types -- Pure frozen dataclasses for imports.

ZERO I/O.  Imports only from fee_kernel/domain/.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fee_kernel.domain.reference import FeeScaleBracket


@dataclass(frozen=True)
class ValidationError:
    """
    A single validation error.

    Contract:
        Carries a machine-readable code, human-readable message, optional
        field name, the 1-indexed source row, and optional details.

    Non-goals:
        - Does NOT raise -- it IS the error representation.
    """

    code: str
    message: str
    field: str | None = None
    row: int | None = None
    details: dict[str, Any] | None = None


@dataclass(frozen=True)
class ImportRowResult:
    """Outcome of mapping one source row: a bracket or its errors."""

    source_row: int
    raw_data: dict[str, Any]
    bracket: FeeScaleBracket | None = None
    errors: tuple[ValidationError, ...] = ()

    @property
    def is_valid(self) -> bool:
        return self.bracket is not None and not self.errors
