"""
fee_ingestion -- Reference-data imports from spreadsheets.

Reads fee-scale tables exported as CSV or XLSX, validates each row and
produces a ``FeeScaleTable``.

Architecture:
    fee_ingestion/ is a top-level package.  Nothing in fee_kernel/ or
    fee_engines/ imports from ingestion.
"""

from fee_ingestion.fee_scale_import import (
    FeeScaleImportResult,
    import_fee_scale,
    load_fee_scale_file,
)

__all__ = [
    "FeeScaleImportResult",
    "import_fee_scale",
    "load_fee_scale_file",
]
