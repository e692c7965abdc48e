"""
fee_services -- Boundary and orchestration layer for fee calculations.

Parses proposal payloads, applies editing commands, and runs memoized
calculations under an explicit ``CalculationContext``.
"""

from fee_services.calculation_service import CalculationOutcome, FeeCalculationService
from fee_services.context import CalculationContext
from fee_services.snapshot import load_snapshot, parse_snapshot, snapshot_to_dict

__all__ = [
    "CalculationContext",
    "CalculationOutcome",
    "FeeCalculationService",
    "load_snapshot",
    "parse_snapshot",
    "snapshot_to_dict",
]
