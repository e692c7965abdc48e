"""
Module: fee_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure fee
    calculation engines.  This is the import surface for ``fee_services``
    and ``scripts``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import ``fee_kernel`` (and sibling engine modules).
    MUST NOT import ``fee_services``, ``fee_config`` or ``fee_ingestion``.

Invariants enforced:
    - Decimal-only arithmetic; no rounding before presentation.
    - Determinism: identical inputs always produce identical outputs.
    - Recoverable data problems (empty fee scale, NaN, unknown discipline)
      are logged and recovered, never raised.

Audit relevance:
    Top-level engine entry points are wrapped by ``@traced_engine`` (see
    ``fee_engines.tracer``) and emit FEE_ENGINE_TRACE records.

Usage:
    from fee_engines import calculate_discipline_fee, project_summary
"""

from fee_kernel.logging_config import get_logger

logger = get_logger("engines")

from fee_engines.construction_cost import (
    construction_costs_by_discipline,
    space_construction_cost,
    structure_construction_cost,
    total_construction_cost,
    total_floor_area,
)
from fee_engines.discipline_fee import (
    DisciplineFee,
    calculate_discipline_fee,
    calculate_space_discipline_fee,
    phase_percentage,
)
from fee_engines.duplicates import (
    base_name,
    default_duplicate_rate,
    duplicate_name,
    duplicate_ordinal,
    duplicate_rate_id,
)
from fee_engines.fee_scale import (
    FALLBACK_RATE,
    RateResolution,
    bracket_index,
    discipline_fraction,
    duplicate_rate,
    resolve_rate,
    resolve_rate_detail,
    select_bracket,
)
from fee_engines.service_fee import (
    ServiceFee,
    calculate_service_fee,
    is_service_eligible,
    round_up_to_increment,
)
from fee_engines.space_costs import (
    SpaceCostEstimate,
    adjust_cost_per_sqft,
    build_space_costs,
)
from fee_engines.totals import (
    DisciplineTotal,
    ProjectSummary,
    StructureTotals,
    discipline_total,
    has_construction_admin_services,
    project_summary,
    service_fees_for,
)
from fee_engines.tracer import traced_engine

logger.debug("fee_engines_loaded")

__all__ = [
    "construction_costs_by_discipline",
    "space_construction_cost",
    "structure_construction_cost",
    "total_construction_cost",
    "total_floor_area",
    "DisciplineFee",
    "calculate_discipline_fee",
    "calculate_space_discipline_fee",
    "phase_percentage",
    "base_name",
    "default_duplicate_rate",
    "duplicate_name",
    "duplicate_ordinal",
    "duplicate_rate_id",
    "FALLBACK_RATE",
    "RateResolution",
    "bracket_index",
    "discipline_fraction",
    "duplicate_rate",
    "resolve_rate",
    "resolve_rate_detail",
    "select_bracket",
    "ServiceFee",
    "calculate_service_fee",
    "is_service_eligible",
    "round_up_to_increment",
    "SpaceCostEstimate",
    "adjust_cost_per_sqft",
    "build_space_costs",
    "DisciplineTotal",
    "ProjectSummary",
    "StructureTotals",
    "discipline_total",
    "has_construction_admin_services",
    "project_summary",
    "service_fees_for",
    "traced_engine",
]
