"""Pure domain types for fee proposals: values, disciplines, proposal tree, reference tables."""

from fee_kernel.domain.disciplines import (
    SUMMARY_DISCIPLINES,
    TOTAL_COST_TYPE,
    Discipline,
    Phase,
    discipline_key,
    discipline_name,
    parse_discipline,
    parse_phase,
    same_discipline,
)
from fee_kernel.domain.proposal import (
    DEFAULT_DESIGN_PERCENTAGE,
    ConstructionCost,
    Level,
    ProposalSnapshot,
    Space,
    Structure,
    TrackedService,
)
from fee_kernel.domain.reference import (
    MAX_DUPLICATE_RATE_ID,
    BuildingTypeCost,
    DuplicateRate,
    DuplicateRateTable,
    FeeScaleBracket,
    FeeScaleTable,
    ServiceTemplate,
)
from fee_kernel.domain.values import (
    Money,
    format_currency,
    optional_decimal,
    safe_amount,
    to_decimal,
)

__all__ = [
    "SUMMARY_DISCIPLINES",
    "TOTAL_COST_TYPE",
    "Discipline",
    "Phase",
    "discipline_key",
    "discipline_name",
    "parse_discipline",
    "parse_phase",
    "same_discipline",
    "DEFAULT_DESIGN_PERCENTAGE",
    "ConstructionCost",
    "Level",
    "ProposalSnapshot",
    "Space",
    "Structure",
    "TrackedService",
    "MAX_DUPLICATE_RATE_ID",
    "BuildingTypeCost",
    "DuplicateRate",
    "DuplicateRateTable",
    "FeeScaleBracket",
    "FeeScaleTable",
    "ServiceTemplate",
    "Money",
    "format_currency",
    "optional_decimal",
    "safe_amount",
    "to_decimal",
]
