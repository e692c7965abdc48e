"""
fee_engines.construction_cost -- Construction cost aggregation over a structure.

Responsibility:
    Sum active per-discipline construction cost (cost per square foot x
    floor area) across every space of a structure, per discipline and as a
    structure-wide total.  Also totals floor area.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    First stage of the fee pipeline; feeds the fee-scale resolver (bracket
    selection) and the discipline fee calculator (fee base).

Invariants enforced:
    - Inactive or missing cost records contribute exactly zero.
    - The "Total" roll-up cost type is never added to a discipline sum.
    - NaN or missing floor area / cost per square foot read as zero and are
      logged; NaN never reaches a returned total.
    - Purity: the structure is only read.

Failure modes:
    - None raised.  Bad numeric inputs degrade to zero with a warning.

Usage:
    from fee_engines.construction_cost import total_construction_cost

    cost = total_construction_cost(structure, "Mechanical")
"""

from __future__ import annotations

from decimal import Decimal

from fee_kernel.domain.disciplines import (
    SUMMARY_DISCIPLINES,
    TOTAL_COST_TYPE,
    discipline_key,
    same_discipline,
)
from fee_kernel.domain.proposal import ConstructionCost, Space, Structure
from fee_kernel.domain.values import ZERO
from fee_kernel.logging_config import get_logger

logger = get_logger("engines.construction_cost")


def _read(value: Decimal | None, field: str, space: Space) -> Decimal:
    if value is None:
        return ZERO
    if value.is_nan():
        logger.warning("construction_cost_nan_coerced", extra={
            "field": field,
            "space_id": space.id,
        })
        return ZERO
    return value


def record_cost(space: Space, cost: ConstructionCost | None) -> Decimal:
    """Dollar cost of one construction-cost record in a space (0 if inactive)."""
    if cost is None or not cost.is_active:
        return ZERO
    per_sqft = _read(cost.cost_per_sqft, "cost_per_sqft", space)
    area = _read(space.floor_area, "floor_area", space)
    return per_sqft * area


def space_construction_cost(space: Space, discipline: str) -> Decimal:
    """Active construction cost of one discipline in one space."""
    return record_cost(space, space.cost_for(discipline))


def total_construction_cost(structure: Structure, discipline: str) -> Decimal:
    """
    Sum of ``cost_per_sqft * floor_area`` for the discipline over all spaces.

    Preconditions:
        discipline is a discipline name (any case).

    Postconditions:
        Non-NaN Decimal; 0 for a structure with no levels or spaces.
    """
    total = ZERO
    for space in structure.iter_spaces():
        total += space_construction_cost(space, discipline)
    return total


def construction_costs_by_discipline(structure: Structure) -> dict[str, Decimal]:
    """
    Active construction cost per discipline.

    The five known disciplines are always present (possibly 0); any other
    discipline names found on spaces are added under their own spelling.
    """
    costs: dict[str, Decimal] = {d.value: ZERO for d in SUMMARY_DISCIPLINES}
    names: dict[str, str] = {d.value.lower(): d.value for d in SUMMARY_DISCIPLINES}
    for space in structure.iter_spaces():
        for cost in space.construction_costs:
            if same_discipline(cost.discipline, TOTAL_COST_TYPE):
                continue
            key = names.setdefault(discipline_key(cost.discipline), cost.discipline)
            costs[key] = costs.get(key, ZERO) + record_cost(space, cost)
    return costs


def structure_construction_cost(structure: Structure) -> Decimal:
    """Structure-wide construction cost: every active discipline, every space."""
    total = ZERO
    for space in structure.iter_spaces():
        for cost in space.construction_costs:
            if same_discipline(cost.discipline, TOTAL_COST_TYPE):
                continue
            total += record_cost(space, cost)
    return total


def total_floor_area(structure: Structure) -> Decimal:
    """Sum of space floor areas; missing or NaN areas count as 0."""
    total = ZERO
    for space in structure.iter_spaces():
        total += _read(space.floor_area, "floor_area", space)
    return total
