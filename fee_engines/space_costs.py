"""
Space construction-cost builder.

Seeds the per-discipline ``ConstructionCost`` records of a space from the
building-type cost catalog.  Only the most recent catalog year is used;
each cost per square foot is scaled by the state cost index and the
project-type index (both percentages, 100 when unknown).  Civil and
Structural start inactive; the other disciplines start active.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from fee_kernel.domain.disciplines import TOTAL_COST_TYPE, Discipline, same_discipline
from fee_kernel.domain.proposal import ConstructionCost
from fee_kernel.domain.reference import BuildingTypeCost
from fee_kernel.domain.values import ZERO, optional_decimal, percent_of, safe_amount
from fee_kernel.logging_config import get_logger

logger = get_logger("engines.space_costs")

# Order in which discipline rows are created on a new space
SPACE_DISCIPLINES: tuple[Discipline, ...] = (
    Discipline.MECHANICAL,
    Discipline.PLUMBING,
    Discipline.ELECTRICAL,
    Discipline.CIVIL,
    Discipline.STRUCTURAL,
)

INACTIVE_BY_DEFAULT = frozenset({Discipline.CIVIL, Discipline.STRUCTURAL})

# Loose catalog spellings ("Mech", "Electric", ...) and the discipline they mean
_COST_TYPE_PREFIXES = (
    ("mech", Discipline.MECHANICAL),
    ("plumb", Discipline.PLUMBING),
    ("elec", Discipline.ELECTRICAL),
    ("civ", Discipline.CIVIL),
    ("struc", Discipline.STRUCTURAL),
)


@dataclass(frozen=True)
class SpaceCostEstimate:
    """Seeded discipline costs plus the catalog "Total" figures for one space."""

    construction_costs: tuple[ConstructionCost, ...]
    total_cost_per_sqft: Decimal
    total_construction_cost: Decimal
    year: int | None = None

    @property
    def active_cost_per_sqft(self) -> Decimal:
        return sum(
            (c.cost_per_sqft for c in self.construction_costs if c.is_active), ZERO
        )


def adjust_cost_per_sqft(
    cost_per_sqft: Decimal,
    cost_index: Decimal | None = None,
    project_type_index: Decimal | None = None,
) -> Decimal:
    """``cost_per_sqft x cost_index / 100 x project_type_index / 100``."""
    adjusted = safe_amount(optional_decimal(cost_per_sqft), field="cost_per_sqft")
    if cost_index is not None:
        adjusted = percent_of(adjusted, safe_amount(optional_decimal(cost_index), field="cost_index"))
    if project_type_index is not None:
        adjusted = percent_of(
            adjusted, safe_amount(optional_decimal(project_type_index), field="project_type_index"),
        )
    return adjusted


def _catalog_discipline(cost_type: str, loose: bool) -> Discipline | None:
    key = cost_type.strip().lower()
    for discipline in SPACE_DISCIPLINES:
        if key == discipline.value.lower():
            return discipline
    if loose:
        for prefix, discipline in _COST_TYPE_PREFIXES:
            if prefix in key:
                return discipline
    return None


def build_space_costs(
    building_type_id: str,
    catalog: Iterable[BuildingTypeCost],
    floor_area: Decimal,
    cost_index: Decimal | None = None,
    project_type_index: Decimal | None = None,
) -> SpaceCostEstimate:
    """
    Seed a space's construction costs for a building type.

    Catalog rows are matched to disciplines by exact cost-type name; when
    none match exactly, loose spellings ("Mech", "Electrical Systems") are
    accepted instead.  Disciplines missing from the catalog get 0.
    """
    rows = [r for r in catalog if r.building_type_id == building_type_id]
    area = safe_amount(optional_decimal(floor_area), field="floor_area")

    exact = [r for r in rows if _catalog_discipline(r.cost_type, loose=False) is not None]
    loose = not exact
    matched = [
        (r, _catalog_discipline(r.cost_type, loose=loose))
        for r in (rows if loose else exact)
    ]
    matched = [(r, d) for r, d in matched if d is not None]

    year = max((r.year for r, _ in matched), default=None)
    recent = {d: r for r, d in reversed(matched) if r.year == year}

    if not matched:
        logger.warning("building_type_costs_missing", extra={
            "building_type_id": building_type_id,
            "catalog_rows": len(rows),
        })

    costs = []
    for discipline in SPACE_DISCIPLINES:
        row = recent.get(discipline)
        per_sqft = adjust_cost_per_sqft(
            row.cost_per_sqft if row is not None else ZERO,
            cost_index,
            project_type_index,
        )
        costs.append(ConstructionCost(
            discipline=discipline.value,
            cost_per_sqft=per_sqft,
            is_active=discipline not in INACTIVE_BY_DEFAULT,
        ))

    totals = [r for r in rows if same_discipline(r.cost_type, TOTAL_COST_TYPE)]
    total_row = max(totals, key=lambda r: r.year, default=None)
    total_per_sqft = (
        adjust_cost_per_sqft(total_row.cost_per_sqft, cost_index, project_type_index)
        if total_row is not None
        else ZERO
    )

    logger.debug("space_costs_built", extra={
        "building_type_id": building_type_id,
        "year": year,
        "floor_area": str(area),
        "cost_index": None if cost_index is None else str(cost_index),
        "project_type_index": None if project_type_index is None else str(project_type_index),
    })

    return SpaceCostEstimate(
        construction_costs=tuple(costs),
        total_cost_per_sqft=total_per_sqft,
        total_construction_cost=total_per_sqft * area,
        year=year,
    )
