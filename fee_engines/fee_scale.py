"""
fee_engines.fee_scale -- Fee-scale bracket resolution and adjusted discipline rates.

Responsibility:
    Given a structure, select the fee-scale bracket that applies to its
    total construction cost, derive a discipline's share of the prime
    consultant rate, and apply the duplicate-structure multiplier.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Reads ``fee_engines.construction_cost`` for the bracket key and
    ``fee_engines.duplicates`` for lineage.  Consumed by the discipline
    and service fee calculators.

Invariants enforced:
    - Half-open interval lookup: ``b.construction_cost <= total < next``;
      no interpolation between brackets.
    - Zero total cost always resolves to the first bracket.
    - Total above every threshold resolves to the last bracket.
    - Empty table, or a non-zero total below every threshold, resolves to
      ``FALLBACK_RATE`` (0.05) exactly; that value is returned as-is, with
      no duplicate multiplier.
    - Unknown disciplines use a fraction of 100 (no reduction).
    - Duplicate multiplier is looked up by ``min(ordinal + 1, 10)`` and is
      1.0 for originals or missing entries.

Failure modes:
    - None raised.  Every degradation above is logged at WARNING.

Usage:
    from fee_engines.fee_scale import resolve_rate

    rate = resolve_rate(structure, "Mechanical", fee_scale, duplicate_rates)
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from fee_kernel.domain.disciplines import Discipline, discipline_name, parse_discipline
from fee_kernel.domain.proposal import Structure
from fee_kernel.domain.reference import DuplicateRateTable, FeeScaleBracket, FeeScaleTable
from fee_kernel.domain.values import ZERO, percent_of, safe_amount
from fee_kernel.logging_config import get_logger
from fee_engines.construction_cost import structure_construction_cost
from fee_engines.duplicates import duplicate_ordinal, duplicate_rate_id
from fee_engines.tracer import traced_engine

logger = get_logger("engines.fee_scale")

# Percent, like every resolved rate: the fallback fee is 0.05% of cost.
FALLBACK_RATE = Decimal("0.05")
DEFAULT_FRACTION = Decimal("100")
DEFAULT_DUPLICATE_RATE = Decimal("1")

_FRACTION_FIELDS = {
    Discipline.MECHANICAL: "fraction_mechanical",
    Discipline.PLUMBING: "fraction_plumbing",
    Discipline.ELECTRICAL: "fraction_electrical",
    Discipline.STRUCTURAL: "fraction_structural",
}


@dataclass(frozen=True)
class RateResolution:
    """Every intermediate of a rate resolution, for display and diagnosis."""

    total_construction_cost: Decimal
    bracket_index: int | None
    bracket: FeeScaleBracket | None
    fraction: Decimal
    discipline_rate: Decimal
    duplicate_rate: Decimal
    adjusted_rate: Decimal
    used_fallback: bool


def bracket_index(total_cost: Decimal, fee_scale: FeeScaleTable) -> int | None:
    """
    Index of the bracket applying to ``total_cost``.

    Returns None when the table is empty or a non-zero cost sits below
    every threshold.
    """
    if fee_scale.is_empty:
        return None
    total = safe_amount(total_cost, field="total_construction_cost")
    if total == ZERO:
        return 0
    index = bisect_right(fee_scale.thresholds, total) - 1
    if index < 0:
        return None
    return index


def select_bracket(total_cost: Decimal, fee_scale: FeeScaleTable) -> FeeScaleBracket | None:
    index = bracket_index(total_cost, fee_scale)
    return None if index is None else fee_scale[index]


def discipline_fraction(bracket: FeeScaleBracket, discipline: str) -> Decimal:
    """Discipline's percent of the prime rate; 100 for disciplines without a column."""
    known = parse_discipline(discipline)
    field = _FRACTION_FIELDS.get(known) if known is not None else None
    if field is None:
        return DEFAULT_FRACTION
    return safe_amount(getattr(bracket, field), field=field)


def duplicate_rate(
    structure: Structure,
    duplicate_rates: DuplicateRateTable,
    structures: Sequence[Structure] | None = None,
) -> Decimal:
    """Rate multiplier for a structure; 1.0 for originals and missing entries."""
    if not structure.is_duplicate:
        return DEFAULT_DUPLICATE_RATE
    ordinal = duplicate_ordinal(structure, structures)
    rate_id = duplicate_rate_id(ordinal)
    rate = duplicate_rates.lookup(rate_id)
    if rate is None:
        logger.warning("duplicate_rate_missing", extra={
            "structure_id": structure.id,
            "duplicate_ordinal": ordinal,
            "rate_id": rate_id,
        })
        return DEFAULT_DUPLICATE_RATE
    return safe_amount(rate, field="duplicate_rate")


def resolve_rate_detail(
    structure: Structure,
    discipline: str,
    fee_scale: FeeScaleTable,
    duplicate_rates: DuplicateRateTable,
    structures: Sequence[Structure] | None = None,
) -> RateResolution:
    """Resolve the adjusted rate and keep every intermediate value."""
    total = structure_construction_cost(structure)

    if fee_scale.is_empty:
        logger.warning("fee_scale_fallback_rate_used", extra={
            "reason": "fee_scale_empty",
            "structure_id": structure.id,
            "discipline": discipline_name(discipline),
            "fallback_rate": str(FALLBACK_RATE),
        })
        return _fallback(total)

    index = bracket_index(total, fee_scale)
    if index is None:
        logger.warning("fee_scale_fallback_rate_used", extra={
            "reason": "below_lowest_threshold",
            "structure_id": structure.id,
            "discipline": discipline_name(discipline),
            "total_construction_cost": str(total),
            "lowest_threshold": str(fee_scale[0].construction_cost),
            "fallback_rate": str(FALLBACK_RATE),
        })
        return _fallback(total)

    bracket = fee_scale[index]
    fraction = discipline_fraction(bracket, discipline)
    prime = safe_amount(bracket.prime_consultant_rate, field="prime_consultant_rate")
    discipline_rate = percent_of(prime, fraction)
    multiplier = duplicate_rate(structure, duplicate_rates, structures)
    adjusted = discipline_rate * multiplier

    logger.debug("fee_scale_rate_resolved", extra={
        "structure_id": structure.id,
        "discipline": discipline_name(discipline),
        "total_construction_cost": str(total),
        "bracket_index": index,
        "bracket_threshold": str(bracket.construction_cost),
        "prime_consultant_rate": str(prime),
        "fraction": str(fraction),
        "duplicate_rate": str(multiplier),
        "adjusted_rate": str(adjusted),
    })

    return RateResolution(
        total_construction_cost=total,
        bracket_index=index,
        bracket=bracket,
        fraction=fraction,
        discipline_rate=discipline_rate,
        duplicate_rate=multiplier,
        adjusted_rate=adjusted,
        used_fallback=False,
    )


def _fallback(total: Decimal) -> RateResolution:
    return RateResolution(
        total_construction_cost=total,
        bracket_index=None,
        bracket=None,
        fraction=DEFAULT_FRACTION,
        discipline_rate=FALLBACK_RATE,
        duplicate_rate=DEFAULT_DUPLICATE_RATE,
        adjusted_rate=FALLBACK_RATE,
        used_fallback=True,
    )


@traced_engine("fee_scale", "1.0", fingerprint_fields=("structure", "discipline"))
def resolve_rate(
    structure: Structure,
    discipline: str,
    fee_scale: FeeScaleTable,
    duplicate_rates: DuplicateRateTable,
    structures: Sequence[Structure] | None = None,
) -> Decimal:
    """
    Adjusted rate (percent of construction cost) for a structure and discipline.

    Formula: prime_consultant_rate x fraction / 100 x duplicate_rate

    Args:
        structure: Structure whose total construction cost picks the bracket.
        discipline: Discipline name, any case.
        fee_scale: Fee-scale table (may be empty).
        duplicate_rates: Duplicate-structure multipliers.
        structures: Optional full structure list, used only to derive a
            duplicate's ordinal from its position.

    Returns:
        Adjusted rate, or ``FALLBACK_RATE`` when no bracket applies.
    """
    return resolve_rate_detail(
        structure, discipline, fee_scale, duplicate_rates, structures
    ).adjusted_rate
