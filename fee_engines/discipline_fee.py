"""
fee_engines.discipline_fee -- Design and construction fees per discipline.

Responsibility:
    Turn a structure's construction cost for one discipline into the fee
    billed for one phase: cost x adjusted rate / 100 x phase percentage.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``construction_cost`` and ``fee_scale``; consumed by
    ``service_fee`` (rate-based services) and ``totals``.

Invariants enforced:
    - Design percentage p defaults to 80; design uses p/100 and
      construction uses (100 - p)/100, so the two phases always sum to the
      full-rate fee.
    - A resolved rate of 0 (or NaN) yields ``DisciplineFee(0, 0)``.
    - Idempotent and side-effect free: no rounding, no mutation.

Failure modes:
    - None raised.

Usage:
    from fee_engines.discipline_fee import calculate_discipline_fee

    result = calculate_discipline_fee(
        structure, "Mechanical", Phase.DESIGN, fee_scale, duplicate_rates,
    )
    result.fee, result.rate
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from fee_kernel.domain.disciplines import Phase, discipline_name, parse_phase
from fee_kernel.domain.proposal import Space, Structure
from fee_kernel.domain.reference import DuplicateRateTable, FeeScaleTable
from fee_kernel.domain.values import HUNDRED, ZERO, percent_of
from fee_kernel.logging_config import get_logger
from fee_engines.construction_cost import space_construction_cost, total_construction_cost
from fee_engines.fee_scale import resolve_rate
from fee_engines.tracer import traced_engine

logger = get_logger("engines.discipline_fee")


@dataclass(frozen=True)
class DisciplineFee:
    """Fee for one discipline and phase, with the adjusted rate that produced it."""

    fee: Decimal
    rate: Decimal

    @classmethod
    def zero(cls) -> DisciplineFee:
        return cls(fee=ZERO, rate=ZERO)


def phase_percentage(structure: Structure, phase: Phase | str) -> Decimal:
    """Share of the full fee billed in ``phase``, as a fraction (0.8, 0.2, ...)."""
    p = structure.effective_design_percentage
    if parse_phase(phase) is Phase.DESIGN:
        return p / HUNDRED
    return (HUNDRED - p) / HUNDRED


def _usable(rate: Decimal | None) -> bool:
    return rate is not None and not rate.is_nan() and rate != ZERO


@traced_engine(
    "discipline_fee", "1.0", fingerprint_fields=("structure", "discipline", "phase")
)
def calculate_discipline_fee(
    structure: Structure,
    discipline: str,
    phase: Phase | str,
    fee_scale: FeeScaleTable,
    duplicate_rates: DuplicateRateTable,
    structures: Sequence[Structure] | None = None,
) -> DisciplineFee:
    """
    Fee for a discipline on a whole structure in one phase.

    Formula: total_construction_cost x rate / 100 x phase_percentage
    """
    rate = resolve_rate(structure, discipline, fee_scale, duplicate_rates, structures)
    if not _usable(rate):
        logger.debug("discipline_fee_zero_rate", extra={
            "structure_id": structure.id,
            "discipline": discipline_name(discipline),
        })
        return DisciplineFee.zero()

    cost = total_construction_cost(structure, discipline)
    fee = percent_of(cost, rate) * phase_percentage(structure, phase)
    return DisciplineFee(fee=fee, rate=rate)


def calculate_space_discipline_fee(
    space: Space,
    structure: Structure,
    discipline: str,
    phase: Phase | str,
    fee_scale: FeeScaleTable,
    duplicate_rates: DuplicateRateTable,
    structures: Sequence[Structure] | None = None,
) -> DisciplineFee:
    """
    Same formula restricted to one space.

    The rate still comes from the whole structure's construction cost; only
    the fee base is the space's own cost.
    """
    rate = resolve_rate(structure, discipline, fee_scale, duplicate_rates, structures)
    if not _usable(rate):
        return DisciplineFee.zero()

    cost = space_construction_cost(space, discipline)
    fee = percent_of(cost, rate) * phase_percentage(structure, phase)
    return DisciplineFee(fee=fee, rate=rate)
