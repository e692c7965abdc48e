"""
fee_engines.service_fee -- Fee for a single tracked engineering service.

Responsibility:
    Compute the natural (calculated) fee of a tracked service from its
    minimum fee, its rate against the discipline's design fee and its
    rounding increment, and report what should be displayed when the user
    has entered a custom fee.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes ``discipline_fee`` for rate-based services; consumed by
    ``totals`` and the calculation service.

Invariants enforced:
    - Order: base = min_fee (or 0); rate replaces the base with
      sum(per-space design fee) x rate / 100; a non-zero increment rounds
      up to the next multiple; min_fee is a floor.
    - ``calculated_fee`` never depends on ``custom_fee``; an override only
      changes ``display_fee`` and ``is_custom``.
    - An aligned fee is unchanged by increment rounding; any other fee rises
      by less than one increment.
    - NaN configuration values are treated as unset.

Failure modes:
    - None raised.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from fee_kernel.domain.disciplines import Phase
from fee_kernel.domain.proposal import Structure, TrackedService
from fee_kernel.domain.reference import DuplicateRateTable, FeeScaleTable
from fee_kernel.domain.values import ZERO, percent_of
from fee_kernel.logging_config import get_logger
from fee_engines.discipline_fee import calculate_space_discipline_fee
from fee_engines.tracer import traced_engine

logger = get_logger("engines.service_fee")


@dataclass(frozen=True)
class ServiceFee:
    """
    Calculated/display/custom triple for one service.

    ``is_custom`` tells the caller to offer "revert to calculated", which
    restores ``calculated_fee`` without recomputation.
    """

    calculated_fee: Decimal
    display_fee: Decimal
    is_custom: bool = False


def _setting(service: TrackedService, name: str) -> Decimal | None:
    value = getattr(service, name)
    if value is not None and value.is_nan():
        logger.warning("service_setting_nan_ignored", extra={
            "service_id": service.id,
            "field": name,
        })
        return None
    return value


def round_up_to_increment(amount: Decimal, increment: Decimal | None) -> Decimal:
    """Round ``amount`` up to the next multiple of ``increment``; 0/None is a no-op."""
    if increment is None or increment.is_nan() or increment == ZERO:
        return amount
    remainder = amount % increment
    if remainder > ZERO:
        return amount + (increment - remainder)
    return amount


def is_service_eligible(service: TrackedService) -> bool:
    """Included and either construction-admin or carrying any fee setting."""
    return service.is_included and (
        service.is_construction_admin or service.has_fee_configuration
    )


def design_fee_base(
    discipline: str,
    structure: Structure,
    fee_scale: FeeScaleTable,
    duplicate_rates: DuplicateRateTable,
    structures: Sequence[Structure] | None = None,
) -> Decimal:
    """Sum of per-space design-phase fees for the discipline."""
    total = ZERO
    for space in structure.iter_spaces():
        total += calculate_space_discipline_fee(
            space, structure, discipline, Phase.DESIGN,
            fee_scale, duplicate_rates, structures,
        ).fee
    return total


@traced_engine("service_fee", "1.0", fingerprint_fields=("service", "discipline", "structure"))
def calculate_service_fee(
    service: TrackedService,
    discipline: str,
    structure: Structure,
    fee_scale: FeeScaleTable,
    duplicate_rates: DuplicateRateTable,
    structures: Sequence[Structure] | None = None,
) -> ServiceFee:
    """
    Calculate a tracked service's fee.

    Args:
        service: The tracked service.
        discipline: Discipline whose design fee a rate applies to.
        structure: Structure the service belongs to.
        fee_scale: Fee-scale table.
        duplicate_rates: Duplicate-structure multipliers.
        structures: Optional full structure list (duplicate ordinals).

    Returns:
        ServiceFee with the natural fee, the fee to display, and whether
        the display value is a user override.
    """
    min_fee = _setting(service, "min_fee")
    rate = _setting(service, "rate")
    increment = _setting(service, "fee_increment")

    calculated = min_fee if min_fee is not None else ZERO

    if rate is not None:
        base = design_fee_base(discipline, structure, fee_scale, duplicate_rates, structures)
        calculated = percent_of(base, rate)

    calculated = round_up_to_increment(calculated, increment)

    if min_fee is not None and calculated < min_fee:
        calculated = min_fee

    custom = _setting(service, "custom_fee")
    if custom is not None:
        return ServiceFee(calculated_fee=calculated, display_fee=custom, is_custom=True)
    return ServiceFee(calculated_fee=calculated, display_fee=calculated, is_custom=False)
