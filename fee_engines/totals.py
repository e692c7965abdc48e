"""
fee_engines.totals -- Discipline totals and the project fee summary.

Responsibility:
    Combine space fees (discipline fee per structure and phase) with the
    display fees of tracked services into per-discipline totals, and roll
    those up into design, construction and grand totals for the project.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Last stage of the fee pipeline; consumes ``discipline_fee`` and
    ``service_fee``.  Presentation rounding happens only in
    ``ProjectSummary.to_dict``.

Invariants enforced:
    - Construction-phase space fees are zero unless the structure has at
      least one included construction-admin service.
    - Service fees count only services on this structure, matching
      discipline and phase, included, with ``min_fee`` set, and not
      construction-admin.
    - ``grand = design + construction`` per discipline and
      ``project_total = sum(grand)``.
    - An empty project yields all zeros for the five summary disciplines.

Failure modes:
    - None raised.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from fee_kernel.domain.disciplines import (
    SUMMARY_DISCIPLINES,
    Phase,
    discipline_name,
    parse_phase,
    same_discipline,
)
from fee_kernel.domain.proposal import Structure, TrackedService
from fee_kernel.domain.reference import DuplicateRateTable, FeeScaleTable
from fee_kernel.domain.values import ZERO, Money, safe_amount
from fee_kernel.logging_config import get_logger
from fee_engines.discipline_fee import calculate_discipline_fee
from fee_engines.service_fee import calculate_service_fee
from fee_engines.tracer import traced_engine

logger = get_logger("engines.totals")


@dataclass(frozen=True)
class DisciplineTotal:
    """Space fees plus service fees for one structure, discipline and phase."""

    space_fees: Decimal
    service_fees: Decimal
    total: Decimal


@dataclass(frozen=True)
class StructureTotals:
    """Per-discipline design and construction totals of one structure."""

    structure_id: str
    name: str
    design: dict[str, Decimal] = field(default_factory=dict)
    construction: dict[str, Decimal] = field(default_factory=dict)

    @property
    def total(self) -> Decimal:
        return sum(self.design.values(), ZERO) + sum(self.construction.values(), ZERO)


@dataclass(frozen=True)
class ProjectSummary:
    """Project-wide fee totals keyed by discipline name."""

    design_totals: dict[str, Decimal]
    construction_totals: dict[str, Decimal]
    grand_totals: dict[str, Decimal]
    project_total: Decimal
    structures: tuple[StructureTotals, ...] = ()

    def to_dict(self, currency: str = "USD") -> dict[str, Any]:
        """Serializable view with amounts rounded to cents."""

        def cents(amounts: dict[str, Decimal]) -> dict[str, str]:
            return {k: str(Money(v, currency).round().amount) for k, v in amounts.items()}

        return {
            "currency": currency,
            "design_totals": cents(self.design_totals),
            "construction_totals": cents(self.construction_totals),
            "grand_totals": cents(self.grand_totals),
            "project_total": str(Money(self.project_total, currency).round().amount),
            "structures": [
                {
                    "structure_id": s.structure_id,
                    "name": s.name,
                    "design": cents(s.design),
                    "construction": cents(s.construction),
                    "total": str(Money(s.total, currency).round().amount),
                }
                for s in self.structures
            ],
        }


def has_construction_admin_services(
    structure: Structure,
    services: Iterable[TrackedService],
) -> bool:
    """True when any included construction-admin service belongs to the structure."""
    return any(
        s.structure_id == structure.id and s.is_included and s.is_construction_admin
        for s in services
    )


def _counts_toward_total(
    service: TrackedService,
    structure: Structure,
    discipline: str,
    phase: Phase,
) -> bool:
    return (
        service.structure_id == structure.id
        and same_discipline(service.discipline, discipline)
        and service.phase is phase
        and service.is_included
        and service.min_fee is not None
        and not service.is_construction_admin
    )


def service_fees_for(
    structure: Structure,
    discipline: str,
    phase: Phase | str,
    services: Iterable[TrackedService],
    fee_scale: FeeScaleTable,
    duplicate_rates: DuplicateRateTable,
    structures: Sequence[Structure] | None = None,
) -> Decimal:
    """Sum of display fees of the services counted toward a discipline total."""
    phase = parse_phase(phase)
    total = ZERO
    for service in services:
        if not _counts_toward_total(service, structure, discipline, phase):
            continue
        fee = calculate_service_fee(
            service, service.discipline, structure, fee_scale, duplicate_rates, structures
        )
        total += safe_amount(fee.display_fee, field="display_fee")
    return total


def discipline_total(
    structure: Structure,
    discipline: str,
    phase: Phase | str,
    services: Sequence[TrackedService],
    fee_scale: FeeScaleTable,
    duplicate_rates: DuplicateRateTable,
    structures: Sequence[Structure] | None = None,
) -> DisciplineTotal:
    """
    Total fee for one structure, discipline and phase.

    Construction-phase space fees are gated by
    ``has_construction_admin_services``; service fees are never gated.
    """
    phase = parse_phase(phase)
    if phase is Phase.CONSTRUCTION and not has_construction_admin_services(structure, services):
        space_fees = ZERO
    else:
        space_fees = calculate_discipline_fee(
            structure, discipline, phase, fee_scale, duplicate_rates, structures
        ).fee
    service_fees = service_fees_for(
        structure, discipline, phase, services, fee_scale, duplicate_rates, structures
    )
    return DisciplineTotal(
        space_fees=space_fees,
        service_fees=service_fees,
        total=space_fees + service_fees,
    )


@traced_engine("project_summary", "1.0", fingerprint_fields=("structures", "services"))
def project_summary(
    structures: Sequence[Structure],
    services: Sequence[TrackedService],
    fee_scale: FeeScaleTable,
    duplicate_rates: DuplicateRateTable,
) -> ProjectSummary:
    """
    Design, construction and grand totals for the whole project.

    Args:
        structures: Every structure in the proposal, duplicates included.
        services: Every tracked service in the proposal.
        fee_scale: Fee-scale table (may be empty).
        duplicate_rates: Duplicate-structure multipliers.

    Returns:
        ProjectSummary keyed by Civil, Electrical, Mechanical, Plumbing and
        Structural, with one StructureTotals per structure.
    """
    structures = tuple(structures)
    services = tuple(services)
    names = [discipline_name(d) for d in SUMMARY_DISCIPLINES]

    design = {name: ZERO for name in names}
    construction = {name: ZERO for name in names}
    per_structure: list[StructureTotals] = []

    for structure in structures:
        s_design: dict[str, Decimal] = {}
        s_construction: dict[str, Decimal] = {}
        for name in names:
            s_design[name] = discipline_total(
                structure, name, Phase.DESIGN, services,
                fee_scale, duplicate_rates, structures,
            ).total
            s_construction[name] = discipline_total(
                structure, name, Phase.CONSTRUCTION, services,
                fee_scale, duplicate_rates, structures,
            ).total
            design[name] += s_design[name]
            construction[name] += s_construction[name]
        per_structure.append(StructureTotals(
            structure_id=structure.id,
            name=structure.name,
            design=s_design,
            construction=s_construction,
        ))

    grand = {name: design[name] + construction[name] for name in names}
    project_total = sum(grand.values(), ZERO)

    logger.info("project_summary_computed", extra={
        "structure_count": len(structures),
        "service_count": len(services),
        "project_total": str(project_total),
    })

    return ProjectSummary(
        design_totals=design,
        construction_totals=construction,
        grand_totals=grand,
        project_total=project_total,
        structures=tuple(per_structure),
    )
