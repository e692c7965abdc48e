"""
Proposal Domain Models (``fee_kernel.domain.proposal``).

Responsibility
--------------
Frozen dataclass value objects for the tree a fee proposal is built from:
structures containing levels containing spaces, the per-discipline
construction costs of each space, and the tracked engineering services
bound to each structure.

Architecture position
---------------------
**Kernel > Domain** -- pure data definitions with ZERO I/O.  Read by every
engine; produced by ``fee_services.snapshot`` and by the editing commands in
``fee_services.commands`` (which never mutate, only ``replace``).

Invariants enforced
-------------------
* All models are ``frozen=True``; child collections are tuples.
* Numeric fields are ``Decimal`` (or ``None`` where optional).  Raw ints,
  floats and numeric strings are coerced on construction; float ``nan``
  survives as ``Decimal("NaN")`` and is neutralised by the engines.

Failure modes
-------------
* Non-numeric text in a numeric field raises ``ValueError``.
* An unknown phase name raises ``ValueError``.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal

from fee_kernel.domain.disciplines import Phase, discipline_name, parse_phase, same_discipline
from fee_kernel.domain.values import optional_decimal

DEFAULT_DESIGN_PERCENTAGE = Decimal("80")


def _set(obj: object, name: str, value: object) -> None:
    object.__setattr__(obj, name, value)


@dataclass(frozen=True)
class ConstructionCost:
    """Cost per square foot of one discipline's work in a space."""

    discipline: str
    cost_per_sqft: Decimal = Decimal("0")
    is_active: bool = True
    id: str | None = None

    def __post_init__(self) -> None:
        value = optional_decimal(self.cost_per_sqft)
        _set(self, "cost_per_sqft", Decimal("0") if value is None else value)
        _set(self, "discipline", discipline_name(self.discipline))


@dataclass(frozen=True)
class Space:
    """A room or area on a level, with its floor area and discipline costs."""

    id: str
    name: str = ""
    floor_area: Decimal | None = Decimal("0")
    construction_costs: tuple[ConstructionCost, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "floor_area", optional_decimal(self.floor_area))
        _set(self, "construction_costs", tuple(self.construction_costs))

    def cost_for(self, discipline: str) -> ConstructionCost | None:
        """First construction-cost record for the discipline (case-insensitive)."""
        for cost in self.construction_costs:
            if same_discipline(cost.discipline, discipline):
                return cost
        return None


@dataclass(frozen=True)
class Level:
    """A floor of a structure."""

    id: str
    name: str = ""
    level_number: int = 0
    spaces: tuple[Space, ...] = ()

    def __post_init__(self) -> None:
        _set(self, "spaces", tuple(self.spaces))


@dataclass(frozen=True)
class Structure:
    """
    A building (or other structure) in the proposal.

    ``parent_id`` marks the structure as a duplicate of another one; the
    duplicate ordinal comes from ``duplicate_number`` or from the name
    suffix (see ``fee_engines.duplicates``).
    """

    id: str
    name: str = ""
    levels: tuple[Level, ...] = ()
    parent_id: str | None = None
    design_percentage: Decimal | None = None
    duplicate_number: int | None = None
    duplicate_rate: Decimal | None = None  # stored for display, never applied

    def __post_init__(self) -> None:
        _set(self, "levels", tuple(self.levels))
        _set(self, "design_percentage", optional_decimal(self.design_percentage))
        _set(self, "duplicate_rate", optional_decimal(self.duplicate_rate))

    @property
    def is_duplicate(self) -> bool:
        return self.parent_id is not None

    @property
    def effective_design_percentage(self) -> Decimal:
        """Design share of the fee in percent; 80 when unset or NaN."""
        p = self.design_percentage
        if p is None or p.is_nan():
            return DEFAULT_DESIGN_PERCENTAGE
        return p

    def iter_spaces(self) -> Iterator[Space]:
        for level in self.levels:
            yield from level.spaces


@dataclass(frozen=True)
class TrackedService:
    """
    A fee line for one engineering service on one structure.

    ``rate`` is a percent of the structure's total design fee for the
    service's discipline; ``fee_increment`` is the rounding unit;
    ``custom_fee`` is a user override that leaves the calculated fee intact.
    """

    id: str
    service_name: str
    discipline: str
    phase: Phase
    structure_id: str | None = None
    min_fee: Decimal | None = None
    rate: Decimal | None = None
    fee_increment: Decimal | None = None
    is_included: bool = True
    is_construction_admin: bool = False
    custom_fee: Decimal | None = None
    service_id: str | None = None  # standard-service template

    def __post_init__(self) -> None:
        _set(self, "phase", parse_phase(self.phase))
        _set(self, "discipline", discipline_name(self.discipline))
        for name in ("min_fee", "rate", "fee_increment", "custom_fee"):
            _set(self, name, optional_decimal(getattr(self, name)))

    @property
    def has_fee_configuration(self) -> bool:
        return (
            self.min_fee is not None
            or self.rate is not None
            or self.fee_increment is not None
        )


@dataclass(frozen=True)
class ProposalSnapshot:
    """Immutable view of everything the engine reads for one proposal."""

    structures: tuple[Structure, ...] = ()
    tracked_services: tuple[TrackedService, ...] = ()
    proposal_id: str | None = None
    currency: str = "USD"

    def __post_init__(self) -> None:
        _set(self, "structures", tuple(self.structures))
        _set(self, "tracked_services", tuple(self.tracked_services))

    def structure(self, structure_id: str) -> Structure | None:
        for s in self.structures:
            if s.id == structure_id:
                return s
        return None

    def service(self, service_id: str) -> TrackedService | None:
        for svc in self.tracked_services:
            if svc.id == service_id:
                return svc
        return None

    def services_for(self, structure_id: str) -> tuple[TrackedService, ...]:
        return tuple(
            s for s in self.tracked_services if s.structure_id == structure_id
        )
